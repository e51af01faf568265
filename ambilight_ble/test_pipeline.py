"""test_pipeline.py

Per-frame pipeline behavior with a fake frame source and a mocked BLE client.
No real screen or Bluetooth device is needed.
"""

import threading
import time
import unittest
from unittest import mock

import numpy as np
from bleak.exc import BleakError
from mss.exception import ScreenShotError

from ambilight_ble.ble_sender import BleSender
from ambilight_ble.config import Config
from ambilight_ble.errors import CaptureFailure, TransportFailure
from ambilight_ble.main import AmbientPipeline, main
from ambilight_ble.screen.frame import Frame
from ambilight_ble.screen.screen_capture import MssFrameSource


def _make_solid_frame(rgb, w=40, h=40):
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[:, :] = np.array(rgb, dtype=np.uint8)
    return Frame.from_rgb(img)


def _config(**overrides):
    cfg = Config()
    cfg.write_backoff_s = 0.0
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


class _FakeShot:
    width = 2
    height = 1

    def __array__(self, dtype=None, copy=None):
        return np.array([[[10, 20, 30, 0], [40, 50, 60, 0]]], dtype=np.uint8)


class TestAmbientPipeline(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.cfg = _config(color_algorithm='most_dominant', quality=2, sorted=False,
                           color_fade=0.0, color_correct_light=0.0, color_correct_saturation=0.0)
        self.source = mock.Mock()
        self.sender = mock.Mock()
        self.sender.send = mock.AsyncMock()
        self.pipeline = AmbientPipeline(self.cfg, self.source, self.sender)

    async def test_frame_reaches_the_light(self):
        self.source.capture.return_value = _make_solid_frame([255, 0, 0])
        rgb = await self.pipeline.process_frame()
        self.assertEqual(rgb, (255, 0, 0))
        self.sender.send.assert_awaited_once_with(bytes([0x01, 255, 0, 0, 0x64]))

    async def test_capture_failure_skips_frame(self):
        self.source.capture.side_effect = CaptureFailure("no display")
        with self.assertLogs('ambilight_ble', level='WARNING'):
            rgb = await self.pipeline.process_frame()
        self.assertIsNone(rgb)
        self.sender.send.assert_not_awaited()

    async def test_capture_timeout_drops_frame(self):
        self.cfg.capture_timeout_s = 0.01
        self.source.capture.side_effect = lambda: time.sleep(0.2)
        with self.assertLogs('ambilight_ble', level='WARNING'):
            rgb = await self.pipeline.process_frame()
        self.assertIsNone(rgb)
        self.sender.send.assert_not_awaited()

    async def test_white_frame_keeps_previous_color(self):
        self.source.capture.return_value = _make_solid_frame([0, 0, 255])
        await self.pipeline.process_frame()
        before = self.pipeline.corrector.running_color

        self.source.capture.return_value = _make_solid_frame([255, 255, 255])
        with self.assertLogs('ambilight_ble', level='INFO'):
            rgb = await self.pipeline.process_frame()
        self.assertIsNone(rgb)
        self.assertTrue(np.allclose(self.pipeline.corrector.running_color, before))
        self.assertEqual(self.sender.send.await_count, 1)

    async def test_transport_failure_is_logged_and_dropped(self):
        self.source.capture.return_value = _make_solid_frame([0, 255, 0])
        self.sender.send.side_effect = TransportFailure("gone")
        with self.assertLogs('ambilight_ble', level='ERROR'):
            rgb = await self.pipeline.process_frame()
        self.assertIsNone(rgb)

    async def test_run_processes_requested_frames(self):
        self.source.capture.return_value = _make_solid_frame([0, 255, 0])
        await self.pipeline.run(frames=3)
        self.assertEqual(self.source.capture.call_count, 3)
        self.assertEqual(self.sender.send.await_count, 3)

    async def test_source_closed_on_capture_thread(self):
        threads = {}

        def capture():
            threads["capture"] = threading.get_ident()
            return _make_solid_frame([0, 255, 0])

        def close():
            threads["close"] = threading.get_ident()

        self.source.capture.side_effect = capture
        self.source.close.side_effect = close
        await self.pipeline.run(frames=2)
        self.source.close.assert_called_once_with()
        self.assertEqual(threads["close"], threads["capture"])
        self.assertNotEqual(threads["close"], threading.get_ident())


class TestBleSender(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.cfg = _config(write_retries=2)
        self.sender = BleSender(self.cfg)

    def _connected(self, side_effect=None):
        self.sender.client = mock.Mock()
        self.sender.client.write_gatt_char = mock.AsyncMock(side_effect=side_effect)
        self.sender.characteristic = mock.Mock()

    async def test_write_without_response(self):
        self._connected()
        await self.sender.send(b'\x01\x02\x03\x04\x64')
        self.sender.client.write_gatt_char.assert_awaited_once_with(
            self.sender.characteristic, b'\x01\x02\x03\x04\x64', response=False)

    async def test_retries_then_succeeds(self):
        self._connected(side_effect=[BleakError("busy"), None])
        with self.assertLogs('ambilight_ble', level='WARNING'):
            await self.sender.send(b'\x01')
        self.assertEqual(self.sender.client.write_gatt_char.await_count, 2)

    async def test_gives_up_after_retries(self):
        self._connected(side_effect=BleakError("busy"))
        with self.assertLogs('ambilight_ble', level='WARNING'):
            with self.assertRaises(TransportFailure):
                await self.sender.send(b'\x01')
        self.assertEqual(self.sender.client.write_gatt_char.await_count, 3)

    async def test_send_before_connect_fails(self):
        with self.assertRaises(TransportFailure):
            await self.sender.send(b'\x01')

    async def test_connect_finds_control_characteristic(self):
        other = mock.Mock(uuid='00002a00-0000-1000-8000-00805f9b34fb', properties=['read'])
        control = mock.Mock(uuid='0000FFF1-0000-1000-8000-00805F9B34FB', properties=['write-without-response'])
        with mock.patch('ambilight_ble.ble_sender.BleakScanner') as scanner, \
                mock.patch('ambilight_ble.ble_sender.BleakClient') as client_cls:
            scanner.find_device_by_address = mock.AsyncMock(return_value='device')
            client = client_cls.return_value
            client.connect = mock.AsyncMock()
            client.services = [mock.Mock(characteristics=[other, control])]
            await self.sender.connect()
        scanner.find_device_by_address.assert_awaited_once_with('FF:FF:3A:00:02:8F', timeout=10.0)
        self.assertIs(self.sender.characteristic, control)

    async def test_scan_error_becomes_transport_failure(self):
        with mock.patch('ambilight_ble.ble_sender.BleakScanner') as scanner:
            scanner.find_device_by_address = mock.AsyncMock(side_effect=BleakError("adapter off"))
            with self.assertRaises(TransportFailure):
                await self.sender.connect()
        self.assertIsNone(self.sender.client)

    async def test_connect_fails_when_light_missing(self):
        with mock.patch('ambilight_ble.ble_sender.BleakScanner') as scanner:
            scanner.find_device_by_address = mock.AsyncMock(return_value=None)
            with self.assertRaises(TransportFailure):
                await self.sender.connect()


class TestMssFrameSource(unittest.TestCase):
    def test_capture_returns_opaque_bgra_frame(self):
        with mock.patch('ambilight_ble.screen.screen_capture.mss.mss') as mss_cls:
            sct = mss_cls.return_value
            sct.monitors = [{}, {'top': 0, 'left': 0, 'width': 2, 'height': 1}]
            sct.grab.return_value = _FakeShot()
            frame = MssFrameSource(monitor=1).capture()
        self.assertEqual(frame.channel_order, "BGRA")
        self.assertEqual(frame.rgb().tolist(), [[[30, 20, 10], [60, 50, 40]]])
        self.assertTrue(np.all(frame.rgba()[..., 3] == 255))

    def test_grab_error_becomes_capture_failure(self):
        with mock.patch('ambilight_ble.screen.screen_capture.mss.mss') as mss_cls:
            sct = mss_cls.return_value
            sct.monitors = [{}, {}]
            sct.grab.side_effect = ScreenShotError("denied")
            with self.assertRaises(CaptureFailure):
                MssFrameSource(monitor=1).capture()


class TestMain(unittest.TestCase):
    def test_invalid_configuration_exits_with_status_2(self):
        self.assertEqual(main(['--quality', '99']), 2)


if __name__ == '__main__':
    unittest.main()
