"""
main.py
Entry point: capture the screen, reduce it to one color and drive the Bluetooth light.

Frames are processed strictly one at a time: capture, extract, correct, encode
and write complete before the next capture starts.
"""

import asyncio
import logging
import sys
from concurrent.futures import ThreadPoolExecutor

from ambilight_ble.ble_sender import BleSender
from ambilight_ble.color_corrector import ColorCorrector
from ambilight_ble.color_extractor import extract_color
from ambilight_ble.config import Config
from ambilight_ble.errors import CaptureFailure, ConfigError, InsufficientSamples, TransportFailure
from ambilight_ble.logger import configure_logging
from ambilight_ble.packet_builder import PacketBuilder
from ambilight_ble.screen.screen_capture import MssFrameSource

logger = logging.getLogger(__name__)


class AmbientPipeline:
    def __init__(self, config, source, sender):
        self.config = config
        self.source = source
        self.sender = sender
        self.strategy = config.build_strategy()
        self.corrector = ColorCorrector(config)
        self.packet_builder = PacketBuilder()
        # One capture thread: mss handles are bound to the thread that created them
        self._executor = ThreadPoolExecutor(max_workers=1)

    async def capture(self):
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(self._executor, self.source.capture),
            timeout=self.config.capture_timeout_s,
        )

    async def process_frame(self):
        """
        Run one frame through the pipeline.
        Returns:
            tuple: The (r, g, b) sent to the light, or None if the frame was dropped
        """
        try:
            frame = await self.capture()
        except CaptureFailure as e:
            logger.warning("%s, skipping frame", e)
            return None
        except asyncio.TimeoutError:
            logger.warning("Capture timed out after %ss, skipping frame", self.config.capture_timeout_s)
            return None

        try:
            sample = extract_color(frame, self.strategy)
        except InsufficientSamples as e:
            # Keep the running color, nothing is emitted for this frame
            logger.info("%s, keeping previous color", e)
            return None

        rgb = self.corrector.update(sample)
        packet = self.packet_builder.build(rgb)
        try:
            await self.sender.send(packet)
        except TransportFailure as e:
            logger.error("%s, dropping frame", e)
            return None
        return rgb

    async def run(self, frames=None):
        count = 0
        try:
            while frames is None or count < frames:
                await self.process_frame()
                count += 1
        finally:
            await self.close_source()
            self._executor.shutdown(wait=False)

    async def close_source(self):
        """Close the frame source on the thread that captured with it."""
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(self._executor, self.source.close),
                timeout=self.config.capture_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Closing the frame source timed out, it stays queued on the capture thread")


async def run_app(config, frames=None):
    sender = BleSender(config)
    source = MssFrameSource(config.capture_monitor)
    await sender.connect()
    try:
        logger.info("Start capturing frames and set light")
        await AmbientPipeline(config, source, sender).run(frames)
    finally:
        await sender.disconnect()


def main(argv=None):
    config, args = Config.from_args(argv)
    app_logger = configure_logging()
    try:
        config.validate()
    except ConfigError as e:
        app_logger.error("Invalid configuration: %s", e)
        return 2
    app_logger.setLevel(str(config.log_level).upper())

    logger.info("Starting up and initializing bluetooth connection to light")
    try:
        asyncio.run(run_app(config, args.frames))
    except TransportFailure as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Exiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
