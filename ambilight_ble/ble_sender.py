"""
ble_sender.py
Sends color commands to the Bluetooth light over its control characteristic.
"""

import asyncio
import logging

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from ambilight_ble.errors import TransportFailure

logger = logging.getLogger(__name__)


class BleSender:
    def __init__(self, config):
        self.config = config
        self.client = None
        self.characteristic = None

    async def connect(self):
        """
        Scan for the configured light, connect and locate its control characteristic.
        Raises:
            TransportFailure: If the light or the characteristic can not be found
        """
        address = self.config.light_address
        logger.info("Waiting for bluetooth light %s to be discovered...", address)
        try:
            device = await BleakScanner.find_device_by_address(address, timeout=self.config.scan_timeout_s)
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise TransportFailure(f"Scanning for {address} failed: {e}") from e
        if device is None:
            raise TransportFailure(f"Light {address} not found within {self.config.scan_timeout_s}s")
        logger.info("Found light at %s", device)

        self.client = BleakClient(device)
        try:
            await self.client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise TransportFailure(f"Connecting to {address} failed: {e}") from e

        uuid = self.config.light_control_uuid
        for service in self.client.services:
            for char in service.characteristics:
                logger.debug("Found characteristic in light: %s %s", char.uuid, char.properties)
                if char.uuid.lower() == uuid:
                    self.characteristic = char

        if self.characteristic is None:
            await self.disconnect()
            raise TransportFailure(f"Light {address} has no control characteristic {uuid}")
        logger.info("Connected, control characteristic %s", uuid)

    async def send(self, packet):
        """
        Write without response, retrying with exponential backoff.
        Raises:
            TransportFailure: once all retries are exhausted
        """
        if self.client is None or self.characteristic is None:
            raise TransportFailure("Light is not connected")

        attempts = self.config.write_retries + 1
        for attempt in range(attempts):
            try:
                await asyncio.wait_for(
                    self.client.write_gatt_char(self.characteristic, packet, response=False),
                    timeout=self.config.write_timeout_s,
                )
                return
            except (BleakError, asyncio.TimeoutError, OSError) as e:
                if attempt == attempts - 1:
                    raise TransportFailure(f"Write failed after {attempts} attempts: {e!r}") from e
                delay = self.config.write_backoff_s * (2 ** attempt)
                logger.warning("Write failed (%r), retrying in %.3fs", e, delay)
                await asyncio.sleep(delay)

    async def disconnect(self):
        if self.client is not None:
            try:
                await self.client.disconnect()
            except BleakError as e:
                logger.warning("Disconnect failed: %s", e)
            self.client = None
            self.characteristic = None
