"""
packet_builder.py
Builds the 5-byte color command for the Bluetooth light.
"""
import numpy as np

COMMAND_HEADER = 0x01
COMMAND_TERMINATOR = 0x64  # fixed brightness byte


class PacketBuilder:
    def build(self, rgb):
        packet = np.zeros(5, dtype=np.uint8)
        packet[0] = COMMAND_HEADER
        packet[1:4] = np.clip(np.asarray(rgb, dtype=np.int64), 0, 255).astype(np.uint8)
        packet[4] = COMMAND_TERMINATOR
        return packet.tobytes()
