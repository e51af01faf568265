"""soak_test_synthetic_frames.py

Long-run synthetic stress test for the frame -> color -> packet pipeline.
- Generates deterministic synthetic frames (no real screen capture)
- Runs every color sampling strategy plus color correction
- Validates packet invariants (no Bluetooth device needed)

Usage:
  python tools/soak_test_synthetic_frames.py --seconds 60 --fps 25
"""

import argparse
import time

import numpy as np

from ambilight_ble.color_corrector import ColorCorrector
from ambilight_ble.color_extractor import MostDominant, SquaredAverage, Vibrancy, extract_color
from ambilight_ble.config import Config
from ambilight_ble.errors import InsufficientSamples
from ambilight_ble.packet_builder import PacketBuilder
from ambilight_ble.screen.frame import Frame


def make_frame_pattern(t: float, w: int = 320, h: int = 180) -> Frame:
    """Cycle through patterns that stress the quantizer and vibrancy selection."""
    phase = int(t) % 10
    img = np.zeros((h, w, 3), dtype=np.uint8)

    if phase in (0, 1):
        # Bright saturated primaries
        colors = ([255, 0, 0], [0, 255, 0], [0, 0, 255])
        img[:, :, :] = np.array(colors[int(t * 2) % len(colors)], dtype=np.uint8)
    elif phase == 2:
        # Pure white: every pixel is boring
        img[:, :, :] = 255
    elif phase == 3:
        # Very dark scene
        img[:, :, :] = 2
    elif phase in (4, 5):
        # Split regions: dark saturated, gray, white
        x0 = w // 3
        x1 = (2 * w) // 3
        img[:, :x0, :] = np.array([0, 128, 0], dtype=np.uint8)
        img[:, x0:x1, :] = np.array([40, 40, 40], dtype=np.uint8)
        img[:, x1:, :] = np.array([255, 255, 255], dtype=np.uint8)
    elif phase in (6, 7):
        # Smooth gradient sweep
        x = np.linspace(0, 1, w, dtype=np.float32)
        img[:, :, 0] = (255 * (0.5 + 0.5 * np.sin(2 * np.pi * (x + 0.05 * t))))[None, :]
        img[:, :, 1] = (255 * (0.5 + 0.5 * np.sin(2 * np.pi * (x + 0.05 * t + 0.33))))[None, :]
        img[:, :, 2] = (255 * (0.5 + 0.5 * np.sin(2 * np.pi * (x + 0.05 * t + 0.66))))[None, :]
    else:
        # Random-but-deterministic noise block
        rng = np.random.default_rng(int(t * 1000) & 0xFFFF)
        img = rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)

    return Frame.from_rgb(img)


def validate_packet(packet_bytes: bytes) -> None:
    p = np.frombuffer(packet_bytes, dtype=np.uint8)
    if len(p) != 5 or int(p[0]) != 0x01 or int(p[4]) != 0x64:
        raise AssertionError(f"Bad packet framing: {list(p)}")


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--seconds', type=float, default=60.0)
    ap.add_argument('--fps', type=float, default=25.0)
    args = ap.parse_args()

    cfg = Config()
    strategies = (SquaredAverage(cfg.sample_rate), MostDominant(2, True), Vibrancy(cfg.color_count, cfg.quality))
    correctors = [ColorCorrector(cfg) for _ in strategies]
    builder = PacketBuilder()

    dt = 1.0 / max(args.fps, 1e-3)
    end = time.time() + args.seconds

    packets = 0
    skipped = 0
    last_print = time.time()

    while time.time() < end:
        now = time.time()
        t = args.seconds - (end - now)
        frame = make_frame_pattern(t)

        for strategy, corrector in zip(strategies, correctors):
            try:
                sample = extract_color(frame, strategy)
            except InsufficientSamples:
                skipped += 1
                continue
            if not np.all(np.isfinite(sample)) or np.any(sample < 0) or np.any(sample > 1):
                raise AssertionError(f"{strategy} produced {sample}")
            validate_packet(builder.build(corrector.update(sample)))
            packets += 1

        if now - last_print > 5.0:
            colors = [list(np.round(c.running_color * 255).astype(int)) for c in correctors]
            print(f"t={t:6.1f}s colors={colors} packets={packets} skipped={skipped}")
            last_print = now

        time.sleep(dt)

    print(f"DONE. seconds={args.seconds} fps={args.fps} total_packets={packets} skipped={skipped}")


if __name__ == '__main__':
    main()
