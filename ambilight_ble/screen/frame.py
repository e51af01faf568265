import numpy as np

CHANNEL_ORDERS = ("BGRA", "RGBA")


class Frame:
    """
    A single captured screen frame.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        pixels: uint8 array of shape (height, width, 4), row-major
        channel_order: "BGRA" or "RGBA"
    """

    def __init__(self, width: int, height: int, pixels, channel_order: str = "RGBA"):
        """
        Raises:
            ValueError: If the buffer does not hold width * height four-channel pixels
        """
        if width <= 0 or height <= 0:
            raise ValueError("Frame dimensions must be positive")
        if channel_order not in CHANNEL_ORDERS:
            raise ValueError(f"Unsupported channel order: {channel_order}")

        pixels = np.asarray(pixels, dtype=np.uint8)
        if pixels.size != width * height * 4:
            raise ValueError(
                f"Pixel buffer holds {pixels.size} bytes, expected {width * height * 4}"
            )

        self.width = width
        self.height = height
        self.pixels = pixels.reshape(height, width, 4)
        self.channel_order = channel_order

    @classmethod
    def from_rgb(cls, rgb, alpha: int = 255) -> "Frame":
        """Build an opaque RGBA frame from an (H, W, 3) RGB array."""
        rgb = np.asarray(rgb, dtype=np.uint8)
        h, w = rgb.shape[:2]
        a = np.full((h, w, 1), alpha, dtype=np.uint8)
        return cls(w, h, np.concatenate([rgb, a], axis=2), "RGBA")

    def rgba(self) -> np.ndarray:
        if self.channel_order == "RGBA":
            return self.pixels
        # BGRA -> RGBA
        return self.pixels[..., [2, 1, 0, 3]]

    def rgb(self) -> np.ndarray:
        return self.rgba()[..., :3]

    def __len__(self) -> int:
        return self.width * self.height

    def __repr__(self) -> str:
        return f"Frame(width={self.width}, height={self.height}, order={self.channel_order})"
