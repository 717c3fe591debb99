# systems/chip8/display.py
from ...common.interfaces import VideoProcessor
from ...constants import (DISPLAY_WIDTH, DISPLAY_HEIGHT, MAX_SPRITE_ROWS,
                          PIXEL_ON, PIXEL_OFF)
import numpy as np
import logging
import typing as t

logger = logging.getLogger("Chip8Emulator.Display")

class Chip8Display(VideoProcessor):
    """
    64x32 monochrome framebuffer with XOR sprite compositing.

    Pixels are stored as a (height, width) boolean array. Every coordinate
    wraps modulo the grid size, so there is no off-grid state.
    """

    def __init__(self, width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT):
        self.width = width
        self.height = height
        self.pixels = np.zeros((height, width), dtype=bool)

    def clear(self) -> None:
        self.pixels[:, :] = False

    def get_pixel(self, x: int, y: int) -> bool:
        if 0 <= x < self.width and 0 <= y < self.height:
            return bool(self.pixels[y, x])
        return False

    def set_pixel(self, x: int, y: int, value: bool) -> None:
        self.pixels[y % self.height, x % self.width] = bool(value)

    def draw_sprite(self, x: int, y: int, rows: t.Sequence[int]) -> bool:
        """
        XOR a sprite onto the grid.

        Each row is one byte, most significant bit leftmost. Rows and columns
        wrap independently per pixel, so a sprite crossing an edge continues
        on the opposite side.

        Args:
            x: Horizontal origin in pixels
            y: Vertical origin in pixels
            rows: Sprite bytes, at most 15 are used

        Returns:
            True if any lit pixel was turned off
        """
        if len(rows) > MAX_SPRITE_ROWS:
            logger.warning(f"Sprite has {len(rows)} rows, truncating to {MAX_SPRITE_ROWS}")
            rows = rows[:MAX_SPRITE_ROWS]
        if len(rows) == 0:
            return False

        bits = np.unpackbits(np.asarray(bytearray(rows), dtype=np.uint8)).reshape(len(rows), 8).astype(bool)
        ys = (y + np.arange(len(rows))) % self.height
        xs = (x + np.arange(8)) % self.width
        region = np.ix_(ys, xs)

        old = self.pixels[region]
        collision = bool(np.any(old & bits))
        self.pixels[region] = old ^ bits

        return collision

    def count_active_pixels(self) -> int:
        return int(np.count_nonzero(self.pixels))

    def get_buffer(self) -> np.ndarray:
        """Return a row-major uint8 buffer of width*height pixels (0 or 255)."""
        return np.where(self.pixels, PIXEL_ON, PIXEL_OFF).astype(np.uint8).ravel()

    def get_frame_buffer(self) -> bytes:
        return self.get_buffer().tobytes()

    def render_text(self, on: str = "#", off: str = ".") -> str:
        return "\n".join("".join(on if p else off for p in row) for row in self.pixels)

    def get_state(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "active_pixels": self.count_active_pixels(),
        }
