"""
Tests for the Chip8Display module.

Covers XOR compositing, collision reporting and per-pixel wrapping.
"""
import unittest

from chip8_emulator.constants import DISPLAY_PIXELS, DISPLAY_WIDTH, PIXEL_ON
from chip8_emulator.systems.chip8.display import Chip8Display


class TestChip8Display(unittest.TestCase):
    """
    Test cases for the Chip8Display class.
    """

    def setUp(self):
        """Set up test fixtures."""
        self.display = Chip8Display()

    def test_draw_sets_pixels(self):
        collision = self.display.draw_sprite(2, 1, [0b10100000])
        self.assertFalse(collision)
        self.assertTrue(self.display.get_pixel(2, 1))
        self.assertFalse(self.display.get_pixel(3, 1))
        self.assertTrue(self.display.get_pixel(4, 1))
        self.assertEqual(self.display.count_active_pixels(), 2)

    def test_draw_is_self_inverse(self):
        """Drawing a sprite twice restores the screen and reports a collision."""
        sprite = [0xF0, 0x90, 0x90, 0x90, 0xF0]
        self.display.set_pixel(40, 20, True)
        before = self.display.get_buffer().copy()

        self.display.draw_sprite(10, 10, sprite)
        collision = self.display.draw_sprite(10, 10, sprite)

        self.assertTrue(collision)
        self.assertEqual(self.display.get_buffer().tolist(), before.tolist())

    def test_blank_sprite_has_no_effect(self):
        self.display.set_pixel(5, 5, True)
        collision = self.display.draw_sprite(4, 4, [0x00, 0x00, 0x00])
        self.assertFalse(collision)
        self.assertEqual(self.display.count_active_pixels(), 1)

    def test_horizontal_wrap(self):
        self.display.draw_sprite(63, 0, [0xFF])
        self.assertTrue(self.display.get_pixel(63, 0))
        for x in range(7):
            self.assertTrue(self.display.get_pixel(x, 0))
        self.assertFalse(self.display.get_pixel(7, 0))
        self.assertEqual(self.display.count_active_pixels(), 8)

    def test_vertical_wrap(self):
        self.display.draw_sprite(0, 31, [0x80, 0x80])
        self.assertTrue(self.display.get_pixel(0, 31))
        self.assertTrue(self.display.get_pixel(0, 0))

    def test_origin_wraps(self):
        self.display.draw_sprite(70, 40, [0x80])
        self.assertTrue(self.display.get_pixel(6, 8))

    def test_long_sprite_is_truncated(self):
        self.display.draw_sprite(0, 0, [0x80] * 20)
        self.assertEqual(self.display.count_active_pixels(), 15)

    def test_buffer_layout(self):
        """The buffer is row-major with 0/255 values."""
        self.display.set_pixel(1, 2, True)
        buffer = self.display.get_buffer()
        self.assertEqual(len(buffer), DISPLAY_PIXELS)
        self.assertEqual(buffer[2 * DISPLAY_WIDTH + 1], PIXEL_ON)
        self.assertEqual(set(buffer.tolist()), {0, PIXEL_ON})
        self.assertEqual(len(self.display.get_frame_buffer()), DISPLAY_PIXELS)

    def test_get_pixel_off_grid(self):
        self.assertFalse(self.display.get_pixel(-1, 0))
        self.assertFalse(self.display.get_pixel(DISPLAY_WIDTH, 0))

    def test_clear(self):
        self.display.draw_sprite(0, 0, [0xFF, 0xFF])
        self.display.clear()
        self.assertEqual(self.display.count_active_pixels(), 0)

    def test_render_text(self):
        self.display.set_pixel(0, 0, True)
        lines = self.display.render_text().splitlines()
        self.assertEqual(len(lines), 32)
        self.assertEqual(lines[0], "#" + "." * 63)

if __name__ == '__main__':
    unittest.main()
