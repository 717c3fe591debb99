"""
Tests for the Chip8Keypad module.
"""
import unittest

from chip8_emulator.systems.chip8.keypad import Chip8Keypad


class TestChip8Keypad(unittest.TestCase):
    """
    Test cases for the Chip8Keypad class.
    """

    def setUp(self):
        """Set up test fixtures."""
        self.keypad = Chip8Keypad()

    def test_press_and_release(self):
        self.keypad.key_down(0xA)
        self.assertTrue(self.keypad.is_key_pressed(0xA))
        self.keypad.key_up(0xA)
        self.assertFalse(self.keypad.is_key_pressed(0xA))

    def test_latch_survives_release_and_is_consumed(self):
        self.keypad.key_down(3)
        self.keypad.key_up(3)
        self.assertEqual(self.keypad.get_key_pressed(), 3)
        self.assertIsNone(self.keypad.get_key_pressed())

    def test_latch_keeps_most_recent_key(self):
        self.keypad.key_down(1)
        self.keypad.key_down(0xF)
        self.assertEqual(self.keypad.get_key_pressed(), 0xF)

    def test_invalid_keys_are_ignored(self):
        self.keypad.key_down(16)
        self.keypad.key_up(-1)
        self.assertFalse(self.keypad.is_key_pressed(16))
        self.assertIsNone(self.keypad.get_key_pressed())

    def test_clear(self):
        self.keypad.key_down(5)
        self.keypad.clear()
        self.assertFalse(self.keypad.is_key_pressed(5))
        self.assertIsNone(self.keypad.last_key_pressed)

    def test_state(self):
        self.keypad.key_down(1)
        self.keypad.key_down(0xA)
        self.assertEqual(self.keypad.get_debug_state(), "Keys: 1 A | Last: A")
        self.assertEqual(self.keypad.get_state(), {"pressed": [1, 0xA], "last_key_pressed": 0xA})

if __name__ == '__main__':
    unittest.main()
