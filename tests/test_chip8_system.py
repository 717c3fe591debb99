"""
Tests for the Chip8System facade and the SystemFactory.
"""
import unittest
import os
import tempfile

from chip8_emulator.analysis.state_recorder import StateRecorder
from chip8_emulator.constants import DISPLAY_PIXELS
from chip8_emulator.systems.chip8.chip8_system import Chip8System
from chip8_emulator.systems.system_factory import SystemFactory

# 6001 7001 1202: set V0 then increment it forever
COUNTER_ROM = bytes([0x60, 0x01, 0x70, 0x01, 0x12, 0x02])


class TestSystemFactory(unittest.TestCase):
    """
    Test cases for SystemFactory.
    """

    def test_create_chip8(self):
        system = SystemFactory.create_system("chip8", {"cycles_per_frame": 3, "seed": 7})
        self.assertIsInstance(system, Chip8System)
        self.assertEqual(system.cycles_per_frame, 3)
        self.assertEqual(system.cpu.seed, 7)

    def test_unknown_system(self):
        with self.assertRaises(ValueError):
            SystemFactory.create_system("nes")


class TestChip8System(unittest.TestCase):
    """
    Test cases for the Chip8System class.
    """

    def setUp(self):
        """Set up test fixtures."""
        self.system = SystemFactory.create_system("chip8", {"cycles_per_frame": 5})

    def test_load_rom_from_file(self):
        with tempfile.NamedTemporaryFile(suffix='.ch8', delete=False) as temp:
            temp.write(COUNTER_ROM)
            filename = temp.name

        try:
            self.assertTrue(self.system.load_rom(filename))
            self.assertEqual(self.system.memory.read_bytes(0x200, len(COUNTER_ROM)), COUNTER_ROM)
        finally:
            os.remove(filename)

    def test_load_missing_rom(self):
        self.assertFalse(self.system.load_rom("/nonexistent/game.ch8"))

    def test_cycle_requires_start(self):
        self.system.load_rom_bytes(COUNTER_ROM)
        self.system.cycle()
        self.assertEqual(self.system.cycle_count, 0)

        self.system.start()
        self.assertTrue(self.system.is_running())
        self.system.cycle()
        self.assertEqual(self.system.cycle_count, 1)

        self.system.stop()
        self.system.cycle()
        self.assertEqual(self.system.cycle_count, 1)

    def test_run_frame(self):
        self.system.load_rom_bytes(COUNTER_ROM)
        state = self.system.run_frame()
        self.assertEqual(self.system.cycle_count, 5)
        self.assertEqual(state["frame_count"], 1)
        # 6001, 7001, 1202, 7001, 1202
        self.assertEqual(self.system.cpu.V[0], 3)

    def test_run_frame_stops_on_halt(self):
        self.system.load_rom_bytes(bytes([0x00, 0x00]))
        self.system.run_frame()
        self.assertEqual(self.system.cycle_count, 1)
        self.assertTrue(self.system.cpu.halted)

    def test_consume_redraw(self):
        self.system.load_rom_bytes(COUNTER_ROM)
        self.assertTrue(self.system.consume_redraw())
        self.assertFalse(self.system.consume_redraw())

    def test_tone(self):
        # 6003 F018 1204
        self.system.load_rom_bytes(bytes([0x60, 0x03, 0xF0, 0x18, 0x12, 0x04]))
        self.system.run_frame()
        self.assertFalse(self.system.tone_requested)
        self.assertEqual(self.system.cpu.sound_timer, 0)

        self.system.load_rom_bytes(bytes([0x60, 0x09, 0xF0, 0x18, 0x12, 0x04]))
        self.system.run_frame()
        self.assertTrue(self.system.tone_requested)

    def test_translate_key(self):
        self.assertEqual(self.system.translate_key("q"), 0x4)
        self.assertEqual(self.system.translate_key("Q"), 0x4)
        self.assertEqual(self.system.translate_key("KeyV"), 0xF)
        self.assertEqual(self.system.translate_key("Digit1"), 0x1)
        self.assertEqual(self.system.translate_key("x"), 0x0)
        self.assertIsNone(self.system.translate_key("p"))

    def test_key_input_reaches_cpu(self):
        # F00A waits for a key into V0
        self.system.load_rom_bytes(bytes([0xF0, 0x0A]))
        self.system.run_frame()
        self.assertEqual(self.system.cpu.PC, 0x200)

        self.system.key_down(self.system.translate_key("v"))
        self.system.run_frame()
        self.assertEqual(self.system.cpu.V[0], 0xF)

    def test_state_recording(self):
        recorder = StateRecorder(max_history=100, compression_ratio=1)
        self.system.register_state_recorder(recorder)
        self.system.load_rom_bytes(COUNTER_ROM)
        self.system.run_frame()

        history = recorder.get_state_history()
        self.assertEqual(len(history), 5)
        self.assertEqual(history[0]["cycle"], 1)
        self.assertEqual(history[0]["opcode"], 0x6001)
        self.assertEqual(history[0]["registers"]["V0"], 1)
        self.assertEqual(history[-1]["pc"], 0x202)

    def test_system_state(self):
        self.system.load_rom_bytes(COUNTER_ROM)
        state = self.system.get_system_state()
        for key in ("cycle_count", "frame_count", "running", "healthy", "tone", "redraw",
                    "cpu_state", "display_state", "keypad_state", "memory_state"):
            self.assertIn(key, state)
        self.assertEqual(len(state["frame_buffer"]), DISPLAY_PIXELS)
        self.assertEqual(len(self.system.get_display_buffer()), DISPLAY_PIXELS)

    def test_font_table_protected_in_session(self):
        # A050 60AA F055: store V0 over the first glyph byte
        self.system.load_rom_bytes(bytes([0xA0, 0x50, 0x60, 0xAA, 0xF0, 0x55]))
        self.system.run_frame()
        self.assertTrue(self.system.memory.validate_integrity())
        self.assertEqual(self.system.cpu.error_count, 0)

    def test_reset(self):
        self.system.load_rom_bytes(COUNTER_ROM)
        self.system.start()
        self.system.run_frame()
        self.system.reset()
        self.assertFalse(self.system.running)
        self.assertEqual(self.system.cycle_count, 0)
        self.assertEqual(self.system.frame_count, 0)
        self.assertIn("Cycles: 0", self.system.get_stats())

if __name__ == '__main__':
    unittest.main()
