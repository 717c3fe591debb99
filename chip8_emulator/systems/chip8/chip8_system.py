# systems/chip8/chip8_system.py
from ...common.interfaces import System
from ...constants import (DEFAULT_CYCLES_PER_FRAME, DEFAULT_RNG_SEED, DISPLAY_WIDTH, DISPLAY_HEIGHT,
                          ROM_EXTENSIONS)
from ...system_configs import KEYMAP
from ...utils.error_handler import ErrorCategory, ErrorHandler, error_boundary, performance_log
from .cpu import Chip8CPU
from .memory import Chip8Memory
from .display import Chip8Display
from .keypad import Chip8Keypad
import numpy as np
import os
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("Chip8Emulator.System")

class Chip8System(System):
    """
    Host-facing CHIP-8 session.

    Wires memory, display, keypad and CPU together, gates stepping behind
    start/stop, and optionally records a state snapshot after every cycle.
    """

    def __init__(self, config: Dict[str, Any], error_handler: Optional[ErrorHandler] = None):
        self.config = config

        # Initialize components
        self.memory = Chip8Memory()
        self.display = Chip8Display(*config.get("resolution", (DISPLAY_WIDTH, DISPLAY_HEIGHT)))
        self.keypad = Chip8Keypad()
        self.cpu = Chip8CPU(self.memory, self.display, self.keypad,
                            seed=config.get("seed", DEFAULT_RNG_SEED),
                            error_handler=error_handler)

        self.cycles_per_frame = config.get("cycles_per_frame", DEFAULT_CYCLES_PER_FRAME)
        self.keymap = config.get("keymap", KEYMAP)

        # System state
        self.running = False
        self.frame_count = 0
        self.state_recorder = None

    @property
    def cycle_count(self) -> int:
        return self.cpu.cycle_count

    def register_state_recorder(self, recorder) -> None:
        self.state_recorder = recorder

    @error_boundary(ErrorCategory.INPUT, default=False)
    def load_rom(self, rom_path: str) -> bool:
        _, ext = os.path.splitext(rom_path)
        if ext.lower() not in ROM_EXTENSIONS:
            logger.warning(f"Unrecognized ROM extension '{ext}', loading anyway")

        with open(rom_path, 'rb') as f:
            rom_data = f.read()
        logger.info(f"Loading ROM: {rom_path}")
        return self.load_rom_bytes(rom_data)

    def load_rom_bytes(self, rom_data: bytes) -> bool:
        loaded = self.cpu.load_rom(rom_data)
        if loaded:
            self.frame_count = 0
        return loaded

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def reset(self) -> None:
        self.cpu.reset()
        self.running = False
        self.frame_count = 0

    def is_running(self) -> bool:
        return self.running and self.cpu.is_running()

    def cycle(self) -> None:
        """Run one CPU cycle if the session has been started."""
        if not self.running:
            return
        self.cpu.cycle()
        self._record_state()

    @performance_log(threshold_ms=50)
    def run_frame(self) -> dict:
        """Run ``cycles_per_frame`` cycles, regardless of start/stop."""
        for _ in range(self.cycles_per_frame):
            if self.cpu.halted:
                break
            self.cpu.cycle()
            self._record_state()

        self.frame_count += 1
        return self.get_system_state()

    def key_down(self, key: int) -> None:
        self.cpu.key_down(key)

    def key_up(self, key: int) -> None:
        self.cpu.key_up(key)

    def translate_key(self, name: str) -> Optional[int]:
        """Map a host key name ("q", "KeyQ", "Digit1") onto the keypad."""
        if name.startswith("Key") and len(name) == 4:
            name = name[3:]
        elif name.startswith("Digit") and len(name) == 6:
            name = name[5:]
        return self.keymap.get(name.lower())

    def consume_redraw(self) -> bool:
        """Return whether the display changed since the last call."""
        redraw = self.cpu.draw_flag
        self.cpu.draw_flag = False
        return redraw

    @property
    def tone_requested(self) -> bool:
        return self.cpu.tone_requested

    def get_display_buffer(self) -> np.ndarray:
        return self.cpu.get_display_buffer()

    def memory_dump(self, start: int, length: int) -> str:
        return self.cpu.memory_dump(start, length)

    def get_stats(self) -> str:
        return f"{self.cpu.get_stats()} | {self.memory.get_stats()}"

    def get_system_state(self) -> dict:
        """Get the current state of the entire system."""
        return {
            "cycle_count": self.cpu.cycle_count,
            "frame_count": self.frame_count,
            "running": self.is_running(),
            "healthy": self.cpu.is_healthy(),
            "tone": self.cpu.tone_requested,
            "redraw": self.cpu.draw_flag,
            "cpu_state": self.cpu.get_state(),
            "display_state": self.display.get_state(),
            "keypad_state": self.keypad.get_state(),
            "memory_state": self.memory.get_state(),
            "frame_buffer": self.display.get_frame_buffer(),
        }

    def _record_state(self) -> None:
        if self.state_recorder is None:
            return

        self.state_recorder.record_state({
            "cycle": self.cpu.cycle_count,
            "pc": self.cpu.PC,
            "opcode": self.cpu.last_instruction,
            "registers": self.cpu.get_registers(),
        })
