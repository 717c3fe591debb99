"""
CHIP-8 CPU emulation.

The interpreter owns 16 8-bit registers (V0-VF), the 16-bit index register I,
the program counter, a 16-entry call stack and two 8-bit timers. Each call to
``cycle()`` fetches one 2-byte instruction, decodes it on the top nibble and
executes it.

Malformed programs never raise: invalid operands, addresses and opcodes are
soft errors that are counted while the offending instruction is clamped or
skipped. Ten soft errors halt the machine until the next reset.
"""

from ...common.interfaces import CPU
from ...constants import (MEMORY_SIZE, PROGRAM_START, NUM_REGISTERS, FLAG_REGISTER,
                          STACK_SIZE, ERROR_HALT_THRESHOLD, ERROR_HEALTH_THRESHOLD,
                          FETCH_FALLBACK_INSTRUCTION, DEFAULT_RNG_SEED)
from ...utils.error_handler import ErrorCategory, ErrorHandler
from .memory import Chip8Memory
from .display import Chip8Display
from .keypad import Chip8Keypad
from enum import Enum, auto
import numpy as np
import typing as t
import logging

logger = logging.getLogger("Chip8Emulator.CPU")

class ExecStatus(Enum):
    """Outcome of a single instruction handler."""
    APPLIED = auto()   # executed normally
    IGNORED = auto()   # no-op, not an error
    STALLED = auto()   # no forward progress, instruction retried next cycle
    REJECTED = auto()  # invalid, no effect, counted as a soft error
    HALTED = auto()    # machine stopped

class Chip8CPU(CPU):
    """
    Emulates the CHIP-8 virtual machine processor.

    The CPU drives the memory, display and keypad it is given (fresh ones are
    created when omitted) and exposes a redraw flag and a tone flag for the
    host after each cycle.
    """

    def __init__(self,
                 memory: t.Optional[Chip8Memory] = None,
                 display: t.Optional[Chip8Display] = None,
                 keypad: t.Optional[Chip8Keypad] = None,
                 seed: int = DEFAULT_RNG_SEED,
                 error_handler: t.Optional[ErrorHandler] = None):
        self.memory = memory if memory is not None else Chip8Memory()
        self.display = display if display is not None else Chip8Display()
        self.keypad = keypad if keypad is not None else Chip8Keypad()
        self.error_handler = error_handler

        self.seed = seed
        self.rng = np.random.default_rng(seed)

        # CPU registers
        self.V = [0] * NUM_REGISTERS
        self.I = 0x000
        self.PC = PROGRAM_START
        self.SP = 0
        self.stack = [0] * STACK_SIZE

        # Timers
        self.delay_timer = 0
        self.sound_timer = 0

        # Host-visible state
        self.draw_flag = False
        self.tone_requested = False
        self.halted = False
        self.error_count = 0
        self.error_breakdown = {category: 0 for category in
                                (ErrorCategory.BOUNDS, ErrorCategory.STRUCTURAL, ErrorCategory.DECODE)}
        self.cycle_count = 0
        self.last_instruction = 0x0000

        self._build_instruction_table()

        logger.debug("CHIP-8 CPU initialized")

    def _build_instruction_table(self):
        """Build the opcode family and sub-opcode lookup tables."""
        self.families = {
            0x0: self._op_0xxx,
            0x1: self._op_1nnn,
            0x2: self._op_2nnn,
            0x3: self._op_3xkk,
            0x4: self._op_4xkk,
            0x5: self._op_5xy0,
            0x6: self._op_6xkk,
            0x7: self._op_7xkk,
            0x8: self._op_8xyn,
            0x9: self._op_9xy0,
            0xA: self._op_annn,
            0xB: self._op_bnnn,
            0xC: self._op_cxkk,
            0xD: self._op_dxyn,
            0xE: self._op_exkk,
            0xF: self._op_fxkk,
        }

        # 8xyN register-register ALU
        self.alu_ops = {
            0x0: self._alu_ld,
            0x1: self._alu_or,
            0x2: self._alu_and,
            0x3: self._alu_xor,
            0x4: self._alu_add,
            0x5: self._alu_sub,
            0x6: self._alu_shr,
            0x7: self._alu_subn,
            0xE: self._alu_shl,
        }

        # FxKK timers, keypad, index and memory transfer
        self.misc_ops = {
            0x07: self._op_ld_vx_dt,
            0x0A: self._op_ld_vx_k,
            0x15: self._op_ld_dt_vx,
            0x18: self._op_ld_st_vx,
            0x1E: self._op_add_i_vx,
            0x29: self._op_ld_f_vx,
            0x33: self._op_ld_b_vx,
            0x55: self._op_ld_i_vx,
            0x65: self._op_ld_vx_i,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.V = [0] * NUM_REGISTERS
        self.I = 0x000
        self.PC = PROGRAM_START
        self.SP = 0
        self.stack = [0] * STACK_SIZE

        self.delay_timer = 0
        self.sound_timer = 0

        self.memory.reset()
        self.display.clear()
        self.keypad.clear()

        self.draw_flag = False
        self.tone_requested = False
        self.halted = False
        self.error_count = 0
        for category in self.error_breakdown:
            self.error_breakdown[category] = 0
        self.cycle_count = 0
        self.last_instruction = 0x0000

    def load_rom(self, rom_data: bytes) -> bool:
        """
        Reset the machine and load a program image at 0x200.

        A rejected image (empty or larger than the program area) leaves the
        machine exactly as it was.

        Args:
            rom_data: Program bytes

        Returns:
            True if the program was loaded
        """
        if not Chip8Memory.is_valid_rom_size(len(rom_data) if rom_data is not None else 0):
            return False

        self.reset()
        self.memory.load_rom(rom_data)
        self.draw_flag = True
        return True

    # ------------------------------------------------------------------
    # Fetch / decode / execute
    # ------------------------------------------------------------------

    def cycle(self) -> None:
        """Run one fetch/decode/execute step followed by a timer tick."""
        # Only a cycle that reaches the timer tick may request a tone
        self.tone_requested = False

        if self.halted:
            return

        if self.error_count >= ERROR_HALT_THRESHOLD:
            self._halt(f"Error threshold reached ({self.error_count} errors)")
            return

        self.cycle_count += 1

        if not self._validate_pc():
            self._check_error_threshold()
            return

        instruction = self._fetch()
        self.last_instruction = instruction

        status = self.execute(instruction)
        logger.debug(f"0x{self.PC - 2:03X}: {instruction:04X} -> {status.name}")

        self._update_timers()
        self._check_error_threshold()

    def execute(self, instruction: int) -> ExecStatus:
        """
        Decode and execute a single 16-bit instruction.

        Args:
            instruction: Raw instruction word

        Returns:
            Status reported by the instruction handler
        """
        family = (instruction & 0xF000) >> 12
        handler = self.families.get(family)
        if handler is None:
            return self._reject(ErrorCategory.DECODE, f"Unknown instruction {instruction:04X}")
        return handler(instruction)

    def _validate_pc(self) -> bool:
        """Correct an invalid PC. Returns False if the cycle must be aborted."""
        if not PROGRAM_START <= self.PC < MEMORY_SIZE:
            self._soft_error(ErrorCategory.STRUCTURAL,
                             f"PC out of program area: 0x{self.PC:04X}, reset to 0x{PROGRAM_START:03X}")
            self.PC = PROGRAM_START
            return False

        if self.PC % 2 != 0:
            self._soft_error(ErrorCategory.STRUCTURAL, f"Odd PC: 0x{self.PC:04X}")
            self.PC &= 0xFFFE
            return False

        return True

    def _fetch(self) -> int:
        if self.PC + 1 >= MEMORY_SIZE:
            self._soft_error(ErrorCategory.BOUNDS, f"Fetch past end of memory at 0x{self.PC:04X}")
            self._halt("Fetch past end of memory")
            return FETCH_FALLBACK_INSTRUCTION

        high = self.memory.read_byte(self.PC)
        low = self.memory.read_byte(self.PC + 1)
        self.PC += 2
        return (high << 8) | low

    def _update_timers(self) -> None:
        if self.delay_timer > 0:
            self.delay_timer -= 1

        self.tone_requested = self.sound_timer > 0
        if self.sound_timer > 0:
            self.sound_timer -= 1

    # ------------------------------------------------------------------
    # Error bookkeeping
    # ------------------------------------------------------------------

    def _soft_error(self, category: ErrorCategory, message: str) -> None:
        self.error_count += 1
        self.error_breakdown[category] = self.error_breakdown.get(category, 0) + 1

        if self.error_handler is not None:
            self.error_handler.log_warning(
                message, category=category,
                context={"pc": self.PC, "instruction": self.last_instruction, "cycle": self.cycle_count})
        else:
            logger.warning(f"{message} ({category.name})")

    def _reject(self, category: ErrorCategory, message: str) -> ExecStatus:
        self._soft_error(category, message)
        return ExecStatus.REJECTED

    def _halt(self, reason: str) -> ExecStatus:
        self.halted = True
        logger.info(f"CPU halted: {reason}")
        return ExecStatus.HALTED

    def _check_error_threshold(self) -> None:
        if not self.halted and self.error_count >= ERROR_HALT_THRESHOLD:
            self._halt(f"Error threshold reached ({self.error_count} errors)")

    @staticmethod
    def is_valid_program_address(address: int) -> bool:
        return PROGRAM_START <= address < MEMORY_SIZE and address % 2 == 0

    @staticmethod
    def _decode_xkk(instruction: int) -> t.Tuple[int, int]:
        return (instruction & 0x0F00) >> 8, instruction & 0x00FF

    @staticmethod
    def _decode_xy(instruction: int) -> t.Tuple[int, int]:
        return (instruction & 0x0F00) >> 8, (instruction & 0x00F0) >> 4

    @staticmethod
    def _valid_register(*indexes: int) -> bool:
        return all(0 <= i < NUM_REGISTERS for i in indexes)

    def _skip_if(self, condition: bool) -> ExecStatus:
        if condition:
            self.PC += 2
        return ExecStatus.APPLIED

    # ------------------------------------------------------------------
    # Instruction families
    # ------------------------------------------------------------------

    def _op_0xxx(self, instruction: int) -> ExecStatus:
        if instruction == 0x00E0:  # CLS
            self.display.clear()
            self.draw_flag = True
            return ExecStatus.APPLIED

        if instruction == 0x00EE:  # RET
            if self.SP == 0:
                return self._halt("Stack underflow on return")
            self.SP -= 1
            self.PC = self.stack[self.SP]
            if not self.is_valid_program_address(self.PC):
                return self._halt(f"Invalid return address 0x{self.PC:04X}")
            return ExecStatus.APPLIED

        if instruction == 0x0000:
            return self._halt("Halt instruction")

        # 0nnn machine-code routine calls are not supported by interpreters
        logger.debug(f"Ignoring SYS {instruction:04X}")
        return ExecStatus.IGNORED

    def _op_1nnn(self, instruction: int) -> ExecStatus:
        address = instruction & 0x0FFF
        if not self.is_valid_program_address(address):
            return self._reject(ErrorCategory.STRUCTURAL, f"Invalid jump target 0x{address:03X}")
        self.PC = address
        return ExecStatus.APPLIED

    def _op_2nnn(self, instruction: int) -> ExecStatus:
        address = instruction & 0x0FFF
        if not self.is_valid_program_address(address):
            return self._reject(ErrorCategory.STRUCTURAL, f"Invalid call target 0x{address:03X}")
        if self.SP >= STACK_SIZE:
            return self._reject(ErrorCategory.STRUCTURAL, "Stack overflow on call")

        self.stack[self.SP] = self.PC
        self.SP += 1
        self.PC = address
        return ExecStatus.APPLIED

    def _op_3xkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")
        return self._skip_if(self.V[x] == kk)

    def _op_4xkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")
        return self._skip_if(self.V[x] != kk)

    def _op_5xy0(self, instruction: int) -> ExecStatus:
        x, y = self._decode_xy(instruction)
        if not self._valid_register(x, y):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid registers V{x}, V{y}")
        return self._skip_if(self.V[x] == self.V[y])

    def _op_9xy0(self, instruction: int) -> ExecStatus:
        x, y = self._decode_xy(instruction)
        if not self._valid_register(x, y):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid registers V{x}, V{y}")
        return self._skip_if(self.V[x] != self.V[y])

    def _op_6xkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")
        self.V[x] = kk
        return ExecStatus.APPLIED

    def _op_7xkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")
        self.V[x] = (self.V[x] + kk) & 0xFF
        return ExecStatus.APPLIED

    def _op_8xyn(self, instruction: int) -> ExecStatus:
        x, y = self._decode_xy(instruction)
        if not self._valid_register(x, y):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid registers V{x}, V{y}")

        operation = self.alu_ops.get(instruction & 0x000F)
        if operation is None:
            return self._reject(ErrorCategory.DECODE, f"Unknown instruction {instruction:04X}")
        operation(x, y)
        return ExecStatus.APPLIED

    def _op_annn(self, instruction: int) -> ExecStatus:
        address = instruction & 0x0FFF
        if address >= MEMORY_SIZE:
            return self._reject(ErrorCategory.BOUNDS, f"Index out of range 0x{address:04X}")
        self.I = address
        return ExecStatus.APPLIED

    def _op_bnnn(self, instruction: int) -> ExecStatus:
        target = self.V[0] + (instruction & 0x0FFF)
        if not self.is_valid_program_address(target):
            return self._reject(ErrorCategory.STRUCTURAL,
                                f"Invalid jump V0+nnn: V0={self.V[0]:02X} + {instruction & 0x0FFF:03X} = {target:04X}")
        self.PC = target
        return ExecStatus.APPLIED

    def _op_cxkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")
        self.V[x] = int(self.rng.integers(0, 256)) & kk
        return ExecStatus.APPLIED

    def _op_dxyn(self, instruction: int) -> ExecStatus:
        x, y = self._decode_xy(instruction)
        n = instruction & 0x000F
        if not self._valid_register(x, y):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid registers V{x}, V{y}")

        if n == 0:
            logger.debug("DRW with height 0 ignored")
            return ExecStatus.IGNORED

        if self.I + n > MEMORY_SIZE:
            return self._reject(ErrorCategory.BOUNDS, f"Sprite read past end of memory: I=0x{self.I:04X}, n={n}")

        sprite = self.memory.read_bytes(self.I, n)
        collision = self.display.draw_sprite(self.V[x], self.V[y], sprite)
        self.V[FLAG_REGISTER] = 1 if collision else 0
        self.draw_flag = True
        return ExecStatus.APPLIED

    def _op_exkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")
        if kk not in (0x9E, 0xA1):
            return self._reject(ErrorCategory.DECODE, f"Unknown instruction {instruction:04X}")

        key = self.V[x]
        if key > 0xF:
            logger.debug(f"Invalid key 0x{key:02X} in V{x:X}")
            return ExecStatus.IGNORED

        pressed = self.keypad.is_key_pressed(key)
        return self._skip_if(pressed if kk == 0x9E else not pressed)

    def _op_fxkk(self, instruction: int) -> ExecStatus:
        x, kk = self._decode_xkk(instruction)
        if not self._valid_register(x):
            return self._reject(ErrorCategory.BOUNDS, f"Invalid register V{x}")

        operation = self.misc_ops.get(kk)
        if operation is None:
            return self._reject(ErrorCategory.DECODE, f"Unknown instruction {instruction:04X}")
        return operation(x)

    # 8xyN

    def _alu_ld(self, x: int, y: int) -> None:
        self.V[x] = self.V[y]

    def _alu_or(self, x: int, y: int) -> None:
        self.V[x] |= self.V[y]

    def _alu_and(self, x: int, y: int) -> None:
        self.V[x] &= self.V[y]

    def _alu_xor(self, x: int, y: int) -> None:
        self.V[x] ^= self.V[y]

    def _alu_add(self, x: int, y: int) -> None:
        total = self.V[x] + self.V[y]
        self.V[FLAG_REGISTER] = 1 if total > 0xFF else 0
        self.V[x] = total & 0xFF

    def _alu_sub(self, x: int, y: int) -> None:
        vx, vy = self.V[x], self.V[y]
        self.V[FLAG_REGISTER] = 1 if vx >= vy else 0
        self.V[x] = (vx - vy) & 0xFF

    def _alu_shr(self, x: int, y: int) -> None:
        vx = self.V[x]
        self.V[FLAG_REGISTER] = vx & 0x01
        self.V[x] = vx >> 1

    def _alu_subn(self, x: int, y: int) -> None:
        vx, vy = self.V[x], self.V[y]
        self.V[FLAG_REGISTER] = 1 if vy >= vx else 0
        self.V[x] = (vy - vx) & 0xFF

    def _alu_shl(self, x: int, y: int) -> None:
        vx = self.V[x]
        self.V[FLAG_REGISTER] = (vx & 0x80) >> 7
        self.V[x] = (vx << 1) & 0xFF

    # FxKK

    def _op_ld_vx_dt(self, x: int) -> ExecStatus:
        self.V[x] = self.delay_timer
        return ExecStatus.APPLIED

    def _op_ld_vx_k(self, x: int) -> ExecStatus:
        key = self.keypad.get_key_pressed()
        if key is None:
            # Rewind so the same instruction runs again next cycle
            self.PC -= 2
            return ExecStatus.STALLED
        self.V[x] = key
        return ExecStatus.APPLIED

    def _op_ld_dt_vx(self, x: int) -> ExecStatus:
        self.delay_timer = self.V[x]
        return ExecStatus.APPLIED

    def _op_ld_st_vx(self, x: int) -> ExecStatus:
        self.sound_timer = self.V[x]
        return ExecStatus.APPLIED

    def _op_add_i_vx(self, x: int) -> ExecStatus:
        total = self.I + self.V[x]
        if total >= MEMORY_SIZE:
            logger.debug(f"ADD I, V{x:X} wrapped: 0x{self.I:04X} + {self.V[x]:02X}")
        self.I = total & 0x0FFF
        return ExecStatus.APPLIED

    def _op_ld_f_vx(self, x: int) -> ExecStatus:
        self.I = self.memory.get_font_address(self.V[x] & 0x0F)
        return ExecStatus.APPLIED

    def _op_ld_b_vx(self, x: int) -> ExecStatus:
        if self.I + 2 >= MEMORY_SIZE:
            return self._reject(ErrorCategory.BOUNDS, f"BCD store past end of memory: I=0x{self.I:04X}")
        value = self.V[x]
        self.memory.write_byte(self.I, value // 100)
        self.memory.write_byte(self.I + 1, (value // 10) % 10)
        self.memory.write_byte(self.I + 2, value % 10)
        return ExecStatus.APPLIED

    def _op_ld_i_vx(self, x: int) -> ExecStatus:
        if self.I + x >= MEMORY_SIZE:
            return self._reject(ErrorCategory.BOUNDS, f"Register store past end of memory: I=0x{self.I:04X}, x={x}")
        for reg in range(x + 1):
            self.memory.write_byte(self.I + reg, self.V[reg])
        return ExecStatus.APPLIED

    def _op_ld_vx_i(self, x: int) -> ExecStatus:
        if self.I + x >= MEMORY_SIZE:
            return self._reject(ErrorCategory.BOUNDS, f"Register load past end of memory: I=0x{self.I:04X}, x={x}")
        for reg in range(x + 1):
            self.V[reg] = self.memory.read_byte(self.I + reg)
        return ExecStatus.APPLIED

    # ------------------------------------------------------------------
    # Host interface
    # ------------------------------------------------------------------

    def key_down(self, key: int) -> None:
        self.keypad.key_down(key)

    def key_up(self, key: int) -> None:
        self.keypad.key_up(key)

    def get_display_buffer(self) -> np.ndarray:
        return self.display.get_buffer()

    def is_healthy(self) -> bool:
        return (not self.halted
                and self.error_count < ERROR_HEALTH_THRESHOLD
                and self.SP < STACK_SIZE)

    def is_running(self) -> bool:
        return not self.halted and self.is_healthy()

    def get_state(self) -> dict:
        return {
            "V": list(self.V),
            "I": self.I,
            "PC": self.PC,
            "SP": self.SP,
            "stack": list(self.stack[:self.SP]),
            "DT": self.delay_timer,
            "ST": self.sound_timer,
            "halted": self.halted,
            "error_count": self.error_count,
            "cycles": self.cycle_count,
            "last_instruction": self.last_instruction,
        }

    def get_registers(self) -> dict:
        """Flat register snapshot keyed by register name."""
        registers = {f"V{i:X}": value for i, value in enumerate(self.V)}
        registers.update({"I": self.I, "PC": self.PC, "SP": self.SP,
                          "DT": self.delay_timer, "ST": self.sound_timer})
        return registers

    def get_stats(self) -> str:
        return (f"Cycles: {self.cycle_count} | Errors: {self.error_count} | "
                f"Halted: {self.halted} | Stack: {self.SP}/{STACK_SIZE}")

    def get_debug_info(self) -> str:
        registers = " ".join(f"{v:02X}" for v in self.V)
        return (f"PC: 0x{self.PC:04X} | I: 0x{self.I:04X} | SP: {self.SP} | "
                f"DT: {self.delay_timer} | ST: {self.sound_timer} | V0-F: [{registers}] | "
                f"Cycles: {self.cycle_count} | Err: {self.error_count}")

    def memory_dump(self, start: int, length: int) -> str:
        return self.memory.hex_dump(start, length)
