"""
CHIP-8 memory system implementation.

The CHIP-8 address space is a flat 4KB array:
- System area (0x000-0x04F)
- Hexadecimal font glyphs (0x050-0x09F, write-protected)
- Free system area (0x0A0-0x1FF)
- Program area (0x200-0xFFF), where ROMs are loaded

Accessors never raise: out-of-range addresses are logged and ignored so a
single malformed instruction cannot take down the session.
"""

from ...common.interfaces import Memory
from ...constants import (MEMORY_SIZE, PROGRAM_START, MAX_ROM_SIZE, FONTSET,
                          FONTSET_START, FONTSET_SIZE, FONT_GLYPH_SIZE,
                          ACCESS_LOG_INTERVAL)
import numpy as np
import logging
from typing import Dict, Any, List, Tuple

logger = logging.getLogger("Chip8Emulator.Memory")

class Chip8Memory(Memory):
    """
    Emulates the 4KB CHIP-8 RAM with a write-protected font table.
    """

    def __init__(self):
        self.ram = bytearray(MEMORY_SIZE)

        # Half-open (start, end) ranges rejected by write_byte
        self.write_protected_zones: List[Tuple[int, int]] = [
            (FONTSET_START, FONTSET_START + FONTSET_SIZE)
        ]

        self.access_count = 0

        self.load_fontset()
        logger.debug("CHIP-8 memory system initialized")

    def clear(self) -> None:
        """Zero the whole address space, font table included."""
        self.ram[:] = bytes(MEMORY_SIZE)
        self.access_count = 0

    def load_fontset(self) -> None:
        """Write the glyph table, bypassing write protection."""
        self.ram[FONTSET_START:FONTSET_START + FONTSET_SIZE] = FONTSET

    def reset(self) -> None:
        """Reset the memory to initial state."""
        self.clear()
        self.load_fontset()

    def load_rom(self, rom_data: bytes) -> bool:
        """
        Load a ROM into the program area.

        Args:
            rom_data: ROM data as bytes

        Returns:
            True if loaded, False if the payload was empty or too large
        """
        if not self.is_valid_rom_size(len(rom_data) if rom_data is not None else 0):
            return False

        self.ram[PROGRAM_START:MEMORY_SIZE] = bytes(MEMORY_SIZE - PROGRAM_START)
        self.ram[PROGRAM_START:PROGRAM_START + len(rom_data)] = rom_data

        logger.info(f"ROM loaded: {len(rom_data)} bytes at 0x{PROGRAM_START:03X}")
        return True

    @staticmethod
    def is_valid_rom_size(size: int) -> bool:
        """Check a ROM size against the program area."""
        if size == 0:
            logger.error("No ROM data provided")
            return False
        if size > MAX_ROM_SIZE:
            logger.error(f"ROM size {size} exceeds maximum of {MAX_ROM_SIZE} bytes")
            return False
        return True

    def read_byte(self, address: int) -> int:
        """
        Read a byte from the specified address.

        Args:
            address: Memory address

        Returns:
            Byte value at address, or 0 if out of range
        """
        if not 0 <= address < MEMORY_SIZE:
            logger.warning(f"Read out of bounds: 0x{address:04X} >= 0x{MEMORY_SIZE:04X}")
            return 0

        if address >= PROGRAM_START:
            self.access_count += 1
            if self.access_count % ACCESS_LOG_INTERVAL == 0:
                logger.debug(f"{self.access_count} memory accesses")

        return self.ram[address]

    def write_byte(self, address: int, value: int) -> None:
        """
        Write a byte to the specified address.

        Args:
            address: Memory address
            value: Byte value to write
        """
        if not 0 <= address < MEMORY_SIZE:
            logger.warning(f"Write out of bounds: 0x{address:04X} >= 0x{MEMORY_SIZE:04X}")
            return

        for start, end in self.write_protected_zones:
            if start <= address < end:
                logger.warning(f"Write to protected zone rejected: 0x{address:04X} "
                               f"(zone 0x{start:04X}-0x{end:04X})")
                return

        if FONTSET_START + FONTSET_SIZE <= address < PROGRAM_START:
            logger.debug(f"Write to system area: 0x{address:04X}")

        self.ram[address] = value & 0xFF
        self.access_count += 1

    def read_bytes(self, address: int, count: int) -> bytes:
        """
        Read consecutive bytes.

        Returns all zeros, rather than a partial read, when the range does not
        fit in memory.
        """
        if address < 0 or address + count > MEMORY_SIZE:
            logger.warning(f"Multi-byte read out of bounds: 0x{address:04X}+{count} > 0x{MEMORY_SIZE:04X}")
            return bytes(count)

        return bytes(self.read_byte(address + i) for i in range(count))

    def write_bytes(self, address: int, data: bytes) -> bool:
        """
        Write consecutive bytes. Nothing is written if the range does not fit.
        """
        if address < 0 or address + len(data) > MEMORY_SIZE:
            logger.warning(f"Multi-byte write out of bounds: 0x{address:04X}+{len(data)} > 0x{MEMORY_SIZE:04X}")
            return False

        for i, byte in enumerate(data):
            self.write_byte(address + i, byte)
        return True

    def get_font_address(self, digit: int) -> int:
        """
        Get the address of the glyph for a hexadecimal digit.

        Args:
            digit: Digit 0x0-0xF; anything larger falls back to glyph 0

        Returns:
            Address of the first glyph row
        """
        if not 0 <= digit <= 0xF:
            logger.warning(f"Invalid font digit 0x{digit:02X}, using 0")
            return FONTSET_START

        return FONTSET_START + digit * FONT_GLYPH_SIZE

    # Diagnostics

    def count_non_zero_bytes(self, start: int, end: int) -> int:
        return int(np.count_nonzero(np.frombuffer(bytes(self.ram[start:end]), dtype=np.uint8)))

    def get_stats(self) -> str:
        program_bytes = self.count_non_zero_bytes(PROGRAM_START, MEMORY_SIZE)
        return (f"Memory: {program_bytes}B program, {FONTSET_SIZE}B fonts, "
                f"{self.access_count} total accesses")

    def hex_dump(self, start: int, length: int) -> str:
        """
        Produce a hex/ASCII dump of a memory range, 16 bytes per line.

        Args:
            start: First address
            length: Number of bytes (clipped to the end of memory)

        Returns:
            Multi-line dump string
        """
        start = max(0, start)
        end = min(start + length, MEMORY_SIZE)
        if end <= start:
            return f"Memory dump 0x{start:04X}: empty range\n"

        lines = [f"Memory dump 0x{start:04X}-0x{end - 1:04X}:"]
        for addr in range(start, end, 16):
            chunk = self.ram[addr:min(addr + 16, end)]
            hex_part = " ".join(f"{b:02X}" for b in chunk).ljust(16 * 3 - 1)
            ascii_part = "".join(chr(b) if 32 <= b <= 126 else "." for b in chunk).ljust(16)
            lines.append(f"{addr:04X}: {hex_part}  |{ascii_part}|")

        return "\n".join(lines) + "\n"

    def validate_integrity(self) -> bool:
        """Check that the font table still matches the built-in glyphs."""
        valid = True
        for i, expected in enumerate(FONTSET):
            actual = self.ram[FONTSET_START + i]
            if actual != expected:
                logger.error(f"Font corrupted at index {i}: expected 0x{expected:02X}, found 0x{actual:02X}")
                valid = False

        if valid:
            logger.debug("Memory integrity verified")
        return valid

    def get_zone(self, address: int) -> str:
        if not 0 <= address < MEMORY_SIZE:
            return "out of bounds"
        if address < FONTSET_START:
            return "system"
        if address < FONTSET_START + FONTSET_SIZE:
            return "fonts"
        if address < PROGRAM_START:
            return "free"
        return "program"

    def get_address_info(self, address: int) -> str:
        if not 0 <= address < MEMORY_SIZE:
            return f"0x{address:04X}: OUT OF BOUNDS"
        return f"0x{address:04X}: {self.get_zone(address)} = 0x{self.ram[address]:02X}"

    def get_state(self) -> Dict[str, Any]:
        return {
            "size": MEMORY_SIZE,
            "access_count": self.access_count,
            "program_bytes": self.count_non_zero_bytes(PROGRAM_START, MEMORY_SIZE),
            "protected_zones": list(self.write_protected_zones),
        }
