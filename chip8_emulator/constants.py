"""
Global constants for the CHIP-8 emulator.
"""

# Memory layout
MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
PROGRAM_END = MEMORY_SIZE
MAX_ROM_SIZE = PROGRAM_END - PROGRAM_START

FONTSET_START = 0x50
FONT_GLYPH_SIZE = 5
FONTSET_SIZE = 16 * FONT_GLYPH_SIZE

# Hexadecimal digit glyphs 0-F, 5 rows each (high nibble used)
FONTSET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])

# Display
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
DISPLAY_PIXELS = DISPLAY_WIDTH * DISPLAY_HEIGHT
MAX_SPRITE_ROWS = 15
PIXEL_ON = 255
PIXEL_OFF = 0

# CPU
NUM_REGISTERS = 16
FLAG_REGISTER = 0xF
STACK_SIZE = 16
NUM_KEYS = 16

# Soft-error policy
ERROR_HALT_THRESHOLD = 10
ERROR_HEALTH_THRESHOLD = 5

# Instruction synthesized when a fetch would run past the end of memory
FETCH_FALLBACK_INSTRUCTION = 0x1200

DEFAULT_RNG_SEED = 12345
DEFAULT_CYCLES_PER_FRAME = 10

# Performance constants
MAX_HISTORY_SIZE = 100000
ACCESS_LOG_INTERVAL = 10000

# File extensions
ROM_EXTENSIONS = ['.ch8', '.c8', '.rom', '.bin']
