"""
Configuration data for the emulated CHIP-8 machine.
"""

from .constants import (MEMORY_SIZE, PROGRAM_START, FONTSET_START, FONTSET_SIZE,
                        DISPLAY_WIDTH, DISPLAY_HEIGHT, STACK_SIZE,
                        DEFAULT_RNG_SEED, DEFAULT_CYCLES_PER_FRAME)

# Host keyboard layout, row by row, onto the hexadecimal keypad:
#   1 2 3 4      1 2 3 C
#   Q W E R  ->  4 5 6 D
#   A S D F      7 8 9 E
#   Z X C V      A 0 B F
KEYMAP = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "q": 0x4, "w": 0x5, "e": 0x6, "r": 0xD,
    "a": 0x7, "s": 0x8, "d": 0x9, "f": 0xE,
    "z": 0xA, "x": 0x0, "c": 0xB, "v": 0xF,
}

SYSTEM_CONFIGS = {
    "chip8": {
        "cpu_type": "chip8",
        "memory_size": MEMORY_SIZE,
        "memory_map": {
            "system": {"start": 0x000, "end": FONTSET_START - 1},
            "fontset": {"start": FONTSET_START, "end": FONTSET_START + FONTSET_SIZE - 1,
                        "write_protected": True},
            "free": {"start": FONTSET_START + FONTSET_SIZE, "end": PROGRAM_START - 1},
            "program": {"start": PROGRAM_START, "end": MEMORY_SIZE - 1},
        },
        "registers": [
            "V0", "V1", "V2", "V3", "V4", "V5", "V6", "V7",
            "V8", "V9", "VA", "VB", "VC", "VD", "VE", "VF",
            "I", "PC", "SP", "DT", "ST"
        ],
        "resolution": (DISPLAY_WIDTH, DISPLAY_HEIGHT),
        "stack_size": STACK_SIZE,
        "cycles_per_frame": DEFAULT_CYCLES_PER_FRAME,
        "seed": DEFAULT_RNG_SEED,
        "keymap": KEYMAP,
    },
}
