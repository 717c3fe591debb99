"""
CHIP-8 Emulator

An interpreter for the CHIP-8 virtual machine: 4KB memory with a protected
font table, a 64x32 XOR framebuffer, a 16-key keypad and a fetch/decode/execute
CPU that degrades gracefully on malformed programs.
"""

__version__ = "0.1.0"
