"""
CHIP-8 virtual machine components.
"""
# Import main classes for external use
from .cpu import Chip8CPU, ExecStatus
from .memory import Chip8Memory
from .display import Chip8Display
from .keypad import Chip8Keypad
from .chip8_system import Chip8System
