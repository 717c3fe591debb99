# common/interfaces.py
from abc import ABC, abstractmethod
import typing as t

class CPU(ABC):
    @abstractmethod
    def reset(self) -> None:
        """Reset the CPU to initial state."""
        pass

    @abstractmethod
    def cycle(self) -> None:
        """Fetch, decode and execute one instruction."""
        pass

    @abstractmethod
    def get_state(self) -> dict:
        """Return the current CPU state as a dictionary."""
        pass

class Memory(ABC):
    @abstractmethod
    def read_byte(self, address: int) -> int:
        """Read a byte from the specified address."""
        pass

    @abstractmethod
    def write_byte(self, address: int, value: int) -> None:
        """Write a byte to the specified address."""
        pass

    @abstractmethod
    def load_rom(self, rom_data: bytes) -> bool:
        """Load ROM data into memory."""
        pass

class VideoProcessor(ABC):
    @abstractmethod
    def clear(self) -> None:
        """Turn every pixel off."""
        pass

    @abstractmethod
    def draw_sprite(self, x: int, y: int, rows: t.Sequence[int]) -> bool:
        """Composite a sprite. Return True on collision."""
        pass

    @abstractmethod
    def get_frame_buffer(self) -> bytes:
        """Get the current frame buffer."""
        pass

    @abstractmethod
    def get_state(self) -> dict:
        """Return the current display state as a dictionary."""
        pass

class InputDevice(ABC):
    @abstractmethod
    def key_down(self, key: int) -> None:
        """Mark a key as pressed."""
        pass

    @abstractmethod
    def key_up(self, key: int) -> None:
        """Mark a key as released."""
        pass

    @abstractmethod
    def is_key_pressed(self, key: int) -> bool:
        """Return whether a key is currently held."""
        pass

class System(ABC):
    @abstractmethod
    def __init__(self, config: dict):
        """Initialize the system with configuration."""
        pass

    @abstractmethod
    def load_rom(self, rom_path: str) -> bool:
        """Load a ROM file."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Reset the system."""
        pass

    @abstractmethod
    def run_frame(self) -> dict:
        """Run one frame and return state data."""
        pass

    @abstractmethod
    def get_system_state(self) -> dict:
        """Get complete system state."""
        pass
