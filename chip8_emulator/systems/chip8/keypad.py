# systems/chip8/keypad.py
from ...common.interfaces import InputDevice
from ...constants import NUM_KEYS
import logging
from typing import Optional

logger = logging.getLogger("Chip8Emulator.Keypad")

class Chip8Keypad(InputDevice):
    """
    16-key hexadecimal keypad.

    Besides the held/released state of each key, the keypad latches the most
    recently pressed key. The latch is consumed by the key-wait instruction.
    """

    def __init__(self):
        self.keys = [False] * NUM_KEYS
        self.last_key_pressed: Optional[int] = None

    def clear(self) -> None:
        self.keys = [False] * NUM_KEYS
        self.last_key_pressed = None

    def key_down(self, key: int) -> None:
        if not 0 <= key < NUM_KEYS:
            logger.debug(f"Ignoring key down for invalid key {key}")
            return
        self.keys[key] = True
        self.last_key_pressed = key

    def key_up(self, key: int) -> None:
        if not 0 <= key < NUM_KEYS:
            logger.debug(f"Ignoring key up for invalid key {key}")
            return
        self.keys[key] = False

    def is_key_pressed(self, key: int) -> bool:
        if 0 <= key < NUM_KEYS:
            return self.keys[key]
        return False

    def get_key_pressed(self) -> Optional[int]:
        """Return and clear the last-pressed latch."""
        key = self.last_key_pressed
        self.last_key_pressed = None
        return key

    def get_debug_state(self) -> str:
        state = "Keys: " + " ".join(f"{i:X}" for i, down in enumerate(self.keys) if down)
        if self.last_key_pressed is not None:
            state += f" | Last: {self.last_key_pressed:X}"
        return state

    def get_state(self) -> dict:
        return {
            "pressed": [i for i, down in enumerate(self.keys) if down],
            "last_key_pressed": self.last_key_pressed,
        }
