"""
Common functionality shared across system implementations.
"""
from .interfaces import CPU, Memory, VideoProcessor, InputDevice, System
