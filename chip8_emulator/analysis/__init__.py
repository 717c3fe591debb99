"""
Analysis tools for emulation data.
"""
from .state_recorder import StateRecorder
