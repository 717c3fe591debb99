"""
Visualization tools for inspecting framebuffers and register activity.
"""
import numpy as np
import matplotlib.pyplot as plt
import logging
from typing import List, Optional, Sequence, Tuple

from ..constants import DISPLAY_WIDTH, DISPLAY_HEIGHT

logger = logging.getLogger("Chip8Emulator.Visualizer")

class FramebufferVisualizer:
    """
    Renders emulator diagnostics to image files.
    """

    def __init__(self, dark_mode: bool = True):
        """
        Initialize the visualizer.

        Args:
            dark_mode: Whether to use dark background for plots
        """
        self.dark_mode = dark_mode
        self.style = 'dark_background' if dark_mode else 'default'

    def plot_framebuffer(self, buffer: Sequence[int], output_path: str,
                         resolution: Tuple[int, int] = (DISPLAY_WIDTH, DISPLAY_HEIGHT),
                         scale: float = 0.15) -> str:
        """
        Save a framebuffer as an image.

        Args:
            buffer: Row-major pixel values (0/255), width*height long
            output_path: PNG file to write
            resolution: (width, height) of the buffer
            scale: Inches per 1 pixel of the emulated screen

        Returns:
            The path written
        """
        width, height = resolution
        pixels = np.asarray(buffer, dtype=np.uint8).reshape(height, width)

        with plt.style.context(self.style):
            fig, ax = plt.subplots(figsize=(max(1.0, width * scale), max(1.0, height * scale)))
            ax.imshow(pixels, cmap='gray', vmin=0, vmax=255, interpolation='nearest')
            ax.set_axis_off()
            fig.savefig(output_path, bbox_inches='tight')
            plt.close(fig)

        logger.info(f"Framebuffer written to {output_path}")
        return output_path

    def plot_register_history(self, recorder, output_path: str,
                              registers: Optional[List[str]] = None,
                              figsize: Tuple[int, int] = (12, 6)) -> Optional[str]:
        """
        Plot register values over cycles from a StateRecorder.

        Args:
            recorder: StateRecorder holding the history
            output_path: PNG file to write
            registers: Register names to plot (None for all that changed)
            figsize: Figure size (width, height) in inches

        Returns:
            The path written, or None if there was nothing to plot
        """
        if registers is None:
            stats = recorder.get_statistics()
            registers = [name for name in stats["unique_registers"]
                         if recorder.find_register_value_changes(name)]

        series = {name: recorder.get_register_history(name) for name in registers}
        series = {name: data for name, data in series.items() if data["values"]}
        if not series:
            logger.warning("No register history to plot")
            return None

        with plt.style.context(self.style):
            fig, ax = plt.subplots(figsize=figsize)
            for name, data in series.items():
                ax.step(data["cycles"], data["values"], where='post', label=name)
            ax.set_title("Register Activity")
            ax.set_xlabel("Cycle")
            ax.set_ylabel("Value")
            ax.grid(True, alpha=0.3)
            ax.legend(loc='upper right', fontsize='small', ncol=2)
            fig.savefig(output_path, bbox_inches='tight')
            plt.close(fig)

        logger.info(f"Register history written to {output_path}")
        return output_path
