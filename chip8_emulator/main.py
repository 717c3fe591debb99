"""
Main entry point for the CHIP-8 emulator.

This module provides a headless command-line runner: it loads a ROM, steps the
interpreter for a number of frames or cycles, and prints or saves
diagnostics (register dump, framebuffer, memory dump, recorded state).
"""

import argparse
import logging
import os
import time
import sys
from typing import List, Optional, Tuple

from chip8_emulator.constants import ERROR_HALT_THRESHOLD
from chip8_emulator.systems.system_factory import SystemFactory
from chip8_emulator.analysis.state_recorder import StateRecorder
from chip8_emulator.utils.config_manager import ConfigManager
from chip8_emulator.utils.error_handler import ErrorCategory, error_handler

logger = logging.getLogger("Chip8Emulator")

def parse_memory_range(value: str) -> Tuple[int, int]:
    """Parse ``START:LENGTH`` (hex or decimal, e.g. ``0x200:64``)."""
    try:
        start, length = value.split(":", 1)
        return int(start, 0), int(length, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid memory range '{value}', expected START:LENGTH")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CHIP-8 virtual machine interpreter")
    parser.add_argument('--rom', type=str, required=True, help='Path to ROM file')
    parser.add_argument('--frames', type=int, default=1, help='Number of frames to run')
    parser.add_argument('--cycles', type=int, help='Run exactly this many cycles instead of frames')
    parser.add_argument('--config', type=str, help='Path to JSON or YAML configuration file')
    parser.add_argument('--seed', type=int, help='Random generator seed')
    parser.add_argument('--keys', type=str, default='',
                       help='Comma-separated keys held down for the run (host names or hex digits)')
    parser.add_argument('--dump-display', action='store_true', help='Print the framebuffer as text')
    parser.add_argument('--dump-memory', type=parse_memory_range, metavar='START:LEN',
                       help='Print a hex dump of a memory range')
    parser.add_argument('--save-state', type=str, help='Path to save recorded state history')
    parser.add_argument('--output', type=str, choices=['json', 'csv', 'pickle'], default=None,
                       help='Format for --save-state')
    parser.add_argument('--plot', type=str, help='Save framebuffer and register plots with this path prefix')
    parser.add_argument('--log-file', type=str, help='Also log to this file')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       default=None, help='Logging level')
    return parser

def resolve_keys(system, value: str) -> List[int]:
    """Translate a --keys value into keypad codes, skipping unknown names."""
    keys = []
    for name in filter(None, (part.strip() for part in value.split(','))):
        key = system.translate_key(name)
        if key is None and len(name) == 1 and name in "0123456789abcdefABCDEF":
            key = int(name, 16)
        if key is None:
            logger.warning(f"Unknown key '{name}' ignored")
            continue
        keys.append(key)
    return keys

def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments and run the emulator.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    config = ConfigManager()
    if args.config and not config.load_config(args.config):
        error_handler.handle_error(message=f"Could not load configuration: {args.config}",
                                   category=ErrorCategory.CONFIGURATION)
        return 1
    if args.seed is not None:
        config.set("seed", args.seed)
    if args.log_file:
        config.set("logging.file", args.log_file)
    if args.log_level:
        config.set("logging.level", args.log_level)

    log_level = logging.DEBUG if args.debug else getattr(logging, config.get("logging.level", "INFO"))
    error_handler.set_log_levels(log_level, logging.DEBUG)
    error_handler.set_console_logging(config.get("logging.console", True))
    if config.get("logging.file"):
        error_handler.set_log_file(config.get("logging.file"))

    try:
        system = SystemFactory.create_system(config.get("system"), config.get_system_config(),
                                             error_handler=error_handler)
    except ValueError as e:
        error_handler.log_exception(e, message=f"Error creating system: {e}",
                                    category=ErrorCategory.CONFIGURATION)
        return 1

    plot_prefix = args.plot
    if plot_prefix is None and config.get("output.plot"):
        rom_name = os.path.splitext(os.path.basename(args.rom))[0]
        plot_prefix = os.path.join(config.get("output.directory", "."), rom_name)

    recorder = None
    if args.save_state or plot_prefix or config.get("recording.enabled"):
        recorder = StateRecorder(max_history=config.get("recording.max_history"),
                                 compression_ratio=config.get("recording.compression_ratio"))
        system.register_state_recorder(recorder)

    if not system.load_rom(args.rom):
        logger.error(f"Could not load ROM: {args.rom}")
        return 1

    for key in resolve_keys(system, args.keys):
        system.key_down(key)

    print("=" * 80)
    print(f"  CHIP-8 Emulator")
    print(f"  ROM: {args.rom}")
    print(f"  Seed: {config.get('seed')}")
    print("=" * 80)

    system.start()
    start_time = time.time()

    if args.cycles is not None:
        for _ in range(args.cycles):
            if system.cpu.halted:
                break
            system.cycle()
    else:
        for frame in range(args.frames):
            system.run_frame()
            if system.cpu.halted:
                logger.info(f"Machine halted during frame {frame + 1}")
                break

    execution_time = time.time() - start_time
    system.stop()

    cpu = system.cpu
    print("\nCPU State:")
    print(cpu.get_debug_info())
    print(system.get_stats())
    print(f"Healthy: {cpu.is_healthy()} | Tone: {cpu.tone_requested}")

    if args.dump_display or config.get("output.dump_display"):
        print("\nDisplay:")
        print(system.display.render_text())

    if args.dump_memory:
        start, length = args.dump_memory
        print()
        print(system.memory_dump(start, length), end="")

    if recorder is not None and args.save_state:
        fmt = args.output or config.get("recording.format", "json")
        if not recorder.save_history(args.save_state, format=fmt):
            logger.error(f"Error saving state to {args.save_state}")

    if plot_prefix:
        from chip8_emulator.common.visualizer import FramebufferVisualizer

        plot_dir = os.path.dirname(plot_prefix)
        if plot_dir:
            os.makedirs(plot_dir, exist_ok=True)

        visualizer = FramebufferVisualizer()
        visualizer.plot_framebuffer(system.get_display_buffer(), f"{plot_prefix}_display.png",
                                    resolution=system.config["resolution"])
        visualizer.plot_register_history(recorder, f"{plot_prefix}_registers.png")

    cycles_per_second = cpu.cycle_count / execution_time if execution_time > 0 else 0
    print("\nRun Summary:")
    print(f"Cycles executed: {cpu.cycle_count}")
    print(f"Execution time: {execution_time:.3f} seconds")
    print(f"Performance: {cycles_per_second:.0f} cycles/second")

    return 2 if cpu.error_count >= ERROR_HALT_THRESHOLD else 0

if __name__ == "__main__":
    sys.exit(main())
