"""
Error handling and logging utilities for the CHIP-8 emulator.

This module provides a standardized approach for handling errors, logging,
and reporting issues across the emulator. Interpreter faults are never raised
to the host; they are reported here as soft errors and kept in a bounded
history for diagnostics.
"""

import logging
import sys
import os
import traceback
import json
import datetime
from typing import Dict, List, Any, Optional, Callable
from enum import Enum, auto
import threading
from functools import wraps

# Configure base logger
logger = logging.getLogger("Chip8Emulator")

class ErrorLevel(Enum):
    """Error severity levels."""
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()

class ErrorCategory(Enum):
    """Categories of errors."""
    BOUNDS = auto()        # address or register index out of range
    STRUCTURAL = auto()    # stack overflow/underflow, bad jump target, bad PC
    DECODE = auto()        # unknown opcode or sub-opcode
    CONFIGURATION = auto()
    INPUT = auto()
    SYSTEM = auto()
    UNKNOWN = auto()

class ErrorHandler:
    """
    Centralized error handling and logging for the emulator.

    This class captures errors with a level and category, logs them, keeps a
    bounded history and dispatches to per-category callbacks.
    """

    def __init__(self,
                log_file: Optional[str] = None,
                console_level: int = logging.INFO,
                file_level: int = logging.DEBUG,
                report_errors: bool = True,
                max_error_history: int = 100):
        """
        Initialize the error handler.

        Args:
            log_file: Path to log file (None for no file logging)
            console_level: Logging level for console output
            file_level: Logging level for file output
            report_errors: Whether to collect error reports
            max_error_history: Maximum number of errors to keep in history
        """
        self.log_file = log_file
        self.console_level = console_level
        self.file_level = file_level
        self.report_errors = report_errors
        self.max_error_history = max_error_history

        # Error history
        self.error_history = []
        self.error_history_lock = threading.Lock()

        # Error handlers by category
        self.error_handlers = {}

        self._configure_logging()

    def _configure_logging(self) -> None:
        """Configure logging system."""
        # Reset handlers
        logger.handlers = []
        logger.setLevel(logging.DEBUG)

        self.console_handler = logging.StreamHandler(sys.stdout)
        self.console_handler.setLevel(self.console_level)
        console_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        self.console_handler.setFormatter(console_format)
        logger.addHandler(self.console_handler)

        if self.log_file:
            self.set_log_file(self.log_file)

    def handle_error(self,
                  exception: Optional[Exception] = None,
                  message: Optional[str] = None,
                  level: ErrorLevel = ErrorLevel.ERROR,
                  category: ErrorCategory = ErrorCategory.UNKNOWN,
                  context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Handle an error.

        Args:
            exception: Exception object
            message: Error message
            level: Error severity level
            category: Error category
            context: Additional context

        Returns:
            Error information dictionary
        """
        if message is None:
            message = str(exception) if exception else "Unknown error"

        error_info = {
            "timestamp": datetime.datetime.now().isoformat(),
            "level": level.name,
            "category": category.name,
            "message": message,
            "exception_type": exception.__class__.__name__ if exception else None,
            "traceback": traceback.format_exc() if exception else None,
            "context": context or {},
        }

        log_level = getattr(logging, level.name)
        logger.log(log_level, f"{message} ({category.name})")

        if exception and log_level >= logging.ERROR:
            logger.debug(f"Traceback: {error_info['traceback']}")

        if self.report_errors:
            with self.error_history_lock:
                self.error_history.append(error_info)

                if len(self.error_history) > self.max_error_history:
                    self.error_history = self.error_history[-self.max_error_history:]

        handler = self.error_handlers.get(category)
        if handler:
            try:
                handler(error_info)
            except Exception as e:
                logger.error(f"Error in error handler: {e}")

        return error_info

    def register_handler(self, category: ErrorCategory, handler: Callable[[Dict[str, Any]], None]) -> None:
        """
        Register a handler for a specific error category.

        Args:
            category: Error category
            handler: Handler function
        """
        self.error_handlers[category] = handler
        logger.debug(f"Registered handler for {category.name} errors")

    def unregister_handler(self, category: ErrorCategory) -> bool:
        if category in self.error_handlers:
            del self.error_handlers[category]
            logger.debug(f"Unregistered handler for {category.name} errors")
            return True
        return False

    def clear_error_history(self) -> None:
        """Clear the error history."""
        with self.error_history_lock:
            self.error_history = []

    def get_error_history(self,
                         level: Optional[ErrorLevel] = None,
                         category: Optional[ErrorCategory] = None,
                         max_errors: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Get error history, optionally filtered.

        Args:
            level: Filter by error level
            category: Filter by error category
            max_errors: Maximum number of errors to return

        Returns:
            List of error dictionaries
        """
        with self.error_history_lock:
            errors = self.error_history.copy()

        if level:
            errors = [e for e in errors if e["level"] == level.name]

        if category:
            errors = [e for e in errors if e["category"] == category.name]

        if max_errors and max_errors < len(errors):
            errors = errors[-max_errors:]

        return errors

    def get_error_summary(self) -> Dict[str, Any]:
        """
        Get a summary of errors by category and level.

        Returns:
            Dictionary with error summary
        """
        with self.error_history_lock:
            errors = self.error_history.copy()

        categories = {}
        levels = {}
        for e in errors:
            categories[e["category"]] = categories.get(e["category"], 0) + 1
            levels[e["level"]] = levels.get(e["level"], 0) + 1

        return {
            "total": len(errors),
            "by_category": categories,
            "by_level": levels,
            "latest": errors[-1] if errors else None
        }

    def export_error_report(self, filename: str) -> bool:
        """
        Export error history to a JSON file.

        Args:
            filename: Output filename

        Returns:
            True if successful, False otherwise
        """
        try:
            directory = os.path.dirname(filename)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with self.error_history_lock:
                errors = self.error_history.copy()

            report = {
                "timestamp": datetime.datetime.now().isoformat(),
                "summary": self.get_error_summary(),
                "errors": errors
            }

            with open(filename, 'w') as f:
                json.dump(report, f, indent=2)

            logger.info(f"Exported error report to {filename}")
            return True

        except (OSError, TypeError) as e:
            logger.error(f"Error exporting error report: {e}")
            return False

    def set_log_levels(self, console_level: int, file_level: Optional[int] = None) -> None:
        """
        Set logging levels.

        Args:
            console_level: Logging level for console output
            file_level: Logging level for file output (None to keep current)
        """
        self.console_level = console_level
        if file_level is not None:
            self.file_level = file_level

        for handler in logger.handlers:
            if isinstance(handler, logging.FileHandler):
                if file_level is not None:
                    handler.setLevel(file_level)
            elif isinstance(handler, logging.StreamHandler):
                handler.setLevel(console_level)

    def set_console_logging(self, enabled: bool) -> None:
        """Attach or detach the console handler."""
        if enabled and self.console_handler not in logger.handlers:
            logger.addHandler(self.console_handler)
        elif not enabled and self.console_handler in logger.handlers:
            logger.removeHandler(self.console_handler)

    def set_log_file(self, log_file: Optional[str]) -> None:
        """
        Set log file.

        Args:
            log_file: Path to log file (None to disable file logging)
        """
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler):
                logger.removeHandler(handler)
                handler.close()

        self.log_file = log_file

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(self.file_level)
            file_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            file_handler.setFormatter(file_format)
            logger.addHandler(file_handler)

            logger.debug(f"Set log file to {log_file}")

    def log_exception(self, exception: Exception,
                    message: Optional[str] = None,
                    category: ErrorCategory = ErrorCategory.UNKNOWN,
                    context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.handle_error(exception=exception, message=message,
                                 level=ErrorLevel.ERROR, category=category, context=context)

    def log_warning(self, message: str,
                  category: ErrorCategory = ErrorCategory.UNKNOWN,
                  context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.handle_error(message=message, level=ErrorLevel.WARNING,
                                 category=category, context=context)


# Global error handler instance
error_handler = ErrorHandler()

# Decorators

def error_boundary(category: ErrorCategory = ErrorCategory.UNKNOWN, default: Any = None):
    """
    Decorator for catching and handling exceptions at host-facing seams.

    SYSTEM errors are re-raised after being recorded; any other category
    returns ``default``.

    Args:
        category: Error category
        default: Value returned when an exception is swallowed

    Returns:
        Decorator function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                context = {
                    "function": func.__name__,
                    "module": func.__module__,
                }

                error_handler.log_exception(
                    exception=e,
                    message=f"Error in {func.__name__}: {e}",
                    category=category,
                    context=context
                )

                if category == ErrorCategory.SYSTEM:
                    raise

                return default

        return wrapper
    return decorator

def performance_log(threshold_ms: int = 100):
    """
    Decorator for logging slow calls.

    Args:
        threshold_ms: Log if execution takes longer than this

    Returns:
        Decorator function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = datetime.datetime.now()

            result = func(*args, **kwargs)

            execution_time = (datetime.datetime.now() - start_time).total_seconds() * 1000
            if execution_time > threshold_ms:
                logger.warning(f"Performance: {func.__name__} took {execution_time:.2f}ms "
                              f"(threshold: {threshold_ms}ms)")

            return result

        return wrapper
    return decorator
