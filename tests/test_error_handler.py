"""
Tests for the error handling utilities.
"""
import unittest
import os
import json
import logging
import tempfile

from chip8_emulator.utils.error_handler import (ErrorCategory, ErrorHandler, ErrorLevel,
                                                error_boundary, error_handler, performance_log)


class TestErrorHandler(unittest.TestCase):
    """
    Test cases for the ErrorHandler class.
    """

    def setUp(self):
        """Set up test fixtures."""
        self.handler = ErrorHandler(console_level=logging.CRITICAL, max_error_history=3)

    def test_handle_error_records_history(self):
        info = self.handler.log_warning("Invalid jump target 0x100", category=ErrorCategory.STRUCTURAL,
                                        context={"pc": 0x202})
        self.assertEqual(info["level"], "WARNING")
        self.assertEqual(info["category"], "STRUCTURAL")
        self.assertEqual(info["message"], "Invalid jump target 0x100")
        self.assertEqual(info["context"], {"pc": 0x202})
        self.assertEqual(len(self.handler.get_error_history()), 1)

    def test_message_defaults_to_exception_text(self):
        info = self.handler.log_exception(ValueError("bad rom"), category=ErrorCategory.INPUT)
        self.assertEqual(info["message"], "bad rom")
        self.assertEqual(info["exception_type"], "ValueError")

    def test_history_is_bounded_and_filterable(self):
        for i in range(5):
            category = ErrorCategory.DECODE if i % 2 else ErrorCategory.BOUNDS
            self.handler.log_warning(f"error {i}", category=category)

        history = self.handler.get_error_history()
        self.assertEqual([e["message"] for e in history], ["error 2", "error 3", "error 4"])
        self.assertEqual(len(self.handler.get_error_history(category=ErrorCategory.DECODE)), 1)
        self.assertEqual(len(self.handler.get_error_history(level=ErrorLevel.ERROR)), 0)
        self.assertEqual(len(self.handler.get_error_history(max_errors=2)), 2)

        summary = self.handler.get_error_summary()
        self.assertEqual(summary["total"], 3)
        self.assertEqual(summary["by_category"], {"BOUNDS": 2, "DECODE": 1})
        self.assertEqual(summary["latest"]["message"], "error 4")

        self.handler.clear_error_history()
        self.assertIsNone(self.handler.get_error_summary()["latest"])

    def test_category_handlers(self):
        received = []
        self.handler.register_handler(ErrorCategory.DECODE, received.append)
        self.handler.log_warning("Unknown instruction FFFF", category=ErrorCategory.DECODE)
        self.handler.log_warning("Invalid register", category=ErrorCategory.BOUNDS)
        self.assertEqual(len(received), 1)

        self.assertTrue(self.handler.unregister_handler(ErrorCategory.DECODE))
        self.assertFalse(self.handler.unregister_handler(ErrorCategory.DECODE))

    def test_failing_category_handler_is_contained(self):
        def broken(_):
            raise RuntimeError("handler failed")

        self.handler.register_handler(ErrorCategory.BOUNDS, broken)
        info = self.handler.log_warning("Index out of range", category=ErrorCategory.BOUNDS)
        self.assertEqual(info["category"], "BOUNDS")

    def test_export_error_report(self):
        self.handler.log_warning("Stack overflow on call", category=ErrorCategory.STRUCTURAL)
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "reports", "errors.json")
            self.assertTrue(self.handler.export_error_report(filename))
            with open(filename) as f:
                report = json.load(f)

        self.assertEqual(report["summary"]["total"], 1)
        self.assertEqual(report["errors"][0]["category"], "STRUCTURAL")

    def test_console_logging_toggle(self):
        base_logger = logging.getLogger("Chip8Emulator")
        self.handler.set_console_logging(False)
        self.assertNotIn(self.handler.console_handler, base_logger.handlers)

        self.handler.set_console_logging(True)
        self.handler.set_console_logging(True)
        self.assertEqual(base_logger.handlers.count(self.handler.console_handler), 1)

    def test_log_file(self):
        with tempfile.TemporaryDirectory() as directory:
            filename = os.path.join(directory, "logs", "chip8.log")
            self.handler.set_log_file(filename)
            self.handler.log_warning("written to file")
            self.handler.set_log_file(None)

            with open(filename) as f:
                self.assertIn("written to file", f.read())


class TestDecorators(unittest.TestCase):
    """
    Test cases for error_boundary and performance_log.
    """

    def setUp(self):
        """Set up test fixtures."""
        error_handler.set_log_levels(logging.CRITICAL)
        error_handler.clear_error_history()

    def test_error_boundary_returns_default(self):
        @error_boundary(ErrorCategory.INPUT, default=False)
        def load():
            raise OSError("missing")

        self.assertFalse(load())
        self.assertEqual(error_handler.get_error_history()[-1]["category"], "INPUT")

    def test_error_boundary_reraises_system_errors(self):
        @error_boundary(ErrorCategory.SYSTEM)
        def explode():
            raise RuntimeError("fatal")

        with self.assertRaises(RuntimeError):
            explode()

    def test_performance_log_passes_result_through(self):
        @performance_log(threshold_ms=0)
        def compute(a, b):
            return a + b

        self.assertEqual(compute(2, 3), 5)
        self.assertEqual(compute.__name__, "compute")

if __name__ == '__main__':
    unittest.main()
