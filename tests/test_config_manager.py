"""
Tests for the ConfigManager module.
"""
import unittest
import os
import json
import tempfile

import yaml

from chip8_emulator.constants import DEFAULT_CYCLES_PER_FRAME, DEFAULT_RNG_SEED
from chip8_emulator.utils.config_manager import ConfigManager


class TestConfigManager(unittest.TestCase):
    """
    Test cases for the ConfigManager class.
    """

    def setUp(self):
        """Set up test fixtures."""
        self.config = ConfigManager()
        self.tempdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tempdir.cleanup()

    def _path(self, name):
        return os.path.join(self.tempdir.name, name)

    def test_defaults(self):
        self.assertEqual(self.config.get("system"), "chip8")
        self.assertEqual(self.config.get("cycles_per_frame"), DEFAULT_CYCLES_PER_FRAME)
        self.assertEqual(self.config.get("seed"), DEFAULT_RNG_SEED)
        self.assertEqual(self.config.get("logging.level"), "INFO")
        self.assertIsNone(self.config.get("logging.missing"))
        self.assertEqual(self.config.get("logging.level.deeper", "fallback"), "fallback")

    def test_load_yaml_merges_over_defaults(self):
        path = self._path("config.yaml")
        with open(path, "w") as f:
            yaml.safe_dump({"seed": 99, "logging": {"level": "DEBUG"}}, f)

        self.assertTrue(self.config.load_config(path))
        self.assertEqual(self.config.get("seed"), 99)
        self.assertEqual(self.config.get("logging.level"), "DEBUG")
        self.assertTrue(self.config.get("logging.console"))
        self.assertIn("logging.level", self.config.modified_keys)

    def test_load_json(self):
        path = self._path("config.json")
        with open(path, "w") as f:
            json.dump({"cycles_per_frame": 20}, f)

        self.assertTrue(self.config.load_config(path))
        self.assertEqual(self.config.get("cycles_per_frame"), 20)

    def test_load_failures(self):
        self.assertFalse(self.config.load_config(self._path("missing.yaml")))

        path = self._path("config.ini")
        with open(path, "w") as f:
            f.write("[chip8]\n")
        self.assertFalse(self.config.load_config(path))

        path = self._path("broken.json")
        with open(path, "w") as f:
            f.write("{")
        self.assertFalse(self.config.load_config(path))

    def test_invalid_values_are_rejected(self):
        """A config with any invalid value leaves the current settings alone."""
        self.assertFalse(self.config.load_from_dict({"seed": 5, "cycles_per_frame": 0}))
        self.assertEqual(self.config.get("seed"), DEFAULT_RNG_SEED)

        errors = self.config.validate_config({
            "system": "nes",
            "seed": -1,
            "logging": {"level": "LOUD", "console": "yes"},
            "recording": {"enabled": 1, "max_history": 0, "format": "xml"},
            "output": {"plot": "no"},
        })
        self.assertEqual(len(errors), 8)
        self.assertEqual(len(self.config.validate_config([1, 2])), 1)

    def test_non_mapping_sections_are_rejected(self):
        """A section that is not a mapping is reported instead of raising."""
        errors = self.config.validate_config({"logging": 3, "recording": [1], "output": "plots"})
        self.assertEqual(len(errors), 3)
        self.assertIn("Invalid logging: 3. Must be a mapping", errors)

        self.assertEqual(len(self.config.validate_config({"output": {"directory": 5}})), 1)

        path = self._path("bad.yaml")
        with open(path, "w") as f:
            f.write("logging: 3\n")
        self.assertFalse(self.config.load_config(path))
        self.assertEqual(self.config.get("logging.level"), "INFO")

    def test_set_and_reset(self):
        self.config.set("recording.enabled", True)
        self.config.set("output.extra.depth", 3)
        self.assertTrue(self.config.get("recording.enabled"))
        self.assertEqual(self.config.get("output.extra.depth"), 3)

        self.config.reset("recording.enabled")
        self.assertFalse(self.config.get("recording.enabled"))
        self.assertNotIn("recording.enabled", self.config.modified_keys)

        self.config.reset()
        self.assertIsNone(self.config.get("output.extra"))
        self.assertEqual(self.config.modified_keys, set())

    def test_save_config(self):
        self.config.set("seed", 42)
        path = self._path(os.path.join("out", "saved.yaml"))
        self.assertTrue(self.config.save_config(path, format="yaml"))

        reloaded = ConfigManager(path)
        self.assertEqual(reloaded.get("seed"), 42)
        self.assertFalse(self.config.save_config(self._path("saved.toml"), format="toml"))

    def test_system_config(self):
        self.config.load_from_dict({"seed": 3, "cycles_per_frame": 7})
        system_config = self.config.get_system_config()
        self.assertEqual(system_config["seed"], 3)
        self.assertEqual(system_config["cycles_per_frame"], 7)
        self.assertEqual(system_config["resolution"], (64, 32))

        # The returned dictionary is a copy
        system_config["keymap"]["q"] = 0
        self.assertEqual(self.config.get_system_config()["keymap"]["q"], 0x4)

if __name__ == '__main__':
    unittest.main()
