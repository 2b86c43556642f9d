import unittest
from config.types import DefinitionSourceInfo, StepTimeouts, ConfigurationUpdate


class TestStepTimeouts(unittest.TestCase):
    """Test cases for the StepTimeouts class."""

    def test_defaults(self):
        timeouts = StepTimeouts()
        self.assertEqual(timeouts.default_seconds, 120.0)
        self.assertEqual(timeouts.max_seconds, 600.0)

    def test_effective_uses_default_when_unset(self):
        timeouts = StepTimeouts(default_seconds=30, max_seconds=100)
        self.assertEqual(timeouts.effective(None), 30)
        self.assertEqual(timeouts.effective(0), 30)

    def test_effective_caps_requested_timeout(self):
        timeouts = StepTimeouts(default_seconds=30, max_seconds=100)
        self.assertEqual(timeouts.effective(45), 45)
        self.assertEqual(timeouts.effective(1000), 100)


class TestDefinitionSourceInfo(unittest.TestCase):
    """Test cases for the DefinitionSourceInfo class."""

    def test_default_patterns(self):
        info = DefinitionSourceInfo()
        self.assertIsNone(info.definitions_dir)
        self.assertEqual(info.patterns, ["*.json", "*.yaml", "*.yml"])


class TestConfigurationUpdate(unittest.TestCase):
    """Test cases for the ConfigurationUpdate class."""

    def test_to_dict_drops_missing_error(self):
        update = ConfigurationUpdate(success=True, updated_settings=["log_level"])
        data = update.to_dict()
        self.assertTrue(data["success"])
        self.assertNotIn("error", data)


if __name__ == "__main__":
    unittest.main()
