import unittest
from pathlib import Path
import tempfile
import shutil

from config.manager import SettingsManager


class TestSettingsManager(unittest.TestCase):
    """Test cases for the SettingsManager class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.manager = SettingsManager(base_dir=Path(self.temp_dir))

    def tearDown(self):
        """Clean up after tests."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def create_env_file(self, content):
        """Create a temporary .env file with the given content."""
        env_file = Path(self.temp_dir) / ".env"
        env_file.write_text(content)
        return env_file

    def test_initialization(self):
        """Test that defaults are loaded."""
        self.assertEqual(self.manager.get_setting("default_step_timeout_seconds"), 120.0)
        self.assertEqual(self.manager.get_setting("catalog_cache_profile"), "default")
        self.assertEqual(self.manager.get_setting("log_level"), "INFO")

    def test_instances_are_independent(self):
        """Two managers do not share state."""
        other = SettingsManager(base_dir=Path(self.temp_dir))
        self.manager.update_configuration({"log_level": "DEBUG"})
        self.assertEqual(other.get_setting("log_level"), "INFO")

    def test_parse_env_file(self):
        """Test parsing an environment file."""
        self.create_env_file(
            """
            # Workflow settings
            WORKFLOW_DEFINITIONS_DIR=defs
            DEFAULT_STEP_TIMEOUT_SECONDS=15
            CATALOG_MAX_CALLS_BEFORE_RELOAD="7"
            UNRELATED=value
            """
        )
        self.manager.load(environ={})

        self.assertEqual(self.manager.get_setting("default_step_timeout_seconds"), 15.0)
        self.assertEqual(self.manager.get_setting("catalog_max_calls_before_reload"), 7)
        self.assertEqual(self.manager.env_variables["UNRELATED"], "value")
        self.assertEqual(
            self.manager.get_definitions_dir(),
            (Path(self.temp_dir) / "defs").resolve(),
        )

    def test_environment_overrides_env_file(self):
        self.create_env_file("LOG_LEVEL=WARNING\n")
        self.manager.load(environ={"LOG_LEVEL": "DEBUG", "PATH": "/bin"})
        self.assertEqual(self.manager.get_setting("log_level"), "DEBUG")

    def test_invalid_value_is_ignored(self):
        self.manager.load(environ={"MAX_STEP_TIMEOUT_SECONDS": "soon"})
        self.assertEqual(self.manager.get_setting("max_step_timeout_seconds"), 600.0)

    def test_definition_source(self):
        self.manager.update_configuration(
            {"workflow_definition_patterns": "*.json, *.yaml"}
        )
        source = self.manager.get_definition_source()
        self.assertEqual(source.patterns, ["*.json", "*.yaml"])
        self.assertTrue(source.definitions_dir.endswith("workflow_definitions"))

    def test_step_timeouts(self):
        self.manager.update_configuration(
            {"default_step_timeout_seconds": "5", "max_step_timeout_seconds": 50}
        )
        timeouts = self.manager.get_step_timeouts()
        self.assertEqual(timeouts.default_seconds, 5.0)
        self.assertEqual(timeouts.max_seconds, 50.0)

    def test_cache_config_profile_and_overrides(self):
        self.manager.update_configuration(
            {
                "catalog_cache_profile": "development",
                "catalog_max_calls_before_reload": 3,
            }
        )
        config = self.manager.get_cache_config()
        self.assertEqual(config.max_calls_before_reload, 20)
        self.assertEqual(config.max_calls_before_reload_override, 3)

        effective = config.effective()
        self.assertEqual(effective.max_calls_before_reload, 3)
        self.assertEqual(effective.min_reload_interval, 60.0)
        self.assertEqual(effective.change_check_interval, 30.0)

    def test_update_configuration_reports_ignored(self):
        result = self.manager.update_configuration({"log_level": "DEBUG", "nope": 1})
        self.assertTrue(result["success"])
        self.assertEqual(result["updated_settings"], ["log_level"])
        self.assertEqual(result["ignored_settings"], ["nope"])

    def test_update_configuration_conversion_error(self):
        result = self.manager.update_configuration(
            {"catalog_max_calls_before_reload": "many"}
        )
        self.assertFalse(result["success"])
        self.assertIn("error", result)

    def test_reset_setting(self):
        self.manager.update_configuration({"log_level": "DEBUG"})
        result = self.manager.reset_setting("log_level")
        self.assertTrue(result["success"])
        self.assertEqual(self.manager.get_setting("log_level"), "INFO")

        result = self.manager.reset_setting("unknown")
        self.assertFalse(result["success"])

    def test_get_all_configuration(self):
        config = self.manager.get_all_configuration()
        self.assertIn("settings", config)
        self.assertEqual(
            config["default_settings"]["catalog_max_calls_before_reload"]["type"], "int"
        )
        self.assertEqual(config["env_mapping"]["LOG_LEVEL"], "log_level")


if __name__ == "__main__":
    unittest.main()
