from pathlib import Path
from typing import Dict, Any, Optional, List, Mapping
from config.types import DefinitionSourceInfo, StepTimeouts, ConfigurationUpdate
from utils.cache import ReloadPolicyConfig
import logging
import os


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the project's standard format"""
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)


class SettingsManager:
    """
    Settings manager for the workflow orchestration core.

    Values come from built-in defaults, then a .env file, then the process
    environment. Each setting can be overridden by its upper-case name.
    Construct one instance at startup and pass it to the components that
    need it.
    """

    # List of all settings that are paths
    PATH_SETTINGS = [
        "workflow_definitions_dir",
    ]

    # Default settings with their types
    DEFAULT_SETTINGS = {
        # Definition source
        "workflow_definitions_dir": ("workflow_definitions", str),
        "workflow_definition_patterns": ("*.json,*.yaml,*.yml", str),
        # Step execution
        "default_step_timeout_seconds": (120.0, float),
        "max_step_timeout_seconds": (600.0, float),
        # Catalog cache policy; zero means "use the profile value"
        "catalog_cache_profile": ("default", str),
        "catalog_min_reload_interval_seconds": (0.0, float),
        "catalog_max_calls_before_reload": (0, int),
        "catalog_change_check_interval_seconds": (0.0, float),
        # Logging
        "log_level": ("INFO", str),
    }

    # Create mapping dynamically - each setting can be set via its uppercase env var
    ENV_MAPPING = {setting.upper(): setting for setting in DEFAULT_SETTINGS.keys()}

    def __init__(
        self,
        env_file: Optional[Path] = None,
        base_dir: Optional[Path] = None,
    ):
        """
        Initialize settings with default values.

        Args:
            env_file: Explicit .env file; defaults to .env in base_dir
            base_dir: Directory relative paths are resolved against (default: cwd)
        """
        self.logger = logging.getLogger(__name__)
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.env_file = Path(env_file) if env_file else self.base_dir / ".env"
        self.env_variables: Dict[str, str] = {}
        self.settings: Dict[str, Any] = {}

        for key, (default_value, _) in self.DEFAULT_SETTINGS.items():
            self.settings[key] = default_value

    def _convert_value(self, value: str, target_type: type) -> Any:
        """Convert string value to target type"""
        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")
        return target_type(value)

    def _apply(self, key: str, value: str) -> None:
        """Store a raw variable and update the mapped setting if any"""
        self.env_variables[key] = value
        setting_name = self.ENV_MAPPING.get(key)
        if setting_name is None:
            return

        _, target_type = self.DEFAULT_SETTINGS[setting_name]
        try:
            self.settings[setting_name] = self._convert_value(value, target_type)
        except ValueError:
            self.logger.warning(
                f"Ignoring {key}={value!r}: expected {target_type.__name__}"
            )

    def _parse_env_file(self, env_file_path: Path):
        """Parse a .env file and load variables"""
        try:
            with open(env_file_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        key = key.strip()
                        value = value.strip()

                        # Remove quotes if present
                        if (value.startswith('"') and value.endswith('"')) or (
                            value.startswith("'") and value.endswith("'")
                        ):
                            value = value[1:-1]

                        self._apply(key, value)
        except OSError as e:
            self.logger.warning(f"Error parsing .env file {env_file_path}: {e}")

    def load(self, environ: Optional[Mapping[str, str]] = None) -> "SettingsManager":
        """
        Load settings from the .env file and the environment.

        Args:
            environ: Environment mapping, defaults to os.environ

        Returns:
            self, for chaining
        """
        if self.env_file.is_file():
            self.logger.info(f"Loading settings from {self.env_file}")
            self._parse_env_file(self.env_file)

        environ = os.environ if environ is None else environ
        for key, value in environ.items():
            if key in self.ENV_MAPPING:
                self._apply(key, value)

        return self

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a setting value by name"""
        return self.settings.get(name, default)

    def get_path(self, name: str) -> Optional[Path]:
        """Get a path setting resolved against the base directory"""
        value = self.settings.get(name)
        if value is None:
            return None
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path.resolve()

    def get_definitions_dir(self) -> Path:
        """Directory scanned for workflow definition files"""
        return self.get_path("workflow_definitions_dir")

    def get_definition_source(self) -> DefinitionSourceInfo:
        """Definition directory and file patterns"""
        patterns = [
            p.strip()
            for p in str(self.settings["workflow_definition_patterns"]).split(",")
            if p.strip()
        ]
        return DefinitionSourceInfo(
            definitions_dir=str(self.get_definitions_dir()),
            patterns=patterns,
        )

    def get_step_timeouts(self) -> StepTimeouts:
        """Default and maximum step timeouts"""
        return StepTimeouts(
            default_seconds=self.settings["default_step_timeout_seconds"],
            max_seconds=self.settings["max_step_timeout_seconds"],
        )

    def get_cache_config(self) -> ReloadPolicyConfig:
        """Reload policy for the workflow catalog cache"""
        config = ReloadPolicyConfig.from_profile(self.settings["catalog_cache_profile"])
        return config.model_copy(
            update={
                "min_reload_interval_override": self.settings[
                    "catalog_min_reload_interval_seconds"
                ],
                "max_calls_before_reload_override": self.settings[
                    "catalog_max_calls_before_reload"
                ],
                "change_check_interval_override": self.settings[
                    "catalog_change_check_interval_seconds"
                ],
            }
        )

    def get_all_configuration(self) -> Dict[str, Any]:
        """Get all configuration settings with their defaults"""
        default_settings_serializable = {}
        for key, (default_value, type_class) in self.DEFAULT_SETTINGS.items():
            default_settings_serializable[key] = {
                "default_value": default_value,
                "type": type_class.__name__,
            }

        return {
            "settings": dict(self.settings),
            "default_settings": default_settings_serializable,
            "path_settings": list(self.PATH_SETTINGS),
            "env_mapping": dict(self.ENV_MAPPING),
        }

    def update_configuration(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Update settings in place and report what changed"""
        updated: List[str] = []
        ignored: List[str] = []

        try:
            for key, value in updates.items():
                if key not in self.DEFAULT_SETTINGS:
                    ignored.append(key)
                    continue

                _, target_type = self.DEFAULT_SETTINGS[key]
                if isinstance(value, str) and target_type is not str:
                    value = self._convert_value(value, target_type)
                elif target_type is float and isinstance(value, int):
                    value = float(value)
                self.settings[key] = value
                updated.append(key)
        except (TypeError, ValueError) as e:
            return ConfigurationUpdate(
                success=False,
                updated_settings=updated,
                ignored_settings=ignored,
                error=str(e),
                message=f"Failed to update configuration: {e}",
            ).to_dict()

        return ConfigurationUpdate(
            success=True,
            updated_settings=updated,
            ignored_settings=ignored,
            message=f"Updated {len(updated)} settings successfully",
        ).to_dict()

    def reset_setting(self, setting_name: str) -> Dict[str, Any]:
        """Reset a specific setting to its default value"""
        if setting_name not in self.DEFAULT_SETTINGS:
            return {"success": False, "error": f"Unknown setting: {setting_name}"}

        default_value, _ = self.DEFAULT_SETTINGS[setting_name]
        self.settings[setting_name] = default_value
        return {
            "success": True,
            "message": f"Reset {setting_name} to default value: {default_value}",
        }
