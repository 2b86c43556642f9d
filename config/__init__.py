"""
Workflow Configuration Package.

Settings for the orchestration core: definition source, step timeouts,
catalog cache policy and logging.
"""

from config.manager import SettingsManager, configure_logging, LOG_FORMAT
from config.types import (
    DefinitionSourceInfo,
    StepTimeouts,
    ConfigurationUpdate,
)

__all__ = [
    "SettingsManager",
    "configure_logging",
    "LOG_FORMAT",
    "DefinitionSourceInfo",
    "StepTimeouts",
    "ConfigurationUpdate",
]
