"""
Data models for the multi-level cache.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ReloadPolicyConfig(BaseModel):
    """Reload policy for a cache manager.

    Each threshold has a base value and an override. A non-zero override
    always wins over the base value.
    """

    min_reload_interval: float = 300.0
    """Seconds that must pass after a load before change detection runs."""
    max_calls_before_reload: int = 100
    """Number of get() calls after which a reload is forced."""
    change_check_interval: float = 60.0
    """Seconds between two invocations of the change detector."""

    min_reload_interval_override: float = 0.0
    max_calls_before_reload_override: int = 0
    change_check_interval_override: float = 0.0

    def effective(self) -> "ReloadPolicyConfig":
        """Return a copy with the overrides folded into the base values."""
        return ReloadPolicyConfig(
            min_reload_interval=(
                self.min_reload_interval_override
                if self.min_reload_interval_override > 0
                else self.min_reload_interval
            ),
            max_calls_before_reload=(
                self.max_calls_before_reload_override
                if self.max_calls_before_reload_override > 0
                else self.max_calls_before_reload
            ),
            change_check_interval=(
                self.change_check_interval_override
                if self.change_check_interval_override > 0
                else self.change_check_interval
            ),
        )

    @classmethod
    def default(cls) -> "ReloadPolicyConfig":
        """Balanced policy."""
        return cls()

    @classmethod
    def high_frequency(cls) -> "ReloadPolicyConfig":
        """More aggressive caching for hot paths."""
        return cls(
            min_reload_interval=600.0,
            max_calls_before_reload=200,
            change_check_interval=120.0,
        )

    @classmethod
    def development(cls) -> "ReloadPolicyConfig":
        """Frequent checks while definitions are being edited."""
        return cls(
            min_reload_interval=60.0,
            max_calls_before_reload=20,
            change_check_interval=30.0,
        )

    @classmethod
    def from_profile(cls, profile: str) -> "ReloadPolicyConfig":
        """Build a preset by name.

        Args:
            profile: One of "default", "high_frequency", "development"

        Raises:
            ValueError: If the profile name is unknown
        """
        presets = {
            "default": cls.default,
            "high_frequency": cls.high_frequency,
            "development": cls.development,
        }
        key = (profile or "default").strip().lower().replace("-", "_")
        if key not in presets:
            raise ValueError(
                f"Unknown cache profile '{profile}'. "
                f"Must be one of: {', '.join(presets)}"
            )
        return presets[key]()


class CacheStats(BaseModel):
    """Snapshot of a cache manager's state for monitoring."""

    cache_id: str
    last_load_time: Optional[datetime] = None
    calls_since_last_load: int = 0
    seconds_since_last_load: Optional[float] = None
    last_change_check_time: Optional[datetime] = None
    has_cached_data: bool = False
    configuration: ReloadPolicyConfig = Field(default_factory=ReloadPolicyConfig)
    calls_remaining: int = 0
    seconds_until_next_check: Optional[float] = None
