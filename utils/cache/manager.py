"""
Multi-Level Cache Manager

Generic cache wrapping a slow loader and an optional change detector behind a
throttled get(). The reload decision combines three levels:

1. Call count: after max_calls_before_reload calls a reload is forced.
2. Time throttle: within min_reload_interval of a load nothing else is checked.
3. Change detection: at most every change_check_interval the detector runs;
   a reported change or a detector error triggers a reload.
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from .types import CacheStats, ReloadPolicyConfig

T = TypeVar("T")

Loader = Callable[[], Union[T, Awaitable[T]]]
ChangeDetector = Callable[[], Union[bool, Awaitable[bool]]]

logger = logging.getLogger(__name__)


class CacheReloadError(Exception):
    """Raised when the loader fails; the previous cached state is kept."""

    def __init__(self, cache_id: str, message: str):
        super().__init__(f"[{cache_id}] Error reloading data: {message}")
        self.cache_id = cache_id


async def _call_maybe_async(func: Callable[[], Any]) -> Any:
    result = func()
    if inspect.isawaitable(result):
        result = await result
    return result


class MultiLevelCacheManager(Generic[T]):
    """
    Cache manager with a multi-level reload policy.

    The counters and timestamps are shared by every caller and are only touched
    while holding the manager's lock, so a reload in progress is never started a
    second time by a concurrent caller.
    """

    def __init__(
        self,
        cache_id: str,
        loader: Loader,
        config: Optional[ReloadPolicyConfig] = None,
        change_detector: Optional[ChangeDetector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache manager.

        Args:
            cache_id: Name used in log messages and statistics
            loader: Callable producing a fresh value (sync or async)
            config: Reload policy, defaults to ReloadPolicyConfig.default()
            change_detector: Optional callable returning True when the source
                changed (sync or async)
            clock: Monotonic clock in seconds, injectable for tests
        """
        if not cache_id:
            raise ValueError("cache_id is required")
        if loader is None:
            raise ValueError("loader is required")

        self.cache_id = cache_id
        self._loader = loader
        self._change_detector = change_detector
        self._config = config or ReloadPolicyConfig.default()
        self._clock = clock

        self._cached_data: Optional[T] = None
        self._has_data = False
        self._stale = False
        self._last_load: Optional[float] = None
        self._last_load_wall: Optional[datetime] = None
        self._last_change_check: Optional[float] = None
        self._last_change_check_wall: Optional[datetime] = None
        self._calls_since_last_load = 0

        self._lock = asyncio.Lock()

    @property
    def has_cached_data(self) -> bool:
        """Whether a value has been loaded."""
        return self._has_data

    @property
    def calls_since_last_load(self) -> int:
        """Number of get() calls since the last successful load."""
        return self._calls_since_last_load

    @property
    def config(self) -> ReloadPolicyConfig:
        """The configured (not effective) reload policy."""
        return self._config

    async def get(self) -> T:
        """
        Get the cached value, reloading first when the policy requires it.

        Returns:
            The cached value

        Raises:
            CacheReloadError: If a required reload fails
        """
        async with self._lock:
            self._calls_since_last_load += 1
            logger.debug(
                f"[{self.cache_id}] get called "
                f"(calls since last load: {self._calls_since_last_load})"
            )

            last_check = (self._last_change_check, self._last_change_check_wall)
            if await self._should_reload():
                try:
                    await self._reload()
                except CacheReloadError:
                    self._last_change_check, self._last_change_check_wall = last_check
                    raise

            return self._cached_data

    async def force_reload(self) -> T:
        """
        Reload unconditionally and reset the call counter.

        Returns:
            The freshly loaded value
        """
        async with self._lock:
            logger.debug(f"[{self.cache_id}] Force reloading data")
            await self._reload()
            return self._cached_data

    def notify_changed(self) -> None:
        """Mark the cached value stale so the next get() reloads it."""
        logger.debug(f"[{self.cache_id}] External data change notification received")
        self._stale = True

    def update_config(self, **changes: Any) -> ReloadPolicyConfig:
        """
        Update the reload policy at runtime.

        Args:
            **changes: ReloadPolicyConfig fields to replace

        Returns:
            The new configuration

        Raises:
            ValueError: If a field name is unknown
        """
        unknown = set(changes) - set(ReloadPolicyConfig.model_fields)
        if unknown:
            raise ValueError(f"Unknown cache settings: {', '.join(sorted(unknown))}")
        self._config = self._config.model_copy(update=changes)
        logger.debug(f"[{self.cache_id}] Configuration updated: {changes}")
        return self._config

    def get_stats(self) -> CacheStats:
        """Build a statistics snapshot."""
        now = self._clock()
        effective = self._config.effective()

        since_load = None if self._last_load is None else now - self._last_load
        until_check = None
        if since_load is not None:
            until_check = max(0.0, effective.min_reload_interval - since_load)

        return CacheStats(
            cache_id=self.cache_id,
            last_load_time=self._last_load_wall,
            calls_since_last_load=self._calls_since_last_load,
            seconds_since_last_load=since_load,
            last_change_check_time=self._last_change_check_wall,
            has_cached_data=self._has_data,
            configuration=effective,
            calls_remaining=max(
                0, effective.max_calls_before_reload - self._calls_since_last_load
            ),
            seconds_until_next_check=until_check,
        )

    async def _should_reload(self) -> bool:
        now = self._clock()
        effective = self._config.effective()

        if self._last_load is None or not self._has_data:
            logger.debug(f"[{self.cache_id}] First load - reloading data")
            return True

        if self._stale:
            logger.debug(f"[{self.cache_id}] Marked stale - reloading data")
            return True

        if self._calls_since_last_load >= effective.max_calls_before_reload:
            logger.debug(
                f"[{self.cache_id}] Max calls ({effective.max_calls_before_reload}) "
                f"reached - forcing reload"
            )
            return True

        if now - self._last_load < effective.min_reload_interval:
            return False

        if self._change_detector is None:
            return False

        if (
            self._last_change_check is not None
            and now - self._last_change_check < effective.change_check_interval
        ):
            return False

        self._last_change_check = now
        self._last_change_check_wall = datetime.now()
        try:
            changed = await _call_maybe_async(self._change_detector)
        except Exception as e:
            logger.warning(f"[{self.cache_id}] Error in change detection: {e}")
            return True

        if changed:
            logger.debug(f"[{self.cache_id}] Changes detected - reloading data")
            return True
        return False

    async def _reload(self) -> None:
        logger.debug(f"[{self.cache_id}] Reloading data...")
        # notify_changed() during the load sets the flag again for the next get()
        self._stale = False
        try:
            data = await _call_maybe_async(self._loader)
        except Exception as e:
            # A reload that was due stays due
            self._stale = True
            logger.error(f"[{self.cache_id}] Error reloading data: {e}")
            raise CacheReloadError(self.cache_id, str(e)) from e

        self._cached_data = data
        self._has_data = True
        self._last_load = self._clock()
        self._last_load_wall = datetime.now()
        self._calls_since_last_load = 0
        logger.info(f"[{self.cache_id}] Data reloaded successfully")

    def __repr__(self) -> str:
        return (
            f"MultiLevelCacheManager(cache_id='{self.cache_id}', "
            f"has_data={self._has_data}, calls={self._calls_since_last_load})"
        )
