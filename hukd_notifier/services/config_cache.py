"""
Cache for search term configurations.

The notifier runs every couple of minutes and configurations change rarely,
so grouped configs are reused for a short TTL instead of being read from
the config store on every run.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..interfaces import IConfigStore
from ..models.config import ChannelWithConfigs
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.logging import get_logger

logger = get_logger("config.cache")


@dataclass
class ConfigCache:
    """Last fetched grouped configs and when they were fetched."""

    ttl: float = 300.0
    data: List[ChannelWithConfigs] = field(default_factory=list)
    fetched_at: float = 0.0

    def is_stale(self, now: float) -> bool:
        """An empty cache is always stale."""
        if not self.data:
            return True
        return now - self.fetched_at >= self.ttl

    def store(self, data: List[ChannelWithConfigs], now: float) -> None:
        self.data = data
        self.fetched_at = now

    def clear(self) -> None:
        self.data = []
        self.fetched_at = 0.0


class CachedConfigLoader:
    """Reads grouped configs through a ConfigCache."""

    def __init__(
        self,
        store: IConfigStore,
        cache: Optional[ConfigCache] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.cache = cache or ConfigCache()
        self.clock = clock

    async def get_grouped_configs(self) -> List[ChannelWithConfigs]:
        """
        Enabled configs grouped by channel.

        A store failure falls back to the last cached value, or to an empty
        list when nothing has been cached yet.
        """
        now = self.clock()
        if not self.cache.is_stale(now):
            logger.debug("Using cached search term configs")
            return self.cache.data

        try:
            grouped = await self.store.get_enabled_configs_grouped_by_channel()
        except Exception as e:
            get_error_tracker().record_error(
                component="config.cache",
                category=ErrorCategory.STORE,
                severity=ErrorSeverity.HIGH,
                message=f"Error fetching search term configs: {e}",
                exception=e,
            )
            return self.cache.data

        self.cache.store(grouped, now)
        return grouped
