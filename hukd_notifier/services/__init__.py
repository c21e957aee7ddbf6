"""
Service layer for the HotUKDeals notifier.

This module contains the services that coordinate the components: channel
batch processing, queued deal flushing, notification delivery, config
caching, stores and configuration loading.
"""

from .batch_processor import ChannelBatchProcessor, ChannelRunSummary
from .config_cache import CachedConfigLoader, ConfigCache
from .config_manager import ConfigurationManager
from .notification_service import NotificationService
from .queue_flusher import QueuedDealFlusher
from .stores import InMemoryConfigStore, InMemoryHistoryStore

__all__ = [
    "ChannelBatchProcessor",
    "ChannelRunSummary",
    "CachedConfigLoader",
    "ConfigCache",
    "ConfigurationManager",
    "NotificationService",
    "QueuedDealFlusher",
    "InMemoryConfigStore",
    "InMemoryHistoryStore",
]
