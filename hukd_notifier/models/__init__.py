"""
Data models for the HotUKDeals notifier.

This module contains all data classes and type definitions used throughout
the application for representing deals, configuration, and delivery state.
"""

from .config import (
    AppConfiguration,
    Channel,
    ChannelWithConfigs,
    FeedSettings,
    NotifierSettings,
    SearchTermConfig,
    UserSettings,
)
from .deal import Deal, DealNotification, QueuedDeal, StoredDeal
from .delivery import DeliveryResult, DiscordMessage
from .filter import FILTER_STATUS_LABELS, FilterResult, FilterStatus
from .match import MatchDetails, MatchSegment

__all__ = [
    "Deal",
    "DealNotification",
    "StoredDeal",
    "QueuedDeal",
    "MatchDetails",
    "MatchSegment",
    "FilterResult",
    "FilterStatus",
    "FILTER_STATUS_LABELS",
    "DeliveryResult",
    "DiscordMessage",
    "AppConfiguration",
    "FeedSettings",
    "NotifierSettings",
    "SearchTermConfig",
    "Channel",
    "ChannelWithConfigs",
    "UserSettings",
]
