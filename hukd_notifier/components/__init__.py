"""
Core components for the HotUKDeals notifier.

This module contains the components that handle price parsing, match
explanation, filtering, quiet hours, notification formatting, webhook
delivery and the HotUKDeals feed.
"""

from .feed_source import FeedError, HotUKDealsFeedSource
from .filter_engine import FilterEngine, PriceFilter, apply_filter, filter_deal
from .message_dispatcher import DiscordWebhookDispatcher
from .notification_formatter import NotificationFormatter
from .price_parser import format_pence, parse_price

__all__ = [
    "FilterEngine",
    "PriceFilter",
    "filter_deal",
    "apply_filter",
    "parse_price",
    "format_pence",
    "NotificationFormatter",
    "DiscordWebhookDispatcher",
    "HotUKDealsFeedSource",
    "FeedError",
]
