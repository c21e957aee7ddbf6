"""
Protocol interfaces for the HotUKDeals notifier.

This module defines the protocol interfaces for the notifier's external
collaborators (configuration store, deal feed, deal history, webhook sink)
so they can be swapped for other backends and mocked in tests.
"""

from typing import Any, Dict, List, Protocol

from .models.config import Channel, ChannelWithConfigs, UserSettings
from .models.deal import Deal, QueuedDeal, StoredDeal
from .models.delivery import DeliveryResult


class IConfigStore(Protocol):
    """Protocol for the store holding channels, search terms and users."""

    async def get_enabled_configs_grouped_by_channel(self) -> List[ChannelWithConfigs]:
        """Enabled search term configs, grouped under their channel."""
        ...

    async def get_all_channels(self) -> List[Channel]:
        """All channels, including those with no enabled configs."""
        ...

    async def get_all_users(self) -> List[UserSettings]:
        """All users with their quiet hours settings."""
        ...

    async def update_channel_last_notification(self, channel_id: str) -> None:
        """Record that a channel was just notified."""
        ...


class IFeedSource(Protocol):
    """Protocol for fetching deals for a search term."""

    def fetch_deals(self, search_term: str) -> List[Deal]:
        """Fetch the current deals for a search term. Blocking."""
        ...


class IHistoryStore(Protocol):
    """Protocol for deal history and the quiet hours queue."""

    async def deal_exists(self, channel_id: str, deal_id: str) -> bool:
        """Whether a deal has already been recorded for a channel."""
        ...

    async def create_deal(self, record: StoredDeal) -> None:
        """Record an evaluated deal. Records are never updated."""
        ...

    async def get_queued_deals(self, channel_id: str) -> List[QueuedDeal]:
        """Deals held back for a channel during quiet hours."""
        ...

    async def create_queued_deal(self, record: QueuedDeal) -> None:
        """Hold a deal back until quiet hours end."""
        ...

    async def delete_queued_deals(self, channel_id: str) -> None:
        """Remove every queued deal for a channel."""
        ...


class INotificationSink(Protocol):
    """Protocol for delivering webhook payloads."""

    def send_payload(self, webhook_url: str, payload: Dict[str, Any]) -> DeliveryResult:
        """POST a payload to a webhook; failures are returned, not raised."""
        ...
