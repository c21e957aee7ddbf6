"""
Deal data models for the HotUKDeals notifier.
"""

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .filter import FilterStatus
from .match import MatchDetails

# Retention for deal history and the quiet hours queue
DEAL_TTL_SECONDS = 365 * 24 * 60 * 60
QUEUED_DEAL_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class Deal:
    """Raw deal as returned by the feed source."""

    id: str
    title: str
    link: str
    price: Optional[str] = None
    original_price: Optional[str] = None
    merchant: Optional[str] = None
    merchant_url: Optional[str] = None
    savings: Optional[str] = None
    savings_percentage: Optional[int] = None
    timestamp: Optional[float] = None

    def validate(self) -> bool:
        """Validate the raw deal data."""
        if not self.id or not self.id.strip():
            raise ValueError("Deal ID cannot be empty")

        if not self.title or not self.title.strip():
            raise ValueError("Deal title cannot be empty")

        if not self.link or not self.link.strip():
            raise ValueError("Deal link cannot be empty")

        parsed_url = urlparse(self.link)
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ValueError(f"Invalid URL format: {self.link}")

        if self.savings_percentage is not None:
            if not (0 <= self.savings_percentage <= 100):
                raise ValueError("Savings percentage must be between 0 and 100")

        if len(self.title) > 500:
            raise ValueError("Deal title too long (max 500 characters)")

        return True


@dataclass
class StoredDeal:
    """
    Deal history record.

    One record exists per (channel_id, deal_id) and it is never updated once
    written. Both passed and filtered deals are stored so users can see how
    their filters affected results.
    """

    channel_id: str
    deal_id: str
    search_term: str
    title: str
    link: str
    filter_status: FilterStatus
    notified: bool
    price: Optional[str] = None
    merchant: Optional[str] = None
    match_details: Optional[str] = None  # serialized MatchDetails JSON
    filter_reason: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    expires_at: Optional[float] = None

    def __post_init__(self):
        if self.expires_at is None:
            self.expires_at = self.timestamp + DEAL_TTL_SECONDS

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.time() if now is None else now) >= self.expires_at

    @property
    def key(self) -> tuple:
        return (self.channel_id, self.deal_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["filter_status"] = self.filter_status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredDeal":
        return cls(
            channel_id=data["channel_id"],
            deal_id=data["deal_id"],
            search_term=data["search_term"],
            title=data["title"],
            link=data["link"],
            filter_status=FilterStatus(data.get("filter_status", "passed")),
            notified=bool(data.get("notified", False)),
            price=data.get("price"),
            merchant=data.get("merchant"),
            match_details=data.get("match_details"),
            filter_reason=data.get("filter_reason"),
            timestamp=data.get("timestamp", time.time()),
            expires_at=data.get("expires_at"),
        )


@dataclass
class QueuedDeal:
    """A passed deal held back while the channel owner is in quiet hours."""

    channel_id: str
    deal_id: str
    search_term: str
    title: str
    link: str
    price: Optional[str] = None
    merchant: Optional[str] = None
    match_details: Optional[str] = None
    queued_at: float = field(default_factory=time.time)
    queued_deal_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    expires_at: Optional[float] = None

    def __post_init__(self):
        if self.expires_at is None:
            self.expires_at = self.queued_at + QUEUED_DEAL_TTL_SECONDS

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.time() if now is None else now) >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueuedDeal":
        return cls(
            channel_id=data["channel_id"],
            deal_id=data["deal_id"],
            search_term=data["search_term"],
            title=data["title"],
            link=data["link"],
            price=data.get("price"),
            merchant=data.get("merchant"),
            match_details=data.get("match_details"),
            queued_at=data.get("queued_at", time.time()),
            queued_deal_id=data.get("queued_deal_id") or str(uuid.uuid4()),
            expires_at=data.get("expires_at"),
        )


@dataclass
class DealNotification:
    """A passed deal ready to be rendered into a Discord embed."""

    deal_id: str
    title: str
    link: str
    search_term: str
    price: Optional[str] = None
    original_price: Optional[str] = None
    merchant: Optional[str] = None
    merchant_url: Optional[str] = None
    savings: Optional[str] = None
    savings_percentage: Optional[int] = None
    match_details: Optional[MatchDetails] = None

    @classmethod
    def from_deal(
        cls, deal: Deal, search_term: str, match_details: Optional[MatchDetails]
    ) -> "DealNotification":
        return cls(
            deal_id=deal.id,
            title=deal.title,
            link=deal.link,
            search_term=search_term,
            price=deal.price,
            original_price=deal.original_price,
            merchant=deal.merchant,
            merchant_url=deal.merchant_url,
            savings=deal.savings,
            savings_percentage=deal.savings_percentage,
            match_details=match_details,
        )

    @classmethod
    def from_queued(
        cls, queued: QueuedDeal, match_details: Optional[MatchDetails]
    ) -> "DealNotification":
        # Queued records only keep what the history store keeps
        return cls(
            deal_id=queued.deal_id,
            title=queued.title,
            link=queued.link,
            search_term=queued.search_term,
            price=queued.price,
            merchant=queued.merchant,
            match_details=match_details,
        )
