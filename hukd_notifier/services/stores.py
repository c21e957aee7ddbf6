"""
Store implementations for the HotUKDeals notifier.

InMemoryConfigStore holds channels, search term configs and users (seeded
from the application configuration for the CLI). InMemoryHistoryStore keeps
deal history and the quiet hours queue, optionally persisted to a JSON file
so deduplication survives restarts.
"""

import json
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..models.config import (
    AppConfiguration,
    Channel,
    ChannelWithConfigs,
    SearchTermConfig,
    UserSettings,
)
from ..models.deal import QueuedDeal, StoredDeal
from ..utils.logging import get_logger

logger = get_logger("stores")


class InMemoryConfigStore:
    """Config store backed by dictionaries."""

    def __init__(
        self,
        channels: Optional[List[Channel]] = None,
        configs: Optional[List[SearchTermConfig]] = None,
        users: Optional[List[UserSettings]] = None,
    ):
        self.channels: Dict[str, Channel] = {}
        self.configs: Dict[Tuple[str, str], SearchTermConfig] = {}
        self.users: Dict[str, UserSettings] = {}

        for channel in channels or []:
            self.upsert_channel(channel)
        for config in configs or []:
            self.upsert_config(config)
        for user in users or []:
            self.upsert_user(user)

    @classmethod
    def from_app_config(cls, config: AppConfiguration) -> "InMemoryConfigStore":
        """Seed a store from the channels, users and search terms in a config file."""
        return cls(
            channels=config.channels, configs=config.search_terms, users=config.users
        )

    def upsert_channel(self, channel: Channel) -> Channel:
        channel.validate()
        self.channels[channel.channel_id] = channel
        return channel

    def delete_channel(self, channel_id: str) -> List[str]:
        """Delete a channel and its configs; returns the removed search terms."""
        self.channels.pop(channel_id, None)
        removed = [key for key in self.configs if key[0] == channel_id]
        for key in removed:
            del self.configs[key]
        return [search_term for _, search_term in removed]

    def upsert_config(self, config: SearchTermConfig) -> SearchTermConfig:
        """Create or replace the config for (channel_id, search_term)."""
        config.validate()
        self.configs[config.key] = config
        return config

    def delete_config(self, channel_id: str, search_term: str) -> None:
        self.configs.pop((channel_id, search_term), None)

    def get_configs_by_channel(self, channel_id: str) -> List[SearchTermConfig]:
        return [c for c in self.configs.values() if c.channel_id == channel_id]

    def find_duplicate_search_terms(
        self, search_term: str, user_id: str, exclude_channel_id: Optional[str] = None
    ) -> List[Channel]:
        """Other channels of the same user that already watch a search term."""
        channel_ids = {
            c.channel_id
            for c in self.configs.values()
            if c.search_term == search_term
            and c.user_id == user_id
            and c.channel_id != exclude_channel_id
        }
        return [self.channels[cid] for cid in sorted(channel_ids) if cid in self.channels]

    def upsert_user(self, user: UserSettings) -> UserSettings:
        user.validate()
        self.users[user.user_id] = user
        return user

    async def get_enabled_configs_grouped_by_channel(self) -> List[ChannelWithConfigs]:
        grouped: Dict[str, List[SearchTermConfig]] = {}
        for config in self.configs.values():
            if config.enabled:
                grouped.setdefault(config.channel_id, []).append(config)

        result = []
        for channel_id, configs in grouped.items():
            channel = self.channels.get(channel_id)
            if channel is None:
                # Configs for deleted channels are ignored
                continue
            result.append(ChannelWithConfigs(channel=channel, configs=configs))
        return result

    async def get_all_channels(self) -> List[Channel]:
        return list(self.channels.values())

    async def get_all_users(self) -> List[UserSettings]:
        return list(self.users.values())

    async def update_channel_last_notification(self, channel_id: str) -> None:
        channel = self.channels.get(channel_id)
        if channel is None:
            return
        self.channels[channel_id] = replace(
            channel, last_notification_at=datetime.now(timezone.utc).isoformat()
        )


class InMemoryHistoryStore:
    """
    Deal history and quiet hours queue.

    Deal records are append-only and keyed by (channel_id, deal_id). Records
    past their expiry are ignored by lookups and pruned whenever the store is
    loaded or saved. When a history file is given, the store is loaded from
    it on creation and written back after every change.
    """

    def __init__(
        self,
        history_file: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.history_file = Path(history_file) if history_file else None
        self.clock = clock
        self.deals: Dict[Tuple[str, str], StoredDeal] = {}
        self.queued: Dict[str, List[QueuedDeal]] = {}

        if self.history_file is not None:
            self._load_state()

    def _load_state(self) -> None:
        """Load history from the JSON file, if present."""
        if not self.history_file.exists():
            return

        try:
            with open(self.history_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(
                "Could not load history, starting empty",
                extra={"history_file": str(self.history_file), "error": str(e)},
            )
            return

        skipped = 0
        for item in data.get("deals", []):
            try:
                record = StoredDeal.from_dict(item)
            except (KeyError, ValueError, TypeError) as e:
                skipped += 1
                logger.warning("Skipping invalid deal record", extra={"error": str(e)})
                continue
            self.deals[record.key] = record
        for item in data.get("queued_deals", []):
            try:
                record = QueuedDeal.from_dict(item)
            except (KeyError, ValueError, TypeError) as e:
                skipped += 1
                logger.warning("Skipping invalid queued deal", extra={"error": str(e)})
                continue
            self.queued.setdefault(record.channel_id, []).append(record)

        pruned = self._prune()
        logger.debug(
            "Loaded deal history",
            extra={
                "deals": len(self.deals),
                "skipped": skipped,
                "expired": pruned,
                "history_file": str(self.history_file),
            },
        )

    def _prune(self) -> int:
        """Drop expired deal records and queued deals; returns how many went."""
        now = self.clock()
        expired = [key for key, record in self.deals.items() if record.is_expired(now)]
        for key in expired:
            del self.deals[key]

        removed = len(expired)
        for channel_id in list(self.queued):
            live = [q for q in self.queued[channel_id] if not q.is_expired(now)]
            removed += len(self.queued[channel_id]) - len(live)
            if live:
                self.queued[channel_id] = live
            else:
                del self.queued[channel_id]
        return removed

    def _save_state(self) -> None:
        """Write unexpired history to the JSON file."""
        if self.history_file is None:
            return

        self._prune()
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "deals": [record.to_dict() for record in self.deals.values()],
            "queued_deals": [
                record.to_dict() for records in self.queued.values() for record in records
            ],
            "last_updated": datetime.now().isoformat(),
        }
        with open(self.history_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def _live_deal(self, channel_id: str, deal_id: str) -> Optional[StoredDeal]:
        record = self.deals.get((channel_id, deal_id))
        if record is None or record.is_expired(self.clock()):
            return None
        return record

    async def deal_exists(self, channel_id: str, deal_id: str) -> bool:
        return self._live_deal(channel_id, deal_id) is not None

    async def get_deal(self, channel_id: str, deal_id: str) -> Optional[StoredDeal]:
        return self._live_deal(channel_id, deal_id)

    async def create_deal(self, record: StoredDeal) -> None:
        if self._live_deal(record.channel_id, record.deal_id) is not None:
            logger.debug(
                "Deal already recorded, keeping first record",
                extra={"channel_id": record.channel_id, "deal_id": record.deal_id},
            )
            return
        self.deals[record.key] = record
        self._save_state()

    async def get_deals_by_search_term(
        self,
        channel_id: str,
        search_term: str,
        limit: int = 50,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> List[StoredDeal]:
        """Newest-first deal history for one search term of a channel."""
        now = self.clock()
        records = [
            record
            for record in self.deals.values()
            if record.channel_id == channel_id
            and record.search_term == search_term
            and not record.is_expired(now)
            and (start_time is None or record.timestamp >= start_time)
            and (end_time is None or record.timestamp <= end_time)
        ]
        records.sort(key=lambda record: record.timestamp, reverse=True)
        return records[:limit]

    async def get_queued_deals(self, channel_id: str) -> List[QueuedDeal]:
        now = self.clock()
        return [q for q in self.queued.get(channel_id, []) if not q.is_expired(now)]

    async def get_all_queued_deals(self) -> List[QueuedDeal]:
        now = self.clock()
        return [
            record
            for records in self.queued.values()
            for record in records
            if not record.is_expired(now)
        ]

    async def create_queued_deal(self, record: QueuedDeal) -> None:
        self.queued.setdefault(record.channel_id, []).append(record)
        self._save_state()

    async def delete_queued_deals(self, channel_id: str) -> None:
        if self.queued.pop(channel_id, None) is not None:
            self._save_state()
