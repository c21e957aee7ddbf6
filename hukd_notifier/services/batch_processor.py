"""
Per-channel batch processing.

For one channel, fetches deals for every enabled search term, drops deals
already recorded for the channel, evaluates the rest against their search
term configuration, records every evaluated deal, and then either sends
the passed deals or queues them while the channel owner is in quiet hours.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Tuple

from ..components.filter_engine import filter_deal
from ..components.match_details import serialize_match_details
from ..components.quiet_hours import is_within_quiet_hours
from ..interfaces import IFeedSource, IHistoryStore
from ..models.config import ChannelWithConfigs, SearchTermConfig, UserSettings
from ..models.deal import Deal, DealNotification, QueuedDeal, StoredDeal
from ..models.filter import FilterResult
from ..utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_error_tracker,
    with_error_handling,
)
from ..utils.logging import get_logger
from .notification_service import NotificationService

logger = get_logger("batch.processor")


@dataclass
class ChannelRunSummary:
    """Counts for one channel's run."""

    channel_id: str
    fetched: int = 0
    new: int = 0
    passed: int = 0
    filtered: int = 0
    queued: int = 0
    sent: bool = False
    failed_terms: List[str] = field(default_factory=list)


class ChannelBatchProcessor:
    """Processes all search terms of a channel in one batch."""

    def __init__(
        self,
        feed_source: IFeedSource,
        history_store: IHistoryStore,
        notification_service: NotificationService,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.feed_source = feed_source
        self.history_store = history_store
        self.notification_service = notification_service
        self.clock = clock

    async def _fetch_all(
        self, configs: List[SearchTermConfig], summary: ChannelRunSummary
    ) -> List[Tuple[Deal, SearchTermConfig]]:
        loop = asyncio.get_running_loop()
        pairs = []

        for config in configs:
            logger.info(
                "Fetching deals for search term",
                extra={"search_term": config.search_term},
            )
            try:
                deals = await loop.run_in_executor(
                    None, self.feed_source.fetch_deals, config.search_term
                )
            except Exception as e:
                summary.failed_terms.append(config.search_term)
                get_error_tracker().record_error(
                    component="batch.processor",
                    category=ErrorCategory.FEED,
                    severity=ErrorSeverity.MEDIUM,
                    message=f"Failed to fetch deals: {e}",
                    exception=e,
                    context={
                        "channel_id": config.channel_id,
                        "search_term": config.search_term,
                    },
                )
                continue

            pairs.extend((deal, config) for deal in deals)

        return pairs

    async def _select_new(
        self, channel_id: str, pairs: List[Tuple[Deal, SearchTermConfig]]
    ) -> List[Tuple[Deal, SearchTermConfig]]:
        """Drop deals already recorded for the channel or repeated in this batch."""
        exists = await asyncio.gather(
            *(self.history_store.deal_exists(channel_id, deal.id) for deal, _ in pairs)
        )

        seen: Set[str] = set()
        new_pairs = []
        for (deal, config), already_stored in zip(pairs, exists):
            if already_stored or deal.id in seen:
                logger.debug(
                    "Deal already exists, skipping",
                    extra={"deal_id": deal.id, "search_term": config.search_term},
                )
                continue
            seen.add(deal.id)
            new_pairs.append((deal, config))
        return new_pairs

    def _stored_record(
        self, channel_id: str, deal: Deal, config: SearchTermConfig, result: FilterResult
    ) -> StoredDeal:
        return StoredDeal(
            channel_id=channel_id,
            deal_id=deal.id,
            search_term=config.search_term,
            title=deal.title,
            link=deal.link,
            price=deal.price,
            merchant=deal.merchant,
            match_details=serialize_match_details(result.match_details),
            filter_status=result.filter_status,
            filter_reason=result.filter_reason,
            # Recorded as notified before delivery is attempted
            notified=result.passed,
        )

    @with_error_handling(
        component="batch.processor",
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.HIGH,
        suppress_exceptions=True,
    )
    async def process_channel(
        self,
        channel_with_configs: ChannelWithConfigs,
        user_settings: Optional[UserSettings] = None,
    ) -> ChannelRunSummary:
        """
        Run one batch for a channel.

        Errors are recorded and suppressed so one channel cannot abort the
        run; in that case None is returned instead of a summary.
        """
        channel = channel_with_configs.channel
        configs = channel_with_configs.configs
        summary = ChannelRunSummary(channel_id=channel.channel_id)
        search_terms = [config.search_term for config in configs]

        logger.info(
            "Processing search terms for channel",
            extra={
                "channel_name": channel.name,
                "channel_id": channel.channel_id,
                "search_terms": search_terms,
            },
        )

        pairs = await self._fetch_all(configs, summary)
        summary.fetched = len(pairs)
        if not pairs:
            logger.info(
                "No deals found for channel",
                extra={"channel_name": channel.name, "search_terms": search_terms},
            )
            return summary

        new_pairs = await self._select_new(channel.channel_id, pairs)
        summary.new = len(new_pairs)
        if not new_pairs:
            logger.info(
                "No new deals found for channel",
                extra={"channel_name": channel.name, "search_terms": search_terms},
            )
            return summary

        records = []
        notifications = []
        for deal, config in new_pairs:
            result = filter_deal(deal, config)
            records.append(self._stored_record(channel.channel_id, deal, config, result))

            if result.passed:
                logger.info(
                    "New deal found (passed filters)",
                    extra={
                        "title": deal.title,
                        "link": deal.link,
                        "price": deal.price,
                        "merchant": deal.merchant,
                        "search_term": config.search_term,
                    },
                )
                notifications.append(
                    DealNotification.from_deal(
                        deal, config.search_term, result.match_details
                    )
                )

        await asyncio.gather(*(self.history_store.create_deal(r) for r in records))

        summary.passed = len(notifications)
        summary.filtered = len(records) - len(notifications)

        in_quiet_hours = is_within_quiet_hours(user_settings, self.clock())
        if notifications:
            if in_quiet_hours:
                await self._queue(channel.channel_id, records)
                summary.queued = len(notifications)
                logger.info(
                    "User is in quiet hours, queuing deals",
                    extra={
                        "channel_name": channel.name,
                        "deal_count": len(notifications),
                        "quiet_hours_start": user_settings.quiet_hours_start,
                        "quiet_hours_end": user_settings.quiet_hours_end,
                    },
                )
            else:
                delivery = await self.notification_service.send_deals(
                    channel, notifications
                )
                summary.sent = delivery.success

        logger.info(
            "Processed deals for channel",
            extra={
                "channel_name": channel.name,
                "total_new_deals": summary.new,
                "passed_deals": summary.passed,
                "filtered_deals": summary.filtered,
                "quiet_hours_active": in_quiet_hours,
            },
        )
        return summary

    async def _queue(self, channel_id: str, records: List[StoredDeal]) -> None:
        queued = [
            QueuedDeal(
                channel_id=channel_id,
                deal_id=record.deal_id,
                search_term=record.search_term,
                title=record.title,
                link=record.link,
                price=record.price,
                merchant=record.merchant,
                match_details=record.match_details,
            )
            for record in records
            if record.notified
        ]
        await asyncio.gather(*(self.history_store.create_queued_deal(q) for q in queued))
