"""
Queued deal delivery after quiet hours.

Deals that passed while a user was in quiet hours are held in the history
store's queue. Shortly after the user's quiet hours end, each of their
channels' queues is sent as one batch and then cleared.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..components.match_details import resolve_match_details
from ..components.quiet_hours import did_quiet_hours_just_end
from ..interfaces import IHistoryStore
from ..models.config import Channel, UserSettings
from ..models.deal import DealNotification
from ..utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    RetryConfig,
    get_error_tracker,
    with_error_handling,
)
from ..utils.logging import get_logger
from .notification_service import NotificationService

logger = get_logger("queue.flusher")


class QueuedDealFlusher:
    """Sends queued deals for users whose quiet hours just ended."""

    def __init__(
        self,
        history_store: IHistoryStore,
        notification_service: NotificationService,
        window_minutes: int = 2,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        delete_retry: Optional[RetryConfig] = None,
    ):
        self.history_store = history_store
        self.notification_service = notification_service
        self.window_minutes = window_minutes
        self.clock = clock

        self._delete_queue = with_error_handling(
            component="queue.flusher",
            category=ErrorCategory.STORE,
            severity=ErrorSeverity.HIGH,
            retry_config=delete_retry or RetryConfig(max_attempts=3, base_delay=0.5),
        )(self.history_store.delete_queued_deals)

    async def flush(
        self, channels: List[Channel], users: List[UserSettings]
    ) -> Dict[str, int]:
        """
        Send and clear queues for channels whose owner's quiet hours just ended.

        Returns:
            Number of deals delivered per channel id
        """
        now = self.clock()
        ended_users = {
            user.user_id
            for user in users
            if did_quiet_hours_just_end(user, self.window_minutes, now)
        }
        if not ended_users:
            return {}

        user_map = {user.user_id: user for user in users}
        delivered: Dict[str, int] = {}

        for channel in channels:
            if channel.user_id not in ended_users:
                continue

            try:
                count = await self._flush_channel(channel, user_map[channel.user_id])
            except Exception as e:
                get_error_tracker().record_error(
                    component="queue.flusher",
                    category=ErrorCategory.MESSAGE_DELIVERY,
                    severity=ErrorSeverity.HIGH,
                    message=f"Error sending queued deals: {e}",
                    exception=e,
                    context={
                        "channel_name": channel.name,
                        "channel_id": channel.channel_id,
                    },
                )
                continue

            if count:
                delivered[channel.channel_id] = count

        return delivered

    async def _flush_channel(self, channel: Channel, user: UserSettings) -> int:
        queued = await self.history_store.get_queued_deals(channel.channel_id)
        if not queued:
            logger.debug(
                "No queued deals to send for channel",
                extra={"channel_name": channel.name, "channel_id": channel.channel_id},
            )
            return 0

        logger.info(
            "Quiet hours ended, sending queued deals",
            extra={
                "channel_name": channel.name,
                "channel_id": channel.channel_id,
                "deal_count": len(queued),
                "quiet_hours_end": user.quiet_hours_end,
            },
        )

        deals = [
            DealNotification.from_queued(record, resolve_match_details(record))
            for record in queued
        ]
        result = await self.notification_service.send_deals(channel, deals)
        if not result.success:
            logger.warning(
                "Queued deals not delivered, keeping queue",
                extra={"channel_id": channel.channel_id, "error": result.error_message},
            )
            return 0

        await self._delete_queue(channel.channel_id)
        logger.info(
            "Successfully sent queued deals after quiet hours",
            extra={"channel_name": channel.name, "deal_count": len(queued)},
        )
        return len(queued)
