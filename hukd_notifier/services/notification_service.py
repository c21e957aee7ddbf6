"""
Notification service that delivers formatted deal batches to Discord.

Formats a batch of passed deals into webhook messages, posts them in order
with a short pause between posts, and records the channel's last
notification time once the whole batch has been delivered.
"""

import asyncio
from datetime import datetime
from typing import Optional, Sequence

from ..components.message_dispatcher import redact_webhook_url
from ..components.notification_formatter import NotificationFormatter
from ..interfaces import IConfigStore, INotificationSink
from ..models.config import Channel
from ..models.deal import DealNotification
from ..models.delivery import DeliveryResult
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.logging import get_logger

logger = get_logger("notification.service")


class NotificationService:
    """Sends deal batches to a channel's webhook."""

    def __init__(
        self,
        sink: INotificationSink,
        config_store: IConfigStore,
        formatter: Optional[NotificationFormatter] = None,
        message_delay: float = 0.1,
    ):
        self.sink = sink
        self.config_store = config_store
        self.formatter = formatter or NotificationFormatter()
        self.message_delay = message_delay

        self.stats = {
            "batches_sent": 0,
            "batches_failed": 0,
            "messages_sent": 0,
            "deals_sent": 0,
        }

    async def send_deals(
        self, channel: Channel, deals: Sequence[DealNotification]
    ) -> DeliveryResult:
        """
        Deliver a batch of deals to a channel.

        Messages are sent in order and delivery stops at the first failed
        message. The channel's last notification time is only updated when
        every message was delivered.
        """
        if not deals:
            return DeliveryResult(
                success=True, delivery_time=datetime.now(), error_message=None
            )

        messages = self.formatter.format_messages(deals)
        loop = asyncio.get_running_loop()
        webhook = redact_webhook_url(channel.webhook_url)

        result = None
        for index, message in enumerate(messages):
            result = await loop.run_in_executor(
                None, self.sink.send_payload, channel.webhook_url, message.to_payload()
            )
            if not result.success:
                self.stats["batches_failed"] += 1
                get_error_tracker().record_error(
                    component="notification.service",
                    category=ErrorCategory.MESSAGE_DELIVERY,
                    severity=ErrorSeverity.HIGH,
                    message=f"Error sending Discord message: {result.error_message}",
                    context={
                        "channel_id": channel.channel_id,
                        "webhook_url": webhook,
                        "message_index": index,
                        "message_count": len(messages),
                    },
                )
                return result

            self.stats["messages_sent"] += 1
            if index < len(messages) - 1:
                await asyncio.sleep(self.message_delay)

        try:
            await self.config_store.update_channel_last_notification(channel.channel_id)
        except Exception as e:
            logger.warning(
                "Could not update last notification time",
                extra={"channel_id": channel.channel_id, "error": str(e)},
            )

        self.stats["batches_sent"] += 1
        self.stats["deals_sent"] += len(deals)
        logger.info(
            "Discord message sent successfully",
            extra={
                "webhook_url": webhook,
                "channel_name": channel.name,
                "deal_count": len(deals),
                "search_terms": sorted({deal.search_term for deal in deals}),
                "message_chunks": len(messages),
            },
        )
        return result
