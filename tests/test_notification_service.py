"""
Tests for the notification service.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from factories import make_channel, make_notification

from hukd_notifier.models.delivery import DeliveryResult
from hukd_notifier.services.notification_service import NotificationService


def _result(success=True):
    return DeliveryResult(
        success=success,
        delivery_time=datetime.now(timezone.utc),
        error_message=None if success else "Failed after 4 attempts. Last error: 500",
    )


@pytest.fixture
def service(mock_sink, mock_config_store):
    return NotificationService(mock_sink, mock_config_store, message_delay=0)


class TestSendDeals:
    """Test cases for NotificationService.send_deals."""

    @pytest.mark.asyncio
    async def test_single_message(self, service, mock_sink, mock_config_store):
        channel = make_channel()

        result = await service.send_deals(channel, [make_notification(1)])

        assert result.success is True
        mock_sink.send_payload.assert_called_once()
        webhook_url, payload = mock_sink.send_payload.call_args[0]
        assert webhook_url == channel.webhook_url
        assert payload["content"].startswith("🆕 **power bank**")
        mock_config_store.update_channel_last_notification.assert_awaited_once_with(
            "channel-1"
        )
        assert service.stats == {
            "batches_sent": 1,
            "batches_failed": 0,
            "messages_sent": 1,
            "deals_sent": 1,
        }

    @pytest.mark.asyncio
    async def test_chunks_sent_in_order(self, service, mock_sink):
        deals = [make_notification(i) for i in range(12)]

        await service.send_deals(make_channel(), deals)

        payloads = [call.args[1] for call in mock_sink.send_payload.call_args_list]
        assert [len(p["embeds"]) for p in payloads] == [10, 2]
        assert "content" in payloads[0]
        assert "content" not in payloads[1]

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, mock_config_store):
        sink = Mock()
        sink.send_payload.side_effect = [_result(False), _result()]
        service = NotificationService(sink, mock_config_store, message_delay=0)
        deals = [make_notification(i) for i in range(12)]

        result = await service.send_deals(make_channel(), deals)

        assert result.success is False
        assert sink.send_payload.call_count == 1
        mock_config_store.update_channel_last_notification.assert_not_called()
        assert service.stats["batches_failed"] == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, service, mock_sink):
        result = await service.send_deals(make_channel(), [])

        assert result.success is True
        mock_sink.send_payload.assert_not_called()

    @pytest.mark.asyncio
    async def test_last_notification_failure_is_not_fatal(self, mock_sink):
        config_store = Mock()
        config_store.update_channel_last_notification = AsyncMock(
            side_effect=RuntimeError("store down")
        )
        service = NotificationService(mock_sink, config_store, message_delay=0)

        result = await service.send_deals(make_channel(), [make_notification(1)])

        assert result.success is True
        assert service.stats["batches_sent"] == 1
