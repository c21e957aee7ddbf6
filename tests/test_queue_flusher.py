"""
Tests for delivering queued deals after quiet hours.
"""

import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from factories import make_channel, make_user

from hukd_notifier.models.deal import QueuedDeal
from hukd_notifier.models.delivery import DeliveryResult
from hukd_notifier.services.notification_service import NotificationService
from hukd_notifier.services.queue_flusher import QueuedDealFlusher
from hukd_notifier.services.stores import InMemoryHistoryStore
from hukd_notifier.utils.error_handling import RetryConfig

JUST_AFTER_END = datetime(2024, 1, 16, 8, 1, tzinfo=timezone.utc)
MIDDAY = datetime(2024, 1, 16, 12, 0, tzinfo=timezone.utc)


def queued(deal_id, channel_id="channel-1", **kwargs):
    return QueuedDeal(
        channel_id=channel_id,
        deal_id=deal_id,
        search_term="power bank",
        title=f"Anker Power Bank {deal_id}",
        link=f"https://www.hotukdeals.com/deals/anker-{deal_id}",
        price="£19.99",
        merchant="Amazon",
        **kwargs,
    )


@pytest_asyncio.fixture
async def history_store():
    store = InMemoryHistoryStore()
    await store.create_queued_deal(queued("1"))
    await store.create_queued_deal(queued("2"))
    await store.create_queued_deal(queued("3", channel_id="channel-2"))
    return store


@pytest.fixture
def users():
    return [
        make_user("user-1", quiet_hours=("22:00", "08:00")),
        make_user("user-2"),
    ]


@pytest.fixture
def channels():
    return [make_channel("channel-1", "user-1"), make_channel("channel-2", "user-2")]


def build_flusher(history_store, sink, config_store, now, **kwargs):
    service = NotificationService(sink, config_store, message_delay=0)
    return QueuedDealFlusher(history_store, service, clock=lambda: now, **kwargs)


class TestQueuedDealFlusher:
    """Test cases for QueuedDealFlusher."""

    @pytest.mark.asyncio
    async def test_flushes_after_quiet_hours_end(
        self, history_store, users, channels, mock_sink, mock_config_store
    ):
        flusher = build_flusher(
            history_store, mock_sink, mock_config_store, JUST_AFTER_END
        )

        delivered = await flusher.flush(channels, users)

        assert delivered == {"channel-1": 2}
        mock_sink.send_payload.assert_called_once()
        payload = mock_sink.send_payload.call_args[0][1]
        assert len(payload["embeds"]) == 2
        assert payload["content"].startswith("🆕 **2 new deals**")
        assert await history_store.get_queued_deals("channel-1") == []
        assert len(await history_store.get_queued_deals("channel-2")) == 1

    @pytest.mark.asyncio
    async def test_recomputes_missing_match_details(
        self, history_store, users, channels, mock_sink, mock_config_store
    ):
        flusher = build_flusher(
            history_store, mock_sink, mock_config_store, JUST_AFTER_END
        )

        await flusher.flush(channels, users)

        embed = mock_sink.send_payload.call_args[0][1]["embeds"][0]
        assert embed["fields"][-1]["name"] == "Why Matched"

    @pytest.mark.asyncio
    async def test_stale_queued_deals_not_delivered(
        self, users, channels, mock_sink, mock_config_store
    ):
        store = InMemoryHistoryStore()
        await store.create_queued_deal(
            queued("1", queued_at=time.time() - 7 * 24 * 60 * 60)
        )
        flusher = build_flusher(store, mock_sink, mock_config_store, JUST_AFTER_END)

        assert await flusher.flush(channels, users) == {}
        mock_sink.send_payload.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_outside_window(
        self, history_store, users, channels, mock_sink, mock_config_store
    ):
        flusher = build_flusher(history_store, mock_sink, mock_config_store, MIDDAY)

        assert await flusher.flush(channels, users) == {}
        mock_sink.send_payload.assert_not_called()
        assert len(await history_store.get_queued_deals("channel-1")) == 2

    @pytest.mark.asyncio
    async def test_failed_delivery_keeps_queue(
        self, history_store, users, channels, mock_config_store
    ):
        sink = Mock()
        sink.send_payload.return_value = DeliveryResult(
            success=False,
            delivery_time=datetime.now(timezone.utc),
            error_message="Failed after 4 attempts. Last error: 503",
        )
        flusher = build_flusher(history_store, sink, mock_config_store, JUST_AFTER_END)

        assert await flusher.flush(channels, users) == {}
        assert len(await history_store.get_queued_deals("channel-1")) == 2

    @pytest.mark.asyncio
    async def test_empty_queue(self, users, channels, mock_sink, mock_config_store):
        flusher = build_flusher(
            InMemoryHistoryStore(), mock_sink, mock_config_store, JUST_AFTER_END
        )

        assert await flusher.flush(channels, users) == {}
        mock_sink.send_payload.assert_not_called()

    @pytest.mark.asyncio
    async def test_queue_delete_is_retried(
        self, users, channels, mock_sink, mock_config_store
    ):
        history_store = Mock()
        history_store.get_queued_deals = AsyncMock(return_value=[queued("1")])
        history_store.delete_queued_deals = AsyncMock(
            side_effect=[RuntimeError("busy"), None]
        )
        flusher = build_flusher(
            history_store,
            mock_sink,
            mock_config_store,
            JUST_AFTER_END,
            delete_retry=RetryConfig(max_attempts=2, base_delay=0, jitter=False),
        )

        assert await flusher.flush(channels, users) == {"channel-1": 1}
        assert history_store.delete_queued_deals.await_count == 2

    @pytest.mark.asyncio
    async def test_channel_error_does_not_stop_others(
        self, mock_sink, mock_config_store
    ):
        users = [
            make_user("user-1", quiet_hours=("22:00", "08:00")),
            make_user("user-2", quiet_hours=("23:00", "08:00")),
        ]
        channels = [
            make_channel("channel-1", "user-1"),
            make_channel("channel-2", "user-2"),
        ]

        async def get_queued(channel_id):
            if channel_id == "channel-1":
                raise RuntimeError("store down")
            return [queued("3", channel_id=channel_id)]

        history_store = Mock()
        history_store.get_queued_deals = AsyncMock(side_effect=get_queued)
        history_store.delete_queued_deals = AsyncMock(return_value=None)
        flusher = build_flusher(
            history_store, mock_sink, mock_config_store, JUST_AFTER_END
        )

        assert await flusher.flush(channels, users) == {"channel-2": 1}
