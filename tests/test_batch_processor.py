"""
Tests for per-channel batch processing.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from factories import make_channel, make_config, make_deal, make_user

from hukd_notifier.models.config import ChannelWithConfigs
from hukd_notifier.models.delivery import DeliveryResult
from hukd_notifier.models.filter import FilterStatus
from hukd_notifier.services.batch_processor import ChannelBatchProcessor
from hukd_notifier.services.notification_service import NotificationService
from hukd_notifier.services.stores import InMemoryHistoryStore

NOON = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
LATE_EVENING = datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)


@pytest.fixture
def feed_source():
    source = Mock()
    source.fetch_deals.return_value = [
        make_deal(deal_id="1", title="Anker Power Bank"),
        make_deal(deal_id="2", title="Refurbished Power Bank"),
    ]
    return source


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def channel_group():
    return ChannelWithConfigs(
        channel=make_channel(),
        configs=[make_config(exclude_keywords=["refurbished"])],
    )


def build_processor(feed_source, history_store, sink, config_store, clock=NOON):
    service = NotificationService(sink, config_store, message_delay=0)
    return ChannelBatchProcessor(
        feed_source, history_store, service, clock=lambda: clock
    )


class TestProcessChannel:
    """Test cases for ChannelBatchProcessor.process_channel."""

    @pytest.mark.asyncio
    async def test_sends_passed_deals_and_records_all(
        self, feed_source, history_store, channel_group, mock_sink, mock_config_store
    ):
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )

        summary = await processor.process_channel(channel_group)

        assert summary.fetched == 2
        assert summary.new == 2
        assert summary.passed == 1
        assert summary.filtered == 1
        assert summary.sent is True

        mock_sink.send_payload.assert_called_once()
        payload = mock_sink.send_payload.call_args[0][1]
        assert [embed["title"] for embed in payload["embeds"]] == ["Anker Power Bank"]

        passed = history_store.deals[("channel-1", "1")]
        assert passed.filter_status == FilterStatus.PASSED
        assert passed.notified is True
        assert passed.match_details is not None

        filtered = history_store.deals[("channel-1", "2")]
        assert filtered.filter_status == FilterStatus.EXCLUDE
        assert filtered.notified is False
        assert filtered.filter_reason == 'Excluded keyword "refurbished" found in deal'

    @pytest.mark.asyncio
    async def test_second_run_sends_nothing(
        self, feed_source, history_store, channel_group, mock_sink, mock_config_store
    ):
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )

        await processor.process_channel(channel_group)
        summary = await processor.process_channel(channel_group)

        assert summary.fetched == 2
        assert summary.new == 0
        assert mock_sink.send_payload.call_count == 1
        assert len(history_store.deals) == 2

    @pytest.mark.asyncio
    async def test_failed_delivery_still_marks_notified(
        self, feed_source, history_store, channel_group, mock_config_store
    ):
        sink = Mock()
        sink.send_payload.return_value = DeliveryResult(
            success=False,
            delivery_time=datetime.now(timezone.utc),
            error_message="Failed after 4 attempts. Last error: 500",
        )
        processor = build_processor(
            feed_source, history_store, sink, mock_config_store
        )

        summary = await processor.process_channel(channel_group)
        await processor.process_channel(channel_group)

        assert summary.sent is False
        assert history_store.deals[("channel-1", "1")].notified is True
        assert sink.send_payload.call_count == 1
        mock_config_store.update_channel_last_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_quiet_hours_queue_instead_of_send(
        self, feed_source, history_store, channel_group, mock_sink, mock_config_store
    ):
        processor = build_processor(
            feed_source,
            history_store,
            mock_sink,
            mock_config_store,
            clock=LATE_EVENING,
        )
        user = make_user(quiet_hours=("22:00", "08:00"))

        summary = await processor.process_channel(channel_group, user)

        assert summary.queued == 1
        assert summary.sent is False
        mock_sink.send_payload.assert_not_called()

        queued = await history_store.get_queued_deals("channel-1")
        assert [record.deal_id for record in queued] == ["1"]
        assert queued[0].search_term == "power bank"
        assert queued[0].match_details == (
            history_store.deals[("channel-1", "1")].match_details
        )

    @pytest.mark.asyncio
    async def test_outside_quiet_hours_sends(
        self, feed_source, history_store, channel_group, mock_sink, mock_config_store
    ):
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )
        user = make_user(quiet_hours=("22:00", "08:00"))

        summary = await processor.process_channel(channel_group, user)

        assert summary.queued == 0
        assert summary.sent is True

    @pytest.mark.asyncio
    async def test_feed_failure_skips_only_that_term(
        self, history_store, mock_sink, mock_config_store
    ):
        def fetch(search_term):
            if search_term == "oled tv":
                raise ConnectionError("feed down")
            return [make_deal(deal_id="1", title="Anker Power Bank")]

        feed_source = Mock()
        feed_source.fetch_deals.side_effect = fetch
        group = ChannelWithConfigs(
            channel=make_channel(),
            configs=[make_config("oled tv"), make_config("power bank")],
        )
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )

        summary = await processor.process_channel(group)

        assert summary.failed_terms == ["oled tv"]
        assert summary.passed == 1
        assert summary.sent is True

    @pytest.mark.asyncio
    async def test_deal_returned_for_two_terms_recorded_once(
        self, history_store, mock_sink, mock_config_store
    ):
        feed_source = Mock()
        feed_source.fetch_deals.return_value = [
            make_deal(deal_id="7", title="Anker Power Bank USB-C Charger")
        ]
        group = ChannelWithConfigs(
            channel=make_channel(),
            configs=[make_config("power bank"), make_config("usb-c charger")],
        )
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )

        summary = await processor.process_channel(group)

        assert summary.fetched == 2
        assert summary.new == 1
        assert history_store.deals[("channel-1", "7")].search_term == "power bank"
        payload = mock_sink.send_payload.call_args[0][1]
        assert len(payload["embeds"]) == 1

    @pytest.mark.asyncio
    async def test_history_scoped_per_channel(
        self, feed_source, history_store, mock_sink, mock_config_store
    ):
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )
        first = ChannelWithConfigs(make_channel("channel-1"), [make_config()])
        second = ChannelWithConfigs(
            make_channel("channel-2"), [make_config(channel_id="channel-2")]
        )

        await processor.process_channel(first)
        summary = await processor.process_channel(second)

        assert summary.new == 2
        assert mock_sink.send_payload.call_count == 2

    @pytest.mark.asyncio
    async def test_no_deals(self, history_store, channel_group, mock_sink, mock_config_store):
        feed_source = Mock()
        feed_source.fetch_deals.return_value = []
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )

        summary = await processor.process_channel(channel_group)

        assert summary.fetched == 0
        mock_sink.send_payload.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure_returns_none(
        self, feed_source, channel_group, mock_sink, mock_config_store
    ):
        history_store = Mock()
        history_store.deal_exists = AsyncMock(side_effect=RuntimeError("store down"))
        processor = build_processor(
            feed_source, history_store, mock_sink, mock_config_store
        )

        assert await processor.process_channel(channel_group) is None
        mock_sink.send_payload.assert_not_called()
