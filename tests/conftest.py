"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the HotUKDeals notifier test suite.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from factories import WEBHOOK_URL, make_config, make_deal

from hukd_notifier.models.config import Channel, ChannelWithConfigs, UserSettings
from hukd_notifier.models.deal import QueuedDeal
from hukd_notifier.models.delivery import DeliveryResult


# Test data fixtures
@pytest.fixture
def sample_deal():
    """Create a sample Deal for testing."""
    return make_deal(
        original_price="£39.99",
        merchant_url="https://www.amazon.co.uk",
        savings="£20.00",
        savings_percentage=50,
        timestamp=1704110400.0,
    )


@pytest.fixture
def sample_config():
    """Create a sample SearchTermConfig for testing."""
    return make_config()


@pytest.fixture
def sample_channel():
    """Create a sample Channel for testing."""
    return Channel(
        channel_id="channel-1",
        user_id="user-1",
        name="Tech deals",
        webhook_url=WEBHOOK_URL,
    )


@pytest.fixture
def sample_channel_with_configs(sample_channel, sample_config):
    return ChannelWithConfigs(channel=sample_channel, configs=[sample_config])


@pytest.fixture
def quiet_user():
    """A user with overnight quiet hours in London."""
    return UserSettings(
        user_id="user-1",
        username="dealhunter",
        quiet_hours_enabled=True,
        quiet_hours_start="22:00",
        quiet_hours_end="08:00",
        quiet_hours_timezone="Europe/London",
    )


@pytest.fixture
def sample_queued_deal():
    return QueuedDeal(
        channel_id="channel-1",
        deal_id="4412345",
        search_term="power bank",
        title="Anker Power Bank 20000mAh",
        link="https://www.hotukdeals.com/deals/anker-4412345",
        price="£19.99",
        merchant="Amazon",
        match_details=None,
    )


@pytest.fixture
def sample_delivery_result():
    """Create a sample DeliveryResult for testing."""
    return DeliveryResult(
        success=True,
        delivery_time=datetime(2024, 1, 1, 12, 5, 0, tzinfo=timezone.utc),
        error_message=None,
    )


# Mock fixtures
@pytest.fixture
def mock_rss_feed():
    """Create mock HotUKDeals search feed data for testing."""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0" xmlns:pepper="http://www.pepper.com/rss">
        <channel>
            <title>HotUKDeals search</title>
            <item>
                <title>Anker Power Bank 20000mAh - £19.99 (50% off)</title>
                <link>https://www.hotukdeals.com/deals/anker-power-bank-4412345</link>
                <guid>https://www.hotukdeals.com/deals/anker-power-bank-4412345</guid>
                <description><![CDATA[<p>Great price, was £39.99 last week</p>]]></description>
                <pubDate>Mon, 01 Jan 2024 12:00:00 +0000</pubDate>
                <pepper:merchant>Amazon</pepper:merchant>
            </item>
            <item>
                <title>Refurbished Power Bank £9</title>
                <link>https://www.hotukdeals.com/deals/refurbished-power-bank-4412346</link>
                <description>Cheap and cheerful</description>
                <pubDate>Mon, 01 Jan 2024 11:00:00 +0000</pubDate>
            </item>
        </channel>
    </rss>"""


@pytest.fixture
def mock_sink():
    """Create a mock webhook sink that always succeeds."""
    sink = Mock()
    sink.send_payload.return_value = DeliveryResult(
        success=True, delivery_time=datetime.now(timezone.utc), error_message=None
    )
    return sink


@pytest.fixture
def mock_config_store():
    store = Mock()
    store.get_enabled_configs_grouped_by_channel = AsyncMock(return_value=[])
    store.get_all_channels = AsyncMock(return_value=[])
    store.get_all_users = AsyncMock(return_value=[])
    store.update_channel_last_notification = AsyncMock(return_value=None)
    return store


# Temporary directory fixtures
@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# Environment fixtures
@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    env_vars = {
        "DISCORD_WEBHOOK_URL": WEBHOOK_URL,
    }

    original_values = {}
    for key, value in env_vars.items():
        original_values[key] = os.environ.get(key)
        os.environ[key] = value

    yield env_vars

    for key, original_value in original_values.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if not any(marker.name == "integration" for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
