"""Builders for test data with sensible defaults."""

from hukd_notifier.models.config import Channel, SearchTermConfig, UserSettings
from hukd_notifier.models.deal import Deal, DealNotification

WEBHOOK_URL = "https://discord.com/api/webhooks/123456/abcdefTOKEN"


def make_deal(deal_id="4412345", title="Anker Power Bank 20000mAh", **kwargs):
    kwargs.setdefault("link", f"https://www.hotukdeals.com/deals/anker-{deal_id}")
    kwargs.setdefault("price", "£19.99")
    kwargs.setdefault("merchant", "Amazon")
    return Deal(id=deal_id, title=title, **kwargs)


def make_config(search_term="power bank", **kwargs):
    kwargs.setdefault("channel_id", "channel-1")
    kwargs.setdefault("user_id", "user-1")
    return SearchTermConfig(search_term=search_term, **kwargs)


def make_channel(channel_id="channel-1", user_id="user-1", **kwargs):
    kwargs.setdefault("name", f"Channel {channel_id}")
    kwargs.setdefault("webhook_url", WEBHOOK_URL)
    return Channel(channel_id=channel_id, user_id=user_id, **kwargs)


def make_user(user_id="user-1", quiet_hours=None, timezone="Europe/London"):
    """A user; quiet_hours is a (start, end) pair to enable them."""
    if quiet_hours is None:
        return UserSettings(user_id=user_id)
    start, end = quiet_hours
    return UserSettings(
        user_id=user_id,
        quiet_hours_enabled=True,
        quiet_hours_start=start,
        quiet_hours_end=end,
        quiet_hours_timezone=timezone,
    )


def make_notification(index=0, search_term="power bank", **kwargs):
    kwargs.setdefault("title", f"Deal number {index}")
    kwargs.setdefault("link", f"https://www.hotukdeals.com/deals/deal-{index}")
    kwargs.setdefault("price", "£10.00")
    kwargs.setdefault("merchant", "Amazon")
    return DealNotification(
        deal_id=str(index), search_term=search_term, **kwargs
    )
