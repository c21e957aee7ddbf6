"""
Configuration models for the system.

Covers the records supplied by the configuration store (search terms,
channels, users) as well as the application's own runtime settings.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DISCORD_WEBHOOK_MARKER = "discord.com/api/webhooks/"


def validate_quiet_hours(
    start: Optional[str], end: Optional[str]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a pair of quiet hours boundaries.

    Both empty is valid (quiet hours disabled). Equal start and end is
    allowed and simply never matches.

    Returns:
        (valid, error message or None)
    """
    if not start and not end:
        return True, None

    if not start or not end:
        return False, "Both start and end times are required"

    if not TIME_PATTERN.match(start):
        return False, "Start time must be in HH:mm format (00:00 - 23:59)"

    if not TIME_PATTERN.match(end):
        return False, "End time must be in HH:mm format (00:00 - 23:59)"

    return True, None


def _validate_keywords(keywords: Any, name: str) -> None:
    if not isinstance(keywords, list):
        raise ValueError(f"{name} must be a list")

    for keyword in keywords:
        if not isinstance(keyword, str) or not keyword.strip():
            raise ValueError(f"All {name.lower()} must be non-empty strings")


@dataclass
class SearchTermConfig:
    """Filter configuration for one search term on one channel."""

    channel_id: str
    user_id: str
    search_term: str
    enabled: bool = True
    include_keywords: List[str] = field(default_factory=list)
    exclude_keywords: List[str] = field(default_factory=list)
    case_sensitive: bool = False
    fuzzy_match: bool = False
    max_price: Optional[int] = None  # pence
    min_discount: Optional[int] = None  # percent

    @property
    def key(self) -> Tuple[str, str]:
        return (self.channel_id, self.search_term)

    def validate(self) -> bool:
        """Validate search term configuration."""
        if not self.channel_id or not self.channel_id.strip():
            raise ValueError("Channel ID cannot be empty")

        if not self.user_id or not self.user_id.strip():
            raise ValueError("User ID cannot be empty")

        if not self.search_term or not self.search_term.strip():
            raise ValueError("Search term cannot be empty")

        _validate_keywords(self.include_keywords, "Include keywords")
        _validate_keywords(self.exclude_keywords, "Exclude keywords")

        if self.max_price is not None:
            if not isinstance(self.max_price, int) or self.max_price < 0:
                raise ValueError("Maximum price must be a non-negative integer (pence)")

        if self.min_discount is not None:
            if not isinstance(self.min_discount, int) or not (
                0 <= self.min_discount <= 100
            ):
                raise ValueError("Minimum discount must be an integer between 0 and 100")

        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchTermConfig":
        """Build a config from a store record, applying defaults."""
        return cls(
            channel_id=data["channel_id"],
            user_id=data["user_id"],
            search_term=data["search_term"],
            enabled=data.get("enabled", True),
            include_keywords=list(data.get("include_keywords") or []),
            exclude_keywords=list(data.get("exclude_keywords") or []),
            case_sensitive=data.get("case_sensitive", False),
            fuzzy_match=data.get("fuzzy_match", False),
            max_price=data.get("max_price"),
            min_discount=data.get("min_discount"),
        )


@dataclass
class Channel:
    """A Discord webhook destination owned by a user."""

    channel_id: str
    user_id: str
    name: str
    webhook_url: str
    last_notification_at: Optional[str] = None

    def validate(self) -> bool:
        """Validate channel configuration."""
        if not self.channel_id or not self.channel_id.strip():
            raise ValueError("Channel ID cannot be empty")

        if not self.user_id or not self.user_id.strip():
            raise ValueError("User ID cannot be empty")

        if not self.webhook_url:
            raise ValueError("Webhook URL cannot be empty")

        parsed_url = urlparse(self.webhook_url)
        if parsed_url.scheme != "https" or DISCORD_WEBHOOK_MARKER not in self.webhook_url:
            raise ValueError("Invalid Discord webhook URL format")

        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Channel":
        return cls(
            channel_id=data["channel_id"],
            user_id=data["user_id"],
            name=data.get("name", data["channel_id"]),
            webhook_url=data["webhook_url"],
            last_notification_at=data.get("last_notification_at"),
        )


@dataclass
class UserSettings:
    """Account-level settings; quiet hours apply to all of a user's channels."""

    user_id: str
    username: Optional[str] = None
    quiet_hours_enabled: bool = False
    quiet_hours_start: Optional[str] = None  # HH:mm
    quiet_hours_end: Optional[str] = None  # HH:mm
    quiet_hours_timezone: Optional[str] = None  # IANA name

    def validate(self) -> bool:
        """Validate user settings."""
        if not self.user_id or not self.user_id.strip():
            raise ValueError("User ID cannot be empty")

        valid, error = validate_quiet_hours(
            self.quiet_hours_start, self.quiet_hours_end
        )
        if not valid:
            raise ValueError(error)

        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSettings":
        return cls(
            user_id=data["user_id"],
            username=data.get("username"),
            quiet_hours_enabled=data.get("quiet_hours_enabled", False),
            quiet_hours_start=data.get("quiet_hours_start"),
            quiet_hours_end=data.get("quiet_hours_end"),
            quiet_hours_timezone=data.get("quiet_hours_timezone"),
        )


@dataclass
class ChannelWithConfigs:
    """A channel together with its enabled search term configurations."""

    channel: Channel
    configs: List[SearchTermConfig]


@dataclass
class FeedSettings:
    """Settings for the HotUKDeals feed source."""

    base_url: str = "https://www.hotukdeals.com/rss/search"
    timeout: int = 30
    max_retries: int = 3
    user_agent: str = "HotUKDeals-Notifier/1.0 (RSS Monitor)"


@dataclass
class NotifierSettings:
    """Settings for a notifier run."""

    config_cache_ttl: int = 300  # seconds
    quiet_hours_window_minutes: int = 2
    message_delay: float = 0.1  # seconds between webhook posts
    max_embeds_per_message: int = 10
    channel_timeout: float = 60.0
    polling_interval: int = 60  # must stay shorter than the quiet hours window


@dataclass
class AppConfiguration:
    """System configuration."""

    feed: FeedSettings = field(default_factory=FeedSettings)
    notifier: NotifierSettings = field(default_factory=NotifierSettings)
    history_file: Optional[str] = None
    log_level: str = "INFO"
    log_directory: str = "logs"
    channels: List[Channel] = field(default_factory=list)
    users: List[UserSettings] = field(default_factory=list)
    search_terms: List[SearchTermConfig] = field(default_factory=list)

    def validate(self) -> bool:
        """Validate system configuration."""
        parsed_url = urlparse(self.feed.base_url)
        if parsed_url.scheme not in ["http", "https"] or not parsed_url.netloc:
            raise ValueError(f"Feed base URL must use HTTP or HTTPS: {self.feed.base_url}")

        if self.feed.timeout <= 0:
            raise ValueError("Feed timeout must be positive")

        if self.feed.max_retries < 0:
            raise ValueError("Feed max retries cannot be negative")

        settings = self.notifier
        if settings.config_cache_ttl < 0:
            raise ValueError("Config cache TTL cannot be negative")

        if settings.quiet_hours_window_minutes < 1:
            raise ValueError("Quiet hours window must be at least 1 minute")

        if settings.message_delay < 0:
            raise ValueError("Message delay cannot be negative")

        if not (1 <= settings.max_embeds_per_message <= 10):
            raise ValueError("Max embeds per message must be between 1 and 10")

        if settings.channel_timeout <= 0:
            raise ValueError("Channel timeout must be positive")

        if settings.polling_interval <= 0:
            raise ValueError("Polling interval must be positive")

        if settings.polling_interval >= settings.quiet_hours_window_minutes * 60:
            raise ValueError(
                "Polling interval must be shorter than the quiet hours window "
                f"({settings.quiet_hours_window_minutes * 60}s)"
            )

        if self.log_level.upper() not in [
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        ]:
            raise ValueError(f"Invalid log level: {self.log_level}")

        channel_ids = set()
        for channel in self.channels:
            channel.validate()
            channel_ids.add(channel.channel_id)

        for user in self.users:
            user.validate()

        seen_keys = set()
        for config in self.search_terms:
            config.validate()
            if config.channel_id not in channel_ids:
                raise ValueError(
                    f"Search term '{config.search_term}' refers to unknown "
                    f"channel '{config.channel_id}'"
                )
            if config.key in seen_keys:
                raise ValueError(
                    f"Duplicate search term '{config.search_term}' for channel "
                    f"'{config.channel_id}'"
                )
            seen_keys.add(config.key)

        return True
