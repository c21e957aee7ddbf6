"""
Main application orchestrator for the HotUKDeals notifier.

One run loads configuration, flushes queued deals for users whose quiet
hours just ended, then processes every channel concurrently. Each channel
has its own timeout so a hung outbound call cannot hold up the others.
"""

import asyncio
import signal
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .components.feed_source import HotUKDealsFeedSource
from .components.message_dispatcher import DiscordWebhookDispatcher
from .components.notification_formatter import NotificationFormatter
from .interfaces import IConfigStore, IFeedSource, IHistoryStore, INotificationSink
from .models.config import (
    AppConfiguration,
    Channel,
    ChannelWithConfigs,
    NotifierSettings,
    UserSettings,
)
from .services.batch_processor import ChannelBatchProcessor, ChannelRunSummary
from .services.config_cache import CachedConfigLoader, ConfigCache
from .services.notification_service import NotificationService
from .services.queue_flusher import QueuedDealFlusher
from .services.stores import InMemoryConfigStore, InMemoryHistoryStore
from .utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_error_tracker,
    with_error_handling,
)
from .utils.logging import get_logger


@dataclass
class RunReport:
    """Outcome of one notifier run."""

    started_at: datetime
    flushed: Dict[str, int] = field(default_factory=dict)
    channels: List[ChannelRunSummary] = field(default_factory=list)
    failed_channels: List[str] = field(default_factory=list)
    timed_out_channels: List[str] = field(default_factory=list)


class NotifierOrchestrator:
    """
    Coordinates one notifier run across all channels.

    Collaborators are injected so the same orchestrator runs against the
    bundled stores, other backends, or test doubles.
    """

    def __init__(
        self,
        config_store: IConfigStore,
        history_store: IHistoryStore,
        feed_source: IFeedSource,
        sink: INotificationSink,
        settings: Optional[NotifierSettings] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.logger = get_logger("orchestrator")
        self.settings = settings or NotifierSettings()
        self.config_store = config_store
        self.clock = clock

        self.config_loader = CachedConfigLoader(
            config_store, ConfigCache(ttl=self.settings.config_cache_ttl)
        )
        self.notification_service = NotificationService(
            sink,
            config_store,
            formatter=NotificationFormatter(self.settings.max_embeds_per_message),
            message_delay=self.settings.message_delay,
        )
        self.batch_processor = ChannelBatchProcessor(
            feed_source, history_store, self.notification_service, clock=clock
        )
        self.queue_flusher = QueuedDealFlusher(
            history_store,
            self.notification_service,
            window_minutes=self.settings.quiet_hours_window_minutes,
            clock=clock,
        )

        self._running = False
        self._shutdown_event = asyncio.Event()
        self._last_report: Optional[RunReport] = None

    @classmethod
    def from_configuration(cls, config: AppConfiguration) -> "NotifierOrchestrator":
        """Build an orchestrator wired to the bundled stores, feed and dispatcher."""
        return cls(
            config_store=InMemoryConfigStore.from_app_config(config),
            history_store=InMemoryHistoryStore(config.history_file),
            feed_source=HotUKDealsFeedSource(config.feed),
            sink=DiscordWebhookDispatcher(),
            settings=config.notifier,
        )

    @with_error_handling(
        component="orchestrator",
        category=ErrorCategory.STORE,
        severity=ErrorSeverity.HIGH,
        fallback_value=[],
        suppress_exceptions=True,
    )
    async def _get_users(self) -> List[UserSettings]:
        return await self.config_store.get_all_users()

    @with_error_handling(
        component="orchestrator",
        category=ErrorCategory.STORE,
        severity=ErrorSeverity.HIGH,
        fallback_value=[],
        suppress_exceptions=True,
    )
    async def _get_channels(self) -> List[Channel]:
        return await self.config_store.get_all_channels()

    async def _process_with_timeout(
        self, group: ChannelWithConfigs, user: Optional[UserSettings], report: RunReport
    ) -> None:
        channel_id = group.channel.channel_id
        try:
            summary = await asyncio.wait_for(
                self.batch_processor.process_channel(group, user),
                timeout=self.settings.channel_timeout,
            )
        except asyncio.TimeoutError:
            report.timed_out_channels.append(channel_id)
            get_error_tracker().record_error(
                component="orchestrator",
                category=ErrorCategory.SYSTEM,
                severity=ErrorSeverity.HIGH,
                message=(
                    f"Channel processing timed out after "
                    f"{self.settings.channel_timeout}s"
                ),
                context={"channel_id": channel_id, "channel_name": group.channel.name},
            )
            return

        if summary is None:
            report.failed_channels.append(channel_id)
        else:
            report.channels.append(summary)

    async def run_once(self) -> RunReport:
        """Run one batch: flush ended quiet hours queues, then process channels."""
        report = RunReport(started_at=self.clock())

        grouped, users, channels = await asyncio.gather(
            self.config_loader.get_grouped_configs(),
            self._get_users(),
            self._get_channels(),
        )
        user_map = {user.user_id: user for user in users}

        report.flushed = await self.queue_flusher.flush(channels, users)

        if not grouped:
            self.logger.warning("No search term configurations found")
            self._last_report = report
            return report

        self.logger.info(
            "Processing deals for grouped channel configurations",
            extra={
                "channel_count": len(grouped),
                "total_search_terms": sum(len(g.configs) for g in grouped),
                "channels": [
                    {
                        "name": g.channel.name,
                        "search_terms": [c.search_term for c in g.configs],
                    }
                    for g in grouped
                ],
            },
        )

        await asyncio.gather(
            *(
                self._process_with_timeout(
                    group, user_map.get(group.channel.user_id), report
                )
                for group in grouped
            )
        )

        self._last_report = report
        self.logger.info(
            "Run complete",
            extra={
                "channels_processed": len(report.channels),
                "channels_failed": len(report.failed_channels),
                "channels_timed_out": len(report.timed_out_channels),
                "queued_deals_flushed": sum(report.flushed.values()),
            },
        )
        return report

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.shutdown)
            except (NotImplementedError, RuntimeError):
                # Not available on Windows event loops
                pass

    async def run_forever(self, interval: Optional[float] = None) -> None:
        """
        Start a batch every polling interval until shutdown is requested.

        Runs are scheduled at a fixed rate, so the time a run takes is not
        added to the gap between runs. With an interval shorter than the
        quiet hours window, at least one run always lands inside the window
        after a user's quiet hours end.
        """
        interval = interval or self.settings.polling_interval
        window_seconds = self.settings.quiet_hours_window_minutes * 60
        if interval >= window_seconds:
            self.logger.warning(
                "Polling interval is not shorter than the quiet hours window; "
                "queued deals may miss their flush",
                extra={"interval": interval, "window_seconds": window_seconds},
            )

        loop = asyncio.get_running_loop()
        self._running = True
        self._setup_signal_handlers()
        self.logger.info("Starting polling loop", extra={"interval": interval})

        try:
            while self._running and not self._shutdown_event.is_set():
                started = loop.time()
                try:
                    await self.run_once()
                except Exception as e:
                    self.logger.error(f"Error in main loop: {e}", exc_info=True)

                elapsed = loop.time() - started
                delay = max(0.0, interval - elapsed)
                if delay == 0:
                    self.logger.warning(
                        "Run took longer than the polling interval",
                        extra={"interval": interval, "elapsed": round(elapsed, 2)},
                    )

                try:
                    await asyncio.wait_for(self._shutdown_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self.logger.info("Polling loop stopped")

    def shutdown(self) -> None:
        """Request the polling loop to stop after the current run."""
        self.logger.info("Initiating graceful shutdown...")
        self._running = False
        self._shutdown_event.set()

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status information."""
        report = self._last_report
        return {
            "running": self._running,
            "last_run": report.started_at.isoformat() if report else None,
            "cached_channels": len(self.config_loader.cache.data),
            "errors": get_error_tracker().get_error_stats(),
        }
