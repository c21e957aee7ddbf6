"""
Message dispatching components for the HotUKDeals notifier.

This module posts Discord webhook payloads with retry logic and error
handling, and validates webhook URLs before they are saved on a channel.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..interfaces import INotificationSink
from ..models.config import DISCORD_WEBHOOK_MARKER
from ..models.delivery import DeliveryResult

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500


def redact_webhook_url(webhook_url: str) -> str:
    """Shorten a webhook URL for logging so the token is not written out."""
    return webhook_url[:50] + "..."


@dataclass
class WebhookValidationResult:
    """Outcome of checking a webhook URL against Discord."""

    valid: bool
    webhook_name: Optional[str] = None
    error: Optional[str] = None


class DiscordWebhookDispatcher(INotificationSink):
    """Discord webhook message dispatcher."""

    def __init__(
        self, max_retries: int = 3, retry_delay: float = 1.0, timeout: int = 30
    ):
        """
        Initialize Discord dispatcher.

        Args:
            max_retries: Maximum number of retry attempts
            retry_delay: Initial delay between retries in seconds
            timeout: Request timeout in seconds
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry configuration."""
        session = requests.Session()

        # Discord answers rate limits with 429 and a retry-after header
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "POST"],
            respect_retry_after_header=True,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def send_payload(self, webhook_url: str, payload: Dict[str, Any]) -> DeliveryResult:
        """
        Post a webhook payload with retry logic.

        Failures are reported in the returned DeliveryResult, never raised.

        Args:
            webhook_url: Discord webhook URL
            payload: {"content"?: str, "embeds": [...]}

        Returns:
            DeliveryResult: Result of delivery attempt
        """
        start_time = datetime.now()
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(
                    f"Posting to {redact_webhook_url(webhook_url)} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1})"
                )

                response = self.session.post(
                    webhook_url, json=payload, timeout=self.timeout
                )
                response.raise_for_status()

                delivery_time = datetime.now()
                logger.info(
                    f"Webhook message sent in "
                    f"{(delivery_time - start_time).total_seconds():.2f}s "
                    f"({len(payload.get('embeds', []))} embeds)"
                )

                result = DeliveryResult(
                    success=True, delivery_time=delivery_time, error_message=None
                )
                result.validate()
                return result

            except requests.exceptions.RequestException as e:
                last_error = str(e)
                logger.warning(f"Send attempt {attempt + 1} failed: {last_error}")

                # Don't sleep after the last attempt
                if attempt < self.max_retries:
                    sleep_time = self.retry_delay * (2**attempt)
                    logger.info(f"Retrying in {sleep_time:.1f} seconds...")
                    time.sleep(sleep_time)

        delivery_time = datetime.now()
        error_msg = (
            f"Failed after {self.max_retries + 1} attempts. Last error: {last_error}"
        )
        logger.error(f"{error_msg} ({redact_webhook_url(webhook_url)})")

        result = DeliveryResult(
            success=False,
            delivery_time=delivery_time,
            error_message=error_msg[:MAX_ERROR_MESSAGE_LENGTH],
        )
        result.validate()
        return result

    def validate_webhook(self, webhook_url: str) -> WebhookValidationResult:
        """
        Check that a webhook exists by fetching its metadata.

        Args:
            webhook_url: Discord webhook URL

        Returns:
            WebhookValidationResult with the webhook's name when valid
        """
        if DISCORD_WEBHOOK_MARKER not in webhook_url:
            return WebhookValidationResult(
                valid=False, error="Invalid Discord webhook URL format"
            )

        try:
            response = requests.get(webhook_url, timeout=10)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to reach Discord webhook: {e}")
            return WebhookValidationResult(
                valid=False, error="Failed to connect to Discord. Please try again."
            )

        if response.status_code == 404:
            return WebhookValidationResult(
                valid=False, error="Webhook not found. It may have been deleted."
            )
        if response.status_code == 401:
            return WebhookValidationResult(
                valid=False, error="Webhook URL is invalid or malformed."
            )
        if not response.ok:
            return WebhookValidationResult(
                valid=False, error=f"Discord API error: {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict) or "id" not in data or "channel_id" not in data:
            return WebhookValidationResult(
                valid=False, error="Unexpected response from Discord"
            )

        return WebhookValidationResult(
            valid=True, webhook_name=data.get("name") or "Unnamed webhook"
        )
