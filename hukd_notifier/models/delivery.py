"""
Message delivery models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class DiscordMessage:
    """One outgoing webhook message: optional preview text plus embeds."""

    embeds: List[Dict[str, Any]] = field(default_factory=list)
    content: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"embeds": self.embeds}
        if self.content:
            payload["content"] = self.content
        return payload

    def validate(self) -> bool:
        """Validate message data against Discord webhook limits."""
        if len(self.embeds) > 10:
            raise ValueError("Discord messages accept at most 10 embeds")

        if not self.embeds and not self.content:
            raise ValueError("Message must have content or at least one embed")

        if self.content is not None and len(self.content) > 2000:
            raise ValueError("content too long (max 2000 characters)")

        return True


@dataclass
class DeliveryResult:
    """Result of message delivery attempt."""

    success: bool
    delivery_time: datetime
    error_message: Optional[str]

    def validate(self) -> bool:
        """Validate delivery result data."""
        if not isinstance(self.success, bool):
            raise ValueError("success must be a boolean")

        if not isinstance(self.delivery_time, datetime):
            raise ValueError("delivery_time must be a datetime object")

        if self.error_message is not None:
            if not isinstance(self.error_message, str):
                raise ValueError("error_message must be a string or None")

            if len(self.error_message) > 500:
                raise ValueError("error_message too long (max 500 characters)")

        # Logical validation: if success is False, error_message should be provided
        if not self.success and not self.error_message:
            raise ValueError("error_message should be provided when success is False")

        return True
