"""
Notification formatting component for the HotUKDeals notifier.

Turns passed deals into Discord webhook messages: one rich embed per deal,
batched to Discord's embed limit, with a short plain-text preview on the
first message so phone lock screens show something useful.
"""

import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..models.deal import DealNotification
from ..models.delivery import DiscordMessage
from .match_details import format_match_summary

MAX_EMBEDS_PER_MESSAGE = 10
MAX_PREVIEW_DEALS = 5
SINGLE_TITLE_LIMIT = 80
LIST_TITLE_LIMIT = 60
MAX_CONTENT_LENGTH = 2000

DEAL_COLORS = [
    0x4CAF50,  # Green
    0x2196F3,  # Blue
    0xFF9800,  # Orange
    0x9C27B0,  # Purple
    0xF44336,  # Red
    0x00BCD4,  # Cyan
    0x8BC34A,  # Light Green
    0x3F51B5,  # Indigo
    0xFF5722,  # Deep Orange
    0x607D8B,  # Blue Grey
]


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class NotificationFormatter:
    """Formats deals into Discord webhook messages."""

    def __init__(
        self,
        max_embeds_per_message: int = MAX_EMBEDS_PER_MESSAGE,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the formatter.

        Args:
            max_embeds_per_message: Embeds per webhook post (Discord allows 10)
            rng: Random source for embed colours
        """
        self.max_embeds_per_message = max_embeds_per_message
        self.rng = rng or random.Random()

    def format_messages(self, deals: Sequence[DealNotification]) -> List[DiscordMessage]:
        """
        Build the ordered list of messages for a batch of deals.

        Only the first message carries preview content.
        """
        if not deals:
            return []

        content = _truncate(self.create_preview_content(deals), MAX_CONTENT_LENGTH)
        messages = []
        for start in range(0, len(deals), self.max_embeds_per_message):
            chunk = deals[start : start + self.max_embeds_per_message]
            message = DiscordMessage(
                embeds=[self.create_embed(deal) for deal in chunk],
                content=content if start == 0 else None,
            )
            message.validate()
            messages.append(message)

        return messages

    def create_embed(self, deal: DealNotification) -> Dict[str, Any]:
        """Create the rich embed for a single deal."""
        fields: List[Dict[str, Any]] = []

        price_text = self.format_price(deal)
        if price_text:
            fields.append({"name": "Price", "value": price_text, "inline": True})

        if deal.merchant:
            if deal.merchant_url:
                merchant_text = f"🏪 [{deal.merchant}]({deal.merchant_url})"
            else:
                merchant_text = f"🏪 {deal.merchant}"
            fields.append({"name": "Merchant", "value": merchant_text, "inline": True})

        if deal.match_details is not None:
            fields.append(
                {
                    "name": "Why Matched",
                    "value": f"🔍 {format_match_summary(deal.match_details)}",
                    "inline": False,
                }
            )

        return {
            "title": deal.title,
            "url": deal.link,
            "color": self.rng.choice(DEAL_COLORS),
            "fields": fields,
            "footer": {"text": f"Search Term: {deal.search_term}"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def format_price(self, deal: DealNotification) -> str:
        """Price line with savings, e.g. "💰 **£50** ~~£80~~ (Save £30 - 37% off)"."""
        if not deal.price:
            return ""

        text = f"💰 **{deal.price}**"
        if deal.original_price and deal.savings:
            text += f" ~~{deal.original_price}~~ (Save {deal.savings}"
            if deal.savings_percentage:
                text += f" - {deal.savings_percentage}% off"
            text += ")"
        return text

    def create_preview_content(self, deals: Sequence[DealNotification]) -> str:
        """Lock-screen friendly summary of the whole batch."""
        search_terms = ", ".join(dict.fromkeys(deal.search_term for deal in deals))

        if len(deals) == 1:
            deal = deals[0]
            content = f"🆕 **{search_terms}**\n"

            details = []
            if deal.price:
                details.append(f"💰 {deal.price}")
            if deal.merchant:
                details.append(f"🏪 {deal.merchant}")
            if details:
                content += "  •  ".join(details) + "\n"

            content += f"> {_truncate(deal.title, SINGLE_TITLE_LIMIT)}"
            return content

        lines = [f"🆕 **{len(deals)} new deals** for **{search_terms}**"]
        for deal in deals[:MAX_PREVIEW_DEALS]:
            lines.append(f"• {self._format_preview_line(deal)}")

        if len(deals) > MAX_PREVIEW_DEALS:
            lines.append(f"_...and {len(deals) - MAX_PREVIEW_DEALS} more_")

        return "\n".join(lines)

    def _format_preview_line(self, deal: DealNotification) -> str:
        line = _truncate(deal.title, LIST_TITLE_LIMIT)
        details = [value for value in (deal.price, deal.merchant) if value]
        if details:
            line += f" - {' @ '.join(details)}"
        return line
