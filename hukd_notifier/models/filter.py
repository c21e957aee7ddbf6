"""
Filter result models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .match import MatchDetails


class FilterStatus(Enum):
    """Outcome of running a deal through the filter engine."""

    PASSED = "passed"
    NO_MATCH = "filtered_no_match"
    EXCLUDE = "filtered_exclude"
    INCLUDE = "filtered_include"
    PRICE_TOO_HIGH = "filtered_price_too_high"
    DISCOUNT_TOO_LOW = "filtered_discount_too_low"


# Display labels used by the dashboard and notification copy.
FILTER_STATUS_LABELS: Dict[FilterStatus, str] = {
    FilterStatus.PASSED: "Passed",
    FilterStatus.NO_MATCH: "No match",
    FilterStatus.EXCLUDE: "Excluded keyword",
    FilterStatus.INCLUDE: "Missing keyword",
    FilterStatus.PRICE_TOO_HIGH: "Price too high",
    FilterStatus.DISCOUNT_TOO_LOW: "Discount too low",
}


def _format_pounds(pence: int) -> str:
    return f"£{pence / 100:.2f}"


def format_filter_reason(
    status: FilterStatus, reason_data: Dict[str, Any]
) -> Optional[str]:
    """Render the human-readable reason for a filter outcome."""
    if status == FilterStatus.PASSED:
        return None

    if status == FilterStatus.NO_MATCH:
        search_term = reason_data["search_term"]
        if reason_data.get("fuzzy_match"):
            return f'No words from search term "{search_term}" found in deal'
        return f'Search term "{search_term}" not found in deal'

    if status == FilterStatus.EXCLUDE:
        return f'Excluded keyword "{reason_data["keyword"]}" found in deal'

    if status == FilterStatus.INCLUDE:
        missing = ", ".join(reason_data["missing_keywords"])
        return f"Required keyword(s) not found: {missing}"

    if status == FilterStatus.PRICE_TOO_HIGH:
        return (
            f"Price {_format_pounds(reason_data['price'])} exceeds maximum "
            f"{_format_pounds(reason_data['max_price'])}"
        )

    if status == FilterStatus.DISCOUNT_TOO_LOW:
        discount = reason_data.get("discount")
        min_discount = reason_data["min_discount"]
        if discount is None:
            return (
                f"No discount information available "
                f"(minimum {min_discount}% required)"
            )
        return f"Discount {discount}% is below minimum {min_discount}%"

    raise ValueError(f"Unknown filter status: {status}")


@dataclass
class FilterResult:
    """Result of applying a search term configuration to a deal."""

    passed: bool
    filter_status: FilterStatus
    match_details: MatchDetails
    reason_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def filter_reason(self) -> Optional[str]:
        return format_filter_reason(self.filter_status, self.reason_data)

    @property
    def label(self) -> str:
        return FILTER_STATUS_LABELS[self.filter_status]

    def validate(self) -> bool:
        """Validate filter result data."""
        if not isinstance(self.passed, bool):
            raise ValueError("passed must be a boolean")

        if not isinstance(self.filter_status, FilterStatus):
            raise ValueError("filter_status must be a FilterStatus enum")

        if self.passed != (self.filter_status == FilterStatus.PASSED):
            raise ValueError("passed must agree with filter_status")

        if not isinstance(self.match_details, MatchDetails):
            raise ValueError("match_details must be a MatchDetails instance")

        return True
