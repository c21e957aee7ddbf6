"""Filter engine for applying search term, keyword, price and discount filters to deals."""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.config import SearchTermConfig
from ..models.deal import Deal
from ..models.filter import FilterResult, FilterStatus
from ..models.match import MatchDetails
from ..utils.logging import get_logger
from .match_details import compute_match_details, split_search_term
from .price_parser import parse_price

logger = get_logger("filter.engine")


class PriceFilter:
    """Handles price and discount threshold checks."""

    def __init__(self, max_price: Optional[int] = None, min_discount: Optional[int] = None):
        """Initialize price filter with thresholds (pence and percent)."""
        self.max_price = max_price
        self.min_discount = min_discount

    def check_price_threshold(self, deal: Deal) -> Tuple[bool, Optional[int]]:
        """
        Check the deal price against the maximum.

        Returns (passes, parsed price in pence). An unknown or unparsable
        price never blocks a deal.
        """
        if self.max_price is None:
            return True, None

        price = parse_price(deal.price)
        if price is None:
            return True, None

        return price <= self.max_price, price

    def check_discount_percentage(self, deal: Deal) -> bool:
        """Check the deal discount against the minimum; missing discount fails."""
        if self.min_discount is None:
            return True

        if deal.savings_percentage is None:
            return False

        return deal.savings_percentage >= self.min_discount


class FilterEngine:
    """
    Applies a search term configuration to deals.

    Checks run in a fixed order and stop at the first failure:
    search term presence, exclude keywords, include keywords, maximum price,
    minimum discount. Match details are always computed first so filtered
    deals still carry an explanation.
    """

    def __init__(self, config: SearchTermConfig):
        self.config = config
        self.price_filter = PriceFilter(config.max_price, config.min_discount)

    def _normalize(self, text: str) -> str:
        return text if self.config.case_sensitive else text.lower()

    def _search_text(self, deal: Deal) -> str:
        return self._normalize(f"{deal.title} {deal.merchant or ''}".strip())

    def _has_search_term_match(self, search_text: str) -> bool:
        if self.config.fuzzy_match:
            return any(
                self._normalize(word) in search_text
                for word in split_search_term(self.config.search_term)
            )
        return self._normalize(self.config.search_term) in search_text

    def _result(
        self,
        status: FilterStatus,
        match_details: MatchDetails,
        deal: Deal,
        reason_data: Optional[Dict[str, Any]] = None,
    ) -> FilterResult:
        result = FilterResult(
            passed=status == FilterStatus.PASSED,
            filter_status=status,
            match_details=match_details,
            reason_data=reason_data or {},
        )
        logger.debug(
            "Deal evaluated",
            extra={
                "deal_id": deal.id,
                "deal_title": deal.title,
                "search_term": self.config.search_term,
                "filter_status": status.value,
                "filter_reason": result.filter_reason,
            },
        )
        return result

    def apply_filters(self, deal: Deal) -> FilterResult:
        """Apply all filters to a deal and return the result."""
        config = self.config
        match_details = compute_match_details(deal.title, deal.merchant, config)
        search_text = self._search_text(deal)

        if not self._has_search_term_match(search_text):
            return self._result(
                FilterStatus.NO_MATCH,
                match_details,
                deal,
                {"search_term": config.search_term, "fuzzy_match": config.fuzzy_match},
            )

        for keyword in config.exclude_keywords:
            normalized = self._normalize(keyword)
            if normalized in search_text:
                return self._result(
                    FilterStatus.EXCLUDE, match_details, deal, {"keyword": normalized}
                )

        missing = [
            self._normalize(keyword)
            for keyword in config.include_keywords
            if self._normalize(keyword) not in search_text
        ]
        if missing:
            return self._result(
                FilterStatus.INCLUDE,
                match_details,
                deal,
                {"missing_keywords": missing},
            )

        price_ok, price = self.price_filter.check_price_threshold(deal)
        if not price_ok:
            return self._result(
                FilterStatus.PRICE_TOO_HIGH,
                match_details,
                deal,
                {"price": price, "max_price": config.max_price},
            )

        if not self.price_filter.check_discount_percentage(deal):
            return self._result(
                FilterStatus.DISCOUNT_TOO_LOW,
                match_details,
                deal,
                {
                    "discount": deal.savings_percentage,
                    "min_discount": config.min_discount,
                },
            )

        return self._result(FilterStatus.PASSED, match_details, deal)


def filter_deal(deal: Deal, config: SearchTermConfig) -> FilterResult:
    """Evaluate one deal against one configuration."""
    return FilterEngine(config).apply_filters(deal)


# The dashboard's live preview calls the same function as the batch job
apply_filter = filter_deal


def apply_filter_to_deals(
    deals: Iterable[Deal], config: SearchTermConfig
) -> List[Tuple[Deal, FilterResult]]:
    """Evaluate a list of deals against one configuration, preserving order."""
    engine = FilterEngine(config)
    return [(deal, engine.apply_filters(deal)) for deal in deals]
