"""
HotUKDeals feed source.

Fetches the HotUKDeals search RSS feed for a search term and converts its
entries into Deal objects.
"""

import logging
import re
from calendar import timegm
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import feedparser
import requests
from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..interfaces import IFeedSource
from ..models.config import FeedSettings
from ..models.deal import Deal
from .price_parser import format_pence, parse_price

logger = logging.getLogger(__name__)

# Trailing numeric thread id in deal URLs, e.g. ".../deals/anker-power-bank-4412345"
DEAL_ID_PATTERN = re.compile(r"-(\d+)/?$")
PRICE_PATTERN = re.compile(r"£\s?(\d{1,3}(?:,\d{3})*(?:\.\d{1,2})?)")
DISCOUNT_PATTERN = re.compile(r"(\d{1,3})%\s*off", re.IGNORECASE)
ORIGINAL_PRICE_PATTERN = re.compile(
    r"(?:was|rrp)\s*:?\s*(£\s?\d{1,3}(?:,\d{3})*(?:\.\d{1,2})?)", re.IGNORECASE
)


class FeedError(Exception):
    """Raised when a search feed cannot be fetched."""


class HotUKDealsFeedSource(IFeedSource):
    """Fetches deals from the HotUKDeals search RSS feed."""

    def __init__(self, settings: Optional[FeedSettings] = None):
        """
        Initialize feed source.

        Args:
            settings: Feed URL, timeout, retry and user agent settings
        """
        self.settings = settings or FeedSettings()

        # Setup HTTP session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=self.settings.max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({"User-Agent": self.settings.user_agent})

    def build_feed_url(self, search_term: str) -> str:
        return f"{self.settings.base_url}?{urlencode({'q': search_term})}"

    def fetch_deals(self, search_term: str) -> List[Deal]:
        """
        Fetch and parse the feed for a search term.

        Raises:
            FeedError: If the feed could not be fetched
        """
        feed_url = self.build_feed_url(search_term)
        logger.debug(f"Fetching RSS feed: {feed_url}")

        try:
            response = self.session.get(feed_url, timeout=self.settings.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FeedError(f"Failed to fetch feed for '{search_term}': {e}") from e

        deals = self.parse_feed(response.text)
        logger.info(f"Fetched {len(deals)} deals for search term '{search_term}'")
        return deals

    def parse_feed(self, feed_data: str) -> List[Deal]:
        """Convert RSS content into deals, skipping unusable entries."""
        parsed_feed = feedparser.parse(feed_data)

        if parsed_feed.bozo:
            logger.warning(f"RSS feed parsing warning: {parsed_feed.bozo_exception}")

        deals = []
        for entry in parsed_feed.entries:
            try:
                deal = self.parse_entry(entry)
            except ValueError as e:
                logger.warning(f"Skipping invalid RSS entry: {e}")
                continue
            if deal is not None:
                deals.append(deal)

        return deals

    def parse_entry(self, entry: Dict[str, Any]) -> Optional[Deal]:
        """Build a Deal from one feed entry; None if it has no link."""
        link = entry.get("link", "").strip()
        if not link:
            return None

        title = entry.get("title", "").strip()
        description = self._extract_text(entry.get("description", ""))
        merchant_info = entry.get("pepper_merchant") or {}
        if isinstance(merchant_info, str):
            merchant_info = {"name": merchant_info}

        price = merchant_info.get("price") or self._find_price(title)
        original_price = self._find_original_price(description)
        savings = None
        savings_percentage = self._find_discount(f"{title} {description}")

        current_pence = parse_price(price)
        original_pence = parse_price(original_price)
        if current_pence is not None and original_pence and original_pence > current_pence:
            savings = format_pence(original_pence - current_pence)
            if savings_percentage is None:
                savings_percentage = round(
                    (original_pence - current_pence) * 100 / original_pence
                )

        deal = Deal(
            id=self._extract_deal_id(entry, link),
            title=title,
            link=link,
            price=price,
            original_price=original_price,
            merchant=merchant_info.get("name") or entry.get("merchant"),
            merchant_url=merchant_info.get("url"),
            savings=savings,
            savings_percentage=savings_percentage,
            timestamp=self._parse_timestamp(entry),
        )
        deal.validate()
        return deal

    def _extract_deal_id(self, entry: Dict[str, Any], link: str) -> str:
        match = DEAL_ID_PATTERN.search(link)
        if match:
            return match.group(1)
        return entry.get("id") or link

    def _extract_text(self, html: str) -> str:
        if not html:
            return ""
        return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)

    def _find_price(self, text: str) -> Optional[str]:
        match = PRICE_PATTERN.search(text)
        return f"£{match.group(1)}" if match else None

    def _find_original_price(self, text: str) -> Optional[str]:
        match = ORIGINAL_PRICE_PATTERN.search(text)
        return match.group(1).replace(" ", "") if match else None

    def _find_discount(self, text: str) -> Optional[int]:
        match = DISCOUNT_PATTERN.search(text)
        if not match:
            return None
        value = int(match.group(1))
        return value if 0 <= value <= 100 else None

    def _parse_timestamp(self, entry: Dict[str, Any]) -> Optional[float]:
        parsed = entry.get("published_parsed")
        if parsed:
            return float(timegm(parsed))

        published = entry.get("published")
        if not published:
            return None
        try:
            return date_parser.parse(published).timestamp()
        except (ValueError, OverflowError):
            logger.warning(f"Could not parse date '{published}'")
            return None
