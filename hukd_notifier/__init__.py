"""
HotUKDeals Discord Notifier

A periodic job that polls the HotUKDeals search feed for each configured
search term, filters the results against per-channel keyword, price and
discount rules, and delivers matching deals to Discord webhooks while
respecting each user's quiet hours.
"""

__version__ = "0.1.0"
__author__ = "HotUKDeals Notifier Team"
