"""
Match explanation for deals.

Computes which parts of a deal's title and merchant matched a search term
configuration, for storage alongside the deal and for display in Discord
cards and the dashboard.
"""

import json
from typing import Any, Dict, List, Optional, Union

from ..models.config import SearchTermConfig
from ..models.deal import QueuedDeal, StoredDeal
from ..models.match import MatchDetails, MatchSegment

SEGMENT_CONTEXT_CHARS = 20
SEARCH_FALLBACK_TEXT = "Returned by HotUKDeals search"


def _normalize(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def split_search_term(search_term: str) -> List[str]:
    """Split a search term into its whitespace-separated words."""
    return [word for word in search_term.split() if word]


def extract_segment(
    text: str,
    matched_term: str,
    case_sensitive: bool = False,
    context_chars: int = SEGMENT_CONTEXT_CHARS,
) -> str:
    """
    Extract the text around the first occurrence of a term.

    The matched span is wrapped in brackets and an ellipsis marks each side
    that was truncated, e.g. "...Anker [Power Bank] 20000mAh...".
    Returns an empty string when the term does not occur.
    """
    index = _normalize(text, case_sensitive).find(
        _normalize(matched_term, case_sensitive)
    )
    if index == -1:
        return ""

    match_end = index + len(matched_term)
    start = max(0, index - context_chars)
    end = min(len(text), match_end + context_chars)

    segment = "..." if start > 0 else ""
    segment += text[start:index]
    segment += f"[{text[index:match_end]}]"
    segment += text[match_end:end]
    if end < len(text):
        segment += "..."

    return segment


def _find_segment(
    title: str, merchant: Optional[str], term: str, case_sensitive: bool
) -> Optional[MatchSegment]:
    segment = extract_segment(title, term, case_sensitive)
    if segment:
        return MatchSegment(text=segment, matched_term=term, position="title")

    if merchant:
        segment = extract_segment(merchant, term, case_sensitive)
        if segment:
            return MatchSegment(text=segment, matched_term=term, position="merchant")

    return None


def find_search_term_matches(
    deal_text: str,
    search_term: str,
    case_sensitive: bool = False,
    fuzzy_match: bool = False,
) -> List[str]:
    """
    Find which parts of a search term occur in the deal text.

    Fuzzy mode returns every search term word found; exact mode returns the
    whole search term as a single entry only if the full phrase occurs.
    """
    haystack = _normalize(deal_text, case_sensitive)

    if fuzzy_match:
        return [
            word
            for word in split_search_term(search_term)
            if _normalize(word, case_sensitive) in haystack
        ]

    if _normalize(search_term, case_sensitive) in haystack:
        return [search_term]
    return []


def _describe_search_term_matches(matches: List[str], search_term: str) -> str:
    quoted = '", "'.join(matches)
    return f'Matched "{quoted}" from search term "{search_term}"'


def compute_match_details(
    title: str, merchant: Optional[str], config: SearchTermConfig
) -> MatchDetails:
    """Compute the full match explanation for a deal against a config."""
    case_sensitive = config.case_sensitive
    search_text = f"{title} {merchant or ''}".strip()
    haystack = _normalize(search_text, case_sensitive)

    search_term_matches = find_search_term_matches(
        search_text, config.search_term, case_sensitive, config.fuzzy_match
    )

    matched_segments: List[MatchSegment] = []
    for match in search_term_matches:
        segment = _find_segment(title, merchant, match, case_sensitive)
        if segment:
            matched_segments.append(segment)

    include_keyword_matches: List[str] = []
    if config.include_keywords:
        for keyword in config.include_keywords:
            if _normalize(keyword, case_sensitive) in haystack:
                include_keyword_matches.append(keyword)
                segment = _find_segment(title, merchant, keyword, case_sensitive)
                if segment:
                    matched_segments.append(segment)

        if len(include_keyword_matches) == len(config.include_keywords):
            include_status = (
                f"All required keywords found: {', '.join(include_keyword_matches)}"
            )
        else:
            missing = [
                k for k in config.include_keywords if k not in include_keyword_matches
            ]
            include_status = f"Missing required keywords: {', '.join(missing)}"
    else:
        include_status = "No include keywords configured"

    if config.exclude_keywords:
        excluded_found = [
            k
            for k in config.exclude_keywords
            if _normalize(k, case_sensitive) in haystack
        ]
        if excluded_found:
            exclude_status = f"Contains excluded keywords: {', '.join(excluded_found)}"
        else:
            exclude_status = (
                f"No excluded keywords found "
                f"(checked: {', '.join(config.exclude_keywords)})"
            )
    else:
        exclude_status = "No exclude keywords configured"

    if search_term_matches:
        filter_status = _describe_search_term_matches(
            search_term_matches, config.search_term
        )
    else:
        filter_status = f'No direct match found for search term "{config.search_term}"'

    return MatchDetails(
        search_text=search_text,
        matched_segments=matched_segments,
        search_term_matches=search_term_matches,
        include_keyword_matches=include_keyword_matches,
        exclude_keyword_status=exclude_status,
        filter_status=filter_status,
        include_keyword_status=include_status,
    )


def compute_match_details_for_display(
    title: str, merchant: Optional[str], search_term: str
) -> MatchDetails:
    """
    Best-effort explanation for records without usable stored details.

    Only the title, merchant and search term are known, so matching is
    case-insensitive and word-by-word.
    """
    search_text = f"{title} {merchant or ''}".strip()
    search_term_matches = find_search_term_matches(
        search_text, search_term, case_sensitive=False, fuzzy_match=True
    )

    matched_segments = []
    for match in search_term_matches:
        segment = _find_segment(title, merchant, match, case_sensitive=False)
        if segment:
            matched_segments.append(segment)

    if search_term_matches:
        filter_status = _describe_search_term_matches(search_term_matches, search_term)
    else:
        filter_status = f'Returned by HotUKDeals for search term "{search_term}"'

    return MatchDetails(
        search_text=search_text,
        matched_segments=matched_segments,
        search_term_matches=search_term_matches,
        include_keyword_matches=[],
        exclude_keyword_status="Filter info not available (old record)",
        filter_status=filter_status,
        include_keyword_status="Filter info not available (old record)",
    )


def format_match_summary(details: MatchDetails) -> str:
    """One-line "why matched" summary for notifications."""
    parts = []

    if details.matched_segments:
        first = details.matched_segments[0]
        parts.append(f'"{first.text}" matched "{first.matched_term}"')
    elif details.search_term_matches:
        parts.append(f"Matched: {', '.join(details.search_term_matches)}")

    if details.include_keyword_matches:
        parts.append(
            f"Required keywords found: {', '.join(details.include_keyword_matches)}"
        )

    if not parts:
        parts.append(SEARCH_FALLBACK_TEXT)

    return ". ".join(parts)


def format_match_details_for_ui(details: MatchDetails) -> Dict[str, Any]:
    """Shape match details for the dashboard's deal cards."""
    if details.search_term_matches:
        summary = f"Matched: {', '.join(details.search_term_matches)}"
    else:
        summary = SEARCH_FALLBACK_TEXT

    segments = [
        {
            "text": seg.text,
            "matched_term": seg.matched_term,
            "location": "in title" if seg.position == "title" else "in merchant",
        }
        for seg in details.matched_segments
    ]

    filter_info = ""
    if details.include_keyword_matches:
        filter_info = (
            f"Required keywords found: {', '.join(details.include_keyword_matches)}"
        )
    if details.exclude_keyword_status and "not available" not in details.exclude_keyword_status:
        if filter_info:
            filter_info += ". "
        filter_info += details.exclude_keyword_status
    if not filter_info:
        filter_info = "No keyword filters were applied"

    return {"summary": summary, "segments": segments, "filter_info": filter_info}


def serialize_match_details(details: MatchDetails) -> str:
    """Serialize match details to JSON for storage."""
    return json.dumps(details.to_dict())


def deserialize_match_details(serialized: Optional[str]) -> Optional[MatchDetails]:
    """Parse stored match details; returns None when absent or malformed."""
    if not serialized:
        return None

    try:
        data = json.loads(serialized)
        if not isinstance(data, dict):
            return None
        return MatchDetails.from_dict(data)
    except (ValueError, KeyError, TypeError):
        return None


def resolve_match_details(record: Union[StoredDeal, QueuedDeal]) -> MatchDetails:
    """Stored details for a deal record, recomputed if unreadable."""
    details = deserialize_match_details(record.match_details)
    if details is None:
        details = compute_match_details_for_display(
            record.title, record.merchant, record.search_term
        )
    return details
