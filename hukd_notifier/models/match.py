"""
Match explanation models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

SEGMENT_POSITIONS = ("title", "merchant")


@dataclass
class MatchSegment:
    """A snippet of deal text around a matched term."""

    text: str
    matched_term: str
    position: str  # "title" or "merchant"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "matchedTerm": self.matched_term,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchSegment":
        position = data["position"]
        if position not in SEGMENT_POSITIONS:
            raise ValueError(f"Invalid segment position: {position}")
        return cls(
            text=str(data["text"]),
            matched_term=str(data["matchedTerm"]),
            position=position,
        )


@dataclass
class MatchDetails:
    """Explanation of what matched (or did not) for one deal and config."""

    search_text: str
    matched_segments: List[MatchSegment] = field(default_factory=list)
    search_term_matches: List[str] = field(default_factory=list)
    include_keyword_matches: List[str] = field(default_factory=list)
    exclude_keyword_status: str = ""
    filter_status: str = ""
    include_keyword_status: str = ""

    def to_dict(self) -> Dict[str, Any]:
        # camelCase keys keep stored JSON readable by the dashboard
        return {
            "searchText": self.search_text,
            "matchedSegments": [s.to_dict() for s in self.matched_segments],
            "searchTermMatches": list(self.search_term_matches),
            "includeKeywordMatches": list(self.include_keyword_matches),
            "excludeKeywordStatus": self.exclude_keyword_status,
            "filterStatus": self.filter_status,
            "includeKeywordStatus": self.include_keyword_status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchDetails":
        return cls(
            search_text=str(data["searchText"]),
            matched_segments=[
                MatchSegment.from_dict(s) for s in data.get("matchedSegments", [])
            ],
            search_term_matches=[str(s) for s in data.get("searchTermMatches", [])],
            include_keyword_matches=[
                str(s) for s in data.get("includeKeywordMatches", [])
            ],
            exclude_keyword_status=str(data.get("excludeKeywordStatus", "")),
            filter_status=str(data.get("filterStatus", "")),
            include_keyword_status=str(data.get("includeKeywordStatus", "")),
        )
