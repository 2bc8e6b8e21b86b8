"""
Splits bullet text where the model glued several dated or numbered entries
together, e.g. "1776 Declared independence1783 Won war".

Pattern families are tried in table order; the first one with more than one
match wins and the text is cut at each match.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"


@dataclass(frozen=True)
class SplitPattern:
    name: str
    pattern: Pattern


SPLIT_PATTERNS: Tuple[SplitPattern, ...] = (
    SplitPattern("year", re.compile(r"\d{4}\s+[^0-9]+?(?=\d{4}\s+|$)")),
    SplitPattern("year_range", re.compile(
        r"\d{4}\s*[-–]\s*\d{4}\s+[^0-9]+?(?=\d{4}\s*[-–]\s*\d{4}\s+|$)")),
    SplitPattern("quarter", re.compile(
        r"Q[1-4](?:\s+\d{4})?:?\s+.+?(?=Q[1-4](?:\s+\d{4})?:?\s+|$)")),
    SplitPattern("month_year", re.compile(
        _MONTH + r"\s+\d{4}:?\s+.+?(?=" + _MONTH + r"\s+\d{4}|$)")),
    SplitPattern("numbered_list", re.compile(r"\d{1,2}[.)]\s+[^\d]+?(?=\d{1,2}[.)]\s+|$)")),
)


def _split_at_matches(text: str, pattern: Pattern) -> Optional[List[str]]:
    """Cut the text at every match start; lead-in text before the first match
    becomes its own segment. None when the family matches fewer than twice."""
    starts = [match.start() for match in pattern.finditer(text)]
    if len(starts) < 2:
        return None
    bounds = [0] + starts if starts[0] > 0 else starts
    segments = [text[a:b].strip() for a, b in zip(bounds, bounds[1:] + [len(text)])]
    return [s for s in segments if s]


def split_concatenated(text: str) -> Tuple[List[str], Optional[str]]:
    """Return (segments, family name) or ([text], None) when nothing applies."""
    stripped = text.strip()
    for family in SPLIT_PATTERNS:
        segments = _split_at_matches(stripped, family.pattern)
        if segments and len(segments) > 1:
            return segments, family.name
    return [text], None
