"""
FUZZY_MATCHING
==============

Approximate text similarity used to find a tool from a natural-language
query.

Scoring is isolated behind ``Scorer`` so the algorithm can be swapped without
touching the resolver. The default ``SequenceScorer`` uses ``difflib`` and
returns a similarity in [0, 1] (1.0 = identical after normalization).

Normalization
-------------
Tool names are usually CamelCase or snake_case identifiers while queries are
prose, so both sides are normalized first::

    "Cleaner_CleanAppCaches"  → "cleaner clean app caches"
    "clean  App-caches"       → "clean app caches"

Similarity
----------
The best of three views of the pair:

1. **Full ratio**: ``SequenceMatcher.ratio()`` of the normalized strings.
2. **Token-sort ratio**: same, after sorting words (word order ignored).
3. **Partial ratio**: the shorter string against the best-aligned window of
   the longer one (handles "app caches" inside a long description). Scaled
   by 0.95 so a substring never ties with a true exact match, and skipped
   for very short strings where any window matches.

Usage::

    scorer = SequenceScorer()
    scorer.score("clean app caches", "CleanAppCaches")   # 1.0

    matches = fuzzy_search(
        "clean app caches",
        registry.list_all(),
        key=lambda item: item,          # score name and description
        scorer=scorer,
        threshold=0.6,
    )
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Callable, Iterable, List, Optional, Sequence

_CAMEL_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_CAMEL_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s_\-\[\]().,:;/\\]+")

PARTIAL_WEIGHT = 0.95
MIN_PARTIAL_LENGTH = 3


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class Match:
    """One search hit."""
    item: Any
    score: float  # similarity in [0, 1]


# ============================================================================
# SCORERS
# ============================================================================

def normalize(text: str) -> str:
    """Split identifiers into words, lowercase, collapse separators."""
    text = _CAMEL_ACRONYM.sub(r"\1 \2", text or "")
    text = _CAMEL_LOWER_UPPER.sub(r"\1 \2", text)
    return _SEPARATORS.sub(" ", text).strip().lower()


class Scorer(ABC):
    """Similarity between a query and one corpus string."""

    @abstractmethod
    def score(self, query: str, candidate: str) -> float:
        """Return similarity in [0, 1]."""
        pass


class SequenceScorer(Scorer):
    """difflib-based scorer (full, token-sort and partial ratios)."""

    def score(self, query: str, candidate: str) -> float:
        q = normalize(query)
        c = normalize(candidate)
        if not q or not c:
            return 0.0
        if q == c:
            return 1.0

        best = SequenceMatcher(None, q, c).ratio()

        q_sorted = " ".join(sorted(q.split()))
        c_sorted = " ".join(sorted(c.split()))
        best = max(best, SequenceMatcher(None, q_sorted, c_sorted).ratio())

        best = max(best, PARTIAL_WEIGHT * self._partial_ratio(q, c))
        return min(best, 1.0)

    @staticmethod
    def _partial_ratio(a: str, b: str) -> float:
        shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
        if len(shorter) < MIN_PARTIAL_LENGTH or len(shorter) == len(longer):
            return 0.0

        best = 0.0
        width = len(shorter)
        blocks = SequenceMatcher(None, shorter, longer).get_matching_blocks()
        for block in blocks:
            start = max(block.b - block.a, 0)
            window = longer[start:start + width]
            if not window:
                continue
            ratio = SequenceMatcher(None, shorter, window).ratio()
            if ratio > best:
                best = ratio
                if best >= 0.995:
                    break
        return best


# ============================================================================
# SEARCH
# ============================================================================

def fuzzy_search(
    query: str,
    items: Iterable[Any],
    key: Callable[[Any], Sequence[str]],
    scorer: Scorer,
    threshold: float = 0.0,
    limit: Optional[int] = None
) -> List[Match]:
    """
    Score every item and return matches at or above ``threshold``.

    Args:
        query: Free text to look for
        items: Corpus items
        key: Returns the strings of an item to score against; the item's
            score is the best of them
        scorer: Similarity function
        threshold: Minimum similarity to keep
        limit: Max matches to return

    Returns:
        Matches sorted by score, best first (ties keep corpus order)
    """
    matches = []
    for item in items:
        fields = [text for text in key(item) if text]
        if not fields:
            continue
        score = max(scorer.score(query, text) for text in fields)
        if score >= threshold:
            matches.append(Match(item=item, score=score))

    matches.sort(key=lambda m: m.score, reverse=True)
    if limit is not None:
        matches = matches[:limit]
    return matches
