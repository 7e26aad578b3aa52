"""
TOOL_NAME_RESOLVER
==================

Maps a task's target to exactly one registered tool name.

A task names its tool either exactly (``toolName``) or by description
(``toolQuery``). Resolution is pure computation over a snapshot of the
registry; nothing here awaits.

Resolution Rules
----------------
- Exactly one of toolName / toolQuery → otherwise ``InvalidArgumentError``
- toolName registered → that name
- toolName not registered → ``UnknownToolError`` with up to 3 names scoring
  at least ``suggestion_threshold`` against the name
- toolQuery → every tool is scored against its name and its description
  (best of the two). Below ``search_threshold`` is not a candidate.

  - no candidates → ``NoMatchError``
  - best candidate above ``accept_threshold`` and no tie for first → its name
  - otherwise → ``AmbiguousMatchError`` listing the top candidates

Usage::

    resolver = ToolNameResolver(registry)
    resolver.resolve(tool_query="clean app caches")   # "CleanAppCaches"
"""

import logging
import math
from typing import List, Optional, Tuple

from ..config.loader import ResolverConfig
from ..tools.base import ToolRegistry
from .errors import (
    AmbiguousMatchError,
    InvalidArgumentError,
    NoMatchError,
    UnknownToolError,
)
from .matching import Match, Scorer, SequenceScorer, fuzzy_search

logger = logging.getLogger(__name__)


class ToolNameResolver:
    """Resolve an exact tool name or a free-text query to one tool name."""

    def __init__(
        self,
        registry: ToolRegistry,
        scorer: Optional[Scorer] = None,
        config: Optional[ResolverConfig] = None
    ):
        self.registry = registry
        self.scorer = scorer or SequenceScorer()
        self.config = config or ResolverConfig()

    def resolve(self, tool_name: Optional[str] = None, tool_query: Optional[str] = None) -> str:
        """
        Resolve to a registered tool name.

        Args:
            tool_name: Exact tool name
            tool_query: Free-text description of the tool

        Returns:
            Registered tool name

        Raises:
            InvalidArgumentError: both or neither argument given
            UnknownToolError: exact name not registered
            NoMatchError: query matched nothing
            AmbiguousMatchError: query matched without a clear winner
        """
        has_name = bool(tool_name and tool_name.strip())
        has_query = bool(tool_query and tool_query.strip())
        if has_name == has_query:
            raise InvalidArgumentError(
                "Provide exactly one of toolName or toolQuery"
            )

        if has_name:
            return self._resolve_exact(tool_name.strip())
        return self._resolve_query(tool_query.strip())

    def suggest(self, tool_name: str) -> List[Tuple[str, float]]:
        """Registered names similar to ``tool_name``, best first."""
        matches = fuzzy_search(
            tool_name,
            self.registry.list_all(),
            key=lambda item: (item[0],),
            scorer=self.scorer,
            threshold=self.config.suggestion_threshold,
            limit=self.config.max_candidates,
        )
        return self._as_pairs(matches)

    def _resolve_exact(self, tool_name: str) -> str:
        if self.registry.has(tool_name):
            return tool_name
        suggestions = self.suggest(tool_name)
        logger.info(f"Unknown tool name '{tool_name}', suggestions: {suggestions}")
        raise UnknownToolError(tool_name, suggestions)

    def _resolve_query(self, query: str) -> str:
        matches = fuzzy_search(
            query,
            self.registry.list_all(),
            key=lambda item: item,
            scorer=self.scorer,
            threshold=self.config.search_threshold,
        )
        if not matches:
            logger.info(f"Tool query '{query}' matched nothing")
            raise NoMatchError(query)

        best = matches[0]
        tied = [m for m in matches if math.isclose(m.score, best.score, abs_tol=1e-9)]
        if best.score > self.config.accept_threshold and len(tied) == 1:
            name = best.item[0]
            logger.info(f"Tool query '{query}' resolved to {name} (score {best.score:.2f})")
            return name

        candidates = self._as_pairs(matches[:self.config.max_candidates])
        logger.info(f"Tool query '{query}' is ambiguous: {candidates}")
        raise AmbiguousMatchError(query, candidates)

    @staticmethod
    def _as_pairs(matches: List[Match]) -> List[Tuple[str, float]]:
        return [(m.item[0], round(m.score, 4)) for m in matches]
