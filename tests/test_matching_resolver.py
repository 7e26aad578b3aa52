"""Tests for fuzzy scoring and tool name resolution."""

import pytest

from cleaner_core.scheduler.errors import (
    AmbiguousMatchError,
    InvalidArgumentError,
    NoMatchError,
    ToolResolutionError,
    UnknownToolError,
)
from cleaner_core.scheduler.matching import Scorer, SequenceScorer, fuzzy_search, normalize
from cleaner_core.scheduler.resolver import ToolNameResolver
from cleaner_core.tools.base import ToolRegistry

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestNormalize:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("CleanAppCaches", "clean app caches"),
            ("Cleaner_CleanTempFiles", "cleaner clean temp files"),
            ("  clean-App  caches ", "clean app caches"),
            ("HTTPCacheCleaner", "http cache cleaner"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize(raw) == expected


class TestSequenceScorer:
    def test_identical_after_normalization(self) -> None:
        assert SequenceScorer().score("clean app caches", "CleanAppCaches") == 1.0

    def test_word_order_ignored(self) -> None:
        assert SequenceScorer().score("caches app clean", "CleanAppCaches") == 1.0

    def test_substring_of_description(self) -> None:
        score = SequenceScorer().score(
            "application caches", "Clear application caches left behind by installed apps"
        )
        assert 0.9 < score < 1.0

    def test_unrelated_is_low(self) -> None:
        assert SequenceScorer().score("xyz_nonexistent_zzz", "CleanAppCaches") < 0.5

    def test_empty(self) -> None:
        assert SequenceScorer().score("", "CleanAppCaches") == 0.0


class TestFuzzySearch:
    def test_sorted_and_limited(self) -> None:
        items = ["clean temp", "clean temp files", "empty trash"]
        matches = fuzzy_search(
            "clean temp files", items, key=lambda s: (s,), scorer=SequenceScorer(),
            threshold=0.5, limit=2,
        )
        assert [m.item for m in matches] == ["clean temp files", "clean temp"]
        assert matches[0].score == 1.0


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolveArguments:
    def test_both_given(self, registry: ToolRegistry) -> None:
        with pytest.raises(InvalidArgumentError):
            ToolNameResolver(registry).resolve("CleanAppCaches", "clean app caches")

    def test_neither_given(self, registry: ToolRegistry) -> None:
        with pytest.raises(InvalidArgumentError):
            ToolNameResolver(registry).resolve()

    def test_blank_counts_as_missing(self, registry: ToolRegistry) -> None:
        with pytest.raises(InvalidArgumentError):
            ToolNameResolver(registry).resolve(tool_name="  ")


class TestResolveExactName:
    def test_registered_name(self, registry: ToolRegistry) -> None:
        assert ToolNameResolver(registry).resolve(tool_name="Cleaner_EmptyTrash") == "Cleaner_EmptyTrash"

    def test_unknown_name_suggests(self, registry: ToolRegistry) -> None:
        with pytest.raises(UnknownToolError) as exc_info:
            ToolNameResolver(registry).resolve(tool_name="Cleaner_CleanTmpFiles")
        error = exc_info.value
        assert error.candidates[0][0] == "Cleaner_CleanTempFiles"
        assert len(error.candidates) <= 3
        assert "Did you mean: Cleaner_CleanTempFiles" in str(error)

    def test_unknown_name_without_suggestions(self, registry: ToolRegistry) -> None:
        with pytest.raises(UnknownToolError) as exc_info:
            ToolNameResolver(registry).resolve(tool_name="qqqqqqqqqqqq")
        assert exc_info.value.candidates == []
        assert str(exc_info.value) == 'Tool "qqqqqqqqqqqq" not found.'


class TestResolveQuery:
    def test_strong_match_resolves(self, registry: ToolRegistry) -> None:
        assert ToolNameResolver(registry).resolve(tool_query="clean app caches") == "CleanAppCaches"

    def test_typo_resolves(self, registry: ToolRegistry) -> None:
        assert ToolNameResolver(registry).resolve(tool_query="clean temp fles") == "Cleaner_CleanTempFiles"

    def test_nonsense_never_resolves(self, registry: ToolRegistry) -> None:
        with pytest.raises((NoMatchError, AmbiguousMatchError)):
            ToolNameResolver(registry).resolve(tool_query="xyz_nonexistent_zzz")

    def test_no_match(self, registry: ToolRegistry) -> None:
        with pytest.raises(NoMatchError):
            ToolNameResolver(registry).resolve(tool_query="qqqqqqqqqqqqqqqqqqqqqqqq")

    def test_tie_is_ambiguous(self) -> None:
        registry = ToolRegistry()
        registry.register_function("Cache_A", "remove cache files", lambda params: None)
        registry.register_function("Cache_B", "remove cache files", lambda params: None)
        with pytest.raises(AmbiguousMatchError) as exc_info:
            ToolNameResolver(registry).resolve(tool_query="remove cache files")
        error = exc_info.value
        assert [name for name, _ in error.candidates] == ["Cache_A", "Cache_B"]
        assert "Cache_A (similarity: 100%)" in str(error)

    def test_weak_best_is_ambiguous(self) -> None:
        class FixedScorer(Scorer):
            def score(self, query: str, candidate: str) -> float:
                return 0.65

        registry = ToolRegistry()
        registry.register_function("Only_Tool", "does one thing", lambda params: None)
        with pytest.raises(AmbiguousMatchError) as exc_info:
            ToolNameResolver(registry, scorer=FixedScorer()).resolve(tool_query="anything")
        assert exc_info.value.candidates == [("Only_Tool", 0.65)]

    def test_scorer_is_swappable(self) -> None:
        class PrefixScorer(Scorer):
            def score(self, query: str, candidate: str) -> float:
                return 1.0 if candidate.lower().startswith(query.lower()) else 0.0

        registry = ToolRegistry()
        registry.register_function("Trash_Empty", "empty it", lambda params: None)
        registry.register_function("Temp_Clean", "clean it", lambda params: None)
        resolver = ToolNameResolver(registry, scorer=PrefixScorer())
        assert resolver.resolve(tool_query="temp") == "Temp_Clean"

    def test_errors_share_base(self) -> None:
        assert issubclass(NoMatchError, ToolResolutionError)
        assert issubclass(AmbiguousMatchError, ToolResolutionError)
        assert issubclass(UnknownToolError, ToolResolutionError)
