"""Fuzzy matcher - scores a query against one piece of text.

Rules are tried in order and the first that applies wins:

    exact      text equals pattern (case-insensitive)        100
    prefix     text starts with pattern                       80
    substring  pattern occurs anywhere                        60
    fuzzy      pattern chars appear in order                  40 base
               +5 per char that continues the previous match
               +10 per char on a word boundary
               -2 per gap between matched runs

Fuzzy scores are clamped to [0, fuzzy_ceiling] so a long scattered match
never outranks a contiguous one. All numbers live in MatchWeights and
can be overridden per call.

Also carries the small helpers the rest of the app uses for list
filtering and HTML highlighting.
"""

import html
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from fieldstudio.palette.models import MatchType, Range

T = TypeVar("T")

# A match on the character after one of these counts as a word start
WORD_SEPARATORS = frozenset(" -")


@dataclass(frozen=True)
class MatchWeights:
    """Scoring constants for fuzzy_match."""

    exact: float = 100.0
    prefix: float = 80.0
    substring: float = 60.0
    fuzzy_base: float = 40.0
    consecutive_bonus: float = 5.0
    boundary_bonus: float = 10.0
    gap_penalty: float = 2.0
    fuzzy_ceiling: float = 59.0


DEFAULT_WEIGHTS = MatchWeights()


@dataclass(frozen=True)
class FuzzyMatch:
    """Outcome of matching one pattern against one text.

    Attributes:
        matched: Whether the pattern matched at all
        score: 0 when unmatched
        ranges: Ascending, non-overlapping [start, end) spans of the text
        kind: Which rule produced the match
    """

    matched: bool
    score: float = 0.0
    ranges: list[Range] = field(default_factory=list)
    kind: MatchType = MatchType.NONE


NO_MATCH = FuzzyMatch(matched=False)


def fuzzy_match(text: str, pattern: str, weights: MatchWeights = DEFAULT_WEIGHTS) -> FuzzyMatch:
    """Match pattern against text.

    An empty pattern matches everything with score 0 and no ranges.
    Callers route empty queries elsewhere; this is the safe fallback.

    Args:
        text: Candidate text (label, section, description...)
        pattern: What the user typed
        weights: Scoring constants

    Returns:
        FuzzyMatch; ``matched`` is False if the pattern is not a
        subsequence of the text
    """
    if not pattern:
        return FuzzyMatch(matched=True, score=0.0, ranges=[], kind=MatchType.NONE)

    text_lower, positions = _lower_with_positions(text)
    pattern_lower = pattern.lower()

    if text_lower == pattern_lower:
        return FuzzyMatch(True, weights.exact, [(0, len(text))], MatchType.EXACT)

    if text_lower.startswith(pattern_lower):
        ranges = _to_text_ranges([(0, len(pattern_lower))], positions)
        return FuzzyMatch(True, weights.prefix, ranges, MatchType.PREFIX)

    index = text_lower.find(pattern_lower)
    if index >= 0:
        return FuzzyMatch(
            True,
            weights.substring,
            _to_text_ranges([(index, index + len(pattern_lower))], positions),
            MatchType.SUBSTRING,
        )

    result = _subsequence_match(text_lower, pattern_lower, weights)
    if not result.matched:
        return result
    return FuzzyMatch(True, result.score, _to_text_ranges(result.ranges, positions), result.kind)


def _lower_with_positions(text: str) -> tuple[str, Optional[list[int]]]:
    """Lower-case text, plus the source index of every lowered char.

    Positions are None when lowering kept the length ("İ" is one that
    does not: it lowers to two code points).
    """
    lowered = text.lower()
    if len(lowered) == len(text):
        return lowered, None
    positions: list[int] = []
    for i, char in enumerate(text):
        positions.extend([i] * len(char.lower()))
    return lowered, positions


def _to_text_ranges(ranges: list[Range], positions: Optional[list[int]]) -> list[Range]:
    """Map ranges over the lowered text back onto the original text."""
    if positions is None:
        return ranges
    mapped: list[Range] = []
    for start, end in ranges:
        start, end = positions[start], positions[end - 1] + 1
        # Two lowered chars from one source char can touch across runs
        if mapped and start <= mapped[-1][1]:
            mapped[-1] = (mapped[-1][0], max(end, mapped[-1][1]))
        else:
            mapped.append((start, end))
    return mapped


def _subsequence_match(text: str, pattern: str, weights: MatchWeights) -> FuzzyMatch:
    """Single forward pass, greedy: each pattern char takes its first
    occurrence after the previous one."""
    score = weights.fuzzy_base
    ranges: list[Range] = []
    pattern_index = 0
    previous = -1
    run_start = -1

    for i, char in enumerate(text):
        if pattern_index == len(pattern):
            break
        if char != pattern[pattern_index]:
            continue

        if previous < 0:
            run_start = i
        elif i == previous + 1:
            score += weights.consecutive_bonus
        else:
            score -= weights.gap_penalty
            ranges.append((run_start, previous + 1))
            run_start = i

        if i == 0 or text[i - 1] in WORD_SEPARATORS:
            score += weights.boundary_bonus

        previous = i
        pattern_index += 1

    if pattern_index < len(pattern):
        return NO_MATCH

    ranges.append((run_start, previous + 1))
    score = max(0.0, min(score, weights.fuzzy_ceiling))
    return FuzzyMatch(True, score, ranges, MatchType.FUZZY)


def fuzzy_score(pattern: str, text: str) -> float:
    """Score of pattern against text, 0 if no match or either is empty."""
    if not pattern or not text:
        return 0.0
    return fuzzy_match(text, pattern).score


def fuzzy_match_simple(pattern: str, text: str) -> bool:
    """True if pattern matches text. Empty pattern always matches."""
    if not pattern:
        return True
    if not text:
        return False
    return fuzzy_match(text, pattern).matched


def fuzzy_search(
    items: Iterable[T], pattern: str, key: Callable[[T], str]
) -> list[tuple[T, FuzzyMatch]]:
    """Match every item and return the hits, best first.

    A blank pattern returns every item with a zero-score match, in the
    original order. Equal scores keep their input order.
    """
    if not pattern.strip():
        return [(item, FuzzyMatch(True)) for item in items]

    hits: list[tuple[T, FuzzyMatch]] = []
    for item in items:
        result = fuzzy_match(key(item), pattern)
        if result.matched:
            hits.append((item, result))

    hits.sort(key=lambda pair: pair[1].score, reverse=True)
    return hits


def fuzzy_filter(
    items: Sequence[T],
    query: str,
    key: Optional[Callable[[T], str]] = None,
    threshold: float = 0.0,
) -> list[T]:
    """Items whose text matches query with at least ``threshold`` score."""
    if not query.strip():
        return list(items)

    get_text = key or str
    kept: list[T] = []
    for item in items:
        result = fuzzy_match(get_text(item), query)
        if result.matched and result.score >= threshold:
            kept.append(item)
    return kept


def fuzzy_sort(
    items: Sequence[T],
    query: str,
    key: Optional[Callable[[T], str]] = None,
) -> list[T]:
    """Matching items by score descending, ties alphabetical.

    With a blank query every item is returned, sorted alphabetically.
    """
    get_text = key or str

    if not query.strip():
        return sorted(items, key=get_text)

    scored: list[tuple[float, str, T]] = []
    for item in items:
        text = get_text(item)
        result = fuzzy_match(text, query)
        if result.matched:
            scored.append((result.score, text, item))

    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return [item for _, _, item in scored]


def highlight_matches(pattern: str, text: str, tag: str = "mark") -> str:
    """HTML-escape text and wrap the matched spans in ``<tag>``.

    Returns the escaped text unchanged when nothing matches.
    """
    if not pattern or not text:
        return html.escape(text or "")

    result = fuzzy_match(text, pattern)
    if not result.matched or not result.ranges:
        return html.escape(text)

    return render_ranges(text, result.ranges, tag)


def render_ranges(text: str, ranges: Sequence[Range], tag: str = "mark") -> str:
    """HTML-escape text, wrapping each [start, end) span in ``<tag>``."""
    parts: list[str] = []
    last = 0
    for start, end in ranges:
        parts.append(html.escape(text[last:start]))
        parts.append(f"<{tag}>{html.escape(text[start:end])}</{tag}>")
        last = end
    parts.append(html.escape(text[last:]))
    return "".join(parts)
