"""Ranking engine - turns catalog + query + history into ordered rows.

Two modes:

Empty query
    Recent commands (used within the recency window), then frequent ones
    (other history entries), then a handful of the remaining catalog in
    catalog order. Synthetic scores 1000 / 900 / 0 only fix the section
    order; within a section, history order is kept.

Search
    Each available command's label, section and description are matched
    against the query with per-field weights. The best weighted field
    wins (label > section > description on ties) and supplies the
    highlight ranges. A capped history boost is added, then results are
    stable-sorted by score so equal scores keep catalog order.

Availability predicates are evaluated once per command per call. A
predicate that raises only excludes that command from this call.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from fieldstudio.core.exceptions import AvailabilityPredicateError
from fieldstudio.core.logging import get_logger
from fieldstudio.palette.history import CommandHistory
from fieldstudio.palette.matcher import DEFAULT_WEIGHTS, FuzzyMatch, MatchWeights, fuzzy_match
from fieldstudio.palette.models import Command, MatchResult, MatchType

logger = get_logger(__name__)


@dataclass(frozen=True)
class RankWeights:
    """Ranking constants. Override per call to tune the palette."""

    label_weight: float = 1.0
    section_weight: float = 0.8
    description_weight: float = 0.6

    history_boost_step: float = 5.0  # per recorded use
    history_boost_cap: float = 25.0

    recent_limit: int = 5
    frequent_limit: int = 5
    remaining_limit: int = 10

    recent_score: float = 1000.0
    frequent_score: float = 900.0
    remaining_score: float = 0.0

    # Label score -> MatchType
    exact_threshold: float = 100.0
    prefix_threshold: float = 80.0
    substring_threshold: float = 60.0

    match: MatchWeights = DEFAULT_WEIGHTS


DEFAULT_RANK_WEIGHTS = RankWeights()


def available_commands(catalog: Sequence[Command]) -> list[Command]:
    """Commands whose availability predicate passes right now.

    Commands with a raising predicate are left out and logged.
    """
    available: list[Command] = []
    for command in catalog:
        try:
            if command.is_available():
                available.append(command)
        except AvailabilityPredicateError as e:
            logger.warning(
                "Command excluded: availability check failed",
                extra={"context": {"command_id": e.command_id, "error": str(e.cause)}},
            )
    return available


def partition_history(
    history: CommandHistory,
    commands: Sequence[Command],
    weights: RankWeights = DEFAULT_RANK_WEIGHTS,
) -> tuple[list[Command], list[Command]]:
    """Split history into (recent, frequent) commands.

    Walks history in store order, skipping ids that are not among
    ``commands``. Recent entries go to the first list, the rest to the
    second; each list is capped independently.
    """
    by_id: dict[str, Command] = {}
    for command in commands:
        by_id.setdefault(command.id, command)

    recent: list[Command] = []
    frequent: list[Command] = []
    now = history.now_millis()
    for entry in history.entries():
        command = by_id.get(entry.command_id)
        if command is None:
            continue
        if history.is_recent_entry(entry, now):
            if len(recent) < weights.recent_limit:
                recent.append(command)
        elif len(frequent) < weights.frequent_limit:
            frequent.append(command)
    return recent, frequent


def label_match_type(label_score: float, weights: RankWeights = DEFAULT_RANK_WEIGHTS) -> MatchType:
    """Classify a raw label score."""
    if label_score >= weights.exact_threshold:
        return MatchType.EXACT
    if label_score >= weights.prefix_threshold:
        return MatchType.PREFIX
    if label_score >= weights.substring_threshold:
        return MatchType.SUBSTRING
    return MatchType.FUZZY


def history_boost(
    history: CommandHistory, command_id: str, weights: RankWeights = DEFAULT_RANK_WEIGHTS
) -> float:
    """Score bonus for a command that has been used before."""
    entry = history.get(command_id)
    if entry is None:
        return 0.0
    return min(entry.use_count * weights.history_boost_step, weights.history_boost_cap)


def rank(
    catalog: Sequence[Command],
    query: str,
    history: CommandHistory,
    weights: RankWeights = DEFAULT_RANK_WEIGHTS,
) -> list[MatchResult]:
    """Rank the catalog for a query.

    Args:
        catalog: Every command the host currently knows about
        query: What the user typed; surrounding whitespace is ignored
        history: Usage history for recency/frequency signals
        weights: Ranking constants

    Returns:
        MatchResults, best first
    """
    commands = available_commands(catalog)
    recent, frequent = partition_history(history, commands, weights)
    pattern = query.strip()

    if not pattern:
        return _rank_empty_query(commands, recent, frequent, weights)

    recent_ids = {c.id for c in recent}
    frequent_ids = {c.id for c in frequent}
    results: list[MatchResult] = []

    for command in commands:
        result = _match_command(command, pattern, weights)
        if result is None:
            continue
        result.score += history_boost(history, command.id, weights)
        result.is_recent = command.id in recent_ids
        result.is_frequent = command.id in frequent_ids
        results.append(result)

    # list.sort is stable, so equal scores keep catalog order
    results.sort(key=lambda r: r.score, reverse=True)

    logger.debug(
        "Palette ranked",
        extra={"context": {"query": pattern, "candidates": len(commands), "hits": len(results)}},
    )
    return results


def _rank_empty_query(
    commands: Sequence[Command],
    recent: Sequence[Command],
    frequent: Sequence[Command],
    weights: RankWeights,
) -> list[MatchResult]:
    results = [
        MatchResult(command=c, score=weights.recent_score, is_recent=True) for c in recent
    ]
    results.extend(
        MatchResult(command=c, score=weights.frequent_score, is_frequent=True) for c in frequent
    )

    shown = {r.command.id for r in results}
    remaining = [c for c in commands if c.id not in shown]
    results.extend(
        MatchResult(command=c, score=weights.remaining_score)
        for c in remaining[: weights.remaining_limit]
    )
    return results


def _match_command(command: Command, pattern: str, weights: RankWeights) -> Optional[MatchResult]:
    """Best weighted field match for one command, or None if nothing matched."""
    label_match = fuzzy_match(command.label, pattern, weights.match)
    fields: list[tuple[str, FuzzyMatch, float]] = [
        ("label", label_match, weights.label_weight),
        ("section", fuzzy_match(command.section, pattern, weights.match), weights.section_weight),
    ]
    if command.description:
        fields.append(
            (
                "description",
                fuzzy_match(command.description, pattern, weights.match),
                weights.description_weight,
            )
        )

    best: Optional[tuple[str, FuzzyMatch, float]] = None
    for name, result, weight in fields:
        if not result.matched:
            continue
        weighted = result.score * weight
        # Strict comparison: earlier fields win ties
        if best is None or weighted > best[2]:
            best = (name, result, weighted)

    if best is None:
        return None

    name, result, weighted = best
    label_score = label_match.score if label_match.matched else 0.0
    return MatchResult(
        command=command,
        score=weighted,
        match_type=label_match_type(label_score, weights),
        highlight_ranges=list(result.ranges),
        highlight_field=name,
    )
