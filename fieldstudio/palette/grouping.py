"""Grouping - splits ranked results into display sections.

With a query, everything goes under "Search Results". Without one, the
palette shows "Recent", then "Frequent", then one group per command
section in the order sections first appear. Rank order is kept inside
every group, and each result lands in exactly one group.

The presentation layer renders groups but moves the cursor over a flat
row index; flatten() and locate() convert between the two.
"""

from dataclasses import dataclass
from typing import Sequence

from fieldstudio.palette.models import MatchResult

SEARCH_RESULTS_GROUP = "Search Results"
RECENT_GROUP = "Recent"
FREQUENT_GROUP = "Frequent"

GroupedResults = dict[str, list[MatchResult]]


@dataclass(frozen=True)
class RowLocation:
    """Where a flat row index sits in the grouped display."""

    group: str
    offset: int  # Position within the group


def group_for_display(results: Sequence[MatchResult], query_non_empty: bool) -> GroupedResults:
    """Partition ranked results into ordered display groups.

    Args:
        results: Output of rank(), best first
        query_non_empty: Whether the user has typed a query

    Returns:
        Insertion-ordered mapping of group name to results. Empty groups
        are left out.
    """
    if query_non_empty:
        return {SEARCH_RESULTS_GROUP: list(results)} if results else {}

    recent = [r for r in results if r.is_recent]
    frequent = [r for r in results if r.is_frequent and not r.is_recent]

    by_section: GroupedResults = {}
    for result in results:
        if result.is_recent or result.is_frequent:
            continue
        by_section.setdefault(result.command.section, []).append(result)

    groups: GroupedResults = {}
    if recent:
        groups[RECENT_GROUP] = recent
    if frequent:
        groups[FREQUENT_GROUP] = frequent
    for section, members in by_section.items():
        # A command section literally named "Recent"/"Frequent" shares the group
        groups.setdefault(section, []).extend(members)
    return groups


def flatten(groups: GroupedResults) -> list[MatchResult]:
    """Rows in display order: group by group, top to bottom."""
    return [result for members in groups.values() for result in members]


def locate(groups: GroupedResults, index: int) -> RowLocation:
    """Map a flat row index to its group and offset.

    Raises:
        IndexError: If index is outside the rows
    """
    if index < 0:
        raise IndexError(f"Row index out of range: {index}")
    remaining = index
    for name, members in groups.items():
        if remaining < len(members):
            return RowLocation(group=name, offset=remaining)
        remaining -= len(members)
    raise IndexError(f"Row index out of range: {index}")
