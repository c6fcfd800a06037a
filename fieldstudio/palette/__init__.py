"""Command palette engine.

Ctrl+K opens a searchable list of every action in the archive.
Recently and frequently used commands float to the top.

Components:
    - models: Command, HistoryEntry, MatchResult
    - matcher: Fuzzy text matcher
    - history: Persisted usage history
    - ranking: Match + history -> ordered results
    - grouping: Ordered results -> display sections
    - session: Open/closed state machine, keyboard navigation
"""

from fieldstudio.palette.grouping import group_for_display
from fieldstudio.palette.history import CommandHistory
from fieldstudio.palette.matcher import fuzzy_match
from fieldstudio.palette.models import Command, ExecutionContext, MatchResult, MatchType
from fieldstudio.palette.ranking import rank
from fieldstudio.palette.session import PaletteSession, PaletteState

__all__ = [
    "Command",
    "CommandHistory",
    "ExecutionContext",
    "MatchResult",
    "MatchType",
    "PaletteSession",
    "PaletteState",
    "fuzzy_match",
    "group_for_display",
    "rank",
]
