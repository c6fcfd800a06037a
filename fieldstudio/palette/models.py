"""Data models for the command palette.

This module defines:
    - Command: an invokable action supplied by the host catalog
    - ExecutionContext: what the palette knows when a command runs
    - HistoryEntry: persisted usage stats for one command
    - MatchType / MatchResult: one ranked row of palette output
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from fieldstudio.core.exceptions import AvailabilityPredicateError, ValidationError

Range = tuple[int, int]


class MatchType(str, Enum):
    """How a command's label matched the query.

    NONE is used for empty-query rows, where nothing was matched.
    """

    EXACT = "exact"
    PREFIX = "prefix"
    SUBSTRING = "substring"
    FUZZY = "fuzzy"
    NONE = "none"


@dataclass(frozen=True)
class ExecutionContext:
    """Passed to a command's action when the palette runs it.

    Attributes:
        query: Query text at the moment of execution
        trigger: "keyboard" (Enter) or "pointer" (click)
    """

    query: str = ""
    trigger: str = "keyboard"


@dataclass(frozen=True)
class Command:
    """An invokable action exposed to the palette.

    Owned by the host catalog. ``available`` is evaluated on every
    ranking pass and never cached, so it may depend on app state.
    """

    id: str
    label: str
    section: str
    action: Callable[[ExecutionContext], None] = field(compare=False, repr=False)
    icon: Optional[str] = None
    shortcut: Optional[str] = None  # Display text only, e.g. "Ctrl+S"
    description: Optional[str] = None
    available: Optional[Callable[[], bool]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Command id is required")
        if not self.label:
            raise ValidationError(f"Command {self.id!r} has no label")

    def is_available(self) -> bool:
        """Evaluate the availability predicate.

        Raises:
            AvailabilityPredicateError: If the predicate itself raises
        """
        if self.available is None:
            return True
        try:
            return bool(self.available())
        except Exception as e:
            raise AvailabilityPredicateError(self.id, e) from e

    def execute(self, context: Optional[ExecutionContext] = None) -> None:
        """Run the command's action."""
        self.action(context or ExecutionContext())


@dataclass
class HistoryEntry:
    """Usage stats for one command.

    Attributes:
        command_id: Unique key, matches Command.id
        last_used_at: Epoch milliseconds of the latest use
        use_count: Number of uses, always >= 1
    """

    command_id: str
    last_used_at: int
    use_count: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape: ``{commandId, usedAt, useCount}``."""
        return {
            "commandId": self.command_id,
            "usedAt": self.last_used_at,
            "useCount": self.use_count,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryEntry":
        """Build from the persisted shape.

        Raises:
            ValidationError: If any field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValidationError(f"History entry must be an object, got {type(data).__name__}")

        command_id = data.get("commandId")
        used_at = data.get("usedAt")
        use_count = data.get("useCount")

        if not isinstance(command_id, str) or not command_id:
            raise ValidationError("History entry has no commandId")
        # bool is an int subclass; reject it explicitly
        if not isinstance(used_at, int) or isinstance(used_at, bool):
            raise ValidationError(f"History entry {command_id!r} has invalid usedAt")
        if not isinstance(use_count, int) or isinstance(use_count, bool) or use_count < 1:
            raise ValidationError(f"History entry {command_id!r} has invalid useCount")

        return cls(command_id=command_id, last_used_at=used_at, use_count=use_count)


@dataclass
class MatchResult:
    """One command's outcome for a query. Produced fresh per query.

    Attributes:
        command: The matched command
        score: Final score (higher is better)
        match_type: Derived from the label's raw match score
        highlight_ranges: Ascending, non-overlapping [start, end) pairs
        highlight_field: Which text the ranges index into
            ("label", "section", "description") or None
        is_recent: Used within the recency window
        is_frequent: In the frequent partition and not recent
    """

    command: Command
    score: float
    match_type: MatchType = MatchType.NONE
    highlight_ranges: list[Range] = field(default_factory=list)
    highlight_field: Optional[str] = None
    is_recent: bool = False
    is_frequent: bool = False

    @property
    def command_id(self) -> str:
        return self.command.id
