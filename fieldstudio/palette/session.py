"""Palette session - the open/closed state machine behind the overlay.

States:
    CLOSED
    OPEN(query, current_index)

Transitions:
    open        CLOSED -> OPEN, query "" and index 0, results computed
    set_query   recompute results, index back to 0
    move_*      clamp to [0, rows - 1], no wraparound
    hover       set index without executing
    confirm     execute selected command, record usage, -> CLOSED
    cancel      -> CLOSED, query discarded

The session owns no widgets. The host hands in a key source (listened
to only while OPEN), a scheduler for the deferred input focus, and an
on_change callback to re-render. Scrolling the selected row into view
is the host's job; selected_location() tells it where that row is.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from fieldstudio.core.logging import get_logger
from fieldstudio.palette.grouping import (
    GroupedResults,
    RowLocation,
    flatten,
    group_for_display,
    locate,
)
from fieldstudio.palette.history import CommandHistory
from fieldstudio.palette.models import Command, ExecutionContext, MatchResult
from fieldstudio.palette.ranking import DEFAULT_RANK_WEIGHTS, RankWeights, rank

logger = get_logger(__name__)

# Host key names the palette reacts to; everything else passes through
KEY_ESCAPE = "Escape"
KEY_DOWN = "ArrowDown"
KEY_UP = "ArrowUp"
KEY_ENTER = "Enter"

# Runs after the overlay's query field exists
FOCUS_DELAY_MS = 0

KeyListener = Callable[[str], bool]
Scheduler = Callable[[Callable[[], None], int], Any]


def call_soon(callback: Callable[[], None], delay_ms: int = 0) -> None:
    """Scheduler that runs the callback immediately. For headless use and tests."""
    callback()


class PaletteState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class KeySource(ABC):
    """Somewhere global key presses come from.

    The listener returns True when it consumed the key.
    """

    @abstractmethod
    def add_key_listener(self, listener: KeyListener) -> None:
        pass

    @abstractmethod
    def remove_key_listener(self, listener: KeyListener) -> None:
        pass


class PaletteSession:
    """Cursor, query and lifecycle for one command palette.

    Only one session is expected to be open at a time. The history
    object is shared with the rest of the app.
    """

    def __init__(
        self,
        catalog: Callable[[], Sequence[Command]],
        history: CommandHistory,
        schedule: Scheduler = call_soon,
        key_source: Optional[KeySource] = None,
        focus_input: Optional[Callable[[], None]] = None,
        on_change: Optional[Callable[["PaletteSession"], None]] = None,
        weights: RankWeights = DEFAULT_RANK_WEIGHTS,
    ):
        self._catalog = catalog
        self._history = history
        self._schedule = schedule
        self._key_source = key_source
        self._focus_input = focus_input
        self._on_change = on_change
        self._weights = weights

        self._state = PaletteState.CLOSED
        self._query = ""
        self._index = 0
        self._results: list[MatchResult] = []
        self._groups: GroupedResults = {}
        self._rows: list[MatchResult] = []
        self._listening = False

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> PaletteState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == PaletteState.OPEN

    @property
    def query(self) -> str:
        return self._query

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def results(self) -> list[MatchResult]:
        """Ranked results, best first."""
        return list(self._results)

    @property
    def groups(self) -> GroupedResults:
        """Display groups, in display order."""
        return {name: list(members) for name, members in self._groups.items()}

    @property
    def rows(self) -> list[MatchResult]:
        """Selectable rows in display order; current_index indexes this."""
        return list(self._rows)

    @property
    def selected(self) -> Optional[MatchResult]:
        if not self.is_open or not self._rows:
            return None
        return self._rows[self._index]

    def selected_location(self) -> Optional[RowLocation]:
        """Group and offset of the selected row, for scroll-into-view."""
        if self.selected is None:
            return None
        return locate(self._groups, self._index)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """Open the palette with an empty query.

        Returns False if it was already open.
        """
        if self.is_open:
            return False

        self._history.load()
        self._state = PaletteState.OPEN
        self._query = ""
        self._index = 0
        self._recompute()
        self._attach_keys()
        self._schedule(self._focus, FOCUS_DELAY_MS)

        logger.info("Command palette opened", extra={"context": {"rows": len(self._rows)}})
        self._notify()
        return True

    def cancel(self) -> bool:
        """Close without executing. The query is not kept for next time."""
        if not self.is_open:
            return False
        self._close("cancel")
        return True

    def _close(self, reason: str) -> None:
        self._detach_keys()
        self._state = PaletteState.CLOSED
        self._query = ""
        self._index = 0
        self._results = []
        self._groups = {}
        self._rows = []
        logger.debug("Command palette closed", extra={"context": {"reason": reason}})
        self._notify()

    def _focus(self) -> None:
        # Closed before the deferred focus ran
        if not self.is_open:
            return
        if self._focus_input is not None:
            self._focus_input()

    # ------------------------------------------------------------------
    # Query and navigation
    # ------------------------------------------------------------------

    def set_query(self, text: str) -> None:
        """Replace the query, re-rank and move the cursor to the top."""
        if not self.is_open:
            return
        self._query = text
        self._index = 0
        self._recompute()
        self._notify()

    def refresh(self) -> None:
        """Re-rank for the current query, e.g. after the catalog changed.

        The cursor stays put unless its row disappeared.
        """
        if not self.is_open:
            return
        self._recompute()
        self._index = min(self._index, max(len(self._rows) - 1, 0))
        self._notify()

    def move_down(self) -> None:
        if not self.is_open or not self._rows:
            return
        self._index = min(self._index + 1, len(self._rows) - 1)
        self._notify()

    def move_up(self) -> None:
        if not self.is_open or not self._rows:
            return
        self._index = max(self._index - 1, 0)
        self._notify()

    def hover(self, index: int) -> bool:
        """Point at a row without running it.

        Returns False if the index is not a row.
        """
        if not self.is_open or not 0 <= index < len(self._rows):
            return False
        if index != self._index:
            self._index = index
            self._notify()
        return True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def confirm(self, trigger: str = "keyboard") -> bool:
        """Run the selected command, record it, close the palette.

        Returns False if there is nothing to run. If the command raises,
        the palette still closes, no usage is recorded and the exception
        propagates to the host.
        """
        result = self.selected
        if result is None:
            return False

        command = result.command
        context = ExecutionContext(query=self._query, trigger=trigger)
        try:
            command.execute(context)
        except Exception:
            logger.error(
                "Palette command failed",
                exc_info=True,
                extra={"context": {"command_id": command.id}},
            )
            self._close("error")
            raise

        self._history.record_usage(command.id)
        logger.info(
            "Palette command executed",
            extra={"context": {"command_id": command.id, "trigger": trigger}},
        )
        self._close("confirm")
        return True

    def select(self, index: int, trigger: str = "pointer") -> bool:
        """Click a row: hover it, then confirm."""
        if not self.hover(index):
            return False
        return self.confirm(trigger=trigger)

    def handle_key(self, key: str) -> bool:
        """React to a host key press.

        Returns True if the palette consumed the key; other keys pass
        through to the query field.
        """
        if not self.is_open:
            return False
        if key == KEY_ESCAPE:
            self.cancel()
        elif key == KEY_DOWN:
            self.move_down()
        elif key == KEY_UP:
            self.move_up()
        elif key == KEY_ENTER:
            self.confirm(trigger="keyboard")
        else:
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recompute(self) -> None:
        self._results = rank(self._catalog(), self._query, self._history, self._weights)
        self._groups = group_for_display(self._results, bool(self._query.strip()))
        self._rows = flatten(self._groups)

    def _attach_keys(self) -> None:
        if self._key_source is not None and not self._listening:
            self._key_source.add_key_listener(self.handle_key)
            self._listening = True

    def _detach_keys(self) -> None:
        if self._key_source is not None and self._listening:
            self._key_source.remove_key_listener(self.handle_key)
            self._listening = False

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
