"""tkinter adapter for the palette session.

Translates tk keysyms into the palette's key names, schedules the
deferred focus with ``after``, and binds a single ``<KeyPress>`` handler
only while a palette is listening.

Usage:
    entry = tk.Entry(overlay)
    session = PaletteSession(
        catalog=lambda: commands,
        history=history,
        schedule=TkScheduler(root),
        key_source=TkKeySource(root),
        focus_input=entry.focus_set,
    )
"""

import tkinter as tk
from typing import Any, Callable, Optional

from fieldstudio.core.logging import get_logger
from fieldstudio.palette.session import (
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_UP,
    KeyListener,
    KeySource,
)

logger = get_logger(__name__)

KEYSYM_MAP: dict[str, str] = {
    "Escape": KEY_ESCAPE,
    "Down": KEY_DOWN,
    "KP_Down": KEY_DOWN,
    "Up": KEY_UP,
    "KP_Up": KEY_UP,
    "Return": KEY_ENTER,
    "KP_Enter": KEY_ENTER,
}


def translate_keysym(keysym: str) -> Optional[str]:
    """Palette key name for a tk keysym, or None if the palette ignores it."""
    return KEYSYM_MAP.get(keysym)


class TkScheduler:
    """Scheduler backed by ``widget.after``."""

    def __init__(self, widget: Any):
        self._widget = widget

    def __call__(self, callback: Callable[[], None], delay_ms: int = 0) -> Any:
        return self._widget.after(delay_ms, callback)


class TkKeySource(KeySource):
    """Key source bound to a tk widget (usually the root window).

    The ``<KeyPress>`` binding exists only while at least one listener
    is registered.
    """

    def __init__(self, widget: Any, sequence: str = "<KeyPress>"):
        self._widget = widget
        self._sequence = sequence
        self._listeners: list[KeyListener] = []
        self._binding_id: Optional[str] = None

    @property
    def is_bound(self) -> bool:
        return self._binding_id is not None

    def add_key_listener(self, listener: KeyListener) -> None:
        self._listeners.append(listener)
        if self._binding_id is None:
            self._binding_id = self._widget.bind(self._sequence, self._dispatch, add="+")
            logger.debug("Palette keys bound", extra={"context": {"sequence": self._sequence}})

    def remove_key_listener(self, listener: KeyListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
        if not self._listeners and self._binding_id is not None:
            try:
                self._widget.unbind(self._sequence, self._binding_id)
            except tk.TclError:
                pass  # Widget already destroyed
            self._binding_id = None
            logger.debug("Palette keys unbound", extra={"context": {"sequence": self._sequence}})

    def _dispatch(self, event: Any) -> Optional[str]:
        key = translate_keysym(getattr(event, "keysym", ""))
        if key is None:
            return None
        for listener in list(self._listeners):
            if listener(key):
                return "break"  # prevent further propagation
        return None
