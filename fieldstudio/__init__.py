"""Field Studio command palette engine.

Search, ranking and selection behind the archive's command palette.

Layers:
    - core: Configuration, logging, exceptions
    - storage: Key-value persistence (memory, file, SQLite)
    - palette: Matcher, history, ranking, grouping, session
    - gui: tkinter adapter for keys, scheduling and focus
"""

__version__ = "0.1.0"
