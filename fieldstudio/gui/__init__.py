"""GUI package - tkinter glue for the command palette.

The palette engine is toolkit-agnostic; this package adapts it to tk
keysyms, ``after`` scheduling and widget bindings.
"""
