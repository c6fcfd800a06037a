"""Field Studio Test Suite.

Test organization mirrors fieldstudio/ structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── test_core/           # Config, logging, exceptions
    ├── test_storage/        # Key-value backends
    ├── test_palette/        # Matcher, history, ranking, grouping, session
    └── test_gui/            # tkinter adapter

Markers:
    - @pytest.mark.slow: Tests taking > 1 second
    - @pytest.mark.integration: Tests requiring external services
"""
