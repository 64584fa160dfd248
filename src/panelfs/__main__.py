"""panelfs - package entry point.

Enables running the project with:

    python -m panelfs ...
"""

from __future__ import annotations

from plugins.cli.plugin import main

if __name__ == "__main__":
    main()
