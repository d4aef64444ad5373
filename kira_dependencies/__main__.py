"""
Executable module for kira-dependencies.

Running:
    python -m kira_dependencies

is equivalent to:
    kira-dependencies
"""

from __future__ import annotations

import sys

from kira_dependencies.cli import main

if __name__ == "__main__":
    sys.exit(main())
