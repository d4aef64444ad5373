"""
Utility helpers for kira-dependencies.

- Console output helpers (Rich-based)
- Logging configuration and secret masking
- Blocking HTTP client
- Version comparison helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

from kira_dependencies.utils.logger import (
    get_logger,
    level_for_verbosity,
    register_secret,
    setup_logging,
)
from kira_dependencies.utils.console import (
    finish_progress,
    print_error,
    print_info,
    print_success,
    print_summary,
    print_warning,
    reconfigure_console,
    start_progress,
)
from kira_dependencies.utils.http import HTTPClient
from kira_dependencies.utils.version_utils import get_update_type, parse_version_or_none

__all__ = [
    # Console
    "print_info",
    "print_error",
    "print_success",
    "print_warning",
    "print_summary",
    "start_progress",
    "finish_progress",
    "reconfigure_console",
    # Logging
    "get_logger",
    "setup_logging",
    "register_secret",
    "level_for_verbosity",
    # HTTP
    "HTTPClient",
    # Version utilities
    "get_update_type",
    "parse_version_or_none",
]
