"""
kira-dependencies version information.

The single source of the package version, read by ``pyproject.toml`` and
by the HTTP User-Agent header.
"""

__version__ = "0.4.0"
