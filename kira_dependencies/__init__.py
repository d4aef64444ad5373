"""
kira-dependencies: automated dependency update merge requests for GitLab.

For one project, one directory and one package manager per run,
kira-dependencies finds outdated dependencies, opens (or refreshes) one
merge request per update, closes superseded ones and optionally keeps a
dashboard issue listing every pending update.

Configuration is read from the environment (see
:mod:`kira_dependencies.config`).
"""

from __future__ import annotations

from kira_dependencies.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "kira-dependencies Contributors"
__license__ = "Apache-2.0"
__url__ = "https://github.com/wemake-services/kira-dependencies"
__description__ = "Dependency update merge requests for GitLab projects."

__all__ = [
    "__version__",
]
