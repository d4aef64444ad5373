"""
Hosting platform clients for kira-dependencies.

Only GitLab is supported.
"""

from __future__ import annotations

from kira_dependencies.platforms.gitlab import GitLabClient

__all__ = ["GitLabClient"]
