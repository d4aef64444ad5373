"""
Source descriptor for kira-dependencies.

A :class:`Source` identifies where dependency files live on the hosting
platform: which host, which project, which directory and which branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from kira_dependencies.constants import GITLAB_API_TEMPLATE


@dataclass(frozen=True)
class Source:
    """Repository location that dependency files are fetched from.

    Attributes:
        hostname: Hosting platform host, e.g. ``gitlab.com``.
        repo: Project path (``namespace/project``).
        directory: Directory holding the manifests, always starting with ``/``.
        branch: Branch to read and target, or ``None`` for the default branch.
        provider: Hosting platform kind. Only ``gitlab`` is supported.
        api_endpoint: REST API base URL; derived from ``hostname`` when empty.
    """

    hostname: str
    repo: str
    directory: str = "/"
    branch: Optional[str] = None
    provider: str = "gitlab"
    api_endpoint: str = ""

    def __post_init__(self) -> None:
        if not self.api_endpoint:
            object.__setattr__(
                self,
                "api_endpoint",
                GITLAB_API_TEMPLATE.format(hostname=self.hostname),
            )
        directory = "/" + self.directory.strip("/")
        object.__setattr__(self, "directory", directory)

    @property
    def url(self) -> str:
        """Return the browsable project URL."""
        return f"https://{self.hostname}/{self.repo}"

    def path_in_repo(self, name: str) -> str:
        """Return the repository-relative path of a file in :attr:`directory`."""
        if self.directory == "/":
            return name.lstrip("/")
        return f"{self.directory.strip('/')}/{name.lstrip('/')}"
