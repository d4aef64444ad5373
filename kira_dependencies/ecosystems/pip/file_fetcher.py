"""Fetching pip requirement files from a GitLab project.

Looks in the configured directory and in its ``requirements/``
subdirectory for files matching the supported requirement and constraint
patterns, and downloads them at the target branch.
"""

from __future__ import annotations

from fnmatch import fnmatch
from typing import List, Optional, Sequence

from kira_dependencies.constants import REQUIREMENT_FILE_PATTERNS
from kira_dependencies.exceptions import DependencyFileNotFound
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.dependency import DependencyFile
from kira_dependencies.models.source import Source
from kira_dependencies.platforms.gitlab import GitLabClient
from kira_dependencies.utils.logger import get_logger

logger = get_logger("pip.file_fetcher")

_SUBDIRECTORY = "requirements"


def is_requirement_file(path: str) -> bool:
    """True when ``path`` (relative to the directory) is a supported file."""
    return any(
        fnmatch(path, pattern)
        for patterns in REQUIREMENT_FILE_PATTERNS.values()
        for pattern in patterns
    )


def gitlab_token(source: Source, credentials: Sequence[Credential]) -> Optional[str]:
    """Return the git_source token registered for ``source.hostname``."""
    for credential in credentials:
        if credential.type == "git_source" and credential.host == source.hostname:
            return credential.password
    return None


class PipFileFetcher:
    """Download requirement files for one source.

    Args:
        source: Repository location.
        credentials: Run credentials; the ``git_source`` entry for the
            source host authenticates the download.
        client: GitLab client to reuse instead of building one.
    """

    def __init__(
        self,
        source: Source,
        credentials: Sequence[Credential],
        client: Optional[GitLabClient] = None,
    ) -> None:
        self.source = source
        self.credentials = tuple(credentials)
        self.client = client or GitLabClient(
            source.api_endpoint,
            source.repo,
            gitlab_token(source, credentials),
        )
        self._ref: Optional[str] = None
        self._commit: Optional[str] = None
        self._files: Optional[List[DependencyFile]] = None

    @property
    def ref(self) -> str:
        if self._ref is None:
            self._ref = self.source.branch or self.client.default_branch()
        return self._ref

    def commit(self) -> str:
        """Return the sha the files were (or will be) read at.

        Raises:
            DependencyFileNotFound: The branch does not exist.
        """
        if self._commit is None:
            head = self.client.branch_head(self.ref)
            if head is None:
                raise DependencyFileNotFound(
                    f"Branch '{self.ref}' not found in {self.source.repo}",
                    directory=self.source.directory,
                )
            self._commit = head
        return self._commit

    def files(self) -> List[DependencyFile]:
        """Return every requirement file under the source directory.

        Raises:
            DependencyFileNotFound: No supported file exists there.
        """
        if self._files is None:
            ref = self.commit()
            files = [
                DependencyFile(
                    name=name,
                    content=self.client.file_content(self.source.path_in_repo(name), ref),
                    directory=self.source.directory,
                )
                for name in self._candidate_names(ref)
            ]
            if not files:
                raise DependencyFileNotFound(
                    f"No requirement files found in {self.source.directory}",
                    directory=self.source.directory,
                )
            logger.debug("Fetched %s", ", ".join(f.name for f in files))
            self._files = files
        return self._files

    def _candidate_names(self, ref: str) -> List[str]:
        directory = self.source.path_in_repo("").rstrip("/")
        names: List[str] = []
        has_subdirectory = False

        for entry in self.client.repository_tree(directory, ref):
            if entry.get("type") == "tree" and entry.get("name") == _SUBDIRECTORY:
                has_subdirectory = True
            elif entry.get("type") == "blob" and is_requirement_file(entry["name"]):
                names.append(entry["name"])

        if has_subdirectory:
            subdirectory = self.source.path_in_repo(_SUBDIRECTORY)
            for entry in self.client.repository_tree(subdirectory, ref):
                name = f"{_SUBDIRECTORY}/{entry['name']}"
                if entry.get("type") == "blob" and is_requirement_file(name):
                    names.append(name)

        return sorted(names)
