"""pip backend: ``requirements*.txt`` and ``constraints*.txt`` files.

Versions come from the public PyPI JSON API through a shared
:class:`PyPIDataStore`, so each package is fetched once per run.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from kira_dependencies.core.interfaces import PackageManager
from kira_dependencies.ecosystems.pip.data_store import PyPIDataStore, PyPIPackageData
from kira_dependencies.ecosystems.pip.file_fetcher import PipFileFetcher, gitlab_token
from kira_dependencies.ecosystems.pip.file_parser import PipFileParser
from kira_dependencies.ecosystems.pip.file_updater import PipFileUpdater
from kira_dependencies.ecosystems.pip.update_checker import PipUpdateChecker
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.dependency import Dependency, DependencyFile
from kira_dependencies.models.source import Source
from kira_dependencies.models.update import RequirementsUpdateStrategy
from kira_dependencies.platforms.gitlab import GitLabClient
from kira_dependencies.utils.http import HTTPClient

__all__ = [
    "PipPackageManager",
    "PipFileFetcher",
    "PipFileParser",
    "PipUpdateChecker",
    "PipFileUpdater",
    "PyPIDataStore",
    "PyPIPackageData",
]


class PipPackageManager(PackageManager):
    """Factory for the pip backend.

    Args:
        http_client: Client for PyPI; one is created (and owned) if omitted.
        gitlab_client: Client handed to file fetchers; one per source is
            created (and owned) if omitted.
    """

    name = "pip"

    def __init__(
        self,
        http_client: Optional[HTTPClient] = None,
        gitlab_client: Optional[GitLabClient] = None,
    ) -> None:
        self._owns_http = http_client is None
        self.http_client = http_client or HTTPClient()
        self.data_store = PyPIDataStore(self.http_client)
        self.gitlab_client = gitlab_client
        self._owned_gitlab: List[GitLabClient] = []

    def file_fetcher(
        self,
        *,
        source: Source,
        credentials: Sequence[Credential],
    ) -> PipFileFetcher:
        client = self.gitlab_client
        if client is None:
            client = GitLabClient(
                source.api_endpoint, source.repo, gitlab_token(source, credentials)
            )
            self._owned_gitlab.append(client)
        return PipFileFetcher(source, credentials, client=client)

    def file_parser(
        self,
        *,
        dependency_files: Sequence[DependencyFile],
        source: Source,
        credentials: Sequence[Credential],
    ) -> PipFileParser:
        return PipFileParser(dependency_files, source, credentials)

    def update_checker(
        self,
        *,
        dependency: Dependency,
        dependency_files: Sequence[DependencyFile],
        credentials: Sequence[Credential],
        requirements_update_strategy: Optional[RequirementsUpdateStrategy] = None,
        ignored_versions: Tuple[str, ...] = (),
    ) -> PipUpdateChecker:
        return PipUpdateChecker(
            dependency,
            dependency_files,
            credentials,
            self.data_store,
            requirements_update_strategy=requirements_update_strategy,
            ignored_versions=ignored_versions,
        )

    def file_updater(
        self,
        *,
        dependencies: Sequence[Dependency],
        dependency_files: Sequence[DependencyFile],
        credentials: Sequence[Credential],
    ) -> PipFileUpdater:
        return PipFileUpdater(dependencies, dependency_files, credentials)

    def close(self) -> None:
        for client in self._owned_gitlab:
            client.close()
        self._owned_gitlab.clear()
        if self._owns_http:
            self.http_client.close()
