"""Contracts between the update pipeline and package manager backends.

The pipeline never looks at manifest syntax. It talks to an ecosystem
through four small protocols, obtained from a :class:`PackageManager`:

1. :class:`FileFetcher` retrieves the dependency files and base commit.
2. :class:`FileParser` turns those files into :class:`Dependency` values.
3. :class:`UpdateChecker` decides whether and how one dependency updates.
4. :class:`FileUpdater` produces the updated file contents.

Merge request operations go through :class:`MergeRequestClient`, which
:class:`~kira_dependencies.platforms.gitlab.GitLabClient` satisfies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from kira_dependencies.constants import LANGUAGE_LABELS
from kira_dependencies.models.source import Source
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.merge_request import MergeRequestRecord
from kira_dependencies.models.dependency import Dependency, DependencyFile
from kira_dependencies.models.update import RequirementsUpdateStrategy, UnlockStrategy


@runtime_checkable
class FileFetcher(Protocol):
    def files(self) -> List[DependencyFile]: ...

    def commit(self) -> str: ...


@runtime_checkable
class FileParser(Protocol):
    def parse(self) -> List[Dependency]: ...


@runtime_checkable
class UpdateChecker(Protocol):
    def up_to_date(self) -> bool: ...

    def requirements_unlocked_or_can_be(self) -> bool: ...

    def can_update(self, requirements_to_unlock: UnlockStrategy) -> bool: ...

    def latest_version(self) -> Optional[str]: ...

    def updated_dependencies(
        self, requirements_to_unlock: UnlockStrategy
    ) -> List[Dependency]: ...


@runtime_checkable
class FileUpdater(Protocol):
    def updated_dependency_files(self) -> List[DependencyFile]: ...


class MergeRequestClient(Protocol):
    """GitLab operations the reconciler and dashboard rely on."""

    def default_branch(self) -> str: ...

    def branch_head(self, name: str) -> Optional[str]: ...

    def delete_branch(self, name: str) -> None: ...

    def create_commit(
        self,
        *,
        branch: str,
        message: str,
        actions: Sequence[Dict[str, Any]],
        start_sha: Optional[str] = None,
        force: bool = False,
    ) -> Dict[str, Any]: ...

    def merge_requests(
        self, *, state: str = "opened", search: Optional[str] = None
    ) -> List[MergeRequestRecord]: ...

    def merge_request(self, iid: int) -> MergeRequestRecord: ...

    def merge_request_commits(self, iid: int) -> List[Dict[str, Any]]: ...

    def create_merge_request(
        self,
        *,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
        labels: Sequence[str] = (),
        assignee_ids: Sequence[int] = (),
        remove_source_branch: bool = True,
    ) -> MergeRequestRecord: ...

    def close_merge_request(self, iid: int) -> MergeRequestRecord: ...

    def approve_merge_request(self, iid: int) -> None: ...

    def accept_merge_request(
        self,
        iid: int,
        *,
        merge_when_pipeline_succeeds: bool = True,
        should_remove_source_branch: bool = True,
    ) -> None: ...

    def issues(
        self,
        *,
        state: str = "opened",
        search: Optional[str] = None,
        labels: Sequence[str] = (),
    ) -> List[Dict[str, Any]]: ...

    def create_issue(
        self, *, title: str, description: str, labels: Sequence[str] = ()
    ) -> Dict[str, Any]: ...

    def edit_issue(self, iid: int, *, description: str) -> Dict[str, Any]: ...


class PackageManager(ABC):
    """Factory for one ecosystem's fetcher, parser, checker and updater.

    Subclasses set :attr:`name` and implement the four factories. They are
    instantiated once per run and may hold shared resources (HTTP
    sessions, caches) that :meth:`close` releases.
    """

    name: str = ""

    @property
    def language(self) -> Optional[str]:
        """Language label attached to merge requests."""
        return LANGUAGE_LABELS.get(self.name)

    @abstractmethod
    def file_fetcher(
        self,
        *,
        source: Source,
        credentials: Sequence[Credential],
    ) -> FileFetcher:
        """Return a fetcher for the files under ``source.directory``."""

    @abstractmethod
    def file_parser(
        self,
        *,
        dependency_files: Sequence[DependencyFile],
        source: Source,
        credentials: Sequence[Credential],
    ) -> FileParser:
        """Return a parser over ``dependency_files``."""

    @abstractmethod
    def update_checker(
        self,
        *,
        dependency: Dependency,
        dependency_files: Sequence[DependencyFile],
        credentials: Sequence[Credential],
        requirements_update_strategy: Optional[RequirementsUpdateStrategy] = None,
        ignored_versions: Tuple[str, ...] = (),
    ) -> UpdateChecker:
        """Return an update checker for one dependency."""

    @abstractmethod
    def file_updater(
        self,
        *,
        dependencies: Sequence[Dependency],
        dependency_files: Sequence[DependencyFile],
        credentials: Sequence[Credential],
    ) -> FileUpdater:
        """Return an updater applying ``dependencies`` to the files."""

    def close(self) -> None:
        """Release resources held by the backend."""
