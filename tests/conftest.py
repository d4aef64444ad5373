"""Shared fixtures: an in-memory GitLab and a scriptable package manager."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from kira_dependencies.config import RunConfig
from kira_dependencies.core.interfaces import PackageManager
from kira_dependencies.exceptions import NetworkError
from kira_dependencies.models.dependency import (
    Dependency,
    DependencyFile,
    DependencyRequirement,
)
from kira_dependencies.models.merge_request import MergeRequestRecord
from kira_dependencies.models.update import UnlockStrategy


# ============================================================================
# Fake GitLab
# ============================================================================


class FakeGitLab:
    """In-memory stand-in for :class:`GitLabClient`.

    Every mutating call is appended to :attr:`calls` as ``(name, args)``.
    """

    def __init__(self, default_branch: str = "main") -> None:
        self.default = default_branch
        self.branches: Dict[str, str] = {default_branch: "base-sha"}
        self.mrs: Dict[int, MergeRequestRecord] = {}
        self.states: Dict[int, str] = {}
        self.commit_counts: Dict[int, int] = {}
        self.status_sequences: Dict[int, List[str]] = {}
        self.issue_store: Dict[int, Dict[str, Any]] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._next_iid = 1
        self._next_sha = 1

    # -- helpers -----------------------------------------------------------

    def add_merge_request(
        self,
        title: str,
        *,
        merge_status: str = "can_be_merged",
        commits: int = 1,
        source_branch: Optional[str] = None,
    ) -> MergeRequestRecord:
        iid = self._next_iid
        self._next_iid += 1
        branch = source_branch or f"dependabot/pip/mr-{iid}"
        sha = self._sha()
        self.branches[branch] = sha
        record = MergeRequestRecord(
            iid=iid,
            title=title,
            source_branch=branch,
            target_branch=self.default,
            sha=sha,
            merge_status=merge_status,
            web_url=f"https://gitlab.example/group/app/-/merge_requests/{iid}",
        )
        self.mrs[iid] = record
        self.states[iid] = "opened"
        self.commit_counts[iid] = commits
        return record

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def opened(self) -> List[MergeRequestRecord]:
        return [mr for iid, mr in self.mrs.items() if self.states[iid] == "opened"]

    def _sha(self) -> str:
        sha = f"sha-{self._next_sha}"
        self._next_sha += 1
        return sha

    def _maybe_fail(self, name: str) -> None:
        if name in self.failures:
            raise self.failures[name]

    # -- MergeRequestClient ------------------------------------------------

    def default_branch(self) -> str:
        return self.default

    def branch_head(self, name: str) -> Optional[str]:
        return self.branches.get(name)

    def delete_branch(self, name: str) -> None:
        self.calls.append(("delete_branch", {"name": name}))
        self.branches.pop(name, None)

    def create_commit(
        self,
        *,
        branch: str,
        message: str,
        actions: Sequence[Dict[str, Any]],
        start_sha: Optional[str] = None,
        force: bool = False,
    ) -> Dict[str, Any]:
        self._maybe_fail("create_commit")
        if branch in self.branches and not force:
            raise NetworkError("A branch called this already exists", status_code=400)
        self.calls.append(
            (
                "create_commit",
                {
                    "branch": branch,
                    "message": message,
                    "actions": list(actions),
                    "start_sha": start_sha,
                    "force": force,
                },
            )
        )
        sha = self._sha()
        self.branches[branch] = sha
        return {"id": sha}

    def merge_requests(
        self, *, state: str = "opened", search: Optional[str] = None
    ) -> List[MergeRequestRecord]:
        return [
            mr
            for iid, mr in self.mrs.items()
            if self.states[iid] == state
            and (search is None or search.lower() in mr.title.lower())
        ]

    def merge_request(self, iid: int) -> MergeRequestRecord:
        record = self.mrs[iid]
        sequence = self.status_sequences.get(iid)
        if sequence:
            record = replace(record, merge_status=sequence.pop(0))
            self.mrs[iid] = record
        return record

    def merge_request_commits(self, iid: int) -> List[Dict[str, Any]]:
        return [{"id": f"c{n}"} for n in range(self.commit_counts.get(iid, 1))]

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
    ) -> MergeRequestRecord:
        self._maybe_fail("create_merge_request")
        self.calls.append(
            (
                "create_merge_request",
                {
                    "source_branch": source_branch,
                    "target_branch": target_branch,
                    "title": title,
                    "description": description,
                    "labels": list(labels),
                    "assignee_ids": list(assignee_ids),
                },
            )
        )
        record = self.add_merge_request(title, source_branch=source_branch)
        return record

    def close_merge_request(self, iid: int) -> MergeRequestRecord:
        self.calls.append(("close_merge_request", {"iid": iid}))
        self.states[iid] = "closed"
        return self.mrs[iid]

    def approve_merge_request(self, iid: int) -> None:
        self._maybe_fail("approve_merge_request")
        self.calls.append(("approve_merge_request", {"iid": iid}))

    def accept_merge_request(
        self,
        iid: int,
        *,
        merge_when_pipeline_succeeds: bool = True,
        should_remove_source_branch: bool = True,
    ) -> None:
        self._maybe_fail("accept_merge_request")
        self.calls.append(
            (
                "accept_merge_request",
                {
                    "iid": iid,
                    "merge_when_pipeline_succeeds": merge_when_pipeline_succeeds,
                    "should_remove_source_branch": should_remove_source_branch,
                },
            )
        )

    def issues(
        self,
        *,
        state: str = "opened",
        search: Optional[str] = None,
        labels: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        return [
            dict(issue)
            for issue in self.issue_store.values()
            if issue["state"] == state
            and (search is None or search in issue["title"])
            and set(labels) <= set(issue["labels"])
        ]

    def create_issue(
        self, *, title: str, description: str, labels: Sequence[str] = ()
    ) -> Dict[str, Any]:
        self.calls.append(("create_issue", {"title": title}))
        iid = len(self.issue_store) + 1
        issue = {
            "iid": iid,
            "title": title,
            "description": description,
            "labels": list(labels),
            "state": "opened",
            "web_url": f"https://gitlab.example/group/app/-/issues/{iid}",
        }
        self.issue_store[iid] = issue
        return dict(issue)

    def edit_issue(self, iid: int, *, description: str) -> Dict[str, Any]:
        self.calls.append(("edit_issue", {"iid": iid}))
        self.issue_store[iid]["description"] = description
        return dict(self.issue_store[iid])


# ============================================================================
# Fake package manager
# ============================================================================


def make_dependency(
    name: str,
    version: Optional[str] = "1.0",
    *,
    file: str = "requirements.txt",
) -> Dependency:
    requirement = f"=={version}" if version else None
    return Dependency(
        name=name,
        version=version,
        package_manager="pip",
        requirements=(DependencyRequirement(file=file, requirement=requirement),),
    )


class FakeChecker:
    """Update checker answering from constructor arguments."""

    def __init__(
        self,
        dependency: Dependency,
        *,
        latest: Optional[str] = "2.0",
        up_to_date: bool = False,
        unlocked: bool = True,
        allowed: Sequence[UnlockStrategy] = (UnlockStrategy.OWN,),
    ) -> None:
        self.dependency = dependency
        self.latest = latest
        self._up_to_date = up_to_date
        self.unlocked = unlocked
        self.allowed = set(allowed)
        self.asked: List[UnlockStrategy] = []

    def up_to_date(self) -> bool:
        return self._up_to_date

    def requirements_unlocked_or_can_be(self) -> bool:
        return self.unlocked

    def can_update(self, requirements_to_unlock: UnlockStrategy) -> bool:
        self.asked.append(requirements_to_unlock)
        return requirements_to_unlock in self.allowed

    def latest_version(self) -> Optional[str]:
        return self.latest

    def updated_dependencies(
        self, requirements_to_unlock: UnlockStrategy
    ) -> List[Dependency]:
        dependency = self.dependency
        return [
            replace(
                dependency,
                version=self.latest,
                previous_version=dependency.version,
                previous_requirements=dependency.requirements,
                requirements=tuple(
                    replace(r, requirement=f"=={self.latest}")
                    for r in dependency.requirements
                ),
            )
        ]


class _StaticFetcher:
    def __init__(self, files: Sequence[DependencyFile], commit: str) -> None:
        self._files = list(files)
        self._commit = commit

    def files(self) -> List[DependencyFile]:
        return self._files

    def commit(self) -> str:
        return self._commit


class _StaticParser:
    def __init__(self, dependencies: Sequence[Dependency]) -> None:
        self._dependencies = list(dependencies)

    def parse(self) -> List[Dependency]:
        return self._dependencies


class _RenderingUpdater:
    def __init__(self, dependencies: Sequence[Dependency]) -> None:
        self.dependencies = list(dependencies)

    def updated_dependency_files(self) -> List[DependencyFile]:
        content = "".join(f"{d.name}=={d.version}\n" for d in self.dependencies)
        return [DependencyFile(name="requirements.txt", content=content)]


class FakePackageManager(PackageManager):
    """Package manager whose checkers are supplied per dependency name.

    A checker entry may be an exception instance, which ``update_checker``
    raises for that dependency.
    """

    name = "pip"

    def __init__(
        self,
        dependencies: Sequence[Dependency],
        checkers: Optional[Dict[str, Union[FakeChecker, Exception]]] = None,
        commit: str = "base-sha",
    ) -> None:
        self.dependencies = list(dependencies)
        self.checkers = dict(checkers or {})
        self.commit = commit
        self.files = [DependencyFile(name="requirements.txt", content="")]
        self.closed = False

    def file_fetcher(self, *, source, credentials):
        return _StaticFetcher(self.files, self.commit)

    def file_parser(self, *, dependency_files, source, credentials):
        return _StaticParser(self.dependencies)

    def update_checker(
        self,
        *,
        dependency,
        dependency_files,
        credentials,
        requirements_update_strategy=None,
        ignored_versions=(),
    ):
        checker = self.checkers.get(dependency.name)
        if checker is None:
            checker = FakeChecker(dependency)
            self.checkers[dependency.name] = checker
        if isinstance(checker, Exception):
            raise checker
        return checker

    def file_updater(self, *, dependencies, dependency_files, credentials):
        return _RenderingUpdater(dependencies)

    def close(self) -> None:
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================


def make_config(**overrides: Any) -> RunConfig:
    values: Dict[str, Any] = {
        "project_path": "group/app",
        "package_manager": "pip",
        "gitlab_token": "glpat-test",
    }
    values.update(overrides)
    return RunConfig(**values)


@pytest.fixture
def gitlab() -> FakeGitLab:
    return FakeGitLab()


@pytest.fixture
def no_sleep() -> List[float]:
    """Collects requested sleep durations instead of sleeping."""
    return []
