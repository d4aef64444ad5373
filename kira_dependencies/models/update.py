"""
Update decision models.

Captures what the update checker decided for one dependency and what the
file updater produced from that decision.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

from kira_dependencies.models.dependency import Dependency, DependencyFile


class UnlockStrategy(str, Enum):
    """How much of the declared constraints may be loosened for an update."""

    NONE = "none"
    OWN = "own"
    ALL = "all"
    UPDATE_NOT_POSSIBLE = "update_not_possible"


class RequirementsUpdateStrategy(str, Enum):
    """How declared requirements are rewritten when they must change."""

    AUTO = "auto"
    WIDEN_RANGES = "widen_ranges"
    BUMP_VERSIONS = "bump_versions"
    BUMP_VERSIONS_IF_NECESSARY = "bump_versions_if_necessary"
    LOCKFILE_ONLY = "lockfile_only"


@dataclass(frozen=True)
class UpdateCheckResult:
    """Outcome of checking one dependency.

    Attributes:
        dependency: The dependency as parsed.
        up_to_date: Whether no newer allowed version exists.
        latest_version: Preferred resolvable version, if any.
        requirements_to_unlock: Chosen unlock strategy.
    """

    dependency: Dependency
    up_to_date: bool
    latest_version: Optional[str] = None
    requirements_to_unlock: UnlockStrategy = UnlockStrategy.UPDATE_NOT_POSSIBLE

    @property
    def can_update(self) -> bool:
        return (
            not self.up_to_date
            and self.requirements_to_unlock is not UnlockStrategy.UPDATE_NOT_POSSIBLE
        )


@dataclass(frozen=True)
class UpdatedDependencySet:
    """The dependency being updated plus any peers unlocked with it."""

    dependencies: Tuple[Dependency, ...]

    def __post_init__(self) -> None:
        if not self.dependencies:
            raise ValueError("UpdatedDependencySet requires at least one dependency")

    @property
    def lead(self) -> Dependency:
        """The dependency the update was computed for."""
        return self.dependencies[0]

    @property
    def peers(self) -> Tuple[Dependency, ...]:
        return self.dependencies[1:]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(dep.name for dep in self.dependencies)


@dataclass(frozen=True)
class UpdatedFileSet:
    """Updated manifest content to commit on top of ``base_commit``."""

    files: Tuple[DependencyFile, ...]
    base_commit: str

    def commit_actions(self) -> list:
        """Return GitLab commit actions for every file in the set."""
        actions = []
        for file in self.files:
            if file.deleted:
                actions.append({"action": "delete", "file_path": file.path})
            else:
                actions.append(
                    {
                        "action": "update",
                        "file_path": file.path,
                        "content": file.content,
                    }
                )
        return actions
