"""
Dependency and dependency-file data models.

These are the values exchanged between the pipeline and package manager
backends. They are immutable: a backend produces new instances rather
than mutating the ones it was given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class DependencyFile:
    """A manifest or lockfile, with its full content.

    Attributes:
        name: File name relative to :attr:`directory`.
        content: Full text content.
        directory: Directory the file lives in (``/`` for the root).
        deleted: Whether the update removes this file.
    """

    name: str
    content: str
    directory: str = "/"
    deleted: bool = False

    @property
    def path(self) -> str:
        """Repository-relative path, without a leading slash."""
        directory = self.directory.strip("/")
        if not directory:
            return self.name
        return f"{directory}/{self.name}"


@dataclass(frozen=True)
class DependencyRequirement:
    """One declaration of a dependency in a manifest.

    Attributes:
        file: Name of the declaring file.
        requirement: Version constraint as written, or ``None`` if unconstrained.
        groups: Groups the declaration belongs to.
    """

    file: str
    requirement: Optional[str]
    groups: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Dependency:
    """A dependency reported by a parser, or updated by a checker.

    Attributes:
        name: Dependency name as used by its ecosystem.
        version: Resolved version, or ``None`` when not pinned.
        package_manager: Ecosystem identifier, e.g. ``pip``.
        requirements: Declarations in the project's manifests.
        previous_version: Version before the update (updated dependencies only).
        previous_requirements: Declarations before the update.
    """

    name: str
    version: Optional[str]
    package_manager: str
    requirements: Tuple[DependencyRequirement, ...] = ()
    previous_version: Optional[str] = None
    previous_requirements: Optional[Tuple[DependencyRequirement, ...]] = field(
        default=None, repr=False
    )

    @property
    def top_level(self) -> bool:
        """True when the project declares this dependency directly."""
        return bool(self.requirements)

    def requirement_for(self, file: str) -> Optional[DependencyRequirement]:
        """Return the declaration made in ``file``, if any."""
        for requirement in self.requirements:
            if requirement.file == file:
                return requirement
        return None

    def display_version(self) -> str:
        """Return a human-readable version, falling back to the requirement."""
        if self.version:
            return self.version
        declared = [r.requirement for r in self.requirements if r.requirement]
        return ", ".join(declared) if declared else "unknown"
