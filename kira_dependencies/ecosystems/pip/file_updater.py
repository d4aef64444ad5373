"""Rewriting requirement files for updated dependencies."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from packaging.utils import canonicalize_name

from kira_dependencies.constants import HASH_DIRECTIVE
from kira_dependencies.ecosystems.pip.requirement_line import (
    parse_requirement_line,
    same_specifiers,
)
from kira_dependencies.exceptions import UpdateNotPossibleError
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.dependency import Dependency, DependencyFile
from kira_dependencies.utils.logger import get_logger

logger = get_logger("pip.file_updater")


class PipFileUpdater:
    """Apply updated requirements to the files that declare them.

    Only the specifier part of a matching line changes; markers, extras,
    comments and line endings are kept as written.

    Args:
        dependencies: Updated dependencies (with ``previous_requirements``).
        dependency_files: The fetched requirement files.
        credentials: Run credentials (unused).
    """

    def __init__(
        self,
        dependencies: Sequence[Dependency],
        dependency_files: Sequence[DependencyFile],
        credentials: Sequence[Credential] = (),
    ) -> None:
        self.dependencies = tuple(dependencies)
        self.dependency_files = tuple(dependency_files)
        self.credentials = tuple(credentials)

    def updated_dependency_files(self) -> List[DependencyFile]:
        """Return the files whose content changed.

        Raises:
            UpdateNotPossibleError: A line to rewrite is hash-pinned, or no
                file changed at all.
        """
        updated: List[DependencyFile] = []
        for file in self.dependency_files:
            if file.deleted:
                continue
            content = self._updated_content(file)
            if content != file.content:
                updated.append(replace(file, content=content))

        if not updated:
            raise UpdateNotPossibleError(
                "No requirement file changed",
                dependency_name=self.dependencies[0].name if self.dependencies else None,
            )
        return updated

    def _changes_for(self, file: DependencyFile) -> Dict[str, tuple]:
        """Map canonical name to ``(old, new)`` requirement for ``file``."""
        changes: Dict[str, tuple] = {}
        for dependency in self.dependencies:
            new = dependency.requirement_for(file.name)
            if new is None:
                continue
            old = _previous_requirement(dependency, file.name)
            if not same_specifiers(old, new.requirement):
                changes[canonicalize_name(dependency.name)] = (old, new.requirement)
        return changes

    def _updated_content(self, file: DependencyFile) -> str:
        changes = self._changes_for(file)
        if not changes:
            return file.content

        raw_lines = file.content.splitlines(keepends=True)
        output: List[str] = []
        for number, raw in enumerate(raw_lines, start=1):
            body = raw.rstrip("\r\n")
            ending = raw[len(body):]
            line = parse_requirement_line(body, number, file.path)

            if line is None or line.canonical_name not in changes:
                output.append(raw)
                continue

            old, new = changes[line.canonical_name]
            if not same_specifiers(line.requirement, old):
                output.append(raw)
                continue

            if line.has_hashes or _continued_with_hashes(raw_lines, number):
                raise UpdateNotPossibleError(
                    f"{file.path}:{number} pins {line.name} with hashes",
                    dependency_name=line.name,
                )

            logger.debug("%s:%d %s: %s -> %s", file.path, number, line.name, old, new)
            output.append(line.with_specifier(new) + ending)

        return "".join(output)


def _previous_requirement(dependency: Dependency, file: str) -> Optional[str]:
    for requirement in dependency.previous_requirements or ():
        if requirement.file == file:
            return requirement.requirement
    return None


def _continued_with_hashes(raw_lines: Sequence[str], number: int) -> bool:
    """True when line ``number`` continues onto ``--hash`` options."""
    index = number - 1
    while raw_lines[index].rstrip().endswith("\\") and index + 1 < len(raw_lines):
        index += 1
        if HASH_DIRECTIVE in raw_lines[index]:
            return True
    return False
