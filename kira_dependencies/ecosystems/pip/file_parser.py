"""Parsing of pip requirement and constraint files into dependencies."""

from __future__ import annotations

from fnmatch import fnmatch
from typing import Dict, List, Optional, Sequence

from packaging.specifiers import SpecifierSet

from kira_dependencies.constants import REQUIREMENT_FILE_PATTERNS
from kira_dependencies.ecosystems.pip.requirement_line import (
    RequirementLine,
    parse_requirement_line,
)
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.dependency import (
    Dependency,
    DependencyFile,
    DependencyRequirement,
)
from kira_dependencies.models.source import Source
from kira_dependencies.utils.logger import get_logger

logger = get_logger("pip.file_parser")

PACKAGE_MANAGER = "pip"


def is_constraints_file(name: str) -> bool:
    return any(fnmatch(name, pattern) for pattern in REQUIREMENT_FILE_PATTERNS["constraints"])


def pinned_version(requirement: Optional[str]) -> Optional[str]:
    """Return the exact version pinned by ``requirement``, if it pins one.

    Only a single ``==``/``===`` specifier without a wildcard counts.
    """
    if not requirement:
        return None
    specifiers = list(SpecifierSet(requirement))
    if len(specifiers) != 1:
        return None
    spec = specifiers[0]
    if spec.operator in ("==", "===") and not spec.version.endswith(".*"):
        return spec.version
    return None


class PipFileParser:
    """Collect dependencies declared across requirement files.

    A dependency declared in several files is reported once, with one
    :class:`DependencyRequirement` per file, in order of first appearance.
    """

    def __init__(
        self,
        dependency_files: Sequence[DependencyFile],
        source: Optional[Source] = None,
        credentials: Sequence[Credential] = (),
    ) -> None:
        self.dependency_files = tuple(dependency_files)
        self.source = source
        self.credentials = tuple(credentials)

    def parse(self) -> List[Dependency]:
        names: Dict[str, str] = {}
        versions: Dict[str, Optional[str]] = {}
        requirements: Dict[str, List[DependencyRequirement]] = {}

        for file in self.dependency_files:
            if file.deleted:
                continue
            groups = ("constraints",) if is_constraints_file(file.name) else ("dependencies",)

            for line in self.requirement_lines(file):
                key = line.canonical_name
                names.setdefault(key, line.name)
                if versions.get(key) is None:
                    versions[key] = pinned_version(line.requirement)
                requirements.setdefault(key, []).append(
                    DependencyRequirement(
                        file=file.name,
                        requirement=line.requirement,
                        groups=groups,
                    )
                )

        dependencies = [
            Dependency(
                name=names[key],
                version=versions.get(key),
                package_manager=PACKAGE_MANAGER,
                requirements=tuple(reqs),
            )
            for key, reqs in requirements.items()
        ]
        logger.debug("Parsed %d dependencies", len(dependencies))
        return dependencies

    @staticmethod
    def requirement_lines(file: DependencyFile) -> List[RequirementLine]:
        """Return the lines of ``file`` that declare a named dependency."""
        lines: List[RequirementLine] = []
        for number, raw in enumerate(file.content.splitlines(), start=1):
            line = parse_requirement_line(raw, number, file.path)
            if line is not None:
                lines.append(line)
        return lines
