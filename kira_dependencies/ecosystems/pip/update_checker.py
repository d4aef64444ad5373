"""Update checking for pip requirement files.

:class:`PipUpdateChecker` answers the pipeline's questions about one
dependency using PyPI metadata from :class:`PyPIDataStore`:

- which version is the newest allowed one (not yanked, not ignored, and
  not a pre-release unless the dependency is already on one);
- whether the declared requirements already admit it;
- which requirements would have to change, per unlock strategy.

Requirement files carry no lockfile, so unlocking ``all`` never adds
anything over ``own`` and is reported as impossible.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from packaging.specifiers import SpecifierSet
from packaging.version import Version

from kira_dependencies.config import parse_ignored_constraint
from kira_dependencies.ecosystems.pip.data_store import PyPIDataStore
from kira_dependencies.ecosystems.pip.requirement_line import same_specifiers
from kira_dependencies.ecosystems.pip.requirements_updater import update_requirement
from kira_dependencies.exceptions import UpdateNotPossibleError
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.dependency import (
    Dependency,
    DependencyFile,
    DependencyRequirement,
)
from kira_dependencies.models.update import RequirementsUpdateStrategy, UnlockStrategy
from kira_dependencies.utils.logger import get_logger
from kira_dependencies.utils.version_utils import parse_version_or_none

logger = get_logger("pip.update_checker")


class PipUpdateChecker:
    """Decide whether and how one pip dependency can be updated.

    Args:
        dependency: Dependency as parsed from the requirement files.
        dependency_files: All fetched requirement files.
        credentials: Run credentials (unused by the public index).
        data_store: Shared PyPI metadata cache.
        requirements_update_strategy: How requirements are rewritten.
        ignored_versions: Version constraints never to update to.
    """

    def __init__(
        self,
        dependency: Dependency,
        dependency_files: Sequence[DependencyFile],
        credentials: Sequence[Credential],
        data_store: PyPIDataStore,
        requirements_update_strategy: Optional[RequirementsUpdateStrategy] = None,
        ignored_versions: Sequence[str] = (),
    ) -> None:
        self.dependency = dependency
        self.dependency_files = tuple(dependency_files)
        self.credentials = tuple(credentials)
        self.data_store = data_store
        self.requirements_update_strategy = requirements_update_strategy
        self.ignored = [parse_ignored_constraint(c) for c in ignored_versions]

        self._candidates: Optional[List[Tuple[str, Version]]] = None

    # ------------------------------------------------------------------
    # Version selection
    # ------------------------------------------------------------------

    @property
    def current_version(self) -> Optional[Version]:
        version = parse_version_or_none(self.dependency.version)
        if version is None and self.dependency.version:
            logger.debug(
                "Unparseable version %s for %s",
                self.dependency.version,
                self.dependency.name,
            )
        return version

    def candidates(self) -> List[Tuple[str, Version]]:
        """Allowed versions, newest first."""
        if self._candidates is None:
            current = self.current_version
            data = self.data_store.get_package_data(self.dependency.name)
            versions = data.versions(
                include_prereleases=bool(current and current.is_prerelease),
            )
            self._candidates = [
                (raw, parsed)
                for raw, parsed in versions
                if not any(spec.contains(parsed, prereleases=True) for spec in self.ignored)
            ]
        return self._candidates

    def latest_version(self) -> Optional[str]:
        candidates = self.candidates()
        return candidates[0][0] if candidates else None

    def _latest_resolvable_without_unlock(self) -> Optional[Tuple[str, Version]]:
        specifiers = self._declared_specifiers()
        for raw, parsed in self.candidates():
            if specifiers.contains(parsed, prereleases=True):
                return raw, parsed
        return None

    def _declared_specifiers(self) -> SpecifierSet:
        combined = SpecifierSet()
        for requirement in self.dependency.requirements:
            if requirement.requirement:
                combined &= SpecifierSet(requirement.requirement)
        return combined

    # ------------------------------------------------------------------
    # UpdateChecker protocol
    # ------------------------------------------------------------------

    def up_to_date(self) -> bool:
        candidates = self.candidates()
        if not candidates:
            return True

        _, latest = candidates[0]
        current = self.current_version
        if current is not None:
            return latest <= current
        return self._declared_specifiers().contains(latest, prereleases=True)

    def requirements_unlocked_or_can_be(self) -> bool:
        return self.requirements_update_strategy is not RequirementsUpdateStrategy.LOCKFILE_ONLY

    def can_update(self, requirements_to_unlock: UnlockStrategy) -> bool:
        current = self.current_version

        if requirements_to_unlock is UnlockStrategy.NONE:
            if current is None:
                return False
            resolvable = self._latest_resolvable_without_unlock()
            return resolvable is not None and resolvable[1] > current

        if requirements_to_unlock is UnlockStrategy.OWN:
            latest = self.latest_version()
            if latest is None:
                return False
            if current is not None and Version(latest) <= current:
                return False
            return any(
                not same_specifiers(before.requirement, after.requirement)
                for before, after in zip(
                    self.dependency.requirements, self._updated_requirements(latest)
                )
            )

        return False

    def updated_dependencies(
        self, requirements_to_unlock: UnlockStrategy
    ) -> List[Dependency]:
        """Return the dependency as it will look after the update.

        Raises:
            UpdateNotPossibleError: ``requirements_to_unlock`` is not one
                this checker can satisfy.
        """
        if not self.can_update(requirements_to_unlock):
            raise UpdateNotPossibleError(
                f"Cannot update {self.dependency.name} with unlock strategy "
                f"'{requirements_to_unlock.value}'",
                dependency_name=self.dependency.name,
            )

        dependency = self.dependency
        if requirements_to_unlock is UnlockStrategy.NONE:
            resolvable = self._latest_resolvable_without_unlock()
            if resolvable is None:
                raise UpdateNotPossibleError(
                    f"No newer version of {dependency.name} fits its current requirements",
                    dependency_name=dependency.name,
                )
            version = resolvable[0]
            requirements = dependency.requirements
        else:
            version = self.latest_version()
            if version is None:
                raise UpdateNotPossibleError(
                    f"No installable release of {dependency.name} on PyPI",
                    dependency_name=dependency.name,
                )
            requirements = self._updated_requirements(version)

        return [
            replace(
                dependency,
                version=version,
                requirements=requirements,
                previous_version=dependency.version,
                previous_requirements=dependency.requirements,
            )
        ]

    def _updated_requirements(self, version: str) -> Tuple[DependencyRequirement, ...]:
        return tuple(
            replace(
                requirement,
                requirement=update_requirement(
                    requirement.requirement,
                    version,
                    self.requirements_update_strategy,
                ),
            )
            for requirement in self.dependency.requirements
        )
