from __future__ import annotations

import pytest

from kira_dependencies.models.dependency import (
    Dependency,
    DependencyFile,
    DependencyRequirement,
)


@pytest.mark.unit
class TestDependencyFile:
    def test_path_at_root(self) -> None:
        assert DependencyFile("requirements.txt", "").path == "requirements.txt"

    def test_path_in_directory(self) -> None:
        file = DependencyFile("requirements/base.txt", "", directory="/backend/")
        assert file.path == "backend/requirements/base.txt"


@pytest.mark.unit
class TestDependency:
    def _dependency(self, version=None, *requirements: str) -> Dependency:
        return Dependency(
            name="rich",
            version=version,
            package_manager="pip",
            requirements=tuple(
                DependencyRequirement(f"req{i}.txt", r) for i, r in enumerate(requirements)
            ),
        )

    def test_top_level_means_declared(self) -> None:
        assert self._dependency("1.0", "==1.0").top_level
        assert not self._dependency("1.0").top_level

    def test_requirement_for(self) -> None:
        dependency = self._dependency(None, ">=1", "<3")
        assert dependency.requirement_for("req1.txt").requirement == "<3"
        assert dependency.requirement_for("other.txt") is None

    def test_display_version_prefers_version(self) -> None:
        assert self._dependency("13.7.0", "==13.7.0").display_version() == "13.7.0"

    def test_display_version_falls_back_to_requirements(self) -> None:
        assert self._dependency(None, ">=1", None).display_version() == ">=1"
        assert self._dependency(None).display_version() == "unknown"
