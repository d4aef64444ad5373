from __future__ import annotations

import pytest
from packaging.version import Version

from kira_dependencies.utils.version_utils import get_update_type, parse_version_or_none


@pytest.mark.unit
class TestParseVersionOrNone:
    def test_valid(self) -> None:
        assert parse_version_or_none("2.31.0") == Version("2.31.0")

    @pytest.mark.parametrize("value", [None, "", "not-a-version", "main"])
    def test_invalid(self, value) -> None:
        assert parse_version_or_none(value) is None


@pytest.mark.unit
class TestGetUpdateType:
    @pytest.mark.parametrize(
        "current, target, expected",
        [
            ("1.4.2", "2.0.0", "major"),
            ("1.4.2", "1.5.0", "minor"),
            ("1.4.2", "1.4.3", "patch"),
            ("1.4", "1.4.1", "patch"),
            ("1.4.2", "1.4.2.1", "update"),
            ("1.0.0rc1", "1.0.0", "update"),
            ("1.4.2", "1.4.2", "same"),
            ("1.4", "1.4.0", "same"),
            ("2.0.0", "1.9.0", "downgrade"),
        ],
    )
    def test_classification(self, current: str, target: str, expected: str) -> None:
        assert get_update_type(current, target) == expected

    def test_new_dependency(self) -> None:
        assert get_update_type(None, "1.0.0") == "new"

    def test_nothing_known(self) -> None:
        assert get_update_type(None, None) == "unknown"

    def test_unparseable_versions(self) -> None:
        assert get_update_type("main", "1.0.0") == "unknown"
        assert get_update_type("1.0.0", None) == "unknown"
