from __future__ import annotations

import pytest

from conftest import FakeChecker, make_dependency
from kira_dependencies.core.unlock import (
    candidate_strategies,
    check_dependency,
    determine_requirements_to_unlock,
)
from kira_dependencies.models.update import UnlockStrategy


@pytest.mark.unit
class TestCandidateStrategies:
    """Tests for the ordered unlock candidates."""

    def test_locked_requirements_only_try_none(self) -> None:
        checker = FakeChecker(make_dependency("rich"), unlocked=False)

        assert candidate_strategies(checker) == [UnlockStrategy.NONE]

    def test_unlocked_requirements_try_all_three_in_order(self) -> None:
        checker = FakeChecker(make_dependency("rich"), unlocked=True)

        assert candidate_strategies(checker) == [
            UnlockStrategy.NONE,
            UnlockStrategy.OWN,
            UnlockStrategy.ALL,
        ]


@pytest.mark.unit
class TestDetermineRequirementsToUnlock:
    """Tests for picking the first permitted strategy."""

    def test_first_approved_strategy_wins(self) -> None:
        checker = FakeChecker(
            make_dependency("rich"),
            allowed=(UnlockStrategy.OWN, UnlockStrategy.ALL),
        )

        assert determine_requirements_to_unlock(checker) is UnlockStrategy.OWN
        assert checker.asked == [UnlockStrategy.NONE, UnlockStrategy.OWN]

    def test_none_preferred_when_possible(self) -> None:
        """Unlockable requirements still try ``none`` before loosening them."""
        checker = FakeChecker(
            make_dependency("rich"),
            unlocked=True,
            allowed=(UnlockStrategy.NONE, UnlockStrategy.OWN),
        )

        assert determine_requirements_to_unlock(checker) is UnlockStrategy.NONE
        assert checker.asked == [UnlockStrategy.NONE]

    def test_excluded_strategies_are_never_asked(self) -> None:
        """An excluded strategy is skipped even if the checker would approve it."""
        checker = FakeChecker(
            make_dependency("rich"),
            allowed=(UnlockStrategy.OWN, UnlockStrategy.ALL),
        )

        result = determine_requirements_to_unlock(
            checker, frozenset({UnlockStrategy.OWN})
        )

        assert result is UnlockStrategy.ALL
        assert UnlockStrategy.OWN not in checker.asked

    def test_nothing_permitted(self) -> None:
        checker = FakeChecker(make_dependency("rich"), allowed=())

        assert (
            determine_requirements_to_unlock(checker)
            is UnlockStrategy.UPDATE_NOT_POSSIBLE
        )

    def test_locked_requirements_never_reach_own(self) -> None:
        checker = FakeChecker(
            make_dependency("rich"), unlocked=False, allowed=(UnlockStrategy.OWN,)
        )

        assert (
            determine_requirements_to_unlock(checker)
            is UnlockStrategy.UPDATE_NOT_POSSIBLE
        )
        assert checker.asked == [UnlockStrategy.NONE]

    def test_all_excluded(self) -> None:
        checker = FakeChecker(make_dependency("rich"), allowed=list(UnlockStrategy))

        result = determine_requirements_to_unlock(
            checker,
            frozenset({UnlockStrategy.NONE, UnlockStrategy.OWN, UnlockStrategy.ALL}),
        )

        assert result is UnlockStrategy.UPDATE_NOT_POSSIBLE
        assert checker.asked == []


@pytest.mark.unit
class TestCheckDependency:
    """Tests for the combined check result."""

    def test_up_to_date_skips_strategy_selection(self) -> None:
        dependency = make_dependency("rich")
        checker = FakeChecker(dependency, up_to_date=True)

        result = check_dependency(dependency, checker)

        assert result.up_to_date is True
        assert result.can_update is False
        assert checker.asked == []

    def test_outdated_dependency(self) -> None:
        dependency = make_dependency("rich")
        checker = FakeChecker(dependency, latest="13.7.0")

        result = check_dependency(dependency, checker)

        assert result.up_to_date is False
        assert result.latest_version == "13.7.0"
        assert result.requirements_to_unlock is UnlockStrategy.OWN
        assert result.can_update is True

    def test_outdated_but_not_updatable(self) -> None:
        dependency = make_dependency("rich")
        checker = FakeChecker(dependency, allowed=())

        result = check_dependency(dependency, checker)

        assert result.can_update is False
        assert result.requirements_to_unlock is UnlockStrategy.UPDATE_NOT_POSSIBLE
