"""Unlock strategy selection.

Decides how far a dependency's declared constraints may be loosened.
``none`` is always considered first, also when requirements could be
unlocked, so an update that fits the declared constraints never loosens
them. ``own`` and ``all`` are considered only when the checker reports
that requirements are unlocked or can be.
The first candidate that is not excluded by configuration and that the
checker approves wins.
"""

from __future__ import annotations

from typing import AbstractSet, List

from kira_dependencies.core.interfaces import UpdateChecker
from kira_dependencies.models.dependency import Dependency
from kira_dependencies.models.update import UnlockStrategy, UpdateCheckResult
from kira_dependencies.utils.logger import get_logger

logger = get_logger("unlock")


def candidate_strategies(checker: UpdateChecker) -> List[UnlockStrategy]:
    """Return the unlock strategies to try, in order."""
    candidates = [UnlockStrategy.NONE]
    if checker.requirements_unlocked_or_can_be():
        candidates.extend([UnlockStrategy.OWN, UnlockStrategy.ALL])
    return candidates


def determine_requirements_to_unlock(
    checker: UpdateChecker,
    excluded: AbstractSet[UnlockStrategy] = frozenset(),
) -> UnlockStrategy:
    """Pick the first permitted strategy the checker can update with.

    Returns:
        The chosen strategy, or ``UPDATE_NOT_POSSIBLE``.
    """
    for strategy in candidate_strategies(checker):
        if strategy in excluded:
            logger.debug("Unlock strategy %s excluded by configuration", strategy.value)
            continue
        if checker.can_update(requirements_to_unlock=strategy):
            return strategy
    return UnlockStrategy.UPDATE_NOT_POSSIBLE


def check_dependency(
    dependency: Dependency,
    checker: UpdateChecker,
    excluded: AbstractSet[UnlockStrategy] = frozenset(),
) -> UpdateCheckResult:
    """Run the checker for ``dependency`` and summarise its decision."""
    if checker.up_to_date():
        return UpdateCheckResult(dependency=dependency, up_to_date=True)

    return UpdateCheckResult(
        dependency=dependency,
        up_to_date=False,
        latest_version=checker.latest_version(),
        requirements_to_unlock=determine_requirements_to_unlock(checker, excluded),
    )
