"""
Per-dependency outcomes and the run summary.

Each processed dependency yields exactly one :class:`DependencyOutcome`.
The runner collects them into a :class:`RunSummary` instead of relying on
exceptions for control flow.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional

from kira_dependencies.models.merge_request import MergeRequestRecord


class OutcomeStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    UP_TO_DATE = "up_to_date"
    UPDATE_NOT_POSSIBLE = "update_not_possible"
    MERGE_REQUEST_LIMIT = "merge_request_limit"


@dataclass
class DependencyOutcome:
    """Result of processing one dependency.

    Attributes:
        name: Dependency name.
        status: What happened.
        current_version: Version before the update.
        next_version: Version the update targets, if one was computed.
        reason: Why the dependency was skipped.
        merge_request: The merge request created, updated or left open.
        error: The exception for failed dependencies.
    """

    name: str
    status: OutcomeStatus
    current_version: Optional[str] = None
    next_version: Optional[str] = None
    reason: Optional[SkipReason] = None
    merge_request: Optional[MergeRequestRecord] = None
    error: Optional[BaseException] = field(default=None, repr=False)

    @property
    def opened_merge_request(self) -> bool:
        """True when the outcome counts towards the merge request cap."""
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.UPDATED)


@dataclass
class RunSummary:
    """Every outcome of one run, in processing order."""

    outcomes: List[DependencyOutcome] = field(default_factory=list)
    dashboard_url: Optional[str] = None
    stopped_early: bool = False

    def add(self, outcome: DependencyOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def merge_request_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.opened_merge_request)

    def by_status(self, status: OutcomeStatus) -> List[DependencyOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is status]

    @property
    def failures(self) -> List[DependencyOutcome]:
        return self.by_status(OutcomeStatus.FAILED)
