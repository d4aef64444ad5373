from __future__ import annotations

import pytest

from kira_dependencies.models.dashboard import DashboardEntry
from kira_dependencies.models.outcome import (
    DependencyOutcome,
    OutcomeStatus,
    RunSummary,
    SkipReason,
)


@pytest.mark.unit
class TestRunSummary:
    def test_merge_request_count_counts_created_and_updated(self) -> None:
        summary = RunSummary()
        for name, status in [
            ("a", OutcomeStatus.CREATED),
            ("b", OutcomeStatus.UPDATED),
            ("c", OutcomeStatus.UNCHANGED),
            ("d", OutcomeStatus.SKIPPED),
            ("e", OutcomeStatus.FAILED),
        ]:
            summary.add(DependencyOutcome(name, status))

        assert summary.merge_request_count == 2
        assert [o.name for o in summary.failures] == ["e"]
        assert [o.name for o in summary.by_status(OutcomeStatus.SKIPPED)] == ["d"]

    def test_skip_reason(self) -> None:
        outcome = DependencyOutcome(
            "rich", OutcomeStatus.SKIPPED, reason=SkipReason.UP_TO_DATE
        )
        assert not outcome.opened_merge_request
        assert outcome.reason is SkipReason.UP_TO_DATE


@pytest.mark.unit
class TestDashboardEntry:
    def test_urls_deduplicated_and_blank_ignored(self) -> None:
        entry = DashboardEntry("rich", "13.0", "13.7")
        entry.add_url("https://gl/mr/1")
        entry.add_url("https://gl/mr/1")
        entry.add_url(None)
        entry.add_url("")

        assert entry.merge_request_urls == {"https://gl/mr/1"}
