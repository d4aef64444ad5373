"""Unit tests for the update pipeline.

Runs :class:`UpdateRunner` end to end against :class:`FakeGitLab` and
:class:`FakePackageManager`.
"""

from __future__ import annotations

from typing import Any

import pytest

from conftest import (
    FakeChecker,
    FakeGitLab,
    FakePackageManager,
    make_config,
    make_dependency,
)
from kira_dependencies.core.runner import UpdateRunner
from kira_dependencies.models.dependency import Dependency
from kira_dependencies.models.outcome import OutcomeStatus, SkipReason
from kira_dependencies.models.update import UnlockStrategy


def _runner(
    gitlab: FakeGitLab, package_manager: FakePackageManager, **overrides: Any
) -> UpdateRunner:
    return UpdateRunner(
        make_config(**overrides),
        client=gitlab,
        package_manager=package_manager,
        sleep=lambda _: None,
    )


# ============================================================================
# Skips
# ============================================================================


@pytest.mark.unit
class TestSkips:
    """Dependencies that produce no merge request activity."""

    def test_up_to_date_dependency(self, gitlab: FakeGitLab) -> None:
        rich = make_dependency("rich")
        pm = FakePackageManager([rich], {"rich": FakeChecker(rich, up_to_date=True)})

        summary = _runner(gitlab, pm).run()

        assert [o.status for o in summary.outcomes] == [OutcomeStatus.SKIPPED]
        assert summary.outcomes[0].reason is SkipReason.UP_TO_DATE
        assert gitlab.calls == []

    def test_update_not_possible(self, gitlab: FakeGitLab) -> None:
        rich = make_dependency("rich")
        pm = FakePackageManager([rich], {"rich": FakeChecker(rich, allowed=())})

        summary = _runner(gitlab, pm).run()

        outcome = summary.outcomes[0]
        assert outcome.status is OutcomeStatus.SKIPPED
        assert outcome.reason is SkipReason.UPDATE_NOT_POSSIBLE
        assert outcome.next_version == "2.0"
        assert gitlab.calls == []

    def test_excluded_strategy_makes_update_impossible(
        self, gitlab: FakeGitLab
    ) -> None:
        rich = make_dependency("rich")
        pm = FakePackageManager(
            [rich], {"rich": FakeChecker(rich, allowed=(UnlockStrategy.OWN,))}
        )

        summary = _runner(
            gitlab,
            pm,
            excluded_requirements_to_unlock=frozenset({UnlockStrategy.OWN}),
        ).run()

        assert summary.outcomes[0].reason is SkipReason.UPDATE_NOT_POSSIBLE
        assert gitlab.calls == []

    def test_transitive_dependencies_are_not_processed(
        self, gitlab: FakeGitLab
    ) -> None:
        transitive = Dependency(name="idna", version="3.4", package_manager="pip")
        pm = FakePackageManager([transitive])

        summary = _runner(gitlab, pm).run()

        assert summary.outcomes == []
        assert "idna" not in pm.checkers


# ============================================================================
# Merge requests and the cap
# ============================================================================


@pytest.mark.unit
class TestMergeRequests:
    """Tests for creating merge requests and honouring the cap."""

    def test_one_merge_request_per_outdated_dependency(
        self, gitlab: FakeGitLab
    ) -> None:
        pm = FakePackageManager([make_dependency("rich"), make_dependency("click")])

        summary = _runner(gitlab, pm).run()

        assert [o.status for o in summary.outcomes] == [
            OutcomeStatus.CREATED,
            OutcomeStatus.CREATED,
        ]
        titles = [mr.title for mr in gitlab.opened()]
        assert titles == ["Bump rich from 1.0 to 2.0", "Bump click from 1.0 to 2.0"]
        created = [args for name, args in gitlab.calls if name == "create_merge_request"]
        assert created[0]["labels"] == ["dependencies", "python"]

    def test_cap_stops_the_loop(self, gitlab: FakeGitLab) -> None:
        pm = FakePackageManager([make_dependency("rich"), make_dependency("click")])

        summary = _runner(gitlab, pm, max_merge_requests=1).run()

        assert len(gitlab.opened()) == 1
        assert len(summary.outcomes) == 1
        assert summary.stopped_early is True

    def test_cap_counts_updated_merge_requests(self, gitlab: FakeGitLab) -> None:
        gitlab.add_merge_request(
            "Bump rich from 1.0 to 2.0", merge_status="cannot_be_merged"
        )
        pm = FakePackageManager([make_dependency("rich"), make_dependency("click")])

        summary = _runner(gitlab, pm, max_merge_requests=1).run()

        assert [o.status for o in summary.outcomes] == [OutcomeStatus.UPDATED]
        assert "create_merge_request" not in gitlab.names()

    def test_unchanged_merge_requests_do_not_count(self, gitlab: FakeGitLab) -> None:
        gitlab.add_merge_request("Bump rich from 1.0 to 2.0")
        pm = FakePackageManager([make_dependency("rich"), make_dependency("click")])

        summary = _runner(gitlab, pm, max_merge_requests=1).run()

        assert [o.status for o in summary.outcomes] == [
            OutcomeStatus.UNCHANGED,
            OutcomeStatus.CREATED,
        ]

    def test_cap_with_dashboard_keeps_collecting(self, gitlab: FakeGitLab) -> None:
        """With the dashboard on, held-back updates are still listed."""
        pm = FakePackageManager([make_dependency("rich"), make_dependency("click")])

        summary = _runner(gitlab, pm, max_merge_requests=1, dashboard=True).run()

        assert len(gitlab.opened()) == 1
        assert summary.stopped_early is False
        assert summary.outcomes[1].reason is SkipReason.MERGE_REQUEST_LIMIT
        body = gitlab.issue_store[1]["description"]
        assert "`rich`" in body
        assert "`click`" in body

    def test_post_actions_run_for_new_merge_requests(
        self, gitlab: FakeGitLab
    ) -> None:
        pm = FakePackageManager([make_dependency("rich")])

        _runner(gitlab, pm, approve_merge=True, auto_merge=True).run()

        assert "approve_merge_request" in gitlab.names()
        assert "accept_merge_request" in gitlab.names()

    def test_assignees_are_passed_through(self, gitlab: FakeGitLab) -> None:
        pm = FakePackageManager([make_dependency("rich")])

        _runner(gitlab, pm, assignees=(42,)).run()

        created = dict(gitlab.calls)["create_merge_request"]
        assert created["assignee_ids"] == [42]


# ============================================================================
# Failure containment
# ============================================================================


@pytest.mark.unit
class TestFailures:
    """Tests for per-dependency error handling."""

    def test_failure_does_not_stop_later_dependencies(
        self, gitlab: FakeGitLab
    ) -> None:
        pm = FakePackageManager(
            [make_dependency("broken"), make_dependency("rich")],
            {"broken": RuntimeError("boom")},
        )

        summary = _runner(gitlab, pm).run()

        assert [o.status for o in summary.outcomes] == [
            OutcomeStatus.FAILED,
            OutcomeStatus.CREATED,
        ]
        assert str(summary.failures[0].error) == "boom"

    def test_fail_on_exception_aborts(self, gitlab: FakeGitLab) -> None:
        pm = FakePackageManager(
            [make_dependency("broken"), make_dependency("rich")],
            {"broken": RuntimeError("boom")},
        )

        with pytest.raises(RuntimeError, match="boom"):
            _runner(gitlab, pm, fail_on_exception=True).run()

        assert gitlab.calls == []

    def test_failure_during_merge_request_creation(self, gitlab: FakeGitLab) -> None:
        gitlab.failures["create_merge_request"] = RuntimeError("gitlab down")
        pm = FakePackageManager([make_dependency("rich")])

        summary = _runner(gitlab, pm).run()

        assert summary.outcomes[0].status is OutcomeStatus.FAILED


# ============================================================================
# Dashboard
# ============================================================================


@pytest.mark.unit
class TestDashboardRuns:
    """Tests for repeated runs maintaining the dashboard issue."""

    def test_second_identical_run_leaves_issue_alone(
        self, gitlab: FakeGitLab
    ) -> None:
        _runner(
            gitlab, FakePackageManager([make_dependency("rich")]), dashboard=True
        ).run()
        first_body = gitlab.issue_store[1]["description"]
        gitlab.calls.clear()

        summary = _runner(
            gitlab, FakePackageManager([make_dependency("rich")]), dashboard=True
        ).run()

        assert len(gitlab.issue_store) == 1
        assert gitlab.issue_store[1]["description"] == first_body
        assert gitlab.calls == []
        assert summary.dashboard_url == gitlab.issue_store[1]["web_url"]

    def test_dashboard_lists_merge_request_link(self, gitlab: FakeGitLab) -> None:
        summary = _runner(
            gitlab, FakePackageManager([make_dependency("rich")]), dashboard=True
        ).run()

        url = summary.outcomes[0].merge_request.web_url
        assert url in gitlab.issue_store[1]["description"]

    def test_no_dashboard_by_default(self, gitlab: FakeGitLab) -> None:
        summary = _runner(gitlab, FakePackageManager([make_dependency("rich")])).run()

        assert gitlab.issue_store == {}
        assert summary.dashboard_url is None


@pytest.mark.unit
class TestRunnerLifecycle:
    """Tests for resource ownership and summary rows."""

    def test_injected_package_manager_is_not_closed(self, gitlab: FakeGitLab) -> None:
        pm = FakePackageManager([])

        with _runner(gitlab, pm) as runner:
            runner.run()

        assert pm.closed is False

    def test_summary_rows(self, gitlab: FakeGitLab) -> None:
        rich = make_dependency("rich")
        pm = FakePackageManager(
            [rich, make_dependency("click")],
            {"rich": FakeChecker(rich, up_to_date=True)},
        )
        runner = _runner(gitlab, pm)

        rows = runner.summary_rows(runner.run())

        assert rows[0] == {
            "Dependency": "rich",
            "From": "1.0",
            "To": "-",
            "Result": "skipped",
            "Detail": "up_to_date",
        }
        assert rows[1]["Result"] == "created"
        assert rows[1]["Detail"].startswith("https://gitlab.example/")
