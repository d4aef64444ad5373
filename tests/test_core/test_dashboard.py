from __future__ import annotations

import pytest

from conftest import FakeGitLab
from kira_dependencies.core.dashboard import Dashboard, DashboardPublisher


@pytest.mark.unit
class TestDashboard:
    """Tests for collecting and rendering dashboard entries."""

    def test_title(self) -> None:
        assert Dashboard("pip").title == "Dependencies Dashboard (pip)"

    def test_empty_dashboard(self) -> None:
        body = Dashboard("pip").render()

        assert body.startswith("## Dependencies Dashboard (pip)")
        assert "All dependencies are up to date." in body

    def test_rows_in_processing_order(self) -> None:
        dashboard = Dashboard("pip")
        dashboard.record("rich", "13.0.0", "13.7.0", ["https://x/2"])
        dashboard.record("click", "8.0.0", "8.1.7")

        lines = dashboard.render().splitlines()

        assert lines[-2] == "| `rich` | 13.0.0 | 13.7.0 | https://x/2 |"
        assert lines[-1] == "| `click` | 8.0.0 | 8.1.7 | - |"

    def test_links_are_sorted_and_deduplicated(self) -> None:
        dashboard = Dashboard("pip")
        dashboard.record("rich", "1", "2", ["https://x/9", None, "https://x/1"])
        dashboard.record("rich", "1", "2", ["https://x/9"])

        assert dashboard.render().splitlines()[-1].endswith(
            "| https://x/1<br>https://x/9 |"
        )
        assert len(dashboard.entries) == 1

    def test_render_is_deterministic(self) -> None:
        first, second = Dashboard("pip"), Dashboard("pip")
        first.record("rich", "1", "2", ["b", "a"])
        second.record("rich", "1", "2", ["a", "b"])

        assert first.render() == second.render()


@pytest.mark.unit
class TestDashboardPublisher:
    """Tests for creating or editing the dashboard issue."""

    def test_creates_issue_with_labels(self, gitlab: FakeGitLab) -> None:
        dashboard = Dashboard("pip")
        dashboard.record("rich", "1", "2")

        issue = DashboardPublisher(gitlab).publish(dashboard)

        assert issue["title"] == "Dependencies Dashboard (pip)"
        assert issue["labels"] == ["dependencies", "dashboard"]
        assert gitlab.names() == ["create_issue"]

    def test_edits_issue_when_body_changes(self, gitlab: FakeGitLab) -> None:
        publisher = DashboardPublisher(gitlab)
        publisher.publish(Dashboard("pip"))
        dashboard = Dashboard("pip")
        dashboard.record("rich", "1", "2")

        issue = publisher.publish(dashboard)

        assert gitlab.names() == ["create_issue", "edit_issue"]
        assert "`rich`" in issue["description"]

    def test_identical_body_is_not_rewritten(self, gitlab: FakeGitLab) -> None:
        publisher = DashboardPublisher(gitlab)
        publisher.publish(Dashboard("pip"))

        publisher.publish(Dashboard("pip"))

        assert gitlab.names() == ["create_issue"]

    def test_only_exact_title_matches(self, gitlab: FakeGitLab) -> None:
        """An issue whose title merely contains the dashboard title is ignored."""
        gitlab.create_issue(
            title="Dependencies Dashboard (pip) archive",
            description="old",
            labels=["dependencies", "dashboard"],
        )

        assert DashboardPublisher(gitlab).find_issue("Dependencies Dashboard (pip)") is None

    def test_other_package_manager_dashboard_is_separate(
        self, gitlab: FakeGitLab
    ) -> None:
        publisher = DashboardPublisher(gitlab)
        publisher.publish(Dashboard("pip"))

        publisher.publish(Dashboard("bundler"))

        assert gitlab.names() == ["create_issue", "create_issue"]
