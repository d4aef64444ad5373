"""Dependencies dashboard issue.

Collects one :class:`DashboardEntry` per dependency with a pending update
and renders them into the body of a single issue per package manager.
The body depends only on the entries, so re-running with the same data
leaves the issue as it is.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from kira_dependencies.constants import DASHBOARD_LABELS, DASHBOARD_TITLE_TEMPLATE
from kira_dependencies.core.interfaces import MergeRequestClient
from kira_dependencies.models.dashboard import DashboardEntry
from kira_dependencies.utils.logger import get_logger

logger = get_logger("dashboard")


class Dashboard:
    """In-memory dashboard for one run."""

    def __init__(self, package_manager: str) -> None:
        self.package_manager = package_manager
        self._entries: Dict[str, DashboardEntry] = {}

    @property
    def title(self) -> str:
        return DASHBOARD_TITLE_TEMPLATE.format(package_manager=self.package_manager)

    @property
    def entries(self) -> List[DashboardEntry]:
        return list(self._entries.values())

    def record(
        self,
        name: str,
        current_version: Optional[str],
        next_version: Optional[str],
        urls: Iterable[Optional[str]] = (),
    ) -> DashboardEntry:
        """Add or refresh the entry for ``name``; URLs accumulate."""
        entry = self._entries.get(name)
        if entry is None:
            entry = DashboardEntry(name, current_version, next_version)
            self._entries[name] = entry
        else:
            entry.current_version = current_version
            entry.next_version = next_version
        for url in urls:
            entry.add_url(url)
        return entry

    def render(self) -> str:
        """Render the issue body as Markdown."""
        lines = [
            f"## {self.title}",
            "",
        ]
        if not self._entries:
            lines.append("All dependencies are up to date.")
            return "\n".join(lines) + "\n"

        lines.append("| Dependency | Current | Next | Merge requests |")
        lines.append("| --- | --- | --- | --- |")
        for entry in self._entries.values():
            links = "<br>".join(sorted(entry.merge_request_urls)) or "-"
            lines.append(
                f"| `{entry.name}` | {entry.current_version or '-'} | "
                f"{entry.next_version or '-'} | {links} |"
            )
        return "\n".join(lines) + "\n"


class DashboardPublisher:
    """Create or update the dashboard issue on GitLab."""

    def __init__(self, client: MergeRequestClient) -> None:
        self.client = client

    def find_issue(self, title: str) -> Optional[dict]:
        issues = self.client.issues(state="opened", search=title, labels=DASHBOARD_LABELS)
        for issue in issues:
            if issue.get("title") == title:
                return issue
        return None

    def publish(self, dashboard: Dashboard) -> dict:
        """Write ``dashboard`` to its issue and return the issue JSON."""
        body = dashboard.render()
        issue = self.find_issue(dashboard.title)

        if issue is None:
            logger.info("Creating dashboard issue '%s'", dashboard.title)
            return self.client.create_issue(
                title=dashboard.title,
                description=body,
                labels=DASHBOARD_LABELS,
            )

        if issue.get("description") == body:
            logger.debug("Dashboard issue #%s is up to date", issue.get("iid"))
            return issue

        logger.info("Updating dashboard issue #%s", issue.get("iid"))
        return self.client.edit_issue(int(issue["iid"]), description=body)
