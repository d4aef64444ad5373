"""Merge request content, creation and in-place update.

:class:`MessageBuilder` renders the branch name, title, description and
commit message for an :class:`UpdatedDependencySet`.
:class:`MergeRequestCreator` commits updated files to a fresh branch and
opens a merge request. :class:`MergeRequestUpdater` re-commits updated
files onto the branch of an existing merge request instead of opening a
duplicate.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from kira_dependencies.constants import BRANCH_PREFIX
from kira_dependencies.core.interfaces import MergeRequestClient
from kira_dependencies.models.source import Source
from kira_dependencies.models.dependency import Dependency
from kira_dependencies.models.merge_request import MergeRequestRecord
from kira_dependencies.models.update import UpdatedDependencySet, UpdatedFileSet
from kira_dependencies.utils.logger import get_logger
from kira_dependencies.utils.version_utils import get_update_type

logger = get_logger("merge_request_creator")

_UNSAFE_BRANCH_CHARS = re.compile(r"[^A-Za-z0-9._/-]+")


class MessageBuilder:
    """Render human-facing text for one update.

    Args:
        source: Repository the update targets.
        updated: The dependencies being updated.
    """

    def __init__(self, source: Source, updated: UpdatedDependencySet) -> None:
        self.source = source
        self.updated = updated

    @property
    def lead(self) -> Dependency:
        return self.updated.lead

    def branch_name(self, package_manager: str) -> str:
        """Return ``dependabot/<pm>/<directory>/<name>-<version>``."""
        parts = [BRANCH_PREFIX, package_manager]
        directory = self.source.directory.strip("/")
        if directory:
            parts.append(directory)
        parts.append(f"{self.lead.name}-{self.lead.version or 'latest'}")
        branch = _UNSAFE_BRANCH_CHARS.sub("-", "/".join(parts))
        return re.sub(r"/+", "/", branch).rstrip("./")

    def title(self) -> str:
        lead = self.lead
        if lead.previous_version:
            title = f"Bump {lead.name} from {lead.previous_version} to {lead.version}"
        else:
            title = f"Update {lead.name} requirement to {lead.version}"
        if self.source.directory != "/":
            title += f" in {self.source.directory}"
        return title

    def description(self) -> str:
        lead = self.lead
        if lead.previous_version:
            intro = (
                f"Bumps `{lead.name}` from {lead.previous_version} to {lead.version}."
            )
        else:
            intro = f"Updates the requirements on `{lead.name}` to permit {lead.version}."

        lines: List[str] = [intro, ""]
        lines.append("| Dependency | From | To | Update |")
        lines.append("| --- | --- | --- | --- |")
        for dep in self.updated.dependencies:
            lines.append(
                f"| `{dep.name}` | {dep.previous_version or '-'} | "
                f"{dep.version or '-'} | "
                f"{get_update_type(dep.previous_version, dep.version)} |"
            )

        changed = self._requirement_changes()
        if changed:
            lines.extend(["", "Updated requirements:", ""])
            lines.extend(changed)

        return "\n".join(lines)

    def commit_message(self) -> str:
        body = self.description().replace("`", "")
        return f"{self.title()}\n\n{body}\n"

    def _requirement_changes(self) -> List[str]:
        changes: List[str] = []
        for dep in self.updated.dependencies:
            previous = {r.file: r.requirement for r in dep.previous_requirements or ()}
            for requirement in dep.requirements:
                before = previous.get(requirement.file)
                if before != requirement.requirement:
                    changes.append(
                        f"- `{requirement.file}`: `{dep.name}` "
                        f"{before or '(any)'} → {requirement.requirement or '(any)'}"
                    )
        return changes


class MergeRequestCreator:
    """Open a merge request for an update.

    Args:
        client: GitLab client.
        source: Repository the update targets.
        package_manager: Ecosystem identifier, used in branch names.
        labels: Labels attached to the merge request.
        assignees: GitLab user ids to assign.
    """

    def __init__(
        self,
        client: MergeRequestClient,
        source: Source,
        package_manager: str,
        *,
        labels: Sequence[str] = (),
        assignees: Sequence[int] = (),
    ) -> None:
        self.client = client
        self.source = source
        self.package_manager = package_manager
        self.labels = tuple(labels)
        self.assignees = tuple(assignees)
        self._target_branch: Optional[str] = source.branch

    def target_branch(self) -> str:
        if self._target_branch is None:
            self._target_branch = self.client.default_branch()
        return self._target_branch

    def create(
        self,
        updated: UpdatedDependencySet,
        files: UpdatedFileSet,
    ) -> MergeRequestRecord:
        """Commit ``files`` to a new branch and open a merge request."""
        messages = MessageBuilder(self.source, updated)
        branch = messages.branch_name(self.package_manager)

        existing_head = self.client.branch_head(branch)
        if existing_head is not None:
            logger.info("Branch %s already exists without a merge request; resetting it", branch)

        self.client.create_commit(
            branch=branch,
            message=messages.commit_message(),
            actions=files.commit_actions(),
            start_sha=files.base_commit,
            force=existing_head is not None,
        )

        merge_request = self.client.create_merge_request(
            source_branch=branch,
            target_branch=self.target_branch(),
            title=messages.title(),
            description=messages.description(),
            labels=self.labels,
            assignee_ids=self.assignees,
        )
        logger.info("Created merge request !%d (%s)", merge_request.iid, branch)
        return merge_request


class MergeRequestUpdater:
    """Re-commit an update onto an existing merge request's branch.

    Args:
        client: GitLab client.
        source: Repository the update targets.
    """

    def __init__(self, client: MergeRequestClient, source: Source) -> None:
        self.client = client
        self.source = source

    def update(
        self,
        merge_request: MergeRequestRecord,
        old_commit: Optional[str],
        updated: UpdatedDependencySet,
        files: UpdatedFileSet,
    ) -> Optional[MergeRequestRecord]:
        """Replace the merge request's single commit with a fresh one.

        Nothing happens when the branch has disappeared or has moved past
        ``old_commit`` since the merge request was inspected.

        Returns:
            The updated merge request, or ``None`` when nothing was done.
        """
        branch = merge_request.source_branch
        head = self.client.branch_head(branch)
        if head is None:
            logger.warning("Branch %s of !%d no longer exists", branch, merge_request.iid)
            return None
        if old_commit is not None and head != old_commit:
            logger.warning(
                "Branch %s moved from %s to %s; leaving !%d alone",
                branch,
                old_commit,
                head,
                merge_request.iid,
            )
            return None

        messages = MessageBuilder(self.source, updated)
        self.client.create_commit(
            branch=branch,
            message=messages.commit_message(),
            actions=files.commit_actions(),
            start_sha=files.base_commit,
            force=True,
        )
        logger.info("Updated merge request !%d in place", merge_request.iid)
        return merge_request
