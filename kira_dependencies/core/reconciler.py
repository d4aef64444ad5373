"""Merge request reconciliation.

For one computed update, brings the project's open merge requests in
line with it:

1. list open update merge requests (source branch under the update
   branch prefix) whose title names the dependency;
2. wait (bounded) for GitLab to finish computing their mergeability;
3. close stale ones (other target version) and delete their branches;
4. amend an unmergeable, single-commit merge request for the same
   version in place, or leave a healthy one untouched;
5. otherwise open a new merge request;
6. optionally approve it and enable merge-when-pipeline-succeeds.

Title matching uses a name boundary (``foo`` does not match ``foobar``)
but the target version is matched as a raw substring, so ``1.0`` also
matches a title mentioning ``1.0.1``.
"""

from __future__ import annotations

import re
import time
from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from kira_dependencies.constants import (
    BRANCH_PREFIX,
    MERGE_STATUS_MAX_ATTEMPTS,
    MERGE_STATUS_POLL_DELAY,
)
from kira_dependencies.core.interfaces import MergeRequestClient
from kira_dependencies.core.polling import poll
from kira_dependencies.core.merge_request_creator import (
    MergeRequestCreator,
    MergeRequestUpdater,
)
from kira_dependencies.models.merge_request import MergeRequestRecord
from kira_dependencies.models.update import UpdatedDependencySet, UpdatedFileSet
from kira_dependencies.utils.logger import get_logger

logger = get_logger("reconciler")


def title_mentions_dependency(title: str, name: str) -> bool:
    """True when ``name`` appears in ``title`` as a whole word.

    Words are delimited by the title edges, whitespace or backticks.
    """
    pattern = rf"(?:^|[\s`]){re.escape(name)}(?:$|[\s`])"
    return re.search(pattern, title) is not None


def title_mentions_version(title: str, version: Optional[str]) -> bool:
    """True when ``version`` occurs anywhere in ``title`` (substring)."""
    return bool(version) and version in title


def is_update_branch(branch: str) -> bool:
    """True for branches this tool creates (``dependabot/...``)."""
    return branch.startswith(f"{BRANCH_PREFIX}/")


class ReconcileAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult:
    """What reconciliation did for one update.

    Attributes:
        action: Whether a merge request was created, updated or left alone.
        merge_request: The relevant merge request, if any.
        closed: Stale merge requests that were closed.
        post_actions: Post-actions that succeeded (``approved``,
            ``set to be accepted``).
    """

    action: ReconcileAction
    merge_request: Optional[MergeRequestRecord] = None
    closed: List[MergeRequestRecord] = field(default_factory=list)
    post_actions: List[str] = field(default_factory=list)


class MergeRequestReconciler:
    """Reconcile open merge requests with computed updates.

    Args:
        client: GitLab client.
        creator: Opens new merge requests.
        updater: Amends existing merge requests.
        approve: Approve merge requests after creating/updating them.
        auto_merge: Enable merge-when-pipeline-succeeds afterwards.
        max_attempts: Mergeability probes per merge request.
        poll_delay: Seconds between mergeability probes.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        client: MergeRequestClient,
        creator: MergeRequestCreator,
        updater: MergeRequestUpdater,
        *,
        approve: bool = False,
        auto_merge: bool = False,
        max_attempts: int = MERGE_STATUS_MAX_ATTEMPTS,
        poll_delay: float = MERGE_STATUS_POLL_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.creator = creator
        self.updater = updater
        self.approve = approve
        self.auto_merge = auto_merge
        self.max_attempts = max_attempts
        self.poll_delay = poll_delay
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def matching_merge_requests(self, name: str) -> List[MergeRequestRecord]:
        """Open update merge requests whose title names dependency ``name``.

        Merge requests from other branches are never touched, even when
        their title mentions the dependency.
        """
        candidates = self.client.merge_requests(state="opened", search=name)
        return [
            mr
            for mr in candidates
            if is_update_branch(mr.source_branch)
            and title_mentions_dependency(mr.title, name)
        ]

    def existing_for_version(
        self, name: str, version: Optional[str]
    ) -> List[MergeRequestRecord]:
        """Open merge requests for ``name`` that already target ``version``."""
        return [
            mr
            for mr in self.matching_merge_requests(name)
            if title_mentions_version(mr.title, version)
        ]

    def wait_for_merge_status(self, merge_request: MergeRequestRecord) -> MergeRequestRecord:
        """Return the merge request once GitLab has computed mergeability.

        Gives up after :attr:`max_attempts` probes and returns the last
        state seen.
        """
        if not merge_request.mergeability_pending:
            return merge_request

        result = poll(
            lambda: self.client.merge_request(merge_request.iid),
            lambda mr: mr.mergeability_pending,
            max_attempts=self.max_attempts,
            delay=self.poll_delay,
            sleep=self._sleep,
        )
        if result.pending:
            logger.warning(
                "Merge request !%d still has merge_status=%s after %d checks",
                merge_request.iid,
                result.value.merge_status,
                result.attempts,
            )
        return result.value

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(
        self,
        updated: UpdatedDependencySet,
        files: UpdatedFileSet,
    ) -> ReconcileResult:
        """Close, amend, keep or create merge requests for ``updated``."""
        lead = updated.lead
        closed: List[MergeRequestRecord] = []
        candidate: Optional[MergeRequestRecord] = None
        untouched: Optional[MergeRequestRecord] = None

        for merge_request in self.matching_merge_requests(lead.name):
            merge_request = self.wait_for_merge_status(merge_request)

            if not title_mentions_version(merge_request.title, lead.version):
                self._close_stale(merge_request)
                closed.append(merge_request)
                continue

            if candidate is None and not merge_request.can_be_merged:
                commits = self.client.merge_request_commits(merge_request.iid)
                merge_request = merge_request.with_commit_count(len(commits))
                if merge_request.commit_count == 1:
                    candidate = merge_request
                    continue

            if untouched is None:
                untouched = merge_request
            logger.debug("Leaving !%d untouched", merge_request.iid)

        if candidate is not None:
            amended = self.updater.update(candidate, candidate.sha, updated, files)
            if amended is None:
                return ReconcileResult(
                    action=ReconcileAction.UNCHANGED,
                    merge_request=candidate,
                    closed=closed,
                )
            result = ReconcileResult(
                action=ReconcileAction.UPDATED, merge_request=amended, closed=closed
            )
        elif untouched is not None:
            return ReconcileResult(
                action=ReconcileAction.UNCHANGED, merge_request=untouched, closed=closed
            )
        else:
            created = self.creator.create(updated, files)
            result = ReconcileResult(
                action=ReconcileAction.CREATED, merge_request=created, closed=closed
            )

        result.post_actions = self._post_actions(result.merge_request)
        return result

    def _close_stale(self, merge_request: MergeRequestRecord) -> None:
        logger.info(
            "Closing outdated merge request !%d (%s)",
            merge_request.iid,
            merge_request.title,
        )
        self.client.close_merge_request(merge_request.iid)
        self.client.delete_branch(merge_request.source_branch)

    def _post_actions(self, merge_request: Optional[MergeRequestRecord]) -> List[str]:
        """Approve and schedule auto-merge, never letting a failure escape."""
        done: List[str] = []
        if merge_request is None:
            return done

        if self.approve:
            try:
                self.client.approve_merge_request(merge_request.iid)
                done.append("approved")
            except Exception as exc:
                logger.error("Failed to approve !%d: %s", merge_request.iid, exc)

        if self.auto_merge:
            try:
                self.client.accept_merge_request(
                    merge_request.iid,
                    merge_when_pipeline_succeeds=True,
                    should_remove_source_branch=True,
                )
                done.append("set to be accepted")
            except Exception as exc:
                logger.error(
                    "Failed to enable auto-merge for !%d: %s", merge_request.iid, exc
                )

        return done
