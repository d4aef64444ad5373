"""
Merge request model.

:class:`MergeRequestRecord` is a read-only view of a merge request as the
hosting platform reported it. It is authoritative external state and is
never cached beyond one dependency's processing pass.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from kira_dependencies.constants import (
    MERGE_STATUS_CAN_BE_MERGED,
    MERGE_STATUS_PENDING,
)


@dataclass(frozen=True)
class MergeRequestRecord:
    """Merge request attributes the reconciler relies on.

    Attributes:
        iid: Project-scoped merge request id.
        title: Merge request title.
        source_branch: Branch holding the proposed change.
        target_branch: Branch the change merges into.
        sha: Head commit sha of the source branch.
        merge_status: Platform-computed mergeability.
        web_url: Browsable URL.
        commit_count: Number of commits, when it has been fetched.
    """

    iid: int
    title: str
    source_branch: str
    target_branch: Optional[str] = None
    sha: Optional[str] = None
    merge_status: Optional[str] = None
    web_url: Optional[str] = None
    commit_count: Optional[int] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "MergeRequestRecord":
        """Build a record from a GitLab merge request JSON object."""
        return cls(
            iid=int(data["iid"]),
            title=str(data.get("title", "")),
            source_branch=str(data.get("source_branch", "")),
            target_branch=data.get("target_branch"),
            sha=data.get("sha"),
            merge_status=data.get("merge_status"),
            web_url=data.get("web_url"),
        )

    @property
    def mergeability_pending(self) -> bool:
        """True while the platform is still computing mergeability."""
        return self.merge_status in MERGE_STATUS_PENDING

    @property
    def can_be_merged(self) -> bool:
        return self.merge_status == MERGE_STATUS_CAN_BE_MERGED

    def with_commit_count(self, count: int) -> "MergeRequestRecord":
        return replace(self, commit_count=count)
