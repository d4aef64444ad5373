"""
Unified data model exports for kira-dependencies.

Example:
    >>> from kira_dependencies.models import Dependency, MergeRequestRecord
"""

from __future__ import annotations

from kira_dependencies.models.source import Source
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.dashboard import DashboardEntry
from kira_dependencies.models.merge_request import MergeRequestRecord
from kira_dependencies.models.dependency import (
    Dependency,
    DependencyFile,
    DependencyRequirement,
)
from kira_dependencies.models.update import (
    RequirementsUpdateStrategy,
    UnlockStrategy,
    UpdateCheckResult,
    UpdatedDependencySet,
    UpdatedFileSet,
)
from kira_dependencies.models.outcome import (
    DependencyOutcome,
    OutcomeStatus,
    RunSummary,
    SkipReason,
)

__all__ = [
    "Credential",
    "DashboardEntry",
    "Dependency",
    "DependencyFile",
    "DependencyOutcome",
    "DependencyRequirement",
    "MergeRequestRecord",
    "OutcomeStatus",
    "RequirementsUpdateStrategy",
    "RunSummary",
    "SkipReason",
    "Source",
    "UnlockStrategy",
    "UpdateCheckResult",
    "UpdatedDependencySet",
    "UpdatedFileSet",
]
