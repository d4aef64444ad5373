"""
Core functionality exports for kira-dependencies.

    from kira_dependencies.core import UpdateRunner
"""

from __future__ import annotations

from kira_dependencies.core.dashboard import Dashboard, DashboardPublisher
from kira_dependencies.core.interfaces import (
    FileFetcher,
    FileParser,
    FileUpdater,
    MergeRequestClient,
    PackageManager,
    UpdateChecker,
)
from kira_dependencies.core.merge_request_creator import (
    MergeRequestCreator,
    MergeRequestUpdater,
    MessageBuilder,
)
from kira_dependencies.core.polling import PollResult, poll
from kira_dependencies.core.reconciler import (
    MergeRequestReconciler,
    ReconcileAction,
    ReconcileResult,
)
from kira_dependencies.core.registry import (
    for_package_manager,
    register_package_manager,
    supported_package_managers,
)
from kira_dependencies.core.runner import UpdateRunner
from kira_dependencies.core.unlock import check_dependency, determine_requirements_to_unlock

__all__ = [
    "Dashboard",
    "DashboardPublisher",
    "FileFetcher",
    "FileParser",
    "FileUpdater",
    "MergeRequestClient",
    "MergeRequestCreator",
    "MergeRequestReconciler",
    "MergeRequestUpdater",
    "MessageBuilder",
    "PackageManager",
    "PollResult",
    "ReconcileAction",
    "ReconcileResult",
    "UpdateChecker",
    "UpdateRunner",
    "check_dependency",
    "determine_requirements_to_unlock",
    "for_package_manager",
    "poll",
    "register_package_manager",
    "supported_package_managers",
]
