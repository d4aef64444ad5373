"""Update pipeline.

:class:`UpdateRunner` executes one run end to end: fetch the dependency
files, parse them, then process every top-level dependency in parser
order. Each dependency is checked, its unlock strategy chosen, its files
updated and its merge requests reconciled before the next one starts.

Failure containment: an exception while processing one dependency is
logged with its traceback and recorded as a ``failed`` outcome; the loop
moves on unless ``fail_on_exception`` is set, in which case the
exception propagates and ends the run. Fetching and parsing happen
before the loop and are always fatal.

Typical usage::

    config = load_config()
    with UpdateRunner(config) as runner:
        summary = runner.run()
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from kira_dependencies.config import RunConfig
from kira_dependencies.constants import DEPENDENCIES_LABEL
from kira_dependencies.core.dashboard import Dashboard, DashboardPublisher
from kira_dependencies.core.interfaces import MergeRequestClient, PackageManager
from kira_dependencies.core.merge_request_creator import (
    MergeRequestCreator,
    MergeRequestUpdater,
)
from kira_dependencies.core.reconciler import (
    MergeRequestReconciler,
    ReconcileAction,
    ReconcileResult,
)
from kira_dependencies.core.registry import for_package_manager
from kira_dependencies.core.unlock import check_dependency
from kira_dependencies.models.dependency import Dependency, DependencyFile
from kira_dependencies.models.outcome import (
    DependencyOutcome,
    OutcomeStatus,
    RunSummary,
    SkipReason,
)
from kira_dependencies.models.update import (
    UnlockStrategy,
    UpdatedDependencySet,
    UpdatedFileSet,
)
from kira_dependencies.platforms.gitlab import GitLabClient
from kira_dependencies.utils.console import (
    finish_progress,
    print_info,
    start_progress,
)
from kira_dependencies.utils.logger import get_logger

logger = get_logger("runner")

_ACTION_STATUS = {
    ReconcileAction.CREATED: OutcomeStatus.CREATED,
    ReconcileAction.UPDATED: OutcomeStatus.UPDATED,
    ReconcileAction.UNCHANGED: OutcomeStatus.UNCHANGED,
}

_ACTION_SUFFIX = {
    ReconcileAction.CREATED: "submitted",
    ReconcileAction.UPDATED: "updated",
    ReconcileAction.UNCHANGED: "already open",
}


class UpdateRunner:
    """Run the dependency update pipeline once.

    Args:
        config: Run configuration.
        client: GitLab client; built from ``config`` when omitted.
        package_manager: Ecosystem backend; looked up in the registry
            from ``config.package_manager`` when omitted.
        sleep: Sleep function used while polling mergeability.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        client: Optional[MergeRequestClient] = None,
        package_manager: Optional[PackageManager] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.source = config.source

        self._owns_client = client is None
        self._owns_package_manager = package_manager is None

        self.package_manager = package_manager or for_package_manager(
            config.package_manager
        )
        self.client: MergeRequestClient = client or GitLabClient(
            config.api_endpoint,
            config.project_path,
            config.gitlab_token,
        )

        labels: List[str] = [DEPENDENCIES_LABEL]
        if self.package_manager.language:
            labels.append(self.package_manager.language)

        self.reconciler = MergeRequestReconciler(
            self.client,
            MergeRequestCreator(
                self.client,
                self.source,
                config.package_manager,
                labels=labels,
                assignees=config.assignees,
            ),
            MergeRequestUpdater(self.client, self.source),
            approve=config.approve_merge,
            auto_merge=config.auto_merge,
            sleep=sleep,
        )
        self.dashboard: Optional[Dashboard] = (
            Dashboard(config.package_manager) if config.dashboard else None
        )

    def __enter__(self) -> "UpdateRunner":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the client and backend if this runner created them."""
        if self._owns_package_manager:
            self.package_manager.close()
        if self._owns_client and isinstance(self.client, GitLabClient):
            self.client.close()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def run(self) -> RunSummary:
        """Process every top-level dependency and return the outcomes."""
        config = self.config
        credentials = config.credentials

        print_info(
            f"Fetching {config.package_manager} dependency files for {config.project_path}"
        )
        fetcher = self.package_manager.file_fetcher(
            source=self.source, credentials=credentials
        )
        files = fetcher.files()
        commit = fetcher.commit()
        logger.debug("Fetched %d dependency files at %s", len(files), commit)

        print_info("Parsing dependencies information")
        dependencies = self.package_manager.file_parser(
            dependency_files=files,
            source=self.source,
            credentials=credentials,
        ).parse()

        summary = RunSummary()
        for dependency in dependencies:
            if not dependency.top_level:
                continue

            limit_reached = config.merge_request_limit_reached(
                summary.merge_request_count
            )
            if limit_reached and self.dashboard is None:
                logger.info(
                    "Reached the limit of %d merge requests; stopping",
                    config.max_merge_requests,
                )
                summary.stopped_early = True
                break

            summary.add(
                self.process_dependency(
                    dependency, files, commit, limit_reached=limit_reached
                )
            )

        if self.dashboard is not None:
            issue = DashboardPublisher(self.client).publish(self.dashboard)
            summary.dashboard_url = issue.get("web_url")

        return summary

    def process_dependency(
        self,
        dependency: Dependency,
        files: Sequence[DependencyFile],
        commit: str,
        *,
        limit_reached: bool = False,
    ) -> DependencyOutcome:
        """Process one dependency, containing any error it raises.

        Raises:
            Exception: Only when ``fail_on_exception`` is set.
        """
        try:
            return self._process(dependency, files, commit, limit_reached=limit_reached)
        except Exception as exc:
            finish_progress("failed")
            if self.config.fail_on_exception:
                raise
            logger.error(
                "Error processing %s (%s)",
                dependency.name,
                exc,
                exc_info=True,
            )
            return DependencyOutcome(
                name=dependency.name,
                status=OutcomeStatus.FAILED,
                current_version=dependency.version,
                error=exc,
            )

    def _process(
        self,
        dependency: Dependency,
        files: Sequence[DependencyFile],
        commit: str,
        *,
        limit_reached: bool,
    ) -> DependencyOutcome:
        config = self.config
        checker = self.package_manager.update_checker(
            dependency=dependency,
            dependency_files=files,
            credentials=config.credentials,
            requirements_update_strategy=config.requirements_update_strategy,
            ignored_versions=config.ignored_versions_for(dependency.name),
        )

        check = check_dependency(
            dependency, checker, config.excluded_requirements_to_unlock
        )
        if check.up_to_date:
            logger.debug("%s is up to date", dependency.name)
            return self._skipped(dependency, SkipReason.UP_TO_DATE)

        if check.requirements_to_unlock is UnlockStrategy.UPDATE_NOT_POSSIBLE:
            logger.info(
                "No permitted way to update %s to %s",
                dependency.name,
                check.latest_version,
            )
            return self._skipped(
                dependency,
                SkipReason.UPDATE_NOT_POSSIBLE,
                next_version=check.latest_version,
            )

        updated = UpdatedDependencySet(
            tuple(
                checker.updated_dependencies(
                    requirements_to_unlock=check.requirements_to_unlock
                )
            )
        )
        next_version = updated.lead.version
        logger.debug(
            "%s: unlock=%s, updating %s",
            dependency.name,
            check.requirements_to_unlock.value,
            ", ".join(updated.names),
        )

        if limit_reached:
            self._record(
                dependency,
                next_version,
                [
                    mr.web_url
                    for mr in self.reconciler.existing_for_version(
                        dependency.name, next_version
                    )
                ],
            )
            return self._skipped(
                dependency,
                SkipReason.MERGE_REQUEST_LIMIT,
                next_version=next_version,
            )

        start_progress(
            f"  - Updating {dependency.name} (from {dependency.display_version()})…"
        )

        updated_files = self.package_manager.file_updater(
            dependencies=updated.dependencies,
            dependency_files=files,
            credentials=config.credentials,
        ).updated_dependency_files()

        result = self.reconciler.reconcile(
            updated, UpdatedFileSet(tuple(updated_files), commit)
        )
        finish_progress(" ".join([_ACTION_SUFFIX[result.action], *result.post_actions]))

        self._record(dependency, next_version, self._urls(result))
        return DependencyOutcome(
            name=dependency.name,
            status=_ACTION_STATUS[result.action],
            current_version=dependency.version,
            next_version=next_version,
            merge_request=result.merge_request,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _skipped(
        dependency: Dependency,
        reason: SkipReason,
        *,
        next_version: Optional[str] = None,
    ) -> DependencyOutcome:
        return DependencyOutcome(
            name=dependency.name,
            status=OutcomeStatus.SKIPPED,
            current_version=dependency.version,
            next_version=next_version,
            reason=reason,
        )

    @staticmethod
    def _urls(result: ReconcileResult) -> List[Optional[str]]:
        if result.merge_request is None:
            return []
        return [result.merge_request.web_url]

    def _record(
        self,
        dependency: Dependency,
        next_version: Optional[str],
        urls: Sequence[Optional[str]],
    ) -> None:
        if self.dashboard is not None:
            self.dashboard.record(
                dependency.name,
                dependency.display_version(),
                next_version,
                urls,
            )

    def summary_rows(self, summary: RunSummary) -> List[Dict[str, str]]:
        """Rows for the summary table printed by the CLI."""
        rows: List[Dict[str, str]] = []
        for outcome in summary.outcomes:
            detail = outcome.reason.value if outcome.reason else ""
            if outcome.merge_request is not None:
                detail = outcome.merge_request.web_url or f"!{outcome.merge_request.iid}"
            if outcome.error is not None:
                detail = str(outcome.error)
            rows.append(
                {
                    "Dependency": outcome.name,
                    "From": outcome.current_version or "-",
                    "To": outcome.next_version or "-",
                    "Result": outcome.status.value,
                    "Detail": detail,
                }
            )
        return rows
