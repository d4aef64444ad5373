"""Run configuration loader for kira-dependencies.

Every tunable is read from an environment variable, once, at start-up.
Malformed values (invalid JSON credentials or ignored versions, unknown
unlock strategies, non-numeric limits) and a missing project path are
fatal: :func:`load_config` raises :class:`ConfigError` before any
dependency is processed.

Typical usage::

    config = load_config()             # from os.environ
    config = load_config({"DEPENDABOT_PROJECT_PATH": "group/app"})

Example environment::

    DEPENDABOT_PROJECT_PATH=group/app
    PACKAGE_MANAGER=pip
    DEPENDABOT_IGNORED_VERSIONS='{"django": [">=5.0"]}'
    DEPENDABOT_MAX_MERGE_REQUESTS=5
"""

from __future__ import annotations

import os
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from kira_dependencies.exceptions import ConfigError
from kira_dependencies.utils.logger import get_logger
from kira_dependencies.models.source import Source
from kira_dependencies.models.credential import Credential
from kira_dependencies.models.update import RequirementsUpdateStrategy, UnlockStrategy
from kira_dependencies.constants import (
    DEFAULT_DIRECTORY,
    DEFAULT_GITLAB_HOSTNAME,
    DEFAULT_PACKAGE_MANAGER,
    ENV_APPROVE_MERGE,
    ENV_ASSIGNEE,
    ENV_AUTO_MERGE,
    ENV_DASHBOARD,
    ENV_DIRECTORY,
    ENV_EXCLUDE_REQUIREMENTS_TO_UNLOCK,
    ENV_EXTRA_CREDENTIALS,
    ENV_FAIL_ON_EXCEPTION,
    ENV_GITHUB_TOKEN,
    ENV_GITLAB_HOSTNAME,
    ENV_GITLAB_TOKEN,
    ENV_IGNORED_VERSIONS,
    ENV_MAX_MERGE_REQUESTS,
    ENV_PACKAGE_MANAGER,
    ENV_PROJECT_PATH,
    ENV_SOURCE_BRANCH,
    ENV_UPDATE_STRATEGY,
    FALSY_FLAG_VALUES,
    GITLAB_API_TEMPLATE,
    TOKEN_USERNAME,
)

logger = get_logger("config")

#: Strategies that may be excluded administratively.
_EXCLUDABLE = frozenset({UnlockStrategy.NONE, UnlockStrategy.OWN, UnlockStrategy.ALL})


@dataclass(frozen=True)
class RunConfig:
    """Parsed and validated run configuration.

    Constructed once by :func:`load_config` and passed explicitly to every
    stage of the pipeline.

    Attributes:
        project_path: Project to update (``namespace/project``).
        hostname: GitLab host.
        api_endpoint: GitLab REST API base URL.
        directory: Directory holding the dependency files.
        branch: Branch to read and target; ``None`` for the default branch.
        package_manager: Ecosystem identifier.
        requirements_update_strategy: How requirements are rewritten, or
            ``None`` to let the backend decide.
        excluded_requirements_to_unlock: Unlock strategies never to use.
        ignored_versions: Canonical dependency name to version constraints
            to skip.
        assignees: GitLab user ids assigned to new merge requests.
        max_merge_requests: Cap on created plus updated merge requests, or
            ``None`` for no cap.
        approve_merge: Approve merge requests after creating/updating them.
        auto_merge: Enable merge-when-pipeline-succeeds.
        dashboard: Maintain the dashboard issue.
        fail_on_exception: Abort on the first per-dependency error.
        credentials: Ordered credentials handed to backends.
        gitlab_token: Token used for the GitLab API.
    """

    project_path: str
    hostname: str = DEFAULT_GITLAB_HOSTNAME
    api_endpoint: str = ""
    directory: str = DEFAULT_DIRECTORY
    branch: Optional[str] = None
    package_manager: str = DEFAULT_PACKAGE_MANAGER
    requirements_update_strategy: Optional[RequirementsUpdateStrategy] = None
    excluded_requirements_to_unlock: FrozenSet[UnlockStrategy] = frozenset()
    ignored_versions: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    assignees: Tuple[int, ...] = ()
    max_merge_requests: Optional[int] = None
    approve_merge: bool = False
    auto_merge: bool = False
    dashboard: bool = False
    fail_on_exception: bool = False
    credentials: Tuple[Credential, ...] = ()
    gitlab_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.api_endpoint:
            object.__setattr__(
                self,
                "api_endpoint",
                GITLAB_API_TEMPLATE.format(hostname=self.hostname),
            )

    @property
    def source(self) -> Source:
        """Return the :class:`Source` described by this configuration."""
        return Source(
            hostname=self.hostname,
            repo=self.project_path,
            directory=self.directory,
            branch=self.branch,
            api_endpoint=self.api_endpoint,
        )

    def ignored_versions_for(self, name: str) -> Tuple[str, ...]:
        """Return the ignored version constraints configured for ``name``.

        Names compare the way pip compares them (case, ``-``, ``_`` and
        ``.`` are equivalent).
        """
        return tuple(self.ignored_versions.get(canonicalize_name(name), ()))

    def merge_request_limit_reached(self, count: int) -> bool:
        return self.max_merge_requests is not None and count >= self.max_merge_requests

    def secrets(self) -> List[str]:
        """Every token and password this run may send over the wire."""
        values = [self.gitlab_token]
        for credential in self.credentials:
            values.append(credential.password)
            values.append(credential.extra.get("token"))
        return [str(value) for value in values if value]

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        Secrets are masked.
        """
        return {
            "project_path": self.project_path,
            "hostname": self.hostname,
            "api_endpoint": self.api_endpoint,
            "directory": self.directory,
            "branch": self.branch,
            "package_manager": self.package_manager,
            "requirements_update_strategy": (
                self.requirements_update_strategy.value
                if self.requirements_update_strategy
                else None
            ),
            "excluded_requirements_to_unlock": sorted(
                s.value for s in self.excluded_requirements_to_unlock
            ),
            "ignored_versions": {k: list(v) for k, v in self.ignored_versions.items()},
            "assignees": list(self.assignees),
            "max_merge_requests": self.max_merge_requests,
            "approve_merge": self.approve_merge,
            "auto_merge": self.auto_merge,
            "dashboard": self.dashboard,
            "fail_on_exception": self.fail_on_exception,
            "credentials": [c.to_log_dict() for c in self.credentials],
            "gitlab_token": "***" if self.gitlab_token else None,
        }


def load_config(environ: Optional[Mapping[str, str]] = None) -> RunConfig:
    """Load and validate the run configuration from the environment.

    Args:
        environ: Mapping to read from. Defaults to :data:`os.environ`.

    Returns:
        Validated :class:`RunConfig`.

    Raises:
        ConfigError: A required variable is missing or a value is malformed.
    """
    env = os.environ if environ is None else environ

    project_path = _get(env, ENV_PROJECT_PATH)
    if not project_path:
        raise ConfigError(
            f"{ENV_PROJECT_PATH} must be set to the project path (namespace/project)",
            variable=ENV_PROJECT_PATH,
        )

    hostname = _get(env, ENV_GITLAB_HOSTNAME) or DEFAULT_GITLAB_HOSTNAME
    gitlab_token = _get(env, ENV_GITLAB_TOKEN)

    config = RunConfig(
        project_path=project_path,
        hostname=hostname,
        directory=_get(env, ENV_DIRECTORY) or DEFAULT_DIRECTORY,
        branch=_get(env, ENV_SOURCE_BRANCH),
        package_manager=_get(env, ENV_PACKAGE_MANAGER) or DEFAULT_PACKAGE_MANAGER,
        requirements_update_strategy=parse_update_strategy(
            _get(env, ENV_UPDATE_STRATEGY)
        ),
        excluded_requirements_to_unlock=parse_excluded_unlock_strategies(
            _get(env, ENV_EXCLUDE_REQUIREMENTS_TO_UNLOCK)
        ),
        ignored_versions=parse_ignored_versions(_get(env, ENV_IGNORED_VERSIONS)),
        assignees=parse_assignees(_get(env, ENV_ASSIGNEE)),
        max_merge_requests=parse_max_merge_requests(_get(env, ENV_MAX_MERGE_REQUESTS)),
        approve_merge=parse_flag(env.get(ENV_APPROVE_MERGE)),
        auto_merge=parse_flag(env.get(ENV_AUTO_MERGE)),
        dashboard=parse_flag(env.get(ENV_DASHBOARD)),
        fail_on_exception=parse_flag(env.get(ENV_FAIL_ON_EXCEPTION)),
        credentials=build_credentials(
            hostname=hostname,
            github_token=_get(env, ENV_GITHUB_TOKEN),
            gitlab_token=gitlab_token,
            extra=_get(env, ENV_EXTRA_CREDENTIALS),
        ),
        gitlab_token=gitlab_token,
    )

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    """Return a stripped variable value, treating blank values as unset."""
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_flag(value: Optional[str]) -> bool:
    """Interpret a boolean environment flag.

    Unset, empty, ``0``, ``false``, ``no`` and ``off`` mean off; any
    other value means on.
    """
    if value is None:
        return False
    return value.strip().lower() not in FALSY_FLAG_VALUES


def build_credentials(
    *,
    hostname: str,
    github_token: Optional[str],
    gitlab_token: Optional[str],
    extra: Optional[str] = None,
) -> Tuple[Credential, ...]:
    """Assemble the ordered credential list.

    The GitHub entry comes first, then the GitLab entry, then any entries
    decoded from ``DEPENDABOT_EXTRA_CREDENTIALS``.

    Raises:
        ConfigError: The extra credentials are not a JSON array of objects
            with string ``type`` and ``host`` keys.
    """
    credentials: List[Credential] = [
        Credential(
            type="git_source",
            host="github.com",
            username=TOKEN_USERNAME,
            password=github_token,
        ),
        Credential(
            type="git_source",
            host=hostname,
            username=TOKEN_USERNAME,
            password=gitlab_token,
        ),
    ]
    credentials.extend(parse_extra_credentials(extra))
    return tuple(credentials)


def parse_extra_credentials(raw: Optional[str]) -> List[Credential]:
    """Decode the JSON array held in ``DEPENDABOT_EXTRA_CREDENTIALS``."""
    if raw is None:
        return []

    # The raw value holds secrets and is never echoed back
    data = _load_json(raw, ENV_EXTRA_CREDENTIALS, echo=False)
    if not isinstance(data, list):
        raise ConfigError(
            f"{ENV_EXTRA_CREDENTIALS} must be a JSON array",
            variable=ENV_EXTRA_CREDENTIALS,
        )

    credentials: List[Credential] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigError(
                f"{ENV_EXTRA_CREDENTIALS}[{index}] must be a JSON object",
                variable=ENV_EXTRA_CREDENTIALS,
            )
        for key in ("type", "host"):
            if not isinstance(item.get(key), str):
                raise ConfigError(
                    f"{ENV_EXTRA_CREDENTIALS}[{index}] is missing string '{key}'",
                    variable=ENV_EXTRA_CREDENTIALS,
                )
        credentials.append(Credential.from_dict(item))

    return credentials


def parse_ignored_versions(raw: Optional[str]) -> Dict[str, Tuple[str, ...]]:
    """Decode ``DEPENDABOT_IGNORED_VERSIONS`` into name to constraints."""
    if raw is None:
        return {}

    data = _load_json(raw, ENV_IGNORED_VERSIONS)
    if not isinstance(data, dict):
        raise ConfigError(
            f"{ENV_IGNORED_VERSIONS} must be a JSON object",
            variable=ENV_IGNORED_VERSIONS,
            value=raw,
        )

    ignored: Dict[str, Tuple[str, ...]] = {}
    for name, constraints in data.items():
        if not isinstance(constraints, list) or not all(
            isinstance(c, str) for c in constraints
        ):
            raise ConfigError(
                f"{ENV_IGNORED_VERSIONS}['{name}'] must be a list of strings",
                variable=ENV_IGNORED_VERSIONS,
            )
        for constraint in constraints:
            parse_ignored_constraint(constraint)
        key = canonicalize_name(name)
        ignored[key] = ignored.get(key, ()) + tuple(constraints)

    return ignored


def parse_ignored_constraint(constraint: str) -> SpecifierSet:
    """Turn one ignored-version entry into a specifier set.

    A bare version (``2.0.0``) ignores exactly that version.

    Raises:
        ConfigError: The entry is neither a version nor a specifier.
    """
    text = constraint.strip()
    try:
        Version(text)
    except InvalidVersion:
        pass
    else:
        text = f"=={text}"

    try:
        return SpecifierSet(text)
    except InvalidSpecifier as exc:
        raise ConfigError(
            f"Invalid ignored version constraint '{constraint}'",
            variable=ENV_IGNORED_VERSIONS,
            value=constraint,
        ) from exc


def parse_excluded_unlock_strategies(raw: Optional[str]) -> FrozenSet[UnlockStrategy]:
    """Decode the space-separated list of forbidden unlock strategies."""
    if raw is None:
        return frozenset()

    excluded = set()
    for token in raw.split():
        try:
            strategy = UnlockStrategy(token.lower())
        except ValueError:
            strategy = None
        if strategy not in _EXCLUDABLE:
            raise ConfigError(
                f"Unknown unlock strategy '{token}' in "
                f"{ENV_EXCLUDE_REQUIREMENTS_TO_UNLOCK} (expected none, own or all)",
                variable=ENV_EXCLUDE_REQUIREMENTS_TO_UNLOCK,
                value=raw,
            )
        excluded.add(strategy)

    return frozenset(excluded)


def parse_update_strategy(raw: Optional[str]) -> Optional[RequirementsUpdateStrategy]:
    """Decode ``DEPENDABOT_UPDATE_STRATEGY``; ``none`` means unset."""
    if raw is None or raw.lower() == "none":
        return None

    try:
        return RequirementsUpdateStrategy(raw.lower())
    except ValueError as exc:
        allowed = ", ".join(s.value for s in RequirementsUpdateStrategy)
        raise ConfigError(
            f"Unknown requirements update strategy '{raw}' (expected one of: {allowed})",
            variable=ENV_UPDATE_STRATEGY,
            value=raw,
        ) from exc


def parse_assignees(raw: Optional[str]) -> Tuple[int, ...]:
    """Decode one or more GitLab user ids separated by spaces or commas."""
    if raw is None:
        return ()

    assignees: List[int] = []
    for token in re.split(r"[\s,]+", raw):
        if not token:
            continue
        if not token.isdigit():
            raise ConfigError(
                f"{ENV_ASSIGNEE} must contain numeric GitLab user ids",
                variable=ENV_ASSIGNEE,
                value=raw,
            )
        assignees.append(int(token))

    return tuple(assignees)


def parse_max_merge_requests(raw: Optional[str]) -> Optional[int]:
    """Decode ``DEPENDABOT_MAX_MERGE_REQUESTS``; unset means unlimited."""
    if raw is None:
        return None

    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(
            f"{ENV_MAX_MERGE_REQUESTS} must be an integer",
            variable=ENV_MAX_MERGE_REQUESTS,
            value=raw,
        ) from exc

    if value < 1:
        raise ConfigError(
            f"{ENV_MAX_MERGE_REQUESTS} must be at least 1",
            variable=ENV_MAX_MERGE_REQUESTS,
            value=raw,
        )
    return value


def _load_json(raw: str, variable: str, *, echo: bool = True) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"{variable} is not valid JSON: {exc}",
            variable=variable,
            value=raw if echo else None,
        ) from exc
