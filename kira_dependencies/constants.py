"""
Centralized constants for kira-dependencies.

This module defines immutable configuration values used across the
package: environment variable names and their defaults, GitLab
conventions, polling limits, network settings and logging formats.
All values are intended to be treated as read-only.
"""

from typing import Final, Mapping, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = (
    "kira-dependencies/{version} (https://github.com/wemake-services/kira-dependencies)"
)

# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------

ENV_GITLAB_HOSTNAME: Final[str] = "GITLAB_HOSTNAME"
ENV_GITHUB_TOKEN: Final[str] = "KIRA_GITHUB_PERSONAL_TOKEN"
ENV_GITLAB_TOKEN: Final[str] = "KIRA_GITLAB_PERSONAL_TOKEN"
ENV_EXTRA_CREDENTIALS: Final[str] = "DEPENDABOT_EXTRA_CREDENTIALS"
ENV_PROJECT_PATH: Final[str] = "DEPENDABOT_PROJECT_PATH"
ENV_DIRECTORY: Final[str] = "DEPENDABOT_DIRECTORY"
ENV_SOURCE_BRANCH: Final[str] = "DEPENDABOT_SOURCE_BRANCH"
ENV_UPDATE_STRATEGY: Final[str] = "DEPENDABOT_UPDATE_STRATEGY"
ENV_EXCLUDE_REQUIREMENTS_TO_UNLOCK: Final[str] = (
    "DEPENDABOT_EXCLUDE_REQUIREMENTS_TO_UNLOCK"
)
ENV_IGNORED_VERSIONS: Final[str] = "DEPENDABOT_IGNORED_VERSIONS"
ENV_ASSIGNEE: Final[str] = "DEPENDABOT_ASSIGNEE_GITLAB_ID"
ENV_PACKAGE_MANAGER: Final[str] = "PACKAGE_MANAGER"
ENV_MAX_MERGE_REQUESTS: Final[str] = "DEPENDABOT_MAX_MERGE_REQUESTS"
ENV_APPROVE_MERGE: Final[str] = "DEPENDABOT_GITLAB_APPROVE_MERGE"
ENV_AUTO_MERGE: Final[str] = "DEPENDABOT_GITLAB_AUTO_MERGE"
ENV_DASHBOARD: Final[str] = "KIRA_DEPENDENCIES_DASHBOARD"
ENV_FAIL_ON_EXCEPTION: Final[str] = "KIRA_FAIL_ON_EXCEPTION"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_GITLAB_HOSTNAME: Final[str] = "gitlab.com"
DEFAULT_DIRECTORY: Final[str] = "/"
DEFAULT_PACKAGE_MANAGER: Final[str] = "bundler"

#: Values that switch a boolean environment flag off.
FALSY_FLAG_VALUES: Final[frozenset] = frozenset({"", "0", "false", "no", "off"})

#: Username used for token based git credentials.
TOKEN_USERNAME: Final[str] = "x-access-token"

# ---------------------------------------------------------------------------
# GitLab conventions
# ---------------------------------------------------------------------------

#: REST API endpoint template for a GitLab host.
GITLAB_API_TEMPLATE: Final[str] = "https://{hostname}/api/v4"

#: Page size requested from paginated GitLab endpoints.
GITLAB_PER_PAGE: Final[int] = 100

#: ``merge_status`` values GitLab reports while mergeability is computed.
MERGE_STATUS_PENDING: Final[frozenset] = frozenset({"checking", "unchecked"})

#: ``merge_status`` value of a cleanly mergeable merge request.
MERGE_STATUS_CAN_BE_MERGED: Final[str] = "can_be_merged"

#: Maximum number of mergeability probes per merge request.
MERGE_STATUS_MAX_ATTEMPTS: Final[int] = 20

#: Delay in seconds between mergeability probes.
MERGE_STATUS_POLL_DELAY: Final[float] = 0.5

#: Branch prefix for generated update branches.
BRANCH_PREFIX: Final[str] = "dependabot"

#: Label attached to every generated merge request and the dashboard.
DEPENDENCIES_LABEL: Final[str] = "dependencies"

#: Labels identifying the dashboard issue.
DASHBOARD_LABELS: Final[Sequence[str]] = (DEPENDENCIES_LABEL, "dashboard")

#: Dashboard issue title template.
DASHBOARD_TITLE_TEMPLATE: Final[str] = "Dependencies Dashboard ({package_manager})"

#: Language label per package manager identifier.
LANGUAGE_LABELS: Final[Mapping[str, str]] = {
    "bundler": "ruby",
    "pip": "python",
    "npm_and_yarn": "javascript",
    "composer": "php",
    "maven": "java",
    "gradle": "java",
    "cargo": "rust",
    "go_modules": "go",
    "hex": "elixir",
    "nuget": ".NET",
    "elm": "elm",
    "docker": "docker",
    "terraform": "terraform",
    "submodules": "submodules",
    "github_actions": "github_actions",
}

# ---------------------------------------------------------------------------
# PyPI endpoints
# ---------------------------------------------------------------------------

#: Base URL for the PyPI JSON API.
PYPI_JSON_API: Final[str] = "https://pypi.org/pypi/{package}/json"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Maximum number of consecutive HTTP 429 answers honoured per request.
MAX_RATE_LIMIT_RETRIES: Final[int] = 5

#: Upper bound in seconds for a single Retry-After wait.
MAX_RETRY_AFTER: Final[int] = 60

# ---------------------------------------------------------------------------
# Requirement file patterns and directives
# ---------------------------------------------------------------------------

#: Glob patterns used to detect supported requirement-related files.
REQUIREMENT_FILE_PATTERNS: Final[Mapping[str, Sequence[str]]] = {
    "requirements": (
        "requirements.txt",
        "requirements-*.txt",
        "*requirements.txt",
        "requirements/*.txt",
    ),
    "constraints": (
        "constraints.txt",
        "constraints-*.txt",
    ),
}

#: Hash-checking directive.
HASH_DIRECTIVE: Final[str] = "--hash"

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
