"""
Exception hierarchy for kira-dependencies.

Every error raised on purpose derives from :class:`KiraError`. Besides a
message, each carries ``details``: the structured context (environment
variable, URL, file and line...) that the CLI prints next to the message
and that debug logging dumps in full.

Error tiers, from the pipeline's point of view:

- :class:`ConfigError` aborts the run before any dependency is touched;
- :class:`DependencyFileNotFound` and :class:`ParseError` abort the run
  while files are fetched and parsed;
- everything else raised while processing one dependency is recorded as a
  failure for that dependency, unless fail-fast is enabled.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

#: Longest detail value kept verbatim; longer values are cut.
MAX_DETAIL_LENGTH = 200


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_DETAIL_LENGTH:
        return value[:MAX_DETAIL_LENGTH] + "..."
    return value


class KiraError(Exception):
    """Base exception for all kira-dependencies errors.

    Args:
        message: Human-readable error message.
        **details: Structured context. ``None`` values are dropped and
            long strings are clipped.
    """

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = {
            key: _clip(value) for key, value in details.items() if value is not None
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, **{self.details!r})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigError(KiraError):
    """The run configuration is missing or malformed.

    Args:
        message: Error description.
        variable: Name of the offending environment variable.
        value: Offending raw value. Never pass secrets here.
    """

    def __init__(
        self,
        message: str,
        *,
        variable: Optional[str] = None,
        value: Optional[str] = None,
    ) -> None:
        super().__init__(message, variable=variable, value=value)
        self.variable = variable
        self.value = value


class UnsupportedPackageManagerError(ConfigError):
    """No backend is registered for the requested package manager."""

    def __init__(self, package_manager: str, supported: Iterable[str]) -> None:
        self.package_manager = package_manager
        self.supported = tuple(sorted(supported))
        super().__init__(
            f"Unsupported package manager '{package_manager}' "
            f"(supported: {', '.join(self.supported) or 'none'})",
            variable="PACKAGE_MANAGER",
            value=package_manager,
        )


# ---------------------------------------------------------------------------
# Dependency files
# ---------------------------------------------------------------------------


class DependencyFileNotFound(KiraError):
    """The fetcher found no dependency files to work with."""

    def __init__(self, message: str, *, directory: Optional[str] = None) -> None:
        super().__init__(message, directory=directory)
        self.directory = directory


class ParseError(KiraError):
    """A dependency file contains a line that cannot be understood.

    Args:
        message: Error description.
        line_number: 1-based line number.
        line_content: The offending line.
        file_path: File being parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> None:
        super().__init__(message, file=file_path, line=line_number, content=line_content)
        self.line_number = line_number
        self.line_content = line_content
        self.file_path = file_path


class UpdateNotPossibleError(KiraError):
    """A backend was asked for an update it cannot produce."""

    def __init__(self, message: str, *, dependency_name: Optional[str] = None) -> None:
        super().__init__(message, dependency=dependency_name)
        self.dependency_name = dependency_name


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class NetworkError(KiraError):
    """An HTTP request failed or returned an unusable response.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if a response arrived.
        response_body: Raw response body; clipped in ``details``.
    """

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(
            message, url=url, status_code=status_code, response=response_body
        )
        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class NotFoundError(NetworkError):
    """The remote resource answered with HTTP 404."""


class PyPIError(NetworkError):
    """PyPI metadata for a package is missing or malformed."""

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.package_name = package_name
        if package_name is not None:
            self.details["package"] = package_name
