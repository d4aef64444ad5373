"""
Blocking HTTP client shared by the GitLab and PyPI integrations.

One :class:`HTTPClient` wraps one ``httpx.Client`` and adds the failure
policy the pipeline relies on:

- 404 raises :class:`NotFoundError` at once, so callers can treat a
  missing branch or package as an answer rather than a failure;
- other 4xx answers raise :class:`NetworkError` at once;
- 429 answers wait for ``Retry-After`` and do not use up a retry;
- 5xx answers, timeouts and connection errors are retried with
  exponential backoff, then raise :class:`NetworkError`.

Typical usage::

    with HTTPClient(base_url="https://gitlab.com/api/v4") as client:
        project = client.get_json_object("/projects/group%2Fapp")
"""

from __future__ import annotations

import time
import random
from typing import Any, Callable, Dict, Mapping, Optional, cast

import httpx

from kira_dependencies.utils.logger import get_logger
from kira_dependencies.__version__ import __version__
from kira_dependencies.exceptions import NetworkError, NotFoundError
from kira_dependencies.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    MAX_RATE_LIMIT_RETRIES,
    MAX_RETRY_AFTER,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class _Retryable(Exception):
    """Internal signal: the attempt failed but may be repeated."""

    def __init__(self, reason: str, cause: Optional[Exception] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.cause = cause


def retry_after_seconds(response: httpx.Response) -> int:
    """Seconds to wait before retrying a rate limited request.

    Non-numeric ``Retry-After`` values fall back to one second.
    """
    value = response.headers.get("Retry-After", "")
    try:
        seconds = int(value)
    except ValueError:
        return 1
    return max(0, min(seconds, MAX_RETRY_AFTER))


def backoff_delay(attempt: int) -> float:
    """Exponential backoff with a little jitter, for 0-based ``attempt``."""
    return (2**attempt) + random.uniform(0.0, 0.3)


class HTTPClient:
    """Blocking HTTP client with retries and rate-limit handling.

    Args:
        base_url: Prepended to relative request paths.
        headers: Default headers, e.g. ``PRIVATE-TOKEN``.
        timeout: Request timeout in seconds.
        max_retries: Retries after the first attempt for retryable failures.
        verify_ssl: Whether to verify TLS certificates.
        user_agent: User-Agent header value.
        transport: httpx transport; tests pass ``httpx.MockTransport``.
        sleep: Sleep function used between attempts.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        headers: Optional[Mapping[str, str]] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url
        self.headers: Dict[str, str] = dict(headers or {})
        self.timeout = timeout
        self.max_retries = max_retries
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.transport = transport

        self._sleep = sleep
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> "HTTPClient":
        self._ensure_client()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                # MockTransport cannot speak HTTP/2
                http2=self.transport is None,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent, **self.headers},
                transport=self.transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, applying the retry policy.

        Raises:
            NotFoundError: The server answered 404.
            NetworkError: Any other 4xx, too many 429s, or retries were
                exhausted.
        """
        url = url.strip().strip("\"'")
        attempts = self.max_retries + 1
        rate_limited = 0
        attempt = 0
        last: Optional[_Retryable] = None

        while attempt < attempts:
            try:
                response = self._attempt(method, url, **kwargs)
            except _Retryable as retryable:
                last = retryable
                logger.warning(
                    "%s (%d/%d): %s %s",
                    retryable.reason,
                    attempt + 1,
                    attempts,
                    method,
                    url,
                )
                attempt += 1
                if attempt < attempts:
                    self._sleep(backoff_delay(attempt - 1))
                continue

            if response.status_code != 429:
                return response

            rate_limited += 1
            if rate_limited > MAX_RATE_LIMIT_RETRIES:
                raise NetworkError(
                    f"Rate limit exceeded after {MAX_RATE_LIMIT_RETRIES} retries",
                    url=url,
                    status_code=429,
                )
            wait = retry_after_seconds(response)
            logger.warning(
                "Rate limited, retrying in %ds (%d/%d)",
                wait,
                rate_limited,
                MAX_RATE_LIMIT_RETRIES,
            )
            self._sleep(wait)

        raise NetworkError(
            f"Request failed after {attempts} attempts: {last.reason if last else url}",
            url=url,
        ) from (last.cause if last else None)

    def _attempt(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send once; classify the outcome.

        Returns successful and 429 responses, raises terminal errors and
        :class:`_Retryable` for everything worth another attempt.
        """
        try:
            response = self._ensure_client().request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise _Retryable("Request timed out", exc) from exc
        except httpx.NetworkError as exc:
            raise _Retryable(f"Network error: {exc}", exc) from exc

        status = response.status_code
        if status == 404:
            raise NotFoundError(
                f"Resource not found: {method} {url}", url=url, status_code=404
            )
        if status >= 500:
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise _Retryable(f"HTTP {status}", exc) from exc
        if 400 <= status < 500 and status != 429:
            raise NetworkError(
                f"HTTP {status} error for {method} {url}",
                url=url,
                status_code=status,
                response_body=response.text,
            )
        return response

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    @staticmethod
    def decode_json(response: httpx.Response, url: str) -> Any:
        """Decode a JSON body, wrapping failures in :class:`NetworkError`."""
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc

    def get_json(self, url: str, **kwargs: Any) -> Any:
        return self.decode_json(self.get(url, **kwargs), url)

    def get_json_object(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        """Fetch a URL whose JSON body must be an object."""
        data = self.get_json(url, **kwargs)
        if not isinstance(data, dict):
            raise NetworkError(f"Expected JSON object from {url}", url=url)
        return cast(Dict[str, Any], data)
