"""PyPI metadata store for the pip backend.

Provides a per-run cache for PyPI package metadata so that each package
is fetched from ``/pypi/{pkg}/json`` at most once, however many checkers
ask for it.

Typical usage::

    with HTTPClient() as client:
        store = PyPIDataStore(client)
        data = store.get_package_data("requests")
        print(data.versions()[:3])     # newest first, no pre-releases
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from kira_dependencies.constants import PYPI_JSON_API
from kira_dependencies.exceptions import NotFoundError, PyPIError
from kira_dependencies.utils.http import HTTPClient
from kira_dependencies.utils.logger import get_logger

logger = get_logger("pip.data_store")

__all__ = ["PyPIDataStore", "PyPIPackageData"]


@dataclass
class PyPIPackageData:
    """Snapshot of one PyPI package.

    Attributes:
        name: Canonical package name.
        parsed_versions: Every version that has uploaded files and could be
            parsed, as ``(raw_str, Version)`` pairs sorted descending.
        yanked: Versions whose every file has been yanked.
    """

    name: str
    parsed_versions: List[Tuple[str, Version]] = field(default_factory=list)
    yanked: Set[str] = field(default_factory=set)

    def versions(
        self,
        *,
        include_prereleases: bool = False,
        include_yanked: bool = False,
    ) -> List[Tuple[str, Version]]:
        """Return versions newest first, filtered as requested."""
        result: List[Tuple[str, Version]] = []
        for version_str, parsed in self.parsed_versions:
            if parsed.is_prerelease and not include_prereleases:
                continue
            if version_str in self.yanked and not include_yanked:
                continue
            result.append((version_str, parsed))
        return result


class PyPIDataStore:
    """Per-run cache for PyPI package metadata.

    Args:
        http_client: A pre-configured :class:`HTTPClient` instance.
        json_api: URL template with a ``{package}`` placeholder.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        json_api: str = PYPI_JSON_API,
    ) -> None:
        self.http_client = http_client
        self.json_api = json_api
        self._package_data: Dict[str, PyPIPackageData] = {}

    def get_package_data(self, name: str) -> PyPIPackageData:
        """Fetch (or return cached) metadata for ``name``.

        Raises:
            PyPIError: The package does not exist on the index or the
                response was malformed.
        """
        normalized = canonicalize_name(name)
        cached = self._package_data.get(normalized)
        if cached is not None:
            return cached

        data = self._fetch(name)
        package = self._parse_package_data(normalized, data)
        self._package_data[normalized] = package
        return package

    def get_cached_package(self, name: str) -> Optional[PyPIPackageData]:
        """Return cached data for ``name`` without triggering a fetch."""
        return self._package_data.get(canonicalize_name(name))

    def _fetch(self, name: str) -> Dict[str, Any]:
        url = self.json_api.format(package=name)
        try:
            return self.http_client.get_json_object(url)
        except NotFoundError as exc:
            raise PyPIError(
                f"Package '{name}' not found on PyPI",
                package_name=name,
                url=url,
                status_code=404,
            ) from exc

    @staticmethod
    def _parse_package_data(name: str, data: Dict[str, Any]) -> PyPIPackageData:
        """Transform a raw PyPI JSON response into :class:`PyPIPackageData`.

        Versions that cannot be parsed and versions with no uploaded files
        are skipped.
        """
        releases = data.get("releases")
        if not isinstance(releases, dict):
            raise PyPIError("PyPI response has no releases", package_name=name)

        parsed_versions: List[Tuple[str, Version]] = []
        yanked: Set[str] = set()

        for version_str, files in releases.items():
            # Phantom versions without uploads
            if not files:
                continue

            try:
                parsed = Version(version_str)
            except InvalidVersion:
                logger.debug("Skipping non-PEP 440 version %s of %s", version_str, name)
                continue

            parsed_versions.append((version_str, parsed))
            if all(file_info.get("yanked", False) for file_info in files):
                yanked.add(version_str)

        parsed_versions.sort(key=lambda item: item[1], reverse=True)
        return PyPIPackageData(name=name, parsed_versions=parsed_versions, yanked=yanked)
