"""
Version helpers for merge request texts.

Classifies a version change as major, minor or patch for the table in
merge request descriptions. Versions that are not PEP 440 compatible
(other ecosystems, git refs) classify as ``"unknown"``.
"""

from __future__ import annotations

from typing import Optional, Tuple

from packaging.version import InvalidVersion, Version

_SEGMENTS = ("major", "minor", "patch")


def parse_version_or_none(value: Optional[str]) -> Optional[Version]:
    """Parse ``value`` as a PEP 440 version, or return ``None``."""
    if not value:
        return None
    try:
        return Version(value)
    except InvalidVersion:
        return None


def get_update_type(
    current_version: Optional[str],
    target_version: Optional[str],
) -> str:
    """Describe the change from ``current_version`` to ``target_version``.

    Returns:
        ``"new"`` when there was no current version, ``"same"``,
        ``"downgrade"``, the first changed release segment (``"major"``,
        ``"minor"``, ``"patch"``), ``"update"`` for changes past the
        third segment or in pre/post/dev parts, and ``"unknown"`` when
        either side cannot be compared.

    Examples:
        >>> get_update_type("1.4.2", "2.0.0")
        'major'
        >>> get_update_type(None, "1.0.0")
        'new'
    """
    if current_version is None:
        return "new" if target_version is not None else "unknown"

    current = parse_version_or_none(current_version)
    target = parse_version_or_none(target_version)
    if current is None or target is None:
        return "unknown"

    if target == current:
        return "same"
    if target < current:
        return "downgrade"

    for segment, before, after in zip(_SEGMENTS, _release(current), _release(target)):
        if before != after:
            return segment
    return "update"


def _release(version: Version) -> Tuple[int, int, int]:
    padded = version.release + (0, 0, 0)
    return padded[0], padded[1], padded[2]
