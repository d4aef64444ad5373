"""Rewriting of pip version specifiers.

Given a declared requirement such as ``==1.4.2`` or ``>=1.0,<2.0`` and a
target version, produce the requirement that admits the target while
changing as little as possible:

- ``==`` / ``===`` pins move to the target (wildcards keep their depth);
- ``~=`` moves to the target at the same precision;
- violated upper bounds (``<``, ``<=``) are raised past the target;
- ``!=`` exclusions of the target are dropped;
- lower bounds stay, except that ``bump_versions`` raises ``>=`` to the
  target.

Under ``auto``, ``widen_ranges`` and ``bump_versions_if_necessary`` a
requirement that already admits the target is returned unchanged.
"""

from __future__ import annotations

from typing import List, Optional

from packaging.specifiers import Specifier, SpecifierSet
from packaging.version import Version

from kira_dependencies.models.update import RequirementsUpdateStrategy


def update_requirement(
    requirement: Optional[str],
    new_version: str,
    strategy: Optional[RequirementsUpdateStrategy] = None,
) -> Optional[str]:
    """Return ``requirement`` rewritten to admit ``new_version``."""
    if not requirement:
        return requirement

    target = Version(new_version)
    bump = strategy is RequirementsUpdateStrategy.BUMP_VERSIONS

    if not bump and SpecifierSet(requirement).contains(target, prereleases=True):
        return requirement

    updated: List[str] = []
    for part in requirement.split(","):
        spec = Specifier(part.strip())
        operator, version = spec.operator, spec.version

        if operator in ("==", "==="):
            if version.endswith(".*"):
                updated.append(f"{operator}{_wildcard(target, version)}")
            else:
                updated.append(f"{operator}{new_version}")
        elif operator == "~=":
            updated.append(f"~={_same_precision(target, version)}")
        elif operator in (">=", ">"):
            if bump and operator == ">=":
                updated.append(f">={new_version}")
            elif spec.contains(target, prereleases=True):
                updated.append(str(spec))
            else:
                updated.append(f">={new_version}")
        elif operator in ("<", "<="):
            if spec.contains(target, prereleases=True):
                updated.append(str(spec))
            elif operator == "<=":
                updated.append(f"<={new_version}")
            else:
                updated.append(f"<{_next_bound(target, version)}")
        elif operator == "!=":
            if spec.contains(target, prereleases=True):
                updated.append(str(spec))
        else:
            updated.append(str(spec))

    return ",".join(updated) or None


def _release(version: Version, length: int) -> List[int]:
    release = list(version.release[:length])
    release.extend([0] * (length - len(release)))
    return release


def _same_precision(target: Version, template: str) -> str:
    length = len(Version(template).release)
    return ".".join(str(part) for part in _release(target, length))


def _wildcard(target: Version, template: str) -> str:
    depth = len(template[: -len(".*")].split("."))
    return ".".join(str(part) for part in _release(target, depth)) + ".*"


def _next_bound(target: Version, bound: str) -> str:
    """Return an exclusive upper bound above ``target`` shaped like ``bound``.

    The significant segment is the last non-zero one of ``bound``: a cap of
    ``2.0`` moves to the next major, a cap of ``1.5`` to the next minor.
    """
    bound_release = Version(bound).release
    significant = max(
        (index for index, part in enumerate(bound_release) if part),
        default=0,
    )
    release = _release(target, significant + 1)
    release[significant] += 1
    release.extend([0] * (len(bound_release) - len(release)))
    return ".".join(str(part) for part in release)
