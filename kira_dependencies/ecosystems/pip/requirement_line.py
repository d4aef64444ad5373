"""Line-level handling of pip requirement files.

Shared by the parser and the file updater so both agree on which lines
declare a dependency and where the version specifier sits inside them.
A requirement line is split into::

    <lead><name><extras><spec><rest>

where ``rest`` holds markers, ``--hash`` options, line continuations and
inline comments. Rewriting a line only ever replaces ``spec``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from packaging.requirements import InvalidRequirement, Requirement
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.utils import canonicalize_name

from kira_dependencies.constants import HASH_DIRECTIVE
from kira_dependencies.exceptions import ParseError

_LINE_PATTERN = re.compile(
    r"^(?P<lead>\s*)"
    r"(?P<name>[A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?)"
    r"(?P<extras>\s*\[[^\]]*\])?"
    r"(?P<spec>[^;#\\]*?)"
    r"(?P<rest>\s*(?:(?:;|#|--|\\).*)?)$"
)

#: URL fragments that are not inline comments.
_URL_FRAGMENTS = ("egg=", "subdirectory=", "sha1=", "sha256=")


@dataclass(frozen=True)
class RequirementLine:
    """A requirement-file line that declares a named dependency.

    Attributes:
        line_number: 1-based line number.
        lead: Leading whitespace.
        name: Name as written.
        extras: Extras as written (including brackets), or ``""``.
        spec: Version specifier text as written, or ``""``.
        rest: Markers, options and comment as written.
    """

    line_number: int
    lead: str
    name: str
    extras: str
    spec: str
    rest: str

    @property
    def canonical_name(self) -> str:
        return canonicalize_name(self.name)

    @property
    def requirement(self) -> Optional[str]:
        """Normalised specifier (``==1.0,<2``) or ``None`` if unconstrained."""
        return normalize_specifier(self.spec)

    @property
    def has_hashes(self) -> bool:
        return HASH_DIRECTIVE in self.rest

    def with_specifier(self, requirement: Optional[str]) -> str:
        """Return the line text with ``spec`` replaced by ``requirement``."""
        leading = self.spec[: len(self.spec) - len(self.spec.lstrip())]
        new_spec = f"{leading}{requirement}" if requirement else ""
        return f"{self.lead}{self.name}{self.extras}{new_spec}{self.rest}"


def normalize_specifier(spec: str) -> Optional[str]:
    """Drop whitespace from a specifier while keeping the written order."""
    parts = [part.strip().replace(" ", "") for part in spec.split(",")]
    parts = [part for part in parts if part]
    return ",".join(parts) or None


def same_specifiers(left: Optional[str], right: Optional[str]) -> bool:
    """Compare two specifier strings semantically."""
    try:
        return SpecifierSet(left or "") == SpecifierSet(right or "")
    except InvalidSpecifier:
        return left == right


def strip_inline_comment(line: str) -> Tuple[str, Optional[str]]:
    """Split a line into requirement text and inline comment.

    A ``#`` starts a comment at the start of the line or after whitespace,
    unless it is a URL fragment such as ``#egg=``.
    """
    for match in re.finditer(r"(?:^|\s)#", line):
        after = line[match.end():]
        if after.startswith(_URL_FRAGMENTS):
            continue
        return line[: match.start()].rstrip(), after.strip()
    return line, None


def _strip_options(text: str) -> str:
    """Remove ``--hash`` style options and a trailing continuation."""
    text = text.rstrip()
    if text.endswith("\\"):
        text = text[:-1]
    return re.split(r"\s--", text, maxsplit=1)[0].strip()


def parse_requirement_line(
    raw: str,
    line_number: int,
    file_path: Optional[str] = None,
) -> Optional[RequirementLine]:
    """Parse one line; return ``None`` when it declares no named dependency.

    Blank lines, comments, option lines (``-r``, ``-c``, ``-e``,
    ``--index-url``...), URL and local path requirements are ignored.

    Raises:
        ParseError: The line looks like a requirement but is not valid
            PEP 508.
    """
    line = raw.rstrip("\r\n")
    text, _comment = strip_inline_comment(line)
    stripped = text.strip()

    if not stripped or stripped.startswith("-"):
        return None
    if stripped.startswith((".", "/", "~")) or re.match(r"^[a-z+]+://", stripped):
        return None

    try:
        parsed = Requirement(_strip_options(stripped))
    except InvalidRequirement as exc:
        raise ParseError(
            f"Invalid requirement syntax: {exc}",
            line_number=line_number,
            line_content=stripped,
            file_path=file_path,
        ) from exc

    if parsed.url:
        return None

    match = _LINE_PATTERN.match(line)
    if match is None:
        raise ParseError(
            "Unsupported requirement layout",
            line_number=line_number,
            line_content=stripped,
            file_path=file_path,
        )

    return RequirementLine(
        line_number=line_number,
        lead=match.group("lead"),
        name=match.group("name"),
        extras=match.group("extras") or "",
        spec=match.group("spec"),
        rest=match.group("rest") or "",
    )
