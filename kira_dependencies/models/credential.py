"""
Credential model for kira-dependencies.

Credentials are handed to package manager backends so that they can
reach private registries and git hosts. They mirror the credential
objects understood by Dependabot (``type``, ``host``, ``username``,
``password`` plus backend-specific keys such as ``token``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Credential:
    """One credential entry.

    Attributes:
        type: Credential kind, e.g. ``git_source`` or ``python_index``.
        host: Host the credential applies to.
        username: Username, ``x-access-token`` for token credentials.
        password: The secret. Never included in ``repr()``.
        extra: Any further keys supplied by the user.
    """

    type: str
    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    extra: Mapping[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Credential":
        """Build a credential from a decoded JSON object."""
        known = {"type", "host", "username", "password"}
        return cls(
            type=str(data["type"]),
            host=data.get("host"),
            username=data.get("username"),
            password=data.get("password"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the credential as a plain dictionary, secret included."""
        data: Dict[str, Any] = {"type": self.type}
        if self.host is not None:
            data["host"] = self.host
        if self.username is not None:
            data["username"] = self.username
        if self.password is not None:
            data["password"] = self.password
        data.update(self.extra)
        return data

    def to_log_dict(self) -> Dict[str, Any]:
        """Return the credential with secrets masked, for logging."""
        data = self.to_dict()
        for key in ("password", "token"):
            if data.get(key):
                data[key] = "***"
        return data
