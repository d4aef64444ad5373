"""
Dashboard entry model.

The dashboard is rebuilt from scratch every run; entries live only in
memory until rendered into the dashboard issue body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set


@dataclass
class DashboardEntry:
    """Pending update of one dependency.

    Attributes:
        name: Dependency name.
        current_version: Version currently declared.
        next_version: Version the update targets.
        merge_request_urls: Links to the associated merge requests.
    """

    name: str
    current_version: Optional[str]
    next_version: Optional[str]
    merge_request_urls: Set[str] = field(default_factory=set)

    def add_url(self, url: Optional[str]) -> None:
        if url:
            self.merge_request_urls.add(url)
