"""GitLab REST v4 client for kira-dependencies.

Wraps the shared :class:`~kira_dependencies.utils.http.HTTPClient` with
the handful of GitLab endpoints the pipeline needs: repository files and
commits, branches, merge requests and issues. Every method returns plain
JSON (or :class:`MergeRequestRecord` where the reconciler consumes it),
and every failure surfaces as a :class:`NetworkError` subclass.

Typical usage::

    with GitLabClient("https://gitlab.com/api/v4", "group/app", token) as gl:
        for mr in gl.merge_requests(search="django"):
            print(mr.iid, mr.title)
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote

import httpx

from kira_dependencies.constants import GITLAB_PER_PAGE
from kira_dependencies.exceptions import NotFoundError
from kira_dependencies.models.merge_request import MergeRequestRecord
from kira_dependencies.utils.http import HTTPClient
from kira_dependencies.utils.logger import get_logger

logger = get_logger("gitlab")


def _encode(value: str) -> str:
    """URL-encode a path segment, slashes included."""
    return quote(value, safe="")


class GitLabClient:
    """Project-scoped GitLab REST client.

    Args:
        api_endpoint: REST API base URL, e.g. ``https://gitlab.com/api/v4``.
        project_path: Project path (``namespace/project``).
        private_token: Personal access token with ``api`` scope.
        http_client: Pre-built HTTP client; one is created when omitted.
    """

    def __init__(
        self,
        api_endpoint: str,
        project_path: str,
        private_token: Optional[str] = None,
        *,
        http_client: Optional[HTTPClient] = None,
    ) -> None:
        self.api_endpoint = api_endpoint.rstrip("/")
        self.project_path = project_path

        headers = {"PRIVATE-TOKEN": private_token} if private_token else {}
        self.http = http_client or HTTPClient(
            base_url=self.api_endpoint,
            headers=headers,
        )
        self._project_url = f"/projects/{_encode(project_path)}"

    def __enter__(self) -> "GitLabClient":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _url(self, path: str = "") -> str:
        return f"{self._project_url}{path}"

    def _json(self, response: httpx.Response) -> Any:
        return HTTPClient.decode_json(response, str(response.url))

    def _paginate(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Yield every item of a paginated list endpoint.

        Follows the ``X-Next-Page`` header until it is empty.
        """
        query: Dict[str, Any] = dict(params or {})
        query.setdefault("per_page", GITLAB_PER_PAGE)
        page: Optional[str] = "1"

        while page:
            query["page"] = page
            response = self.http.get(self._url(path), params=query)
            items = self._json(response)
            if not isinstance(items, list):
                break
            yield from items
            page = response.headers.get("X-Next-Page") or None

    # ------------------------------------------------------------------
    # Project and repository
    # ------------------------------------------------------------------

    def project(self) -> Dict[str, Any]:
        return self._json(self.http.get(self._url()))

    def default_branch(self) -> str:
        """Return the project's default branch name."""
        return str(self.project()["default_branch"])

    def branch(self, name: str) -> Optional[Dict[str, Any]]:
        """Return a branch, or ``None`` when it does not exist."""
        try:
            return self._json(
                self.http.get(self._url(f"/repository/branches/{_encode(name)}"))
            )
        except NotFoundError:
            return None

    def branch_head(self, name: str) -> Optional[str]:
        """Return the sha a branch points at, or ``None`` if it is missing."""
        branch = self.branch(name)
        if branch is None:
            return None
        return branch["commit"]["id"]

    def delete_branch(self, name: str) -> None:
        """Delete a branch; a branch that is already gone is not an error."""
        try:
            self.http.delete(self._url(f"/repository/branches/{_encode(name)}"))
        except NotFoundError:
            logger.debug("Branch %s already deleted", name)

    def repository_tree(self, path: str = "", ref: Optional[str] = None) -> List[Dict[str, Any]]:
        """List the entries of a repository directory (non-recursive)."""
        params: Dict[str, Any] = {}
        if path:
            params["path"] = path
        if ref:
            params["ref"] = ref
        try:
            return list(self._paginate("/repository/tree", params))
        except NotFoundError:
            return []

    def file_content(self, path: str, ref: str) -> str:
        """Return the raw text of a repository file at ``ref``."""
        response = self.http.get(
            self._url(f"/repository/files/{_encode(path)}/raw"),
            params={"ref": ref},
        )
        return response.text

    def create_commit(
        self,
        *,
        branch: str,
        message: str,
        actions: Sequence[Dict[str, Any]],
        start_sha: Optional[str] = None,
        force: bool = False,
    ) -> Dict[str, Any]:
        """Create a commit from file actions, creating ``branch`` if needed.

        With ``force=True`` the branch is reset onto a new commit built on
        top of ``start_sha``.
        """
        payload: Dict[str, Any] = {
            "branch": branch,
            "commit_message": message,
            "actions": list(actions),
        }
        if start_sha:
            payload["start_sha"] = start_sha
        if force:
            payload["force"] = True
        return self._json(self.http.post(self._url("/repository/commits"), json=payload))

    # ------------------------------------------------------------------
    # Merge requests
    # ------------------------------------------------------------------

    def merge_requests(
        self,
        *,
        state: str = "opened",
        search: Optional[str] = None,
    ) -> List[MergeRequestRecord]:
        """List merge requests, optionally searching titles."""
        params: Dict[str, Any] = {"state": state}
        if search:
            params["search"] = search
            params["in"] = "title"
        return [
            MergeRequestRecord.from_api(item)
            for item in self._paginate("/merge_requests", params)
        ]

    def merge_request(self, iid: int) -> MergeRequestRecord:
        return MergeRequestRecord.from_api(
            self._json(self.http.get(self._url(f"/merge_requests/{iid}")))
        )

    def merge_request_commits(self, iid: int) -> List[Dict[str, Any]]:
        return list(self._paginate(f"/merge_requests/{iid}/commits"))

    def create_merge_request(
        self,
        *,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
        labels: Sequence[str] = (),
        assignee_ids: Sequence[int] = (),
        remove_source_branch: bool = True,
    ) -> MergeRequestRecord:
        payload: Dict[str, Any] = {
            "source_branch": source_branch,
            "target_branch": target_branch,
            "title": title,
            "description": description,
            "remove_source_branch": remove_source_branch,
        }
        if labels:
            payload["labels"] = ",".join(labels)
        if assignee_ids:
            payload["assignee_ids"] = list(assignee_ids)
        return MergeRequestRecord.from_api(
            self._json(self.http.post(self._url("/merge_requests"), json=payload))
        )

    def close_merge_request(self, iid: int) -> MergeRequestRecord:
        return MergeRequestRecord.from_api(
            self._json(
                self.http.put(
                    self._url(f"/merge_requests/{iid}"),
                    json={"state_event": "close"},
                )
            )
        )

    def approve_merge_request(self, iid: int) -> None:
        self.http.post(self._url(f"/merge_requests/{iid}/approve"))

    def accept_merge_request(
        self,
        iid: int,
        *,
        merge_when_pipeline_succeeds: bool = True,
        should_remove_source_branch: bool = True,
    ) -> None:
        self.http.put(
            self._url(f"/merge_requests/{iid}/merge"),
            json={
                "merge_when_pipeline_succeeds": merge_when_pipeline_succeeds,
                "should_remove_source_branch": should_remove_source_branch,
            },
        )

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def issues(
        self,
        *,
        state: str = "opened",
        search: Optional[str] = None,
        labels: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"state": state}
        if search:
            params["search"] = search
            params["in"] = "title"
        if labels:
            params["labels"] = ",".join(labels)
        return list(self._paginate("/issues", params))

    def create_issue(
        self,
        *,
        title: str,
        description: str,
        labels: Sequence[str] = (),
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "description": description}
        if labels:
            payload["labels"] = ",".join(labels)
        return self._json(self.http.post(self._url("/issues"), json=payload))

    def edit_issue(self, iid: int, *, description: str) -> Dict[str, Any]:
        return self._json(
            self.http.put(self._url(f"/issues/{iid}"), json={"description": description})
        )
