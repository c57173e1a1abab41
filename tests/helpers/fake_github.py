"""In-memory GitHub REST API served through ``httpx.MockTransport``."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx

from ghconnect.github.client import GitHubRestClient, GitHubRestConfig

from .builders import GITHUB_API_URL, OWNER, REPO


@dataclasses.dataclass(slots=True)
class FakeGitHub:
    """Scriptable GitHub API and github.com pages.

    ``repositories`` is everything the token can see on ``/user/repos``;
    ``/users/{owner}/repos`` serves only the owner's public ones.

    ``failures`` maps a request path to status codes returned, in order,
    before the path starts answering normally. A code of ``0`` simulates a
    dropped connection.
    """

    repositories: list[dict[str, typ.Any]] = dataclasses.field(default_factory=list)
    issues: list[dict[str, typ.Any]] = dataclasses.field(default_factory=list)
    timelines: dict[int, list[dict[str, typ.Any]]] = dataclasses.field(
        default_factory=dict
    )
    repository_events: dict[int, list[dict[str, typ.Any]]] = dataclasses.field(
        default_factory=dict
    )
    failures: dict[str, list[int]] = dataclasses.field(default_factory=dict)
    failure_headers: dict[str, str] = dataclasses.field(default_factory=dict)
    pages: dict[str, tuple[int, str]] = dataclasses.field(default_factory=dict)
    page_size: int | None = None
    requests: list[httpx.Request] = dataclasses.field(default_factory=list)
    page_requests: list[str] = dataclasses.field(default_factory=list)

    def calls_to(self, path: str) -> int:
        """Return how many API requests hit ``path``."""
        return sum(1 for request in self.requests if request.url.path == path)

    def api_client(self) -> httpx.AsyncClient:
        """Return an HTTP client bound to the fake API."""
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self._handle_api), base_url=GITHUB_API_URL
        )

    def web_client(self) -> httpx.AsyncClient:
        """Return an HTTP client bound to the fake github.com pages."""
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle_web))

    def rest_client(
        self, *, max_retries: int = 2, token: str | None = None
    ) -> GitHubRestClient:
        """Return a REST client with no retry delay."""
        return GitHubRestClient(
            GitHubRestConfig(
                owner=OWNER,
                repo=REPO,
                token=token,
                api_url=GITHUB_API_URL,
                max_retries=max_retries,
                retry_delay_s=0.0,
            ),
            http_client=self.api_client(),
        )

    def _handle_web(self, request: httpx.Request) -> httpx.Response:
        self.page_requests.append(str(request.url))
        status, html = self.pages.get(str(request.url), (404, "Not Found"))
        return httpx.Response(status, text=html)

    def _handle_api(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        scripted = self.failures.get(path)
        if scripted:
            status = scripted.pop(0)
            if status == 0:
                message = "connection reset by fake"
                raise httpx.ConnectError(message, request=request)
            return httpx.Response(
                status,
                json={"message": f"scripted failure {status}"},
                headers=self.failure_headers,
            )

        if path == "/user/repos" and "Authorization" not in request.headers:
            return httpx.Response(401, json={"message": "Requires authentication"})
        listing = self._listing_for(path)
        if listing is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return self._page(request, listing)

    def _listing_for(self, path: str) -> list[dict[str, typ.Any]] | None:
        if path == f"/users/{OWNER}/repos":
            return [
                repo
                for repo in self.repositories
                if not repo["private"] and repo["owner"]["login"] == OWNER
            ]
        if path == "/user/repos":
            return self.repositories
        if path == f"/repos/{OWNER}/{REPO}/issues":
            return self.issues
        parts = path.strip("/").split("/")
        if (
            len(parts) == 6  # noqa: PLR2004
            and parts[:4] == ["repos", OWNER, REPO, "issues"]
            and parts[5] == "timeline"
        ):
            return self.timelines.get(int(parts[4]), [])
        if (
            len(parts) == 3  # noqa: PLR2004
            and parts[0] == "repositories"
            and parts[2] == "events"
        ):
            return self.repository_events.get(int(parts[1]), [])
        return None

    def _page(
        self, request: httpx.Request, listing: list[dict[str, typ.Any]]
    ) -> httpx.Response:
        if self.page_size is None:
            return httpx.Response(200, json=listing)
        page = int(request.url.params.get("page", "1"))
        start = (page - 1) * self.page_size
        chunk = listing[start : start + self.page_size]
        headers: dict[str, str] = {}
        if start + self.page_size < len(listing):
            next_url = request.url.copy_set_param("page", str(page + 1))
            headers["Link"] = f'<{next_url}>; rel="next"'
        return httpx.Response(200, json=chunk, headers=headers)
