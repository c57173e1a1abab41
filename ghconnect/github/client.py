"""GitHub REST client used by the ingestion pipeline.

The client fetches repositories, issues, and their timelines, following
``Link`` header pagination until the listing is exhausted. Recoverable
failures (5xx, rate limiting, dropped connections) are retried on the same
page request a bounded number of times with a fixed delay; everything else
fails immediately.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
import typing as typ

import httpx
import msgspec

from ghconnect.errors import RemoteApiError, ResponseShapeError, TransportError
from ghconnect.logging import get_logger, log_debug, log_warning

from .models import (
    GitHubIssue,
    GitHubRepository,
    TimelineEvent,
    _RawRepositoryEvent,
    _RawTimelineItem,
    timeline_event_from_item,
    timeline_event_from_repository_event,
)

if typ.TYPE_CHECKING:
    from ghconnect.config import ConnectorSettings

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_FORBIDDEN = 403
_HTTP_RATE_LIMITED = 429


class GitHubSourceClient(typ.Protocol):
    """Interface for fetching GitHub entities and their activity."""

    async def list_repositories(self) -> list[GitHubRepository]:
        """Return every repository of the configured owner."""
        ...

    async def list_issues(self) -> list[GitHubIssue]:
        """Return every issue of the configured repository."""
        ...

    async def list_issue_events(
        self, issue_number: int, *, max_retries: int | None = None
    ) -> list[TimelineEvent]:
        """Return the chronological timeline of one issue."""
        ...

    async def list_repository_events(
        self, repo_id: int, *, max_retries: int | None = None
    ) -> list[TimelineEvent]:
        """Return the chronological activity events of one repository."""
        ...

    async def aclose(self) -> None:
        """Release any HTTP resources."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST client."""

    owner: str
    repo: str
    token: str | None = None
    api_url: str = "https://api.github.com"
    timeout_s: float = 30.0
    user_agent: str = "ghconnect/0.1"
    max_retries: int = 3
    retry_delay_s: float = 1.0
    max_retry_delay_s: float = 60.0
    per_page: int = 100

    @classmethod
    def from_settings(cls, settings: ConnectorSettings) -> GitHubRestConfig:
        """Build client configuration from validated connector settings."""
        return cls(
            owner=settings.github_owner,
            repo=settings.github_repo,
            token=settings.github_token,
            api_url=settings.github_api_url,
            timeout_s=settings.timeout_s,
            max_retries=settings.max_retries,
        )


class _GitHubErrorBody(msgspec.Struct):
    message: str = ""


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == _HTTP_RATE_LIMITED:
        return True
    if response.status_code != _HTTP_FORBIDDEN:
        return False
    # Secondary limits carry Retry-After without an exhausted counter.
    return (
        response.headers.get("X-RateLimit-Remaining") == "0"
        or "Retry-After" in response.headers
    )


def _is_recoverable(response: httpx.Response) -> bool:
    return response.status_code >= _HTTP_SERVER_ERROR_THRESHOLD or _is_rate_limited(
        response
    )


def _api_error(response: httpx.Response) -> RemoteApiError:
    """Build a RemoteApiError from a GitHub error response."""
    try:
        body = msgspec.json.decode(response.content, type=_GitHubErrorBody)
    except msgspec.DecodeError:
        return RemoteApiError.from_body(response.status_code, response.text)
    return RemoteApiError(response.status_code, body.message or response.reason_phrase)


def _decode_page[T](response: httpx.Response, item_type: type[T], what: str) -> list[T]:
    try:
        return msgspec.json.decode(response.content, type=list[item_type])
    except msgspec.DecodeError as exc:
        raise ResponseShapeError.undecodable(what, str(exc)) from exc


class GitHubRestClient:
    """GitHub REST implementation of :class:`GitHubSourceClient`."""

    def __init__(
        self,
        config: GitHubRestConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._owns_client = http_client is None
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": config.user_agent,
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        # Sent per request so injected clients authenticate too.
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout_s,
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def list_repositories(self) -> list[GitHubRepository]:
        """Return every repository owned by the configured owner.

        ``/users/{owner}/repos`` only lists public repositories, so an
        authenticated client lists what the token can see and keeps the
        owner's repositories.
        """
        if not self._config.token:
            return await self._paginate(
                f"/users/{self._config.owner}/repos",
                {"type": "owner", "sort": "full_name"},
                GitHubRepository,
            )
        repositories = await self._paginate(
            "/user/repos",
            {"affiliation": "owner,organization_member", "sort": "full_name"},
            GitHubRepository,
        )
        owner = self._config.owner.casefold()
        return [repo for repo in repositories if repo.owner.login.casefold() == owner]

    async def list_issues(self) -> list[GitHubIssue]:
        """Return every open and closed issue, excluding pull requests."""
        issues = await self._paginate(
            f"/repos/{self._config.owner}/{self._config.repo}/issues",
            {"state": "all", "sort": "created", "direction": "asc"},
            GitHubIssue,
        )
        return [issue for issue in issues if not issue.is_pull_request]

    async def list_issue_events(
        self, issue_number: int, *, max_retries: int | None = None
    ) -> list[TimelineEvent]:
        """Return the issue timeline in the order GitHub reports it."""
        items = await self._paginate(
            f"/repos/{self._config.owner}/{self._config.repo}"
            f"/issues/{issue_number}/timeline",
            {},
            _RawTimelineItem,
            max_retries=max_retries,
        )
        events: list[TimelineEvent] = []
        for item in items:
            event = timeline_event_from_item(item)
            if event is not None:
                events.append(event)
        return events

    async def list_repository_events(
        self, repo_id: int, *, max_retries: int | None = None
    ) -> list[TimelineEvent]:
        """Return repository activity events, oldest first.

        GitHub lists repository events newest first, so the page order is
        reversed.
        """
        items = await self._paginate(
            f"/repositories/{repo_id}/events",
            {},
            _RawRepositoryEvent,
            max_retries=max_retries,
        )
        return [timeline_event_from_repository_event(item) for item in reversed(items)]

    async def _paginate[T](
        self,
        path: str,
        params: dict[str, str],
        item_type: type[T],
        *,
        max_retries: int | None = None,
    ) -> list[T]:
        """Fetch all pages of a listing by following ``Link: rel="next"``."""
        url = path
        query: dict[str, str] | None = {
            **params,
            "per_page": str(self._config.per_page),
        }
        items: list[T] = []
        page = 1
        while True:
            response = await self._get_with_retry(
                url, params=query, max_retries=max_retries
            )
            items.extend(_decode_page(response, item_type, path))
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                return items
            page += 1
            log_debug(logger, "Following page %d of %s", page, path)
            # The next link already carries the query string.
            url, query = next_url, None

    async def _get_with_retry(
        self,
        url: str,
        *,
        params: dict[str, str] | None,
        max_retries: int | None,
    ) -> httpx.Response:
        """GET a single page, retrying recoverable failures.

        Raises
        ------
        RemoteApiError
            On a non-recoverable error response, or a recoverable one that
            persists after all retries.
        TransportError
            When no response is received after all retries.

        """
        retries = self._config.max_retries if max_retries is None else max_retries
        attempt = 0
        while True:
            try:
                response = await self._client.get(
                    url, params=params, headers=self._headers
                )
            except httpx.TransportError as exc:
                if attempt >= retries:
                    raise TransportError.network("GitHub", str(exc)) from exc
                delay = self._config.retry_delay_s
                reason = type(exc).__name__
            else:
                if response.status_code < _HTTP_ERROR_STATUS_THRESHOLD:
                    return response
                if not _is_recoverable(response) or attempt >= retries:
                    raise _api_error(response)
                delay = self._retry_delay(response)
                reason = f"HTTP {response.status_code}"

            attempt += 1
            log_warning(
                logger,
                "GitHub request %s failed (%s); retrying in %.1fs (attempt %d/%d)",
                url,
                reason,
                delay,
                attempt,
                retries,
            )
            await asyncio.sleep(delay)

    def _retry_delay(self, response: httpx.Response) -> float:
        """Return the wait before retrying, honouring server hints."""
        delay = self._config.retry_delay_s
        retry_after = response.headers.get("Retry-After", "")
        reset = response.headers.get("X-RateLimit-Reset", "")
        if retry_after.isdigit():
            delay = float(retry_after)
        elif _is_rate_limited(response) and reset.isdigit():
            delay = max(0.0, float(reset) - time.time())
        return min(delay, self._config.max_retry_delay_s)
