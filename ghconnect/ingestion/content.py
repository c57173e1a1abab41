"""Full-text content for external items.

Public pages are fetched as HTML from github.com; private repositories cannot
be fetched anonymously, so their JSON representation is indexed instead.
"""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from ghconnect.errors import TransportError
from ghconnect.graph.models import ContentType, ExternalItemContent
from ghconnect.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from ghconnect.github.models import GitHubIssue, GitHubRepository

logger = get_logger(__name__)

_HTTP_SUCCESS_MIN = 200
_HTTP_SUCCESS_MAX = 299


class ContentFetcher:
    """Fetch item bodies from GitHub web pages."""

    def __init__(
        self,
        *,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the fetcher; an owned client follows redirects."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            headers={"Accept": "text/html"},
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def for_issue(self, issue: GitHubIssue) -> ExternalItemContent | None:
        """Return the issue page as HTML, or ``None`` if it cannot be fetched."""
        return await self._html(issue.html_url)

    async def for_repository(
        self, repository: GitHubRepository
    ) -> ExternalItemContent | None:
        """Return HTML for public repositories and JSON text for private ones."""
        if repository.is_public:
            return await self._html(repository.html_url)
        return ExternalItemContent(
            type=ContentType.TEXT,
            value=msgspec.json.encode(repository).decode(),
        )

    async def _html(self, url: str) -> ExternalItemContent | None:
        try:
            response = await self._client.get(url)
        except httpx.RequestError as exc:
            raise TransportError.network("github.com", str(exc)) from exc
        if not _HTTP_SUCCESS_MIN <= response.status_code <= _HTTP_SUCCESS_MAX:
            log_debug(
                logger, "No content for %s (HTTP %d)", url, response.status_code
            )
            return None
        return ExternalItemContent(type=ContentType.HTML, value=response.text)
