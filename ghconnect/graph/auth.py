"""Client-credentials authentication for Microsoft Graph.

:class:`ClientCredentialsAuth` plugs into ``httpx`` as an auth flow: it
requests an app-only token from the Microsoft identity platform on first use,
caches it until shortly before expiry, and refreshes once when Graph answers
``401``.
"""

from __future__ import annotations

import time
import typing as typ

import httpx
import msgspec

from ghconnect.errors import RemoteApiError, ResponseShapeError

GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_UNAUTHORIZED = 401
# Refresh tokens this many seconds before they expire.
_EXPIRY_SKEW_S = 60.0


class _TokenResponse(msgspec.Struct):
    access_token: str = ""
    expires_in: int = 3599
    token_type: str = "Bearer"
    error: str | None = None
    error_description: str | None = None


class ClientCredentialsAuth(httpx.Auth):
    """Attach an app-only Graph bearer token to every request."""

    requires_response_body = True

    def __init__(  # noqa: PLR0913
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority: str = "https://login.microsoftonline.com",
        scope: str = GRAPH_DEFAULT_SCOPE,
        clock: typ.Callable[[], float] = time.monotonic,
    ) -> None:
        """Store the app registration credentials used for token requests."""
        self._token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._form = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": scope,
        }
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0

    @property
    def has_valid_token(self) -> bool:
        """Return True when a cached token can still be used."""
        return self._token is not None and self._clock() < self._expires_at

    def auth_flow(
        self, request: httpx.Request
    ) -> typ.Generator[httpx.Request, httpx.Response, None]:
        """Authenticate ``request``, fetching or refreshing the token as needed."""
        if not self.has_valid_token:
            self._store_token((yield self._token_request()))
        request.headers["Authorization"] = f"Bearer {self._token}"
        response = yield request

        if response.status_code == _HTTP_UNAUTHORIZED:
            self._store_token((yield self._token_request()))
            request.headers["Authorization"] = f"Bearer {self._token}"
            yield request

    def _token_request(self) -> httpx.Request:
        return httpx.Request("POST", self._token_url, data=self._form)

    def _store_token(self, response: httpx.Response) -> None:
        try:
            payload = msgspec.json.decode(response.content, type=_TokenResponse)
        except msgspec.DecodeError as exc:
            if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
                raise RemoteApiError.from_body(
                    response.status_code, response.text
                ) from exc
            raise ResponseShapeError.undecodable("token response", str(exc)) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise RemoteApiError(
                response.status_code,
                payload.error_description or "token request failed",
                code=payload.error,
            )
        if not payload.access_token:
            raise ResponseShapeError.undecodable(
                "token response", "access_token missing"
            )

        self._token = payload.access_token
        self._expires_at = self._clock() + max(
            0.0, payload.expires_in - _EXPIRY_SKEW_S
        )
