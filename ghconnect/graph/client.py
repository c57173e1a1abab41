"""HTTP client for the Microsoft Graph external connectors API."""

from __future__ import annotations

import dataclasses
import typing as typ
from urllib.parse import quote

import httpx
import msgspec

from ghconnect.errors import RemoteApiError, ResponseShapeError, TransportError

from .auth import ClientCredentialsAuth
from .models import (
    ActivitySettings,
    AddActivitiesResult,
    ConnectionOperation,
    ExternalActivity,
    ExternalConnection,
    ExternalItem,
    OperationError,
    Schema,
)

if typ.TYPE_CHECKING:
    from ghconnect.config import ConnectorSettings

_HTTP_ERROR_STATUS_THRESHOLD = 400
_CONNECTIONS_PATH = "/external/connections"
_ADD_ACTIVITIES_ACTION = "microsoft.graph.externalConnectors.addActivities"
_TICKET_HEADER = "GraphConnectors-Ticket"


@dataclasses.dataclass(frozen=True, slots=True)
class GraphClientConfig:
    """Configuration for the Graph external connectors client."""

    tenant_id: str
    client_id: str
    client_secret: str
    endpoint: str = "https://graph.microsoft.com/beta"
    authority: str = "https://login.microsoftonline.com"
    timeout_s: float = 30.0
    user_agent: str = "ghconnect/0.1"

    @classmethod
    def from_settings(cls, settings: ConnectorSettings) -> GraphClientConfig:
        """Build client configuration from validated connector settings."""
        return cls(
            tenant_id=settings.tenant_id,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            endpoint=settings.graph_endpoint,
            authority=settings.authority,
            timeout_s=settings.timeout_s,
        )


class _GraphErrorBody(msgspec.Struct):
    error: OperationError | None = None


class _ConnectionPage(msgspec.Struct):
    value: list[ExternalConnection] = msgspec.field(default_factory=list)
    next_link: str | None = msgspec.field(name="@odata.nextLink", default=None)


class _ConnectionPatch(msgspec.Struct, rename="camel"):
    activity_settings: ActivitySettings


class _AddActivitiesRequest(msgspec.Struct):
    activities: list[ExternalActivity]


def graph_error(response: httpx.Response) -> RemoteApiError:
    """Build a RemoteApiError from a Graph error response."""
    try:
        body = msgspec.json.decode(response.content, type=_GraphErrorBody)
    except msgspec.DecodeError:
        return RemoteApiError.from_body(response.status_code, response.text)
    if body.error is None:
        return RemoteApiError.from_body(response.status_code, response.text)
    return RemoteApiError(
        response.status_code,
        body.error.message or response.reason_phrase,
        code=body.error.code,
    )


def _decode[T](response: httpx.Response, target: type[T], what: str) -> T:
    try:
        return msgspec.json.decode(response.content, type=target)
    except msgspec.DecodeError as exc:
        raise ResponseShapeError.undecodable(what, str(exc)) from exc


def _segment(value: str) -> str:
    return quote(value, safe="")


class GraphConnectorClient:
    """Thin async wrapper over the Graph ``/external/connections`` resources.

    Every call raises :class:`~ghconnect.errors.RemoteApiError` for 4xx/5xx
    responses and :class:`~ghconnect.errors.TransportError` when no response
    is received. The exception is :meth:`submit_schema`, which returns the raw
    response so the registration state machine can interpret it.
    """

    def __init__(
        self,
        config: GraphClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client; an owned HTTP client authenticates itself."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=config.endpoint,
            timeout=config.timeout_s,
            headers={"User-Agent": config.user_agent, "Accept": "application/json"},
            auth=ClientCredentialsAuth(
                tenant_id=config.tenant_id,
                client_id=config.client_id,
                client_secret=config.client_secret,
                authority=config.authority,
            ),
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def create_connection(
        self,
        connection: ExternalConnection,
        *,
        connector_ticket: str | None = None,
    ) -> ExternalConnection:
        """Create a connection and return the service's representation."""
        headers = {_TICKET_HEADER: connector_ticket} if connector_ticket else None
        response = await self._request(
            "POST", _CONNECTIONS_PATH, body=connection, headers=headers
        )
        return _decode(response, ExternalConnection, "connection")

    async def list_connections(self) -> list[ExternalConnection]:
        """Return every connection in the tenant, following ``@odata.nextLink``."""
        connections: list[ExternalConnection] = []
        url: str | None = _CONNECTIONS_PATH
        while url is not None:
            response = await self._request("GET", url)
            page = _decode(response, _ConnectionPage, "connection list")
            connections.extend(page.value)
            url = page.next_link
        return connections

    async def get_connection(self, connection_id: str) -> ExternalConnection:
        """Return a single connection."""
        response = await self._request(
            "GET", f"{_CONNECTIONS_PATH}/{_segment(connection_id)}"
        )
        return _decode(response, ExternalConnection, "connection")

    async def update_activity_settings(
        self, connection_id: str, settings: ActivitySettings
    ) -> None:
        """Replace the activity settings block of a connection."""
        await self._request(
            "PATCH",
            f"{_CONNECTIONS_PATH}/{_segment(connection_id)}",
            body=_ConnectionPatch(activity_settings=settings),
        )

    async def delete_connection(self, connection_id: str) -> None:
        """Delete a connection and everything indexed in it."""
        await self._request("DELETE", f"{_CONNECTIONS_PATH}/{_segment(connection_id)}")

    async def submit_schema(self, connection_id: str, schema: Schema) -> httpx.Response:
        """Send a schema replacement and return the raw response.

        Raises
        ------
        TransportError
            If no response is received.

        """
        return await self._send(
            "PUT",
            f"{_CONNECTIONS_PATH}/{_segment(connection_id)}/schema",
            body=schema,
        )

    async def get_operation(
        self, connection_id: str, operation_id: str
    ) -> ConnectionOperation:
        """Read the status of a connection operation."""
        response = await self._request(
            "GET",
            f"{_CONNECTIONS_PATH}/{_segment(connection_id)}"
            f"/operations/{_segment(operation_id)}",
        )
        return _decode(response, ConnectionOperation, "operation")

    async def put_item(self, connection_id: str, item: ExternalItem) -> ExternalItem:
        """Create or replace an item; returns the stored item when echoed back."""
        response = await self._request(
            "PUT",
            f"{_CONNECTIONS_PATH}/{_segment(connection_id)}/items/{_segment(item.id)}",
            body=item,
        )
        if not response.content:
            return item
        return _decode(response, ExternalItem, "item")

    async def add_activities(
        self,
        connection_id: str,
        item_id: str,
        activities: list[ExternalActivity],
    ) -> AddActivitiesResult:
        """Append activities to an item's activity feed."""
        response = await self._request(
            "POST",
            f"{_CONNECTIONS_PATH}/{_segment(connection_id)}/items/{_segment(item_id)}"
            f"/{_ADD_ACTIVITIES_ACTION}",
            body=_AddActivitiesRequest(activities=activities),
        )
        if not response.content:
            return AddActivitiesResult()
        return _decode(response, AddActivitiesResult, "addActivities response")

    async def _request(
        self,
        method: str,
        url: str,
        *,
        body: object | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        response = await self._send(method, url, body=body, headers=headers)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise graph_error(response)
        return response

    async def _send(
        self,
        method: str,
        url: str,
        *,
        body: object | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        content: bytes | None = None
        if body is not None:
            content = msgspec.json.encode(body)
            request_headers["Content-Type"] = "application/json"
        try:
            return await self._client.request(
                method, url, content=content, headers=request_headers
            )
        except httpx.RequestError as exc:
            raise TransportError.network("Microsoft Graph", str(exc)) from exc
