"""Programmatic surface of the connector.

:class:`ConnectorService` wires validated settings into the GitHub and Graph
clients and exposes the operations a presentation layer needs: create, list
and delete connections, register a schema, push items, and resolve an
identity.

Usage
-----

>>> async with ConnectorService.from_settings(ConnectorSettings.from_env()) as svc:
...     connections = await svc.list_connections()

"""

from __future__ import annotations

import dataclasses
import typing as typ

from ghconnect.errors import ValidationError
from ghconnect.github.client import GitHubRestClient, GitHubRestConfig
from ghconnect.graph.client import GraphClientConfig, GraphConnectorClient
from ghconnect.graph.connections import ConnectionManager
from ghconnect.graph.registration import SchemaRegistrar
from ghconnect.graph.schemas import schema_for
from ghconnect.ingestion.content import ContentFetcher
from ghconnect.ingestion.pipeline import IngestionConfig, IngestionPipeline
from ghconnect.logging import get_logger, log_info
from ghconnect.mapping.identity import PlaceholderIdentityResolver
from ghconnect.mapping.mapper import EntityMapper

if typ.TYPE_CHECKING:
    from types import TracebackType

    import httpx

    from ghconnect.config import ConnectorSettings
    from ghconnect.github.client import GitHubSourceClient
    from ghconnect.graph.models import ExternalConnection, Identity, ItemType
    from ghconnect.graph.observability import RegistrationEventLogger
    from ghconnect.graph.registration import RegistrationOutcome
    from ghconnect.ingestion.observability import IngestionEventLogger
    from ghconnect.ingestion.pipeline import IngestionResult
    from ghconnect.mapping.identity import IdentityResolver

logger = get_logger(__name__)


@dataclasses.dataclass(slots=True)
class ConnectionSession:
    """The connection currently selected by an interactive caller."""

    selected: ExternalConnection | None = None

    def select(self, connection: ExternalConnection) -> None:
        """Make ``connection`` the target of later operations."""
        self.selected = connection

    def clear(self, connection_id: str | None = None) -> None:
        """Forget the selection, or only if it is ``connection_id``."""
        if connection_id is None or (
            self.selected is not None and self.selected.id == connection_id
        ):
            self.selected = None

    def require_selection(self) -> ExternalConnection:
        """Return the selected connection.

        Raises
        ------
        ValidationError
            If no connection is selected.

        """
        if self.selected is None:
            raise ValidationError.no_connection_selected()
        return self.selected


class ConnectorService:
    """Facade over connection management, registration, and ingestion."""

    def __init__(  # noqa: PLR0913
        self,
        settings: ConnectorSettings,
        *,
        graph: GraphConnectorClient,
        github: GitHubSourceClient,
        content: ContentFetcher,
        identity_resolver: IdentityResolver | None = None,
        registration_logger: RegistrationEventLogger | None = None,
        ingestion_logger: IngestionEventLogger | None = None,
    ) -> None:
        """Assemble the service from already-built clients."""
        self._settings = settings
        self._graph = graph
        self._github = github
        self._content = content
        self._identities = identity_resolver or PlaceholderIdentityResolver(
            settings.placeholder_user_id
        )
        self._connections = ConnectionManager(
            graph, owner=settings.github_owner, repo=settings.github_repo
        )
        self._registrar = SchemaRegistrar(
            graph,
            poll_interval_s=settings.poll_interval_s,
            timeout_s=settings.registration_timeout_s,
            event_logger=registration_logger,
        )
        self._pipeline = IngestionPipeline(
            github,
            self._connections,
            EntityMapper(self._identities, acl_value=settings.tenant_id),
            content,
            source_slug=settings.repo_slug,
            config=IngestionConfig(max_retries=settings.max_retries),
            event_logger=ingestion_logger,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ConnectorSettings,
        *,
        graph_http: httpx.AsyncClient | None = None,
        github_http: httpx.AsyncClient | None = None,
        content_http: httpx.AsyncClient | None = None,
    ) -> ConnectorService:
        """Build the service and its HTTP clients from settings."""
        return cls(
            settings,
            graph=GraphConnectorClient(
                GraphClientConfig.from_settings(settings), http_client=graph_http
            ),
            github=GitHubRestClient(
                GitHubRestConfig.from_settings(settings), http_client=github_http
            ),
            content=ContentFetcher(
                timeout_s=settings.timeout_s, http_client=content_http
            ),
        )

    @property
    def connections(self) -> ConnectionManager:
        """Return the connection manager."""
        return self._connections

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        await self._graph.aclose()
        await self._github.aclose()
        await self._content.aclose()

    async def __aenter__(self) -> ConnectorService:
        """Return the service for use in ``async with``."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close the service's clients."""
        await self.aclose()

    async def create_connection(  # noqa: PLR0913
        self,
        connection_id: str,
        name: str,
        description: str | None,
        item_type: ItemType,
        *,
        connector_id: str | None = None,
        connector_ticket: str | None = None,
    ) -> ExternalConnection:
        """Create a connection for ``item_type``."""
        return await self._connections.create(
            connection_id,
            name,
            description,
            item_type,
            connector_id=connector_id,
            connector_ticket=connector_ticket,
        )

    async def list_connections(self) -> list[ExternalConnection]:
        """Return the existing connections."""
        return await self._connections.list()

    async def delete_connection(self, connection_id: str) -> None:
        """Delete a connection."""
        await self._connections.delete(connection_id)

    async def register_schema(
        self, connection_id: str, item_type: ItemType
    ) -> RegistrationOutcome:
        """Register the static schema for ``item_type`` and wait for it to apply."""
        if not connection_id:
            raise ValidationError.empty("connection id")
        log_info(
            logger,
            "Registering %s schema on connection id=%s",
            item_type,
            connection_id,
        )
        return await self._registrar.register(connection_id, schema_for(item_type))

    async def push_items(
        self, connection_id: str, item_type: ItemType
    ) -> IngestionResult:
        """Push every GitHub entity of ``item_type`` into the connection."""
        if not connection_id:
            raise ValidationError.empty("connection id")
        return await self._pipeline.push(connection_id, item_type)

    def resolve_identity(self, login: str) -> Identity:
        """Return the Microsoft 365 identity for a GitHub login."""
        return self._identities.resolve(login)
