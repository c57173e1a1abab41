"""Connection lifecycle management for the GitHub connector."""

from __future__ import annotations

import re
import typing as typ

from ghconnect.errors import ValidationError
from ghconnect.logging import get_logger, log_info

from .models import (
    ActivitySettings,
    AddActivitiesResult,
    ExternalActivity,
    ExternalConnection,
    ExternalItem,
    ItemType,
    build_url_resolver,
)

if typ.TYPE_CHECKING:
    from .client import GraphConnectorClient

logger = get_logger(__name__)

_CONNECTION_ID = re.compile(r"[A-Za-z0-9]{3,32}")


def validate_connection_id(connection_id: str) -> str:
    """Return ``connection_id`` if Graph will accept it.

    Raises
    ------
    ValidationError
        If the id is empty or not 3-32 alphanumeric characters.

    """
    if not connection_id or not connection_id.strip():
        raise ValidationError.empty("connection id")
    if _CONNECTION_ID.fullmatch(connection_id) is None:
        raise ValidationError.invalid_connection_id(connection_id)
    return connection_id


class ConnectionManager:
    """Create, list, and delete connections and push items into them.

    Parameters
    ----------
    client
        Graph client used for every remote call.
    owner
        GitHub owner whose URLs the connection's resolvers match.
    repo
        GitHub repository whose issue URLs the issue resolver matches.

    """

    def __init__(self, client: GraphConnectorClient, *, owner: str, repo: str) -> None:
        """Bind the manager to a Graph client and a GitHub source."""
        self._client = client
        self._owner = owner
        self._repo = repo

    def activity_settings_for(self, item_type: ItemType) -> ActivitySettings:
        """Return the activity settings block for ``item_type``."""
        return ActivitySettings(
            url_to_item_resolvers=[
                build_url_resolver(item_type, self._owner, self._repo)
            ]
        )

    async def create(  # noqa: PLR0913
        self,
        connection_id: str,
        name: str,
        description: str | None,
        item_type: ItemType,
        *,
        connector_id: str | None = None,
        connector_ticket: str | None = None,
    ) -> ExternalConnection:
        """Create a connection with one URL resolver for ``item_type``.

        ``connector_id`` and ``connector_ticket`` register the connection for
        a Microsoft 365 app; they are sent only when both are provided.

        Raises
        ------
        ValidationError
            If the id or name is empty, or the id is malformed.
        RemoteApiError
            If Graph rejects the connection.

        """
        validate_connection_id(connection_id)
        if not name or not name.strip():
            raise ValidationError.empty("connection name")

        use_app_properties = bool(connector_id) and bool(connector_ticket)
        connection = ExternalConnection(
            id=connection_id,
            name=name,
            description=description or None,
            activity_settings=self.activity_settings_for(item_type),
            connector_id=connector_id if use_app_properties else None,
        )
        created = await self._client.create_connection(
            connection,
            connector_ticket=connector_ticket if use_app_properties else None,
        )
        log_info(
            logger,
            "Created connection id=%s name=%s item_type=%s",
            created.id,
            created.name,
            item_type,
        )
        return created

    async def list(self) -> list[ExternalConnection]:
        """Return the existing connections."""
        return await self._client.list_connections()

    async def delete(self, connection_id: str) -> None:
        """Delete a connection."""
        if not connection_id:
            raise ValidationError.empty("connection id")
        await self._client.delete_connection(connection_id)
        log_info(logger, "Deleted connection id=%s", connection_id)

    async def add_activity_settings(
        self, connection_id: str, item_type: ItemType
    ) -> ActivitySettings:
        """Add or replace the URL resolver block of an existing connection."""
        if not connection_id:
            raise ValidationError.empty("connection id")
        settings = self.activity_settings_for(item_type)
        await self._client.update_activity_settings(connection_id, settings)
        return settings

    async def upsert_item(self, connection_id: str, item: ExternalItem) -> ExternalItem:
        """Create or replace ``item`` in the connection."""
        return await self._client.put_item(connection_id, item)

    async def add_activities(
        self,
        connection_id: str,
        item_id: str,
        activities: list[ExternalActivity],
    ) -> AddActivitiesResult | None:
        """Append activities to an item; an empty list makes no remote call."""
        if not activities:
            return None
        return await self._client.add_activities(connection_id, item_id, activities)
