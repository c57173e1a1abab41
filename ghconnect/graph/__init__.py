"""Microsoft Graph external connector client, schemas, and registration."""

from __future__ import annotations

from .auth import ClientCredentialsAuth
from .client import GraphClientConfig, GraphConnectorClient
from .connections import ConnectionManager, validate_connection_id
from .models import (
    AclEntry,
    ActivitySettings,
    ActivityType,
    ExternalActivity,
    ExternalConnection,
    ExternalItem,
    ExternalItemContent,
    Identity,
    ItemType,
    Schema,
    build_url_resolver,
)
from .observability import RegistrationEventLogger, RegistrationEventType
from .registration import RegistrationOutcome, RegistrationState, SchemaRegistrar
from .schemas import ISSUES_SCHEMA, REPOSITORIES_SCHEMA, SCHEMAS, schema_for

__all__ = [
    "ISSUES_SCHEMA",
    "REPOSITORIES_SCHEMA",
    "SCHEMAS",
    "AclEntry",
    "ActivitySettings",
    "ActivityType",
    "ClientCredentialsAuth",
    "ConnectionManager",
    "ExternalActivity",
    "ExternalConnection",
    "ExternalItem",
    "ExternalItemContent",
    "GraphClientConfig",
    "GraphConnectorClient",
    "Identity",
    "ItemType",
    "RegistrationEventLogger",
    "RegistrationEventType",
    "RegistrationOutcome",
    "RegistrationState",
    "Schema",
    "SchemaRegistrar",
    "build_url_resolver",
    "schema_for",
    "validate_connection_id",
]
