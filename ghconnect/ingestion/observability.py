"""Observability primitives for the ingestion pipeline.

Provides structured logging and error categorization for push runs and
per-entity failures. All events are emitted as structured log lines
suitable for parsing by log aggregators.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from ghconnect.errors import (
    ConfigurationError,
    RegistrationError,
    RemoteApiError,
    ResponseShapeError,
    TransportError,
    ValidationError,
)
from ghconnect.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from ghconnect.logging import SupportsLog

    from .pipeline import EntityFailure, IngestionResult

logger = get_logger(__name__)


class IngestionEventType(enum.StrEnum):
    """Structured log event types for ingestion observability."""

    RUN_STARTED = "ingestion.run.started"
    RUN_COMPLETED = "ingestion.run.completed"
    ENTITY_PUSHED = "ingestion.entity.pushed"
    ENTITY_FAILED = "ingestion.entity.failed"
    LISTING_FAILED = "ingestion.listing.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    REGISTRATION = "registration"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionRunContext:
    """Shared context for a single push run."""

    connection_id: str
    item_type: str
    source: str
    started_at: dt.datetime


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (TransportError, ErrorCategory.TRANSIENT),
    (ResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (ConfigurationError, ErrorCategory.CONFIGURATION),
    (ValidationError, ErrorCategory.CLIENT_ERROR),
    (RegistrationError, ErrorCategory.REGISTRATION),
    (ValueError, ErrorCategory.SCHEMA_DRIFT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Returns:
        ErrorCategory indicating the type of failure for alert routing.

    """
    # 5xx and rate limiting are transient; other remote errors are ours
    if isinstance(exc, RemoteApiError):
        if exc.is_server_error or exc.status_code == 429:  # noqa: PLR2004
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class IngestionEventLogger:
    """Emit structured ingestion events via femtologging.

    Events are emitted at INFO level for progress, WARNING for per-entity
    failures the run survives, and ERROR when the source listing fails.
    """

    def __init__(self, log: SupportsLog | None = None) -> None:
        """Use ``log`` instead of the module logger when provided."""
        self._log = log or logger

    def log_run_started(self, context: IngestionRunContext) -> None:
        """Log push run start."""
        log_info(
            self._log,
            "[%s] connection_id=%s item_type=%s source=%s started_at=%s",
            IngestionEventType.RUN_STARTED,
            context.connection_id,
            context.item_type,
            context.source,
            context.started_at.isoformat(),
        )

    def log_run_completed(
        self,
        context: IngestionRunContext,
        result: IngestionResult,
        duration: dt.timedelta,
    ) -> None:
        """Log push run completion with counts."""
        log_info(
            self._log,
            "[%s] connection_id=%s item_type=%s duration_seconds=%.3f "
            "items_pushed=%d activities_submitted=%d failures=%d",
            IngestionEventType.RUN_COMPLETED,
            context.connection_id,
            context.item_type,
            duration.total_seconds(),
            result.items_pushed,
            result.activities_submitted,
            len(result.failures),
        )

    def log_entity_pushed(
        self, context: IngestionRunContext, entity_id: str, activities: int
    ) -> None:
        """Log one item pushed with its activity count."""
        log_info(
            self._log,
            "[%s] connection_id=%s item_type=%s entity_id=%s activities=%d",
            IngestionEventType.ENTITY_PUSHED,
            context.connection_id,
            context.item_type,
            entity_id,
            activities,
        )

    def log_entity_failed(
        self,
        context: IngestionRunContext,
        failure: EntityFailure,
        error: BaseException,
    ) -> None:
        """Log a skipped entity with error categorization."""
        log_warning(
            self._log,
            "[%s] connection_id=%s item_type=%s entity_id=%s stage=%s "
            "error_type=%s error_category=%s error_message=%s",
            IngestionEventType.ENTITY_FAILED,
            context.connection_id,
            context.item_type,
            failure.entity_id,
            failure.stage,
            failure.error_type,
            categorize_error(error),
            failure.message,
            exc_info=error,
        )

    def log_listing_failed(
        self, context: IngestionRunContext, error: BaseException
    ) -> None:
        """Log a source listing failure that ends the run."""
        log_error(
            self._log,
            "[%s] connection_id=%s item_type=%s source=%s "
            "error_type=%s error_category=%s error_message=%s",
            IngestionEventType.LISTING_FAILED,
            context.connection_id,
            context.item_type,
            context.source,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )
