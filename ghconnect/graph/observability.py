"""Structured log events for schema registration.

Events are emitted as ``[event.type] key=value`` messages so log
aggregators can parse registration progress without a metrics backend.
"""

from __future__ import annotations

import enum
import typing as typ

from ghconnect.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    from ghconnect.errors import RegistrationFailed, RegistrationTimedOut
    from ghconnect.logging import SupportsLog

    from .registration import RegistrationOutcome

logger = get_logger(__name__)


class RegistrationEventType(enum.StrEnum):
    """Structured log event types for schema registration."""

    SUBMITTED = "registration.submitted"
    COMPLETED = "registration.completed"
    FAILED = "registration.failed"
    TIMED_OUT = "registration.timed_out"


class RegistrationEventLogger:
    """Emit schema registration lifecycle events via femtologging."""

    def __init__(self, log: SupportsLog | None = None) -> None:
        """Use ``log`` instead of the module logger when provided."""
        self._log = log or logger

    def log_submitted(self, connection_id: str, operation_id: str) -> None:
        """Log an accepted schema submission."""
        log_info(
            self._log,
            "[%s] connection_id=%s operation_id=%s",
            RegistrationEventType.SUBMITTED,
            connection_id,
            operation_id,
        )

    def log_completed(self, outcome: RegistrationOutcome) -> None:
        """Log a schema registration that reached ``completed``."""
        log_info(
            self._log,
            "[%s] connection_id=%s operation_id=%s polls=%d duration_seconds=%.3f",
            RegistrationEventType.COMPLETED,
            outcome.connection_id,
            outcome.operation_id,
            outcome.polls,
            outcome.duration_s,
        )

    def log_failed(
        self,
        connection_id: str,
        error: RegistrationFailed,
        operation_id: str | None = None,
    ) -> None:
        """Log a rejected submission or failed operation."""
        log_error(
            self._log,
            "[%s] connection_id=%s operation_id=%s status_code=%s error_message=%s",
            RegistrationEventType.FAILED,
            connection_id,
            operation_id,
            error.status_code,
            error.message,
        )

    def log_timed_out(
        self, connection_id: str, error: RegistrationTimedOut, polls: int
    ) -> None:
        """Log a registration abandoned at its deadline."""
        log_warning(
            self._log,
            "[%s] connection_id=%s operation_id=%s polls=%d timeout_seconds=%.1f",
            RegistrationEventType.TIMED_OUT,
            connection_id,
            error.operation_id,
            polls,
            error.timeout_s,
        )
