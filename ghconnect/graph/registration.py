"""Schema registration state machine.

Graph accepts a schema asynchronously: the submission returns ``202`` with a
``Location`` header naming an operation, and the operation is polled until it
reports ``completed`` or ``failed``. :class:`SchemaRegistrar` drives that
exchange under a single deadline which bounds both the status reads and the
sleeps between them.

States::

    SUBMITTING -> POLLING -> COMPLETED
         |            |----> FAILED
         |            `----> TIMED_OUT
         `-> FAILED
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import time
import typing as typ

import httpx

from ghconnect.errors import RegistrationFailed, RegistrationTimedOut, TransportError

from .models import OperationStatus
from .observability import RegistrationEventLogger

if typ.TYPE_CHECKING:
    from .client import GraphConnectorClient
    from .models import Schema

_HTTP_ERROR_STATUS_THRESHOLD = 400
DEFAULT_POLL_INTERVAL_S = 30.0
DEFAULT_REGISTRATION_TIMEOUT_S = 25 * 60.0


class RegistrationState(enum.StrEnum):
    """Observable states of a schema registration."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset({
    RegistrationState.COMPLETED,
    RegistrationState.FAILED,
    RegistrationState.TIMED_OUT,
})


@dataclasses.dataclass(frozen=True, slots=True)
class RegistrationOutcome:
    """Result of a schema registration that completed."""

    connection_id: str
    operation_id: str
    polls: int
    duration_s: float
    state: RegistrationState = RegistrationState.COMPLETED


def operation_id_from_location(location: str) -> str:
    """Return the operation id named by the last path segment of ``location``.

    Examples
    --------
    >>> operation_id_from_location(
    ...     "https://graph.microsoft.com/beta/external/connections/c1/operations/op-9"
    ... )
    'op-9'

    """
    path = httpx.URL(location).path.rstrip("/")
    segment = path.rsplit("/", 1)[-1]
    if not segment:
        raise TransportError.missing_header("Location")
    return segment


class SchemaRegistrar:
    """Submit a schema and poll its operation until a terminal state.

    Parameters
    ----------
    client
        Graph client used to submit the schema and read the operation.
    poll_interval_s
        Seconds to wait between status reads.
    timeout_s
        Deadline for the polling phase, measured from the accepted submission.
    event_logger
        Structured logger for registration events.

    """

    def __init__(
        self,
        client: GraphConnectorClient,
        *,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        timeout_s: float = DEFAULT_REGISTRATION_TIMEOUT_S,
        event_logger: RegistrationEventLogger | None = None,
    ) -> None:
        """Configure the registrar; the deadline applies per registration."""
        self._client = client
        self._poll_interval_s = poll_interval_s
        self._timeout_s = timeout_s
        self._events = event_logger or RegistrationEventLogger()
        self._state = RegistrationState.IDLE

    @property
    def state(self) -> RegistrationState:
        """Return the state reached by the most recent registration."""
        return self._state

    async def register(self, connection_id: str, schema: Schema) -> RegistrationOutcome:
        """Register ``schema`` on a connection and wait for it to apply.

        Raises
        ------
        RegistrationFailed
            If the submission is rejected or the operation reports failure.
        RegistrationTimedOut
            If the operation is still pending when the deadline elapses.
        TransportError
            If the submission gets no response or lacks a ``Location`` header.
        RemoteApiError
            If a status read fails; poll errors are not retried.

        """
        self._state = RegistrationState.SUBMITTING
        try:
            operation_id = await self._submit(connection_id, schema)
        except RegistrationFailed as exc:
            self._state = RegistrationState.FAILED
            self._events.log_failed(connection_id, exc)
            raise
        except Exception:
            self._state = RegistrationState.FAILED
            raise

        self._events.log_submitted(connection_id, operation_id)
        self._state = RegistrationState.POLLING
        return await self._poll(connection_id, operation_id)

    async def _submit(self, connection_id: str, schema: Schema) -> str:
        response = await self._client.submit_schema(connection_id, schema)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise RegistrationFailed.rejected(response.status_code, response.text)
        location = response.headers.get("Location")
        if not location:
            raise TransportError.missing_header("Location")
        return operation_id_from_location(location)

    async def _poll(self, connection_id: str, operation_id: str) -> RegistrationOutcome:
        started = time.monotonic()
        polls = 0
        try:
            async with asyncio.timeout(self._timeout_s):
                while True:
                    try:
                        operation = await self._client.get_operation(
                            connection_id, operation_id
                        )
                    except Exception:
                        self._state = RegistrationState.FAILED
                        raise
                    polls += 1

                    if operation.status == OperationStatus.COMPLETED:
                        self._state = RegistrationState.COMPLETED
                        outcome = RegistrationOutcome(
                            connection_id=connection_id,
                            operation_id=operation_id,
                            polls=polls,
                            duration_s=time.monotonic() - started,
                        )
                        self._events.log_completed(outcome)
                        return outcome

                    if operation.status == OperationStatus.FAILED:
                        self._state = RegistrationState.FAILED
                        message = operation.error.message if operation.error else None
                        error = RegistrationFailed.operation_failed(message)
                        self._events.log_failed(connection_id, error, operation_id)
                        raise error

                    await asyncio.sleep(self._poll_interval_s)
        except TimeoutError as exc:
            self._state = RegistrationState.TIMED_OUT
            timed_out = RegistrationTimedOut(self._timeout_s, operation_id)
            self._events.log_timed_out(connection_id, timed_out, polls)
            raise timed_out from exc


__all__ = [
    "DEFAULT_POLL_INTERVAL_S",
    "DEFAULT_REGISTRATION_TIMEOUT_S",
    "TERMINAL_STATES",
    "RegistrationOutcome",
    "RegistrationState",
    "SchemaRegistrar",
    "operation_id_from_location",
]
