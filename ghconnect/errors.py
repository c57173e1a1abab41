"""Error taxonomy shared by the GitHub and Microsoft Graph integrations."""

from __future__ import annotations

# Body preview length for error messages
_BODY_PREVIEW_LIMIT = 200


def _preview(text: str) -> str:
    if len(text) <= _BODY_PREVIEW_LIMIT:
        return text
    return f"{text[:_BODY_PREVIEW_LIMIT]}..."


class ConnectorError(Exception):
    """Base exception for every error raised by ghconnect."""


class ConfigurationError(ConnectorError):
    """Raised when required settings are missing or invalid."""

    @classmethod
    def missing(cls, setting: str) -> ConfigurationError:
        """Return an error for a required setting that is unset or empty."""
        return cls(f"{setting} not set in app settings")

    @classmethod
    def not_positive(cls, setting: str, value: object) -> ConfigurationError:
        """Return an error for a numeric setting that must be positive."""
        return cls(f"{setting} must be positive, got: {value!r}")

    @classmethod
    def negative(cls, setting: str, value: object) -> ConfigurationError:
        """Return an error for a count setting that must not be negative."""
        return cls(f"{setting} must not be negative, got: {value!r}")

    @classmethod
    def invalid_number(cls, setting: str, raw: str) -> ConfigurationError:
        """Return an error for a numeric setting that failed to parse."""
        return cls(f"{setting} must be a number, got: {raw!r}")

    @classmethod
    def unreadable_file(cls, path: object, detail: str) -> ConfigurationError:
        """Return an error for a settings file that cannot be loaded."""
        return cls(f"Could not load settings from {path}: {detail}")


class ValidationError(ConnectorError):
    """Raised when caller input is rejected before any remote call."""

    @classmethod
    def empty(cls, field: str) -> ValidationError:
        """Return an error for a required value that is empty."""
        return cls(f"{field} must be non-empty")

    @classmethod
    def invalid_connection_id(cls, connection_id: str) -> ValidationError:
        """Return an error for a connection id outside the allowed shape."""
        return cls(
            "connection id must be 3-32 alphanumeric characters, "
            f"got: {connection_id!r}"
        )

    @classmethod
    def no_connection_selected(cls) -> ValidationError:
        """Return an error for operations that need a selected connection."""
        return cls(
            "No connection selected. Please create a new connection or select "
            "an existing connection."
        )


class RemoteApiError(ConnectorError):
    """Raised when GitHub or Microsoft Graph returns a 4xx/5xx response.

    Attributes
    ----------
    status_code
        HTTP status code of the response.
    code
        Service error code, when the response body carries one.
    message
        Service error message, or a body preview.

    """

    def __init__(
        self, status_code: int, message: str, *, code: str | None = None
    ) -> None:
        """Initialise with the HTTP status, message, and optional error code."""
        self.status_code = status_code
        self.code = code
        self.message = message
        prefix = f"HTTP {status_code}" if code is None else f"HTTP {status_code} {code}"
        super().__init__(f"{prefix}: {message}")

    @property
    def is_server_error(self) -> bool:
        """Return True for 5xx responses."""
        return self.status_code >= 500  # noqa: PLR2004

    @classmethod
    def from_body(
        cls, status_code: int, body: str, *, code: str | None = None
    ) -> RemoteApiError:
        """Return an error for a response whose body is not structured."""
        return cls(status_code, _preview(body) or "<empty body>", code=code)


class TransportError(ConnectorError):
    """Raised when no usable response was received from a remote service."""

    @classmethod
    def network(cls, service: str, detail: str) -> TransportError:
        """Return an error for dropped connections, DNS failures and timeouts."""
        return cls(f"{service} request failed without a response: {detail}")

    @classmethod
    def missing_header(cls, header: str) -> TransportError:
        """Return an error for a response missing a required header."""
        return cls(f"Response did not include the {header} header")


class ResponseShapeError(ConnectorError):
    """Raised when a response body cannot be decoded into the expected shape."""

    @classmethod
    def undecodable(cls, what: str, detail: str) -> ResponseShapeError:
        """Return an error for a body that failed to decode."""
        return cls(f"Could not decode {what}: {detail}")


class RegistrationError(ConnectorError):
    """Base exception for terminal schema registration outcomes."""


class RegistrationFailed(RegistrationError):  # noqa: N818
    """Raised when the schema submission or its operation fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with the remote message and optional HTTP status."""
        self.status_code = status_code
        self.message = message
        super().__init__(message)

    @classmethod
    def rejected(cls, status_code: int, body: str) -> RegistrationFailed:
        """Return an error for a schema submission rejected by the service."""
        return cls(
            f"Registering schema failed: {_preview(body) or '<empty body>'}",
            status_code=status_code,
        )

    @classmethod
    def operation_failed(cls, message: str | None) -> RegistrationFailed:
        """Return an error for an operation that reported failure."""
        return cls(message or "Registering schema failed")


class RegistrationTimedOut(RegistrationError):  # noqa: N818
    """Raised when schema registration does not finish before its deadline."""

    def __init__(self, timeout_s: float, operation_id: str) -> None:
        """Initialise with the deadline that elapsed and the pending operation."""
        self.timeout_s = timeout_s
        self.operation_id = operation_id
        super().__init__(
            f"Schema registration timed out after {timeout_s:g}s while checking "
            f"status of operation {operation_id}"
        )


__all__ = [
    "ConfigurationError",
    "ConnectorError",
    "RegistrationError",
    "RegistrationFailed",
    "RegistrationTimedOut",
    "RemoteApiError",
    "ResponseShapeError",
    "TransportError",
    "ValidationError",
]
