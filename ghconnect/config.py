"""Settings for the GitHub to Microsoft Graph connector.

Settings are validated when the :class:`ConnectorSettings` instance is
constructed, so a missing credential fails at startup rather than on the
first remote call.

Usage
-----
Load from environment variables:

>>> settings = ConnectorSettings.from_env()

Or from an ``appsettings.json`` style file:

>>> settings = ConnectorSettings.from_file(Path("appsettings.json"))

"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import msgspec

from ghconnect.common.slug import repo_slug
from ghconnect.errors import ConfigurationError

if typ.TYPE_CHECKING:
    from pathlib import Path

_DEFAULT_GRAPH_ENDPOINT = "https://graph.microsoft.com/beta"
_DEFAULT_GITHUB_API_URL = "https://api.github.com"
_DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
_DEFAULT_POLL_INTERVAL_S = 30.0
_DEFAULT_REGISTRATION_TIMEOUT_S = 25 * 60.0
_DEFAULT_MAX_RETRIES = 3
_DEFAULT_TIMEOUT_S = 30.0

_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("tenant_id", "tenantId"),
    ("client_id", "clientId"),
    ("client_secret", "clientSecret"),
    ("github_owner", "gitHubRepoOwner"),
    ("github_repo", "gitHubRepo"),
    ("placeholder_user_id", "placeholderUserId"),
)


@dataclasses.dataclass(frozen=True, slots=True)
class ConnectorSettings:
    """Validated connector configuration.

    Attributes
    ----------
    tenant_id
        Microsoft Entra tenant that owns the app registration.
    client_id
        Application (client) id of the app registration.
    client_secret
        Client secret of the app registration.
    github_owner
        GitHub user or organisation whose content is synchronised.
    github_repo
        Repository whose issues are synchronised.
    placeholder_user_id
        Entra user id attributed to every GitHub login.
    github_token
        Optional GitHub token; anonymous requests are heavily rate limited.
    graph_endpoint
        Microsoft Graph base URL.
    github_api_url
        GitHub REST API base URL.
    authority
        Microsoft identity platform authority host.
    poll_interval_s
        Seconds between schema registration status checks.
    registration_timeout_s
        Deadline for schema registration, measured from the start of polling.
    max_retries
        Retries for recoverable GitHub failures on a single request.
    timeout_s
        HTTP request timeout in seconds.

    """

    tenant_id: str
    client_id: str
    client_secret: str
    github_owner: str
    github_repo: str
    placeholder_user_id: str
    github_token: str | None = None
    graph_endpoint: str = _DEFAULT_GRAPH_ENDPOINT
    github_api_url: str = _DEFAULT_GITHUB_API_URL
    authority: str = _DEFAULT_AUTHORITY
    poll_interval_s: float = _DEFAULT_POLL_INTERVAL_S
    registration_timeout_s: float = _DEFAULT_REGISTRATION_TIMEOUT_S
    max_retries: int = _DEFAULT_MAX_RETRIES
    timeout_s: float = _DEFAULT_TIMEOUT_S

    def __post_init__(self) -> None:
        """Reject empty required values and non-positive numbers."""
        for attr, setting in _REQUIRED_FIELDS:
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError.missing(setting)
        for attr in ("poll_interval_s", "registration_timeout_s", "timeout_s"):
            value = getattr(self, attr)
            if value <= 0:
                raise ConfigurationError.not_positive(attr, value)
        if self.max_retries < 0:
            raise ConfigurationError.negative("max_retries", self.max_retries)

    @property
    def repo_slug(self) -> str:
        """Return the ``owner/repo`` identifier of the issues repository."""
        return repo_slug(self.github_owner, self.github_repo)

    @staticmethod
    def _float_from_env(env_var: str, default: float) -> float:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigurationError.invalid_number(env_var, raw) from exc

    @staticmethod
    def _int_from_env(env_var: str, default: int) -> int:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigurationError.invalid_number(env_var, raw) from exc

    @classmethod
    def from_env(cls) -> ConnectorSettings:
        """Build settings from environment variables.

        Reads the following environment variables:

        - ``GHCONNECT_TENANT_ID``, ``GHCONNECT_CLIENT_ID``,
          ``GHCONNECT_CLIENT_SECRET``: Required app registration credentials
        - ``GHCONNECT_GITHUB_OWNER``, ``GHCONNECT_GITHUB_REPO``: Required
          GitHub source
        - ``GHCONNECT_PLACEHOLDER_USER_ID``: Required surrogate identity
        - ``GHCONNECT_GITHUB_TOKEN``: Optional GitHub token
        - ``GHCONNECT_GRAPH_ENDPOINT``, ``GHCONNECT_GITHUB_API_URL``: Optional
          endpoint overrides
        - ``GHCONNECT_POLL_INTERVAL_S``, ``GHCONNECT_REGISTRATION_TIMEOUT_S``,
          ``GHCONNECT_MAX_RETRIES``, ``GHCONNECT_TIMEOUT_S``: Optional tuning

        Raises
        ------
        ConfigurationError
            If a required variable is missing or a numeric value is invalid.

        """
        token = os.environ.get("GHCONNECT_GITHUB_TOKEN", "").strip()
        return cls(
            tenant_id=os.environ.get("GHCONNECT_TENANT_ID", ""),
            client_id=os.environ.get("GHCONNECT_CLIENT_ID", ""),
            client_secret=os.environ.get("GHCONNECT_CLIENT_SECRET", ""),
            github_owner=os.environ.get("GHCONNECT_GITHUB_OWNER", ""),
            github_repo=os.environ.get("GHCONNECT_GITHUB_REPO", ""),
            placeholder_user_id=os.environ.get("GHCONNECT_PLACEHOLDER_USER_ID", ""),
            github_token=token or None,
            graph_endpoint=os.environ.get(
                "GHCONNECT_GRAPH_ENDPOINT", _DEFAULT_GRAPH_ENDPOINT
            ),
            github_api_url=os.environ.get(
                "GHCONNECT_GITHUB_API_URL", _DEFAULT_GITHUB_API_URL
            ),
            poll_interval_s=cls._float_from_env(
                "GHCONNECT_POLL_INTERVAL_S", _DEFAULT_POLL_INTERVAL_S
            ),
            registration_timeout_s=cls._float_from_env(
                "GHCONNECT_REGISTRATION_TIMEOUT_S", _DEFAULT_REGISTRATION_TIMEOUT_S
            ),
            max_retries=cls._int_from_env(
                "GHCONNECT_MAX_RETRIES", _DEFAULT_MAX_RETRIES
            ),
            timeout_s=cls._float_from_env("GHCONNECT_TIMEOUT_S", _DEFAULT_TIMEOUT_S),
        )

    @classmethod
    def from_file(cls, path: Path) -> ConnectorSettings:
        """Build settings from an ``appsettings.json`` style file.

        Keys use the camelCase names of the original app settings, for
        example ``gitHubRepoOwner`` and ``placeholderUserId``.

        Raises
        ------
        ConfigurationError
            If the file cannot be read or decoded, or a required key is empty.

        """
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ConfigurationError.unreadable_file(path, str(exc)) from exc
        try:
            parsed = msgspec.json.decode(raw, type=_SettingsFile)
        except msgspec.DecodeError as exc:
            raise ConfigurationError.unreadable_file(path, str(exc)) from exc

        overrides: dict[str, typ.Any] = {
            key: value
            for key, value in (
                ("graph_endpoint", parsed.graph_endpoint),
                ("github_api_url", parsed.github_api_url),
                ("poll_interval_s", parsed.poll_interval_s),
                ("registration_timeout_s", parsed.registration_timeout_s),
                ("max_retries", parsed.max_retries),
            )
            if value is not None
        }
        return cls(
            tenant_id=parsed.tenant_id,
            client_id=parsed.client_id,
            client_secret=parsed.client_secret,
            github_owner=parsed.github_owner,
            github_repo=parsed.github_repo,
            placeholder_user_id=parsed.placeholder_user_id,
            github_token=parsed.github_token or None,
            **overrides,
        )


class _SettingsFile(msgspec.Struct, kw_only=True):
    """On-disk settings layout."""

    tenant_id: str = msgspec.field(name="tenantId", default="")
    client_id: str = msgspec.field(name="clientId", default="")
    client_secret: str = msgspec.field(name="clientSecret", default="")
    github_owner: str = msgspec.field(name="gitHubRepoOwner", default="")
    github_repo: str = msgspec.field(name="gitHubRepo", default="")
    placeholder_user_id: str = msgspec.field(name="placeholderUserId", default="")
    github_token: str | None = msgspec.field(name="gitHubToken", default=None)
    graph_endpoint: str | None = msgspec.field(name="graphEndpoint", default=None)
    github_api_url: str | None = msgspec.field(name="gitHubApiUrl", default=None)
    poll_interval_s: float | None = msgspec.field(
        name="pollIntervalSeconds", default=None
    )
    registration_timeout_s: float | None = msgspec.field(
        name="registrationTimeoutSeconds", default=None
    )
    max_retries: int | None = msgspec.field(name="maxRetries", default=None)
