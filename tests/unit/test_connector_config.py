"""Unit tests for connector settings loading and validation."""

from __future__ import annotations

import json
import typing as typ

import pytest

from ghconnect.config import ConnectorSettings
from ghconnect.errors import ConfigurationError
from tests.helpers.builders import make_settings

if typ.TYPE_CHECKING:
    from pathlib import Path

_REQUIRED_ENV = {
    "GHCONNECT_TENANT_ID": "tenant-1",
    "GHCONNECT_CLIENT_ID": "client-1",
    "GHCONNECT_CLIENT_SECRET": "not-a-secret",
    "GHCONNECT_GITHUB_OWNER": "acme",
    "GHCONNECT_GITHUB_REPO": "widgets",
    "GHCONNECT_PLACEHOLDER_USER_ID": "user-1",
}


@pytest.fixture
def required_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Set every required variable and clear the optional ones."""
    for name, value in _REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    for name in (
        "GHCONNECT_GITHUB_TOKEN",
        "GHCONNECT_GRAPH_ENDPOINT",
        "GHCONNECT_GITHUB_API_URL",
        "GHCONNECT_POLL_INTERVAL_S",
        "GHCONNECT_REGISTRATION_TIMEOUT_S",
        "GHCONNECT_MAX_RETRIES",
        "GHCONNECT_TIMEOUT_S",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestFromEnv:
    """Tests for ConnectorSettings.from_env."""

    def test_defaults(self, required_env: pytest.MonkeyPatch) -> None:
        """Optional settings fall back to their defaults."""
        del required_env
        settings = ConnectorSettings.from_env()

        assert settings.github_token is None
        assert settings.graph_endpoint == "https://graph.microsoft.com/beta"
        assert settings.poll_interval_s == 30.0
        assert settings.registration_timeout_s == 25 * 60.0
        assert settings.max_retries == 3
        assert settings.repo_slug == "acme/widgets"

    def test_overrides(self, required_env: pytest.MonkeyPatch) -> None:
        """Numeric overrides are parsed from the environment."""
        required_env.setenv("GHCONNECT_POLL_INTERVAL_S", "5")
        required_env.setenv("GHCONNECT_MAX_RETRIES", "0")
        required_env.setenv("GHCONNECT_GITHUB_TOKEN", "  ghp_token  ")

        settings = ConnectorSettings.from_env()

        assert settings.poll_interval_s == 5.0
        assert settings.max_retries == 0
        assert settings.github_token == "ghp_token"

    @pytest.mark.parametrize(
        ("env_var", "setting"),
        [
            ("GHCONNECT_TENANT_ID", "tenantId"),
            ("GHCONNECT_GITHUB_OWNER", "gitHubRepoOwner"),
            ("GHCONNECT_PLACEHOLDER_USER_ID", "placeholderUserId"),
        ],
    )
    def test_missing_required_value(
        self, required_env: pytest.MonkeyPatch, env_var: str, setting: str
    ) -> None:
        """An empty required variable fails at construction."""
        required_env.setenv(env_var, "   ")

        with pytest.raises(ConfigurationError, match=setting):
            ConnectorSettings.from_env()

    def test_invalid_number(self, required_env: pytest.MonkeyPatch) -> None:
        """Unparseable numbers name the offending variable."""
        required_env.setenv("GHCONNECT_TIMEOUT_S", "soon")

        with pytest.raises(ConfigurationError, match="GHCONNECT_TIMEOUT_S"):
            ConnectorSettings.from_env()


class TestValidation:
    """Tests for construction-time validation."""

    @pytest.mark.parametrize(
        "field", ["poll_interval_s", "registration_timeout_s", "timeout_s"]
    )
    def test_non_positive_durations_are_rejected(self, field: str) -> None:
        """Durations must be positive."""
        with pytest.raises(ConfigurationError, match="must be positive"):
            make_settings(**{field: 0})

    def test_negative_retries_are_rejected(self) -> None:
        """Retry counts must not be negative."""
        with pytest.raises(ConfigurationError, match="must not be negative"):
            make_settings(max_retries=-1)


class TestFromFile:
    """Tests for ConnectorSettings.from_file."""

    def test_reads_app_settings_layout(self, tmp_path: Path) -> None:
        """CamelCase keys of the app settings file are honoured."""
        path = tmp_path / "appsettings.json"
        path.write_text(
            json.dumps({
                "tenantId": "tenant-1",
                "clientId": "client-1",
                "clientSecret": "not-a-secret",
                "gitHubRepoOwner": "acme",
                "gitHubRepo": "widgets",
                "placeholderUserId": "user-1",
                "gitHubToken": "",
                "pollIntervalSeconds": 10,
                "unrelatedKey": True,
            })
        )

        settings = ConnectorSettings.from_file(path)

        assert settings.github_owner == "acme"
        assert settings.github_token is None
        assert settings.poll_interval_s == 10.0
        assert settings.max_retries == 3

    def test_missing_key_is_reported(self, tmp_path: Path) -> None:
        """A required key that is absent fails like an empty value."""
        path = tmp_path / "appsettings.json"
        path.write_text(json.dumps({"tenantId": "tenant-1"}))

        with pytest.raises(ConfigurationError, match="clientId not set"):
            ConnectorSettings.from_file(path)

    def test_unreadable_file(self, tmp_path: Path) -> None:
        """Missing or malformed files raise ConfigurationError."""
        missing = tmp_path / "absent.json"
        malformed = tmp_path / "bad.json"
        malformed.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Could not load settings"):
            ConnectorSettings.from_file(missing)
        with pytest.raises(ConfigurationError, match="Could not load settings"):
            ConnectorSettings.from_file(malformed)
