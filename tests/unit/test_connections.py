"""Unit tests for connection lifecycle management."""

from __future__ import annotations

import datetime as dt
import json

import pytest

from ghconnect.errors import RemoteApiError, ValidationError
from ghconnect.graph.connections import ConnectionManager, validate_connection_id
from ghconnect.graph.models import (
    ActivityType,
    ExternalActivity,
    Identity,
    ItemType,
    build_url_resolver,
)
from tests.helpers.builders import OWNER, REPO
from tests.helpers.fake_graph import FakeGraph


def _manager(fake: FakeGraph) -> ConnectionManager:
    return ConnectionManager(fake.graph_client(), owner=OWNER, repo=REPO)


@pytest.mark.asyncio
async def test_created_connection_is_listed_and_deleted() -> None:
    """A created connection appears in the listing until it is deleted."""
    fake = FakeGraph()
    manager = _manager(fake)

    created = await manager.create(
        "issues1", "Widget issues", "Issues from acme/widgets", ItemType.ISSUES
    )
    listed = await manager.list()

    assert created.id == "issues1"
    assert [(connection.id, connection.name) for connection in listed] == [
        ("issues1", "Widget issues")
    ]

    await manager.delete("issues1")

    assert await manager.list() == []


@pytest.mark.asyncio
async def test_create_attaches_url_resolver_for_item_type() -> None:
    """Issue connections resolve github.com issue URLs to the issue number."""
    fake = FakeGraph()

    await _manager(fake).create("issues1", "Issues", None, ItemType.ISSUES)

    (request,) = fake.requests_matching("POST", "/external/connections")
    body = json.loads(request.content)
    (resolver,) = body["activitySettings"]["urlToItemResolvers"]
    assert resolver["@odata.type"] == (
        "#microsoft.graph.externalConnectors.itemIdResolver"
    )
    assert resolver["itemId"] == "{issueId}"
    assert resolver["urlMatchInfo"]["baseUrls"] == ["https://github.com"]
    assert "description" not in body


@pytest.mark.asyncio
async def test_duplicate_connection_id_surfaces_remote_error() -> None:
    """Graph conflicts are passed through unchanged."""
    fake = FakeGraph(connections={"issues1": {"id": "issues1", "name": "Issues"}})

    with pytest.raises(RemoteApiError) as excinfo:
        await _manager(fake).create("issues1", "Issues", None, ItemType.ISSUES)

    assert excinfo.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("connector_id", "ticket", "expect_app"),
    [
        ("app-1", "ticket-1", True),
        ("app-1", None, False),
        (None, "ticket-1", False),
    ],
)
async def test_app_properties_require_id_and_ticket(
    connector_id: str | None, ticket: str | None, *, expect_app: bool
) -> None:
    """The connector id and ticket are only sent as a pair."""
    fake = FakeGraph()

    await _manager(fake).create(
        "repos1",
        "Repositories",
        None,
        ItemType.REPOSITORIES,
        connector_id=connector_id,
        connector_ticket=ticket,
    )

    (request,) = fake.requests_matching("POST", "/external/connections")
    assert ("connectorId" in json.loads(request.content)) is expect_app
    assert ("GraphConnectors-Ticket" in request.headers) is expect_app


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("connection_id", "name", "match"),
    [
        ("", "Issues", "connection id must be non-empty"),
        ("ab", "Issues", "3-32 alphanumeric"),
        ("has-dash", "Issues", "3-32 alphanumeric"),
        ("x" * 33, "Issues", "3-32 alphanumeric"),
        ("issues1", "   ", "connection name must be non-empty"),
    ],
)
async def test_invalid_input_is_rejected_before_any_request(
    connection_id: str, name: str, match: str
) -> None:
    """Bad ids and names never reach Graph."""
    fake = FakeGraph()

    with pytest.raises(ValidationError, match=match):
        await _manager(fake).create(connection_id, name, None, ItemType.ISSUES)

    assert fake.requests == []


def test_validate_connection_id_returns_valid_id() -> None:
    """Valid ids are returned unchanged."""
    assert validate_connection_id("GitHubIssues01") == "GitHubIssues01"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/acme/widgets/issues/42", "42"),
        ("https://github.com/acme/widgets/issues/42#issuecomment-1", "42"),
        ("https://github.com/acme/gadgets/issues/42", None),
        ("https://example.com/acme/widgets/issues/42", None),
    ],
)
def test_issue_resolver_extracts_issue_number(url: str, expected: str | None) -> None:
    """Issue URLs of the configured repository resolve to the issue number."""
    resolver = build_url_resolver(ItemType.ISSUES, OWNER, REPO)

    assert resolver.resolve_item_id(url) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/acme/widgets", "widgets"),
        ("https://github.com/acme/gadgets?tab=readme", "gadgets"),
        ("https://github.com/octocat/widgets", None),
    ],
)
def test_repository_resolver_captures_repository_name(
    url: str, expected: str | None
) -> None:
    """Repository URLs under the owner resolve to the repository name."""
    resolver = build_url_resolver(ItemType.REPOSITORIES, OWNER, REPO)

    assert resolver.resolve_item_id(url) == expected


@pytest.mark.asyncio
async def test_add_activity_settings_patches_connection() -> None:
    """Existing connections can be given a resolver after creation."""
    fake = FakeGraph(connections={"repos1": {"id": "repos1", "name": "Repos"}})

    settings = await _manager(fake).add_activity_settings(
        "repos1", ItemType.REPOSITORIES
    )

    (request,) = fake.requests_matching("PATCH", "/external/connections/repos1")
    body = json.loads(request.content)
    assert body["activitySettings"]["urlToItemResolvers"][0]["itemId"] == "{repo}"
    assert settings.url_to_item_resolvers[0].item_id == "{repo}"
    assert "activitySettings" in fake.connections["repos1"]


@pytest.mark.asyncio
async def test_empty_activity_list_makes_no_request() -> None:
    """Nothing is posted when an item has no qualifying activity."""
    fake = FakeGraph()

    result = await _manager(fake).add_activities("issues1", "42", [])

    assert result is None
    assert fake.requests == []


@pytest.mark.asyncio
async def test_add_activities_forwards_to_graph() -> None:
    """Non-empty activity lists are posted for the item."""
    fake = FakeGraph()
    activity = ExternalActivity(
        type=ActivityType.MODIFIED,
        start_date_time=dt.datetime(2024, 3, 2, tzinfo=dt.UTC),
        performed_by=Identity(id="placeholder-user"),
    )

    result = await _manager(fake).add_activities("issues1", "42", [activity])

    assert result is not None
    assert len(fake.activities[("issues1", "42")]) == 1
