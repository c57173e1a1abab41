"""Unit tests for the command-line interface."""

from __future__ import annotations

import typing as typ

import pytest

from ghconnect import cli
from ghconnect.graph.models import ExternalConnection
from ghconnect.service import ConnectionSession
from tests.helpers.builders import PLACEHOLDER_USER_ID, issue_payload, make_settings
from tests.helpers.fake_github import FakeGitHub
from tests.helpers.fake_graph import FakeGraph
from tests.helpers.services import make_service

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path


@pytest.fixture
def fakes(monkeypatch: pytest.MonkeyPatch) -> tuple[FakeGitHub, FakeGraph]:
    """Route CLI commands to in-memory GitHub and Graph services."""
    github, graph = FakeGitHub(), FakeGraph()
    monkeypatch.setattr(cli, "load_settings", lambda path: make_settings())
    monkeypatch.setattr(
        cli, "_open_service", lambda settings: make_service(github, graph)
    )
    monkeypatch.setattr(cli, "configure_logging", lambda level: ("INFO", False))
    return github, graph


def _scripted(answers: list[str]) -> cabc.Callable[[str], str]:
    remaining = iter(answers)

    def prompt(label: str) -> str:
        del label
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError from None

    return prompt


def test_list_reports_when_no_connections_exist(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """An empty tenant prompts the user to create a connection."""
    del fakes

    assert cli.list_connections() == 0
    assert "No connections exist" in capsys.readouterr().out


def test_create_then_list(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """A created connection is printed by ``list``."""
    _, graph = fakes

    assert cli.create("repos1", "Repositories", item_type="repos") == 0
    assert cli.list_connections() == 0

    out = capsys.readouterr().out
    assert "New connection created - Name: Repositories, Id: repos1" in out
    assert "Repositories (repos1)" in out
    resolver = graph.connections["repos1"]["activitySettings"]["urlToItemResolvers"]
    assert resolver[0]["itemId"] == "{repo}"


def test_connector_errors_exit_non_zero(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """Remote errors are printed with their service code."""
    del fakes

    assert cli.delete("missing1") == 1
    assert "ERROR: 404 ItemNotFound: Connection missing1 not found" in (
        capsys.readouterr().err
    )


def test_validation_errors_exit_non_zero(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """Invalid ids are reported before any request is sent."""
    _, graph = fakes

    assert cli.create("x", "Name") == 1
    assert "3-32 alphanumeric" in capsys.readouterr().err
    assert graph.requests == []


def test_register_schema_reports_poll_count(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """Successful registration reports how many status checks it took."""
    _, graph = fakes
    graph.operation_statuses = ["inprogress", "inprogress", "completed"]

    assert cli.register_schema("issues1", item_type="issues") == 0
    assert "after 3 status check(s)" in capsys.readouterr().out


def test_push_exits_non_zero_when_an_entity_fails(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """Partial runs list the skipped entities and fail the command."""
    github, graph = fakes
    github.issues = [issue_payload(1), issue_payload(2)]
    graph.failing_items = {"2"}

    assert cli.push("issues1") == 1

    out = capsys.readouterr().out
    assert "Pushed 1 issues item(s) with 0 activities; 1 failed:" in out
    assert "  - 2 [upsert] RemoteApiError:" in out


def test_resolve_identity_prints_placeholder(
    fakes: tuple[FakeGitHub, FakeGraph], capsys: pytest.CaptureFixture[str]
) -> None:
    """Identity resolution prints the surrogate user."""
    del fakes

    assert cli.resolve_identity("octocat") == 0
    assert capsys.readouterr().out.strip() == f"octocat -> user {PLACEHOLDER_USER_ID}"


def test_load_settings_reads_file_when_given(tmp_path: Path) -> None:
    """A settings path takes precedence over the environment."""
    path = tmp_path / "appsettings.json"
    path.write_text(
        '{"tenantId": "t", "clientId": "c", "clientSecret": "s", '
        '"gitHubRepoOwner": "acme", "gitHubRepo": "widgets", '
        '"placeholderUserId": "u"}',
        encoding="utf-8",
    )

    settings = cli.load_settings(path)

    assert settings.repo_slug == "acme/widgets"


def test_commands_are_registered() -> None:
    """Every operation is reachable as a subcommand."""
    for name in (
        "list",
        "create",
        "delete",
        "register-schema",
        "push",
        "resolve-identity",
        "menu",
    ):
        assert cli.app[name] is not None


@pytest.mark.asyncio
async def test_menu_create_then_push_uses_selected_connection() -> None:
    """A connection created from the menu becomes the push target."""
    github = FakeGitHub(issues=[issue_payload(1)])
    graph = FakeGraph()
    echoed: list[str] = []
    prompt = _scripted(
        ["1", "issues1", "Issues", "", "issues", "5", "issues", "0"]
    )

    session = await cli.run_menu(
        make_service(github, graph), prompt=prompt, echo=echoed.append
    )

    assert session.require_selection().id == "issues1"
    assert "1" in graph.items["issues1"]
    assert "Pushed 1 issues item(s) with 0 activities" in echoed


@pytest.mark.asyncio
async def test_menu_reports_missing_selection_and_bad_input() -> None:
    """Actions without a selection report an error and the menu continues."""
    echoed: list[str] = []
    prompt = _scripted(["9", "abc", "4", "0"])

    session = await cli.run_menu(
        make_service(FakeGitHub(), FakeGraph()), prompt=prompt, echo=echoed.append
    )

    assert session.selected is None
    assert echoed.count("Invalid choice!") == 2
    assert any(
        line.startswith("ERROR: No connection selected") for line in echoed
    )


@pytest.mark.asyncio
async def test_menu_select_and_delete_clears_selection() -> None:
    """Deleting the selected connection clears the selection."""
    graph = FakeGraph(
        connections={
            "issues1": {"id": "issues1", "name": "Issues"},
            "repos1": {"id": "repos1", "name": "Repos"},
        }
    )
    echoed: list[str] = []
    prompt = _scripted(["2", "7", "2", "3", "0"])

    session = await cli.run_menu(
        make_service(FakeGitHub(), graph),
        session=ConnectionSession(),
        prompt=prompt,
        echo=echoed.append,
    )

    assert session.selected is None
    assert list(graph.connections) == ["issues1"]
    assert "2. Repos (repos1)" in echoed
    assert "Connection deleted successfully." in echoed


@pytest.mark.asyncio
async def test_menu_shows_current_connection() -> None:
    """The menu header names the selected connection."""
    echoed: list[str] = []
    session = ConnectionSession(ExternalConnection(id="issues1", name="Issues"))

    await cli.run_menu(
        make_service(FakeGitHub(), FakeGraph()),
        session=session,
        prompt=_scripted(["0"]),
        echo=echoed.append,
    )

    assert echoed[0] == "Current connection: Issues (issues1)"


@pytest.mark.asyncio
@pytest.mark.parametrize("answers", [[], ["9"], ["4"]], ids=["menu", "retry", "action"])
async def test_menu_end_of_input_exits(answers: list[str]) -> None:
    """Closing stdin ends the menu and keeps the selection."""
    selected = ExternalConnection(id="issues1", name="Issues")
    graph = FakeGraph(connections={"issues1": {"id": "issues1", "name": "Issues"}})

    session = await cli.run_menu(
        make_service(FakeGitHub(), graph),
        session=ConnectionSession(selected),
        prompt=_scripted(answers),
        echo=[].append,
    )

    assert session.selected == selected
    assert graph.schemas == {}
