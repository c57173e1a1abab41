"""Command-line interface for the GitHub connector.

Usage:
    ghconnect list                          # List connections
    ghconnect create ID NAME --item-type issues
    ghconnect delete ID
    ghconnect register-schema ID --item-type repos
    ghconnect push ID --item-type issues
    ghconnect resolve-identity LOGIN
    ghconnect menu                          # Interactive menu

Environment variables:
    GHCONNECT_SETTINGS  - Path to an appsettings.json style file; when unset,
                          settings are read from GHCONNECT_* variables
    GHCONNECT_LOG_LEVEL - Log level (default: INFO)
"""

from __future__ import annotations

import asyncio
import enum
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from ghconnect.config import ConnectorSettings
from ghconnect.errors import ConnectorError, RemoteApiError
from ghconnect.graph.models import ItemType
from ghconnect.logging import configure_logging, get_logger, log_warning
from ghconnect.service import ConnectionSession, ConnectorService

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ghconnect.graph.models import ExternalConnection
    from ghconnect.ingestion.pipeline import IngestionResult

    type Prompt = cabc.Callable[[str], str]
    type Echo = cabc.Callable[[str], None]

logger = get_logger(__name__)

app = App(
    name="ghconnect",
    help="Sync GitHub issues and repositories into Microsoft Search",
    version="0.1.0",
)

ItemTypeName = typ.Literal["issues", "repos"]
SettingsOption = typ.Annotated[
    Path | None, Parameter(name="--settings", env_var="GHCONNECT_SETTINGS")
]
LogLevelOption = typ.Annotated[
    str, Parameter(name="--log-level", env_var="GHCONNECT_LOG_LEVEL")
]

_EXIT_OK = 0
_EXIT_ERROR = 1


def load_settings(path: Path | None) -> ConnectorSettings:
    """Load settings from ``path``, or from the environment when ``None``."""
    if path is None:
        return ConnectorSettings.from_env()
    return ConnectorSettings.from_file(path)


def _open_service(settings: ConnectorSettings) -> ConnectorService:
    return ConnectorService.from_settings(settings)


def _setup_logging(level: str) -> None:
    normalized_level, invalid_level = configure_logging(level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid GHCONNECT_LOG_LEVEL %r, falling back to %s",
            level,
            normalized_level,
        )


def _run(
    settings_path: Path | None,
    log_level: str,
    action: cabc.Callable[[ConnectorService], cabc.Awaitable[int]],
) -> int:
    """Run ``action`` against a service, reporting connector errors."""
    _setup_logging(log_level)

    async def _main() -> int:
        settings = load_settings(settings_path)
        async with _open_service(settings) as service:
            return await action(service)

    try:
        return asyncio.run(_main())
    except ConnectorError as exc:
        print(f"ERROR: {_describe_error(exc)}", file=sys.stderr)
        return _EXIT_ERROR


def _describe_error(exc: ConnectorError) -> str:
    if isinstance(exc, RemoteApiError) and exc.code:
        return f"{exc.status_code} {exc.code}: {exc.message}"
    return str(exc)


def _format_connection(connection: ExternalConnection) -> str:
    return f"{connection.name} ({connection.id})"


def _format_result(result: IngestionResult) -> str:
    summary = (
        f"Pushed {result.items_pushed} {result.item_type} item(s) with "
        f"{result.activities_submitted} activities"
    )
    if result.ok:
        return summary
    lines = [f"{summary}; {len(result.failures)} failed:"]
    lines.extend(
        f"  - {failure.entity_id} [{failure.stage}] {failure.error_type}: "
        f"{failure.message}"
        for failure in result.failures
    )
    return "\n".join(lines)


@app.command(name="list")
def list_connections(
    *, settings: SettingsOption = None, log_level: LogLevelOption = "INFO"
) -> int:
    """List the external connections in the tenant.

    Args:
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    """

    async def action(service: ConnectorService) -> int:
        connections = await service.list_connections()
        if not connections:
            print("No connections exist. Please create a new connection.")
        for connection in connections:
            print(_format_connection(connection))
        return _EXIT_OK

    return _run(settings, log_level, action)


@app.command
def create(  # noqa: PLR0913
    connection_id: str,
    name: str,
    *,
    description: str | None = None,
    item_type: ItemTypeName = "issues",
    connector_id: str | None = None,
    connector_ticket: str | None = None,
    settings: SettingsOption = None,
    log_level: LogLevelOption = "INFO",
) -> int:
    """Create a connection for issues or repositories.

    Args:
        connection_id: Unique id, 3-32 alphanumeric characters.
        name: Display name.
        description: Optional description.
        item_type: Kind of GitHub entity the connection indexes.
        connector_id: Microsoft 365 app connector id (needs a ticket).
        connector_ticket: Microsoft 365 app connector ticket (needs an id).
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    """

    async def action(service: ConnectorService) -> int:
        connection = await service.create_connection(
            connection_id,
            name,
            description,
            ItemType(item_type),
            connector_id=connector_id,
            connector_ticket=connector_ticket,
        )
        print(
            f"New connection created - Name: {connection.name}, Id: {connection.id}"
        )
        return _EXIT_OK

    return _run(settings, log_level, action)


@app.command
def delete(
    connection_id: str,
    *,
    settings: SettingsOption = None,
    log_level: LogLevelOption = "INFO",
) -> int:
    """Delete a connection and everything indexed in it.

    Args:
        connection_id: Connection to delete.
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    """

    async def action(service: ConnectorService) -> int:
        await service.delete_connection(connection_id)
        print("Connection deleted successfully.")
        return _EXIT_OK

    return _run(settings, log_level, action)


@app.command
def register_schema(
    connection_id: str,
    *,
    item_type: ItemTypeName = "issues",
    settings: SettingsOption = None,
    log_level: LogLevelOption = "INFO",
) -> int:
    """Register the issues or repositories schema and wait for it to apply.

    Args:
        connection_id: Connection to register the schema on.
        item_type: Which static schema to register.
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    """

    async def action(service: ConnectorService) -> int:
        print("Registering schema, this may take some time...")
        outcome = await service.register_schema(connection_id, ItemType(item_type))
        print(f"Schema registered successfully after {outcome.polls} status check(s).")
        return _EXIT_OK

    return _run(settings, log_level, action)


@app.command
def push(
    connection_id: str,
    *,
    item_type: ItemTypeName = "issues",
    settings: SettingsOption = None,
    log_level: LogLevelOption = "INFO",
) -> int:
    """Push every issue or repository into a connection.

    Args:
        connection_id: Connection to push items into.
        item_type: Which GitHub entities to push.
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    Returns:
        Exit code (0 when every entity was pushed, 1 otherwise).

    """

    async def action(service: ConnectorService) -> int:
        result = await service.push_items(connection_id, ItemType(item_type))
        print(_format_result(result))
        return _EXIT_OK if result.ok else _EXIT_ERROR

    return _run(settings, log_level, action)


@app.command
def resolve_identity(
    login: str,
    *,
    settings: SettingsOption = None,
    log_level: LogLevelOption = "INFO",
) -> int:
    """Show the Microsoft 365 identity a GitHub login resolves to.

    Args:
        login: GitHub login.
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    """

    async def action(service: ConnectorService) -> int:
        identity = service.resolve_identity(login)
        print(f"{login} -> {identity.type} {identity.id}")
        return _EXIT_OK

    return _run(settings, log_level, action)


# =============================================================================
# Interactive menu
# =============================================================================


class MenuChoice(enum.IntEnum):
    """Options of the interactive menu."""

    CREATE_CONNECTION = 1
    SELECT_CONNECTION = 2
    DELETE_CONNECTION = 3
    REGISTER_SCHEMA = 4
    PUSH_ALL_ITEMS = 5
    EXIT = 0


_MENU_LABELS: dict[MenuChoice, str] = {
    MenuChoice.CREATE_CONNECTION: "Create a connection",
    MenuChoice.SELECT_CONNECTION: "Select an existing connection",
    MenuChoice.DELETE_CONNECTION: "Delete current connection",
    MenuChoice.REGISTER_SCHEMA: "Register schema for current connection",
    MenuChoice.PUSH_ALL_ITEMS: "Push items to current connection",
    MenuChoice.EXIT: "Exit",
}


def _prompt_menu(
    session: ConnectionSession, prompt: Prompt, echo: Echo
) -> MenuChoice | None:
    current = _format_connection(session.selected) if session.selected else "NONE"
    echo(f"Current connection: {current}")
    for choice in MenuChoice:
        echo(f"{choice.value}. {_MENU_LABELS[choice]}")
    raw = prompt("Select an option: ").strip()
    try:
        return MenuChoice(int(raw))
    except ValueError:
        return None


def _prompt_item_type(prompt: Prompt) -> ItemType:
    while True:
        raw = prompt("Item type (issues/repos): ").strip().lower()
        try:
            return ItemType(raw)
        except ValueError:
            continue


def _prompt_required(prompt: Prompt, label: str) -> str:
    while True:
        value = prompt(f"{label}: ").strip()
        if value:
            return value


async def _menu_create(
    service: ConnectorService, session: ConnectionSession, prompt: Prompt, echo: Echo
) -> None:
    connection_id = _prompt_required(
        prompt, "Enter a unique ID for the new connection (3-32 characters)"
    )
    name = _prompt_required(prompt, "Enter a name for the new connection")
    description = prompt("Enter a description for the new connection: ").strip()
    item_type = _prompt_item_type(prompt)
    connection = await service.create_connection(
        connection_id, name, description or None, item_type
    )
    echo(f"New connection created - Name: {connection.name}, Id: {connection.id}")
    session.select(connection)


async def _menu_select(
    service: ConnectorService, session: ConnectionSession, prompt: Prompt, echo: Echo
) -> None:
    echo("Getting existing connections...")
    connections = await service.list_connections()
    if not connections:
        echo("No connections exist. Please create a new connection.")
        return
    for index, connection in enumerate(connections, start=1):
        echo(f"{index}. {_format_connection(connection)}")
    while True:
        raw = prompt("Select a connection: ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(connections):
            session.select(connections[int(raw) - 1])
            return


async def _menu_delete(
    service: ConnectorService, session: ConnectionSession, prompt: Prompt, echo: Echo
) -> None:
    del prompt
    connection = session.require_selection()
    await service.delete_connection(connection.id)
    session.clear(connection.id)
    echo("Connection deleted successfully.")


async def _menu_register(
    service: ConnectorService, session: ConnectionSession, prompt: Prompt, echo: Echo
) -> None:
    connection = session.require_selection()
    item_type = _prompt_item_type(prompt)
    echo("Registering schema, this may take some time...")
    await service.register_schema(connection.id, item_type)
    echo("Schema registered successfully.")


async def _menu_push(
    service: ConnectorService, session: ConnectionSession, prompt: Prompt, echo: Echo
) -> None:
    connection = session.require_selection()
    item_type = _prompt_item_type(prompt)
    result = await service.push_items(connection.id, item_type)
    echo(_format_result(result))


_MENU_ACTIONS: dict[
    MenuChoice,
    cabc.Callable[
        [ConnectorService, ConnectionSession, Prompt, Echo], cabc.Awaitable[None]
    ],
] = {
    MenuChoice.CREATE_CONNECTION: _menu_create,
    MenuChoice.SELECT_CONNECTION: _menu_select,
    MenuChoice.DELETE_CONNECTION: _menu_delete,
    MenuChoice.REGISTER_SCHEMA: _menu_register,
    MenuChoice.PUSH_ALL_ITEMS: _menu_push,
}


async def run_menu(
    service: ConnectorService,
    *,
    session: ConnectionSession | None = None,
    prompt: Prompt = input,
    echo: Echo = print,
) -> ConnectionSession:
    """Run the interactive menu until the user chooses Exit.

    Connector errors raised by one menu action are reported and the menu is
    shown again; the selected connection survives between actions. End of
    input behaves like Exit.
    """
    session = session or ConnectionSession()
    while True:
        try:
            choice = _prompt_menu(session, prompt, echo)
            if choice is None:
                echo("Invalid choice!")
                continue
            if choice is MenuChoice.EXIT:
                return session
            await _MENU_ACTIONS[choice](service, session, prompt, echo)
        except EOFError:
            return session
        except ConnectorError as exc:
            echo(f"ERROR: {_describe_error(exc)}")


@app.command
def menu(
    *, settings: SettingsOption = None, log_level: LogLevelOption = "INFO"
) -> int:
    """Run the interactive connection menu.

    Args:
        settings: Settings file; environment variables are used when omitted.
        log_level: Log level name.

    """

    async def action(service: ConnectorService) -> int:
        await run_menu(service)
        return _EXIT_OK

    return _run(settings, log_level, action)


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
