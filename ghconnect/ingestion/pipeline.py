"""Push GitHub issues or repositories into an external connection.

Each run lists every source entity and then, one entity at a time, fetches
its events, maps it to an item, attaches content, upserts the item and (for
issues) appends its activities. A failure in any of those steps skips that
entity only; the run carries on with the next one and reports every skipped
entity in its result.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import msgspec

from ghconnect.common.time import utcnow
from ghconnect.errors import ConnectorError
from ghconnect.graph.models import ItemType

from .observability import IngestionEventLogger, IngestionRunContext

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ghconnect.github.client import GitHubSourceClient
    from ghconnect.github.models import GitHubIssue, GitHubRepository
    from ghconnect.graph.connections import ConnectionManager
    from ghconnect.mapping.mapper import EntityMapper

    from .content import ContentFetcher

# Errors a single entity may raise without aborting the run.
_ENTITY_ERRORS = (ConnectorError, ValueError)


class FailureStage(enum.StrEnum):
    """Step of the per-entity pipeline where a failure happened."""

    LIST = "list"
    FETCH_EVENTS = "fetch_events"
    MAP = "map"
    CONTENT = "content"
    UPSERT = "upsert"
    ACTIVITIES = "activities"


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionConfig:
    """Runtime knobs for a push run."""

    max_retries: int = 3


@dataclasses.dataclass(frozen=True, slots=True)
class EntityFailure:
    """One entity the run skipped."""

    entity_id: str
    stage: FailureStage
    error_type: str
    message: str

    @classmethod
    def from_exception(
        cls, entity_id: str, stage: FailureStage, exc: BaseException
    ) -> EntityFailure:
        """Record ``exc`` raised while processing ``entity_id``."""
        return cls(
            entity_id=entity_id,
            stage=stage,
            error_type=type(exc).__name__,
            message=str(exc),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionResult:
    """Summary of a single push run."""

    item_type: ItemType
    items_pushed: int = 0
    activities_submitted: int = 0
    failures: tuple[EntityFailure, ...] = ()

    @property
    def ok(self) -> bool:
        """Return True when no entity was skipped."""
        return not self.failures


@dataclasses.dataclass(slots=True)
class _RunTally:
    items_pushed: int = 0
    activities_submitted: int = 0
    failures: list[EntityFailure] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(slots=True)
class _EntityProgress:
    entity_id: str
    stage: FailureStage = FailureStage.FETCH_EVENTS


class IngestionPipeline:
    """Orchestrate fetch, map, and upsert for one connection.

    Parameters
    ----------
    source
        GitHub client listing entities and their events.
    connections
        Connection manager used to upsert items and append activities.
    mapper
        Pure entity mapper.
    content
        Fetcher for item bodies.
    config
        Retry budget for event fetches.
    event_logger
        Structured logger for run and entity events.

    """

    def __init__(  # noqa: PLR0913
        self,
        source: GitHubSourceClient,
        connections: ConnectionManager,
        mapper: EntityMapper,
        content: ContentFetcher,
        *,
        source_slug: str = "",
        config: IngestionConfig | None = None,
        event_logger: IngestionEventLogger | None = None,
    ) -> None:
        """Create a pipeline from its collaborators."""
        self._source = source
        self._connections = connections
        self._mapper = mapper
        self._content = content
        self._source_slug = source_slug
        self._config = config or IngestionConfig()
        self._event_logger = event_logger or IngestionEventLogger()

    async def push(self, connection_id: str, item_type: ItemType) -> IngestionResult:
        """Push every entity of ``item_type`` into ``connection_id``."""
        if item_type is ItemType.ISSUES:
            return await self.push_issues(connection_id)
        return await self.push_repositories(connection_id)

    async def push_issues(self, connection_id: str) -> IngestionResult:
        """Push every issue of the configured repository with its activities."""
        return await self._run(
            connection_id,
            ItemType.ISSUES,
            self._source.list_issues,
            lambda issue: str(issue.number),
            self._push_issue,
        )

    async def push_repositories(self, connection_id: str) -> IngestionResult:
        """Push every repository of the configured owner."""
        return await self._run(
            connection_id,
            ItemType.REPOSITORIES,
            self._source.list_repositories,
            lambda repository: str(repository.id),
            self._push_repository,
        )

    async def _run[E](  # noqa: PLR0913
        self,
        connection_id: str,
        item_type: ItemType,
        list_entities: cabc.Callable[[], cabc.Awaitable[list[E]]],
        entity_id: cabc.Callable[[E], str],
        push_entity: cabc.Callable[
            [str, E, _EntityProgress], cabc.Awaitable[int]
        ],
    ) -> IngestionResult:
        started_at = utcnow()
        context = IngestionRunContext(
            connection_id=connection_id,
            item_type=item_type,
            source=self._source_slug,
            started_at=started_at,
        )
        self._event_logger.log_run_started(context)
        tally = _RunTally()

        try:
            entities = await list_entities()
        except _ENTITY_ERRORS as exc:
            self._event_logger.log_listing_failed(context, exc)
            tally.failures.append(
                EntityFailure.from_exception(
                    self._source_slug or item_type, FailureStage.LIST, exc
                )
            )
            entities = []

        for entity in entities:
            progress = _EntityProgress(entity_id=entity_id(entity))
            try:
                activities = await push_entity(connection_id, entity, progress)
            except _ENTITY_ERRORS as exc:
                failure = EntityFailure.from_exception(
                    progress.entity_id, progress.stage, exc
                )
                tally.failures.append(failure)
                self._event_logger.log_entity_failed(context, failure, exc)
                continue
            tally.items_pushed += 1
            tally.activities_submitted += activities
            self._event_logger.log_entity_pushed(
                context, progress.entity_id, activities
            )

        result = IngestionResult(
            item_type=item_type,
            items_pushed=tally.items_pushed,
            activities_submitted=tally.activities_submitted,
            failures=tuple(tally.failures),
        )
        self._event_logger.log_run_completed(context, result, utcnow() - started_at)
        return result

    async def _push_issue(
        self, connection_id: str, issue: GitHubIssue, progress: _EntityProgress
    ) -> int:
        progress.stage = FailureStage.FETCH_EVENTS
        events = await self._source.list_issue_events(
            issue.number, max_retries=self._config.max_retries
        )

        progress.stage = FailureStage.MAP
        item = self._mapper.issue_to_item(issue, events)
        activities = self._mapper.to_activities(events)

        progress.stage = FailureStage.CONTENT
        content = await self._content.for_issue(issue)
        if content is not None:
            item = msgspec.structs.replace(item, content=content)

        progress.stage = FailureStage.UPSERT
        await self._connections.upsert_item(connection_id, item)

        progress.stage = FailureStage.ACTIVITIES
        result = await self._connections.add_activities(
            connection_id, item.id, activities
        )
        if result is None:
            return 0
        return len(activities) - len(result.failed)

    async def _push_repository(
        self,
        connection_id: str,
        repository: GitHubRepository,
        progress: _EntityProgress,
    ) -> int:
        progress.stage = FailureStage.FETCH_EVENTS
        events = await self._source.list_repository_events(
            repository.id, max_retries=self._config.max_retries
        )

        progress.stage = FailureStage.MAP
        item = self._mapper.repository_to_item(repository, events)

        progress.stage = FailureStage.CONTENT
        content = await self._content.for_repository(repository)
        if content is not None:
            item = msgspec.structs.replace(item, content=content)

        progress.stage = FailureStage.UPSERT
        await self._connections.upsert_item(connection_id, item)
        return 0

