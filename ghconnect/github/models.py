"""Typed GitHub REST models consumed by the connector.

Field names follow the GitHub REST v3 JSON payloads; unknown fields are
ignored on decode.
"""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003 - msgspec resolves annotations at runtime
import typing as typ

import msgspec


class GitHubUser(msgspec.Struct, kw_only=True):
    """Subset of a GitHub user object."""

    login: str
    id: int | None = None
    html_url: str | None = None


class GitHubLabel(msgspec.Struct, kw_only=True):
    """Subset of a GitHub label object."""

    name: str


class GitHubIssue(msgspec.Struct, kw_only=True):
    """Issue as returned by ``GET /repos/{owner}/{repo}/issues``."""

    id: int
    number: int
    title: str
    state: str
    html_url: str
    created_at: dt.datetime
    updated_at: dt.datetime
    body: str | None = None
    user: GitHubUser | None = None
    assignees: list[GitHubUser] = msgspec.field(default_factory=list)
    labels: list[GitHubLabel] = msgspec.field(default_factory=list)
    closed_at: dt.datetime | None = None
    pull_request: dict[str, typ.Any] | None = None

    @property
    def is_pull_request(self) -> bool:
        """Return True when the issues endpoint returned a pull request."""
        return self.pull_request is not None


class GitHubRepository(msgspec.Struct, kw_only=True):
    """Repository as returned by the repository listing endpoints."""

    id: int
    name: str
    full_name: str
    html_url: str
    owner: GitHubUser
    created_at: dt.datetime
    updated_at: dt.datetime
    private: bool = False
    visibility: str | None = None
    description: str | None = None
    pushed_at: dt.datetime | None = None
    default_branch: str | None = None
    language: str | None = None

    @property
    def is_public(self) -> bool:
        """Return True when the repository is publicly visible."""
        if self.visibility is not None:
            return self.visibility == "public"
        return not self.private


class _RawTimelineItem(msgspec.Struct, kw_only=True):
    """Issue timeline item; shape varies by ``event``."""

    event: str | None = None
    id: int | str | None = None
    actor: GitHubUser | None = None
    user: GitHubUser | None = None
    created_at: dt.datetime | None = None
    submitted_at: dt.datetime | None = None


class _RawRepositoryEvent(msgspec.Struct, kw_only=True):
    """Repository activity event from ``GET /repositories/{id}/events``."""

    id: str
    type: str
    created_at: dt.datetime | None = None
    actor: GitHubUser | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TimelineEvent:
    """Normalised activity record for an issue or repository.

    Attributes
    ----------
    kind
        Timeline event name (``commented``, ``closed``...) for issues, or the
        activity type (``PushEvent``...) for repositories.
    actor_login
        Login of the user who performed the action, when known.
    occurred_at
        When the action happened; some timeline items carry no timestamp.
    event_id
        GitHub identifier of the event, when present.

    """

    kind: str
    actor_login: str | None
    occurred_at: dt.datetime | None
    event_id: str | None = None


def timeline_event_from_item(item: _RawTimelineItem) -> TimelineEvent | None:
    """Convert an issue timeline item, dropping items without an event name."""
    if item.event is None:
        return None
    # Comments and reviews report their author in ``user`` rather than ``actor``.
    person = item.actor or item.user
    return TimelineEvent(
        kind=item.event,
        actor_login=person.login if person is not None else None,
        occurred_at=item.created_at or item.submitted_at,
        event_id=str(item.id) if item.id is not None else None,
    )


def timeline_event_from_repository_event(event: _RawRepositoryEvent) -> TimelineEvent:
    """Convert a repository activity event."""
    return TimelineEvent(
        kind=event.type,
        actor_login=event.actor.login if event.actor is not None else None,
        occurred_at=event.created_at,
        event_id=event.id,
    )
