"""Map GitHub issues and repositories to Graph external items.

The mapper is pure: it performs no I/O and builds its output only from its
arguments, so mapping the same entity and events twice encodes to identical
bytes. Content population is layered on by the ingestion pipeline.
"""

from __future__ import annotations

import typing as typ

from ghconnect.graph.models import (
    AclEntry,
    ActivityType,
    ExternalActivity,
    ExternalItem,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ghconnect.github.models import GitHubIssue, GitHubRepository, TimelineEvent
    from ghconnect.graph.models import Identity

    from .identity import IdentityResolver

GITHUB_ICON_URL = "https://pngimg.com/uploads/github/github_PNG40.png"

COMMENT_EVENT_KINDS = frozenset({"commented", "reviewed"})
MODIFYING_EVENT_KINDS = frozenset({
    "closed",
    "reopened",
    "renamed",
    "labeled",
    "unlabeled",
    "assigned",
    "unassigned",
    "milestoned",
    "demilestoned",
    "locked",
    "unlocked",
    "transferred",
    "pinned",
    "unpinned",
    "merged",
})


def _activity_type(kind: str) -> ActivityType | None:
    if kind in COMMENT_EVENT_KINDS:
        return ActivityType.COMMENTED
    if kind in MODIFYING_EVENT_KINDS:
        return ActivityType.MODIFIED
    return None


def _latest_actor(events: cabc.Sequence[TimelineEvent]) -> str | None:
    for event in reversed(events):
        if event.actor_login:
            return event.actor_login
    return None


class EntityMapper:
    """Convert GitHub entities and their timelines into items and activities.

    Parameters
    ----------
    identity_resolver
        Resolves GitHub logins for ``createdBy``/``lastModifiedBy`` and
        activity actors.
    acl_value
        Tenant id granted access to every item.

    """

    def __init__(self, identity_resolver: IdentityResolver, *, acl_value: str) -> None:
        """Bind the mapper to an identity resolver and the tenant ACL value."""
        self._identities = identity_resolver
        self._acl_value = acl_value

    def _acl(self) -> list[AclEntry]:
        return [AclEntry(type="everyone", value=self._acl_value)]

    def _identity(self, login: str | None) -> Identity:
        return self._identities.resolve(login)

    def issue_to_item(
        self, issue: GitHubIssue, events: cabc.Sequence[TimelineEvent]
    ) -> ExternalItem:
        """Map an issue to an item keyed by its issue number."""
        author = issue.user.login if issue.user is not None else None
        modifier = _latest_actor(events) or author
        return ExternalItem(
            id=str(issue.number),
            properties={
                "title": issue.title,
                "body": issue.body or "",
                "assignees": ",".join(user.login for user in issue.assignees),
                "labels": ",".join(label.name for label in issue.labels),
                "state": issue.state,
                "issueUrl": issue.html_url,
                "icon": GITHUB_ICON_URL,
                "updatedAt": issue.updated_at,
                "lastModifiedBy": self._identity(modifier).id,
            },
            acl=self._acl(),
        )

    def repository_to_item(
        self, repository: GitHubRepository, events: cabc.Sequence[TimelineEvent]
    ) -> ExternalItem:
        """Map a repository to an item keyed by its numeric id."""
        owner = repository.owner.login
        modifier = _latest_actor(events) or owner
        visibility = repository.visibility or (
            "private" if repository.private else "public"
        )
        return ExternalItem(
            id=str(repository.id),
            properties={
                "title": repository.name,
                "description": repository.description or "",
                "visibility": visibility,
                "createdBy": self._identity(owner).id,
                "updatedAt": repository.updated_at,
                "lastModifiedBy": self._identity(modifier).id,
                "repoUrl": repository.html_url,
                "userUrl": repository.owner.html_url or "",
                "icon": GITHUB_ICON_URL,
            },
            acl=self._acl(),
        )

    def to_activities(
        self, events: cabc.Sequence[TimelineEvent]
    ) -> list[ExternalActivity]:
        """Map qualifying timeline events to activities in timeline order.

        Comments and reviews become ``commented`` activities; state and
        metadata transitions become ``modified``. Other kinds, and events
        without a timestamp, are dropped.
        """
        activities: list[ExternalActivity] = []
        for event in events:
            activity_type = _activity_type(event.kind)
            if activity_type is None or event.occurred_at is None:
                continue
            activities.append(
                ExternalActivity(
                    type=activity_type,
                    start_date_time=event.occurred_at,
                    performed_by=self._identity(event.actor_login),
                )
            )
        return activities
