"""Microsoft Graph external connector wire models.

Structs encode to the camelCase JSON shapes of the Graph
``externalConnectors`` namespace and ignore unknown fields on decode.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003 - msgspec resolves annotations at runtime
import enum
import re
import typing as typ

import msgspec

_ITEM_ID_RESOLVER_TYPE = "#microsoft.graph.externalConnectors.itemIdResolver"
_EXTERNAL_ACTIVITY_TYPE = "#microsoft.graph.externalConnectors.externalActivity"

# .NET named groups ``(?<name>`` become Python's ``(?P<name>``.
_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")
_TEMPLATE_FIELD = re.compile(r"\{(\w+)\}")


class ItemType(enum.StrEnum):
    """GitHub entity kinds a connection can index."""

    ISSUES = "issues"
    REPOSITORIES = "repos"


class PropertyType(enum.StrEnum):
    """Schema property data types."""

    STRING = "string"
    INT64 = "int64"
    DOUBLE = "double"
    DATE_TIME = "dateTime"
    BOOLEAN = "boolean"
    STRING_COLLECTION = "stringCollection"


class Label(enum.StrEnum):
    """Semantic labels Microsoft Search understands."""

    TITLE = "title"
    URL = "url"
    ICON_URL = "iconUrl"
    CREATED_BY = "createdBy"
    CREATED_DATE_TIME = "createdDateTime"
    LAST_MODIFIED_BY = "lastModifiedBy"
    LAST_MODIFIED_DATE_TIME = "lastModifiedDateTime"
    AUTHORS = "authors"


class OperationStatus(enum.StrEnum):
    """Status values of a connection operation."""

    UNSPECIFIED = "unspecified"
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"
    FAILED = "failed"


class ContentType(enum.StrEnum):
    """Formats accepted for external item content."""

    TEXT = "text"
    HTML = "html"


class ActivityType(enum.StrEnum):
    """Kinds of external activity."""

    CREATED = "created"
    MODIFIED = "modified"
    COMMENTED = "commented"
    VIEWED = "viewed"


class SchemaProperty(
    msgspec.Struct, frozen=True, kw_only=True, rename="camel", omit_defaults=True
):
    """One property of a connection schema."""

    name: str
    type: PropertyType
    is_searchable: bool = False
    is_queryable: bool = False
    is_retrievable: bool = False
    is_refinable: bool = False
    aliases: tuple[str, ...] = ()
    labels: tuple[Label, ...] = ()


class Schema(msgspec.Struct, frozen=True, kw_only=True, rename="camel"):
    """Ordered set of properties registered for a connection."""

    properties: tuple[SchemaProperty, ...]
    base_type: str = "microsoft.graph.externalItem"

    @property
    def property_names(self) -> tuple[str, ...]:
        """Return property names in declaration order."""
        return tuple(prop.name for prop in self.properties)


class UrlMatchInfo(msgspec.Struct, kw_only=True, rename="camel"):
    """Base URLs and regular expression that identify an item URL."""

    base_urls: list[str]
    url_pattern: str


class UrlToItemResolver(msgspec.Struct, kw_only=True, rename="camel"):
    """Maps a URL shared in Microsoft 365 to an external item id."""

    item_id: str
    url_match_info: UrlMatchInfo
    priority: int = 1
    odata_type: str = msgspec.field(name="@odata.type", default=_ITEM_ID_RESOLVER_TYPE)

    def resolve_item_id(self, url: str) -> str | None:
        """Return the item id a URL resolves to, or ``None`` if it does not match.

        Examples
        --------
        >>> resolver = build_url_resolver(ItemType.ISSUES, "acme", "widgets")
        >>> resolver.resolve_item_id("https://github.com/acme/widgets/issues/42")
        '42'

        """
        for base_url in self.url_match_info.base_urls:
            if not url.startswith(base_url):
                continue
            pattern = _NAMED_GROUP.sub("(?P<", self.url_match_info.url_pattern)
            match = re.search(pattern, url[len(base_url) :])
            if match is None:
                continue
            groups = match.groupdict()
            return _TEMPLATE_FIELD.sub(
                lambda field: groups.get(field.group(1)) or "", self.item_id
            )
        return None


class ActivitySettings(msgspec.Struct, kw_only=True, rename="camel"):
    """Connection-level settings for activity and URL resolution."""

    url_to_item_resolvers: list[UrlToItemResolver] = msgspec.field(
        default_factory=list
    )


class ExternalConnection(
    msgspec.Struct, kw_only=True, rename="camel", omit_defaults=True
):
    """An external connection resource."""

    id: str
    name: str
    description: str | None = None
    activity_settings: ActivitySettings | None = None
    connector_id: str | None = None
    state: str | None = None


class OperationError(msgspec.Struct, kw_only=True):
    """Error detail attached to failed operations and error responses."""

    code: str | None = None
    message: str | None = None


class ConnectionOperation(msgspec.Struct, kw_only=True):
    """Server-side handle for an asynchronous connection task."""

    id: str | None = None
    status: str = OperationStatus.UNSPECIFIED
    error: OperationError | None = None


class Identity(msgspec.Struct, kw_only=True):
    """User, group, or system identity on the Microsoft 365 side."""

    id: str
    type: str = "user"


class AclEntry(msgspec.Struct, kw_only=True, rename="camel"):
    """Access control entry for an external item."""

    type: str
    value: str
    access_type: str = "grant"


class ExternalItemContent(msgspec.Struct, kw_only=True):
    """Full-text content indexed alongside item properties."""

    type: ContentType
    value: str


class ExternalItem(msgspec.Struct, kw_only=True, omit_defaults=True):
    """One indexed document within a connection."""

    id: str
    properties: dict[str, typ.Any]
    acl: list[AclEntry] = msgspec.field(default_factory=list)
    content: ExternalItemContent | None = None


class ExternalActivity(msgspec.Struct, kw_only=True, rename="camel"):
    """Timestamped, user-attributed event on an item's activity feed."""

    type: ActivityType
    start_date_time: dt.datetime
    performed_by: Identity
    odata_type: str = msgspec.field(
        name="@odata.type", default=_EXTERNAL_ACTIVITY_TYPE
    )


class ExternalActivityResult(msgspec.Struct, kw_only=True, rename="camel"):
    """Per-activity outcome reported by ``addActivities``."""

    type: str | None = None
    start_date_time: dt.datetime | None = None
    error: OperationError | None = None


class AddActivitiesResult(msgspec.Struct, kw_only=True):
    """Response of the ``addActivities`` action."""

    value: list[ExternalActivityResult] = msgspec.field(default_factory=list)

    @property
    def failed(self) -> list[ExternalActivityResult]:
        """Return the activities the service rejected."""
        return [result for result in self.value if result.error is not None]


def build_url_resolver(item_type: ItemType, owner: str, repo: str) -> UrlToItemResolver:
    """Return the URL resolver for a connection indexing ``item_type``.

    Issue URLs capture the issue number; repository URLs capture the
    repository name.
    """
    if item_type is ItemType.ISSUES:
        pattern = f"/{re.escape(owner)}/{re.escape(repo)}/issues/(?<issueId>[0-9]+)"
        item_id = "{issueId}"
    else:
        pattern = f"/{re.escape(owner)}/(?<repo>[^/?#]+)"
        item_id = "{repo}"
    return UrlToItemResolver(
        item_id=item_id,
        url_match_info=UrlMatchInfo(
            base_urls=["https://github.com"],
            url_pattern=pattern,
        ),
    )
