"""Static connection schemas for GitHub issues and repositories.

Each schema is an immutable table of properties; :data:`SCHEMAS` is the
registry keyed by :class:`~ghconnect.graph.models.ItemType`.
"""

from __future__ import annotations

import types

from .models import ItemType, Label, PropertyType, Schema, SchemaProperty

ISSUES_SCHEMA = Schema(
    properties=(
        SchemaProperty(
            name="title",
            type=PropertyType.STRING,
            aliases=("issueTitle",),
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
            labels=(Label.TITLE,),
        ),
        SchemaProperty(
            name="body",
            type=PropertyType.STRING,
            aliases=("message",),
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
        ),
        SchemaProperty(
            name="assignees",
            type=PropertyType.STRING,
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
        ),
        SchemaProperty(
            name="labels",
            type=PropertyType.STRING,
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
        ),
        SchemaProperty(
            name="state",
            type=PropertyType.STRING,
            is_queryable=True,
            is_retrievable=True,
            is_refinable=True,
        ),
        SchemaProperty(
            name="issueUrl",
            type=PropertyType.STRING,
            is_retrievable=True,
            labels=(Label.URL,),
        ),
        SchemaProperty(
            name="icon",
            type=PropertyType.STRING,
            is_retrievable=True,
            labels=(Label.ICON_URL,),
        ),
        SchemaProperty(
            name="updatedAt",
            type=PropertyType.DATE_TIME,
            is_queryable=True,
            is_retrievable=True,
            is_refinable=True,
            labels=(Label.LAST_MODIFIED_DATE_TIME,),
        ),
        SchemaProperty(
            name="lastModifiedBy",
            type=PropertyType.STRING,
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
            labels=(Label.LAST_MODIFIED_BY,),
        ),
    )
)

REPOSITORIES_SCHEMA = Schema(
    properties=(
        SchemaProperty(
            name="title",
            type=PropertyType.STRING,
            aliases=("repoName",),
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
            labels=(Label.TITLE,),
        ),
        SchemaProperty(
            name="description",
            type=PropertyType.STRING,
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
        ),
        SchemaProperty(
            name="visibility",
            type=PropertyType.STRING,
            is_queryable=True,
            is_retrievable=True,
            is_refinable=True,
        ),
        SchemaProperty(
            name="createdBy",
            type=PropertyType.STRING,
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
            labels=(Label.CREATED_BY,),
        ),
        SchemaProperty(
            name="updatedAt",
            type=PropertyType.DATE_TIME,
            is_queryable=True,
            is_retrievable=True,
            is_refinable=True,
            labels=(Label.LAST_MODIFIED_DATE_TIME,),
        ),
        SchemaProperty(
            name="lastModifiedBy",
            type=PropertyType.STRING,
            is_searchable=True,
            is_queryable=True,
            is_retrievable=True,
            labels=(Label.LAST_MODIFIED_BY,),
        ),
        SchemaProperty(
            name="repoUrl",
            type=PropertyType.STRING,
            is_searchable=True,
            is_retrievable=True,
            labels=(Label.URL,),
        ),
        SchemaProperty(
            name="userUrl",
            type=PropertyType.STRING,
            is_searchable=True,
            is_retrievable=True,
        ),
        SchemaProperty(
            name="icon",
            type=PropertyType.STRING,
            is_retrievable=True,
            labels=(Label.ICON_URL,),
        ),
    )
)

SCHEMAS: types.MappingProxyType[ItemType, Schema] = types.MappingProxyType({
    ItemType.ISSUES: ISSUES_SCHEMA,
    ItemType.REPOSITORIES: REPOSITORIES_SCHEMA,
})


def schema_for(item_type: ItemType) -> Schema:
    """Return the schema registered for ``item_type``."""
    return SCHEMAS[item_type]
