"""Pure mapping from GitHub entities to Graph external items."""

from __future__ import annotations

from .identity import IdentityResolver, PlaceholderIdentityResolver
from .mapper import (
    COMMENT_EVENT_KINDS,
    GITHUB_ICON_URL,
    MODIFYING_EVENT_KINDS,
    EntityMapper,
)

__all__ = [
    "COMMENT_EVENT_KINDS",
    "GITHUB_ICON_URL",
    "MODIFYING_EVENT_KINDS",
    "EntityMapper",
    "IdentityResolver",
    "PlaceholderIdentityResolver",
]
