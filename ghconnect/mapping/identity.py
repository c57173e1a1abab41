"""Resolve GitHub logins to Microsoft 365 identities."""

from __future__ import annotations

import typing as typ

from ghconnect.errors import ConfigurationError
from ghconnect.graph.models import Identity


class IdentityResolver(typ.Protocol):
    """Map a GitHub login to the identity that performed an action."""

    def resolve(self, login: str | None) -> Identity:
        """Return the Microsoft 365 identity for ``login``."""
        ...


class PlaceholderIdentityResolver:
    """Resolve every login to one configured surrogate user.

    A real deployment would look logins up in a mapping table; this resolver
    stands in until one exists.

    Examples
    --------
    >>> PlaceholderIdentityResolver("u-1").resolve("octocat").id
    'u-1'

    """

    def __init__(self, user_id: str) -> None:
        """Store the surrogate user id returned for every login."""
        if not user_id:
            raise ConfigurationError.missing("placeholderUserId")
        self._identity = Identity(id=user_id)

    def resolve(self, login: str | None) -> Identity:
        """Return the placeholder identity regardless of ``login``."""
        del login
        return self._identity
