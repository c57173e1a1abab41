"""GitHub REST client and models for the connector's source side."""

from __future__ import annotations

from .client import GitHubRestClient, GitHubRestConfig, GitHubSourceClient
from .models import (
    GitHubIssue,
    GitHubLabel,
    GitHubRepository,
    GitHubUser,
    TimelineEvent,
)

__all__ = [
    "GitHubIssue",
    "GitHubLabel",
    "GitHubRepository",
    "GitHubRestClient",
    "GitHubRestConfig",
    "GitHubSourceClient",
    "GitHubUser",
    "TimelineEvent",
]
