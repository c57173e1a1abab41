"""Ingestion pipeline pushing GitHub entities into an external connection."""

from __future__ import annotations

from .content import ContentFetcher
from .observability import (
    ErrorCategory,
    IngestionEventLogger,
    IngestionEventType,
    IngestionRunContext,
    categorize_error,
)
from .pipeline import (
    EntityFailure,
    FailureStage,
    IngestionConfig,
    IngestionPipeline,
    IngestionResult,
)

__all__ = [
    "ContentFetcher",
    "EntityFailure",
    "ErrorCategory",
    "FailureStage",
    "IngestionConfig",
    "IngestionEventLogger",
    "IngestionEventType",
    "IngestionPipeline",
    "IngestionResult",
    "IngestionRunContext",
    "categorize_error",
]
