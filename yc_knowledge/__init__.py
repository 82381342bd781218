"""
YC Knowledge - in-memory keyword retrieval over the YC startup library.

The index is small (hundreds of documents), so everything lives in memory:
- knowledge_base: KnowledgeBase orchestrator (filters -> scoring -> facets, cached)
- search: tokenizer, similarity utilities, scoring strategies, filters, facets
- cache: bounded LRU cache with per-entry TTL
- index_builder / loader: build the index from a catalog, load bodies from disk
- main: FastAPI app exposing search and lookups over HTTP
"""

from .config import KnowledgeBaseConfig
from .errors import (
    ContentLoadError,
    IndexLoadError,
    InvalidQueryError,
    KnowledgeBaseError,
    NotInitializedError,
    ResourceNotFoundError,
)
from .knowledge_base import KnowledgeBase, KnowledgeBaseState
from .models import (
    Category,
    FounderStage,
    KnowledgeIndex,
    Resource,
    ResourceMeta,
    ResourceType,
    SearchFilters,
    SearchQuery,
    SearchResult,
)

__all__ = [
    "KnowledgeBase",
    "KnowledgeBaseState",
    "KnowledgeBaseConfig",
    "KnowledgeBaseError",
    "NotInitializedError",
    "IndexLoadError",
    "ResourceNotFoundError",
    "InvalidQueryError",
    "ContentLoadError",
    "Category",
    "FounderStage",
    "ResourceType",
    "KnowledgeIndex",
    "Resource",
    "ResourceMeta",
    "SearchFilters",
    "SearchQuery",
    "SearchResult",
]
