"""
Data models for the YC knowledge base.

Pydantic models are used for everything that crosses a boundary (JSON index,
search requests, HTTP responses) so unknown stages and types are rejected at
parse time instead of deep inside scoring. Category filters are checked by
the knowledge base against Category plus the topic tags of the loaded index,
before any scoring. Field names are snake_case in Python and camelCase on the
wire (``founderStage``, ``executionTimeMs``), matching the published index
format.

Value objects (resources, queries, results) are frozen: cached entries are
shared between callers and must never be mutated in place.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidQueryError


# ============================================================================
# Closed vocabularies
# ============================================================================

class ResourceType(str, Enum):
    ESSAY = "essay"
    VIDEO = "video"
    PODCAST = "podcast"


class FounderStage(str, Enum):
    PRE_IDEA = "pre-idea"
    IDEA = "idea"
    BUILDING = "building"
    LAUNCHED = "launched"
    SCALING = "scaling"
    ALL = "all"


class Category(str, Enum):
    ACCELERATOR = "accelerator"
    ADMIN = "admin"
    AI = "ai"
    AVOIDING_FAILURE = "avoiding-failure"
    B2B = "b2b"
    BIOTECH = "biotech"
    BUILDING = "building"
    CAREER = "career"
    CASE_STUDY = "case-study"
    CO_FOUNDERS = "co-founders"
    CRYPTO = "crypto"
    CULTURE = "culture"
    CUSTOMERS = "customers"
    DEEP_TECH = "deep-tech"
    DESIGN = "design"
    ENGINEERING = "engineering"
    FINANCE = "finance"
    FOUNDER_INTERVIEW = "founder-interview"
    FUNDRAISING = "fundraising"
    GENERAL = "general"
    GETTING_STARTED = "getting-started"
    GOVERNANCE = "governance"
    GROWTH = "growth"
    HIRING = "hiring"
    LAUNCHING = "launching"
    LEADERSHIP = "leadership"
    METRICS = "metrics"
    MINDSET = "mindset"
    PIVOTING = "pivoting"
    PRICING = "pricing"
    SCALING = "scaling"


class SortField(str, Enum):
    RELEVANCE = "relevance"
    LINES = "lines"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================================
# Documents
# ============================================================================

class ResourceMeta(_Model):
    """Catalog entry (lightweight, indexed in memory)"""

    code: str = Field(..., min_length=1, description="Unique code, e.g. '8z'")
    title: str
    author: str
    type: ResourceType
    url: str = ""
    topics: Tuple[str, ...] = ()
    founder_stage: Tuple[FounderStage, ...] = ()
    lines: int = Field(default=0, ge=0)
    file_path: str = Field(default="", description="Opaque locator for the body text")
    has_transcript: bool = False
    related: Tuple[str, ...] = ()
    summary: Optional[str] = None


class Resource(ResourceMeta):
    """Catalog entry plus its full body"""

    content: str

    @classmethod
    def from_meta(cls, meta: ResourceMeta, content: str) -> "Resource":
        return cls(**meta.model_dump(), content=content)

    def to_meta(self) -> ResourceMeta:
        return ResourceMeta(**self.model_dump(exclude={"content"}))


# ============================================================================
# Search requests
# ============================================================================

class SearchFilters(_Model):
    """Structured filters: OR within a dimension, AND across dimensions"""

    # Category ids, checked against the loaded index by KnowledgeBase: catalog
    # topic tags (facet keys) are valid filters even outside the Category enum
    categories: Optional[Tuple[str, ...]] = None
    stages: Optional[Tuple[FounderStage, ...]] = None
    authors: Optional[Tuple[str, ...]] = None
    types: Optional[Tuple[ResourceType, ...]] = None
    min_lines: Optional[int] = Field(default=None, ge=0)
    max_lines: Optional[int] = Field(default=None, ge=0)

    @field_validator("categories", mode="before")
    @classmethod
    def _normalize_categories(cls, value):
        if not isinstance(value, (list, tuple, set, frozenset)):
            return value
        return tuple(str(getattr(item, "value", item)).strip().lower() for item in value)

    @model_validator(mode="after")
    def _check_line_bounds(self) -> "SearchFilters":
        if (
            self.min_lines is not None
            and self.max_lines is not None
            and self.min_lines > self.max_lines
        ):
            raise ValueError(f"minLines ({self.min_lines}) must not exceed maxLines ({self.max_lines})")
        return self

    def is_empty(self) -> bool:
        return (
            not self.categories
            and not self.stages
            and not self.authors
            and not self.types
            and self.min_lines is None
            and self.max_lines is None
        )


class SearchQuery(_Model):
    """One search request; its JSON form doubles as the result cache key"""

    keywords: Tuple[str, ...] = ()
    raw_query: Optional[str] = None
    filters: SearchFilters = Field(default_factory=SearchFilters)
    exclude: Tuple[str, ...] = ()
    limit: int = Field(default=10, ge=1)
    offset: int = Field(default=0, ge=0)
    sort_by: SortField = SortField.RELEVANCE
    sort_order: Optional[SortOrder] = None

    def cache_key(self) -> str:
        return self.model_dump_json(by_alias=True)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "query"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid search query - " + "; ".join(parts)


def parse_search_query(data: Any) -> SearchQuery:
    """Validate raw request data into a SearchQuery, raising InvalidQueryError"""
    if isinstance(data, SearchQuery):
        return data
    try:
        return SearchQuery.model_validate(data)
    except ValidationError as e:
        raise InvalidQueryError(_format_validation_error(e)) from e


def parse_search_filters(data: Any) -> SearchFilters:
    """Validate raw filter data, raising InvalidQueryError"""
    if isinstance(data, SearchFilters):
        return data
    try:
        return SearchFilters.model_validate(data or {})
    except ValidationError as e:
        raise InvalidQueryError(_format_validation_error(e)) from e


# ============================================================================
# Search results
# ============================================================================

class SearchFacets(_Model):
    categories: Dict[str, int] = Field(default_factory=dict)
    authors: Dict[str, int] = Field(default_factory=dict)
    stages: Dict[str, int] = Field(default_factory=dict)
    types: Dict[str, int] = Field(default_factory=dict)


class SearchResult(_Model):
    resources: Tuple[ResourceMeta, ...]
    total: int = Field(..., description="Matching count before pagination")
    query: SearchQuery
    facets: SearchFacets
    execution_time_ms: int


@dataclass
class FieldMatch:
    """Single (field, keyword) contribution to a document score"""
    field: str
    matched: str
    score: float


@dataclass
class ScoredResource:
    """Resource with its relevance score and explanation"""
    resource: ResourceMeta
    score: float
    matches: List[FieldMatch] = field(default_factory=list)
    breakdown: Dict[str, float] = field(default_factory=dict)


# ============================================================================
# Knowledge index
# ============================================================================

class IndexStats(_Model):
    total_resources: int = 0
    total_categories: int = 0
    total_lines: int = 0
    total_authors: int = 0


class CategoryEntry(_Model):
    count: int = 0
    resources: Tuple[str, ...] = ()


class SearchIndex(_Model):
    by_author: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    by_type: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    by_stage: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    keywords: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)


class KnowledgeIndex(_Model):
    """Whole-corpus structure loaded once per process"""

    version: str = "2.0"
    generated_at: str = ""
    stats: IndexStats = Field(default_factory=IndexStats)
    categories: Dict[str, CategoryEntry] = Field(default_factory=dict)
    resources: Dict[str, ResourceMeta] = Field(default_factory=dict)
    search_index: SearchIndex = Field(default_factory=SearchIndex)

    @model_validator(mode="after")
    def _check_resource_keys(self) -> "KnowledgeIndex":
        for key, resource in self.resources.items():
            if key != resource.code:
                raise ValueError(f"Resource key '{key}' does not match its code '{resource.code}'")
        return self


# ============================================================================
# API payloads
# ============================================================================

class CategoryInfo(_Model):
    id: str
    name: str
    count: int
    description: Optional[str] = None


class CategoryListing(_Model):
    categories: List[CategoryInfo]
    total_resources: int


class ResourceDetail(_Model):
    meta: ResourceMeta
    content: str
    related: List[ResourceMeta]


class CacheStats(_Model):
    resource_cache_size: int
    search_cache_size: int
