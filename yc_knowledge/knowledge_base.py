"""
Knowledge base core: fast in-memory search with two LRU caches.

Search pipeline (KnowledgeBase.search):
1. Validate query (typed InvalidQueryError before any scoring)
2. Search-result cache lookup (key = serialized query)
3. Level 1: metadata filters (category, stage, author, type, line bounds)
4. Level 2: keyword scoring with the configured strategy; documents scoring 0
   are dropped when keywords are given
5. Sort (relevance desc by default, stable), count total, paginate
6. Facets over the full matched set (not the page), timing, cache store

Lifecycle:
    UNINITIALIZED -> INITIALIZING -> READY
                                  \\-> FAILED (create a new instance to retry)

initialize() loads the whole index exactly once; concurrent callers share a
single in-flight load, and cancelling one waiting caller leaves the load
running for the others. Every other public operation requires READY.

The instance is meant to be created once at startup and passed to whatever
needs it (see main.py); there is no module-level singleton.
"""

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from .cache import LRUCache
from .config import KnowledgeBaseConfig
from .errors import (
    ContentLoadError,
    IndexLoadError,
    InvalidQueryError,
    KnowledgeBaseError,
    NotInitializedError,
    ResourceNotFoundError,
)
from .index_builder import build_index, normalize_category
from .models import (
    CacheStats,
    Category,
    CategoryInfo,
    CategoryListing,
    IndexStats,
    KnowledgeIndex,
    Resource,
    ResourceDetail,
    ResourceMeta,
    ScoredResource,
    SearchFilters,
    SearchQuery,
    SearchResult,
    SortField,
    SortOrder,
    parse_search_filters,
    parse_search_query,
)
from .search import (
    ScoringStrategy,
    apply_exclusions,
    apply_filters,
    calculate_facets,
    create_scorer,
    extract_keywords,
    generate_suggestions,
    get_top_authors,
    parse_query,
)

logger = logging.getLogger(__name__)

_CATEGORY_IDS = frozenset(category.value for category in Category)

IndexLoader = Callable[[], Union[KnowledgeIndex, Iterable[ResourceMeta], Awaitable[Any]]]
ContentLoader = Callable[[str], Union[str, Awaitable[str]]]


class KnowledgeBaseState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


async def _resolve(value):
    if inspect.isawaitable(value):
        return await value
    return value


def category_display_name(category_id: str) -> str:
    """'avoiding-failure' -> 'Avoiding failure'"""
    if not category_id:
        return category_id
    return category_id[0].upper() + category_id[1:].replace("-", " ")


class KnowledgeBase:
    """In-memory knowledge retrieval engine over a fixed catalog"""

    def __init__(
        self,
        index_loader: IndexLoader,
        content_loader: Optional[ContentLoader] = None,
        config: Optional[KnowledgeBaseConfig] = None,
        scorer: Optional[ScoringStrategy] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Create an uninitialized knowledge base.

        Args:
            index_loader: Returns (or resolves to) a KnowledgeIndex, or a flat
                list of ResourceMeta from which the index is built
            content_loader: Resolves a resource's file_path to its body text
                (sync or async); failures degrade to placeholder content
            config: Cache sizes, TTL and limits (defaults: KnowledgeBaseConfig())
            scorer: Scoring strategy (default: built from config.scoring_strategy)
            clock: Optional clock for the caches (testing)
        """
        self.config = config or KnowledgeBaseConfig()
        self.scorer = scorer or create_scorer(self.config.scoring_strategy)

        self._index_loader = index_loader
        self._content_loader = content_loader

        self._resource_cache: LRUCache[Resource] = LRUCache(
            self.config.cache_size, self.config.cache_ttl, clock=clock, name="resources"
        )
        self._search_cache: LRUCache[SearchResult] = LRUCache(
            self.config.cache_size, self.config.cache_ttl, clock=clock, name="search"
        )

        self._index: Optional[KnowledgeIndex] = None
        self._resources: List[ResourceMeta] = []
        self._state = KnowledgeBaseState.UNINITIALIZED
        self._init_task: Optional[asyncio.Future] = None

    @classmethod
    def from_config(cls, config: Optional[KnowledgeBaseConfig] = None) -> "KnowledgeBase":
        """Knowledge base wired to the file-system loaders named in config."""
        from .loader import FileContentLoader, create_index_loader

        config = config or KnowledgeBaseConfig.from_env()
        return cls(
            index_loader=create_index_loader(config.index_path, config.content_path),
            content_loader=FileContentLoader(config.content_path),
            config=config,
        )

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------

    @property
    def state(self) -> KnowledgeBaseState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is KnowledgeBaseState.READY

    async def initialize(self) -> None:
        """
        Load the knowledge index (idempotent).

        Raises:
            IndexLoadError: Loading failed now or in an earlier attempt
        """
        if self._state is KnowledgeBaseState.READY:
            return
        if self._state is KnowledgeBaseState.FAILED:
            raise IndexLoadError("Knowledge base initialization failed earlier; create a new instance to retry")

        if self._init_task is None:
            self._state = KnowledgeBaseState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._load_index())

        # A cancelled caller must not cancel the load the other callers share
        await asyncio.shield(self._init_task)

    async def _load_index(self) -> None:
        logger.info("Loading knowledge index...")
        started = time.perf_counter()
        try:
            loaded = await _resolve(self._index_loader())
            index = self._coerce_index(loaded)
        except asyncio.CancelledError:
            # The load itself was cancelled (e.g. loop shutdown): allow a retry
            self._state = KnowledgeBaseState.UNINITIALIZED
            self._init_task = None
            logger.warning("Knowledge index load cancelled")
            raise
        except Exception as e:
            self._state = KnowledgeBaseState.FAILED
            logger.error(f"Failed to load knowledge index: {e}")
            if isinstance(e, KnowledgeBaseError):
                raise
            raise IndexLoadError(f"Failed to load knowledge index: {e}") from e

        self._index = index
        self._resources = list(index.resources.values())
        self._state = KnowledgeBaseState.READY

        dangling = {
            code
            for resource in self._resources
            for code in resource.related
            if code not in index.resources
        }
        if dangling:
            logger.debug(f"Related codes without a resource: {sorted(dangling)}")

        logger.info(
            f"Knowledge index ready: {len(self._resources)} resources, "
            f"{len(index.categories)} categories ({(time.perf_counter() - started) * 1000:.1f}ms)"
        )

    @staticmethod
    def _coerce_index(loaded: Any) -> KnowledgeIndex:
        if isinstance(loaded, KnowledgeIndex):
            return loaded
        if loaded is None:
            raise IndexLoadError("Index loader returned nothing")
        if isinstance(loaded, dict):
            return KnowledgeIndex.model_validate(loaded)
        return build_index(loaded)

    def _ensure_ready(self) -> KnowledgeIndex:
        if self._state is not KnowledgeBaseState.READY or self._index is None:
            raise NotInitializedError()
        return self._index

    # ------------------------------------------------------------------------
    # Direct lookups
    # ------------------------------------------------------------------------

    def get_all_resources(self) -> List[ResourceMeta]:
        self._ensure_ready()
        return list(self._resources)

    def get_resource_meta(self, code: str) -> Optional[ResourceMeta]:
        return self._ensure_ready().resources.get(code)

    def get_resources_by_codes(self, codes: Iterable[str]) -> List[ResourceMeta]:
        """Resolve codes in the given order, skipping unknown codes."""
        resources = self._ensure_ready().resources
        return [resources[code] for code in codes if code in resources]

    def get_resources_by_category(self, category: Union[str, Enum]) -> List[ResourceMeta]:
        entry = self._ensure_ready().categories.get(getattr(category, "value", category))
        if entry is None:
            return []
        return self.get_resources_by_codes(entry.resources)

    def get_resources_by_author(self, author: str) -> List[ResourceMeta]:
        codes = self._ensure_ready().search_index.by_author.get(author, ())
        return self.get_resources_by_codes(codes)

    def get_resources_by_type(self, resource_type: Union[str, Enum]) -> List[ResourceMeta]:
        key = getattr(resource_type, "value", resource_type)
        codes = self._ensure_ready().search_index.by_type.get(key, ())
        return self.get_resources_by_codes(codes)

    def get_resources_by_stage(self, stage: Union[str, Enum]) -> List[ResourceMeta]:
        key = getattr(stage, "value", stage)
        codes = self._ensure_ready().search_index.by_stage.get(key, ())
        return self.get_resources_by_codes(codes)

    # ------------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------------

    async def load_resource(self, code: str) -> Resource:
        """
        Load a resource with its full body.

        Bodies are cached. If the content loader fails, a placeholder built
        from the metadata is returned instead (and not cached).

        Raises:
            ResourceNotFoundError: Unknown code
        """
        index = self._ensure_ready()

        cached = self._resource_cache.get(code)
        if cached is not None:
            return cached

        meta = index.resources.get(code)
        if meta is None:
            raise ResourceNotFoundError(code)

        try:
            if self._content_loader is None:
                raise ContentLoadError(meta.file_path, "no content loader configured")
            content = await _resolve(self._content_loader(meta.file_path))
            if not content:
                raise ContentLoadError(meta.file_path, "empty content")
        except Exception as e:
            logger.warning(f"Failed to load resource {code}, using fallback: {e}")
            return Resource.from_meta(meta, self._fallback_content(meta))

        resource = Resource.from_meta(meta, content)
        self._resource_cache.set(code, resource)
        logger.debug(f"Loaded resource {code}: {len(content)} chars")
        return resource

    @staticmethod
    def _fallback_content(meta: ResourceMeta) -> str:
        lines = [
            f"# {meta.title}",
            "",
            f"**Author:** {meta.author}",
            f"**Type:** {meta.type.value}",
        ]
        if meta.url:
            lines.append(f"**URL:** {meta.url}")
        lines += ["", "*(Full content not available in this environment)*"]
        if meta.summary:
            lines += ["", meta.summary]
        if meta.topics:
            lines += ["", f"**Topics:** {', '.join(meta.topics)}"]
        return "\n".join(lines)

    async def get_resource_detail(self, code: str) -> ResourceDetail:
        """Resource metadata, body and resolved related resources."""
        resource = await self.load_resource(code)
        return ResourceDetail(
            meta=resource.to_meta(),
            content=resource.content,
            related=self.get_resources_by_codes(resource.related),
        )

    # ------------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------------

    def _validate_query(self, query: SearchQuery) -> None:
        if query.limit > self.config.max_results:
            raise InvalidQueryError(
                f"limit must be between 1 and {self.config.max_results}, got {query.limit}"
            )

        unknown = [
            category for category in query.filters.categories or ()
            if category not in self._index.categories and category not in _CATEGORY_IDS
        ]
        if unknown:
            raise InvalidQueryError(f"Unknown categories: {', '.join(unknown)}")

    def search(self, query: Union[SearchQuery, Dict[str, Any]]) -> SearchResult:
        """
        Run a search.

        Args:
            query: SearchQuery, or a mapping in the request shape
                {"keywords": [...], "filters": {...}, "limit": 10, "offset": 0}

        Raises:
            NotInitializedError: initialize() has not completed
            InvalidQueryError: Malformed or out-of-range query
        """
        self._ensure_ready()
        query = parse_search_query(query)
        self._validate_query(query)

        started = time.perf_counter()
        cache_key = query.cache_key()

        cached = self._search_cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Search cache hit: {cache_key:.120}")
            return cached

        # Level 1: metadata filters
        candidates: List[ResourceMeta] = self._resources
        if not query.filters.is_empty():
            candidates = apply_filters(candidates, query.filters)
        if query.exclude:
            candidates = apply_exclusions(candidates, query.exclude)

        # Level 2: keyword scoring
        keywords = [k for k in query.keywords if k.strip()]
        if keywords:
            scored = [
                scored
                for scored in (self.scorer.score(r, keywords, query.raw_query) for r in candidates)
                if scored.score > 0
            ]
        else:
            scored = [ScoredResource(resource=r, score=0) for r in candidates]

        scored = self._sort(scored, query)

        total = len(scored)
        page = scored[query.offset:query.offset + query.limit]

        result = SearchResult(
            resources=[s.resource for s in page],
            total=total,
            query=query,
            facets=calculate_facets(s.resource for s in scored),
            execution_time_ms=round((time.perf_counter() - started) * 1000),
        )

        self._search_cache.set(cache_key, result)
        logger.debug(
            f"Search: keywords={keywords} filtered={len(candidates)} matched={total} "
            f"returned={len(page)} ({result.execution_time_ms}ms)"
        )
        return result

    @staticmethod
    def _sort(scored: List[ScoredResource], query: SearchQuery) -> List[ScoredResource]:
        # sorted() is stable, so ties keep corpus order
        if query.sort_by is SortField.TITLE:
            key = lambda s: s.resource.title.lower()
            default_order = SortOrder.ASC
        elif query.sort_by is SortField.LINES:
            key = lambda s: s.resource.lines
            default_order = SortOrder.ASC
        else:
            key = lambda s: s.score
            default_order = SortOrder.DESC

        order = query.sort_order or default_order
        return sorted(scored, key=key, reverse=order is SortOrder.DESC)

    def quick_search(
        self,
        text: str,
        filters: Optional[Union[SearchFilters, Dict[str, Any]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> SearchResult:
        """
        Search with a free-text query.

        Understands the query syntax of parse_query: quoted phrases,
        author:/category:/type:/stage: filters and -term exclusions.

        Raises:
            InvalidQueryError: Empty text or invalid filter values
        """
        self._ensure_ready()
        if not text or not text.strip():
            raise InvalidQueryError("Query text must not be empty")

        parsed = parse_query(text)
        keywords = list(dict.fromkeys(extract_keywords(" ".join(parsed.keywords)) + parsed.phrases))

        merged = parse_search_filters(filters).model_dump(exclude_none=True)
        if "author" in parsed.filters:
            merged["authors"] = list(merged.get("authors", ())) + self._resolve_authors(parsed.filters["author"])
        if "category" in parsed.filters:
            merged["categories"] = list(merged.get("categories", ())) + [normalize_category(parsed.filters["category"])]
        for syntax_key, filter_key in (("type", "types"), ("stage", "stages")):
            if syntax_key in parsed.filters:
                merged[filter_key] = list(merged.get(filter_key, ())) + [parsed.filters[syntax_key].lower()]

        return self.search({
            "keywords": keywords,
            "raw_query": text,
            "filters": parse_search_filters(merged),
            "exclude": parsed.excluded,
            "limit": self.config.default_limit if limit is None else limit,
            "offset": offset,
        })

    def _resolve_authors(self, value: str) -> List[str]:
        """Map an author:<value> token to full author names ('graham' -> 'Paul Graham')."""
        needle = value.replace("-", " ").replace("_", " ").lower()
        matches = [
            author for author in self._ensure_ready().search_index.by_author
            if needle in author.lower()
        ]
        return matches or [value]

    def suggest(self, partial_query: str, max_suggestions: int = 5) -> List[str]:
        self._ensure_ready()
        return generate_suggestions(partial_query, self._resources, max_suggestions)

    # ------------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------------

    def get_categories(self) -> List[CategoryInfo]:
        index = self._ensure_ready()
        return [
            CategoryInfo(id=category_id, name=category_display_name(category_id), count=entry.count)
            for category_id, entry in index.categories.items()
        ]

    def get_category_listing(self) -> CategoryListing:
        return CategoryListing(
            categories=self.get_categories(),
            total_resources=self._ensure_ready().stats.total_resources,
        )

    def get_stats(self) -> IndexStats:
        return self._ensure_ready().stats

    def get_top_authors(self, limit: int = 10) -> List[dict]:
        self._ensure_ready()
        return get_top_authors(self._resources, limit)

    # ------------------------------------------------------------------------
    # Caches
    # ------------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Empty both caches; the loaded index is untouched."""
        self._resource_cache.clear()
        self._search_cache.clear()
        logger.info("Knowledge base caches cleared")

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(
            resource_cache_size=self._resource_cache.size(),
            search_cache_size=self._search_cache.size(),
        )
