"""
Unit tests for the KnowledgeBase orchestrator.

Tests verify:
- Lifecycle: not-initialized errors, idempotent and coalesced initialize, failure state
- Search pipeline: filters -> scoring -> sort -> pagination, facets over the full match set
- Query validation before any scoring
- Result and resource caching (TTL via fake clock)
- Lazy content loading with placeholder fallback
- Direct lookups and summary accessors
"""

import asyncio

import pytest
from yc_knowledge.config import KnowledgeBaseConfig
from yc_knowledge.errors import (
    IndexLoadError,
    InvalidQueryError,
    NotInitializedError,
    ResourceNotFoundError,
)
from yc_knowledge.knowledge_base import KnowledgeBase, KnowledgeBaseState, category_display_name
from yc_knowledge.models import Category, FounderStage, ResourceType, SearchQuery
from yc_knowledge.search import DiscoveryScorer


def codes(resources):
    return [r.code for r in resources]


class TestLifecycle:

    def test_starts_uninitialized(self, make_kb):
        kb = make_kb()
        assert kb.state is KnowledgeBaseState.UNINITIALIZED
        assert kb.is_ready is False

    @pytest.mark.parametrize("operation", [
        lambda kb: kb.search({"keywords": ["startup"]}),
        lambda kb: kb.quick_search("startup"),
        lambda kb: kb.get_all_resources(),
        lambda kb: kb.get_resources_by_category("idea"),
        lambda kb: kb.get_categories(),
        lambda kb: kb.get_stats(),
    ])
    def test_operations_require_initialize(self, make_kb, operation):
        with pytest.raises(NotInitializedError):
            operation(make_kb())

    @pytest.mark.asyncio
    async def test_load_resource_requires_initialize(self, make_kb):
        with pytest.raises(NotInitializedError):
            await make_kb().load_resource("8z")

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, make_kb, index):
        calls = []

        def loader():
            calls.append(1)
            return index

        kb = make_kb(index_loader=loader)
        await kb.initialize()
        await kb.initialize()

        assert kb.state is KnowledgeBaseState.READY
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_initialize_loads_once(self, make_kb, index):
        """Callers arriving during a load share the in-flight load"""
        calls = []

        async def slow_loader():
            calls.append(1)
            await asyncio.sleep(0.01)
            return index

        kb = make_kb(index_loader=slow_loader)
        await asyncio.gather(kb.initialize(), kb.initialize(), kb.initialize())

        assert len(calls) == 1
        assert kb.is_ready

    @pytest.mark.asyncio
    async def test_state_is_initializing_during_load(self, make_kb, index):
        started = asyncio.Event()
        release = asyncio.Event()

        async def gated_loader():
            started.set()
            await release.wait()
            return index

        kb = make_kb(index_loader=gated_loader)
        task = asyncio.ensure_future(kb.initialize())
        await started.wait()

        assert kb.state is KnowledgeBaseState.INITIALIZING
        with pytest.raises(NotInitializedError):
            kb.get_all_resources()

        release.set()
        await task
        assert kb.state is KnowledgeBaseState.READY

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_shared_load(self, make_kb, index):
        started = asyncio.Event()
        release = asyncio.Event()

        async def gated_loader():
            started.set()
            await release.wait()
            return index

        kb = make_kb(index_loader=gated_loader)
        first = asyncio.ensure_future(kb.initialize())
        second = asyncio.ensure_future(kb.initialize())
        await started.wait()

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        assert kb.state is KnowledgeBaseState.INITIALIZING

        release.set()
        await second
        assert kb.is_ready

    @pytest.mark.asyncio
    async def test_cancelled_load_can_be_retried(self, make_kb, index):
        started = asyncio.Event()
        calls = []

        async def loader():
            calls.append(1)
            if len(calls) == 1:
                started.set()
                await asyncio.Event().wait()
            return index

        kb = make_kb(index_loader=loader)
        caller = asyncio.ensure_future(kb.initialize())
        await started.wait()

        kb._init_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        assert kb.state is KnowledgeBaseState.UNINITIALIZED

        await kb.initialize()
        assert kb.is_ready
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_failed_load(self, make_kb):
        calls = []

        def broken_loader():
            calls.append(1)
            raise OSError("disk on fire")

        kb = make_kb(index_loader=broken_loader)
        with pytest.raises(IndexLoadError, match="disk on fire"):
            await kb.initialize()

        assert kb.state is KnowledgeBaseState.FAILED
        with pytest.raises(IndexLoadError):
            await kb.initialize()
        assert len(calls) == 1

        with pytest.raises(NotInitializedError):
            kb.search({"keywords": ["startup"]})

    @pytest.mark.asyncio
    async def test_loader_returning_nothing(self, make_kb):
        kb = make_kb(index_loader=lambda: None)
        with pytest.raises(IndexLoadError):
            await kb.initialize()

    @pytest.mark.asyncio
    async def test_flat_resource_list_is_indexed(self, make_kb, corpus):
        kb = make_kb(index_loader=lambda: corpus)
        await kb.initialize()

        assert codes(kb.get_all_resources()) == codes(corpus)
        assert codes(kb.get_resources_by_category("idea")) == ["8z", "8g", "DU"]

    @pytest.mark.asyncio
    async def test_duplicate_codes_fail_initialize(self, make_kb, corpus):
        kb = make_kb(index_loader=lambda: corpus + [corpus[0]])
        with pytest.raises(IndexLoadError, match="Duplicate"):
            await kb.initialize()
        assert kb.state is KnowledgeBaseState.FAILED


class TestSearch:

    def test_startup_ideas_scenario(self, kb):
        result = kb.search({"keywords": ["startup", "ideas"], "limit": 3})

        assert result.total == 4
        assert codes(result.resources) == ["8z", "8g", "DU"]
        assert result.facets.categories["idea"] == 3
        assert "91" not in codes(result.resources)

    def test_facets_cover_full_match_set(self, kb):
        """Facets describe every match, not just the returned page"""
        result = kb.search({"keywords": ["startup", "ideas"], "limit": 1})

        assert len(result.resources) == 1
        assert result.total == 4
        assert result.facets.categories == {"idea": 3, "founders": 1, "mindset": 1}
        assert sum(result.facets.authors.values()) == result.total

    def test_no_keywords_returns_everything_in_corpus_order(self, kb, corpus):
        result = kb.search({"limit": 50})
        assert result.total == len(corpus)
        assert codes(result.resources) == codes(corpus)

    def test_no_match(self, kb):
        result = kb.search({"keywords": ["kubernetes"]})
        assert result.total == 0
        assert result.resources == ()
        assert result.facets.categories == {}

    def test_blank_keywords_ignored(self, kb, corpus):
        assert kb.search({"keywords": ["  ", ""]}).total == len(corpus)

    def test_pagination_is_consistent(self, kb):
        full = kb.search({"keywords": ["ideas"], "limit": 10})
        pages = [
            kb.search({"keywords": ["ideas"], "limit": 2, "offset": offset})
            for offset in (0, 2, 4)
        ]

        assert all(page.total == full.total for page in pages)
        assert sum((codes(page.resources) for page in pages), []) == codes(full.resources)

    @pytest.mark.asyncio
    async def test_unfiltered_second_page(self, make_kb, corpus):
        """No keywords, limit 2, offset 2 over four documents: items 3 and 4"""
        kb = make_kb(index_loader=lambda: corpus[:4])
        await kb.initialize()

        result = kb.search({"keywords": [], "limit": 2, "offset": 2})
        assert result.total == 4
        assert codes(result.resources) == ["DU", "91"]

    def test_offset_past_end(self, kb):
        result = kb.search({"keywords": ["ideas"], "offset": 100})
        assert result.resources == ()
        assert result.total == 4

    def test_filters_applied_before_scoring(self, kb):
        result = kb.search({"keywords": ["ideas"], "filters": {"authors": ["Paul Graham"]}})
        assert codes(result.resources) == ["8z", "91"]
        assert result.facets.authors == {"Paul Graham": 2}

    def test_adding_filters_never_grows_total(self, kb):
        query = {"keywords": ["ideas"]}
        narrower = {"keywords": ["ideas"], "filters": {"stages": ["pre-idea"]}}
        narrowest = {"keywords": ["ideas"], "filters": {"stages": ["pre-idea"], "types": ["podcast"]}}

        totals = [kb.search(q).total for q in (query, narrower, narrowest)]
        assert totals == sorted(totals, reverse=True)
        assert totals == [4, 2, 1]

    def test_exclusions(self, kb):
        result = kb.search({"keywords": ["ideas"], "exclude": ["graham"]})
        assert codes(result.resources) == ["8g", "DU"]

    def test_exclusion_matches_whole_words(self, kb, corpus):
        result = kb.search({"exclude": ["ai"], "limit": 50})
        assert codes(result.resources) == codes(corpus)

    def test_every_facet_category_is_a_valid_filter(self, kb):
        facets = kb.search({"keywords": ["startup", "ideas"]}).facets.categories
        assert "founders" in facets

        for category, count in facets.items():
            result = kb.search({"keywords": ["startup", "ideas"], "filters": {"categories": [category]}})
            assert result.total == count

    def test_listed_categories_are_valid_filters(self, kb):
        for info in kb.get_categories():
            assert kb.search({"filters": {"categories": [info.id]}}).total == info.count

    def test_sort_by_title(self, kb):
        result = kb.search({"sortBy": "title", "limit": 10})
        # equal titles (case-insensitive) keep corpus order
        assert codes(result.resources) == ["DS", "8z", "8g", "JW", "DU", "91"]

    def test_sort_by_lines_descending(self, kb):
        result = kb.search({"sortBy": "lines", "sortOrder": "desc", "limit": 10})
        assert codes(result.resources) == ["DU", "8z", "DS", "JW", "8g", "91"]

    def test_relevance_ascending(self, kb):
        result = kb.search({"keywords": ["startup", "ideas"], "sortOrder": "asc"})
        assert codes(result.resources) == ["91", "8z", "8g", "DU"]

    def test_accepts_search_query_model(self, kb):
        result = kb.search(SearchQuery(keywords=["seed"]))
        assert codes(result.resources) == ["JW"]
        assert result.query.keywords == ("seed",)

    def test_execution_time_reported(self, kb):
        result = kb.search({"keywords": ["startup"]})
        assert isinstance(result.execution_time_ms, int)
        assert result.execution_time_ms >= 0

    def test_alternative_strategy(self, make_kb):
        kb = make_kb(config=KnowledgeBaseConfig(scoring_strategy="discovery"))
        assert isinstance(kb.scorer, DiscoveryScorer)

    @pytest.mark.asyncio
    async def test_injected_scorer(self, make_kb):
        kb = make_kb(scorer=DiscoveryScorer())
        await kb.initialize()

        result = kb.search({"keywords": ["graham"]})
        assert codes(result.resources) == ["91", "8z", "DS"]  # shortest document boosted most


class TestQueryValidation:
    """Invalid queries are rejected with a typed error"""

    @pytest.mark.parametrize("query", [
        {"keywords": ["startup"], "limit": 51},
        {"keywords": ["startup"], "limit": 0},
        {"keywords": ["startup"], "offset": -1},
        {"filters": {"categories": ["astrology"]}},
        {"filters": {"stages": ["retired"]}},
        {"filters": {"types": ["blogpost"]}},
        {"filters": {"minLines": 500, "maxLines": 100}},
        {"sortBy": "date"},
    ])
    def test_rejected(self, kb, query):
        with pytest.raises(InvalidQueryError):
            kb.search(query)

    @pytest.mark.asyncio
    async def test_limit_bound_follows_config(self, make_kb):
        kb = make_kb(config=KnowledgeBaseConfig(max_results=5, default_limit=5))
        await kb.initialize()

        assert len(kb.search({"limit": 5}).resources) == 5
        with pytest.raises(InvalidQueryError, match="between 1 and 5"):
            kb.search({"limit": 6})

    def test_error_carries_http_status(self, kb):
        with pytest.raises(InvalidQueryError) as exc_info:
            kb.search({"limit": 1000})
        assert exc_info.value.status_code == 400
        assert exc_info.value.to_dict()["error"] == "INVALID_QUERY"


class TestSearchCache:

    def test_repeated_query_served_from_cache(self, kb):
        first = kb.search({"keywords": ["startup", "ideas"], "limit": 3})
        second = kb.search({"keywords": ["startup", "ideas"], "limit": 3})

        assert second is first
        assert kb.get_cache_stats().search_cache_size == 1

    def test_equal_queries_share_entry(self, kb):
        """camelCase and snake_case spellings produce the same cache key"""
        kb.search({"keywords": ["seed"], "filters": {"minLines": 10}})
        kb.search(SearchQuery(keywords=["seed"], filters={"min_lines": 10}))
        assert kb.get_cache_stats().search_cache_size == 1

    @pytest.mark.asyncio
    async def test_cached_result_expires(self, make_kb, clock):
        kb = make_kb(config=KnowledgeBaseConfig(cache_ttl=60), clock=clock)
        await kb.initialize()

        first = kb.search({"keywords": ["seed"]})
        clock.advance(30)
        assert kb.search({"keywords": ["seed"]}) is first

        clock.advance(30)
        refreshed = kb.search({"keywords": ["seed"]})
        assert refreshed is not first
        assert codes(refreshed.resources) == codes(first.resources)

    def test_clear_cache(self, kb):
        kb.search({"keywords": ["seed"]})
        kb.clear_cache()

        stats = kb.get_cache_stats()
        assert (stats.resource_cache_size, stats.search_cache_size) == (0, 0)
        assert kb.search({"keywords": ["seed"]}).total == 1


class TestQuickSearch:

    def test_free_text(self, kb):
        result = kb.quick_search("How to get startup ideas?")
        assert result.total == 4
        assert codes(result.resources)[:3] == ["8z", "8g", "DU"]
        assert result.query.raw_query == "How to get startup ideas?"

    def test_author_syntax_resolves_full_name(self, kb):
        result = kb.quick_search("ideas author:graham")
        assert codes(result.resources) == ["8z", "91"]
        assert result.query.filters.authors == ("Paul Graham",)

    def test_category_syntax(self, kb):
        assert codes(kb.quick_search("ideas category:mindset").resources) == ["91"]

    def test_type_and_stage_syntax(self, kb):
        assert codes(kb.quick_search("startup type:video").resources) == ["8g"]
        assert codes(kb.quick_search("ideas stage:building").resources) == ["91"]

    def test_exclusion_syntax(self, kb):
        assert codes(kb.quick_search("ideas -graham").resources) == ["8g", "DU"]

    def test_phrase(self, kb):
        assert codes(kb.quick_search('"seed round"').resources) == ["JW"]

    def test_explicit_filters_combined(self, kb):
        result = kb.quick_search("ideas", filters={"types": ["video", "podcast"]})
        assert codes(result.resources) == ["8g", "DU"]

    @pytest.mark.asyncio
    async def test_default_limit_from_config(self, make_kb):
        kb = make_kb(config=KnowledgeBaseConfig(default_limit=2))
        await kb.initialize()

        result = kb.quick_search("ideas")
        assert len(result.resources) == 2
        assert result.total == 4

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_text_rejected(self, kb, text):
        with pytest.raises(InvalidQueryError):
            kb.quick_search(text)

    def test_unknown_category_rejected(self, kb):
        with pytest.raises(InvalidQueryError):
            kb.quick_search("ideas category:astrology")

    def test_topic_tag_category_syntax(self, kb):
        result = kb.quick_search("startup category:Founders")
        assert codes(result.resources) == ["DU"]

    def test_suggest(self, kb):
        assert kb.suggest("seed") == ["How to Raise a Seed Round"]


class TestLoadResource:

    @pytest.mark.asyncio
    async def test_loads_and_caches_content(self, kb):
        resource = await kb.load_resource("8z")

        assert resource.code == "8z"
        assert resource.content.startswith("# How to Get Startup Ideas")
        assert await kb.load_resource("8z") is resource
        assert kb.get_cache_stats().resource_cache_size == 1

    @pytest.mark.asyncio
    async def test_fallback_when_content_missing(self, kb):
        """Loader failure degrades to a placeholder built from metadata"""
        resource = await kb.load_resource("DU")

        assert resource.code == "DU"
        assert "Where do great startup ideas come from?" in resource.content
        assert "Dalton Caldwell" in resource.content
        assert "Full content not available" in resource.content
        assert kb.get_cache_stats().resource_cache_size == 0

    @pytest.mark.asyncio
    async def test_fallback_without_content_loader(self, index):
        kb = KnowledgeBase(index_loader=lambda: index)
        await kb.initialize()

        resource = await kb.load_resource("8z")
        assert "https://www.ycombinator.com/library/8z" in resource.content
        assert "**Topics:** idea" in resource.content

    @pytest.mark.asyncio
    async def test_sync_content_loader(self, make_kb):
        kb = make_kb(content_loader=lambda locator: f"body of {locator}")
        await kb.initialize()

        assert (await kb.load_resource("91")).content == "body of essays/91.md"

    @pytest.mark.asyncio
    async def test_unknown_code(self, kb):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await kb.load_resource("nope")
        assert exc_info.value.resource_code == "nope"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_resource_detail(self, kb):
        detail = await kb.get_resource_detail("8z")

        assert detail.meta.code == "8z"
        assert "startup ideas" in detail.content
        assert codes(detail.related) == ["8g", "DU"]

    @pytest.mark.asyncio
    async def test_cached_content_expires(self, make_kb, clock):
        calls = []

        def loader(locator):
            calls.append(locator)
            return "body"

        kb = make_kb(config=KnowledgeBaseConfig(cache_ttl=10), content_loader=loader, clock=clock)
        await kb.initialize()

        await kb.load_resource("8z")
        await kb.load_resource("8z")
        clock.advance(10)
        await kb.load_resource("8z")

        assert len(calls) == 2


class TestLookups:

    def test_get_all_resources_is_a_copy(self, kb, corpus):
        resources = kb.get_all_resources()
        resources.clear()
        assert len(kb.get_all_resources()) == len(corpus)

    def test_resource_meta(self, kb):
        assert kb.get_resource_meta("JW").title == "How to Raise a Seed Round"
        assert kb.get_resource_meta("nope") is None

    def test_by_codes_keeps_order_and_skips_unknown(self, kb):
        assert codes(kb.get_resources_by_codes(["91", "nope", "8z"])) == ["91", "8z"]

    def test_by_category(self, kb):
        assert codes(kb.get_resources_by_category("idea")) == ["8z", "8g", "DU"]
        assert codes(kb.get_resources_by_category(Category.MINDSET)) == ["91"]
        assert kb.get_resources_by_category("astrology") == []

    def test_by_author(self, kb):
        assert codes(kb.get_resources_by_author("Paul Graham")) == ["8z", "91", "DS"]
        assert kb.get_resources_by_author("Nobody") == []

    def test_by_type(self, kb):
        assert codes(kb.get_resources_by_type("essay")) == ["8z", "91", "JW", "DS"]
        assert codes(kb.get_resources_by_type(ResourceType.VIDEO)) == ["8g"]

    def test_by_stage(self, kb):
        assert codes(kb.get_resources_by_stage(FounderStage.LAUNCHED)) == ["JW", "DS"]
        assert kb.get_resources_by_stage("scaling") == []


class TestSummaries:

    def test_categories(self, kb):
        categories = {c.id: c for c in kb.get_categories()}

        assert categories["idea"].name == "Idea"
        assert categories["idea"].count == 3
        assert categories["getting-started"].name == "Getting started"

    def test_category_listing(self, kb):
        listing = kb.get_category_listing()
        assert listing.total_resources == 6
        assert len(listing.categories) == 6

    def test_stats(self, kb):
        stats = kb.get_stats()
        assert stats.total_resources == 6
        assert stats.total_authors == 4

    def test_top_authors(self, kb):
        assert kb.get_top_authors(limit=1) == [{"author": "Paul Graham", "count": 3}]

    @pytest.mark.parametrize("category_id, expected", [
        ("avoiding-failure", "Avoiding failure"),
        ("ai", "Ai"),
        ("", ""),
    ])
    def test_display_name(self, category_id, expected):
        assert category_display_name(category_id) == expected
