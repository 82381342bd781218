"""
YC Knowledge - FastAPI application serving the knowledge retrieval engine

Read-only HTTP surface over an in-memory KnowledgeBase:
- keyword search with metadata filters, facets and pagination
- resource lookup with lazily loaded full content
- category listing, stats and query suggestions

The knowledge index is loaded once in the lifespan hook; the KnowledgeBase
instance lives on app.state and is injected into routes with Depends.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

# Load environment variables from .env.local (local dev) or .env (production)
from dotenv import load_dotenv

env_local = Path(__file__).parent.parent / ".env.local"
env_file = Path(__file__).parent.parent / ".env"

if env_local.exists():
    load_dotenv(env_local, override=True)
elif env_file.exists():
    load_dotenv(env_file, override=True)

from .logging_config import setup_logging

log_level = os.getenv("LOG_LEVEL", "INFO").upper()
setup_logging(
    log_file=os.getenv("LOG_FILE", "logs/yc-knowledge.log"),
    console_level=getattr(logging, log_level, logging.INFO),
    file_level=logging.DEBUG,
)

logger = logging.getLogger(__name__)

from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import KnowledgeBaseConfig
from .errors import KnowledgeBaseError, NotInitializedError
from .knowledge_base import KnowledgeBase
from .models import (
    CacheStats,
    CategoryListing,
    IndexStats,
    ResourceDetail,
    ResourceMeta,
    SearchFacets,
    SearchResult,
)

PORT = int(os.getenv("PORT", "8080"))

APP_VERSION = "0.1.0"
APP_START_TIME = datetime.now(timezone.utc)


# Response models
class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(ApiModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float
    knowledge_base: str = Field(..., description="Knowledge base lifecycle state")
    resources: int


class ApiSearchResponse(ApiModel):
    results: List[ResourceMeta]
    total: int
    query: Optional[str] = None
    facets: SearchFacets
    execution_time_ms: int


class StatsResponse(ApiModel):
    stats: IndexStats
    cache: CacheStats
    top_authors: List[Dict[str, Any]]
    scoring_strategy: str


class SuggestionsResponse(ApiModel):
    query: str
    suggestions: List[str]


def get_knowledge_base(request: Request) -> KnowledgeBase:
    """Dependency: the application's KnowledgeBase"""
    knowledge_base = getattr(request.app.state, "knowledge_base", None)
    if knowledge_base is None:
        raise NotInitializedError()
    return knowledge_base


def create_app(
    knowledge_base: Optional[KnowledgeBase] = None,
    config: Optional[KnowledgeBaseConfig] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        knowledge_base: Prebuilt instance (tests); created from config otherwise
        config: Knowledge base config (default: KnowledgeBaseConfig.from_env())
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        kb = knowledge_base or KnowledgeBase.from_config(config)

        logger.info("Initializing knowledge base...")
        await kb.initialize()
        app.state.knowledge_base = kb
        logger.info(f"Knowledge base ready: {kb.get_stats().total_resources} resources")

        yield

        logger.info("Shutting down...")
        kb.clear_cache()
        app.state.knowledge_base = None

    app = FastAPI(
        title="YC Knowledge API",
        description="Keyword search over the YC startup library",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(KnowledgeBaseError)
    async def knowledge_base_exception_handler(request: Request, exc: KnowledgeBaseError):
        """Typed knowledge base errors -> their HTTP status"""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": str(exc),
            },
        )

    # Routes
    @app.get("/", response_model=dict)
    async def root():
        """Root endpoint"""
        return {
            "service": "YC Knowledge API",
            "version": APP_VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        """Health check; reports the knowledge base state without requiring it"""
        kb: Optional[KnowledgeBase] = getattr(request.app.state, "knowledge_base", None)
        ready = kb is not None and kb.is_ready
        uptime = (datetime.now(timezone.utc) - APP_START_TIME).total_seconds()

        return HealthResponse(
            status="healthy" if ready else "starting",
            version=APP_VERSION,
            started_at=APP_START_TIME.isoformat(),
            uptime_seconds=round(uptime, 2),
            knowledge_base=kb.state.value if kb is not None else "uninitialized",
            resources=kb.get_stats().total_resources if ready else 0,
        )

    @app.get("/v1/search", response_model=ApiSearchResponse)
    async def search(
        q: Optional[str] = Query(None, description="Free-text query (supports author:, category:, -term, \"phrases\")"),
        category: Optional[List[str]] = Query(None),
        stage: Optional[List[str]] = Query(None),
        author: Optional[List[str]] = Query(None),
        type_: Optional[List[str]] = Query(None, alias="type"),
        limit: Optional[int] = Query(None),
        offset: int = Query(0),
        kb: KnowledgeBase = Depends(get_knowledge_base),
    ):
        """Search resources by free text and/or filters"""
        filters = {
            "categories": category,
            "stages": stage,
            "authors": author,
            "types": type_,
        }
        filters = {key: value for key, value in filters.items() if value}

        if q is not None and q.strip():
            result = kb.quick_search(q, filters=filters, limit=limit, offset=offset)
        else:
            result = kb.search({
                "filters": filters,
                "limit": kb.config.default_limit if limit is None else limit,
                "offset": offset,
            })

        return ApiSearchResponse(
            results=list(result.resources),
            total=result.total,
            query=q,
            facets=result.facets,
            execution_time_ms=result.execution_time_ms,
        )

    @app.post("/v1/search", response_model=SearchResult)
    async def search_structured(
        request_body: Dict[str, Any] = Body(..., description="SearchQuery (camelCase or snake_case fields)"),
        kb: KnowledgeBase = Depends(get_knowledge_base),
    ):
        """Structured search: keywords, filters, exclusions, sorting, pagination"""
        return kb.search(request_body)

    @app.get("/v1/resources/{code}", response_model=ResourceDetail)
    async def get_resource(code: str, kb: KnowledgeBase = Depends(get_knowledge_base)):
        """Resource metadata, full content and related resources"""
        return await kb.get_resource_detail(code)

    @app.get("/v1/categories", response_model=CategoryListing)
    async def list_categories(kb: KnowledgeBase = Depends(get_knowledge_base)):
        return kb.get_category_listing()

    @app.get("/v1/stats", response_model=StatsResponse)
    async def get_stats(kb: KnowledgeBase = Depends(get_knowledge_base)):
        """Index totals, cache occupancy and top authors"""
        return StatsResponse(
            stats=kb.get_stats(),
            cache=kb.get_cache_stats(),
            top_authors=kb.get_top_authors(),
            scoring_strategy=kb.scorer.name,
        )

    @app.get("/v1/suggestions", response_model=SuggestionsResponse)
    async def suggestions(
        q: str = Query("", description="Partial query"),
        limit: int = Query(5, ge=1, le=20),
        kb: KnowledgeBase = Depends(get_knowledge_base),
    ):
        return SuggestionsResponse(query=q, suggestions=kb.suggest(q, limit))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "yc_knowledge.main:app",
        host="0.0.0.0",
        port=PORT,
        reload=True,  # Development only
    )
