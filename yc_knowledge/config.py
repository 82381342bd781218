"""Knowledge base configuration (defaults + environment overrides)"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VALID_STRATEGIES = ("keyword", "weighted-jaccard", "discovery")


@dataclass
class KnowledgeBaseConfig:
    """
    Configuration for a KnowledgeBase instance.

    Attributes:
        index_path: Path to the JSON knowledge index
        content_path: Root directory holding the markdown bodies
        cache_size: Max entries per LRU cache (resource bodies, search results)
        cache_ttl: Default cache entry lifetime in seconds (default 5 minutes)
        max_results: Largest page size a search may request
        default_limit: Page size used by quick_search when none is given
        scoring_strategy: "keyword" | "weighted-jaccard" | "discovery"
    """
    index_path: str = "./data/knowledge-index.json"
    content_path: str = "./references"
    cache_size: int = 100
    cache_ttl: float = 300.0
    max_results: int = 50
    default_limit: int = 10
    scoring_strategy: str = "keyword"

    def __post_init__(self):
        """Validate configuration."""
        if self.cache_size < 1:
            raise ValueError(f"cache_size must be >= 1, got {self.cache_size}")
        if self.cache_ttl < 0:
            raise ValueError(f"cache_ttl must be >= 0, got {self.cache_ttl}")
        if self.max_results < 1:
            raise ValueError(f"max_results must be >= 1, got {self.max_results}")
        if not 1 <= self.default_limit <= self.max_results:
            raise ValueError(
                f"default_limit must be between 1 and max_results ({self.max_results}), got {self.default_limit}"
            )
        if self.scoring_strategy not in VALID_STRATEGIES:
            raise ValueError(
                f"Unknown scoring strategy: {self.scoring_strategy}. "
                f"Valid options: {', '.join(VALID_STRATEGIES)}"
            )

    @classmethod
    def from_env(cls) -> "KnowledgeBaseConfig":
        """
        Build configuration from environment variables.

        Config (env vars):
            KNOWLEDGE_INDEX_PATH: JSON index location
            KNOWLEDGE_CONTENT_PATH: markdown content root
            KB_CACHE_SIZE: entries per cache (default: 100)
            KB_CACHE_TTL_SECONDS: cache TTL (default: 300)
            KB_MAX_RESULTS: max page size (default: 50)
            KB_DEFAULT_LIMIT: quick search page size (default: 10)
            KB_SCORING_STRATEGY: keyword | weighted-jaccard | discovery
        """
        defaults = cls()
        config = cls(
            index_path=os.getenv("KNOWLEDGE_INDEX_PATH", defaults.index_path),
            content_path=os.getenv("KNOWLEDGE_CONTENT_PATH", defaults.content_path),
            cache_size=int(os.getenv("KB_CACHE_SIZE", str(defaults.cache_size))),
            cache_ttl=float(os.getenv("KB_CACHE_TTL_SECONDS", str(defaults.cache_ttl))),
            max_results=int(os.getenv("KB_MAX_RESULTS", str(defaults.max_results))),
            default_limit=int(os.getenv("KB_DEFAULT_LIMIT", str(defaults.default_limit))),
            scoring_strategy=os.getenv("KB_SCORING_STRATEGY", defaults.scoring_strategy).lower(),
        )
        logger.info(
            f"Knowledge base config: index={config.index_path}, content={config.content_path}, "
            f"cache={config.cache_size}x{config.cache_ttl}s, strategy={config.scoring_strategy}"
        )
        return config
