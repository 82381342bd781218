"""
Knowledge index builder - derives the inverted indices from a flat resource list.

Creates the whole-corpus structure consumed by KnowledgeBase:
- categories: topic -> {count, resource codes}
- searchIndex.byAuthor / byType / byStage: tag -> resource codes
- searchIndex.keywords: title/topic token -> resource codes (inverted index)
- stats: resource, category, author and line totals
"""

import logging
import re
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .errors import IndexLoadError
from .models import (
    CategoryEntry,
    IndexStats,
    KnowledgeIndex,
    ResourceMeta,
    SearchIndex,
)
from .search.tokenizer import tokenize

logger = logging.getLogger(__name__)

INDEX_VERSION = "2.0"

# Human-readable catalog labels -> category ids
CATEGORY_MAPPINGS: Dict[str, str] = {
    "avoiding failure": "avoiding-failure",
    "case study": "case-study",
    "co founders": "co-founders",
    "co-founders": "co-founders",
    "cofounders": "co-founders",
    "deep tech": "deep-tech",
    "founder interview": "founder-interview",
    "getting started": "getting-started",
}


def normalize_category(topic: str) -> str:
    """
    Normalize a catalog topic label to a category id.

    Examples:
        >>> normalize_category("Co Founders")
        'co-founders'
        >>> normalize_category("  Fundraising ")
        'fundraising'
    """
    normalized = topic.lower().strip()
    return CATEGORY_MAPPINGS.get(normalized) or re.sub(r"\s+", "-", normalized)


def build_keyword_index(resources: Iterable[ResourceMeta]) -> Dict[str, List[str]]:
    """
    Build the inverted keyword index from titles and topics.

    Example:
        >>> index = build_keyword_index([
        ...     ResourceMeta(code="8z", title="How to Get Startup Ideas", author="Paul Graham",
        ...                  type="essay", topics=["idea"]),
        ... ])
        >>> index
        {'startup': ['8z'], 'ideas': ['8z'], 'idea': ['8z']}
    """
    index: Dict[str, List[str]] = defaultdict(list)

    for resource in resources:
        terms = tokenize(resource.title)
        for topic in resource.topics:
            terms.extend(tokenize(topic))

        for term in dict.fromkeys(terms):
            index[term].append(resource.code)

    return dict(index)


def build_index(
    resources: Iterable[ResourceMeta],
    version: str = INDEX_VERSION,
    generated_at: Optional[str] = None,
) -> KnowledgeIndex:
    """
    Build a complete KnowledgeIndex from a flat resource list.

    Corpus order is preserved in every derived list, so it stays the canonical
    order for unranked results.

    Raises:
        IndexLoadError: Two resources share a code
    """
    resources = list(resources)

    by_code: Dict[str, ResourceMeta] = {}
    categories: Dict[str, List[str]] = defaultdict(list)
    by_author: Dict[str, List[str]] = defaultdict(list)
    by_type: Dict[str, List[str]] = defaultdict(list)
    by_stage: Dict[str, List[str]] = defaultdict(list)
    total_lines = 0

    for resource in resources:
        if resource.code in by_code:
            raise IndexLoadError(f"Duplicate resource code: {resource.code}")
        by_code[resource.code] = resource

        for topic in dict.fromkeys(resource.topics):
            categories[topic].append(resource.code)
        by_author[resource.author].append(resource.code)
        by_type[resource.type.value].append(resource.code)
        for stage in dict.fromkeys(resource.founder_stage):
            by_stage[stage.value].append(resource.code)

        total_lines += resource.lines

    keywords = build_keyword_index(resources)

    index = KnowledgeIndex(
        version=version,
        generated_at=generated_at or datetime.now(timezone.utc).isoformat(),
        stats=IndexStats(
            total_resources=len(by_code),
            total_categories=len(categories),
            total_lines=total_lines,
            total_authors=len(by_author),
        ),
        categories={
            name: CategoryEntry(count=len(codes), resources=codes)
            for name, codes in categories.items()
        },
        resources=by_code,
        search_index=SearchIndex(
            by_author=dict(by_author),
            by_type=dict(by_type),
            by_stage=dict(by_stage),
            keywords=keywords,
        ),
    )

    logger.debug(
        f"Built knowledge index: {len(by_code)} resources, {len(categories)} categories, "
        f"{len(by_author)} authors, {len(keywords)} keywords"
    )
    return index
