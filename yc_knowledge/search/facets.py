"""Facet aggregation over result sets (counts for filter widgets)"""

from collections import Counter, defaultdict
from typing import Dict, Iterable, List

from ..models import ResourceMeta, SearchFacets


def calculate_facets(resources: Iterable[ResourceMeta]) -> SearchFacets:
    """
    Count resources per category, author, founder stage and type.

    Topics and stages are multi-valued: a resource counts once for every tag
    it carries. Pass the full matched set, not a paginated page.
    """
    categories: Counter = Counter()
    authors: Counter = Counter()
    stages: Counter = Counter()
    types: Counter = Counter()

    for resource in resources:
        categories.update(resource.topics)
        authors[resource.author] += 1
        stages.update(stage.value for stage in resource.founder_stage)
        types[resource.type.value] += 1

    return SearchFacets(
        categories=dict(categories),
        authors=dict(authors),
        stages=dict(stages),
        types=dict(types),
    )


def aggregate_by_category(resources: Iterable[ResourceMeta]) -> Dict[str, List[ResourceMeta]]:
    """Group resources under each of their topic tags"""
    grouped: Dict[str, List[ResourceMeta]] = defaultdict(list)
    for resource in resources:
        for topic in resource.topics:
            grouped[topic].append(resource)
    return dict(grouped)


def get_top_authors(resources: Iterable[ResourceMeta], limit: int = 10) -> List[dict]:
    """
    Most frequent authors, highest count first.

    Returns:
        [{"author": "Paul Graham", "count": 12}, ...]
    """
    counts = Counter(resource.author for resource in resources)
    return [
        {"author": author, "count": count}
        for author, count in counts.most_common(limit)
    ]
