"""
Metadata filter engine.

Semantics:
- OR within a dimension: a resource passes the category filter if it carries
  ANY of the requested categories (same for stages, authors, types)
- AND across dimensions: it must pass every configured dimension
- An absent or empty dimension filters nothing
- Line bounds are inclusive: min_lines <= lines <= max_lines

Filtering is order-preserving so the corpus order stays the canonical order.
"""

from typing import Iterable, List, Sequence

from ..models import ResourceMeta, SearchFilters
from .tokenizer import normalize_text


def _values(items) -> set:
    # Enum members hash by name, so compare on their string values
    return {getattr(item, "value", item) for item in items}


def apply_filters(resources: Iterable[ResourceMeta], filters: SearchFilters) -> List[ResourceMeta]:
    """
    Return the resources that satisfy every configured filter dimension.

    Example:
        >>> filters = SearchFilters(categories=["fundraising"], types=["essay"], max_lines=300)
        >>> [r.code for r in apply_filters(resources, filters)]
        ['JW']
    """
    categories = _values(filters.categories or ())
    stages = _values(filters.stages or ())
    authors = set(filters.authors or ())
    types = _values(filters.types or ())

    def passes(resource: ResourceMeta) -> bool:
        if categories and not any(topic in categories for topic in resource.topics):
            return False
        if stages and not any(stage.value in stages for stage in resource.founder_stage):
            return False
        if authors and resource.author not in authors:
            return False
        if types and resource.type.value not in types:
            return False
        if filters.min_lines is not None and resource.lines < filters.min_lines:
            return False
        if filters.max_lines is not None and resource.lines > filters.max_lines:
            return False
        return True

    return [resource for resource in resources if passes(resource)]


def apply_exclusions(resources: Iterable[ResourceMeta], terms: Sequence[str]) -> List[ResourceMeta]:
    """
    Drop resources whose title, author, topics or summary mention any excluded term.

    Terms match whole words (or whole word runs for multi-word terms), so
    "-ai" drops "AI Startups" but keeps "How to Raise a Seed Round".
    Used for the "-term" query syntax.
    """
    excluded = [t for t in (normalize_text(term) for term in terms) if t]
    if not excluded:
        return list(resources)

    def mentions_excluded(resource: ResourceMeta) -> bool:
        text = normalize_text(" ".join([
            resource.title,
            resource.author,
            " ".join(resource.topics),
            resource.summary or "",
        ]))
        padded = f" {text} "
        return any(f" {term} " in padded for term in excluded)

    return [resource for resource in resources if not mentions_excluded(resource)]
