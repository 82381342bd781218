"""
Query syntax parsing and search suggestions.

Supported syntax:
    "exact phrase"     phrase kept as a single keyword
    author:graham      filter (author, category, type, stage)
    -crypto            exclude resources mentioning the term
    anything else      plain keyword
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ..models import ResourceMeta

FILTER_KEYS = ("author", "category", "type", "stage")

_PHRASE = re.compile(r'"([^"]+)"')


@dataclass
class ParsedQuery:
    keywords: List[str] = field(default_factory=list)
    filters: Dict[str, str] = field(default_factory=dict)
    excluded: List[str] = field(default_factory=list)
    phrases: List[str] = field(default_factory=list)


def parse_query(query: str) -> ParsedQuery:
    """
    Split a raw query into keywords, filters, exclusions and phrases.

    Examples:
        >>> parse_query('"product market fit" author:graham -crypto growth')
        ParsedQuery(keywords=['growth'], filters={'author': 'graham'},
                    excluded=['crypto'], phrases=['product market fit'])
    """
    parsed = ParsedQuery()
    if not query:
        return parsed

    parsed.phrases = _PHRASE.findall(query)
    remainder = _PHRASE.sub(" ", query)

    for part in remainder.split():
        if ":" in part:
            key, _, value = part.partition(":")
            if key in FILTER_KEYS and value:
                parsed.filters[key] = value
                continue

        if part.startswith("-") and len(part) > 1:
            parsed.excluded.append(part[1:])
            continue

        parsed.keywords.append(part)

    return parsed


def generate_suggestions(
    partial_query: str,
    resources: Iterable[ResourceMeta],
    max_suggestions: int = 5,
) -> List[str]:
    """
    Suggest completions for a partial query.

    Produces resource titles, "author:<name>" and "topic:<tag>" entries whose
    text contains the partial query (case-insensitive), in corpus order.
    """
    query = partial_query.strip().lower()
    if not query or max_suggestions < 1:
        return []

    suggestions: Dict[str, None] = {}
    for resource in resources:
        if query in resource.title.lower():
            suggestions[resource.title] = None
        if query in resource.author.lower():
            suggestions[f"author:{resource.author}"] = None
        for topic in resource.topics:
            if query in topic.lower():
                suggestions[f"topic:{topic}"] = None

        if len(suggestions) >= max_suggestions:
            break

    return list(suggestions)[:max_suggestions]
