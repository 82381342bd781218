"""
Relevance scoring strategies.

All strategies implement ScoringStrategy so the knowledge base can swap them
without touching the search pipeline:

- KeywordScorer ("keyword"): tiered per-field keyword matching. Primary path.
- WeightedJaccardScorer ("weighted-jaccard"): per-field Jaccard similarity of
  query tokens, weighted, plus a category bonus. Returns a per-field breakdown.
- DiscoveryScorer ("discovery"): lightweight title/author overlap used for
  quick discovery, with a small boost for short documents.

KeywordScorer tiers (per keyword x field, only the first applicable tier counts):
    exact normalized match   -> 10 x field weight
    substring containment    ->  5 x field weight
    word-boundary match      ->  3 x field weight
"""

import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

from ..models import FieldMatch, Resource, ResourceMeta, ScoredResource
from .similarity import jaccard_similarity
from .tokenizer import normalize_text, tokenize

EXACT_MATCH_POINTS = 10
CONTAINS_MATCH_POINTS = 5
WORD_BOUNDARY_POINTS = 3

DEFAULT_KEYWORD_WEIGHTS: Dict[str, float] = {
    "title": 3,
    "author": 2,
    "topics": 2,
    "summary": 1,
}


@dataclass(frozen=True)
class ScoringWeights:
    """Field weights for WeightedJaccardScorer"""
    title: float = 5
    author: float = 3
    topics: float = 3
    summary: float = 2
    content: float = 1
    category: float = 2


class ScoringStrategy(ABC):
    """
    Abstract base class for relevance scoring.

    All strategies must implement this interface to be swappable.
    """

    name: str = "base"

    @abstractmethod
    def score(
        self,
        resource: ResourceMeta,
        keywords: Sequence[str],
        raw_query: Optional[str] = None,
    ) -> ScoredResource:
        """
        Score one resource against a query.

        Args:
            resource: Resource metadata to score
            keywords: Pre-tokenized query keywords
            raw_query: Original query text (strategies that tokenize themselves use it)

        Returns:
            ScoredResource (score 0 means "no match")
        """
        pass

    def describe(self) -> dict:
        return {"name": self.name, "type": type(self).__name__}


def score_field_match(keyword: str, value: str, weight: float) -> float:
    """
    Points one keyword earns in one field value.

    Examples:
        >>> score_field_match("startup ideas", "Startup Ideas", 3)
        30
        >>> score_field_match("startup", "How to Get Startup Ideas", 3)
        15
        >>> score_field_match("hiring", "How to Get Startup Ideas", 3)
        0
    """
    normalized_keyword = normalize_text(keyword)
    normalized_value = normalize_text(value)
    if not normalized_keyword or not normalized_value:
        return 0

    if normalized_value == normalized_keyword:
        return EXACT_MATCH_POINTS * weight
    if normalized_keyword in normalized_value:
        return CONTAINS_MATCH_POINTS * weight
    if re.search(rf'\b{re.escape(normalized_keyword)}\b', normalized_value):
        return WORD_BOUNDARY_POINTS * weight
    return 0


class KeywordScorer(ScoringStrategy):
    """Weighted field-by-field keyword scorer (main search path)"""

    name = "keyword"

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = {**DEFAULT_KEYWORD_WEIGHTS, **(weights or {})}

    def _field_values(self, resource: ResourceMeta) -> Dict[str, str]:
        return {
            "title": resource.title,
            "author": resource.author,
            "topics": " ".join(resource.topics),
            "summary": resource.summary or "",
        }

    def score(self, resource, keywords, raw_query=None) -> ScoredResource:
        values = self._field_values(resource)
        total = 0
        matches = []

        for keyword in keywords:
            for field_name, weight in self.weights.items():
                points = score_field_match(keyword, values.get(field_name, ""), weight)
                if points:
                    total += points
                    matches.append(FieldMatch(field=field_name, matched=keyword, score=points))

        return ScoredResource(resource=resource, score=total, matches=matches)

    def describe(self) -> dict:
        return {**super().describe(), "weights": dict(self.weights)}


class WeightedJaccardScorer(ScoringStrategy):
    """Multi-field Jaccard scorer with configurable weights and per-field breakdown"""

    name = "weighted-jaccard"

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score(self, resource, keywords, raw_query=None) -> ScoredResource:
        query = raw_query if raw_query else " ".join(keywords)
        query_tokens = set(tokenize(query))
        w = self.weights

        breakdown = {
            "title": jaccard_similarity(query_tokens, set(tokenize(resource.title))) * w.title,
            "author": jaccard_similarity(query_tokens, set(tokenize(resource.author))) * w.author,
            "topics": jaccard_similarity(
                query_tokens,
                {t for topic in resource.topics for t in tokenize(topic)},
            ) * w.topics,
            "summary": (
                jaccard_similarity(query_tokens, set(tokenize(resource.summary))) * w.summary
                if resource.summary else 0.0
            ),
        }

        # Body text only takes part once a full Resource has been loaded
        if isinstance(resource, Resource):
            breakdown["content"] = jaccard_similarity(
                query_tokens, set(tokenize(resource.content))
            ) * w.content

        lowered_query = query.lower()
        category_match = any(topic.lower() in lowered_query for topic in resource.topics)
        breakdown["category"] = w.category if category_match else 0.0

        matches = [
            FieldMatch(field=field_name, matched=query, score=value)
            for field_name, value in breakdown.items()
            if value > 0
        ]
        return ScoredResource(
            resource=resource,
            score=sum(breakdown.values()),
            matches=matches,
            breakdown=breakdown,
        )

    def describe(self) -> dict:
        return {**super().describe(), "weights": asdict(self.weights)}


class DiscoveryScorer(ScoringStrategy):
    """Cheap title/author overlap scoring with a short-document boost"""

    name = "discovery"

    TITLE_POINTS = 10
    AUTHOR_POINTS = 5
    TEXT_POINTS = 3

    def score(self, resource, keywords, raw_query=None) -> ScoredResource:
        title = resource.title.lower()
        author = resource.author.lower()
        searchable = f"{title} {author}"

        total = 0
        matches = []
        for keyword in keywords:
            lowered = keyword.lower()
            if not lowered:
                continue
            if lowered in title:
                total += self.TITLE_POINTS
                matches.append(FieldMatch("title", keyword, self.TITLE_POINTS))
            if lowered in author:
                total += self.AUTHOR_POINTS
                matches.append(FieldMatch("author", keyword, self.AUTHOR_POINTS))
            if lowered in searchable:
                total += self.TEXT_POINTS
                matches.append(FieldMatch("text", keyword, self.TEXT_POINTS))

        if total > 0:
            if resource.lines < 200:
                total += 2
            elif resource.lines < 500:
                total += 1

        return ScoredResource(resource=resource, score=total, matches=matches)
