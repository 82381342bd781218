"""
Keyword search building blocks for the knowledge base.

Components:
- tokenizer: text normalization, tokenization (Western + CJK), n-grams
- similarity: Levenshtein, fuzzy match, Jaccard, cosine, TF-IDF, bag-of-words
- scorer: swappable scoring strategies (keyword, weighted Jaccard, discovery)
- filters: metadata filter engine and exclusion terms
- facets: per-field counts over a result set
- query_parser: query syntax parsing and suggestions

Everything here is stateless; the KnowledgeBase composes these pieces.
"""

from .tokenizer import tokenize, normalize_text, create_ngrams, extract_keywords
from .similarity import (
    levenshtein_distance,
    fuzzy_match,
    jaccard_similarity,
    cosine_similarity,
    calculate_tf_idf,
    create_bow_vector,
)
from .scorer import (
    ScoringStrategy,
    ScoringWeights,
    KeywordScorer,
    WeightedJaccardScorer,
    DiscoveryScorer,
    score_field_match,
)
from .factory import create_scorer
from .filters import apply_filters, apply_exclusions
from .facets import calculate_facets, aggregate_by_category, get_top_authors
from .query_parser import ParsedQuery, parse_query, generate_suggestions

__all__ = [
    "tokenize",
    "normalize_text",
    "create_ngrams",
    "extract_keywords",
    "levenshtein_distance",
    "fuzzy_match",
    "jaccard_similarity",
    "cosine_similarity",
    "calculate_tf_idf",
    "create_bow_vector",
    "ScoringStrategy",
    "ScoringWeights",
    "KeywordScorer",
    "WeightedJaccardScorer",
    "DiscoveryScorer",
    "score_field_match",
    "create_scorer",
    "apply_filters",
    "apply_exclusions",
    "calculate_facets",
    "aggregate_by_category",
    "get_top_authors",
    "ParsedQuery",
    "parse_query",
    "generate_suggestions",
]
