"""
Similarity and relevance utilities.

Pure functions, no shared state:
- levenshtein_distance: classic edit distance (dynamic programming)
- fuzzy_match: tiered similarity score in [0, 1]
- jaccard_similarity: |A ∩ B| / |A ∪ B| over token sets
- cosine_similarity: dot product over norms for numeric vectors
- calculate_tf_idf: term frequency x inverse document frequency
- create_bow_vector: binary bag-of-words vector over a vocabulary

None of these run over the whole corpus on the main search path; they back the
alternative scoring strategies and ranking experiments.
"""

import math
import re
from typing import AbstractSet, List, Sequence

import numpy as np

from .tokenizer import tokenize

FUZZY_THRESHOLD = 0.7
FUZZY_SCALE = 0.7


def levenshtein_distance(a: str, b: str) -> int:
    """
    Minimum number of single-character edits turning a into b.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Two-row DP: previous[j] = distance(a[:i-1], b[:j])
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(min(
                    previous[j - 1] + 1,  # substitution
                    current[j - 1] + 1,   # insertion
                    previous[j] + 1,      # deletion
                ))
        previous = current

    return previous[-1]


def fuzzy_match(query: str, text: str) -> float:
    """
    Fuzzy similarity score between a query and a text.

    Tiers (cheap checks short-circuit before the O(n*m) edit distance):
        exact match            -> 1.0
        substring containment  -> 0.9
        word-boundary match    -> 0.8
        edit similarity > 0.7  -> similarity * 0.7
        otherwise              -> 0.0

    Examples:
        >>> fuzzy_match("Paul Graham", "paul graham")
        1.0
        >>> fuzzy_match("graham", "Paul Graham")
        0.9
    """
    normalized_query = query.lower()
    normalized_text = text.lower()

    if normalized_text == normalized_query:
        return 1.0

    if normalized_query in normalized_text:
        return 0.9

    if normalized_query and re.search(rf'\b{re.escape(normalized_query)}\b', normalized_text):
        return 0.8

    max_length = max(len(normalized_query), len(normalized_text))
    distance = levenshtein_distance(normalized_query, normalized_text)
    similarity = 1 - distance / max_length

    return similarity * FUZZY_SCALE if similarity > FUZZY_THRESHOLD else 0.0


def jaccard_similarity(set_a: AbstractSet[str], set_b: AbstractSet[str]) -> float:
    """
    Jaccard index of two sets; 0.0 when both are empty.

    Examples:
        >>> jaccard_similarity({"startup", "ideas"}, {"ideas"})
        0.5
        >>> jaccard_similarity(set(), set())
        0.0
    """
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors; 0.0 if either norm is 0.

    Examples:
        >>> cosine_similarity([1, 0], [1, 0])
        1.0
        >>> cosine_similarity([0, 0], [1, 1])
        0.0
    """
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    if vec_a.shape != vec_b.shape:
        raise ValueError(f"Vectors must have equal length, got {vec_a.shape} and {vec_b.shape}")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def calculate_tf_idf(term: str, document: str, documents: Sequence[str]) -> float:
    """
    TF-IDF weight of a term in one document of a collection.

    Formula:
        tf  = count(term in document) / len(tokens(document))
        idf = ln(N / (df + 1)) + 1

    Where:
        N  = number of documents in the collection
        df = number of documents containing the term

    Returns 0.0 for a document without tokens or an empty collection.
    """
    tokens = tokenize(document)
    if not tokens or not documents:
        return 0.0

    tf = tokens.count(term) / len(tokens)

    doc_count = sum(1 for doc in documents if term in tokenize(doc))
    idf = math.log(len(documents) / (doc_count + 1)) + 1

    return tf * idf


def create_bow_vector(text: str, vocabulary: Sequence[str]) -> List[int]:
    """
    Binary bag-of-words vector: 1 where the vocabulary word occurs in text.

    Examples:
        >>> create_bow_vector("startup ideas and growth", ["growth", "hiring"])
        [1, 0]
    """
    token_set = set(tokenize(text))
    return [1 if word in token_set else 0 for word in vocabulary]
