"""
Factory to create scoring strategies by name.
"""

import logging
from typing import Dict, Type

from .scorer import DiscoveryScorer, KeywordScorer, ScoringStrategy, WeightedJaccardScorer

logger = logging.getLogger(__name__)

SCORERS: Dict[str, Type[ScoringStrategy]] = {
    KeywordScorer.name: KeywordScorer,
    WeightedJaccardScorer.name: WeightedJaccardScorer,
    DiscoveryScorer.name: DiscoveryScorer,
}


def create_scorer(name: str = "keyword", **kwargs) -> ScoringStrategy:
    """
    Create a scoring strategy.

    Supported names:
        - keyword: tiered weighted keyword matching (default, main search path)
        - weighted-jaccard: per-field Jaccard similarity with breakdown
        - discovery: lightweight title/author overlap with short-document boost

    Args:
        name: Strategy name (case-insensitive)
        **kwargs: Passed to the strategy constructor (e.g. weights)

    Raises:
        ValueError: Unknown strategy name
    """
    key = (name or "").strip().lower()
    scorer_cls = SCORERS.get(key)
    if scorer_cls is None:
        raise ValueError(
            f"Unknown scoring strategy: {name}. "
            f"Valid options: {', '.join(SCORERS)}"
        )

    logger.info(f"Creating scoring strategy: {key}")
    return scorer_cls(**kwargs)
