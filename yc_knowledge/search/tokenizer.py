"""
Tokenizer for keyword search.

Tokenization pipeline:
1. Lowercase conversion
2. Replace every non-word, non-whitespace character with a space
3. Split on whitespace runs
4. Drop short tokens (length <= 2) and stopwords

Two variants:
- Western (default): only ASCII letters, digits and underscore count as word
  characters, so CJK text is stripped out
- CJK-aware: CJK ideographs (U+4E00-U+9FA5) are kept as word characters. There
  is no separate Chinese stopword list: the common particles (的, 了, 关于, 如何)
  are one or two characters long and already fall to the length filter

No stemming: catalog titles are short and exact wording matters for ranking.
"""

import re
from typing import List

# English stopwords plus catalog-specific noise words
STOPWORDS = frozenset([
    'a', 'an', 'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'is', 'are', 'was', 'were', 'be', 'been',
    'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would', 'could',
    'should', 'may', 'might', 'can', 'this', 'that', 'these', 'those',
    'i', 'you', 'he', 'she', 'it', 'we', 'they', 'what', 'which', 'who',
    'how', 'when', 'where', 'why', 'all', 'any', 'both', 'each', 'few',
    'more', 'most', 'other', 'some', 'such', 'no', 'nor', 'not', 'only',
    'own', 'same', 'so', 'than', 'too', 'very', 'just', 'get', 'like',
    'about', 'also', 'into', 'up', 'out', 'if', 'then', 'as', 'its',
    'startups', 'founder', 'founders', 'company', 'companies',
])

_WESTERN_NON_WORD = re.compile(r'[^\w\s]', re.ASCII)
_CJK_NON_WORD = re.compile(r'[^a-zA-Z0-9_\s一-龥]')
_NON_WORD = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')

MIN_TOKEN_LENGTH = 3


def normalize_text(text: str) -> str:
    """
    Normalize text for field matching.

    Lowercases, turns punctuation into spaces and collapses whitespace.

    Examples:
        >>> normalize_text("  Do Things that Don't Scale! ")
        'do things that don t scale'
    """
    if not text:
        return ""
    text = _NON_WORD.sub(' ', text.lower())
    return _WHITESPACE.sub(' ', text).strip()


def tokenize(text: str, cjk: bool = False) -> List[str]:
    """
    Tokenize text into searchable terms.

    Args:
        text: Input text
        cjk: Keep CJK ideographs as word characters

    Returns:
        List of lowercase tokens (order preserved, duplicates kept)

    Examples:
        >>> tokenize("How to Get Startup Ideas")
        ['startup', 'ideas']

        >>> tokenize("Do things that don't scale!")
        ['things', 'don', 'scale']

        >>> tokenize("如何找到创业想法 startup ideas", cjk=True)
        ['如何找到创业想法', 'startup', 'ideas']
    """
    if not text:
        return []

    pattern = _CJK_NON_WORD if cjk else _WESTERN_NON_WORD
    words = _WHITESPACE.split(pattern.sub(' ', text.lower()))

    return [
        w for w in words
        if len(w) >= MIN_TOKEN_LENGTH and w not in STOPWORDS
    ]


def create_ngrams(text: str, n: int = 2) -> List[str]:
    """
    Build contiguous token n-grams.

    Examples:
        >>> create_ngrams("raising a seed round quickly", 2)
        ['raising seed', 'seed round', 'round quickly']
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    tokens = tokenize(text)
    return [' '.join(tokens[i:i + n]) for i in range(len(tokens) - n + 1)]


def extract_keywords(text: str) -> List[str]:
    """Query-side keyword extraction (CJK-aware, order kept, duplicates removed)"""
    return list(dict.fromkeys(tokenize(text, cjk=True)))
