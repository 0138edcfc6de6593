"""Token-overlap similarity for near-duplicate questions.

Jaccard overlap of word sets is a cheap heuristic, not a semantic
guarantee. Missed reuse (false negatives) is expected. Returning an answer
for a different question (false positive) is the risk the threshold is
tuned against; raising the threshold trades reuse for safety.
"""

import re

DEFAULT_THRESHOLD = 0.75
DEFAULT_MIN_TOKEN_LENGTH = 2

_NON_WORD = re.compile(r"\W+")


def tokenize(text: str, min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH) -> frozenset[str]:
    """Lowercased word set, keeping words longer than ``min_token_length``."""
    return frozenset(
        word for word in _NON_WORD.split(text.lower()) if len(word) > min_token_length
    )


def jaccard_similarity(a: str, b: str, min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH) -> float:
    """|intersection| / |union| of the two token sets, 0.0 when both are empty."""
    tokens_a = tokenize(a, min_token_length)
    tokens_b = tokenize(b, min_token_length)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def is_similar(
    a: str,
    b: str,
    threshold: float = DEFAULT_THRESHOLD,
    min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
) -> bool:
    """True when the texts overlap at least ``threshold``. Symmetric."""
    return jaccard_similarity(a, b, min_token_length) >= threshold
