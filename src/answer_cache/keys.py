"""Cache key derivation.

Questions are normalized so that logically identical phrasings ("What is a
window function?" / "what is a window function") share a key:

1. lowercase
2. punctuation replaced by spaces
3. optional stop words dropped
4. whitespace runs collapsed, ends trimmed
5. truncated to a maximum length (long near-duplicates fold together)

A scope (job profile id, digest of recent turns) is joined in front of the
normalized text with ``SCOPE_DELIMITER``. Normalization never produces the
delimiter, so the last delimiter in a key always separates scope from text.

Keys contain no time or randomness and are stable across restarts.
"""

import hashlib
import re
from collections.abc import Iterable, Sequence

SCOPE_DELIMITER = "|"
DEFAULT_MAX_LENGTH = 200

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_question(
    question: str,
    max_length: int | None = DEFAULT_MAX_LENGTH,
    stop_words: Iterable[str] = (),
) -> str:
    """Normalize a question into its canonical cache form.

    Args:
        question: Raw question text (usually a transcription)
        max_length: Truncate the result to this many characters. None disables.
        stop_words: Lowercase words removed from the text

    Returns:
        The normalized text. Applying it twice gives the same result.
    """
    dropped = frozenset(stop_words)
    text = _PUNCTUATION.sub(" ", question.lower())
    words = [word for word in text.split() if word not in dropped]
    normalized = " ".join(words)
    if max_length is not None and len(normalized) > max_length:
        # A cut word can itself be a stop word ("thermodynamics" -> "the")
        truncated = normalized[:max_length].split()
        normalized = " ".join(word for word in truncated if word not in dropped)
    return normalized


def derive_key(
    question: str,
    scope: str | None = None,
    max_length: int | None = DEFAULT_MAX_LENGTH,
    stop_words: Iterable[str] = (),
) -> str:
    """Derive the cache key for a question.

    Args:
        question: Raw question text
        scope: Optional discriminator (job profile id, recent-turns digest)
        max_length: Normalized text truncation length
        stop_words: Words removed during normalization

    Returns:
        ``normalized`` or ``scope|normalized`` when a scope is given
    """
    normalized = normalize_question(question, max_length=max_length, stop_words=stop_words)
    if scope is None or scope == "":
        return normalized
    return f"{scope}{SCOPE_DELIMITER}{normalized}"


def recent_turns_digest(questions: Sequence[str], turns: int = 3) -> str | None:
    """Short, stable digest of the last ``turns`` questions.

    Returns None when there is no history, so a first question is keyed
    the same as an unscoped one.
    """
    recent = [normalize_question(q, max_length=None) for q in questions[-turns:]] if turns > 0 else []
    if not recent:
        return None
    digest = hashlib.sha256("\n".join(recent).encode("utf-8")).hexdigest()
    return digest[:12]


def scope_for(
    strategy: str,
    job_profile_id: str | None = None,
    previous_questions: Sequence[str] = (),
    turns: int = 3,
) -> str | None:
    """Resolve the scope discriminator for a configured strategy.

    Args:
        strategy: ``none``, ``job-profile-id`` or ``recent-turns-hash``
        job_profile_id: Profile the answer is tailored to
        previous_questions: Earlier questions in the session, oldest first
        turns: How many recent questions feed the digest

    Returns:
        The scope string, or None for unscoped keys
    """
    if strategy == "none":
        return None
    if strategy == "job-profile-id":
        return f"profile:{job_profile_id}" if job_profile_id else None
    if strategy == "recent-turns-hash":
        digest = recent_turns_digest(previous_questions, turns)
        return f"turns:{digest}" if digest else None
    raise ValueError(f"Unknown scope strategy: {strategy!r}")
