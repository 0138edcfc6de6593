"""Error taxonomy for the answer cache.

Cache-internal failures (``DurableStoreError``) are recovered inside the
slow tier and degrade to misses. Generation failures propagate to the
HTTP layer and never reach the cache.
"""


class AnswerCacheError(Exception):
    """Base class for all answer cache errors."""


class DurableStoreError(AnswerCacheError):
    """The durable backend could not be read or written."""


class GenerationError(AnswerCacheError):
    """The upstream chat-completion provider failed."""


class GenerationTimeoutError(GenerationError):
    """The upstream provider did not finish within the caller's timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Generation timed out after {timeout:.1f}s")
        self.timeout = timeout
