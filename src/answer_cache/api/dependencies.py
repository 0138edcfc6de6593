"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services built once in the lifespan and stored in app.state
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from answer_cache.config import Settings, settings
from answer_cache.handlers import AnswerHandler
from answer_cache.protocols import DurableStore, GenerationProvider
from answer_cache.repositories import (
    BoundedStore,
    InMemoryHistoryRecorder,
    JsonFileDurableStore,
    OllamaGenerationProvider,
    PersistentBoundedStore,
    RedisDurableStore,
)
from answer_cache.services import GenerationOrchestrator, TieredCache

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> AnswerHandler:
    """Dependency injection for AnswerHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AnswerHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "answer_handler", None)
    if handler is None:
        raise RuntimeError("AnswerHandler not initialized. Check lifespan setup.")
    return handler


def build_durable_store(config: Settings = settings) -> DurableStore | None:
    """Durable backend selected by ``CACHE_DURABLE_BACKEND``, or None."""
    if config.cache_durable_backend == "redis":
        return RedisDurableStore.create(prefix=config.cache_key_prefix)
    if config.cache_durable_backend == "file":
        return JsonFileDurableStore.create(path=config.cache_durable_path)
    return None


def create_lifespan(
    provider: GenerationProvider | None = None,
    durable: DurableStore | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build the lifespan that wires every layer into app.state.

    Args:
        provider: Chat provider. If None, an Ollama provider from settings.
        durable: Durable backend for the slow tier. If None, chosen from settings.

    Returns:
        Lifespan context manager factory for FastAPI
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        generation_provider = provider or OllamaGenerationProvider.create()
        durable_store = durable if durable is not None else build_durable_store()

        # One cache per process; handlers receive it by reference
        fast = BoundedStore.create()
        slow = PersistentBoundedStore.create(durable=durable_store) if durable_store else None
        cache = TieredCache.create(fast=fast, slow=slow)

        history = InMemoryHistoryRecorder()
        orchestrator = GenerationOrchestrator.create(
            cache=cache,
            provider=generation_provider,
            history=history,
        )
        handler = AnswerHandler(
            orchestrator=orchestrator,
            cache=cache,
            provider=generation_provider,
            history=history,
        )

        app.state.cache = cache
        app.state.orchestrator = orchestrator
        app.state.history = history
        app.state.generation_provider = generation_provider
        app.state.answer_handler = handler

        logger.info(
            "Answer cache initialized: fast tier %d, durable tier %s, similarity %s",
            fast.max_size,
            f"{type(durable_store).__name__} ({slow.max_size})" if slow else "disabled",
            f">= {cache.similarity_threshold}" if settings.cache_similarity_enabled else "off",
        )

        yield

        await orchestrator.drain()
        close = getattr(generation_provider, "close", None)
        if close is not None:
            await close()

        del app.state.answer_handler
        del app.state.orchestrator
        del app.state.history
        del app.state.generation_provider
        del app.state.cache
        logger.info("Answer cache shut down")

    return lifespan


# Type alias for cleaner dependency injection
HandlerDep = Annotated[AnswerHandler, Depends(get_handler)]
