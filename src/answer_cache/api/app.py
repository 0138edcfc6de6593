from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from answer_cache.api.dependencies import HandlerDep, create_lifespan
from answer_cache.config import settings
from answer_cache.dto import (
    AnswerRequest,
    CacheStatsResponse,
    CleanupResponse,
    ClearCacheResponse,
    HealthCheckResponse,
)
from answer_cache.protocols import DurableStore, GenerationProvider

router = APIRouter()


@router.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Answer Cache API",
        "version": "0.1.0",
        "description": "Cache-first answer generation for live interviews",
        "endpoints": {
            "answer": "/api/ai/answer",
            "cache": "/cache",
            "stats": "/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@router.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


@router.post("/api/ai/answer", response_model=None)
async def answer(request: AnswerRequest, handler: HandlerDep):
    """Answer a question, as JSON or as a server-sent event stream."""
    return await handler.answer(request)


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(handler: HandlerDep) -> CacheStatsResponse:
    """Cache hit/miss statistics per tier."""
    return await handler.get_stats()


@router.get("/stats", response_model=dict[str, Any])
async def stats(handler: HandlerDep) -> dict[str, Any]:
    """Cache statistics plus history totals."""
    return await handler.get_summary()


@router.delete("/cache", response_model=ClearCacheResponse)
async def clear_cache(handler: HandlerDep) -> ClearCacheResponse:
    """Clear all entries from both cache tiers."""
    return await handler.clear_cache()


@router.post("/cache/cleanup", response_model=CleanupResponse)
async def cleanup_cache(handler: HandlerDep) -> CleanupResponse:
    """Trim the durable tier back to its capacity now."""
    return await handler.cleanup_cache()


def create_app(
    provider: GenerationProvider | None = None,
    durable: DurableStore | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        provider: Chat provider override (tests, alternative backends).
        durable: Durable backend override for the slow tier.

    Returns:
        The configured application
    """
    application = FastAPI(
        title="Answer Cache API",
        description="Cache-first answer generation for live interviews",
        version="0.1.0",
        lifespan=create_lifespan(provider=provider, durable=durable),
    )
    application.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router)
    return application


app = create_app()


if __name__ == "__main__":
    import logging

    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "answer_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
