import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()

SCOPE_STRATEGIES = ("none", "job-profile-id", "recent-turns-hash")
DURABLE_BACKENDS = ("none", "redis", "file")


def _split_words(raw: str) -> tuple[str, ...]:
    return tuple(word.strip().lower() for word in raw.split(",") if word.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Fast tier
    cache_max_size: int = int(os.getenv("CACHE_MAX_SIZE", "50"))
    cache_ttl_ms: int = int(os.getenv("CACHE_TTL_MS", str(30 * 24 * 60 * 60 * 1000)))  # 30 days

    # Key derivation
    cache_key_max_length: int = int(os.getenv("CACHE_KEY_MAX_LENGTH", "200"))
    cache_stop_words: tuple[str, ...] = field(
        default_factory=lambda: _split_words(os.getenv("CACHE_STOP_WORDS", ""))
    )
    cache_scope_strategy: str = os.getenv("CACHE_SCOPE_STRATEGY", "none")
    cache_scope_recent_turns: int = int(os.getenv("CACHE_SCOPE_RECENT_TURNS", "3"))

    # Similarity
    cache_similarity_enabled: bool = os.getenv("CACHE_SIMILARITY_ENABLED", "true").lower() == "true"
    cache_similarity_threshold: float = float(os.getenv("CACHE_SIMILARITY_THRESHOLD", "0.75"))
    cache_similarity_min_token_length: int = int(os.getenv("CACHE_SIMILARITY_MIN_TOKEN_LENGTH", "2"))

    # Slow tier
    cache_durable_backend: str = os.getenv("CACHE_DURABLE_BACKEND", "file")
    cache_durable_max_size: int = int(os.getenv("CACHE_DURABLE_MAX_SIZE", "150"))
    cache_durable_cleanup_every: int = int(os.getenv("CACHE_DURABLE_CLEANUP_EVERY", "10"))
    cache_durable_path: str = os.getenv("CACHE_DURABLE_PATH", ".answer_cache.json")
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "answer_cache:")

    # Replay
    replay_inter_chunk_delay_ms: int = int(os.getenv("REPLAY_INTER_CHUNK_DELAY_MS", "30"))
    replay_words_per_chunk: int = int(os.getenv("REPLAY_WORDS_PER_CHUNK", "3"))

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Generation (Ollama chat API)
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    generation_model: str = os.getenv("GENERATION_MODEL", "llama3.2")
    generation_timeout: float = float(os.getenv("GENERATION_TIMEOUT", "60"))
    generation_max_tokens: int = int(os.getenv("GENERATION_MAX_TOKENS", "1024"))

    # Cost, USD per 1M tokens
    price_input_per_million: float = float(os.getenv("PRICE_INPUT_PER_MILLION", "0.15"))
    price_output_per_million: float = float(os.getenv("PRICE_OUTPUT_PER_MILLION", "0.60"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    @property
    def cache_ttl_seconds(self) -> float | None:
        """TTL in seconds, or None when entries never expire."""
        if self.cache_ttl_ms <= 0:
            return None
        return self.cache_ttl_ms / 1000

    @property
    def replay_inter_chunk_delay(self) -> float:
        """Replay pacing in seconds."""
        return max(0, self.replay_inter_chunk_delay_ms) / 1000

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_max_size < 1:
            raise ValueError("CACHE_MAX_SIZE must be at least 1")

        if self.cache_durable_max_size < 1:
            raise ValueError("CACHE_DURABLE_MAX_SIZE must be at least 1")

        if not 0 <= self.cache_similarity_threshold <= 1:
            raise ValueError("CACHE_SIMILARITY_THRESHOLD must be between 0 and 1")

        if self.cache_scope_strategy not in SCOPE_STRATEGIES:
            raise ValueError(
                f"CACHE_SCOPE_STRATEGY must be one of {list(SCOPE_STRATEGIES)}, "
                f"got {self.cache_scope_strategy!r}"
            )

        if self.cache_durable_backend not in DURABLE_BACKENDS:
            raise ValueError(
                f"CACHE_DURABLE_BACKEND must be one of {list(DURABLE_BACKENDS)}, "
                f"got {self.cache_durable_backend!r}"
            )

        if self.replay_words_per_chunk < 1:
            raise ValueError("REPLAY_WORDS_PER_CHUNK must be at least 1")

        if self.generation_timeout <= 0:
            raise ValueError("GENERATION_TIMEOUT must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
