#!/usr/bin/env python3
"""
Demo script for the answer cache.

Runs fully offline: a JSON file in a temporary directory stands in for the
durable tier, and answers are canned instead of generated.
"""

import asyncio
import tempfile
import time
from pathlib import Path

from answer_cache.entities import CacheEntryEntity, ContentEventEntity
from answer_cache.keys import derive_key, normalize_question
from answer_cache.repositories import BoundedStore, JsonFileDurableStore, PersistentBoundedStore
from answer_cache.services import StreamReplayer, TieredCache
from answer_cache.similarity import jaccard_similarity

QA_PAIRS = [
    (
        "What is a window function?",
        "A window function computes a value for each row over a set of related rows, "
        "without collapsing them like GROUP BY does.",
    ),
    (
        "Explain the CAP theorem",
        "Under a network partition a distributed store must choose between consistency "
        "and availability.",
    ),
    (
        "How does Kafka guarantee ordering?",
        "Ordering is guaranteed within a partition; use a stable key to keep related "
        "events in one partition.",
    ),
]


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def build_cache(directory: Path, fast_size: int = 2) -> TieredCache:
    durable = JsonFileDurableStore(directory / "answers.json")
    return TieredCache(
        fast=BoundedStore(max_size=fast_size),
        slow=PersistentBoundedStore(durable, max_size=10),
        similarity_enabled=True,
        similarity_threshold=0.75,
    )


def store(cache: TieredCache, question: str, answer: str) -> None:
    normalized = normalize_question(question)
    cache.set(
        derive_key(question),
        CacheEntryEntity(answer=answer, question=normalized, created_at=time.time()),
    )


def lookup(cache: TieredCache, question: str) -> None:
    hit = cache.get(derive_key(question), question=normalize_question(question))
    if hit is None:
        print(f"\n  Query: {question}")
        print("  ✗ Cache miss")
        return
    print(f"\n  Query: {question}")
    print(f"  ✓ HIT from {hit.source}")
    print(f"  Answer: {hit.entry.answer[:70]}...")


def demo_tiers(directory: Path) -> None:
    """Store three answers in a two-slot fast tier and read them back."""
    print_section("Tiered Lookup")

    cache = build_cache(directory)
    for question, answer in QA_PAIRS:
        store(cache, question, answer)
        print(f"  ✓ Stored: {question}")

    print(f"\n📦 Fast tier keys (LRU first): {cache.fast.keys()}")

    print("\n🔍 Lookups:")
    lookup(cache, "what is a WINDOW function")
    lookup(cache, "What is a window function?")
    lookup(cache, "How does Kafka guarantee message ordering?")
    lookup(cache, "What is a bloom filter?")

    stats = cache.stats()
    print(f"\n📊 Hits: {stats['hits']}, misses: {stats['misses']}, promotions: {stats['promotions']}")
    print(f"   Sources: {stats['sources']}")


def demo_restart(directory: Path) -> None:
    """A fresh process still finds answers in the durable tier."""
    print_section("Durable Tier Across Restarts")

    cache = build_cache(directory)
    lookup(cache, "Explain the CAP theorem")
    lookup(cache, "Explain the CAP theorem")


def demo_similarity() -> None:
    """Show the overlap scores behind similarity matches."""
    print_section("Word-Overlap Similarity")

    pairs = [
        ("Explain the CAP theorem", "Explain the CAP theorem please"),
        ("What is a window function?", "What is a window function in SQL?"),
        ("What is a window function?", "What is a lambda function?"),
    ]
    print(f"\n{'Similarity':<12} Questions")
    print("-" * 70)
    for a, b in pairs:
        score = jaccard_similarity(normalize_question(a), normalize_question(b))
        print(f"{score:<12.2f} {a!r} vs {b!r}")


async def demo_replay() -> None:
    """Replay a cached answer as a paced stream."""
    print_section("Stream Replay")

    replayer = StreamReplayer(inter_chunk_delay=0.05, words_per_chunk=3)
    answer = QA_PAIRS[1][1]
    print(f"\n  Replaying in at most {replayer.max_duration(answer):.2f}s:\n  ", end="")
    async for event in replayer.replay(answer, source="memory"):
        if isinstance(event, ContentEventEntity):
            print(event.content, end="", flush=True)
        else:
            print(f"\n\n  Done (cached={event.cached})")


def main() -> None:
    """Run all demos."""
    print("\n🚀 Answer Cache Demo")
    print("=" * 70)

    with tempfile.TemporaryDirectory() as tmp:
        directory = Path(tmp)
        demo_tiers(directory)
        demo_restart(directory)
    demo_similarity()
    asyncio.run(demo_replay())

    print("\n" + "=" * 70)
    print("✅ Demo completed successfully!")
    print("=" * 70)


if __name__ == "__main__":
    main()
