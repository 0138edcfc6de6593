"""API tests through the FastAPI test client with a fake provider."""

import json

import pytest
from fastapi.testclient import TestClient

from answer_cache.api.app import create_app
from answer_cache.exceptions import GenerationError, GenerationTimeoutError
from answer_cache.repositories import JsonFileDurableStore



@pytest.fixture
def make_client(tmp_path):
    def _make(provider) -> TestClient:
        app = create_app(provider=provider, durable=JsonFileDurableStore(tmp_path / "cache.json"))
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, provider):
    with make_client(provider) as test_client:
        yield test_client


def parse_sse(body: str) -> list:
    """Decode ``data:`` lines; the terminal ``[DONE]`` marker is kept as a string."""
    events = []
    for line in body.splitlines():
        if not line.startswith("data: "):
            continue
        payload = line[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["answer"] == "/api/ai/answer"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "cacheHealthy": True,
        "generatorHealthy": True,
    }


def test_answer_live_then_cached(client, provider):
    body = {"question": "What is a window function?", "sessionId": 7}

    live = client.post("/api/ai/answer", json=body)
    cached = client.post("/api/ai/answer", json=body)

    assert live.status_code == 200
    assert cached.status_code == 200
    assert provider.generate_calls == 1

    live_data = live.json()
    assert live_data["cached"] is False
    assert live_data["answer"] == provider.answer
    assert live_data["tokens"] == {"input": 12, "output": 34}
    assert live_data["cost"] > 0
    assert live_data["model"] == "fake-model"

    cached_data = cached.json()
    assert cached_data["cached"] is True
    assert cached_data["answer"] == provider.answer
    assert cached_data["processingTimeMs"] == 0
    assert cached_data["cost"] == 0
    assert cached_data["source"] == "memory"


def test_answer_sends_recent_context(client, provider):
    client.post(
        "/api/ai/answer",
        json={
            "question": "And how does it scale?",
            "previousQAs": [{"question": "What is Kafka?", "answer": "A distributed log."}],
        },
    )

    user_message = provider.messages[-1][-1]["content"]
    assert "Q: What is Kafka?\nA: A distributed log." in user_message


def test_answer_rejects_empty_question(client):
    response = client.post("/api/ai/answer", json={"question": ""})
    assert response.status_code == 422


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (GenerationError("provider down"), 502),
        (GenerationTimeoutError(60.0), 504),
    ],
)
def test_answer_maps_generation_failures(make_client, provider_factory, error, status_code):
    with make_client(provider_factory(fail=error)) as client:
        response = client.post("/api/ai/answer", json={"question": "What is SQL?"})
        stats = client.get("/cache/stats").json()

    assert response.status_code == status_code
    assert stats["fast"]["size"] == 0


def test_stream_live_then_replayed(client, provider):
    body = {"question": "Explain the CAP theorem", "stream": True}

    first = client.post("/api/ai/answer", json=body)
    second = client.post("/api/ai/answer", json=body)

    assert first.headers["content-type"].startswith("text/event-stream")
    assert provider.stream_calls == 1

    for response, cached in ((first, False), (second, True)):
        events = parse_sse(response.text)
        assert events[-1] == "[DONE]"
        done = events[-2]
        content = "".join(e["content"] for e in events[:-2])
        assert all(e["type"] == "content" for e in events[:-2])
        assert content == provider.answer
        assert done["type"] == "done"
        assert done["fullAnswer"] == provider.answer
        assert done["cached"] is cached


def test_stream_failure_emits_error_event(make_client, provider_factory):
    with make_client(provider_factory(fail=GenerationError("provider down"))) as client:
        response = client.post("/api/ai/answer", json={"question": "What is SQL?", "stream": True})

    events = parse_sse(response.text)
    assert response.status_code == 200
    assert events[0]["type"] == "error"
    assert "provider down" in events[0]["error"]
    assert events[-1] == "[DONE]"


def test_cache_stats(client):
    client.post("/api/ai/answer", json={"question": "What is SQL?"})
    client.post("/api/ai/answer", json={"question": "What is SQL?"})

    stats = client.get("/cache/stats").json()

    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hitRate"] == 0.5
    assert stats["sources"]["memory"] == 1
    assert stats["fast"]["size"] == 1
    assert stats["slow"]["size"] == 1
    assert stats["fast"]["evictions"] == 0
    assert stats["fast"]["ttlSeconds"] > 0
    assert stats["slow"]["failures"] == 0
    assert "ttl_seconds" not in stats["fast"]
    assert "maxSize" in stats["slow"]


def test_summary_stats(client):
    client.post("/api/ai/answer", json={"question": "What is SQL?"})
    client.post("/api/ai/answer", json={"question": "What is SQL?"})

    summary = client.get("/stats").json()

    assert summary["history"]["total_questions"] == 2
    assert summary["history"]["cached_questions"] == 1
    assert summary["cache"]["hits"] == 1


def test_clear_cache(client, provider):
    client.post("/api/ai/answer", json={"question": "What is SQL?"})

    response = client.delete("/cache")
    again = client.post("/api/ai/answer", json={"question": "What is SQL?"})

    assert response.json() == {
        "success": True,
        "deletedFast": 1,
        "deletedSlow": 1,
        "message": "Cache cleared successfully",
    }
    assert again.json()["cached"] is False
    assert provider.generate_calls == 2


def test_cleanup_cache(client):
    client.post("/api/ai/answer", json={"question": "What is SQL?"})

    response = client.post("/cache/cleanup")

    assert response.status_code == 200
    assert response.json() == {"success": True, "removed": 0}


def test_durable_tier_survives_restart(make_client, provider_factory):
    with make_client(provider_factory()) as client:
        client.post("/api/ai/answer", json={"question": "What is SQL?"})

    restarted = provider_factory()
    with make_client(restarted) as client:
        response = client.post("/api/ai/answer", json={"question": "What is SQL?"})

    assert response.json()["cached"] is True
    assert response.json()["source"] == "storage"
    assert restarted.generate_calls == 0
