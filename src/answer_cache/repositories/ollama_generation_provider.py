"""Ollama-based chat-completion provider.

Uses Ollama's local chat API to generate answers, blocking or streamed.

Requirements:
    - Ollama installed: https://ollama.com
    - Model pulled: `ollama pull llama3.2`
    - Ollama running: `ollama serve` (usually runs automatically)

Ollama streams newline-delimited JSON objects. Each carries
``message.content``; the last has ``done: true`` and the usage counters
``prompt_eval_count`` (input) and ``eval_count`` (output).
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from answer_cache.config import settings
from answer_cache.entities import GenerationChunkEntity, GenerationResultEntity
from answer_cache.exceptions import GenerationError


class OllamaGenerationProvider:
    """Ollama-based implementation of GenerationProvider protocol.

    This class satisfies the GenerationProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = OllamaGenerationProvider.create(model_name="llama3.2")

        result = await provider.generate([{"role": "user", "content": "What is a CTE?"}])
        print(result.text)

        async for chunk in provider.stream(messages):
            print(chunk.content, end="")
        ```
    """

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Ollama generation provider.

        Args:
            model_name: Name of the Ollama chat model.
                       Defaults to settings.generation_model.
            base_url: Ollama API base URL.
                     Defaults to settings.ollama_base_url.
            timeout: HTTP timeout in seconds. Defaults to settings.generation_timeout.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        self._model_name = model_name or settings.generation_model
        self._base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self._timeout = timeout or settings.generation_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    @classmethod
    def create(
        cls,
        model_name: str | None = None,
        base_url: str | None = None,
    ) -> "OllamaGenerationProvider":
        """Factory method to create OllamaGenerationProvider with defaults.

        Args:
            model_name: Model name. If None, uses settings.
            base_url: Ollama API URL. If None, uses settings.

        Returns:
            Configured OllamaGenerationProvider
        """
        return cls(model_name=model_name, base_url=base_url)

    @property
    def model_name(self) -> str:
        """Get the model name/identifier."""
        return self._model_name

    def _payload(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None,
        stream: bool,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._model_name,
            "messages": messages,
            "stream": stream,
        }
        if max_tokens:
            payload["options"] = {"num_predict": max_tokens}
        return payload

    def _error(self, e: Exception) -> GenerationError:
        error_msg = f"Ollama API error: {e}"
        if "connection refused" in str(e).lower() or isinstance(e, httpx.ConnectError):
            error_msg += "\n  → Is Ollama running? Try: ollama serve"
        elif "model" in str(e).lower() and "not found" in str(e).lower():
            error_msg += f"\n  → Model not found. Try: ollama pull {self._model_name}"
        return GenerationError(error_msg)

    async def generate(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
    ) -> GenerationResultEntity:
        """Generate a complete answer.

        Raises:
            GenerationError: If the Ollama API request fails or the response is malformed
        """
        url = f"{self._base_url}/api/chat"
        try:
            response = await self.client.post(url, json=self._payload(messages, max_tokens, False))
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise self._error(e) from e

        if "error" in data:
            raise self._error(RuntimeError(data["error"]))
        message = data.get("message")
        if not isinstance(message, dict) or "content" not in message:
            raise GenerationError(f"Unexpected response format: {data}")

        return GenerationResultEntity(
            text=message["content"],
            model=data.get("model", self._model_name),
            input_tokens=data.get("prompt_eval_count"),
            output_tokens=data.get("eval_count"),
        )

    async def stream(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
    ) -> AsyncIterator[GenerationChunkEntity]:
        """Generate an answer incrementally.

        Yields:
            One chunk per streamed line; the final chunk has ``done=True``

        Raises:
            GenerationError: If the Ollama API request fails mid-stream
        """
        url = f"{self._base_url}/api/chat"
        try:
            async with self.client.stream(
                "POST", url, json=self._payload(messages, max_tokens, True)
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if "error" in data:
                        raise self._error(RuntimeError(data["error"]))
                    content = (data.get("message") or {}).get("content", "")
                    done = bool(data.get("done"))
                    yield GenerationChunkEntity(
                        content=content,
                        done=done,
                        input_tokens=data.get("prompt_eval_count") if done else None,
                        output_tokens=data.get("eval_count") if done else None,
                    )
                    if done:
                        return
        except (httpx.HTTPError, ValueError) as e:
            raise self._error(e) from e

    async def is_available(self) -> bool:
        """Check if Ollama is running.

        Returns:
            True if the API answers, False otherwise
        """
        try:
            response = await self.client.get(f"{self._base_url}/api/tags")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
