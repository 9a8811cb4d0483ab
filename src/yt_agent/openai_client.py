"""Streaming chat backends (OpenAI and local Ollama) for answer generation.

Both stream plain text chunks. Backend failures are re-raised as
GenerationError subclasses so the agent can report them in one place.
"""

import json
import logging
from collections.abc import AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .config import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_TEMPERATURE,
    get_api_key,
    get_ollama_base_url,
)

logger = logging.getLogger(__name__)

GENERATION_TIMEOUT = 120.0  # seconds, per streamed response


class GenerationError(Exception):
    """A chat backend failed to produce an answer."""

    pass


class OpenAIError(GenerationError):
    """Error from OpenAI API."""

    pass


class OpenAIKeyMissing(OpenAIError):
    """OpenAI API key not configured."""

    pass


class OllamaError(GenerationError):
    """Error from Ollama API."""

    pass


class OllamaNotRunning(OllamaError):
    """Ollama server is not running."""

    pass


def get_async_client() -> AsyncOpenAI:
    """Get async OpenAI client, raising if key not configured."""
    api_key = get_api_key("OPENAI_API_KEY")
    if not api_key:
        raise OpenAIKeyMissing(
            "OPENAI_API_KEY not set. Add it to ~/.yt-agent/.env:\nOPENAI_API_KEY=sk-..."
        )
    return AsyncOpenAI(api_key=api_key, timeout=GENERATION_TIMEOUT)


def _should_retry(exc: BaseException) -> bool:
    """Only connection trouble and rate limiting are worth another try."""
    return isinstance(exc, (openai.APIConnectionError, openai.RateLimitError))


@retry(
    retry=retry_if_exception(_should_retry),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    reraise=True,
)
async def _open_openai_stream(client: AsyncOpenAI, **params):
    # Retried only until the stream opens; a broken stream is not replayed
    return await client.chat.completions.create(stream=True, **params)


async def stream_openai_chat(
    messages: list[dict],
    model: str = DEFAULT_CHAT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> AsyncIterator[str]:
    """Stream an OpenAI chat completion.

    Yields:
        Text chunks as they arrive from the API

    Raises:
        OpenAIKeyMissing: If OPENAI_API_KEY is not configured
        OpenAIError: For any API failure, before or during streaming
    """
    client = get_async_client()
    try:
        stream = await _open_openai_stream(
            client,
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content
    except openai.APIError as e:
        logger.warning(f"OpenAI chat failed ({model}): {e}")
        raise OpenAIError(f"OpenAI request failed: {e}") from e


# =============================================================================
# Ollama API (Local LLM)
# =============================================================================


def check_ollama_running() -> bool:
    """Check if Ollama server is running."""
    try:
        response = httpx.get(f"{get_ollama_base_url()}/api/tags", timeout=2.0)
        return response.status_code == 200
    except httpx.RequestError:
        return False


def _parse_ollama_line(line: str) -> str | None:
    """Content of one NDJSON frame of /api/chat, raising on error frames."""
    data = json.loads(line)
    if data.get("error"):
        raise OllamaError(f"Ollama error: {data['error']}")
    return (data.get("message") or {}).get("content")


async def stream_ollama_chat(
    messages: list[dict],
    model: str = DEFAULT_OLLAMA_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
) -> AsyncIterator[str]:
    """Stream a chat completion from a local Ollama server.

    Yields:
        Text chunks as they arrive from Ollama

    Raises:
        OllamaNotRunning: If the server cannot be reached
        OllamaError: For HTTP errors (e.g. unknown model) and error frames
    """
    payload = {
        "model": model,
        "messages": messages,
        "stream": True,
        "options": {"temperature": temperature},
    }
    try:
        async with httpx.AsyncClient(base_url=get_ollama_base_url(), timeout=GENERATION_TIMEOUT) as client:
            async with client.stream("POST", "/api/chat", json=payload) as response:
                if response.is_error:
                    await response.aread()
                    raise OllamaError(
                        f"Ollama returned {response.status_code} for model {model}: {response.text}"
                    )
                async for line in response.aiter_lines():
                    if not line:
                        continue
                    content = _parse_ollama_line(line)
                    if content:
                        yield content
    except httpx.ConnectError as e:
        raise OllamaNotRunning(
            "Ollama server not running. Start it with: sudo systemctl start ollama"
        ) from e
    except httpx.RequestError as e:
        raise OllamaError(f"Ollama request failed: {e}") from e
    except json.JSONDecodeError as e:
        raise OllamaError(f"Malformed response from Ollama: {e}") from e
