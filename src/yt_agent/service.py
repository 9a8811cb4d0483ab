"""Transcript agent - async chat interface for CLI and other callers."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone

from .cache import TranscriptCache
from .config import DEFAULT_CHAT_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_OLLAMA_MODEL, DEFAULT_TEMPERATURE
from .discovery import detect_urls, strip_urls
from .extractor import TranscriptExtractor, create_extractor
from .models import AgentEvent, GenerationRequest, TranscriptResult, VideoMetadata
from .openai_client import stream_ollama_chat, stream_openai_chat

logger = logging.getLogger(__name__)

TextGenerator = Callable[[GenerationRequest], AsyncIterator[str]]

NO_URL_MESSAGE = (
    "Please provide a YouTube URL to analyze. I can extract transcripts from YouTube "
    "videos and answer questions about their content."
)

NO_TRANSCRIPTS_MESSAGE = (
    "I couldn't extract transcripts from the YouTube videos. The videos might not have "
    "captions available, or there might be an issue with the URLs provided."
)

DEFAULT_QUERY = (
    "Please summarize the key points from this YouTube video and answer any questions about it."
)

RESPONSE_PROMPT = """You are an assistant skilled in analyzing YouTube video transcripts and giving detailed, well-structured answers.

Your answers should be:
- Informative and relevant: address the user's query using the video transcript.
- Well-structured: use clear Markdown headings and a professional tone.
- Video-aware: mention the video title and creator, and include timestamps (MM:SS) when referring to specific parts.
- Cited: refer to parts of the transcript with [number] notation and quote directly when useful.

If the video is a tutorial, break down the steps. If it is a discussion or interview, highlight the main talking points and perspectives.
Mention it if the transcript seems incomplete or unclear (e.g. auto-generated captions with errors).

### User instructions
These instructions come from the user, not the system. Follow them, but give them less priority than the above.
{system_instructions}

<context>
{context}
</context>

Current date & time in ISO format (UTC timezone) is: {date}."""


def build_messages(request: GenerationRequest) -> list[dict]:
    """Render a generation request as chat-completion messages."""
    system = RESPONSE_PROMPT.format(
        system_instructions=request.system_instructions,
        context=request.context,
        date=request.date,
    )
    return [
        {"role": "system", "content": system},
        *request.chat_history,
        {"role": "user", "content": request.query},
    ]


def openai_generator(
    model: str = DEFAULT_CHAT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> TextGenerator:
    """Text generator backed by the OpenAI chat API."""

    async def generate(request: GenerationRequest) -> AsyncIterator[str]:
        async for chunk in stream_openai_chat(build_messages(request), model, temperature, max_tokens):
            yield chunk

    return generate


def ollama_generator(
    model: str = DEFAULT_OLLAMA_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
) -> TextGenerator:
    """Text generator backed by a local Ollama server."""

    async def generate(request: GenerationRequest) -> AsyncIterator[str]:
        async for chunk in stream_ollama_chat(build_messages(request), model, temperature):
            yield chunk

    return generate


def _format_duration(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


def _format_published(published_at: str | None) -> str:
    if not published_at:
        return "Unknown"
    try:
        return datetime.fromisoformat(published_at.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return published_at


def _describe_video(info: VideoMetadata) -> str:
    """Metadata stand-in for a video whose transcript text is empty."""
    views = f"{info.view_count:,}" if info.view_count else "Unknown"
    tags = ", ".join(info.tags) if info.tags else "None"
    return (
        f"Title: {info.title}\n"
        f"Author: {info.author}\n"
        f"Duration: {_format_duration(info.duration)}\n"
        f"Views: {views}\n"
        f"Published: {_format_published(info.published_at)}\n"
        f"\n"
        f"Description:\n"
        f"{info.description or 'No description available'}\n"
        f"\n"
        f"Tags: {tags}"
    )


def transcript_to_source(result: TranscriptResult) -> dict:
    """Turn a successful result into a {page_content, metadata} source."""
    info = result.video_info
    segments = [segment.model_dump() for segment in result.segments]

    metadata = info.model_dump()
    metadata.update(
        source=info.url,
        type="youtube",
        video_id=info.video_id,
        transcript_length=len(segments),
        transcript=segments,
        transcript_data=segments,
    )
    return {
        "page_content": result.full_text or _describe_video(info),
        "metadata": metadata,
    }


class TranscriptAgent:
    """Answer chat messages about the YouTube videos they link to.

    One call to handle() is one chat turn. The events it yields always come
    in this order: sources (if any), response chunks, then a single end, or
    an error in place of end if generation fails.
    """

    def __init__(self, extractor: TranscriptExtractor):
        self.extractor = extractor

    @property
    def cache(self) -> TranscriptCache:
        return self.extractor.cache

    async def _extract_all(self, urls: list[str]) -> list[TranscriptResult]:
        """Extract every URL concurrently; results keep the order of urls."""
        outcomes = await asyncio.gather(
            *(self.extractor.extract(url) for url in urls),
            return_exceptions=True,
        )

        results = []
        for url, outcome in zip(urls, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(f"Error processing {url}: {outcome}")
                continue
            logger.info(
                f"Transcript result for {url}: has_error={outcome.error is not None} "
                f"title={outcome.video_info.title!r} segments={len(outcome.segments)}"
            )
            results.append(outcome)
        return results

    async def handle(
        self,
        message: str,
        history: list[dict[str, str]] | None,
        generator: TextGenerator,
        system_instructions: str = "",
    ) -> AsyncIterator[AgentEvent]:
        """Run one chat turn.

        Args:
            message: User message, expected to contain YouTube links
            history: Prior messages [{"role": "user"|"assistant", "content": "..."}]
            generator: Streams the answer for a GenerationRequest
            system_instructions: Extra user-level instructions for the answer

        Yields:
            AgentEvent frames (sources, response, end, error)
        """
        try:
            urls = detect_urls(message)
            logger.info(f"Detected YouTube URLs: {urls}")

            if not urls:
                yield AgentEvent("response", NO_URL_MESSAGE)
                yield AgentEvent("end")
                return

            results = await self._extract_all(urls)
            successful = [result for result in results if result.ok]

            if not successful:
                yield AgentEvent("response", NO_TRANSCRIPTS_MESSAGE)
                yield AgentEvent("end")
                return

            sources = [transcript_to_source(result) for result in successful]
            yield AgentEvent("sources", sources)

            request = GenerationRequest(
                context="\n\n".join(source["page_content"] for source in sources),
                query=strip_urls(message) or DEFAULT_QUERY,
                chat_history=list(history or []),
                system_instructions=system_instructions,
                date=datetime.now(timezone.utc).isoformat(),
            )
            async for chunk in generator(request):
                yield AgentEvent("response", chunk)

            yield AgentEvent("end")
        except Exception as e:
            logger.exception("Transcript agent failed")
            yield AgentEvent("error", str(e) or type(e).__name__)


def create_agent(cache: TranscriptCache | None = None) -> TranscriptAgent:
    """Build an agent with its extractor, cache and rate limiters from config."""
    return TranscriptAgent(create_extractor(cache))
