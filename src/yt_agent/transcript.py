"""Transcript extraction using youtube-transcript-api."""

import asyncio
import logging

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import (
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
)
from youtube_transcript_api.proxies import GenericProxyConfig

from .config import get_proxy_url, get_transcript_languages
from .models import TranscriptSegment
from .ratelimit import RateLimiter, RateLimitExceeded

logger = logging.getLogger(__name__)

TRANSCRIPT_DISABLED = "Transcript is disabled for this video"
NO_TRANSCRIPT = "No transcript available for this video"
FETCH_FAILED = "Failed to fetch transcript"


class TranscriptError(Exception):
    """Transient error fetching transcript (retriable)."""

    pass


class TranscriptUnavailable(TranscriptError):
    """Transcript not available for this video (permanent)."""

    pass


def classify_transcript_error(exc: BaseException) -> TranscriptError:
    """Map a caption backend failure to the error shown to users."""
    message = str(exc)
    if isinstance(exc, TranscriptsDisabled) or "Transcript is disabled" in message:
        return TranscriptUnavailable(TRANSCRIPT_DISABLED)
    if isinstance(exc, (NoTranscriptFound, VideoUnavailable)) or "Could not find" in message:
        return TranscriptUnavailable(NO_TRANSCRIPT)
    return TranscriptError(FETCH_FAILED)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TranscriptError) and not isinstance(exc, TranscriptUnavailable)


def _get_api() -> YouTubeTranscriptApi:
    proxy_url = get_proxy_url()
    if proxy_url:
        return YouTubeTranscriptApi(proxy_config=GenericProxyConfig(http_url=proxy_url))
    return YouTubeTranscriptApi()


def fetch_segments(video_id: str, languages: list[str]) -> list[TranscriptSegment]:
    """Fetch caption segments (blocking, single attempt).

    Raises:
        TranscriptUnavailable: If captions are disabled or missing
        TranscriptError: For anything else
    """
    try:
        transcript_data = _get_api().fetch(video_id, languages=languages)
    except Exception as e:
        error = classify_transcript_error(e)
        if isinstance(error, TranscriptUnavailable):
            logger.info(f"{video_id}: {error}")
        else:
            logger.warning(f"Error fetching transcript for {video_id}: {e}")
        raise error from e

    # youtube-transcript-api already reports start/duration in seconds
    return [
        TranscriptSegment(text=item.text or "", start=item.start, duration=item.duration)
        for item in transcript_data
    ]


@retry(
    retry=retry_if_exception(_is_transient),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
async def _fetch_with_retry(
    video_id: str,
    rate_limiter: RateLimiter,
    languages: list[str],
) -> list[TranscriptSegment]:
    # Every attempt, retries included, takes its own rate-limit slot
    await rate_limiter.acquire()
    return await asyncio.to_thread(fetch_segments, video_id, languages)


async def fetch_transcript(
    video_id: str,
    rate_limiter: RateLimiter,
    languages: list[str] | None = None,
) -> list[TranscriptSegment]:
    """Fetch the transcript of a video, retrying transient errors.

    Each attempt waits for a slot on rate_limiter first.

    Returns:
        Segments in playback order (may be empty)

    Raises:
        TranscriptUnavailable: Captions disabled or not found
        TranscriptError: Anything else, after 3 attempts, or when the
            limiter would make an attempt wait longer than its max_wait
    """
    languages = languages or get_transcript_languages()
    try:
        return await _fetch_with_retry(video_id, rate_limiter, languages)
    except RateLimitExceeded as e:
        raise TranscriptError(FETCH_FAILED) from e
