"""Transcript extraction: URL to cached or freshly fetched TranscriptResult."""

import asyncio
import logging

from .cache import TranscriptCache
from .config import (
    YOUTUBE_WATCH_URL,
    get_cache_size,
    get_cache_ttl_hours,
    get_rate_limit_max_wait,
    get_transcript_languages,
    get_transcript_rate_limit,
    get_video_info_rate_limit,
    get_youtube_api_key,
)
from .discovery import extract_video_id
from .metadata import VideoInfoFetcher
from .models import TranscriptResult, TranscriptSegment, VideoMetadata
from .ratelimit import RateLimiter
from .transcript import fetch_transcript

logger = logging.getLogger(__name__)

INVALID_URL = "Invalid YouTube URL"
VIDEO_INFO_FAILED = "Failed to fetch video information"
EXTRACTION_FAILED = "Failed to extract transcript. The video might not have captions available."


def _placeholder_info(video_id: str) -> VideoMetadata:
    return VideoMetadata(
        video_id=video_id,
        title="Unknown Video",
        author="Unknown Author",
        url=YOUTUBE_WATCH_URL.format(video_id=video_id),
    )


class TranscriptExtractor:
    """Resolve YouTube links to transcripts.

    Cache hits return immediately and never touch the rate limiters.
    Misses fetch metadata and captions concurrently, and concurrent misses
    for the same video share one fetch.

    Args:
        cache: Transcript cache shared by all callers
        video_info: Metadata fetcher (owns the metadata rate limiter)
        transcript_limiter: Rate limiter for caption fetches
        languages: Preferred caption languages
    """

    def __init__(
        self,
        cache: TranscriptCache,
        video_info: VideoInfoFetcher,
        transcript_limiter: RateLimiter,
        languages: list[str] | None = None,
    ):
        self.cache = cache
        self.video_info = video_info
        self.transcript_limiter = transcript_limiter
        self.languages = languages
        self._inflight: dict[str, asyncio.Future[TranscriptResult]] = {}

    async def extract(self, url: str) -> TranscriptResult:
        """Get the transcript for a YouTube URL or video ID.

        Never raises: failures come back as a result with error set.
        """
        video_id = extract_video_id(url)
        if not video_id:
            return TranscriptResult(
                video_info=VideoMetadata(video_id="", title="", author="", url=url),
                error=INVALID_URL,
            )

        cached = self.cache.get(video_id)
        if cached is not None:
            logger.debug(f"Using cached transcript for video {video_id}")
            return cached

        task = self._inflight.get(video_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(video_id))
            self._inflight[video_id] = task
            task.add_done_callback(lambda _: self._inflight.pop(video_id, None))
        return await asyncio.shield(task)

    async def _fetch(self, video_id: str) -> TranscriptResult:
        video_info, segments = await asyncio.gather(
            self.video_info.fetch(video_id),
            fetch_transcript(video_id, self.transcript_limiter, self.languages),
            return_exceptions=True,
        )
        for outcome in (video_info, segments):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

        if isinstance(segments, Exception):
            return await self._error_result(video_id, str(segments) or EXTRACTION_FAILED)
        if not isinstance(video_info, VideoMetadata):
            return await self._error_result(video_id, VIDEO_INFO_FAILED)

        return self._build_result(video_id, video_info, segments)

    def _build_result(
        self,
        video_id: str,
        video_info: VideoMetadata,
        segments: list[TranscriptSegment],
    ) -> TranscriptResult:
        result = TranscriptResult(
            video_info=video_info,
            segments=segments,
            full_text=" ".join(segment.text for segment in segments),
        )
        self.cache.set(video_id, result)
        return result

    async def _error_result(self, video_id: str, error: str) -> TranscriptResult:
        # Second metadata attempt so the failure still shows title/author
        try:
            video_info = await self.video_info.fetch(video_id)
        except Exception as e:
            logger.warning(f"Failed to fetch video info for {video_id}: {e}")
            video_info = None

        return TranscriptResult(
            video_info=video_info or _placeholder_info(video_id),
            error=error,
        )


def create_extractor(cache: TranscriptCache | None = None) -> TranscriptExtractor:
    """Build an extractor with cache and rate limiters from config."""
    max_wait = get_rate_limit_max_wait()
    info_requests, info_window = get_video_info_rate_limit()
    transcript_requests, transcript_window = get_transcript_rate_limit()

    video_info = VideoInfoFetcher(
        rate_limiter=RateLimiter(info_requests, info_window, name="video info", max_wait=max_wait),
        api_key=get_youtube_api_key(),
    )
    return TranscriptExtractor(
        cache=cache or TranscriptCache(get_cache_size(), get_cache_ttl_hours()),
        video_info=video_info,
        transcript_limiter=RateLimiter(
            transcript_requests, transcript_window, name="transcripts", max_wait=max_wait
        ),
        languages=get_transcript_languages(),
    )
