"""Video metadata from the YouTube Data API, with an oEmbed fallback."""

import logging
import re

import httpx

from .config import (
    DEFAULT_HTTP_TIMEOUT,
    YOUTUBE_OEMBED_URL,
    YOUTUBE_VIDEOS_API_URL,
    YOUTUBE_WATCH_URL,
)
from .models import VideoMetadata
from .ratelimit import RateLimiter, RateLimitExceeded

logger = logging.getLogger(__name__)

DATA_API_PARTS = "snippet,contentDetails,statistics,status,recordingDetails,liveStreamingDetails"

# Best first
THUMBNAIL_PREFERENCE = ("maxres", "high", "medium", "default")

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"

_ISO_DURATION = re.compile(r"P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?")


class MetadataError(Exception):
    """Error from a metadata endpoint."""

    pass


class QuotaExceeded(MetadataError):
    """YouTube Data API daily quota used up."""

    pass


def parse_iso_duration(duration: str | None) -> int:
    """Parse ISO 8601 duration to seconds. E.g., PT15M30S -> 930, P1DT2H -> 93600"""
    if not duration:
        return 0
    match = _ISO_DURATION.match(duration)
    if not match:
        return 0
    days, hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return ((days * 24 + hours) * 60 + minutes) * 60 + seconds


def pick_thumbnail(thumbnails: dict) -> str:
    """Pick the largest available thumbnail URL."""
    for size in THUMBNAIL_PREFERENCE:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return ""


def _to_int(value: str | int | None) -> int:
    """Data API counts are strings; missing counts are 0."""
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def metadata_from_api_item(video_id: str, item: dict) -> VideoMetadata:
    """Map one item of a videos.list response to VideoMetadata."""
    snippet = item.get("snippet") or {}
    details = item.get("contentDetails") or {}
    stats = item.get("statistics") or {}

    caption = details.get("caption")

    return VideoMetadata(
        video_id=video_id,
        title=snippet.get("title") or UNKNOWN_TITLE,
        author=snippet.get("channelTitle") or UNKNOWN_AUTHOR,
        url=YOUTUBE_WATCH_URL.format(video_id=video_id),
        channel_id=snippet.get("channelId"),
        duration=parse_iso_duration(details.get("duration")),
        thumbnail=pick_thumbnail(snippet.get("thumbnails") or {}),
        published_at=snippet.get("publishedAt"),
        view_count=_to_int(stats.get("viewCount")),
        like_count=_to_int(stats.get("likeCount")),
        comment_count=_to_int(stats.get("commentCount")),
        description=snippet.get("description") or "",
        tags=snippet.get("tags") or [],
        category_id=snippet.get("categoryId"),
        default_language=snippet.get("defaultLanguage"),
        default_audio_language=snippet.get("defaultAudioLanguage"),
        live_broadcast_content=snippet.get("liveBroadcastContent"),
        dimension=details.get("dimension"),
        definition=details.get("definition"),
        caption=None if caption is None else caption == "true",
        licensed_content=details.get("licensedContent"),
        projection=details.get("projection"),
    )


class VideoInfoFetcher:
    """Fetch VideoMetadata, rate limited.

    With an API key the Data API is tried first. Without one, or when it
    fails (quota included), the keyless oEmbed endpoint is used; that only
    knows title, author and thumbnail, everything else stays at defaults.

    Args:
        rate_limiter: Limiter shared by all metadata lookups
        api_key: YouTube Data API key, None for oEmbed only
        timeout: HTTP timeout in seconds
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        api_key: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rate_limiter = rate_limiter
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def fetch(self, video_id: str) -> VideoMetadata | None:
        """Fetch metadata for a video.

        Returns:
            VideoMetadata (possibly oEmbed-only), or None if no endpoint answered
        """
        try:
            await self.rate_limiter.acquire()
        except RateLimitExceeded as e:
            logger.warning(f"Skipping metadata for {video_id}: {e}")
            return None

        if self.api_key:
            try:
                return await self._fetch_from_data_api(video_id)
            except QuotaExceeded:
                logger.warning("YouTube Data API quota exceeded, falling back to oEmbed")
            except (MetadataError, httpx.HTTPError, ValueError) as e:
                logger.warning(f"Data API lookup failed for {video_id}, falling back to oEmbed: {e}")

        try:
            return await self._fetch_from_oembed(video_id)
        except (MetadataError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch video info for {video_id}: {e}")
            return None

    async def _fetch_from_data_api(self, video_id: str) -> VideoMetadata:
        async with self._client() as client:
            response = await client.get(
                YOUTUBE_VIDEOS_API_URL,
                params={"part": DATA_API_PARTS, "id": video_id, "key": self.api_key},
            )
        if response.status_code == 403 and "quota" in response.text.lower():
            raise QuotaExceeded(response.text)
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise MetadataError(f"Unexpected Data API response for {video_id}")
        items = payload.get("items") or []
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            raise MetadataError(f"Video not found: {video_id}")
        return metadata_from_api_item(video_id, items[0])

    async def _fetch_from_oembed(self, video_id: str) -> VideoMetadata:
        watch_url = YOUTUBE_WATCH_URL.format(video_id=video_id)
        async with self._client() as client:
            response = await client.get(
                YOUTUBE_OEMBED_URL,
                params={"url": watch_url, "format": "json"},
            )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise MetadataError(f"Unexpected oEmbed response for {video_id}")

        return VideoMetadata(
            video_id=video_id,
            title=data.get("title") or UNKNOWN_TITLE,
            author=data.get("author_name") or UNKNOWN_AUTHOR,
            thumbnail=data.get("thumbnail_url") or "",
            url=watch_url,
        )
