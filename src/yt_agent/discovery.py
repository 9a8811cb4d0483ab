"""YouTube link and video ID detection in free text."""

import re

# 11-character video ID grammar
_VIDEO_ID = r"([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"

# watch?v=, youtu.be/, /embed/, /v/, /e/, /shorts/, /live/ and
# /<anything>/<path>/<id> style links
YOUTUBE_URL_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.|m\.)?"
    r"(?:youtube\.com/(?:[^/\s]+/\S+/|(?:v|e(?:mbed)?|shorts|live)/|\S*?[?&]v=)|youtu\.be/)"
    + _VIDEO_ID,
    re.IGNORECASE,
)

BARE_VIDEO_ID_PATTERN = re.compile(r"^" + _VIDEO_ID + r"$")

_ANY_URL_PATTERN = re.compile(r"https?://\S+")

YOUTUBE_KEYWORDS = (
    "youtube video",
    "youtube link",
    "watch this video",
    "video transcript",
    "video summary",
    "analyze this video",
    "what does this video say",
    "video content",
    "youtube.com",
    "youtu.be",
)


def extract_video_id(url: str | None) -> str | None:
    """Extract video ID from a YouTube URL or a bare video ID."""
    if not url:
        return None
    url = url.strip()
    for pattern in (YOUTUBE_URL_PATTERN, BARE_VIDEO_ID_PATTERN):
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def detect_urls(text: str | None) -> list[str]:
    """Find YouTube links in free text.

    Returns each distinct link once, in the order first seen. Links are
    compared as written, so two spellings of the same video are both kept.
    """
    if not text:
        return []
    matches = (m.group(0) for m in YOUTUBE_URL_PATTERN.finditer(text))
    return list(dict.fromkeys(matches))


def extract_video_ids(text: str | None) -> list[str]:
    """Distinct video IDs of all YouTube links in text, in order first seen."""
    if not text:
        return []
    ids = (m.group(1) for m in YOUTUBE_URL_PATTERN.finditer(text))
    return list(dict.fromkeys(ids))


def contains_youtube_url(text: str | None) -> bool:
    """Check whether text contains at least one YouTube link."""
    if not text:
        return False
    return YOUTUBE_URL_PATTERN.search(text) is not None


def is_youtube_related(text: str | None) -> bool:
    """Check whether a message is about YouTube content.

    True if it contains a YouTube link or mentions one of YOUTUBE_KEYWORDS.
    """
    if not text:
        return False
    if contains_youtube_url(text):
        return True
    lowered = text.lower()
    return any(keyword in lowered for keyword in YOUTUBE_KEYWORDS)


def strip_urls(text: str) -> str:
    """Remove links (YouTube or otherwise) from text."""
    text = _ANY_URL_PATTERN.sub(" ", text)
    text = YOUTUBE_URL_PATTERN.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()
