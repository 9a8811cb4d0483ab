"""
Shared pytest fixtures for yt-agent tests.

Fixture Organization
--------------------
- **clock**: Manually advanced time source for the cache and rate limiters
- **video_info / make_video_info**: VideoMetadata builders
- **segments / make_result**: TranscriptSegment and TranscriptResult builders

Nothing here touches the network; fetchers are mocked per test.
"""

from collections.abc import Callable

import pytest

from yt_agent.models import TranscriptResult, TranscriptSegment, VideoMetadata

VIDEO_ID = "dQw4w9WgXcQ"
OTHER_VIDEO_ID = "9bZkp7q19f0"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def make_video_info() -> Callable[..., VideoMetadata]:
    """Build VideoMetadata with sensible defaults."""

    def _make(video_id: str = VIDEO_ID, **overrides) -> VideoMetadata:
        fields = {
            "video_id": video_id,
            "title": f"Video {video_id}",
            "author": "Test Channel",
            "url": f"https://www.youtube.com/watch?v={video_id}",
        }
        fields.update(overrides)
        return VideoMetadata(**fields)

    return _make


@pytest.fixture
def video_info(make_video_info) -> VideoMetadata:
    """Metadata for the default test video."""
    return make_video_info()


@pytest.fixture
def segments() -> list[TranscriptSegment]:
    """Three consecutive caption segments."""
    return [
        TranscriptSegment(text="Hello and welcome", start=0.0, duration=2.5),
        TranscriptSegment(text="to this video", start=2.5, duration=1.5),
        TranscriptSegment(text="about testing", start=4.0, duration=3.0),
    ]


@pytest.fixture
def make_result(make_video_info, segments) -> Callable[..., TranscriptResult]:
    """Build a successful (or, with error=..., failed) TranscriptResult."""

    def _make(video_id: str = VIDEO_ID, error: str | None = None) -> TranscriptResult:
        info = make_video_info(video_id)
        if error:
            return TranscriptResult(video_info=info, error=error)
        return TranscriptResult(
            video_info=info,
            segments=segments,
            full_text=" ".join(s.text for s in segments),
        )

    return _make
