"""Tests for YouTube link and video ID detection."""

import pytest

from yt_agent.discovery import (
    contains_youtube_url,
    detect_urls,
    extract_video_id,
    extract_video_ids,
    is_youtube_related,
    strip_urls,
)

VIDEO_ID = "dQw4w9WgXcQ"


# =============================================================================
# TestExtractVideoId
# =============================================================================


class TestExtractVideoId:
    """Tests for extract_video_id."""

    @pytest.mark.parametrize(
        "url",
        [
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtube.com/watch?v={VIDEO_ID}&t=42s",
            f"https://www.youtube.com/watch?feature=share&v={VIDEO_ID}",
            f"http://m.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}?si=abc",
            f"https://www.youtube.com/embed/{VIDEO_ID}",
            f"https://www.youtube.com/v/{VIDEO_ID}",
            f"https://www.youtube.com/e/{VIDEO_ID}",
            f"https://www.youtube.com/shorts/{VIDEO_ID}",
            f"https://www.youtube.com/live/{VIDEO_ID}",
            f"youtube.com/watch?v={VIDEO_ID}",
            f"  {VIDEO_ID}  ",
        ],
    )
    def test_recognized_forms(self, url: str) -> None:
        """Test every supported link form yields the video ID."""
        assert extract_video_id(url) == VIDEO_ID

    @pytest.mark.parametrize(
        "url",
        [
            "",
            None,
            "not a url",
            "https://example.com/watch?v=dQw4w9WgXcQ",
            "https://www.youtube.com/watch?v=short",
            "dQw4w9WgXc",  # 10 chars
            "dQw4w9WgXcQQ",  # 12 chars
        ],
    )
    def test_rejected_inputs(self, url) -> None:
        """Test non-YouTube input and malformed IDs return None."""
        assert extract_video_id(url) is None

    def test_id_with_dash_and_underscore(self) -> None:
        """Test IDs may contain - and _."""
        assert extract_video_id("https://youtu.be/a-b_c-d_e-f") == "a-b_c-d_e-f"


# =============================================================================
# TestDetectUrls
# =============================================================================


class TestDetectUrls:
    """Tests for detect_urls."""

    def test_finds_urls_in_order(self) -> None:
        """Test links come back in the order they appear."""
        text = (
            "Compare https://youtu.be/9bZkp7q19f0 with "
            f"https://www.youtube.com/watch?v={VIDEO_ID} please"
        )
        assert detect_urls(text) == [
            "https://youtu.be/9bZkp7q19f0",
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
        ]

    def test_duplicates_removed(self) -> None:
        """Test the same link twice is returned once."""
        url = f"https://youtu.be/{VIDEO_ID}"
        assert detect_urls(f"{url} and again {url}") == [url]

    def test_different_spellings_kept(self) -> None:
        """Test two spellings of one video are both returned."""
        text = f"https://youtu.be/{VIDEO_ID} https://www.youtube.com/watch?v={VIDEO_ID}"
        assert len(detect_urls(text)) == 2

    def test_no_urls(self) -> None:
        """Test text without links gives an empty list."""
        assert detect_urls("what is this video about?") == []
        assert detect_urls("") == []

    def test_stops_at_trailing_punctuation(self) -> None:
        """Test surrounding punctuation is not part of the link."""
        assert detect_urls(f"(see https://youtu.be/{VIDEO_ID}).") == [f"https://youtu.be/{VIDEO_ID}"]

    def test_every_detected_url_has_an_id(self) -> None:
        """Test detected links always resolve to a video ID."""
        text = f"https://www.youtube.com/shorts/{VIDEO_ID} youtu.be/9bZkp7q19f0"
        for url in detect_urls(text):
            assert extract_video_id(url) is not None


# =============================================================================
# TestHelpers
# =============================================================================


class TestHelpers:
    """Tests for the smaller text helpers."""

    def test_extract_video_ids_dedupes_across_spellings(self) -> None:
        """Test IDs are distinct even when links differ."""
        text = f"https://youtu.be/{VIDEO_ID} https://www.youtube.com/watch?v={VIDEO_ID} youtu.be/9bZkp7q19f0"
        assert extract_video_ids(text) == [VIDEO_ID, "9bZkp7q19f0"]

    def test_contains_youtube_url(self) -> None:
        """Test link presence check."""
        assert contains_youtube_url(f"look: https://youtu.be/{VIDEO_ID}")
        assert not contains_youtube_url("look at https://example.com")
        assert not contains_youtube_url(None)

    def test_is_youtube_related(self) -> None:
        """Test keywords count as YouTube related even without a link."""
        assert is_youtube_related("Can you summarize this YouTube video?")
        assert is_youtube_related(f"https://youtu.be/{VIDEO_ID}")
        assert not is_youtube_related("What is the weather today?")

    def test_strip_urls(self) -> None:
        """Test links are removed and whitespace collapsed."""
        text = f"What is  https://youtu.be/{VIDEO_ID} about? See https://example.com/x too"
        assert strip_urls(text) == "What is about? See too"

    def test_strip_urls_only_link(self) -> None:
        """Test a message that is only a link strips to empty."""
        assert strip_urls(f"https://www.youtube.com/watch?v={VIDEO_ID}") == ""
