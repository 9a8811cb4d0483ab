"""yt-agent: answer questions about YouTube videos from their transcripts."""

__version__ = "0.1.0"
