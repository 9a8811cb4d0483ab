"""Pydantic models for yt-agent."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

EventType = Literal["sources", "response", "end", "error"]


class VideoMetadata(BaseModel):
    """YouTube video metadata.

    Built from the Data API when a key is configured, otherwise from oEmbed,
    which only fills title, author and thumbnail.
    """

    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str
    author: str
    url: str
    channel_id: str | None = None
    duration: int = 0  # seconds
    thumbnail: str = ""
    published_at: str | None = None  # ISO-8601 as returned by the API
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    description: str = ""
    tags: list[str] = []
    category_id: str | None = None
    default_language: str | None = None
    default_audio_language: str | None = None
    live_broadcast_content: str | None = None  # none, live, upcoming
    dimension: str | None = None
    definition: str | None = None  # hd, sd
    caption: bool | None = None  # captions available
    licensed_content: bool | None = None
    projection: str | None = None


class TranscriptSegment(BaseModel):
    """Transcript segment with timing."""

    model_config = ConfigDict(frozen=True)

    text: str
    start: float  # seconds
    duration: float  # seconds

    @property
    def end(self) -> float:
        return self.start + self.duration


class TranscriptResult(BaseModel):
    """Metadata and transcript for one video, or the reason there is none.

    Success and failure share this shape so a batch of URLs can carry on
    past a bad link. An errored result never has segments or text.
    """

    model_config = ConfigDict(frozen=True)

    video_info: VideoMetadata
    segments: list[TranscriptSegment] = []
    full_text: str = ""
    error: str | None = None

    @model_validator(mode="after")
    def _error_has_no_content(self) -> "TranscriptResult":
        if self.error and (self.segments or self.full_text):
            raise ValueError("An errored transcript result cannot carry segments or text")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def video_id(self) -> str:
        return self.video_info.video_id


@dataclass
class CacheEntry:
    """A cached transcript result with its lifetime."""

    result: TranscriptResult
    created_at: float
    expires_at: float


@dataclass
class GenerationRequest:
    """Input for a text generator: transcript context plus the conversation."""

    context: str
    query: str
    chat_history: list[dict[str, str]] = field(default_factory=list)
    system_instructions: str = ""
    date: str = ""  # ISO-8601, UTC


@dataclass
class AgentEvent:
    """One frame of an agent turn.

    sources: list of {"page_content", "metadata"} dicts
    response: a text chunk
    end: no payload
    error: a message string
    """

    type: EventType
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        if self.type == "end":
            return {"type": self.type}
        return {"type": self.type, "data": self.data}
