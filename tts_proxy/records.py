"""
Per-request metric records.

A record is created once the outcome of a proxied request is known and is
never modified afterwards. Success and failure are separate types sharing
the common request fields, so a success always carries an audio size and
a failure always carries an error message, never both.

All instants are epoch milliseconds taken from one clock per request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional


# Content types returned to the caller, keyed by requested audio format
FORMAT_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "opus": "audio/opus",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "pcm": "audio/pcm",
}
DEFAULT_CONTENT_TYPE = "audio/mpeg"

VOICES = (
    "alloy", "ash", "ballad", "coral", "echo",
    "fable", "onyx", "nova", "sage", "shimmer",
)


def content_type_for(audio_format: str) -> str:
    """Map a requested audio format to its MIME type (mp3 when unknown)."""
    return FORMAT_CONTENT_TYPES.get(audio_format, DEFAULT_CONTENT_TYPE)


def count_words(text: Optional[str]) -> int:
    """Count whitespace-delimited, non-empty tokens."""
    if not text:
        return 0
    return len(text.split())


def iso_timestamp(epoch_ms: float) -> str:
    """Render epoch milliseconds as ISO-8601 UTC with a trailing Z."""
    instant = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _ms(value: float) -> float:
    return round(value, 3)


@dataclass(frozen=True)
class MetricRecord(ABC):
    """Fields shared by every finalized request observation."""

    timestamp: str
    text_length: int
    word_count: int
    voice: str
    request_format: str
    client_address: str

    # Timing checkpoints (epoch ms)
    request_start: float
    upstream_request_start: float
    upstream_response_end: float

    status: ClassVar[str] = ""

    @property
    @abstractmethod
    def finished_at(self) -> float:
        """Completion or failure instant (epoch ms)."""

    @property
    def total_duration(self) -> float:
        """Milliseconds from acceptance to completion or failure."""
        return self.finished_at - self.request_start

    @property
    def upstream_duration(self) -> Optional[float]:
        return None

    @property
    def audio_byte_size(self) -> Optional[int]:
        return None

    @property
    def error_message(self) -> Optional[str]:
        return None

    def _common_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "textLength": self.text_length,
            "wordCount": self.word_count,
            "voice": self.voice,
            "requestFormat": self.request_format,
            "clientAddress": self.client_address,
            "requestStart": self.request_start,
            "upstreamRequestStart": self.upstream_request_start,
            "upstreamResponseEnd": self.upstream_response_end,
        }

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """JSON object for this record; absent optional fields are omitted."""


@dataclass(frozen=True)
class SuccessRecord(MetricRecord):
    """A request whose upstream call returned audio."""

    completion_time: float
    audio_size: int

    status: ClassVar[str] = "success"

    @property
    def finished_at(self) -> float:
        return self.completion_time

    @property
    def upstream_duration(self) -> Optional[float]:
        return self.upstream_response_end - self.upstream_request_start

    @property
    def audio_byte_size(self) -> Optional[int]:
        return self.audio_size

    def to_dict(self) -> Dict[str, Any]:
        data = self._common_dict()
        data.update({
            "completionTime": self.completion_time,
            "upstreamDuration": _ms(self.upstream_duration),
            "totalDuration": _ms(self.total_duration),
            "audioByteSize": self.audio_size,
            "status": self.status,
        })
        return data


@dataclass(frozen=True)
class FailureRecord(MetricRecord):
    """A request whose upstream call failed."""

    failure_time: float
    message: str

    status: ClassVar[str] = "error"

    @property
    def finished_at(self) -> float:
        return self.failure_time

    @property
    def error_message(self) -> Optional[str]:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        data = self._common_dict()
        data.update({
            "failureTime": self.failure_time,
            "totalDuration": _ms(self.total_duration),
            "status": self.status,
            "errorMessage": self.message,
        })
        return data
