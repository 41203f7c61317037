"""Transcript data structures and prompt formatting.

Transcripts arrive already parsed into time-ordered segments. This module
only carries them and renders them for the judge prompt; parsing audio or
documents into segments happens elsewhere.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

# Rough approximation: 1 token ~= 4 characters
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TranscriptSegment:
    """A time-bounded span of transcript text.

    Attributes:
        start: Start time in seconds (inclusive).
        end: End time in seconds (exclusive).
        text: Spoken text for this span.
        index: Optional index assigned by the transcript producer.
        speaker: Optional speaker label.
    """

    start: float
    end: float
    text: str = ""
    index: int | None = None
    speaker: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {"start": self.start, "end": self.end, "text": self.text}
        if self.index is not None:
            result["index"] = self.index
        if self.speaker is not None:
            result["speaker"] = self.speaker
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptSegment:
        """Deserialize from a dictionary."""
        index = data.get("index")
        return cls(
            start=float(data["start"]),
            end=float(data["end"]),
            text=data.get("text", ""),
            index=int(index) if index is not None else None,
            speaker=data.get("speaker"),
        )


@dataclass(frozen=True)
class Transcript:
    """Full transcript text plus its ordered segments."""

    text: str
    segments: tuple[TranscriptSegment, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {"text": self.text, "segments": [s.to_dict() for s in self.segments]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transcript:
        """Deserialize from a dictionary."""
        return cls(
            text=data["text"],
            segments=tuple(TranscriptSegment.from_dict(s) for s in data.get("segments", [])),
        )


def format_timestamp_marker(seconds: float) -> str:
    """Format seconds as ``M:SS``, or ``H:MM:SS`` from one hour on.

    Fractional seconds are floored.

    Example:
        >>> format_timestamp_marker(75.9)
        '1:15'
        >>> format_timestamp_marker(3725)
        '1:02:05'
    """
    total = int(math.floor(max(0.0, seconds)))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_transcript_with_timestamps(segments: Sequence[TranscriptSegment]) -> str:
    """Render segments one per line with a leading ``[M:SS]`` marker.

    Example:
        >>> format_transcript_with_timestamps([
        ...     TranscriptSegment(start=0, end=4, text="Engine 1 on scene"),
        ...     TranscriptSegment(start=15, end=20, text="Copy", speaker="Dispatch"),
        ... ])
        '[0:00] Engine 1 on scene\\n[0:15] Dispatch: Copy'
    """
    lines = []
    for segment in segments:
        speaker = f"{segment.speaker}: " if segment.speaker else ""
        lines.append(f"[{format_timestamp_marker(segment.start)}] {speaker}{segment.text}")
    return "\n".join(lines)


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` for deployment selection."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)
