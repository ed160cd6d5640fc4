# -*- coding: utf-8 -*-
"""
timeline_padder/models.py

Data Models for the Timeline Padder.

Defines the recorded segments (events), the padding intervals planned
to fill the holes between them, probed video metadata, and the
bookkeeping for the external jobs that render blank fillers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class Namespace(Enum):
    """Recording track a padding plan is computed for."""
    VIDEO = "video"
    DESKSHARE = "deskshare"

    @property
    def prefix(self) -> str:
        """Prefix applied to every filler stream id in this namespace."""
        return "ds-" if self is Namespace.DESKSHARE else ""

    @classmethod
    def coerce(cls, value: Any) -> "Namespace":
        """Accepts a Namespace member or its string value ("video", "deskshare")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown namespace {value!r}; expected one of {[n.value for n in cls]}"
            ) from None


@dataclass(frozen=True)
class Event:
    """
    One recorded segment of the timeline.

    Attributes:
        start_timestamp: Inclusive start of coverage, in milliseconds.
        stop_timestamp: Inclusive end of coverage, in milliseconds.
        stream: Path of the recorded media file for this segment, if known.
    """
    start_timestamp: int
    stop_timestamp: int
    stream: Optional[str] = None

    @property
    def duration_ms(self) -> int:
        return self.stop_timestamp - self.start_timestamp + 1

    @classmethod
    def from_dict(cls, event_dict: Dict[str, Any]) -> "Event":
        """
        Create an Event from a dictionary.

        Raises:
            ValueError: If a timestamp key is missing or not an integer.
        """
        try:
            start = int(event_dict['start_timestamp'])
            stop = int(event_dict['stop_timestamp'])
        except KeyError as e:
            raise ValueError(f"Event is missing required key {e}: {event_dict}") from e
        except (TypeError, ValueError) as e:
            raise ValueError(f"Event timestamps must be integers: {event_dict}") from e
        return cls(start_timestamp=start, stop_timestamp=stop, stream=event_dict.get('stream'))

    def to_dict(self) -> Dict[str, Any]:
        data = {'start_timestamp': self.start_timestamp, 'stop_timestamp': self.stop_timestamp}
        if self.stream is not None:
            data['stream'] = self.stream
        return data


@dataclass(frozen=True)
class PaddingInterval:
    """
    A hole in the timeline that must be filled with a blank video.

    Attributes:
        start_timestamp: Inclusive start of the missing interval (ms).
        stop_timestamp: Inclusive end of the missing interval (ms).
        filler_stream_id: Name of the blank asset to generate, e.g.
                          "blank-beginning", "blank-3", "ds-blank-end".
        is_gap: Always True for intervals produced by the gap planner.
    """
    start_timestamp: int
    stop_timestamp: int
    filler_stream_id: str
    is_gap: bool = True

    @property
    def duration_ms(self) -> int:
        return self.stop_timestamp - self.start_timestamp + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_timestamp': self.start_timestamp,
            'stop_timestamp': self.stop_timestamp,
            'gap': self.is_gap,
            'stream': self.filler_stream_id,
        }


@dataclass
class VideoMetadata:
    """Scalar properties of a video file as reported by ffprobe."""
    height: Optional[int] = None
    width: Optional[int] = None
    duration: Optional[float] = None  # seconds
    bitrate: Optional[int] = None  # bits per second
    frame_rate: Optional[float] = None


@dataclass
class FragmentJob:
    """
    One unit of external work: rendering the blank video for a padding.

    Attributes:
        padding: The interval this job fills.
        output_path: Where the blank video is (or will be) written.
        status: 'pending', 'running', 'completed' or 'failed'.
        error_message: Last error reported for this job.
        attempts: Number of external tool invocations made so far.
    """
    padding: PaddingInterval
    output_path: str
    status: str = "pending"
    error_message: Optional[str] = None
    attempts: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def filler_stream_id(self) -> str:
        return self.padding.filler_stream_id
