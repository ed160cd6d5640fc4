# timeline_padder/utils/time_utils.py
"""
Time Utilities Module

Converts recorder timestamps (integer milliseconds) into OpenTimelineIO
time objects and seconds, and parses the fractional frame rates reported
by ffprobe.
"""

import logging
from typing import Optional, Union

import opentimelineio as otio

logger = logging.getLogger(__name__)

# Recorder timestamps are milliseconds, so a "frame" at this rate is one ms.
MILLISECOND_RATE = 1000.0


def ms_to_rational_time(timestamp_ms: int,
                        rate: float = MILLISECOND_RATE) -> otio.opentime.RationalTime:
    """
    Converts a millisecond timestamp to an otio.opentime.RationalTime.

    Args:
        timestamp_ms: Timestamp in milliseconds.
        rate: Target rate. Defaults to one unit per millisecond.

    Returns:
        A RationalTime representing the same instant.

    Raises:
        TypeError: If timestamp_ms is not numeric.
        ValueError: If rate is not positive.
    """
    if not isinstance(timestamp_ms, (int, float)):
        raise TypeError(f"Unsupported type for time conversion: {type(timestamp_ms)}")
    if rate <= 0:
        raise ValueError("A positive rate must be provided when converting millisecond time.")

    time_value = otio.opentime.RationalTime(timestamp_ms, MILLISECOND_RATE)
    if rate != MILLISECOND_RATE:
        return time_value.rescaled_to(rate)
    return time_value


def span_to_source_range(start_ms: int, stop_ms: int,
                          rate: float = MILLISECOND_RATE) -> otio.opentime.TimeRange:
    """
    Source range of a media file holding the inclusive [start_ms, stop_ms]
    span. Each fragment file starts at its own time zero, so the range
    starts at 0 and only the duration comes from the span.

    The duration covers both endpoints, so a span whose bounds are equal
    lasts one millisecond.
    """
    start = ms_to_rational_time(0, rate)
    duration = ms_to_rational_time(max(0, stop_ms - start_ms + 1), rate)
    return otio.opentime.TimeRange(start_time=start, duration=duration)


def span_to_seconds(start_ms: int, stop_ms: int) -> float:
    """Length in seconds of the inclusive [start_ms, stop_ms] span."""
    return max(0, stop_ms - start_ms + 1) / MILLISECOND_RATE


def parse_frame_rate(rate_value: Union[str, int, float, None]) -> Optional[float]:
    """
    Parses a frame rate as reported by ffprobe ("30000/1001", "25/1", "25").

    Returns:
        The frame rate as a float, or None when it cannot be parsed or is
        not positive (ffprobe reports "0/0" for streams without a rate).
    """
    if rate_value is None:
        return None
    if isinstance(rate_value, (int, float)):
        return float(rate_value) if rate_value > 0 else None

    rate_str = str(rate_value).strip()
    try:
        if '/' in rate_str:
            n, d = map(float, rate_str.split('/'))
            if d <= 0:
                return None
            rate = n / d
        else:
            rate = float(rate_str)
    except ValueError:
        logger.warning("Could not parse frame rate string: %s", rate_str)
        return None

    return rate if rate > 0 else None
