# timeline_padder/utils/__init__.py
"""
TimelinePadder Utilities Package

Provides helpers for locating external executables and converting
millisecond timestamps to OpenTimelineIO time objects.
"""

from .executable_finder import find_executable

from .time_utils import (
    MILLISECOND_RATE,
    ms_to_rational_time,
    span_to_source_range,
    span_to_seconds,
    parse_frame_rate
)

# Expose functions directly at the package level
__all__ = [
    'find_executable',
    'MILLISECOND_RATE',
    'ms_to_rational_time',
    'span_to_source_range',
    'span_to_seconds',
    'parse_frame_rate'
]
