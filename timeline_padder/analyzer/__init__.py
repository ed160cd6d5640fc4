"""
TimelinePadder Analyzer Module

This module provides the gap planner that decides where a recording
timeline needs blank padding and what the filler assets are called.
"""

from .gap_planner import (
    TimelineGapPlanner,
    InvalidInputError,
    plan_padding,
    filler_stream_id,
    generate_video_paddings,
    generate_deskshare_paddings,
    build_fragment_order,
    check_coverage
)

__all__ = [
    'TimelineGapPlanner',
    'InvalidInputError',
    'plan_padding',
    'filler_stream_id',
    'generate_video_paddings',
    'generate_deskshare_paddings',
    'build_fragment_order',
    'check_coverage'
]
