"""
Processing services built on top of the gap planner and the ffmpeg runner.
"""

from .padding_service import PaddingService, RenderResult

__all__ = ['PaddingService', 'RenderResult']
