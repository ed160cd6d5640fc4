# timeline_padder/__init__.py
from .about import TLP_VERSION as __version__
from .models import Event, PaddingInterval, Namespace, VideoMetadata, FragmentJob
from .analyzer import TimelineGapPlanner, InvalidInputError, plan_padding, filler_stream_id
from .ffmpeg import FFmpegRunner, ExternalToolFailure
from .processing import PaddingService

__all__ = ['Event', 'PaddingInterval', 'Namespace', 'VideoMetadata', 'FragmentJob',
           'TimelineGapPlanner', 'InvalidInputError', 'plan_padding', 'filler_stream_id',
           'FFmpegRunner', 'ExternalToolFailure', 'PaddingService', '__version__']
