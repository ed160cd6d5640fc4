# timeline_padder/ffprobe_analyzer.py

import json
import logging
import os
import subprocess
from typing import Any, Dict, Optional

from .models import VideoMetadata
from .utils import find_executable, parse_frame_rate

logger = logging.getLogger(__name__)

DEFAULT_FFPROBE_TIMEOUT = 30  # seconds


class FFProbeAnalyzerError(Exception):
    """Custom exception for errors during ffprobe analysis."""
    pass


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value not in (None, '', 'N/A') else None
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, '', 'N/A') else None
    except (TypeError, ValueError):
        return None


def parse_video_metadata(data: Dict[str, Any]) -> VideoMetadata:
    """
    Builds VideoMetadata from `ffprobe -show_format -show_streams` JSON.

    The first video stream provides height, width and frame rate; duration
    and bitrate come from the stream, falling back to the container format.
    """
    format_data = data.get('format', {}) or {}
    streams = data.get('streams', []) or []
    video_stream = next((s for s in streams if s.get('codec_type') == 'video'), None)

    metadata = VideoMetadata()
    if video_stream is None:
        logger.warning("No video stream found in ffprobe output.")
        video_stream = {}

    metadata.height = _to_int(video_stream.get('height'))
    metadata.width = _to_int(video_stream.get('width'))
    metadata.frame_rate = (parse_frame_rate(video_stream.get('r_frame_rate'))
                           or parse_frame_rate(video_stream.get('avg_frame_rate')))
    metadata.duration = _to_float(video_stream.get('duration')) or _to_float(format_data.get('duration'))
    metadata.bitrate = _to_int(video_stream.get('bit_rate')) or _to_int(format_data.get('bit_rate'))
    return metadata


class FFProbeAnalyzer:
    """
    Reads scalar video properties (height, width, duration, bitrate,
    frame rate) with ffprobe.
    """

    def __init__(self, ffprobe_path: Optional[str] = None, timeout: float = DEFAULT_FFPROBE_TIMEOUT):
        """
        Args:
            ffprobe_path: Full path to the ffprobe executable. Located with
                          `find_executable` when omitted.
            timeout: Seconds a probe may run.

        Raises:
            FileNotFoundError: If the ffprobe executable is not found.
        """
        ffprobe_path = ffprobe_path or find_executable("ffprobe")
        if not ffprobe_path or not os.path.exists(ffprobe_path):
            raise FileNotFoundError(f"FFProbe executable not found at: {ffprobe_path}")
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout
        logger.info("FFProbeAnalyzer initialized with ffprobe: %s", self.ffprobe_path)

    def _run_ffprobe(self, file_path: str) -> Dict[str, Any]:
        """Runs ffprobe and returns the parsed JSON data."""
        command = [
            self.ffprobe_path, '-v', 'error',
            '-print_format', 'json',
            '-show_format', '-show_streams',
            file_path
        ]
        logger.debug("Running ffprobe command: %s", ' '.join(command))
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,  # Don't raise exception on non-zero exit code
                encoding='utf-8',
                errors='ignore',
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise FFProbeAnalyzerError(f"ffprobe timed out for '{os.path.basename(file_path)}'") from e
        except OSError as e:
            raise FFProbeAnalyzerError(f"Could not run ffprobe at {self.ffprobe_path}: {e}") from e

        if result.returncode != 0:
            stderr_snippet = (result.stderr or '').strip()[-500:]
            raise FFProbeAnalyzerError(
                f"ffprobe failed for '{os.path.basename(file_path)}'. "
                f"Code: {result.returncode}. Stderr: {stderr_snippet}")

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as json_err:
            logger.debug("FFprobe raw output causing parse error:\n%s...", result.stdout[:1000])
            raise FFProbeAnalyzerError(
                f"Failed to parse ffprobe JSON output for '{os.path.basename(file_path)}': {json_err}"
            ) from json_err

    def get_video_metadata(self, video_path: str) -> VideoMetadata:
        """
        Probes a video file.

        Raises:
            FFProbeAnalyzerError: If the file is missing or cannot be probed.
        """
        if not os.path.exists(video_path):
            raise FFProbeAnalyzerError(f"File not found for analysis: {video_path}")

        logger.info("Probing video: %s", os.path.basename(video_path))
        metadata = parse_video_metadata(self._run_ffprobe(video_path))
        logger.debug("Metadata for %s: %s", os.path.basename(video_path), metadata)
        return metadata

    def get_video_height(self, video_path: str) -> Optional[int]:
        return self.get_video_metadata(video_path).height

    def get_video_width(self, video_path: str) -> Optional[int]:
        return self.get_video_metadata(video_path).width

    def get_video_duration(self, video_path: str) -> Optional[float]:
        return self.get_video_metadata(video_path).duration

    def get_video_bitrate(self, video_path: str) -> Optional[int]:
        return self.get_video_metadata(video_path).bitrate

    def get_video_framerate(self, video_path: str) -> Optional[float]:
        return self.get_video_metadata(video_path).frame_rate
