# timeline_padder/settings.py
"""
User-configurable settings for padding and rendering a recording timeline,
with JSON load/save.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class PadderSettings:
    """
    Stores all user-configurable settings for rendering a padded timeline.

    Attributes:
        canvas_color: Color of the blank frames (any ffmpeg color name or hex).
        canvas_width: Canvas width used when it cannot be probed from a recording.
        canvas_height: Canvas height used when it cannot be probed from a recording.
        frame_rate: Blank video frame rate used when it cannot be probed.
        video_extension: Container extension of generated blank videos.
        video_codec: Codec for webcam blanks (None lets ffmpeg choose).
        deskshare_codec: Codec for deskshare blanks.
        audio_sample_rate: Sample rate used when multiplexing audio back in.
        max_workers: Parallel blank-video jobs.
        max_attempts: Attempts per external invocation before it is reported failed.
        retry_delay: Seconds between attempts.
        ffmpeg_timeout: Seconds a single ffmpeg invocation may run.
        ffmpeg_path: Explicit ffmpeg executable, otherwise located automatically.
        ffprobe_path: Explicit ffprobe executable, otherwise located automatically.
        work_directory: Where canvas and blank videos are written (defaults
                        to the output file's directory).
    """
    canvas_color: str = "white"
    canvas_width: int = 640
    canvas_height: int = 480
    frame_rate: float = 15.0
    video_extension: str = "flv"
    video_codec: Optional[str] = None
    deskshare_codec: Optional[str] = "flashsv"
    audio_sample_rate: int = 22050
    max_workers: int = 4
    max_attempts: int = 3
    retry_delay: float = 2.0
    ffmpeg_timeout: float = 3600
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    work_directory: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PadderSettings":
        """Builds settings from a dict, ignoring (and logging) unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown settings keys: %s", sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_settings(file_path: Optional[str]) -> PadderSettings:
    """
    Loads settings from a JSON file. Missing keys keep their defaults.

    Args:
        file_path: Path to the JSON file, or None for defaults.

    Raises:
        ValueError: If the file cannot be read or does not hold a JSON object.
    """
    if not file_path:
        logger.debug("No settings file given, using defaults.")
        return PadderSettings()

    if not os.path.exists(file_path):
        raise ValueError(f"Settings file not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read settings from %s: %s", file_path, e)
        raise ValueError(f"Failed to read settings file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {file_path} must contain a JSON object")

    logger.info("Loaded settings from %s", file_path)
    return PadderSettings.from_dict(data)


def save_settings(settings: PadderSettings, file_path: str) -> None:
    """Writes settings to a JSON file."""
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=2)
    logger.info("Saved settings to %s", file_path)
