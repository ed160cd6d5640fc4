# -*- coding: utf-8 -*-
"""
timeline_padder/ffmpeg.py

Handles FFmpeg command generation and execution for the media steps
around the padding plan: blank canvas and blank video generation, audio
stripping, concatenation and audio/video multiplexing.
"""

import logging
import os
import subprocess
import tempfile
import time
from typing import List, Optional, Sequence

from .utils import find_executable

logger = logging.getLogger(__name__)

# --- Constants ---
# Default timeout for a single FFmpeg invocation (in seconds)
DEFAULT_FFMPEG_TIMEOUT = 3600  # 1 hour
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0  # seconds between attempts
DEFAULT_AUDIO_SAMPLE_RATE = 22050


class ExternalToolFailure(RuntimeError):
    """
    Raised when an external media tool fails to produce its output,
    after all retries have been used.
    """

    def __init__(self, message: str, command: Optional[Sequence[str]] = None,
                 returncode: Optional[int] = None, stderr: Optional[str] = None):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stderr = stderr


# --- FFmpeg Command Generation ---

def build_blank_canvas_command(ffmpeg_exe_path: str, width: int, height: int,
                               color: str, out_file: str) -> List[str]:
    """Single still frame of a solid color, used as the source of blank videos."""
    return [
        ffmpeg_exe_path, '-y',
        '-f', 'lavfi',
        '-i', f"color=c={color}:s={int(width)}x{int(height)}",
        '-frames:v', '1',
        out_file,
    ]


def build_blank_video_command(ffmpeg_exe_path: str, duration_seconds: float, frame_rate: float,
                              canvas_image_path: str, video_out: str,
                              codec: Optional[str] = None) -> List[str]:
    """Loops the canvas image for the requested duration at the given rate."""
    command = [
        ffmpeg_exe_path, '-y',
        '-loop', '1',
        '-t', f"{duration_seconds:.3f}",
        '-i', canvas_image_path,
        '-r', f"{frame_rate:g}",
    ]
    if codec:
        command.extend(['-vcodec', codec])
    command.append(video_out)
    return command


def build_strip_audio_command(ffmpeg_exe_path: str, video_in: str, video_out: str) -> List[str]:
    return [ffmpeg_exe_path, '-y', '-i', video_in, '-an', '-vcodec', 'copy', video_out]


def build_concat_command(ffmpeg_exe_path: str, list_file: str, video_out: str) -> List[str]:
    return [ffmpeg_exe_path, '-y', '-f', 'concat', '-safe', '0', '-i', list_file, '-c', 'copy', video_out]


def build_multiplex_command(ffmpeg_exe_path: str, audio: str, video: str, video_out: str,
                            sample_rate: int = DEFAULT_AUDIO_SAMPLE_RATE) -> List[str]:
    """Video stream is taken from `video`, audio from `audio`; `video` must be audio-free."""
    return [
        ffmpeg_exe_path, '-y',
        '-i', audio,
        '-i', video,
        '-map', '1:0', '-map', '0:0',
        '-ar', str(int(sample_rate)),
        video_out,
    ]


def write_concat_list(videos_in: Sequence[str], list_file: str) -> None:
    """Writes an ffmpeg concat demuxer list; entries keep the given order."""
    with open(list_file, 'w', encoding='utf-8') as f:
        for video in videos_in:
            escaped = os.path.abspath(video).replace("'", "'\\''")
            f.write(f"file '{escaped}'\n")


def _discard_partial_output(output_path: str) -> None:
    """Removes whatever a failed invocation left at its output path."""
    if os.path.exists(output_path):
        try:
            os.remove(output_path)
            logger.debug("Removed partial output: %s", output_path)
        except OSError as e:
            logger.warning("Could not remove partial output '%s': %s", output_path, e)


# --- FFmpeg Runner Class ---

class FFmpegRunner:
    """
    Runs the FFmpeg invocations the padding pipeline depends on.

    Every invocation is checked for a zero exit status and a non-empty
    output file. Failing invocations are retried up to `max_attempts`
    times before an ExternalToolFailure is raised.
    """

    def __init__(self, ffmpeg_path: Optional[str] = None,
                 timeout: float = DEFAULT_FFMPEG_TIMEOUT,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 retry_delay: float = DEFAULT_RETRY_DELAY):
        """
        Args:
            ffmpeg_path: Optional path to the FFmpeg executable. If None,
                         it is located with `find_executable`.
            timeout: Seconds a single invocation may run before it is killed.
            max_attempts: Invocations tried before giving up (at least 1).
            retry_delay: Seconds to wait between attempts.
        """
        if ffmpeg_path and os.path.exists(ffmpeg_path):
            self.ffmpeg_path = ffmpeg_path
        else:
            self.ffmpeg_path = find_executable("ffmpeg")

        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        self.retry_delay = max(0.0, float(retry_delay))

        if not self.ffmpeg_path:
            logger.critical(
                "FFmpeg executable not found. Media operations will fail. "
                "Please ensure FFmpeg is installed and in the system's PATH "
                "or set TIMELINE_PADDER_FFMPEG."
            )
        else:
            logger.info("FFmpegRunner initialized. Using FFmpeg at: %s", self.ffmpeg_path)

    def _require_ffmpeg(self) -> str:
        if not self.ffmpeg_path:
            raise ExternalToolFailure("FFmpeg executable was not found. Cannot run media operation.")
        return self.ffmpeg_path

    def _run_once(self, command: List[str]) -> subprocess.CompletedProcess:
        process = None
        try:
            logger.debug("Executing FFmpeg command: %s", ' '.join(command))
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='ignore',  # Ignore decoding errors in FFmpeg output
                creationflags=subprocess.CREATE_NO_WINDOW if os.name == 'nt' else 0
            )
            stdout, stderr = process.communicate(timeout=self.timeout)
            return subprocess.CompletedProcess(command, process.returncode, stdout, stderr)
        except subprocess.TimeoutExpired:
            if process:
                try:
                    process.kill()  # Terminate the runaway process
                    process.communicate()
                except OSError as kill_err:
                    logger.warning("Error trying to kill timed-out FFmpeg process: %s", kill_err)
            raise

    def run(self, command: List[str], output_path: str, description: str) -> str:
        """
        Executes `command`, retrying on failure.

        Args:
            command: Full argument list, executable first.
            output_path: File the command is expected to produce.
            description: Short label used in logs and error messages.

        Returns:
            output_path, once it exists and is non-empty. A failed attempt
            never leaves a file at output_path.

        Raises:
            ExternalToolFailure: If every attempt failed.
        """
        last_error: Optional[ExternalToolFailure] = None

        for attempt in range(1, self.max_attempts + 1):
            logger.info("%s (attempt %d/%d)", description, attempt, self.max_attempts)
            try:
                result = self._run_once(command)
            except subprocess.TimeoutExpired:
                last_error = ExternalToolFailure(
                    f"{description}: FFmpeg TIMEOUT ({self.timeout}s)", command=command)
            except OSError as e:
                last_error = ExternalToolFailure(
                    f"{description}: could not start FFmpeg: {e}", command=command)
            else:
                stderr_tail = (result.stderr or '')[-1000:]
                if result.returncode != 0:
                    last_error = ExternalToolFailure(
                        f"{description}: FFmpeg FAILED (code {result.returncode})",
                        command=command, returncode=result.returncode, stderr=stderr_tail)
                elif not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
                    last_error = ExternalToolFailure(
                        f"{description}: FFmpeg produced no output at '{output_path}'",
                        command=command, returncode=result.returncode, stderr=stderr_tail)
                else:
                    logger.info("FFmpeg SUCCESS for: %s", output_path)
                    return output_path

            _discard_partial_output(output_path)
            logger.error(str(last_error))
            if last_error.stderr:
                logger.error("FFmpeg stderr (last 1000 chars):\n%s", last_error.stderr)
            if attempt < self.max_attempts and self.retry_delay:
                time.sleep(self.retry_delay)

        raise last_error

    # --- Media operations ---

    def generate_blank_canvas(self, width: int, height: int, color: str, out_file: str) -> str:
        """
        Creates a blank image file with the specified dimension and color.

        Example:
            runner.generate_blank_canvas(1280, 720, "white", "blank_canvas.jpg")
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {width}x{height}")
        command = build_blank_canvas_command(self._require_ffmpeg(), width, height, color, out_file)
        return self.run(command, out_file, f"Blank canvas {width}x{height} ({color})")

    def generate_blank_video(self, duration_seconds: float, frame_rate: float,
                             canvas_image_path: str, video_out: str,
                             codec: Optional[str] = None) -> str:
        """
        Creates a blank video of specific length from a canvas image.

        Args:
            duration_seconds: Length of the blank video in seconds.
            frame_rate: Frame rate of the video.
            canvas_image_path: Image used to generate the video frames.
            video_out: Resulting blank video file.
            codec: Optional video codec (deskshare blanks use a screen codec).
        """
        if duration_seconds <= 0:
            raise ValueError(f"Blank video duration must be positive, got {duration_seconds}")
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")
        command = build_blank_video_command(self._require_ffmpeg(), duration_seconds, frame_rate,
                                            canvas_image_path, video_out, codec)
        return self.run(command, video_out, f"Blank video {os.path.basename(video_out)}")

    def strip_audio(self, video_in: str, video_out: str) -> str:
        """Strips the audio stream from the video file."""
        command = build_strip_audio_command(self._require_ffmpeg(), video_in, video_out)
        return self.run(command, video_out, f"Strip audio from {os.path.basename(video_in)}")

    def concatenate_videos(self, videos_in: Sequence[str], video_out: str) -> str:
        """
        Concatenates several videos into one video, in list order.
        """
        if not videos_in:
            raise ValueError("At least one video is required for concatenation")

        ffmpeg_path = self._require_ffmpeg()
        out_dir = os.path.dirname(os.path.abspath(video_out))
        fd, list_file = tempfile.mkstemp(prefix="concat-", suffix=".txt", dir=out_dir)
        os.close(fd)
        try:
            write_concat_list(videos_in, list_file)
            command = build_concat_command(ffmpeg_path, list_file, video_out)
            return self.run(command, video_out, f"Concatenate {len(videos_in)} videos")
        finally:
            try:
                os.remove(list_file)
            except OSError as e:
                logger.warning("Could not remove concat list '%s': %s", list_file, e)

    def multiplex_audio_and_video(self, audio: str, video: str, video_out: str,
                                  sample_rate: int = DEFAULT_AUDIO_SAMPLE_RATE) -> str:
        """
        Multiplexes an audio and video.

        The video file must not contain an audio stream.
        """
        command = build_multiplex_command(self._require_ffmpeg(), audio, video, video_out, sample_rate)
        return self.run(command, video_out, f"Multiplex {os.path.basename(video_out)}")
