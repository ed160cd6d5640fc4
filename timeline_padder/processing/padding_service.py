# timeline_padder/processing/padding_service.py
"""
Service responsible for turning recorded events into one continuous video:
plans the paddings, renders a blank video for each of them, and
concatenates events and blanks in timeline order.
"""

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import opentimelineio as otio

from ..analyzer import TimelineGapPlanner, InvalidInputError, build_fragment_order, check_coverage
from ..ffmpeg import FFmpegRunner, ExternalToolFailure
from ..ffprobe_analyzer import FFProbeAnalyzer, FFProbeAnalyzerError
from ..models import Event, FragmentJob, Namespace, PaddingInterval
from ..settings import PadderSettings
from ..timeline_io import build_track
from ..utils import span_to_seconds

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Outcome of rendering one namespace of a recording."""
    output_path: str
    namespace: Namespace
    paddings: List[PaddingInterval] = field(default_factory=list)
    jobs: List[FragmentJob] = field(default_factory=list)
    fragments: List[str] = field(default_factory=list)
    track: Optional[otio.schema.Track] = None


PARAMS_SUFFIX = ".params.json"


def _has_output(path: str) -> bool:
    return os.path.exists(path) and os.path.getsize(path) > 0


def _is_reusable(path: str, params: Dict[str, Any]) -> bool:
    """
    True when `path` holds a finished output that was rendered with exactly
    `params`, as recorded in its sidecar file.
    """
    if not _has_output(path) or not os.path.exists(path + PARAMS_SUFFIX):
        return False
    try:
        with open(path + PARAMS_SUFFIX, "r", encoding="utf-8") as f:
            return json.load(f) == params
    except (OSError, ValueError) as e:
        logger.warning("Unreadable render parameters for %s: %s", path, e)
        return False


def _record_params(path: str, params: Dict[str, Any]) -> None:
    with open(path + PARAMS_SUFFIX, "w", encoding="utf-8") as f:
        json.dump(params, f, sort_keys=True)


def _forget_params(path: str) -> None:
    if os.path.exists(path + PARAMS_SUFFIX):
        os.remove(path + PARAMS_SUFFIX)


class PaddingService:
    """Handles the plan -> blank rendering -> concatenation workflow."""

    def __init__(self, settings: Optional[PadderSettings] = None,
                 runner: Optional[FFmpegRunner] = None,
                 analyzer: Optional[FFProbeAnalyzer] = None,
                 planner: Optional[TimelineGapPlanner] = None):
        """
        Args:
            settings: Rendering settings; defaults are used when omitted.
            runner: FFmpeg runner; built from the settings when omitted.
            analyzer: ffprobe analyzer used to match the canvas to the
                      recording. Without one (and no ffprobe on the system)
                      the canvas size and frame rate come from the settings.
            planner: Gap planner.
        """
        self.settings = settings or PadderSettings()
        self.planner = planner or TimelineGapPlanner()
        self.runner = runner or FFmpegRunner(
            ffmpeg_path=self.settings.ffmpeg_path,
            timeout=self.settings.ffmpeg_timeout,
            max_attempts=self.settings.max_attempts,
            retry_delay=self.settings.retry_delay,
        )

        self.analyzer = analyzer
        if self.analyzer is None:
            try:
                self.analyzer = FFProbeAnalyzer(self.settings.ffprobe_path)
            except FileNotFoundError as e:
                logger.warning("ffprobe unavailable, canvas will use configured defaults: %s", e)
                self.analyzer = None

        logger.debug("PaddingService initialized.")

    def plan(self, events: Iterable[Event], first_timestamp: int, last_timestamp: int,
             namespace: Union[Namespace, str] = Namespace.VIDEO) -> List[PaddingInterval]:
        return self.planner.plan_padding(events, first_timestamp, last_timestamp, namespace)

    def _canvas_parameters(self, events: List[Event]) -> Tuple[int, int, float]:
        """
        Canvas width, height and frame rate matching the first probe-able
        recorded stream, or the configured defaults.
        """
        width = self.settings.canvas_width
        height = self.settings.canvas_height
        frame_rate = self.settings.frame_rate

        if self.analyzer is None:
            return width, height, frame_rate

        for event in sorted(events, key=lambda e: e.start_timestamp):
            if not event.stream or not os.path.exists(event.stream):
                continue
            try:
                metadata = self.analyzer.get_video_metadata(event.stream)
            except FFProbeAnalyzerError as e:
                logger.warning("Could not probe '%s', trying next recording: %s", event.stream, e)
                continue
            width = metadata.width or width
            height = metadata.height or height
            frame_rate = metadata.frame_rate or frame_rate
            logger.info("Matching blank canvas to '%s': %dx%d @ %g fps",
                        os.path.basename(event.stream), width, height, frame_rate)
            break

        return width, height, frame_rate

    def _blank_params(self, job: FragmentJob, canvas_path: str, frame_rate: float,
                      codec: Optional[str]) -> Dict[str, Any]:
        return {
            "start_timestamp": job.padding.start_timestamp,
            "stop_timestamp": job.padding.stop_timestamp,
            "duration_seconds": span_to_seconds(job.padding.start_timestamp, job.padding.stop_timestamp),
            "frame_rate": frame_rate,
            "codec": codec,
            "canvas": os.path.basename(canvas_path),
            "canvas_color": self.settings.canvas_color,
        }

    def _render_job(self, job: FragmentJob, canvas_path: str, frame_rate: float,
                    codec: Optional[str]) -> FragmentJob:
        params = self._blank_params(job, canvas_path, frame_rate, codec)
        job.metadata["render_params"] = params
        if _is_reusable(job.output_path, params):
            logger.info("Reusing existing blank video: %s", job.output_path)
            job.status = "completed"
            return job

        job.status = "running"
        job.attempts += 1
        job.error_message = None
        _forget_params(job.output_path)
        try:
            self.runner.generate_blank_video(params["duration_seconds"], frame_rate, canvas_path,
                                             job.output_path, codec)
            _record_params(job.output_path, params)
            job.status = "completed"
        except ExternalToolFailure as e:
            job.status = "failed"
            job.error_message = str(e)
        return job

    def render_blanks(self, jobs: List[FragmentJob], canvas_path: str, frame_rate: float,
                      codec: Optional[str] = None) -> List[FragmentJob]:
        """
        Renders the blank video of every job in parallel. A failed job does
        not stop the others; its status and error_message are updated.

        A blank already on disk is reused only when it was rendered for the
        same interval, frame rate, codec and canvas.
        """
        if not jobs:
            return jobs

        max_workers = max(1, min(self.settings.max_workers, len(jobs)))
        logger.info("Rendering %d blank video(s) with %d worker(s)", len(jobs), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self._render_job, job, canvas_path, frame_rate, codec): job
                       for job in jobs}
            for future in as_completed(futures):
                job = future.result()
                if job.status == "failed":
                    logger.error("Blank '%s' failed: %s", job.filler_stream_id, job.error_message)
                else:
                    logger.debug("Blank '%s' ready: %s", job.filler_stream_id, job.output_path)
        return jobs

    def render(self, events: Iterable[Event], first_timestamp: int, last_timestamp: int,
               output_path: str, namespace: Union[Namespace, str] = Namespace.VIDEO,
               audio_path: Optional[str] = None) -> RenderResult:
        """
        Render a continuous video for one namespace of a recording.

        Blank videos already present in the work directory are reused when
        their recorded render parameters match, so a render that failed on
        some blanks can simply be run again.

        Args:
            events: Recorded segments; each must carry its stream path.
            first_timestamp: First timestamp of the recording.
            last_timestamp: End marker of the recording.
            output_path: Final video file.
            namespace: "video" or "deskshare".
            audio_path: Optional separately recorded audio track. When given,
                        audio is stripped from the concatenated video and this
                        track is multiplexed in.

        Returns:
            RenderResult describing the plan, the blank jobs and the fragments used.

        Raises:
            InvalidInputError: If the events cannot be planned or lack streams.
            ExternalToolFailure: If any external step failed after retries.
        """
        namespace = Namespace.coerce(namespace)
        events = list(events)
        paddings = self.plan(events, first_timestamp, last_timestamp, namespace)

        missing = [e for e in events if not e.stream]
        if missing:
            raise InvalidInputError(
                f"{len(missing)} event(s) have no stream to concatenate, "
                f"first at {missing[0].start_timestamp}")
        if not check_coverage(events, paddings, first_timestamp, last_timestamp):
            raise InvalidInputError("Planned paddings do not cover the recording timeline")

        work_dir = self.settings.work_directory or os.path.dirname(os.path.abspath(output_path))
        os.makedirs(work_dir, exist_ok=True)

        result = RenderResult(output_path=output_path, namespace=namespace, paddings=paddings)
        ext = self.settings.video_extension.lstrip('.')
        result.jobs = [FragmentJob(padding=p, output_path=os.path.join(work_dir, f"{p.filler_stream_id}.{ext}"))
                       for p in paddings]

        if result.jobs:
            width, height, frame_rate = self._canvas_parameters(events)
            canvas_path = os.path.join(work_dir, f"{namespace.prefix}blank-canvas-{width}x{height}.jpg")
            canvas_params = {"width": width, "height": height, "color": self.settings.canvas_color}
            if not _is_reusable(canvas_path, canvas_params):
                _forget_params(canvas_path)
                self.runner.generate_blank_canvas(width, height, self.settings.canvas_color, canvas_path)
                _record_params(canvas_path, canvas_params)

            codec = self.settings.deskshare_codec if namespace is Namespace.DESKSHARE else self.settings.video_codec
            self.render_blanks(result.jobs, canvas_path, frame_rate, codec)

            failed = [job for job in result.jobs if job.status == "failed"]
            if failed:
                raise ExternalToolFailure(
                    f"{len(failed)} of {len(result.jobs)} blank video(s) failed: "
                    f"{', '.join(job.filler_stream_id for job in failed)}")

        blank_paths: Dict[str, str] = {job.filler_stream_id: job.output_path for job in result.jobs}
        result.fragments = [
            blank_paths[f.filler_stream_id] if isinstance(f, PaddingInterval) else f.stream
            for f in build_fragment_order(events, paddings)
        ]
        result.track = build_track(events, paddings, namespace, blank_paths)

        if audio_path:
            base, out_ext = os.path.splitext(os.path.basename(output_path))
            combined = os.path.join(work_dir, f"{base}-combined{out_ext}")
            silent = os.path.join(work_dir, f"{base}-silent{out_ext}")
            self.runner.concatenate_videos(result.fragments, combined)
            self.runner.strip_audio(combined, silent)
            self.runner.multiplex_audio_and_video(audio_path, silent, output_path,
                                                  self.settings.audio_sample_rate)
        else:
            self.runner.concatenate_videos(result.fragments, output_path)

        logger.info("Rendered %s timeline to %s (%d recorded, %d padding fragment(s))",
                    namespace.value, output_path, len(events), len(paddings))
        return result
