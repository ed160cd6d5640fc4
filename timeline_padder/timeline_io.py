"""
Timeline I/O Module

Reads recorded events from JSON and writes padding plans, either as JSON
or as an OpenTimelineIO timeline in which recorded segments are clips
and planned paddings are gaps (or clips pointing at their rendered blanks).
"""

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import opentimelineio as otio

from .models import Event, Namespace, PaddingInterval
from .analyzer import build_fragment_order
from .utils import span_to_source_range

# Configure logging
logger = logging.getLogger(__name__)

METADATA_KEY = "timeline_padder"


def load_events(file_path: str) -> Tuple[List[Event], Dict[str, Any]]:
    """
    Read events from a JSON file.

    The file holds either a list of events or an object with an "events"
    list and optional "first_timestamp" / "last_timestamp" keys.

    Returns:
        (events, extra) where extra holds the remaining top-level keys.

    Raises:
        ValueError: If the file cannot be read or is malformed.
    """
    if not os.path.exists(file_path):
        raise ValueError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read events: %s", e)
        raise ValueError(f"Failed to read events file {file_path}: {str(e)}") from e

    extra: Dict[str, Any] = {}
    if isinstance(data, dict):
        extra = {k: v for k, v in data.items() if k != 'events'}
        data = data.get('events')
    if not isinstance(data, list):
        raise ValueError(f"Events file {file_path} must contain a list of events")

    events = [Event.from_dict(item) for item in data]
    logger.info("Loaded %d events from %s", len(events), file_path)
    return events, extra


def plan_to_json(paddings: Iterable[PaddingInterval], indent: Optional[int] = 2) -> str:
    """Serializes a padding plan to JSON."""
    return json.dumps([p.to_dict() for p in paddings], indent=indent)


def build_track(events: Iterable[Event],
                paddings: Iterable[PaddingInterval],
                namespace: Union[Namespace, str] = Namespace.VIDEO,
                blank_paths: Optional[Mapping[str, str]] = None) -> otio.schema.Track:
    """
    Build an OTIO video track holding events and paddings in timeline order.

    Every item's source_range starts at 0 within its own file; the
    recorder timestamps are kept in the item metadata.

    Args:
        events: Recorded segments. Events with a stream become clips with an
                external reference; the rest get a missing reference.
        paddings: Planned paddings.
        namespace: Track namespace, used for the track name.
        blank_paths: Optional filler_stream_id -> rendered blank video path.
                     Paddings with a rendered blank become clips, the rest
                     become OTIO gaps.

    Returns:
        A Track whose items are ordered by start timestamp.
    """
    namespace = Namespace.coerce(namespace)
    blank_paths = blank_paths or {}
    track = otio.schema.Track(name=namespace.value, kind=otio.schema.TrackKind.Video)

    for fragment in build_fragment_order(events, paddings):
        source_range = span_to_source_range(fragment.start_timestamp, fragment.stop_timestamp)
        info = {
            'start_timestamp': fragment.start_timestamp,
            'stop_timestamp': fragment.stop_timestamp,
        }

        if isinstance(fragment, PaddingInterval):
            info['gap'] = fragment.is_gap
            info['filler_stream_id'] = fragment.filler_stream_id
            blank_path = blank_paths.get(fragment.filler_stream_id)
            if blank_path:
                item = otio.schema.Clip(
                    name=fragment.filler_stream_id,
                    media_reference=otio.schema.ExternalReference(target_url=blank_path),
                    source_range=source_range
                )
            else:
                item = otio.schema.Gap(name=fragment.filler_stream_id, source_range=source_range)
        else:
            info['gap'] = False
            if fragment.stream:
                media_ref = otio.schema.ExternalReference(target_url=fragment.stream)
                name = os.path.basename(fragment.stream)
            else:
                media_ref = otio.schema.MissingReference()
                name = f"event-{fragment.start_timestamp}"
            item = otio.schema.Clip(name=name, media_reference=media_ref, source_range=source_range)

        item.metadata[METADATA_KEY] = info
        track.append(item)

    logger.debug("Built track '%s' with %d items", track.name, len(track))
    return track


def build_timeline(tracks: Iterable[otio.schema.Track], name: str = "recording") -> otio.schema.Timeline:
    """Wraps tracks into a Timeline, in the given order."""
    timeline = otio.schema.Timeline(name=name)
    for track in tracks:
        timeline.tracks.append(track)
    return timeline


def write_timeline(timeline: otio.schema.Timeline, file_path: str) -> None:
    """
    Write a timeline to disk; the adapter is chosen from the extension.

    Raises:
        ValueError: If the timeline cannot be written.
    """
    try:
        logger.info("Writing timeline '%s' to: %s", timeline.name, file_path)
        otio.adapters.write_to_file(timeline, file_path)
    except Exception as e:
        logger.error("Failed to write timeline: %s", e)
        raise ValueError(f"Failed to write timeline file {file_path}: {str(e)}") from e


def fragment_infos(track: otio.schema.Track) -> List[Dict[str, Any]]:
    """Returns the padder metadata stored on each item of a track, in order."""
    return [dict(item.metadata.get(METADATA_KEY, {})) for item in track]
