"""
Gap Planner Module

This module works out which parts of a recording timeline are not covered
by any recorded segment and names the blank filler video that must be
generated for each of them, so that the segments and fillers can be
concatenated into one continuous file.

Timestamps are integer milliseconds. Event bounds are inclusive.
"""

import logging
from typing import Iterable, List, Sequence, Union

from ..models import Event, Namespace, PaddingInterval

# Configure logging
logger = logging.getLogger(__name__)

BEGINNING = "beginning"
END = "end"


class InvalidInputError(ValueError):
    """Raised when the events or timeline bounds cannot produce a valid plan."""
    pass


def filler_stream_id(position: Union[int, str],
                     namespace: Union[Namespace, str] = Namespace.VIDEO) -> str:
    """
    Builds the identifier of the blank asset filling a gap.

    Args:
        position: Zero-based index of the event preceding an interior gap,
                  or "beginning" / "end" for the leading and trailing gaps.
        namespace: Track the gap belongs to. Deskshare ids get a "ds-" prefix.

    Returns:
        The identifier, e.g. "blank-beginning", "blank-4", "ds-blank-end".
    """
    namespace = Namespace.coerce(namespace)
    if isinstance(position, bool) or not isinstance(position, (int, str)):
        raise TypeError(f"Unsupported gap position: {position!r}")
    if isinstance(position, str) and position not in (BEGINNING, END):
        raise ValueError(f"Gap position must be an index, '{BEGINNING}' or '{END}', got {position!r}")
    return f"{namespace.prefix}blank-{position}"


def _validate(sorted_events: Sequence[Event], first_timestamp: int, last_timestamp: int) -> None:
    if not sorted_events:
        raise InvalidInputError("Cannot plan padding for an empty event list.")

    for event in sorted_events:
        if event.stop_timestamp < event.start_timestamp:
            raise InvalidInputError(
                f"Event stops before it starts: {event.start_timestamp}-{event.stop_timestamp}")

    if first_timestamp > sorted_events[0].start_timestamp:
        raise InvalidInputError(
            f"first_timestamp {first_timestamp} is after the first event start "
            f"{sorted_events[0].start_timestamp}")

    if last_timestamp < sorted_events[-1].stop_timestamp:
        raise InvalidInputError(
            f"last_timestamp {last_timestamp} is before the last event stop "
            f"{sorted_events[-1].stop_timestamp}")

    for prev, nxt in zip(sorted_events, sorted_events[1:]):
        # Timestamps are inclusive, so a shared boundary timestamp is an overlap.
        if nxt.start_timestamp <= prev.stop_timestamp:
            raise InvalidInputError(
                f"Events overlap: {prev.start_timestamp}-{prev.stop_timestamp} and "
                f"{nxt.start_timestamp}-{nxt.stop_timestamp}")


class TimelineGapPlanner:
    """
    Plans the padding needed to turn discontinuous recorded segments into
    a continuous timeline. Holds no state; one instance can be shared.
    """

    def plan_padding(self,
                     events: Iterable[Event],
                     first_timestamp: int,
                     last_timestamp: int,
                     namespace: Union[Namespace, str] = Namespace.VIDEO) -> List[PaddingInterval]:
        """
        Determine the padding intervals required to cover the timeline.

        Events are sorted by start timestamp first; the caller's sequence is
        not modified. Events starting at the same timestamp keep their input
        order (the sort is stable), but the planner refuses overlapping events
        so such ties only occur for invalid input.

        Args:
            events: Recorded segments, in any order.
            first_timestamp: First timestamp of the whole recording.
            last_timestamp: End marker of the whole recording. The trailing
                            filler stops one millisecond before it.
            namespace: "video" or "deskshare"; selects the filler id prefix.

        Returns:
            Padding intervals in chronological order: leading gap, interior
            gaps by ascending index, trailing gap.

        Raises:
            InvalidInputError: On empty input, inverted events, overlapping
                               events, or bounds inconsistent with the events.
        """
        try:
            namespace = Namespace.coerce(namespace)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        sorted_events = sorted(events, key=lambda e: e.start_timestamp)
        _validate(sorted_events, first_timestamp, last_timestamp)

        paddings = []

        length_of_gap = sorted_events[0].start_timestamp - first_timestamp
        if length_of_gap > 0:
            paddings.append(PaddingInterval(
                start_timestamp=first_timestamp,
                stop_timestamp=sorted_events[0].start_timestamp - 1,
                filler_stream_id=filler_stream_id(BEGINNING, namespace)))

        for i in range(len(sorted_events) - 1):
            prev_event = sorted_events[i]
            next_event = sorted_events[i + 1]
            length_of_gap = next_event.start_timestamp - prev_event.stop_timestamp - 1
            if length_of_gap > 0:
                paddings.append(PaddingInterval(
                    start_timestamp=prev_event.stop_timestamp + 1,
                    stop_timestamp=next_event.start_timestamp - 1,
                    filler_stream_id=filler_stream_id(i, namespace)))

        length_of_gap = last_timestamp - sorted_events[-1].stop_timestamp - 1
        if length_of_gap > 0:
            paddings.append(PaddingInterval(
                start_timestamp=sorted_events[-1].stop_timestamp + 1,
                stop_timestamp=last_timestamp - 1,
                filler_stream_id=filler_stream_id(END, namespace)))

        logger.info("Planned %d %s padding(s) for %d event(s) over %d-%d",
                    len(paddings), namespace.value, len(sorted_events),
                    first_timestamp, last_timestamp)
        return paddings


_default_planner = TimelineGapPlanner()


def plan_padding(events: Iterable[Event], first_timestamp: int, last_timestamp: int,
                 namespace: Union[Namespace, str] = Namespace.VIDEO) -> List[PaddingInterval]:
    """Module-level shortcut for TimelineGapPlanner().plan_padding."""
    return _default_planner.plan_padding(events, first_timestamp, last_timestamp, namespace)


def generate_video_paddings(events: Iterable[Event], first_timestamp: int,
                            last_timestamp: int) -> List[PaddingInterval]:
    """Determine the webcam video padding we need to generate."""
    return plan_padding(events, first_timestamp, last_timestamp, Namespace.VIDEO)


def generate_deskshare_paddings(events: Iterable[Event], first_timestamp: int,
                                last_timestamp: int) -> List[PaddingInterval]:
    """Determine the deskshare padding we need to generate."""
    return plan_padding(events, first_timestamp, last_timestamp, Namespace.DESKSHARE)


def build_fragment_order(events: Iterable[Event],
                         paddings: Iterable[PaddingInterval]) -> List[Union[Event, PaddingInterval]]:
    """
    Interleave events and paddings by start timestamp.

    This is the order in which the fragments must be concatenated.
    """
    return sorted(list(events) + list(paddings), key=lambda f: f.start_timestamp)


def check_coverage(events: Iterable[Event], paddings: Iterable[PaddingInterval],
                   first_timestamp: int, last_timestamp: int) -> bool:
    """
    Check that events plus paddings tile the recording with no hole and
    no overlap.

    The timeline counts as covered once the fragments reach the trailing
    end marker, i.e. the last covered timestamp is at least last_timestamp - 1.
    """
    next_expected = first_timestamp
    for fragment in build_fragment_order(events, paddings):
        if fragment.start_timestamp > next_expected:
            logger.debug("Hole before %d (expected %d)", fragment.start_timestamp, next_expected)
            return False
        if fragment.start_timestamp < next_expected:
            logger.debug("Overlap at %d (expected %d)", fragment.start_timestamp, next_expected)
            return False
        next_expected = max(next_expected, fragment.stop_timestamp + 1)
    return next_expected >= last_timestamp
