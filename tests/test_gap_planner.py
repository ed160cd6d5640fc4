"""Tests for the timeline gap planner."""

import random

import pytest

from timeline_padder.analyzer import (
    TimelineGapPlanner,
    InvalidInputError,
    build_fragment_order,
    check_coverage,
    filler_stream_id,
    generate_deskshare_paddings,
    generate_video_paddings,
    plan_padding,
)
from timeline_padder.models import Event, Namespace, PaddingInterval


def _events(*spans):
    return [Event(start, stop) for start, stop in spans]


def _triples(paddings):
    return [(p.start_timestamp, p.stop_timestamp, p.filler_stream_id) for p in paddings]


class TestScenarios:
    """The reference scenarios of the padding plan."""

    def test_leading_interior_and_trailing_gaps(self):
        paddings = plan_padding(_events((10, 50), (80, 120)), 0, 200, "video")

        assert _triples(paddings) == [
            (0, 9, "blank-beginning"),
            (51, 79, "blank-0"),
            (121, 199, "blank-end"),
        ]
        assert all(p.is_gap for p in paddings)

    def test_fully_covered_recording_needs_no_padding(self):
        assert plan_padding(_events((0, 100)), 0, 100) == []

    def test_touching_events_need_no_padding(self):
        assert plan_padding(_events((5, 20), (21, 40)), 5, 40) == []

    def test_deskshare_namespace_prefixes_ids(self):
        paddings = plan_padding(_events((10, 50), (80, 120)), 0, 200, Namespace.DESKSHARE)

        assert _triples(paddings) == [
            (0, 9, "ds-blank-beginning"),
            (51, 79, "ds-blank-0"),
            (121, 199, "ds-blank-end"),
        ]


class TestProperties:
    """Invariants that must hold for any valid input."""

    @pytest.mark.parametrize("spans,first,last", [
        ([(10, 50), (80, 120)], 0, 200),
        ([(0, 100)], 0, 100),
        ([(5, 20), (21, 40)], 5, 40),
        ([(3, 3), (5, 5), (7, 7)], 0, 10),
        ([(100, 200), (201, 300)], 50, 400),
        ([(1000, 1999), (2500, 2600), (2601, 4000), (9000, 9500)], 0, 12000),
    ])
    def test_full_coverage(self, spans, first, last):
        events = _events(*spans)
        paddings = plan_padding(events, first, last)

        assert check_coverage(events, paddings, first, last)

    def test_random_layouts_are_fully_covered(self):
        rng = random.Random(1234)
        for _ in range(200):
            cursor = rng.randint(0, 50)
            first = cursor - rng.randint(0, 20)
            spans = []
            for _ in range(rng.randint(1, 8)):
                start = cursor + rng.randint(0, 30)
                stop = start + rng.randint(0, 40)
                spans.append((start, stop))
                cursor = stop + 1
            last = cursor + rng.randint(0, 30)
            events = _events(*spans)
            rng.shuffle(events)

            paddings = plan_padding(events, first, last)

            assert check_coverage(events, paddings, first, last), (spans, first, last)
            for padding in paddings:
                assert padding.start_timestamp <= padding.stop_timestamp

    def test_no_leading_or_trailing_padding_when_bounds_match(self):
        paddings = plan_padding(_events((10, 20), (40, 50)), 10, 50)

        assert _triples(paddings) == [(21, 39, "blank-0")]

    def test_trailing_marker_right_after_last_event_adds_nothing(self):
        assert plan_padding(_events((0, 99)), 0, 100) == []

    def test_index_stability_ignores_input_order(self):
        ordered = _events((0, 10), (20, 30), (31, 40), (60, 70))
        shuffled = [ordered[2], ordered[0], ordered[3], ordered[1]]

        paddings = plan_padding(shuffled, 0, 80)

        # Gaps follow sorted events 0 and 2; the touching pair 1/2 has none.
        assert _triples(paddings) == [
            (11, 19, "blank-0"),
            (41, 59, "blank-2"),
            (71, 79, "blank-end"),
        ]

    def test_namespace_isolation(self):
        events = _events((15, 30), (45, 60), (90, 95))
        video = plan_padding(events, 0, 120, "video")
        deskshare = plan_padding(events, 0, 120, "deskshare")

        assert [(p.start_timestamp, p.stop_timestamp) for p in video] == \
               [(p.start_timestamp, p.stop_timestamp) for p in deskshare]
        assert [f"ds-{p.filler_stream_id}" for p in video] == [p.filler_stream_id for p in deskshare]

    def test_idempotent_on_sorted_input(self):
        events = _events((40, 45), (10, 20), (60, 61))
        first_run = plan_padding(events, 0, 100)
        resorted = sorted(events, key=lambda e: e.start_timestamp)

        assert plan_padding(resorted, 0, 100) == first_run
        assert plan_padding(resorted, 0, 100) == plan_padding(resorted, 0, 100)

    def test_caller_sequence_is_not_mutated(self):
        events = _events((50, 60), (10, 20))
        snapshot = list(events)

        plan_padding(events, 0, 100)

        assert events == snapshot

    def test_accepts_any_iterable(self):
        paddings = plan_padding(iter(_events((10, 20))), 0, 30)

        assert _triples(paddings) == [(0, 9, "blank-beginning"), (21, 29, "blank-end")]

    def test_wrappers_match_namespaces(self):
        events = _events((10, 20))

        assert generate_video_paddings(events, 0, 30) == plan_padding(events, 0, 30, "video")
        assert generate_deskshare_paddings(events, 0, 30) == plan_padding(events, 0, 30, "deskshare")

    def test_planner_instance_matches_module_function(self):
        events = _events((10, 20), (30, 40))

        assert TimelineGapPlanner().plan_padding(events, 0, 50) == plan_padding(events, 0, 50)


class TestInvalidInput:
    """Malformed input fails loudly."""

    def test_empty_events(self):
        with pytest.raises(InvalidInputError, match="empty"):
            plan_padding([], 0, 100)

    def test_event_stopping_before_start(self):
        with pytest.raises(InvalidInputError, match="stops before it starts"):
            plan_padding([Event(50, 40)], 0, 100)

    def test_last_timestamp_before_last_stop(self):
        with pytest.raises(InvalidInputError, match="last_timestamp"):
            plan_padding(_events((10, 50), (60, 120)), 0, 100)

    def test_first_timestamp_after_first_start(self):
        with pytest.raises(InvalidInputError, match="first_timestamp"):
            plan_padding(_events((10, 50)), 20, 100)

    def test_overlapping_events(self):
        with pytest.raises(InvalidInputError, match="overlap"):
            plan_padding(_events((10, 50), (30, 70)), 0, 100)

    def test_shared_boundary_timestamp_is_an_overlap(self):
        with pytest.raises(InvalidInputError, match="overlap"):
            plan_padding(_events((0, 20), (20, 40)), 0, 40)

    def test_unknown_namespace(self):
        with pytest.raises(InvalidInputError, match="namespace"):
            plan_padding(_events((10, 50)), 0, 100, "audio")

    def test_invalid_input_is_a_value_error(self):
        assert issubclass(InvalidInputError, ValueError)


class TestFillerStreamId:

    @pytest.mark.parametrize("position,namespace,expected", [
        ("beginning", "video", "blank-beginning"),
        ("end", "video", "blank-end"),
        (0, "video", "blank-0"),
        (17, Namespace.VIDEO, "blank-17"),
        ("beginning", "deskshare", "ds-blank-beginning"),
        ("end", Namespace.DESKSHARE, "ds-blank-end"),
        (3, "deskshare", "ds-blank-3"),
    ])
    def test_formats(self, position, namespace, expected):
        assert filler_stream_id(position, namespace) == expected

    def test_rejects_unknown_position(self):
        with pytest.raises(ValueError):
            filler_stream_id("middle")

    def test_rejects_bool_position(self):
        with pytest.raises(TypeError):
            filler_stream_id(True)


class TestFragmentOrder:

    def test_interleaves_events_and_paddings(self):
        events = _events((80, 120), (10, 50))
        paddings = plan_padding(events, 0, 200)

        order = build_fragment_order(events, paddings)

        assert [f.start_timestamp for f in order] == [0, 10, 51, 80, 121]
        assert isinstance(order[0], PaddingInterval)
        assert isinstance(order[1], Event)

    def test_coverage_detects_hole(self):
        events = _events((10, 50))
        paddings = [PaddingInterval(0, 8, "blank-beginning")]

        assert not check_coverage(events, paddings, 0, 51)

    def test_coverage_detects_overlap(self):
        events = _events((10, 50))
        paddings = [PaddingInterval(0, 30, "blank-beginning")]

        assert not check_coverage(events, paddings, 0, 51)

    def test_coverage_rejects_shared_boundary_timestamp(self):
        events = _events((100, 200), (200, 300))
        paddings = [PaddingInterval(50, 99, "blank-beginning"), PaddingInterval(301, 399, "blank-end")]

        assert not check_coverage(events, paddings, 50, 400)

    def test_coverage_detects_short_tail(self):
        events = _events((0, 50))

        assert not check_coverage(events, [], 0, 80)
