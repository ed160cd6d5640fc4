"""Tests for event loading and OTIO export of padding plans."""

import json

import opentimelineio as otio
import pytest

from timeline_padder.analyzer import plan_padding
from timeline_padder.models import Event
from timeline_padder.timeline_io import (
    build_timeline,
    build_track,
    fragment_infos,
    load_events,
    plan_to_json,
    write_timeline,
)


@pytest.fixture
def events():
    return [Event(80, 120, '/rec/webcam-2.flv'), Event(10, 50, '/rec/webcam-1.flv')]


class TestLoadEvents:

    def test_plain_list(self, tmp_path):
        path = tmp_path / 'events.json'
        path.write_text(json.dumps([{'start_timestamp': 10, 'stop_timestamp': 50}]))

        events, extra = load_events(str(path))

        assert events == [Event(10, 50)]
        assert extra == {}

    def test_object_with_bounds(self, tmp_path):
        path = tmp_path / 'events.json'
        path.write_text(json.dumps({
            'first_timestamp': 0,
            'last_timestamp': 200,
            'events': [{'start_timestamp': 10, 'stop_timestamp': 50, 'stream': 'a.flv'}],
        }))

        events, extra = load_events(str(path))

        assert events == [Event(10, 50, 'a.flv')]
        assert extra == {'first_timestamp': 0, 'last_timestamp': 200}

    def test_missing_key(self, tmp_path):
        path = tmp_path / 'events.json'
        path.write_text(json.dumps([{'start_timestamp': 10}]))

        with pytest.raises(ValueError, match="stop_timestamp"):
            load_events(str(path))

    def test_not_a_list(self, tmp_path):
        path = tmp_path / 'events.json'
        path.write_text(json.dumps({'events': 'nope'}))

        with pytest.raises(ValueError):
            load_events(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_events(str(tmp_path / 'nothing.json'))


class TestPlanExport:

    def test_plan_to_json(self, events):
        data = json.loads(plan_to_json(plan_padding(events, 0, 200)))

        assert data[0] == {'start_timestamp': 0, 'stop_timestamp': 9, 'gap': True,
                           'stream': 'blank-beginning'}
        assert [d['stream'] for d in data] == ['blank-beginning', 'blank-0', 'blank-end']

    def test_track_orders_events_and_gaps(self, events):
        track = build_track(events, plan_padding(events, 0, 200), 'video')

        kinds = [type(item) for item in track]
        assert kinds == [otio.schema.Gap, otio.schema.Clip, otio.schema.Gap,
                         otio.schema.Clip, otio.schema.Gap]
        assert track.name == 'video'
        assert [info['start_timestamp'] for info in fragment_infos(track)] == [0, 10, 51, 80, 121]
        assert track[1].media_reference.target_url == '/rec/webcam-1.flv'

    def test_track_duration_spans_timeline(self, events):
        track = build_track(events, plan_padding(events, 0, 200))

        assert track.duration().to_seconds() == pytest.approx(0.2)

    def test_source_ranges_start_at_zero_within_each_file(self, events):
        track = build_track(events, plan_padding(events, 0, 200))

        assert [item.source_range.start_time.value for item in track] == [0, 0, 0, 0, 0]
        assert [item.source_range.duration.value for item in track] == [10, 41, 29, 41, 79]
        assert track[1].metadata['timeline_padder']['start_timestamp'] == 10
        assert track.range_of_child_at_index(3).start_time.value == 80

    def test_rendered_blanks_become_clips(self, events):
        paddings = plan_padding(events, 0, 200, 'deskshare')
        blanks = {p.filler_stream_id: f'/work/{p.filler_stream_id}.flv' for p in paddings}

        track = build_track(events, paddings, 'deskshare', blanks)

        assert all(isinstance(item, otio.schema.Clip) for item in track)
        assert track[0].name == 'ds-blank-beginning'
        assert track[0].media_reference.target_url == '/work/ds-blank-beginning.flv'
        assert fragment_infos(track)[0]['filler_stream_id'] == 'ds-blank-beginning'

    def test_event_without_stream_gets_missing_reference(self):
        track = build_track([Event(0, 10)], [])

        assert isinstance(track[0].media_reference, otio.schema.MissingReference)

    def test_write_timeline_round_trip(self, events, tmp_path):
        timeline = build_timeline([build_track(events, plan_padding(events, 0, 200))], name='session')
        path = tmp_path / 'session.otio'

        write_timeline(timeline, str(path))

        loaded = otio.adapters.read_from_file(str(path))
        assert loaded.name == 'session'
        assert len(loaded.tracks[0]) == 5
