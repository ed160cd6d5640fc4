#!/usr/bin/env python3
# timeline_padder/main.py - Command-line entry point
import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import List, Optional

from .about import get_version_text
from .analyzer import InvalidInputError, plan_padding
from .ffmpeg import ExternalToolFailure
from .ffprobe_analyzer import FFProbeAnalyzer, FFProbeAnalyzerError
from .processing import PaddingService
from .settings import load_settings
from .timeline_io import build_timeline, build_track, load_events, plan_to_json, write_timeline

logger = logging.getLogger("main")

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s.%(funcName)s] %(message)s'

EXIT_OK = 0
EXIT_TOOL_FAILURE = 1
EXIT_INVALID_INPUT = 2


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    # stdout carries command output, so logs go to stderr
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeline-padder",
        description="Fill the gaps between recorded segments with blank video.")
    parser.add_argument('--version', action='version', version=get_version_text())
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    parser.add_argument('--log-file', help="Also write logs to this file")
    sub = parser.add_subparsers(dest='command', required=True)

    def add_timeline_args(p: argparse.ArgumentParser) -> None:
        p.add_argument('events', help="JSON file with the recorded events")
        p.add_argument('--first', type=int, help="First timestamp of the recording (ms)")
        p.add_argument('--last', type=int, help="Last timestamp of the recording (ms)")
        p.add_argument('--namespace', choices=['video', 'deskshare'], default='video')

    plan_parser = sub.add_parser('plan', help="Print the padding plan as JSON")
    add_timeline_args(plan_parser)
    plan_parser.add_argument('--otio', help="Also write the planned timeline to this OTIO file")

    render_parser = sub.add_parser('render', help="Render the padded, continuous video")
    add_timeline_args(render_parser)
    render_parser.add_argument('--output', required=True, help="Output video file")
    render_parser.add_argument('--audio', help="Separate audio track to multiplex in")
    render_parser.add_argument('--settings', help="JSON settings file")
    render_parser.add_argument('--otio', help="Also write the rendered timeline to this OTIO file")

    probe_parser = sub.add_parser('probe', help="Print video metadata as JSON")
    probe_parser.add_argument('video')
    probe_parser.add_argument('--settings', help="JSON settings file")

    return parser


def _resolve_bounds(args: argparse.Namespace, extra: dict) -> tuple:
    first = args.first if args.first is not None else extra.get('first_timestamp')
    last = args.last if args.last is not None else extra.get('last_timestamp')
    if first is None or last is None:
        raise InvalidInputError(
            "first and last timestamps are required (use --first/--last or put "
            "first_timestamp/last_timestamp in the events file)")
    return int(first), int(last)


def cmd_plan(args: argparse.Namespace) -> int:
    events, extra = load_events(args.events)
    first, last = _resolve_bounds(args, extra)
    paddings = plan_padding(events, first, last, args.namespace)
    print(plan_to_json(paddings))
    if args.otio:
        track = build_track(events, paddings, args.namespace)
        write_timeline(build_timeline([track]), args.otio)
    return EXIT_OK


def cmd_render(args: argparse.Namespace) -> int:
    settings = load_settings(args.settings)
    events, extra = load_events(args.events)
    first, last = _resolve_bounds(args, extra)
    service = PaddingService(settings)
    result = service.render(events, first, last, args.output,
                            namespace=args.namespace, audio_path=args.audio)
    if args.otio and result.track is not None:
        write_timeline(build_timeline([result.track]), args.otio)
    print(json.dumps({
        'output': result.output_path,
        'paddings': [p.to_dict() for p in result.paddings],
        'fragments': result.fragments,
    }, indent=2))
    return EXIT_OK


def cmd_probe(args: argparse.Namespace) -> int:
    settings = load_settings(args.settings)
    analyzer = FFProbeAnalyzer(settings.ffprobe_path)
    print(json.dumps(asdict(analyzer.get_video_metadata(args.video)), indent=2))
    return EXIT_OK


COMMANDS = {
    'plan': cmd_plan,
    'render': cmd_render,
    'probe': cmd_probe,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)
    logger.debug("Running command: %s", args.command)

    try:
        return COMMANDS[args.command](args)
    except InvalidInputError as e:
        logger.error("Invalid input: %s", e)
        return EXIT_INVALID_INPUT
    except ValueError as e:
        # Unreadable events or settings files
        logger.error("%s", e)
        return EXIT_INVALID_INPUT
    except (ExternalToolFailure, FFProbeAnalyzerError, FileNotFoundError) as e:
        logger.error("External tool failure: %s", e)
        return EXIT_TOOL_FAILURE


if __name__ == "__main__":
    sys.exit(main())
