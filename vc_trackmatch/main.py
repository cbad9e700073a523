from __future__ import annotations

import argparse
import sys
from typing import Optional, TextIO

from .logging_config import setup_logging
from .rtc.track_matcher import Kind, TrackMatcher, parse_track_ids


NO_MATCH = "-"


def _read_sdp(path: str, stdin: TextIO) -> str:
	if path == "-":
		return stdin.read()
	# undecodable bytes become U+FFFD; the parser skips lines it can't use
	with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
		return f.read()


def _kind_arg(value: str) -> str:
	try:
		return Kind.coerce(value).value
	except ValueError as e:
		raise argparse.ArgumentTypeError(str(e)) from None


def _cmd_parse(args: argparse.Namespace, sdp: str, out: TextIO) -> int:
	kinds = [Kind(args.kind)] if args.kind else list(Kind)
	for kind in kinds:
		for track_id in parse_track_ids(kind, sdp):
			print(f"{kind.value} {track_id}", file=out)
	return 0


def _cmd_match(args: argparse.Namespace, sdp: str, out: TextIO) -> int:
	matcher = TrackMatcher()
	matcher.update_all(sdp)
	for event in args.events:
		track_id = matcher.match(event)
		print(f"{event} {track_id if track_id is not None else NO_MATCH}", file=out)
	return 0


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="vc-trackmatch", description="Inspect MSID track ids in an SDP")
	parser.add_argument(
		"--log-level",
		default=None,
		help="Logging level (debug, info, warning, error). Can also use VC_TRACKMATCH_LOG_LEVEL or VC_LOG_LEVEL.",
	)
	parser.add_argument(
		"--rtc-log-level",
		default=None,
		help="Logging level for aiortc/aioice. Can also use VC_RTC_LOG_LEVEL (default warning).",
	)
	sub = parser.add_subparsers(dest="command", required=True)

	p_parse = sub.add_parser("parse", help="List track ids per kind, in SDP order")
	p_parse.add_argument("sdp_file", help="SDP file, or - for stdin")
	p_parse.add_argument("--kind", choices=[k.value for k in Kind], default=None)

	p_match = sub.add_parser("match", help="Replay kind-tagged track events against an SDP")
	p_match.add_argument("sdp_file", help="SDP file, or - for stdin")
	p_match.add_argument("events", nargs="*", type=_kind_arg, metavar="KIND", help="audio or video, in arrival order")
	return parser


def main(argv: list[str] | None = None, *, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
	parser = build_parser()
	args = parser.parse_args(argv)

	setup_logging(args.log_level, library_level=args.rtc_log_level)

	stdin = stdin or sys.stdin
	out = stdout or sys.stdout
	try:
		sdp = _read_sdp(args.sdp_file, stdin)
	except OSError as e:
		print(f"Failed to read {args.sdp_file}: {e}", file=sys.stderr)
		return 2

	if args.command == "parse":
		return _cmd_parse(args, sdp, out)
	return _cmd_match(args, sdp, out)


if __name__ == "__main__":
	raise SystemExit(main(sys.argv[1:]))
