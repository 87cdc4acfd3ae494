"""
Command-line front end for one party of secure exact pattern matching.

Usage:
    spm --my-id 0 --party 0,127.0.0.1,7777 --party 1,127.0.0.1,7778 \\
        --role pattern_holder --pattern AB --text-size 4
    spm --my-id 1 --party 0,127.0.0.1,7777 --party 1,127.0.0.1,7778 \\
        --role text_holder --text XABY --pattern-size 2

Options may also come from a JSON file (--config-file) whose keys are the
long option names with dashes replaced by underscores. Command-line values
take precedence.
"""

import argparse
import json
import logging
import re
import sys
from pathlib import Path
from typing import Optional

from .backend.channel import open_tcp_channel
from .backend.stats import format_stats
from .errors import BackendFailure, InvalidInput
from .matching.messages import MatchReport
from .matching.params import ProtocolParams, RoleName
from .primitives import DIGEST_SIZE
from .session import run_party

logger = logging.getLogger(__name__)

_PARTY_RE = re.compile(r"([01]),([^,]+),(\d{1,5})")


def parse_party(value: str) -> tuple[int, tuple[str, int]]:
    """Parse 'ID,HOST,PORT'."""
    match = _PARTY_RE.fullmatch(value)
    if match is None:
        raise argparse.ArgumentTypeError(f"invalid party argument: {value!r} (expected ID,HOST,PORT)")
    port = int(match.group(3))
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"invalid port: {port}")
    return int(match.group(1)), (match.group(2), port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spm",
        description="Two-party secure exact pattern matching",
    )
    parser.add_argument("--config-file", type=Path, help="JSON file with default option values")
    parser.add_argument("--my-id", type=int, choices=[0, 1], help="my party id")
    parser.add_argument(
        "--party", type=parse_party, action="append",
        help="(party id, host, port), e.g. --party 1,127.0.0.1,7777; give one per party",
    )
    parser.add_argument("--role", choices=[r.value for r in RoleName], help="which input this party holds")
    parser.add_argument("--pattern", help="pattern string (pattern holder)")
    parser.add_argument("--text", help="text string (text holder)")
    parser.add_argument("--pattern-size", type=int, help="expected pattern size (text holder)")
    parser.add_argument("--text-size", type=int, help="expected text size (pattern holder)")
    parser.add_argument("--repetitions", type=int, default=1, help="number of repetitions")
    parser.add_argument("--json", action="store_true", help="output results and statistics as JSON")
    parser.add_argument("--no-run", action="store_true", help="validate and show circuit size, but do not run")
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging verbosity",
    )
    return parser


def load_config(path: Path) -> dict:
    """Read option defaults from a JSON object."""
    try:
        config = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidInput(f"cannot read config file {path}: {e}") from e
    if not isinstance(config, dict):
        raise InvalidInput(f"config file {path} must contain a JSON object")
    if "party" in config:
        config["party"] = [parse_party(p) for p in config["party"]]
    return config


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse arguments, merging a config file underneath the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.config_file is not None:
        try:
            config = load_config(args.config_file)
        except (InvalidInput, argparse.ArgumentTypeError) as e:
            parser.error(str(e))
        # "append" would extend a default list, so parties are merged by hand.
        config_parties = config.pop("party", None)
        parser.set_defaults(**config)
        args = parser.parse_args(argv)
        if args.party is None:
            args.party = config_parties

    if args.my_id is None:
        parser.error("--my-id is required")
    if args.role is None:
        parser.error("--role is required")
    if args.role == RoleName.PATTERN_HOLDER.value:
        if args.pattern is None:
            parser.error("pattern_holder must provide --pattern")
        if args.text_size is None:
            parser.error("pattern_holder must provide expected text size via --text-size")
    else:
        if args.text is None:
            parser.error("text_holder must provide --text")
        if args.pattern_size is None:
            parser.error("text_holder must provide expected pattern size via --pattern-size")
    if not args.no_run:
        parties = dict(args.party or [])
        if len(args.party or []) != 2 or set(parties) != {0, 1}:
            parser.error("need --party options for party 0 and 1")
        args.parties = parties
    return args


def own_input_and_peer_size(args: argparse.Namespace) -> tuple[str, int]:
    if args.role == RoleName.PATTERN_HOLDER.value:
        return args.pattern, args.text_size
    return args.text, args.pattern_size


def describe_circuit(params: ProtocolParams) -> dict:
    """Request counts for one repetition."""
    num_windows = params.num_windows
    return {
        "windows": num_windows,
        "character_sharings": params.pattern_size + num_windows * params.pattern_size,
        "digest_sharings": 2 * num_windows * DIGEST_SIZE,
        "zero_tests": num_windows * DIGEST_SIZE,
        "and_gates": num_windows * (DIGEST_SIZE - 1),
    }


def print_report(args: argparse.Namespace, report: MatchReport) -> None:
    if args.json:
        out = report.to_dict()
        out["party_id"] = args.my_id
        out["role"] = args.role
        print(json.dumps(out))
        return

    for rep, result in enumerate(report.repetitions):
        print(f"Repetition {rep}:")
        for match in result.matches:
            print(f"  Window {match.window}: {'EQUAL' if match.matched else 'NOT EQUAL'}")
        print(f"  Pattern found: {'yes' if result.pattern_found else 'no'}")
    print(format_stats("Exact Pattern Matching", report.stats))


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    own_input, peer_size = own_input_and_peer_size(args)

    try:
        params = ProtocolParams.for_input(args.role, args.my_id, own_input, peer_size, args.repetitions)
    except InvalidInput as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.no_run:
        plan = describe_circuit(params)
        if args.json:
            print(json.dumps(plan))
        else:
            for name, count in plan.items():
                print(f"{name}: {count}")
        return 0

    channel = None
    try:
        channel = open_tcp_channel(args.my_id, args.parties)
        report = run_party(channel, args.role, args.my_id, own_input, peer_size, args.repetitions)
    except InvalidInput as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except BackendFailure as e:
        print(f"error: {e}", file=sys.stderr)
        if e.partial:
            print_report(args, MatchReport(repetitions=e.partial))
        return 1
    finally:
        if channel is not None:
            channel.close()

    print_report(args, report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
