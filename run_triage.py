# run_triage.py

import argparse
import sys

from inbox_triage.config import STRATEGIES, configure_logging, load_settings
from inbox_triage.session import State
from inbox_triage.triage import run_triage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inbox-triage",
        description="AI-assisted email triage in your terminal",
    )
    parser.add_argument(
        "-r", "--reset", action="store_true",
        help="Mark all emails as unread again before starting (for demos)",
    )
    parser.add_argument(
        "-d", "--debug", action="store_true",
        help="Show internal counters and log at DEBUG level",
    )
    parser.add_argument(
        "--strategy", choices=STRATEGIES,
        help="batch: summarize the whole batch first; streaming: one email at a time",
    )
    parser.add_argument("--data", help="Path to the mock inbox JSON file")
    parser.add_argument("--batch-size", type=int, help="Emails per batch (default 10)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    settings.reset_inbox = args.reset
    settings.debug = args.debug
    if args.strategy:
        settings.strategy = args.strategy
    if args.data:
        settings.data_path = args.data
    if args.batch_size is not None:
        settings.batch_size = args.batch_size
    try:
        settings.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings)
    controller = run_triage(settings)
    return 1 if controller.state is State.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
