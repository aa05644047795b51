#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from pydantic import ValidationError

from chatkeep.adapters.sources import PageSnapshot, UnsupportedPageError
from chatkeep.app import capture_snapshot, list_conversations, show_conversation
from chatkeep.config import ConfigurationError, configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from chatkeep.app import CaptureReport
    from chatkeep.domain.model import Conversation


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep local copies of chat conversations")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    capture = commands.add_parser("capture", help="Reconcile a rendered page snapshot")
    capture.add_argument(
        "--snapshot",
        type=Path,
        required=True,
        help="JSON page snapshot (url, title, body element tree)",
    )
    capture.add_argument("--url", help="Page URL (defaults to the snapshot's url)")
    capture.add_argument(
        "--conversation-id",
        help="Reconcile into this stored conversation instead of looking it up by link",
    )

    show = commands.add_parser("show", help="Print a stored conversation")
    show.add_argument("conversation_id")

    commands.add_parser("list", help="List stored conversations")
    return parser.parse_args(list(argv))


def _load_snapshot(path: Path) -> PageSnapshot:
    try:
        return PageSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read snapshot {path}: {exc}") from exc
    except ValidationError as exc:
        raise ValueError(f"Invalid snapshot {path}: {exc}") from exc


def _print_report(report: CaptureReport) -> None:
    if report.conversation_id is None:
        print("Nothing captured")
        return
    result = report.result
    if result is None:
        print(f"{report.conversation_id}: not reconciled")
        return
    counts = ", ".join(f"{name}={count}" for name, count in result.changes.summary().items())
    status = "skipped" if result.skipped else counts
    print(f"{report.conversation_id}: {result.mode} ({status})")
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)


def _print_conversation(conversation: Conversation) -> None:
    print(f"{conversation.title or '(untitled)'} [{conversation.platform}]")
    print(conversation.link)
    for message in conversation.messages:
        print(f"\n#{message.position} {message.sender}:")
        if message.thinking:
            print(f"  (thinking) {message.thinking}")
        print(message.content)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        parsed_args = _parse_args(argv if argv is not None else sys.argv[1:])
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        snapshot = (
            _load_snapshot(parsed_args.snapshot) if parsed_args.command == "capture" else None
        )
    except (ValueError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        if snapshot is not None:
            report = capture_snapshot(
                snapshot,
                url=parsed_args.url,
                conversation_id=parsed_args.conversation_id,
            )
            _print_report(report)
            if report.result is not None and not report.result.success:
                sys.exit(1)
        elif parsed_args.command == "show":
            conversation = show_conversation(parsed_args.conversation_id)
            if conversation is None:
                print(f"Error: conversation {parsed_args.conversation_id} not found", file=sys.stderr)
                sys.exit(1)
            _print_conversation(conversation)
        else:
            for conversation in list_conversations():
                print(
                    f"{conversation.conversation_id}\t{conversation.platform}\t"
                    f"{conversation.message_count}\t{conversation.title or ''}"
                )
    except (UnsupportedPageError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
