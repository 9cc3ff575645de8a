# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""``orch`` command line: daemon, status report, session jump, mailbox writes."""

import argparse
import logging
import sys

from . import __version__, daemon, mailbox, sessions, tasks, watch
from .config import MAILBOX_DIR, TASKS_DIR

log = logging.getLogger(__name__)


def cmd_status(args) -> int:
    watch.render_status(TASKS_DIR, MAILBOX_DIR)
    return 0


def cmd_watch(args) -> int:
    watch.main(interval=args.interval, tasks_dir=TASKS_DIR, mailbox_dir=MAILBOX_DIR)
    return 0


def cmd_jump(args) -> int:
    session = tasks.resolve_session(args.name, TASKS_DIR)
    if not sessions.exists(session):
        print(f"No tmux session '{session}' found.", file=sys.stderr)
        live = sessions.list_sessions()
        if live:
            print("Running sessions:", file=sys.stderr)
            for name in live:
                print(f"  {name}", file=sys.stderr)
        return 1
    return sessions.attach(session)


def _send(message: str) -> int:
    try:
        entry = mailbox.enqueue(message, MAILBOX_DIR)
    except OSError as e:
        log.error(f"Failed to write to mailbox {MAILBOX_DIR}: {e}")
        return 1
    log.debug(f"Wrote {entry}")
    return 0


def cmd_scan(args) -> int:
    status = _send(daemon.SCAN_MSG)
    if status == 0:
        print("Scan triggered", file=sys.stderr)
    return status


def cmd_msg(args) -> int:
    message = " ".join(args.message).strip()
    if not message:
        print("Refusing to send an empty message", file=sys.stderr)
        return 2
    status = _send(message)
    if status == 0:
        print("Message sent", file=sys.stderr)
    return status


def cmd_daemon(args) -> int:
    daemon.main()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orch",
        description="Task orchestrator for agent workers in tmux sessions",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    p_daemon = subparsers.add_parser("daemon", help="Run the background watcher daemon")
    p_daemon.set_defaults(func=cmd_daemon)

    p_status = subparsers.add_parser("status", help="Show status of all tasks and workers")
    p_status.set_defaults(func=cmd_status)

    p_watch = subparsers.add_parser("watch", help="Live task status view")
    p_watch.add_argument(
        "--interval", type=float, default=10, help="Seconds between refreshes (default: 10)"
    )
    p_watch.set_defaults(func=cmd_watch)

    p_jump = subparsers.add_parser("jump", help="Attach to a task's tmux session")
    p_jump.add_argument("name", help="Task id or session name")
    p_jump.set_defaults(func=cmd_jump)

    p_scan = subparsers.add_parser("scan", help="Ask the daemon for a full rescan")
    p_scan.set_defaults(func=cmd_scan)

    p_msg = subparsers.add_parser("msg", aliases=["send"], help="Send a message to the daemon")
    p_msg.add_argument("message", nargs="+", help="Message text")
    p_msg.set_defaults(func=cmd_msg)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", cmd_status)
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
