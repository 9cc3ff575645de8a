#!/usr/bin/env python3
# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (C) 2025 xnoto
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""Orchestrator daemon - watch ~/tasks and hand work to the agent.

WARNING: USE AT YOUR OWN RISK. Every agent invocation runs the agent CLI with
permission prompts disabled and triggers LLM API calls. The authors are not
responsible for any token usage, API costs, or changes the agent makes.

Event loop:
- Startup: drain any queued operator messages and run one full rescan
- Filesystem events under the task root and mailbox are debounced into batches
- Each batch: drain the mailbox if it was touched, diff the task set, and
  invoke the agent with the operator messages plus one line per new task
- No batch within the fallback window: invoke the agent with a full rescan
- Invocations are serialized; events arriving meanwhile wait in the queue

Only one daemon may run per task root: the mailbox has a single reader.
"""

import logging
import queue
import signal
import threading
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from . import agent, mailbox, tasks
from .config import (
    AGENT_COMMAND,
    CONFIG_FILE,
    DEBOUNCE_SECONDS,
    FALLBACK_SECONDS,
    LOG_LEVEL,
    MAILBOX_DIR,
    REPO_PATH,
    TASKS_DIR,
)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)

SCAN_MSG = (
    "Scan the task directory and tmux sessions. For any unstarted task without a worker, "
    "spin up an interactive tmux worker session. Update task files with status. "
    "Report what you did."
)

# Put on the event queue when the observer goes away for good. The queue is a
# SimpleQueue because the signal handler puts to it.
CLOSED = object()

Invoker = Callable[[str], object]


# =============================================================================
# Event Source
# =============================================================================


class TaskEventHandler(FileSystemEventHandler):
    """Forward file changes under the task root and mailbox to the event queue."""

    def __init__(self, events: queue.SimpleQueue):
        self.events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type not in ("created", "deleted", "modified", "moved"):
            return
        self.events.put(Path(event.src_path))
        dest = getattr(event, "dest_path", "")
        if dest:
            self.events.put(Path(dest))


def collect_batch(events: queue.SimpleQueue, timeout: float, debounce: float):
    """Wait for the next batch of changed paths.

    A batch holds every event that arrives within debounce seconds of its
    first event.

    Returns a list of paths, None if nothing happened within timeout, or
    CLOSED once the event source has shut down.
    """
    try:
        first = events.get(timeout=timeout)
    except queue.Empty:
        return None
    if first is CLOSED:
        return CLOSED

    # Fixed window from the first event, so a steady stream still yields batches
    batch = [first]
    deadline = time.monotonic() + debounce
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return batch
        try:
            item = events.get(timeout=remaining)
        except queue.Empty:
            return batch
        if item is CLOSED:
            # Let the caller handle what we have; CLOSED comes back next call
            events.put(CLOSED)
            return batch
        batch.append(item)


# =============================================================================
# Decisions
# =============================================================================


def compose_message(inbox: str | None, new_tasks: set[str]) -> str:
    """Operator messages first, then one segment per newly appeared task."""
    segments = []
    if inbox:
        segments.append(f"Operator message:\n{inbox}")
    for name in sorted(new_tasks):
        segments.append(
            f"New task appeared: {name}. Read it and spin up a worker if it needs one."
        )
    return "\n\n".join(segments)


def _touches(paths: list[Path], directory: Path) -> bool:
    directory = directory.resolve()
    for path in paths:
        try:
            resolved = path.resolve()
        except OSError:
            resolved = path
        if resolved == directory or directory in resolved.parents:
            return True
    return False


def handle_batch(
    paths: list[Path],
    previous: set[str],
    invoke: Invoker,
    tasks_dir: Path = TASKS_DIR,
    mailbox_dir: Path = MAILBOX_DIR,
) -> set[str]:
    """Act on one settled batch. Returns the new task snapshot."""
    inbox = mailbox.drain(mailbox_dir) if _touches(paths, mailbox_dir) else None

    current = tasks.snapshot(tasks_dir)
    new_tasks = tasks.delta(previous, current)
    if new_tasks:
        log.info(f"New tasks: {', '.join(sorted(new_tasks))}")

    message = compose_message(inbox, new_tasks)
    if message:
        invoke(message)
    else:
        log.debug(f"Batch of {len(paths)} event(s) needs no action")
    return current


def startup(
    invoke: Invoker,
    tasks_dir: Path = TASKS_DIR,
    mailbox_dir: Path = MAILBOX_DIR,
) -> set[str]:
    """Initial full rescan, folding in anything queued while we were down."""
    current = tasks.snapshot(tasks_dir)
    inbox = mailbox.drain(mailbox_dir)
    log.info("Running initial scan...")
    invoke("\n\n".join(filter(None, [compose_message(inbox, set()), SCAN_MSG])))
    return current


def run_loop(
    events: queue.SimpleQueue,
    invoke: Invoker,
    tasks_dir: Path = TASKS_DIR,
    mailbox_dir: Path = MAILBOX_DIR,
    debounce: float = DEBOUNCE_SECONDS,
    fallback: float = FALLBACK_SECONDS,
) -> None:
    """Run until the event source closes."""
    previous = startup(invoke, tasks_dir, mailbox_dir)
    log.info(f"Watching for changes (fallback scan every {fallback}s)...")

    while True:
        batch = collect_batch(events, fallback, debounce)
        if batch is CLOSED:
            log.info("Event source closed, stopping")
            return
        try:
            if batch is None:
                log.info("Periodic check...")
                invoke(SCAN_MSG)
            else:
                previous = handle_batch(batch, previous, invoke, tasks_dir, mailbox_dir)
        except Exception as e:
            log.exception(f"Error handling {'fallback scan' if batch is None else 'batch'}: {e}")


# =============================================================================
# Main
# =============================================================================


def main():
    TASKS_DIR.mkdir(parents=True, exist_ok=True)
    MAILBOX_DIR.mkdir(parents=True, exist_ok=True)

    log.info(f"Daemon started, watching {TASKS_DIR}")
    log.info(f"Mailbox: {MAILBOX_DIR}")
    log.info(f"Agent command: {' '.join(AGENT_COMMAND)}")
    log.info(f"Config file: {CONFIG_FILE}{'' if CONFIG_FILE.exists() else ' (not found)'}")
    if REPO_PATH is not None:
        log.info(f"Repository: {REPO_PATH}")
    log.info(f"Debounce: {DEBOUNCE_SECONDS}s, fallback scan: {FALLBACK_SECONDS}s")

    events: queue.SimpleQueue = queue.SimpleQueue()
    handler = TaskEventHandler(events)

    observer = Observer()
    observer.schedule(handler, str(TASKS_DIR), recursive=False)
    observer.schedule(handler, str(MAILBOX_DIR), recursive=False)
    observer.start()

    stopped = threading.Event()

    def shutdown_handler(signum, frame):
        log.info(f"Received signal {signum}, shutting down...")
        stopped.set()
        events.put(CLOSED)

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    def observer_monitor():
        """Close the event queue if the observer thread dies."""
        observer.join()
        if not stopped.is_set():
            log.error("Filesystem observer stopped unexpectedly")
            events.put(CLOSED)

    threading.Thread(target=observer_monitor, name="observer-monitor", daemon=True).start()

    try:
        run_loop(events, agent.invoke)
    finally:
        stopped.set()
        observer.stop()
        observer.join()


if __name__ == "__main__":
    main()
