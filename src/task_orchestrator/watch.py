#!/usr/bin/env python3
# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""Task status report, one-shot or as a live view."""

import os
import signal
import sys
from pathlib import Path
from threading import Event, Lock

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from . import mailbox, sessions, tasks
from .config import MAILBOX_DIR, SESSION_PREFIX, TASKS_DIR

# VT100 / POSIX minimum terminal width
MIN_COLS = 80

# Synchronization
refresh_event = Event()
display_lock = Lock()


def get_terminal_width() -> int:
    """Get current terminal width, clamped to the VT100/POSIX minimum of 80 columns."""
    try:
        cols = os.get_terminal_size().columns
    except OSError:
        cols = MIN_COLS
    return max(cols, MIN_COLS)


class TaskEventHandler(FileSystemEventHandler):
    """Trigger refresh when a task document or mailbox entry changes."""

    def on_any_event(self, event):
        if event.event_type not in ["created", "deleted", "modified", "moved"]:
            return

        # Mailbox writes and many editors save by renaming a temporary into place
        paths = (event.src_path, getattr(event, "dest_path", "") or "")
        if any(p.endswith((tasks.TASK_SUFFIX, mailbox.ENTRY_SUFFIX)) for p in paths):
            refresh_event.set()


def clear_screen():
    print("\033[2J\033[H", end="")


def worker_status(task: tasks.Task) -> str:
    if sessions.exists(task.session):
        return f"running ({task.session})"
    return "none"


def print_tasks(tasks_dir: Path, prefix: str = SESSION_PREFIX) -> None:
    print("## Tasks")
    print()

    if not tasks_dir.is_dir():
        print(f"  {tasks_dir} not found")
        return

    found = tasks.load_tasks(tasks_dir, prefix)
    if not found:
        print("  (no tasks)")
        return

    for task in found:
        print(f"  {task.task_id}  [worker: {worker_status(task)}]")
        for line in task.description:
            print(f"    {line}")
        print()


def print_mailbox(mailbox_dir: Path) -> None:
    count = mailbox.pending(mailbox_dir)
    if count:
        print(f"  {count} message(s) waiting for the daemon")
        print()


def render_status(tasks_dir: Path = TASKS_DIR, mailbox_dir: Path = MAILBOX_DIR) -> None:
    """Print the task report once."""
    print_tasks(tasks_dir)
    print_mailbox(mailbox_dir)


def render_dashboard(tasks_dir: Path = TASKS_DIR, mailbox_dir: Path = MAILBOX_DIR) -> None:
    w = get_terminal_width()
    with display_lock:
        clear_screen()
        render_status(tasks_dir, mailbox_dir)
        print("─" * w)
        print("  Watching for changes... (Ctrl+C to exit)")
        sys.stdout.flush()


def main(interval: float = 10, tasks_dir: Path = TASKS_DIR, mailbox_dir: Path = MAILBOX_DIR):
    tasks_dir.mkdir(parents=True, exist_ok=True)
    mailbox_dir.mkdir(parents=True, exist_ok=True)

    observer = Observer()
    handler = TaskEventHandler()
    observer.schedule(handler, str(tasks_dir), recursive=False)
    observer.schedule(handler, str(mailbox_dir), recursive=False)
    observer.start()

    # Re-render on terminal resize (SIGWINCH) if supported
    if hasattr(signal, "SIGWINCH"):
        signal.signal(signal.SIGWINCH, lambda *_: refresh_event.set())

    try:
        render_dashboard(tasks_dir, mailbox_dir)

        while True:
            # Timeout refresh picks up workers starting and stopping
            if refresh_event.wait(timeout=interval):
                refresh_event.clear()
            render_dashboard(tasks_dir, mailbox_dir)

    except KeyboardInterrupt:
        print("\n  Exiting...")
    finally:
        observer.stop()
        observer.join()


if __name__ == "__main__":
    main()
