# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""Directory-backed operator mailbox.

One file per message. Writers (short-lived CLI processes) only ever create
uniquely named entries via write-then-rename; the daemon is the single reader
and the only process that deletes. Only one daemon may run per task root.

Entries are deleted as soon as they are read, so a message whose agent
invocation is interrupted (daemon killed) is lost.
"""

import logging
import os
import secrets
import time
from pathlib import Path

from .config import MAILBOX_DIR

log = logging.getLogger(__name__)

ENTRY_SUFFIX = ".msg"


def _entry_name() -> str:
    # Zero-padded nanoseconds keep lexical order == temporal order
    return f"{time.time_ns():020d}-{os.getpid()}-{secrets.token_hex(4)}{ENTRY_SUFFIX}"


def enqueue(message: str, mailbox_dir: Path = MAILBOX_DIR) -> Path:
    """Queue a message for the daemon. Raises OSError if the write fails."""
    mailbox_dir.mkdir(parents=True, exist_ok=True)
    name = _entry_name()
    tmp = mailbox_dir / f".{name}.tmp"
    tmp.write_text(message)
    try:
        entry = mailbox_dir / name
        os.replace(tmp, entry)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    log.debug(f"Queued message {entry.name}")
    return entry


def _entries(mailbox_dir: Path) -> list[Path]:
    try:
        paths = list(mailbox_dir.iterdir())
    except FileNotFoundError:
        return []
    except OSError as e:
        log.warning(f"Failed to list mailbox {mailbox_dir}: {e}")
        return []
    # Hidden files are writers' temporaries that have not been renamed yet
    return sorted(p for p in paths if p.suffix == ENTRY_SUFFIX and not p.name.startswith("."))


def pending(mailbox_dir: Path = MAILBOX_DIR) -> int:
    """Number of messages waiting in the mailbox."""
    return len(_entries(mailbox_dir))


def drain(mailbox_dir: Path = MAILBOX_DIR) -> str | None:
    """Read and delete every queued message, oldest first.

    Returns the non-empty bodies joined with newlines, or None if there were none.
    """
    bodies = []
    for entry in _entries(mailbox_dir):
        try:
            body = entry.read_text()
        except FileNotFoundError:
            continue
        except (OSError, UnicodeDecodeError) as e:
            log.warning(f"Failed to read mailbox entry {entry.name}: {e}")
            body = ""

        try:
            entry.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning(f"Failed to remove mailbox entry {entry.name}: {e}")

        if body.strip():
            bodies.append(body)
        else:
            log.debug(f"Discarded empty mailbox entry {entry.name}")

    if not bodies:
        return None
    log.info(f"Drained {len(bodies)} message(s) from mailbox")
    return "\n".join(bodies)
