# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""tmux session probe. Sessions are created by the agent, never by us."""

import logging
import os
import shutil
import subprocess

log = logging.getLogger(__name__)

TMUX_BIN = "tmux"


def _run_tmux(*args: str) -> subprocess.CompletedProcess | None:
    """Run a tmux command with captured output. Returns None if tmux can't be run."""
    try:
        return subprocess.run([TMUX_BIN, *args], capture_output=True, text=True)
    except OSError as e:
        log.debug(f"tmux {args[0]} failed: {e}")
        return None


def exists(name: str) -> bool:
    """True if tmux reports a live session with exactly this name."""
    # "=" disables tmux's prefix matching on the target
    result = _run_tmux("has-session", "-t", f"={name}")
    return result is not None and result.returncode == 0


def list_sessions() -> list[str]:
    result = _run_tmux("list-sessions", "-F", "#{session_name}")
    if result is None or result.returncode != 0:
        return []
    return [line for line in result.stdout.splitlines() if line.strip()]


def attach(name: str) -> int:
    """Attach the current terminal to a session.

    Inside tmux this switches the client instead of nesting a session.
    Returns tmux's exit status.
    """
    action = "switch-client" if os.environ.get("TMUX") else "attach-session"
    tmux = shutil.which(TMUX_BIN)
    if not tmux:
        log.error("tmux binary not found in PATH")
        return 127
    try:
        return subprocess.call([tmux, action, "-t", f"={name}"])
    except OSError as e:
        log.error(f"Failed to run tmux {action}: {e}")
        return 127
