# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""Agent invocation.

The agent CLI gets the operator's system prompt plus the assembled message on
stdin and runs to completion. Its output is streamed straight through to our
own stdout/stderr (or appended to the agent log file when one is configured)
so the operator can follow along. Only one invocation runs at a time: the
daemon loop blocks here until the agent exits.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from .config import AGENT_COMMAND, AGENT_LOG_FILE, CONFIG_DIR, PROMPT_FILE, REPO_PATH

log = logging.getLogger(__name__)

PROMPT_SEPARATOR = "\n\n---\n\n"


def find_prompt_file() -> Path | None:
    """Locate the operator system prompt.

    Search order:
    1. Explicit config (prompt_file / ORCH_PROMPT_FILE)
    2. ~/.config/task-orchestrator/orchestrator.md
    3. ~/orchestrator/orchestrator.md
    """
    if PROMPT_FILE is not None:
        if PROMPT_FILE.exists():
            return PROMPT_FILE
        log.warning(f"Configured prompt file not found: {PROMPT_FILE}")

    for candidate in (
        CONFIG_DIR / "orchestrator.md",
        Path.home() / "orchestrator" / "orchestrator.md",
    ):
        if candidate.exists():
            return candidate
    return None


def build_prompt(message: str, prompt_file: Path | None) -> str:
    """Prefix the message with the system prompt, if there is one."""
    if prompt_file is None:
        log.debug("No system prompt file, sending message alone")
        return message
    try:
        system_prompt = prompt_file.read_text()
    except OSError as e:
        log.warning(f"Failed to read prompt {prompt_file}: {e}")
        return message
    if not system_prompt.strip():
        return message
    return f"{system_prompt.rstrip()}{PROMPT_SEPARATOR}{message}"


def _agent_env(repo_path: Path | None) -> dict[str, str]:
    env = dict(os.environ)
    if repo_path is not None:
        env["ORCH_REPO"] = str(repo_path)
    return env


def invoke(
    message: str,
    command: list[str] | None = None,
    prompt_file: Path | None = None,
    repo_path: Path | None = REPO_PATH,
    log_file: Path | None = AGENT_LOG_FILE,
) -> int | None:
    """Run the agent with message on stdin and wait for it to exit.

    Returns the exit code, or None if the agent could not be started.
    Never raises for spawn failures or non-zero exits.
    """
    command = list(command or AGENT_COMMAND)
    if prompt_file is None:
        prompt_file = find_prompt_file()
    log.info(f"Invoking agent: {message}")
    if not command:
        log.error("No agent command configured")
        return None

    binary = shutil.which(command[0]) or command[0]
    prompt = build_prompt(message, prompt_file)

    # NOTE: log handle stays open for the lifetime of the child
    out = None
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            out = open(log_file, "a")  # noqa: SIM115
        except OSError as e:
            log.warning(f"Failed to open agent log {log_file}, streaming to console: {e}")
            out = None

    try:
        try:
            proc = subprocess.Popen(
                [binary, *command[1:]],
                stdin=subprocess.PIPE,
                stdout=out,
                stderr=out,
                text=True,
                env=_agent_env(repo_path),
            )
        except OSError as e:
            log.error(f"Failed to run agent {command[0]}: {e}")
            return None

        # Write everything, then close stdin so the agent sees EOF before we wait
        try:
            proc.stdin.write(prompt)
        except BrokenPipeError:
            log.warning("Agent closed its input before reading the whole prompt")
        finally:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass

        returncode = proc.wait()
        if returncode != 0:
            log.error(f"Agent exited with status {returncode}")
        else:
            log.info("Agent finished")
        return returncode
    finally:
        if out is not None:
            out.close()
