# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""Configuration: environment variables > config file > defaults.

Config file lives at ~/.config/task-orchestrator/config.json (override with
ORCH_CONFIG). Example::

    {
        "tasks_dir": "~/work/tasks",
        "repo_path": "~/src/project",
        "debounce_seconds": 3,
        "fallback_seconds": 300,
        "agent": {"command": "claude -p --dangerously-skip-permissions"}
    }

``agent.command`` may also be a list of arguments.
"""

import json
import logging
import os
import shlex
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "task-orchestrator"
CONFIG_FILE = Path(os.environ.get("ORCH_CONFIG", str(CONFIG_DIR / "config.json")))


def _load_config_file() -> dict:
    """Load config file, returning an empty dict if missing or invalid."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        data = json.loads(CONFIG_FILE.read_text())
    except (json.JSONDecodeError, OSError) as e:
        log.warning(f"Failed to load config file {CONFIG_FILE}: {e}")
        return {}
    if not isinstance(data, dict):
        log.warning(f"Ignoring config file {CONFIG_FILE}: top level is not an object")
        return {}
    return data


def _get_config_value(
    env_var: str,
    path: list[str],
    default: Any,
    config: dict,
    value_type: type = str,
) -> Any:
    """Resolve one setting. Env var wins, then the nested config key, then default."""
    raw = os.environ.get(env_var)
    if raw is None:
        node: Any = config
        for key in path:
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        raw = node

    if value_type is bool:
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ("1", "true", "yes")
    if value_type is int:
        try:
            return int(raw)
        except (TypeError, ValueError):
            log.warning(f"Invalid integer for {env_var}: {raw!r}, using {default}")
            return default
    return raw


def _parse_command(raw: Any, default: str) -> list[str]:
    """Agent command from a shell-style string or a JSON list of arguments.

    Anything unusable (bad quoting, empty, wrong type) logs a warning and
    falls back to default.
    """
    if isinstance(raw, (list, tuple)) and raw and all(isinstance(a, str) for a in raw):
        return list(raw)
    if isinstance(raw, str):
        try:
            command = shlex.split(raw)
        except ValueError as e:
            log.warning(f"Invalid agent command {raw!r}: {e}, using {default!r}")
            return shlex.split(default)
        if command:
            return command
    log.warning(f"Invalid agent command {raw!r}, using {default!r}")
    return shlex.split(default)


def _expand(value: str | None) -> Path | None:
    if not value:
        return None
    return Path(os.path.expanduser(str(value)))


_config = _load_config_file()

TASKS_DIR = (
    _expand(_get_config_value("ORCH_TASKS_DIR", ["tasks_dir"], "~/tasks", _config))
    or Path.home() / "tasks"
)
MAILBOX_DIR = (
    _expand(_get_config_value("ORCH_MAILBOX_DIR", ["mailbox_dir"], None, _config))
    or TASKS_DIR / ".inbox"
)
PROMPT_FILE = _expand(_get_config_value("ORCH_PROMPT_FILE", ["prompt_file"], None, _config))
REPO_PATH = _expand(_get_config_value("ORCH_REPO", ["repo_path"], None, _config))

DEFAULT_AGENT_COMMAND = "claude -p --dangerously-skip-permissions"
AGENT_COMMAND = _parse_command(
    _get_config_value("ORCH_AGENT_COMMAND", ["agent", "command"], DEFAULT_AGENT_COMMAND, _config),
    DEFAULT_AGENT_COMMAND,
)
AGENT_LOG_FILE = _expand(_get_config_value("ORCH_AGENT_LOG", ["agent", "log_file"], None, _config))

DEBOUNCE_SECONDS = _get_config_value(
    "ORCH_DEBOUNCE_SECONDS", ["debounce_seconds"], 3, _config, int
)
FALLBACK_SECONDS = _get_config_value(
    "ORCH_FALLBACK_SECONDS", ["fallback_seconds"], 300, _config, int
)
SESSION_PREFIX = _get_config_value("ORCH_SESSION_PREFIX", ["session_prefix"], "task-", _config)
LOG_LEVEL = str(_get_config_value("ORCH_LOG_LEVEL", ["log_level"], "INFO", _config)).upper()
