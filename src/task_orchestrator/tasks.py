# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto
"""Task documents: ``<task-id>.md`` files directly under the task root."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .config import SESSION_PREFIX

log = logging.getLogger(__name__)

TASK_SUFFIX = ".md"
SUMMARY_HEADING = "## Summary"

# "session: foo", "- session: foo", "**session:** foo"
SESSION_MARKER = re.compile(r"^\s*(?:[-*]\s+)?\**session:\**\s*`?([^\s`]+)`?", re.IGNORECASE)


@dataclass
class Task:
    task_id: str
    path: Path
    content: str = ""
    summary: list[str] = field(default_factory=list)
    session: str = ""

    @property
    def description(self) -> list[str]:
        """Summary lines, else the first non-blank line without heading markup."""
        if self.summary:
            return self.summary
        for line in self.content.splitlines():
            if line.strip():
                return [line.strip().lstrip("#").strip()]
        return []


def snapshot(root: Path) -> set[str]:
    """Names of the task documents currently under root."""
    try:
        return {p.name for p in root.iterdir() if p.suffix == TASK_SUFFIX and p.is_file()}
    except FileNotFoundError:
        return set()
    except OSError as e:
        log.warning(f"Failed to list tasks in {root}: {e}")
        return set()


def delta(old: set[str], new: set[str]) -> set[str]:
    """Task documents present in new but not in old."""
    return new - old


def extract_section(content: str, heading: str) -> list[str]:
    """Non-blank lines between a ``## Heading`` line and the next ``## `` line (or EOF)."""
    lines = []
    inside = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith(heading):
            inside = True
            continue
        if inside and stripped.startswith("## "):
            inside = False
        if inside and stripped:
            lines.append(line.rstrip())
    return lines


def session_name(task_id: str, content: str = "", prefix: str = SESSION_PREFIX) -> str:
    """Worker session for a task: inline ``session:`` marker, else prefix + task id."""
    for line in content.splitlines():
        match = SESSION_MARKER.match(line)
        if match:
            return match.group(1)
    return f"{prefix}{task_id}"


def load_task(path: Path, prefix: str = SESSION_PREFIX) -> Task:
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed to read task {path.name}: {e}")
        content = ""
    task_id = path.stem
    return Task(
        task_id=task_id,
        path=path,
        content=content,
        summary=extract_section(content, SUMMARY_HEADING),
        session=session_name(task_id, content, prefix),
    )


def load_tasks(root: Path, prefix: str = SESSION_PREFIX) -> list[Task]:
    """All task documents under root, sorted by task id."""
    return [load_task(root / name, prefix) for name in sorted(snapshot(root))]


def resolve_session(name: str, root: Path, prefix: str = SESSION_PREFIX) -> str:
    """Map a task id or session name given on the command line to a session name.

    A task document's ``session:`` marker wins over the derived default. The
    marker is read fresh every time.
    """
    task_id = name[: -len(TASK_SUFFIX)] if name.endswith(TASK_SUFFIX) else name
    path = root / f"{task_id}{TASK_SUFFIX}"
    if path.is_file():
        return load_task(path, prefix).session
    if name.startswith(prefix):
        return name
    return f"{prefix}{task_id}"
