# task-orchestrator - File-backed task supervisor for agent workers
# Copyright (c) 2025 xnoto

"""Task Orchestrator - supervise file-backed tasks with an external agent."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("task-orchestrator")
except PackageNotFoundError:  # pragma: no cover - fallback for dev
    __version__ = "0.1.0"
