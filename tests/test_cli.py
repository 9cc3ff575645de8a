"""Tests for the orch command line."""

from unittest import mock

import pytest

from task_orchestrator import cli, mailbox
from task_orchestrator.daemon import SCAN_MSG


@pytest.fixture
def dirs(tmp_path):
    tasks_dir = tmp_path / "tasks"
    tasks_dir.mkdir()
    inbox = tasks_dir / ".inbox"
    with (
        mock.patch.object(cli, "TASKS_DIR", tasks_dir),
        mock.patch.object(cli, "MAILBOX_DIR", inbox),
    ):
        yield tasks_dir, inbox


def test_msg_joins_words(dirs):
    _, inbox = dirs

    assert cli.main(["msg", "please", "close", "task", "x"]) == 0
    assert mailbox.drain(inbox) == "please close task x"


def test_send_alias(dirs):
    _, inbox = dirs

    assert cli.main(["send", "hi"]) == 0
    assert mailbox.drain(inbox) == "hi"


def test_msg_rejects_blank(dirs):
    _, inbox = dirs

    assert cli.main(["msg", " "]) == 2
    assert mailbox.pending(inbox) == 0


def test_msg_write_failure_exits_nonzero(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")

    with mock.patch.object(cli, "MAILBOX_DIR", blocker):
        assert cli.main(["msg", "hello"]) == 1


def test_scan_queues_rescan(dirs):
    _, inbox = dirs

    assert cli.main(["scan"]) == 0
    assert mailbox.drain(inbox) == SCAN_MSG


def test_default_command_is_status(dirs, capsys):
    tasks_dir, _ = dirs
    (tasks_dir / "a.md").write_text("# Task A\n")

    with mock.patch("task_orchestrator.sessions.exists", return_value=False):
        assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert "## Tasks" in out
    assert "  a  [worker: none]" in out


def test_jump_missing_session(dirs, capsys):
    with (
        mock.patch("task_orchestrator.sessions.exists", return_value=False),
        mock.patch("task_orchestrator.sessions.list_sessions", return_value=["task-other"]),
        mock.patch("task_orchestrator.sessions.attach") as attach,
    ):
        assert cli.main(["jump", "login"]) == 1

    attach.assert_not_called()
    err = capsys.readouterr().err
    assert "No tmux session 'task-login' found." in err
    assert "task-other" in err


def test_jump_attaches(dirs):
    tasks_dir, _ = dirs
    (tasks_dir / "login.md").write_text("session: auth\n")

    with (
        mock.patch("task_orchestrator.sessions.exists", return_value=True) as exists,
        mock.patch("task_orchestrator.sessions.attach", return_value=0) as attach,
    ):
        assert cli.main(["jump", "login"]) == 0

    exists.assert_called_once_with("auth")
    attach.assert_called_once_with("auth")


def test_daemon_command_runs_daemon(dirs):
    with mock.patch("task_orchestrator.daemon.main") as daemon_main:
        assert cli.main(["daemon"]) == 0

    daemon_main.assert_called_once_with()
