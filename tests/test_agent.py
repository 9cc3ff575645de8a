"""Tests for agent invocation."""

import logging
import os
import sys
from unittest import mock

from task_orchestrator import agent

# Stand-in agent: copies stdin to a file named by argv[1] and exits with argv[2]
FAKE_AGENT = (
    "import os, sys; data = sys.stdin.read(); "
    "open(sys.argv[1], 'w').write(data + '|' + os.environ.get('ORCH_REPO', '')); "
    "print('agent says hi'); sys.exit(int(sys.argv[2]))"
)


def _fake_command(tmp_path, exit_code=0):
    out = tmp_path / "received.txt"
    return [sys.executable, "-c", FAKE_AGENT, str(out), str(exit_code)], out


# ---------------------------------------------------------------------------
# Prompt assembly
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_without_prompt_file(self):
        assert agent.build_prompt("do things", None) == "do things"

    def test_with_prompt_file(self, tmp_path):
        prompt = tmp_path / "orchestrator.md"
        prompt.write_text("You manage tasks.\n")

        assert agent.build_prompt("do things", prompt) == "You manage tasks.\n\n---\n\ndo things"

    def test_unreadable_prompt_file(self, tmp_path):
        assert agent.build_prompt("do things", tmp_path / "missing.md") == "do things"

    def test_blank_prompt_file(self, tmp_path):
        prompt = tmp_path / "orchestrator.md"
        prompt.write_text("\n\n")

        assert agent.build_prompt("do things", prompt) == "do things"


class TestFindPromptFile:
    def test_explicit_config_wins(self, tmp_path):
        explicit = tmp_path / "custom.md"
        explicit.write_text("# Custom")

        with mock.patch.object(agent, "PROMPT_FILE", explicit):
            assert agent.find_prompt_file() == explicit

    def test_config_dir(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "orchestrator.md").write_text("# Prompt")

        with (
            mock.patch.object(agent, "PROMPT_FILE", None),
            mock.patch.object(agent, "CONFIG_DIR", config_dir),
        ):
            assert agent.find_prompt_file() == config_dir / "orchestrator.md"

    def test_missing_explicit_falls_back(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "orchestrator.md").write_text("# Prompt")

        with (
            mock.patch.object(agent, "PROMPT_FILE", tmp_path / "nope.md"),
            mock.patch.object(agent, "CONFIG_DIR", config_dir),
        ):
            assert agent.find_prompt_file() == config_dir / "orchestrator.md"

    def test_none_when_nothing_exists(self, tmp_path):
        with (
            mock.patch.object(agent, "PROMPT_FILE", None),
            mock.patch.object(agent, "CONFIG_DIR", tmp_path),
            mock.patch("pathlib.Path.home", return_value=tmp_path),
        ):
            assert agent.find_prompt_file() is None


# ---------------------------------------------------------------------------
# invoke
# ---------------------------------------------------------------------------


class TestInvoke:
    def test_pipes_prompt_on_stdin(self, tmp_path):
        command, received = _fake_command(tmp_path)
        prompt = tmp_path / "orchestrator.md"
        prompt.write_text("SYSTEM")

        code = agent.invoke(
            "New task appeared: b.md", command, prompt_file=prompt, repo_path=None, log_file=None
        )

        assert code == 0
        assert received.read_text().startswith("SYSTEM\n\n---\n\nNew task appeared: b.md|")

    def test_passes_repo_path(self, tmp_path):
        command, received = _fake_command(tmp_path)

        agent.invoke(
            "hi",
            command,
            prompt_file=tmp_path / "none.md",
            repo_path=tmp_path / "repo",
            log_file=None,
        )

        assert received.read_text().endswith(f"|{tmp_path / 'repo'}")

    def test_nonzero_exit_is_reported_not_raised(self, tmp_path, caplog):
        command, _ = _fake_command(tmp_path, exit_code=3)

        with caplog.at_level(logging.ERROR, logger="task_orchestrator.agent"):
            code = agent.invoke(
                "hi", command, prompt_file=tmp_path / "none.md", repo_path=None, log_file=None
            )

        assert code == 3
        assert "exited with status 3" in caplog.text

    def test_missing_binary_is_logged_not_raised(self, tmp_path, caplog):
        with caplog.at_level(logging.ERROR, logger="task_orchestrator.agent"):
            code = agent.invoke(
                "hi",
                [str(tmp_path / "no-such-agent"), "-p"],
                prompt_file=tmp_path / "none.md",
                repo_path=None,
                log_file=None,
            )

        assert code is None
        assert "Failed to run agent" in caplog.text

    def test_empty_command_is_logged_not_raised(self, tmp_path, caplog):
        with (
            mock.patch.object(agent, "AGENT_COMMAND", []),
            mock.patch("subprocess.Popen") as popen,
            caplog.at_level(logging.ERROR, logger="task_orchestrator.agent"),
        ):
            code = agent.invoke("hi", [], prompt_file=tmp_path / "none.md", log_file=None)

        assert code is None
        popen.assert_not_called()
        assert "No agent command configured" in caplog.text

    def test_output_goes_to_log_file(self, tmp_path):
        command, _ = _fake_command(tmp_path)
        log_file = tmp_path / "logs" / "agent.log"

        agent.invoke("hi", command, prompt_file=tmp_path / "none.md", log_file=log_file)
        agent.invoke("again", command, prompt_file=tmp_path / "none.md", log_file=log_file)

        assert log_file.read_text().count("agent says hi") == 2

    def test_agent_that_ignores_stdin(self, tmp_path):
        command = [sys.executable, "-c", "import sys; sys.exit(0)"]

        code = agent.invoke(
            "x" * 1_000_000, command, prompt_file=tmp_path / "none.md", log_file=None
        )

        assert code == 0

    def test_default_command_from_config(self, tmp_path):
        command, received = _fake_command(tmp_path)

        with mock.patch.object(agent, "AGENT_COMMAND", command):
            agent.invoke("hi", prompt_file=tmp_path / "none.md", log_file=None)

        assert received.read_text().startswith("hi|")

    def test_environment_is_inherited(self, tmp_path):
        env = agent._agent_env(tmp_path)

        assert env.get("PATH") == os.environ.get("PATH")
        assert env["ORCH_REPO"] == str(tmp_path)
