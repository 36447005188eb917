"""Tests for child process command construction."""

import os
import sys
from pathlib import Path

from umd.config import ConversionConfig
from umd.converters import (
    build_agent_invocation,
    build_subprocess_invocation,
    default_converter_command,
)


class TestSubprocessInvocation:
    """Tests for subprocess mode."""

    def test_default_command(self):
        invocation = build_subprocess_invocation(ConversionConfig(), "/docs/a.pdf")
        assert invocation.argv == [
            sys.executable, "-m", "umd", "convert-file", "/docs/a.pdf"
        ]
        assert invocation.cwd is None
        assert invocation.env is None
        assert invocation.header == ""

    def test_configured_command(self):
        config = ConversionConfig(converter_command=["my-converter", "--quiet"])
        invocation = build_subprocess_invocation(config, "/docs/a.pdf")
        assert invocation.argv == ["my-converter", "--quiet", "/docs/a.pdf"]

    def test_default_converter_command(self):
        assert default_converter_command()[-2:] == ["umd", "convert-file"]


class TestAgentInvocation:
    """Tests for agent mode."""

    def test_argv(self):
        config = ConversionConfig(mode="agent", agent_command="agent", agent_model="big")
        invocation = build_agent_invocation(config, "/docs/a b.pdf", "/docs")
        assert invocation.argv[0] == "agent"
        assert invocation.argv[1] == "-p"
        assert "'/docs/a b.pdf'" in invocation.argv[2]
        assert invocation.argv[3:5] == ["--model", "big"]
        assert invocation.cwd == "/docs"

    def test_backslashes_normalized_in_prompt(self):
        config = ConversionConfig(mode="agent")
        invocation = build_agent_invocation(config, "C:\\docs\\a.pdf", None)
        assert "'C:/docs/a.pdf'" in invocation.argv[2]

    def test_local_bin_prepended_to_path(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        invocation = build_agent_invocation(ConversionConfig(mode="agent"), "/a.pdf", None)
        local_bin = str(Path.home() / ".local" / "bin")
        assert invocation.env["PATH"] == local_bin + os.pathsep + "/usr/bin"

    def test_header(self):
        invocation = build_agent_invocation(
            ConversionConfig(mode="agent"), "/docs/a.pdf", "/docs"
        )
        lines = invocation.header.splitlines()
        assert lines[0] == "=== Agent Conversion ==="
        assert lines[1].startswith("Command: claude -p")
        assert lines[2] == "Working Dir: /docs"
        assert lines[3] == "File: /docs/a.pdf"
        assert lines[4] == "=" * 50
        assert invocation.header.endswith("\n\n")
