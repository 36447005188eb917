"""Command lines for out-of-process conversions.

Two modes are supported. In subprocess mode each file is handed to a
single-file converter command (``python -m umd convert-file`` unless
configured otherwise). In agent mode a headless coding agent is asked, in
natural language, to convert the file.
"""

from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path

from umd.config.models import ConversionConfig
from umd.core.paths import normalize_separators

AGENT_PROMPT = (
    "Use the convert-to-markdown skill to convert this file to markdown: '{path}'"
)


@dataclass(frozen=True)
class Invocation:
    """A fully specified child process launch."""

    argv: list[str]
    cwd: str | None = None
    env: dict[str, str] | None = None
    header: str = ""
    """Text prepended to captured stdout."""

    @property
    def display(self) -> str:
        return shlex.join(self.argv)


def default_converter_command() -> list[str]:
    return [sys.executable, "-m", "umd", "convert-file"]


def build_subprocess_invocation(config: ConversionConfig, path: str) -> Invocation:
    """Build the launch for converting path with the single-file converter."""
    prefix = config.converter_command or default_converter_command()
    return Invocation(argv=[*prefix, path])


def build_agent_invocation(
    config: ConversionConfig, path: str, cwd: str | None
) -> Invocation:
    """Build the launch for converting path with the headless agent.

    The agent runs from cwd (normally the common parent of the batch) with
    ``~/.local/bin`` prepended to PATH, where its installer puts it.
    """
    prompt = AGENT_PROMPT.format(path=normalize_separators(path))
    argv = [
        config.agent_command,
        "-p",
        prompt,
        "--model",
        config.agent_model,
        "--dangerously-skip-permissions",
        "--output-format",
        "text",
    ]
    local_bin = str(Path.home() / ".local" / "bin")
    env = dict(os.environ)
    env["PATH"] = os.pathsep.join(filter(None, [local_bin, env.get("PATH", "")]))

    invocation = Invocation(argv=argv, cwd=cwd, env=env)
    rule = "=" * 50
    header = (
        "=== Agent Conversion ===\n"
        f"Command: {invocation.display}\n"
        f"Working Dir: {cwd or os.getcwd()}\n"
        f"File: {path}\n"
        f"{rule}\n\n"
    )
    return Invocation(argv=argv, cwd=cwd, env=env, header=header)
