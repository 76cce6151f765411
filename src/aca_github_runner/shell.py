# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Shell command utilities for the runner agent, az and terraform."""

import shlex
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

REDACTED = "***"


class Cmd(list[str]):
    """Builder for commands executed without a shell.

    Tokens are kept verbatim. Values added with ``secret=True`` are masked
    when the command is rendered for logging.
    """

    def __init__(self, tokens: Iterable[str] = ()):
        super().__init__(tokens)
        self.secrets: set[int] = set()

    def append(self, token: str) -> "Cmd":
        "Adds a token to the command"
        super().append(token)
        return self

    def flag(self, key: str) -> "Cmd":
        """Adds a flag to the command"""
        return self.append(key)

    def arg(self, value: str, secret: bool = False) -> "Cmd":
        """Adds an argument value to the command"""
        if secret:
            self.secrets.add(len(self))
        return self.append(value)

    def param(self, key: str, value: str, secret: bool = False) -> "Cmd":
        """Adds a key-value pair parameter"""
        return self.flag(key).arg(value, secret=secret)

    def __str__(self) -> str:
        return " ".join(
            REDACTED if i in self.secrets else shlex.quote(token)
            for i, token in enumerate(self)
        )


@dataclass
class ShellResult:
    """Result of a shell command execution."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_command(
    cmd: Cmd,
    cwd: Optional[Path] = None,
    capture_output: bool = True,
) -> ShellResult:
    """Run a command and return the result.

    With ``capture_output=False`` the child inherits stdout/stderr, which is
    how long-running tools (the runner agent, terraform apply) stream output.
    """
    result = subprocess.run(
        list(cmd),
        cwd=cwd,
        capture_output=capture_output,
        text=True,
    )

    return ShellResult(
        returncode=result.returncode,
        stdout=result.stdout if capture_output else "",
        stderr=result.stderr if capture_output else "",
    )


def start_command(cmd: Cmd, cwd: Optional[Path] = None) -> subprocess.Popen:
    """Start a command that inherits stdout/stderr and return its process.

    The caller owns the process and decides how to wait for it and which
    signals to pass on.
    """
    return subprocess.Popen(list(cmd), cwd=cwd)
