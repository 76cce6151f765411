# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""The runner agent bundled in the container image, driven through its scripts."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .constants import (
    EXIT_COMMAND_NOT_EXECUTABLE,
    EXIT_COMMAND_NOT_FOUND,
    RUNNER_CONFIG_SCRIPT,
    RUNNER_RUN_SCRIPT,
)
from .errors import AgentError, RunnerInterrupted
from .logs import log
from .shell import Cmd, ShellResult, run_command, start_command


@dataclass(frozen=True)
class RunnerRegistration:
    """Arguments for an unattended runner registration."""

    name: str
    labels: str
    group: str
    url: str
    token: str

    def __repr__(self) -> str:
        return f"RunnerRegistration(name={self.name!r}, labels={self.labels!r}, group={self.group!r}, url={self.url!r})"


class RunnerAgent(Protocol):
    def configure(self, registration: RunnerRegistration) -> None:
        """Register the runner. Raises AgentError on failure."""

    def run(self) -> int:
        """Run the agent in the foreground and return its exit code.

        Raises RunnerInterrupted after the agent exits if a shutdown signal arrived.
        """

    def remove(self, token: str) -> None:
        """Deregister the runner. Raises AgentError on failure."""


def start_failure(cmd: Cmd, e: OSError) -> AgentError:
    """Map a script that could not be started to the shell's exit codes."""
    exit_code = EXIT_COMMAND_NOT_EXECUTABLE if isinstance(e, PermissionError) else EXIT_COMMAND_NOT_FOUND
    return AgentError(f"Failed to start {cmd[0]}: {e}", exit_code)


class ScriptRunnerAgent:
    """Runner agent driven through config.sh and run.sh in the runner directory."""

    def __init__(self, runner_home: Path):
        self.runner_home = runner_home

    def _script(self, name: str) -> Cmd:
        return Cmd([f"./{name}"])

    def _run_script(self, cmd: Cmd, capture_output: bool) -> ShellResult:
        log.debug(f"Running: {cmd}")
        try:
            return run_command(cmd, cwd=self.runner_home, capture_output=capture_output)
        except OSError as e:
            raise start_failure(cmd, e) from e

    def configure(self, registration: RunnerRegistration) -> None:
        log.info("Configuring runner...")
        cmd = (
            self._script(RUNNER_CONFIG_SCRIPT)
            .flag("--unattended")
            .param("--name", registration.name)
            .param("--labels", registration.labels)
            .param("--runnergroup", registration.group)
            .param("--url", registration.url)
            .param("--token", registration.token, secret=True)
        )
        result = self._run_script(cmd, capture_output=False)
        if not result.success:
            raise AgentError(f"Runner configuration failed with exit code {result.returncode}", result.returncode)
        log.info("Runner configured successfully")

    def run(self) -> int:
        """Run the agent in the foreground until it exits.

        A shutdown signal received meanwhile is passed on to the agent and
        re-raised once the agent has exited.
        """
        log.info("Starting runner...")
        cmd = self._script(RUNNER_RUN_SCRIPT)
        try:
            process = start_command(cmd, cwd=self.runner_home)
        except OSError as e:
            raise start_failure(cmd, e) from e

        interrupted = None
        while True:
            try:
                returncode = process.wait()
                break
            except RunnerInterrupted as e:
                log.info(f"Forwarding {e} to the runner")
                process.send_signal(e.signum)
                interrupted = e

        log.info(f"Runner exited with code {returncode}")
        if interrupted:
            raise interrupted
        return returncode

    def remove(self, token: str) -> None:
        cmd = (
            self._script(RUNNER_CONFIG_SCRIPT)
            .flag("remove")
            .param("--token", token, secret=True)
            .flag("--unattended")
        )
        result = self._run_script(cmd, capture_output=True)
        if not result.success:
            raise AgentError(
                f"Runner removal failed with exit code {result.returncode}: {result.stderr.strip()}",
                result.returncode,
            )
