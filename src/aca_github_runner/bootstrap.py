#!/usr/bin/env python3
# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Container entrypoint registering and running an ephemeral GitHub Actions runner."""

import os
import signal
import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Optional

from .agent import RunnerAgent, RunnerRegistration, ScriptRunnerAgent
from .configuration import RunnerConfiguration, parse_config
from .constants import DEFAULT_LOG_LEVEL, EXIT_SUCCESS
from .errors import AgentError, FatalError, RunnerInterrupted, UserActionRequiredError
from .github_api import request_registration_token
from .logs import configure_logging, log

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _raise_interrupted(signum, frame) -> None:
    raise RunnerInterrupted(signum)


def install_signal_handlers() -> None:
    """Turn SIGINT/SIGTERM into RunnerInterrupted raised in the main flow."""
    for sig in SHUTDOWN_SIGNALS:
        signal.signal(sig, _raise_interrupted)


class Deregistration:
    """Best-effort removal of the runner, attempted at most once.

    Removal uses the personal access token, not the registration token.
    """

    def __init__(self, agent: RunnerAgent, config: RunnerConfiguration):
        self.agent = agent
        self.config = config
        self.attempted = False

    def __call__(self) -> None:
        # Only the removal itself counts as an attempt
        while not self.attempted:
            try:
                log.info("Cleaning up runner...")
                log.info(f"Deregistering runner: {self.config.runner_name}")
                self.attempted = True
                self.agent.remove(self.config.token)
                log.info("Runner deregistered")
            except (AgentError, OSError, RunnerInterrupted) as e:
                log.warning(f"Failed to deregister runner: {e}")


def log_configuration(config: RunnerConfiguration) -> None:
    if config.is_repository_scope:
        log.info(f"Setting up repository-level runner for: {config.owner}/{config.repository}")
    else:
        log.info(f"Setting up organization-level runner for: {config.owner}")

    log.info("Runner configuration:")
    log.info(f"  Name: {config.runner_name}")
    log.info(f"  Labels: {config.labels}")
    log.info(f"  Group: {config.group}")
    log.info(f"  Scope: {config.scope_description}")


def run_bootstrap(
    config: RunnerConfiguration,
    agent: RunnerAgent,
    request_token: Callable[[RunnerConfiguration], str] = request_registration_token,
) -> int:
    """Register the runner, run it to completion and return the exit code to use.

    An interruption at any point deregisters the runner and resolves to a
    successful exit. Token and agent failures propagate to the caller.
    """
    deregister = Deregistration(agent, config)
    try:
        log_configuration(config)
        registration_token = request_token(config)
        agent.configure(
            RunnerRegistration(
                name=config.runner_name,
                labels=config.labels,
                group=config.group,
                url=config.scope_url,
                token=registration_token,
            )
        )
        return agent.run()
    except RunnerInterrupted as e:
        log.warning(f"Received {e}, shutting down")
        deregister()
        return EXIT_SUCCESS


def run(
    environ: Optional[Mapping[str, str]] = None,
    agent_factory: Callable[[RunnerConfiguration], RunnerAgent] = lambda config: ScriptRunnerAgent(
        Path(config.runner_home)
    ),
) -> int:
    """Run the bootstrap end to end and return the process exit code."""
    if environ is None:
        environ = os.environ

    try:
        configure_logging(environ.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL)
        try:
            config = parse_config(environ)
        except UserActionRequiredError as e:
            log.error(e.user_action_message)
            return e.exit_code

        try:
            return run_bootstrap(config, agent_factory(config))
        except UserActionRequiredError as e:
            log.error(e.user_action_message)
            return e.exit_code
        except FatalError as e:
            log.error(f"Failed with error: {e}")
            return e.exit_code
    except RunnerInterrupted as e:
        log.warning(f"Received {e} before the runner was configured, exiting")
        return EXIT_SUCCESS


def main():
    install_signal_handlers()
    sys.exit(run())


if __name__ == "__main__":
    main()
