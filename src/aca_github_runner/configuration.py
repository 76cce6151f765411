# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Runner configuration parsed from environment variables."""

import os
import socket
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_GITHUB_URL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RUNNER_GROUP,
    DEFAULT_RUNNER_LABELS,
    GITHUB_API_URL,
    GITHUB_ENTERPRISE_API_PREFIX,
    REGISTRATION_TOKEN_ENDPOINT,
)
from .errors import ConfigurationError


@dataclass(frozen=True)
class RunnerConfiguration:
    """Settings for registering a single runner, read once at startup."""

    # Required
    owner: str
    token: str

    # Optional with defaults
    repository: str = ""
    github_url: str = DEFAULT_GITHUB_URL
    runner_name: str = ""
    labels: str = DEFAULT_RUNNER_LABELS
    group: str = DEFAULT_RUNNER_GROUP
    runner_home: str = "."
    log_level: str = DEFAULT_LOG_LEVEL

    def __repr__(self) -> str:
        # keeps the personal access token out of logs and tracebacks
        return (
            f"RunnerConfiguration(owner={self.owner!r}, repository={self.repository!r}, "
            f"github_url={self.github_url!r}, runner_name={self.runner_name!r}, "
            f"labels={self.labels!r}, group={self.group!r})"
        )

    @property
    def is_repository_scope(self) -> bool:
        return bool(self.repository)

    @property
    def scope_description(self) -> str:
        return "Repository" if self.is_repository_scope else "Organization"

    @property
    def scope_url(self) -> str:
        """URL the runner is registered against: a repository or an organization."""
        if self.is_repository_scope:
            return f"{self.github_url}/{self.owner}/{self.repository}"
        return f"{self.github_url}/{self.owner}"

    @property
    def api_path(self) -> str:
        if self.is_repository_scope:
            return f"repos/{self.owner}/{self.repository}"
        return f"orgs/{self.owner}"

    @property
    def registration_token_url(self) -> str:
        """REST endpoint issuing registration tokens.

        github.com is served from api.github.com, GitHub Enterprise Server
        from the /api/v3 prefix of its own host.
        """
        if self.github_url == DEFAULT_GITHUB_URL:
            return f"{GITHUB_API_URL}/{self.api_path}/{REGISTRATION_TOKEN_ENDPOINT}"
        return f"{self.github_url}/{GITHUB_ENTERPRISE_API_PREFIX}/{self.api_path}/{REGISTRATION_TOKEN_ENDPOINT}"


def _get(environ: Mapping[str, str], name: str, default: str = "") -> str:
    """Read a variable, treating an empty value as unset."""
    return environ.get(name) or default


def parse_config(environ: Optional[Mapping[str, str]] = None) -> RunnerConfiguration:
    """Parse runner configuration from environment variables.

    Raises:
        ConfigurationError: If GITHUB_OWNER or GITHUB_TOKEN is missing.
    """
    if environ is None:
        environ = os.environ

    errors = []

    owner = _get(environ, "GITHUB_OWNER")
    if not owner:
        errors.append("Error: GITHUB_OWNER environment variable is required")

    token = _get(environ, "GITHUB_TOKEN")
    if not token:
        errors.append("Error: GITHUB_TOKEN environment variable is required")

    if errors:
        raise ConfigurationError(errors[0], user_action_message="\n".join(errors))

    return RunnerConfiguration(
        owner=owner,
        token=token,
        repository=_get(environ, "GITHUB_REPOSITORY"),
        github_url=_get(environ, "GITHUB_URL", DEFAULT_GITHUB_URL),
        runner_name=_get(environ, "RUNNER_NAME") or socket.gethostname(),
        labels=_get(environ, "RUNNER_LABELS", DEFAULT_RUNNER_LABELS),
        group=_get(environ, "RUNNER_GROUP", DEFAULT_RUNNER_GROUP),
        runner_home=_get(environ, "RUNNER_HOME", "."),
        log_level=_get(environ, "LOG_LEVEL", DEFAULT_LOG_LEVEL),
    )
