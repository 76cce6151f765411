# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

import json
import re
from re import search
from typing import Any, Optional

from .errors import (
    AccessError,
    AzCliNotAuthenticatedError,
    FatalError,
    ResourceNotFoundError,
)
from .logs import log
from .shell import Cmd, run_command

AUTH_FAILED_ERROR = "AuthorizationFailed"
RESOURCE_NOT_FOUND_ERRORS = ["ResourceNotFound", "ResourceGroupNotFound"]
NOT_LOGGED_IN_PATTERN = re.compile(r"az login|Please run 'az login'", re.IGNORECASE)


class AzCmd(Cmd):
    """Builder for Azure CLI commands."""

    def __init__(self, service: str, action: str):
        """Initialize with service and action (e.g., 'containerapp', 'job start')."""
        super().__init__(["az", service, *action.split()])


def check_access_error(stderr: str) -> Optional[str]:
    # Sample:
    # (AuthorizationFailed) The client 'user@example.com' with object id '00000000-0000-0000-0000-000000000000'
    # does not have authorization to perform action 'Microsoft.App/jobs/start/action'
    # over scope '/subscriptions/00000000-0000-0000-0000-000000000000' or the scope is invalid.

    client_match = search(r"client '([^']*)'", stderr)
    action_match = search(r"action '([^']*)'", stderr)
    scope_match = search(r"scope '([^']*)'", stderr)

    if not (action_match and scope_match and client_match):
        return None

    return f"Insufficient permissions for {client_match.group(1)} to perform {action_match.group(1)} on {scope_match.group(1)}"


def execute(cmd: AzCmd, can_fail: bool = False) -> str:
    """Run an Azure CLI command once and return its stdout or raise a classified error."""
    log.debug(f"Running: {cmd}")
    result = run_command(cmd)
    if result.success:
        return result.stdout

    stderr = result.stderr
    if any(text in stderr for text in RESOURCE_NOT_FOUND_ERRORS):
        raise ResourceNotFoundError(f"Resource not found when executing '{cmd}'\nstderr: {stderr}")
    if AUTH_FAILED_ERROR in stderr:
        error_message = f"Insufficient permissions to access resource when executing '{cmd}'"
        if error_details := check_access_error(stderr):
            error_message = f"{error_message}: {error_details}"
        raise AccessError(error_message)
    if NOT_LOGGED_IN_PATTERN.search(stderr):
        raise AzCliNotAuthenticatedError(f"Azure CLI is not authenticated: {stderr.strip()}")
    if can_fail:
        return ""

    log.error(f"Command failed: {cmd}")
    log.error(stderr)
    raise FatalError(f"Command failed: {cmd}\nstdout: {result.stdout}\nstderr: {stderr}")


def execute_json(cmd: AzCmd) -> Any:
    if result := execute(cmd.param("--output", "json")):
        return json.loads(result)
    return None


def get_account() -> dict[str, Any]:
    """Return the signed-in account and its active subscription."""
    return execute_json(AzCmd("account", "show")) or {}


def get_acr_login_server(acr_name: str) -> str:
    try:
        return execute(
            AzCmd("acr", "show").param("--name", acr_name).param("--query", "loginServer").param("--output", "tsv"),
            can_fail=True,
        ).strip()
    except ResourceNotFoundError:
        return ""


def acr_task_exists(task_name: str, acr_name: str) -> bool:
    try:
        execute(
            AzCmd("acr", "task show")
            .param("--name", task_name)
            .param("--registry", acr_name)
            .param("--output", "none")
        )
        return True
    except (ResourceNotFoundError, FatalError):
        return False


def acr_build(acr_name: str, image: str, dockerfile: str, context: str) -> str:
    """Build and push an image from a local context with 'az acr build'."""
    return execute(
        AzCmd("acr", "build")
        .param("--registry", acr_name)
        .param("--image", image)
        .param("--file", dockerfile)
        .arg(context)
    )


def acr_task_run(task_name: str, acr_name: str, context: str, dockerfile: str) -> str:
    """Run an ACR Task against a remote Git context."""
    return execute(
        AzCmd("acr", "task run")
        .param("--name", task_name)
        .param("--registry", acr_name)
        .param("--context", context)
        .param("--file", dockerfile)
    )


def list_image_tags(acr_name: str, repository: str) -> list[dict[str, Any]]:
    return (
        execute_json(
            AzCmd("acr", "repository show-tags")
            .param("--name", acr_name)
            .param("--repository", repository)
            .flag("--detail")
        )
        or []
    )


def start_job(job_name: str, resource_group: str):
    """Start an execution of a Container Apps Job."""
    log.info(f"Starting Container Apps Job {job_name}...")
    execute(AzCmd("containerapp", "job start").param("--name", job_name).param("--resource-group", resource_group))
