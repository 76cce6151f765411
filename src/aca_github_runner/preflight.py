# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Preflight checks before deploying."""

import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass

from .az_cmd import get_account
from .constants import TOOL_INSTALL_URLS
from .errors import AzCliNotAuthenticatedError, FatalError, MissingToolError
from .logs import log


@dataclass
class AzureAccount:
    subscription_id: str
    subscription_name: str


def check_tool_installed(tool: str):
    """Verify a command line tool is available.

    Raises:
        MissingToolError: If the tool is not on PATH.
    """
    if shutil.which(tool) is None:
        raise MissingToolError(tool, TOOL_INSTALL_URLS.get(tool, "its documentation"))
    log.debug(f"{tool} is installed")


def check_az_login() -> AzureAccount:
    """Return the active Azure subscription.

    Raises:
        AzCliNotAuthenticatedError: If not logged in or no subscription is selected.
    """
    log.info("Detecting Azure subscription...")
    try:
        account = get_account()
    except FatalError as e:
        raise AzCliNotAuthenticatedError() from e

    subscription_id = account.get("id", "")
    if not subscription_id:
        raise AzCliNotAuthenticatedError()

    return AzureAccount(subscription_id=subscription_id, subscription_name=account.get("name", ""))


def export_subscription(account: AzureAccount):
    """Point the Terraform azurerm provider at the active subscription."""
    os.environ["ARM_SUBSCRIPTION_ID"] = account.subscription_id


def run_preflight_checks(tools: Iterable[str] = ("terraform", "az")) -> AzureAccount:
    log.info("Checking prerequisites...")
    for tool in tools:
        check_tool_installed(tool)

    account = check_az_login()
    log.info("All prerequisites met")
    log.info(f"Using Azure subscription: {account.subscription_name} ({account.subscription_id})")
    export_subscription(account)
    return account
