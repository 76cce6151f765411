# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Interactive prompts used by the deployment tools."""

from getpass import getpass

from .constants import APPROVAL_ANSWER


def confirm(question: str) -> bool:
    """Ask a yes/no question. Only an explicit 'yes' approves."""
    try:
        return input(f"{question} (yes/no): ").strip() == APPROVAL_ANSWER
    except EOFError:
        # Non-interactive mode
        return False


def prompt_secret(prompt: str) -> str:
    try:
        return getpass(f"{prompt}: ").strip()
    except EOFError:
        return ""


def wait_for_enter(message: str):
    try:
        input(message)
    except EOFError:
        pass
