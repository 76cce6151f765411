# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

import signal

from .constants import EXIT_CONFIGURATION_ERROR, EXIT_REGISTRATION_TOKEN_ERROR


def format_error_details(message: str) -> str:
    return f"\n\nError Details:\n{message}"


# Errors that prevent the script from completing successfully
class FatalError(Exception):
    """An error that prevents the runner or deployment from completing successfully."""

    exit_code = 1


class TerraformError(FatalError):
    """A Terraform command failed."""


class ImageBuildError(FatalError):
    """Building or verifying the runner image in ACR failed."""


class AgentError(FatalError):
    """The runner agent's configure or remove routine exited unsuccessfully."""

    def __init__(self, message: str, exit_code: int):
        super().__init__(message)
        self.exit_code = exit_code


# Expected Errors
class ResourceNotFoundError(Exception):
    """Azure resource was not found. This gets thrown during some resource existence checks."""


class RunnerInterrupted(Exception):
    """The process received an interrupt or termination signal."""

    def __init__(self, signum: int):
        super().__init__(signal.Signals(signum).name)
        self.signum = signum


# Errors users can resolve through manual action
class UserActionRequiredError(Exception):
    """An error that requires user action to resolve."""

    exit_code = 1

    def __init__(self, message: str, user_action_message: str | None = None):
        super().__init__(message)
        self.user_action_message = user_action_message or message


class ConfigurationError(UserActionRequiredError):
    """Required runner configuration is missing from the environment."""

    exit_code = EXIT_CONFIGURATION_ERROR


class InputParamValidationError(UserActionRequiredError):
    """Validation error in user input parameters."""

    def __init__(self, message: str):
        user_action_message = "Invalid input parameter. Please check your input(s) and try again."
        user_action_message += format_error_details(message)
        super().__init__(message, user_action_message)


class MissingToolError(UserActionRequiredError):
    """A required command line tool is not installed."""

    def __init__(self, tool: str, install_url: str):
        super().__init__(
            f"{tool} is not installed",
            user_action_message=f"{tool} is not installed. Please install it from: {install_url}",
        )


class AzCliNotAuthenticatedError(UserActionRequiredError):
    """Azure CLI is not authenticated. User needs to run 'az login'."""

    def __init__(self, message: str = "Azure CLI is not authenticated"):
        super().__init__(
            message,
            user_action_message="Not logged in to Azure or no subscription selected. Please run 'az login'"
            " and then 'az account set --subscription <subscription-id>'",
        )


class AccessError(UserActionRequiredError):
    """Not authorized to access the resource."""

    def __init__(self, message: str):
        user_action_message = "You don't have the necessary Azure permissions to access, create, or perform an action on a required resource."
        user_action_message += "\nPlease contact your Azure administrator if necessary."
        user_action_message += format_error_details(message)
        super().__init__(message, user_action_message)


class RegistrationTokenError(UserActionRequiredError):
    """GitHub did not issue a runner registration token for the personal access token."""

    exit_code = EXIT_REGISTRATION_TOKEN_ERROR

    def __init__(self, message: str, api_response: str = ""):
        user_action_message = f"Error: {message}"
        user_action_message += f"\nAPI Response: {api_response}"
        user_action_message += "\n\nPlease check your GitHub token has the correct permissions:"
        user_action_message += "\n  - For repo runners: 'repo' scope"
        user_action_message += "\n  - For org runners: 'admin:org' scope"
        user_action_message += "\n\nCommon issues:"
        user_action_message += "\n  1. Token has expired"
        user_action_message += "\n  2. Token doesn't have required scopes"
        user_action_message += "\n  3. Repository/Organization name is incorrect"
        user_action_message += "\n  4. Token is for a different GitHub account"
        super().__init__(message, user_action_message)
        self.api_response = api_response
