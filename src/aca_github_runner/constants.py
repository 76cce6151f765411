# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# GitHub
DEFAULT_GITHUB_URL = "https://github.com"
GITHUB_API_URL = "https://api.github.com"
GITHUB_ENTERPRISE_API_PREFIX = "api/v3"
GITHUB_API_ACCEPT = "application/vnd.github.v3+json"
REGISTRATION_TOKEN_ENDPOINT = "actions/runners/registration-token"
NULL_TOKEN = "null"

# Runner defaults
DEFAULT_RUNNER_LABELS = "self-hosted,linux"
DEFAULT_RUNNER_GROUP = "default"
DEFAULT_LOG_LEVEL = "INFO"
RUNNER_CONFIG_SCRIPT = "config.sh"
RUNNER_RUN_SCRIPT = "run.sh"

# Process exit codes
EXIT_SUCCESS = 0
EXIT_CONFIGURATION_ERROR = 1
EXIT_REGISTRATION_TOKEN_ERROR = 4
EXIT_COMMAND_NOT_EXECUTABLE = 126
EXIT_COMMAND_NOT_FOUND = 127

# Deployment
TERRAFORM_DIR = "terraform"
TFVARS_FILE = "terraform.tfvars"
TFVARS_EXAMPLE_FILE = "terraform.tfvars.example"
PLAN_FILE = "tfplan"
OUTPUTS_FILE = "outputs.json"
IMAGE_REFERENCE_FILE = ".image-reference"
IMAGE_REFERENCE_VARIABLE = "GITHUB_RUNNER_IMAGE"
APPROVAL_ANSWER = "yes"
GITHUB_PAT_ENV_VARS = ["GITHUB_PAT_ENV", "TF_VAR_github_pat"]
REQUIRED_TFVARS = ["acr_name", "resource_group_name", "github_runner_job_name"]

# ACR build defaults
DEFAULT_ACR_TASK_NAME = "build-github-runner"
DEFAULT_IMAGE_NAME = "github-runner"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_DOCKERFILE_PATH = "docker/Dockerfile"
DEFAULT_CONTEXT_PATH = "docker"
DEFAULT_GIT_BRANCH = "main"

TOOL_INSTALL_URLS = {
    "terraform": "https://www.terraform.io/downloads.html",
    "az": "https://docs.microsoft.com/en-us/cli/azure/install-azure-cli",
}
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
