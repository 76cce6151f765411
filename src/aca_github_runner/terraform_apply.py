#!/usr/bin/env python3
# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Deploy the infrastructure with Terraform while keeping the GitHub PAT out of tfvars."""

import argparse
import json
import shutil
import sys
from pathlib import Path
from typing import Optional

from . import prompts
from .constants import (
    DEFAULT_LOG_LEVEL,
    LOG_LEVELS,
    OUTPUTS_FILE,
    PLAN_FILE,
    TERRAFORM_DIR,
    TFVARS_EXAMPLE_FILE,
    TFVARS_FILE,
)
from .errors import FatalError, InputParamValidationError, UserActionRequiredError
from .logs import configure_logging, log, log_header
from .preflight import run_preflight_checks
from .terraform import Terraform, plan_and_apply


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Terraform apply wrapper for the GitHub runner infrastructure")
    parser.add_argument(
        "--prompt-secrets", action="store_true", help="Prompt for sensitive values (GitHub PAT)"
    )
    parser.add_argument(
        "--github-pat", type=str, default="", help="Provide GitHub PAT directly (not recommended)"
    )
    parser.add_argument("--auto-approve", action="store_true", help="Skip Terraform plan approval")
    parser.add_argument("--log-level", type=str, default=DEFAULT_LOG_LEVEL, choices=LOG_LEVELS)
    return parser.parse_args(argv)


def find_terraform_dir(cwd: Path) -> Path:
    """Accept either the terraform directory itself or the repository root."""
    if (cwd / "main.tf").is_file():
        return cwd
    if (cwd / TERRAFORM_DIR).is_dir():
        log.info("Changing to terraform directory...")
        return cwd / TERRAFORM_DIR
    raise InputParamValidationError(
        "Not in terraform directory and terraform/ not found. "
        "Please run this command from the repository root or terraform directory"
    )


def ensure_tfvars(terraform_dir: Path):
    """Create terraform.tfvars from the example and let the user edit it, if it is missing."""
    tfvars = terraform_dir / TFVARS_FILE
    if tfvars.is_file():
        return

    log.warning(f"{TFVARS_FILE} not found")
    example = terraform_dir / TFVARS_EXAMPLE_FILE
    if not example.is_file():
        raise InputParamValidationError(f"{TFVARS_EXAMPLE_FILE} not found")

    log.info(f"Creating {TFVARS_FILE} from {TFVARS_EXAMPLE_FILE}...")
    shutil.copyfile(example, tfvars)
    log.warning(f"Please edit {TFVARS_FILE} with your configuration before continuing")
    prompts.wait_for_enter(f"Press Enter to continue after editing {TFVARS_FILE}...")


def prompt_github_pat() -> str:
    log.info("GitHub Personal Access Token (PAT) is required for runner registration")
    log.info("The PAT needs the following scopes:")
    log.info("  - For repository runners: 'repo' scope")
    log.info("  - For organization runners: 'admin:org' scope")

    github_pat = prompts.prompt_secret("Enter GitHub PAT")
    if not github_pat:
        raise InputParamValidationError("GitHub PAT is required")
    log.info("GitHub PAT received")
    return github_pat


def write_outputs(terraform: Terraform) -> Path:
    outputs_file = terraform.work_dir.parent / OUTPUTS_FILE
    outputs_file.write_text(json.dumps(terraform.output_json(), indent=2))
    return outputs_file


def apply_infrastructure(
    cwd: Path, github_pat: str, prompt_secrets: bool, auto_approve: bool
) -> Optional[Path]:
    """Run the full init/validate/plan/apply cycle.

    Returns the outputs file, or None when the user declined the plan.
    """
    terraform_dir = find_terraform_dir(cwd)
    run_preflight_checks()
    ensure_tfvars(terraform_dir)

    if prompt_secrets and not github_pat:
        github_pat = prompt_github_pat()

    terraform = Terraform(terraform_dir)
    terraform.init()
    terraform.validate()

    variables = {"github_pat": github_pat} if github_pat else {}
    if not plan_and_apply(
        terraform, variables, PLAN_FILE, auto_approve, "Do you want to apply this plan?", prompts.confirm
    ):
        log.warning("Terraform apply cancelled")
        return None
    log.info("Terraform apply completed successfully!")

    outputs_file = write_outputs(terraform)
    log.info("Terraform outputs:")
    terraform.output()
    return outputs_file


def main():
    args = parse_arguments()
    configure_logging(args.log_level)
    log_header("Terraform Apply Wrapper")

    try:
        outputs_file = apply_infrastructure(Path.cwd(), args.github_pat, args.prompt_secrets, args.auto_approve)
    except UserActionRequiredError as e:
        log.error(e.user_action_message)
        sys.exit(e.exit_code)
    except FatalError as e:
        log.error(f"Failed with error: {e}")
        sys.exit(e.exit_code)

    if outputs_file is None:
        sys.exit(0)

    log.info(f"Outputs written to {outputs_file}")
    log_header("Infrastructure deployment complete!")
    log.info("Next steps:")
    log.info("  1. Build the runner image: github-runner-acr-build --acr-name <your-acr-name>")
    log.info("  2. Trigger the Container Apps Job to start a runner")
    log.info("  3. Verify the runner appears in GitHub Settings -> Actions -> Runners")


if __name__ == "__main__":
    main()
