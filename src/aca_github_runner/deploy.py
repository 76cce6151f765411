#!/usr/bin/env python3
# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Complete deployment of the GitHub runner on Azure Container Apps.

1. Deploy base infrastructure (ACR, Container Apps Environment, Log Analytics)
2. Build and push the runner image to ACR
3. Deploy the Container Apps Job
4. Optionally trigger the job
"""

import argparse
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import prompts
from .acr_build import ImageBuild, build_image
from .az_cmd import start_job
from .constants import (
    DEFAULT_LOG_LEVEL,
    GITHUB_PAT_ENV_VARS,
    LOG_LEVELS,
    PLAN_FILE,
    REQUIRED_TFVARS,
    TERRAFORM_DIR,
    TFVARS_FILE,
)
from .errors import FatalError, InputParamValidationError, ResourceNotFoundError, UserActionRequiredError
from .logs import configure_logging, log, log_header
from .preflight import run_preflight_checks
from .terraform import Terraform, plan_and_apply, require_tfvars


@dataclass
class DeploymentSettings:
    """Names the deployment needs that live in terraform.tfvars."""

    acr_name: str
    resource_group: str
    job_name: str

    @classmethod
    def from_tfvars(cls, tfvars: Path) -> "DeploymentSettings":
        values = require_tfvars(tfvars, REQUIRED_TFVARS)
        return cls(
            acr_name=values["acr_name"],
            resource_group=values["resource_group_name"],
            job_name=values["github_runner_job_name"],
        )


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="GitHub Runner on Azure Container Apps - Complete Deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Example:\n  github-runner-deploy --github-pat ghp_xxxxxxxxxxxx --trigger-job",
    )
    parser.add_argument(
        "--github-pat",
        type=str,
        default="",
        help="GitHub PAT for runner registration (falls back to GITHUB_PAT_ENV, then TF_VAR_github_pat)",
    )
    parser.add_argument(
        "--trigger-job", action="store_true", help="Trigger the Container Apps Job after deployment"
    )
    parser.add_argument("--auto-approve", action="store_true", help="Skip Terraform approval prompts")
    parser.add_argument(
        "--skip-image-build",
        action="store_true",
        help="Skip image build (use if image already exists)",
    )
    parser.add_argument(
        "--repo-root", type=Path, default=Path.cwd(), help="Repository root containing terraform/ and docker/"
    )
    parser.add_argument("--log-level", type=str, default=DEFAULT_LOG_LEVEL, choices=LOG_LEVELS)
    return parser.parse_args(argv)


def resolve_github_pat(cli_value: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the PAT from the command line or, failing that, the environment.

    Raises:
        InputParamValidationError: If no PAT was provided anywhere.
    """
    if cli_value:
        return cli_value
    if environ is None:
        environ = os.environ
    for name in GITHUB_PAT_ENV_VARS:
        if value := environ.get(name):
            return value
    raise InputParamValidationError(
        "GitHub PAT is required. You can provide it in one of three ways:\n"
        "  1. Command line: --github-pat <token>\n"
        "  2. Environment variable: export GITHUB_PAT_ENV=<token>\n"
        "  3. Terraform variable: export TF_VAR_github_pat=<token>"
    )


def deploy_stage(
    terraform: Terraform, github_pat: str, deploy_runner_job: bool, auto_approve: bool, question: str
) -> bool:
    variables = {
        "github_pat": github_pat,
        "deploy_runner_job": "true" if deploy_runner_job else "false",
    }
    return plan_and_apply(terraform, variables, PLAN_FILE, auto_approve, question, prompts.confirm)


def trigger_job(settings: DeploymentSettings) -> bool:
    """Start the job. A failure here is not fatal: the job can be started later."""
    try:
        start_job(settings.job_name, settings.resource_group)
    except (FatalError, UserActionRequiredError, ResourceNotFoundError) as e:
        log.warning(f"Failed to trigger job (you can trigger it manually later): {e}")
        return False
    log.info("Job triggered successfully!")
    log.info("To check job execution status, run:")
    log.info(f"  {execution_list_command(settings)}")
    return True


def execution_list_command(settings: DeploymentSettings) -> str:
    return (
        f"az containerapp job execution list --name {settings.job_name} "
        f"--resource-group {settings.resource_group} --output table"
    )


def log_next_steps(settings: DeploymentSettings, job_triggered: bool):
    start_command = f"az containerapp job start --name {settings.job_name} --resource-group {settings.resource_group}"
    steps = [] if job_triggered else [f"Trigger the job: {start_command}"]
    steps += [
        f"Check job execution status: {execution_list_command(settings)}",
        "Verify runner in GitHub: Settings -> Actions -> Runners",
    ]
    log.info("Next steps:")
    for i, step in enumerate(steps, start=1):
        log.info(f"  {i}. {step}")
    log.info("To trigger the job manually in the future:")
    log.info(f"  {start_command}")


def deploy_all(
    repo_root: Path,
    github_pat: str,
    trigger: bool = False,
    auto_approve: bool = False,
    skip_image_build: bool = False,
) -> bool:
    """Run every deployment step. Returns False if the user cancelled at an approval prompt."""
    run_preflight_checks()

    terraform_dir = repo_root / TERRAFORM_DIR
    settings = DeploymentSettings.from_tfvars(terraform_dir / TFVARS_FILE)
    log.info("Configuration:")
    log.info(f"  ACR Name: {settings.acr_name}")
    log.info(f"  Resource Group: {settings.resource_group}")
    log.info(f"  Job Name: {settings.job_name}")

    terraform = Terraform(terraform_dir)

    log_header("STEP 1: Deploying Base Infrastructure")
    terraform.init()
    terraform.validate()
    if not deploy_stage(
        terraform, github_pat, False, auto_approve, "Do you want to deploy the base infrastructure?"
    ):
        log.warning("Deployment cancelled")
        return False
    log.info("Base infrastructure deployed successfully!")

    log_header("STEP 2: Building and Pushing Docker Image")
    if skip_image_build:
        log.warning("Skipping image build as requested")
    else:
        build_image(ImageBuild(acr_name=settings.acr_name), repo_root)
        log.info("Image built and pushed successfully!")

    log_header("STEP 3: Deploying Container Apps Job")
    if not deploy_stage(terraform, github_pat, True, auto_approve, "Do you want to deploy the Container Apps Job?"):
        log.warning("Deployment cancelled")
        return False
    log.info("Container Apps Job deployed successfully!")

    job_triggered = False
    if trigger:
        log_header("STEP 4: Triggering Container Apps Job")
        job_triggered = trigger_job(settings)

    log_header("Deployment Complete!")
    log_next_steps(settings, job_triggered)
    return True


def main():
    args = parse_arguments()
    configure_logging(args.log_level)

    try:
        github_pat = resolve_github_pat(args.github_pat)
        log_header("GitHub Runner on Azure Container Apps - Complete Deployment")
        deploy_all(
            args.repo_root,
            github_pat,
            trigger=args.trigger_job,
            auto_approve=args.auto_approve,
            skip_image_build=args.skip_image_build,
        )
    except UserActionRequiredError as e:
        log.error(e.user_action_message)
        sys.exit(e.exit_code)
    except FatalError as e:
        log.error(f"Failed with error: {e}")
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
