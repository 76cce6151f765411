#!/usr/bin/env python3
# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Build and push the GitHub runner image with ACR, without a local Docker daemon."""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from .az_cmd import acr_build, acr_task_exists, acr_task_run, get_acr_login_server, list_image_tags
from .constants import (
    DEFAULT_ACR_TASK_NAME,
    DEFAULT_CONTEXT_PATH,
    DEFAULT_DOCKERFILE_PATH,
    DEFAULT_GIT_BRANCH,
    DEFAULT_IMAGE_NAME,
    DEFAULT_IMAGE_TAG,
    DEFAULT_LOG_LEVEL,
    IMAGE_REFERENCE_FILE,
    IMAGE_REFERENCE_VARIABLE,
    LOG_LEVELS,
)
from .errors import FatalError, ImageBuildError, ResourceNotFoundError, UserActionRequiredError
from .logs import configure_logging, log
from .preflight import run_preflight_checks


@dataclass
class ImageBuild:
    """What to build and where to push it."""

    acr_name: str
    task_name: str = DEFAULT_ACR_TASK_NAME
    image_name: str = DEFAULT_IMAGE_NAME
    image_tag: str = DEFAULT_IMAGE_TAG
    dockerfile_path: str = DEFAULT_DOCKERFILE_PATH
    context_path: str = DEFAULT_CONTEXT_PATH
    git_repo_url: str = ""
    git_branch: str = DEFAULT_GIT_BRANCH

    @property
    def image(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    @property
    def git_context(self) -> str:
        return f"{self.git_repo_url}#{self.git_branch}:{self.context_path}"


def build_from_git(build: ImageBuild):
    log.info("Checking if ACR Task exists for Git-based builds...")
    if not acr_task_exists(build.task_name, build.acr_name):
        raise ImageBuildError(
            f"ACR Task '{build.task_name}' not found in registry '{build.acr_name}'. "
            "Git-based builds require an ACR Task: set enable_git_trigger=true in Terraform "
            "or build from the local context by omitting --git-repo-url"
        )
    log.info(f"Triggering ACR Task build with Git repository: {build.git_repo_url} (branch: {build.git_branch})")
    try:
        acr_task_run(build.task_name, build.acr_name, build.git_context, build.dockerfile_path)
    except FatalError as e:
        raise ImageBuildError(f"ACR Task build failed: {e}") from e


def build_from_local_context(build: ImageBuild, repo_root: Path):
    log.info("Using local build context (no ACR Task required)")
    context = repo_root / build.context_path
    dockerfile = repo_root / build.dockerfile_path

    if not context.is_dir():
        raise ImageBuildError(f"Build context path not found: {context}")
    if not dockerfile.is_file():
        raise ImageBuildError(f"Dockerfile not found: {dockerfile}")

    log.info(f"Context: {context}")
    log.info(f"Dockerfile: {dockerfile}")
    log.info("Building image using 'az acr build'...")
    try:
        acr_build(build.acr_name, build.image, str(dockerfile), str(context))
    except FatalError as e:
        raise ImageBuildError(f"ACR build failed: {e}") from e


def verify_image(build: ImageBuild):
    log.info("Verifying image in ACR...")
    try:
        tags = list_image_tags(build.acr_name, build.image_name)
    except (ResourceNotFoundError, FatalError) as e:
        raise ImageBuildError("Failed to verify image in ACR") from e

    log.info("Image successfully pushed to ACR")
    for tag in tags:
        log.info(f"  {tag.get('name', '')}  {tag.get('lastUpdateTime', '')}")


def write_image_reference(repo_root: Path, full_image_name: str) -> Path:
    reference_file = repo_root / IMAGE_REFERENCE_FILE
    reference_file.write_text(f"{IMAGE_REFERENCE_VARIABLE}={full_image_name}\n")
    return reference_file


def build_image(build: ImageBuild, repo_root: Path) -> str:
    """Build, push and verify the runner image, returning its full reference.

    Raises:
        ImageBuildError: If the registry is unknown or any build step fails.
    """
    log.info("Getting ACR login server...")
    login_server = get_acr_login_server(build.acr_name)
    if not login_server:
        raise ImageBuildError(f"Failed to get ACR login server. Please check ACR name: {build.acr_name}")

    full_image_name = f"{login_server}/{build.image}"
    log.info("ACR Configuration:")
    log.info(f"  Registry: {build.acr_name}")
    log.info(f"  Login Server: {login_server}")
    log.info(f"  Task Name: {build.task_name}")
    log.info(f"  Image: {full_image_name}")
    log.info(f"  Dockerfile: {build.dockerfile_path}")
    log.info(f"  Context: {build.context_path}")

    if build.git_repo_url:
        build_from_git(build)
    else:
        build_from_local_context(build, repo_root)
    log.info(f"ACR build completed successfully! Built image: {full_image_name}")

    verify_image(build)

    write_image_reference(repo_root, full_image_name)
    log.info(f"Image reference saved to {IMAGE_REFERENCE_FILE} file")
    return full_image_name


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Trigger an ACR build of the GitHub Actions runner image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
        "  github-runner-acr-build --acr-name myacr\n"
        "  github-runner-acr-build --acr-name myacr --image-tag v1.0.0\n"
        "  github-runner-acr-build --acr-name myacr --git-repo-url https://github.com/user/repo --git-branch develop",
    )
    parser.add_argument("--acr-name", type=str, required=True, help="Azure Container Registry name (required)")
    parser.add_argument("--task-name", type=str, default=DEFAULT_ACR_TASK_NAME, help="ACR Task name")
    parser.add_argument("--image-name", type=str, default=DEFAULT_IMAGE_NAME, help="Image name")
    parser.add_argument("--image-tag", type=str, default=DEFAULT_IMAGE_TAG, help="Image tag")
    parser.add_argument("--dockerfile-path", type=str, default=DEFAULT_DOCKERFILE_PATH, help="Dockerfile path")
    parser.add_argument("--context-path", type=str, default=DEFAULT_CONTEXT_PATH, help="Build context path")
    parser.add_argument("--git-repo-url", type=str, default="", help="Git repository URL for remote context")
    parser.add_argument("--git-branch", type=str, default=DEFAULT_GIT_BRANCH, help="Git branch")
    parser.add_argument(
        "--repo-root", type=Path, default=Path.cwd(), help="Repository root holding the build context"
    )
    parser.add_argument("--log-level", type=str, default=DEFAULT_LOG_LEVEL, choices=LOG_LEVELS)
    return parser.parse_args(argv)


def main():
    args = parse_arguments()
    configure_logging(args.log_level)

    build = ImageBuild(
        acr_name=args.acr_name,
        task_name=args.task_name,
        image_name=args.image_name,
        image_tag=args.image_tag,
        dockerfile_path=args.dockerfile_path,
        context_path=args.context_path,
        git_repo_url=args.git_repo_url,
        git_branch=args.git_branch,
    )
    try:
        run_preflight_checks(tools=("az",))
        build_image(build, args.repo_root)
    except UserActionRequiredError as e:
        log.error(e.user_action_message)
        sys.exit(e.exit_code)
    except FatalError as e:
        log.error(f"Failed with error: {e}")
        sys.exit(e.exit_code)

    log.info("Next steps:")
    log.info("  1. The Container Apps Job will automatically use this image")
    log.info("  2. Trigger the job: az containerapp job start --name <job-name> --resource-group <rg-name>")
    log.info("  3. Verify runner in GitHub: Settings -> Actions -> Runners")


if __name__ == "__main__":
    main()
