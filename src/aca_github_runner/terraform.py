# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""Terraform command execution and tfvars handling."""

import json
import re
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Optional

from .errors import InputParamValidationError, TerraformError
from .logs import log
from .shell import Cmd, run_command

TFVAR_LINE = re.compile(r'^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*"([^"]*)"')
SECRET_VARIABLES = {"github_pat"}


class TerraformCmd(Cmd):
    """Builder for terraform commands."""

    def __init__(self, subcommand: str):
        super().__init__(["terraform", subcommand])

    def var(self, name: str, value: str) -> "TerraformCmd":
        """Adds a -var assignment, masking secret variables when rendered."""
        self.flag("-var")
        return self.arg(f"{name}={value}", secret=name in SECRET_VARIABLES)


class Terraform:
    """Runs terraform in a working directory, streaming its output."""

    def __init__(self, work_dir: Path):
        self.work_dir = work_dir

    def _run(self, cmd: TerraformCmd, failure: str, capture_output: bool = False) -> str:
        log.debug(f"Running: {cmd}")
        result = run_command(cmd, cwd=self.work_dir, capture_output=capture_output)
        if not result.success:
            raise TerraformError(f"{failure} (exit code {result.returncode})")
        return result.stdout

    def init(self):
        log.info("Initializing Terraform...")
        self._run(TerraformCmd("init"), "Terraform initialization failed")
        log.info("Terraform initialized")

    def validate(self):
        log.info("Validating Terraform configuration...")
        self._run(TerraformCmd("validate"), "Terraform validation failed")
        log.info("Terraform configuration is valid")

    def plan(self, variables: Optional[dict[str, str]] = None, out: Optional[str] = None):
        cmd = TerraformCmd("plan")
        for name, value in (variables or {}).items():
            cmd.var(name, value)
        if out:
            cmd.append(f"-out={out}")
        self._run(cmd, "Terraform plan failed")

    def apply(self, plan_file: str):
        """Apply a saved plan. The plan file is removed whether or not apply succeeds."""
        log.info("Applying Terraform plan...")
        try:
            self._run(TerraformCmd("apply").arg(plan_file), "Terraform apply failed")
        finally:
            (self.work_dir / plan_file).unlink(missing_ok=True)

    def output_json(self) -> dict[str, Any]:
        output = self._run(TerraformCmd("output").flag("-json"), "Terraform output failed", capture_output=True)
        return json.loads(output or "{}")

    def output(self):
        self._run(TerraformCmd("output"), "Terraform output failed")


def read_tfvars(path: Path) -> dict[str, str]:
    """Read the string assignments of a tfvars file.

    Only ``name = "value"`` lines are understood; anything else is skipped.
    """
    values = {}
    for line in path.read_text().splitlines():
        if match := TFVAR_LINE.match(line):
            values[match.group(1)] = match.group(2).strip()
    return values


def require_tfvars(path: Path, keys: Iterable[str]) -> dict[str, str]:
    """Read the given keys from a tfvars file.

    Raises:
        InputParamValidationError: If the file is missing or a key is absent or empty.
    """
    if not path.is_file():
        raise InputParamValidationError(f"{path.name} not found. Please create it from {path.name}.example")

    keys = list(keys)
    values = read_tfvars(path)
    if missing := [key for key in keys if not values.get(key)]:
        raise InputParamValidationError(
            f"Failed to extract configuration from {path.name}: missing {', '.join(missing)}"
        )
    return {key: values[key] for key in keys}


def plan_and_apply(
    terraform: Terraform,
    variables: dict[str, str],
    plan_file: str,
    auto_approve: bool,
    question: str,
    confirm: Callable[[str], bool],
) -> bool:
    """Plan into a file, ask for approval unless auto-approved, then apply.

    Returns False when the user declines; the saved plan is discarded.
    """
    log.info("Running Terraform plan...")
    terraform.plan(variables, out=plan_file)
    log.info("Terraform plan completed successfully")

    if not auto_approve and not confirm(question):
        (terraform.work_dir / plan_file).unlink(missing_ok=True)
        return False

    terraform.apply(plan_file)
    return True
