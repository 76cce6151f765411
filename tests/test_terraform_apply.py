# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

import json
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch as mock_patch

from aca_github_runner.errors import InputParamValidationError
from aca_github_runner.shell import ShellResult
from aca_github_runner.terraform_apply import apply_infrastructure, find_terraform_dir, parse_arguments
from tests.test_data import ACR_LOGIN_SERVER, GITHUB_TOKEN, TFVARS_CONTENT

TERRAFORM_OUTPUTS = {"acr_login_server": {"sensitive": False, "type": "string", "value": ACR_LOGIN_SERVER}}


class TestApplyInfrastructure(TestCase):
    def setUp(self) -> None:
        """Set up test fixtures and reset global settings"""
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.repo_root = Path(tmp.name)
        self.terraform_dir = self.repo_root / "terraform"
        self.terraform_dir.mkdir()
        (self.terraform_dir / "main.tf").write_text("")
        (self.terraform_dir / "terraform.tfvars").write_text(TFVARS_CONTENT)

        self.preflight_mock = self.patch("aca_github_runner.terraform_apply.run_preflight_checks")
        self.run_command_mock = self.patch("aca_github_runner.terraform.run_command")
        self.run_command_mock.return_value = ShellResult(
            returncode=0, stdout=json.dumps(TERRAFORM_OUTPUTS), stderr=""
        )
        self.confirm_mock = self.patch("aca_github_runner.prompts.confirm", return_value=True)
        self.prompt_secret_mock = self.patch("aca_github_runner.prompts.prompt_secret", return_value=GITHUB_TOKEN)
        self.wait_mock = self.patch("aca_github_runner.prompts.wait_for_enter")

    def patch(self, path: str, **kwargs):
        """Helper method to patch and auto-cleanup"""
        patcher = mock_patch(path, **kwargs)
        self.addCleanup(patcher.stop)
        return patcher.start()

    def commands(self) -> list[list[str]]:
        return [list(call[0][0]) for call in self.run_command_mock.call_args_list]

    def test_apply_from_repository_root(self):
        """Test the full cycle runs in terraform/ and writes outputs next to it"""
        outputs_file = apply_infrastructure(self.repo_root, GITHUB_TOKEN, False, False)

        self.assertEqual(outputs_file, self.repo_root / "outputs.json")
        self.assertEqual(json.loads(outputs_file.read_text()), TERRAFORM_OUTPUTS)
        self.assertEqual(
            self.commands(),
            [
                ["terraform", "init"],
                ["terraform", "validate"],
                ["terraform", "plan", "-var", f"github_pat={GITHUB_TOKEN}", "-out=tfplan"],
                ["terraform", "apply", "tfplan"],
                ["terraform", "output", "-json"],
                ["terraform", "output"],
            ],
        )
        self.assertEqual(self.run_command_mock.call_args.kwargs["cwd"], self.terraform_dir)
        self.preflight_mock.assert_called_once()
        self.confirm_mock.assert_called_once_with("Do you want to apply this plan?")

    def test_pat_is_masked_in_logs(self):
        with self.assertLogs("github_runner", level="DEBUG") as logs:
            apply_infrastructure(self.repo_root, GITHUB_TOKEN, False, False)

        self.assertFalse(any(GITHUB_TOKEN in line for line in logs.output))

    def test_without_pat_plans_without_variables(self):
        apply_infrastructure(self.terraform_dir, "", False, True)

        self.assertIn(["terraform", "plan", "-out=tfplan"], self.commands())
        self.prompt_secret_mock.assert_not_called()
        self.confirm_mock.assert_not_called()

    def test_prompt_secrets(self):
        apply_infrastructure(self.repo_root, "", True, True)

        self.prompt_secret_mock.assert_called_once_with("Enter GitHub PAT")
        self.assertIn(["terraform", "plan", "-var", f"github_pat={GITHUB_TOKEN}", "-out=tfplan"], self.commands())

    def test_prompt_secrets_empty(self):
        self.prompt_secret_mock.return_value = ""

        with self.assertRaises(InputParamValidationError):
            apply_infrastructure(self.repo_root, "", True, True)

        self.run_command_mock.assert_not_called()

    def test_declined_plan(self):
        self.confirm_mock.return_value = False

        self.assertIsNone(apply_infrastructure(self.repo_root, GITHUB_TOKEN, False, False))
        self.assertNotIn(["terraform", "apply", "tfplan"], self.commands())
        self.assertFalse((self.repo_root / "outputs.json").exists())

    def test_creates_tfvars_from_example(self):
        (self.terraform_dir / "terraform.tfvars").unlink()
        (self.terraform_dir / "terraform.tfvars.example").write_text(TFVARS_CONTENT)

        apply_infrastructure(self.repo_root, GITHUB_TOKEN, False, True)

        self.assertEqual((self.terraform_dir / "terraform.tfvars").read_text(), TFVARS_CONTENT)
        self.wait_mock.assert_called_once()

    def test_missing_tfvars_and_example(self):
        (self.terraform_dir / "terraform.tfvars").unlink()

        with self.assertRaises(InputParamValidationError):
            apply_infrastructure(self.repo_root, GITHUB_TOKEN, False, True)

        self.run_command_mock.assert_not_called()


class TestFindTerraformDir(TestCase):
    def test_not_in_repository(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(InputParamValidationError):
                find_terraform_dir(Path(tmp))


class TestParseArguments(TestCase):
    def test_defaults(self):
        args = parse_arguments([])

        self.assertFalse(args.prompt_secrets)
        self.assertEqual(args.github_pat, "")
        self.assertFalse(args.auto_approve)
        self.assertEqual(args.log_level, "INFO")
