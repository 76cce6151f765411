# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from dataclasses import FrozenInstanceError
from unittest import TestCase
from unittest.mock import patch as mock_patch

# project
from aca_github_runner.configuration import RunnerConfiguration, parse_config
from aca_github_runner.errors import ConfigurationError
from tests.test_data import (
    GITHUB_ENTERPRISE_URL,
    GITHUB_OWNER,
    GITHUB_REPOSITORY,
    GITHUB_TOKEN,
    ORG_SCOPE_URL,
    ORG_TOKEN_URL,
    REPO_SCOPE_URL,
    REPO_TOKEN_URL,
    RUNNER_GROUP,
    RUNNER_LABELS,
    RUNNER_NAME,
    TEST_ENVIRON,
    get_test_config,
)


class TestRunnerConfiguration(TestCase):
    # ===== Scope Resolution Tests ===== #

    def test_organization_scope_without_repository(self):
        """Test an unset repository selects organization scope"""
        config = get_test_config()

        self.assertFalse(config.is_repository_scope)
        self.assertEqual(config.api_path, f"orgs/{GITHUB_OWNER}")
        self.assertEqual(config.scope_url, ORG_SCOPE_URL)
        self.assertEqual(config.scope_description, "Organization")

    def test_repository_scope_with_repository(self):
        """Test a non-empty repository selects repository scope"""
        config = get_test_config(repository=GITHUB_REPOSITORY)

        self.assertTrue(config.is_repository_scope)
        self.assertEqual(config.api_path, f"repos/{GITHUB_OWNER}/{GITHUB_REPOSITORY}")
        self.assertEqual(config.scope_url, REPO_SCOPE_URL)
        self.assertEqual(config.scope_description, "Repository")

    def test_scope_url_uses_enterprise_base_url(self):
        """Test scope URLs are built from the configured GitHub URL"""
        org_config = get_test_config(github_url=GITHUB_ENTERPRISE_URL)
        repo_config = get_test_config(github_url=GITHUB_ENTERPRISE_URL, repository=GITHUB_REPOSITORY)

        self.assertEqual(org_config.scope_url, f"{GITHUB_ENTERPRISE_URL}/{GITHUB_OWNER}")
        self.assertEqual(repo_config.scope_url, f"{GITHUB_ENTERPRISE_URL}/{GITHUB_OWNER}/{GITHUB_REPOSITORY}")

    # ===== Registration Token Endpoint Tests ===== #

    def test_registration_token_url_github_com_org(self):
        """Test github.com organization runners use api.github.com"""
        self.assertEqual(get_test_config().registration_token_url, ORG_TOKEN_URL)

    def test_registration_token_url_github_com_repo(self):
        """Test github.com repository runners use api.github.com"""
        config = get_test_config(repository=GITHUB_REPOSITORY)

        self.assertEqual(config.registration_token_url, REPO_TOKEN_URL)

    def test_registration_token_url_enterprise(self):
        """Test GitHub Enterprise uses the /api/v3 prefix on its own host"""
        org_config = get_test_config(github_url=GITHUB_ENTERPRISE_URL)
        repo_config = get_test_config(github_url=GITHUB_ENTERPRISE_URL, repository=GITHUB_REPOSITORY)

        self.assertEqual(
            org_config.registration_token_url,
            f"{GITHUB_ENTERPRISE_URL}/api/v3/orgs/{GITHUB_OWNER}/actions/runners/registration-token",
        )
        self.assertEqual(
            repo_config.registration_token_url,
            f"{GITHUB_ENTERPRISE_URL}/api/v3/repos/{GITHUB_OWNER}/{GITHUB_REPOSITORY}/actions/runners/registration-token",
        )

    def test_registration_token_url_requires_exact_github_host(self):
        """Test a github.com URL with a trailing slash is treated as an enterprise base URL"""
        config = get_test_config(github_url="https://github.com/")

        self.assertEqual(
            config.registration_token_url,
            f"https://github.com//api/v3/orgs/{GITHUB_OWNER}/actions/runners/registration-token",
        )

    # ===== Immutability Tests ===== #

    def test_configuration_is_immutable(self):
        """Test configuration cannot be changed after construction"""
        config = get_test_config()

        with self.assertRaises(FrozenInstanceError):
            config.owner = "other-org"

    def test_repr_hides_token(self):
        """Test the personal access token never appears in the repr"""
        self.assertNotIn(GITHUB_TOKEN, repr(get_test_config()))


class TestParseConfig(TestCase):
    def test_parse_config_with_defaults(self):
        """Test optional variables fall back to their defaults"""
        with mock_patch("aca_github_runner.configuration.socket.gethostname", return_value="container-host"):
            config = parse_config({"GITHUB_OWNER": GITHUB_OWNER, "GITHUB_TOKEN": GITHUB_TOKEN})

        self.assertEqual(config.owner, GITHUB_OWNER)
        self.assertEqual(config.token, GITHUB_TOKEN)
        self.assertEqual(config.repository, "")
        self.assertEqual(config.github_url, "https://github.com")
        self.assertEqual(config.runner_name, "container-host")
        self.assertEqual(config.labels, "self-hosted,linux")
        self.assertEqual(config.group, "default")
        self.assertEqual(config.runner_home, ".")
        self.assertEqual(config.log_level, "INFO")

    def test_parse_config_with_all_values(self):
        """Test every variable is read from the environment"""
        environ = {
            **TEST_ENVIRON,
            "GITHUB_REPOSITORY": GITHUB_REPOSITORY,
            "GITHUB_URL": GITHUB_ENTERPRISE_URL,
            "RUNNER_LABELS": RUNNER_LABELS,
            "RUNNER_GROUP": RUNNER_GROUP,
            "RUNNER_HOME": "/home/runner",
            "LOG_LEVEL": "DEBUG",
        }

        config = parse_config(environ)

        self.assertEqual(
            config,
            RunnerConfiguration(
                owner=GITHUB_OWNER,
                token=GITHUB_TOKEN,
                repository=GITHUB_REPOSITORY,
                github_url=GITHUB_ENTERPRISE_URL,
                runner_name=RUNNER_NAME,
                labels=RUNNER_LABELS,
                group=RUNNER_GROUP,
                runner_home="/home/runner",
                log_level="DEBUG",
            ),
        )

    def test_parse_config_empty_values_use_defaults(self):
        """Test empty optional variables behave like unset ones"""
        environ = {
            **TEST_ENVIRON,
            "GITHUB_REPOSITORY": "",
            "GITHUB_URL": "",
            "RUNNER_LABELS": "",
            "RUNNER_GROUP": "",
        }

        config = parse_config(environ)

        self.assertFalse(config.is_repository_scope)
        self.assertEqual(config.github_url, "https://github.com")
        self.assertEqual(config.labels, "self-hosted,linux")
        self.assertEqual(config.group, "default")

    def test_parse_config_missing_owner(self):
        """Test a missing GITHUB_OWNER is a configuration error"""
        with self.assertRaises(ConfigurationError) as context:
            parse_config({"GITHUB_TOKEN": GITHUB_TOKEN})

        self.assertIn("GITHUB_OWNER", str(context.exception))
        self.assertEqual(context.exception.exit_code, 1)

    def test_parse_config_missing_token(self):
        """Test a missing GITHUB_TOKEN is a configuration error"""
        with self.assertRaises(ConfigurationError) as context:
            parse_config({"GITHUB_OWNER": GITHUB_OWNER})

        self.assertIn("GITHUB_TOKEN", str(context.exception))

    def test_parse_config_empty_token(self):
        """Test an empty GITHUB_TOKEN counts as missing"""
        with self.assertRaises(ConfigurationError):
            parse_config({"GITHUB_OWNER": GITHUB_OWNER, "GITHUB_TOKEN": ""})

    def test_parse_config_reports_all_missing_variables(self):
        """Test the user action message lists every missing variable"""
        with self.assertRaises(ConfigurationError) as context:
            parse_config({})

        self.assertIn("GITHUB_OWNER", context.exception.user_action_message)
        self.assertIn("GITHUB_TOKEN", context.exception.user_action_message)

    def test_parse_config_reads_os_environ_by_default(self):
        """Test os.environ is used when no mapping is given"""
        with mock_patch.dict("aca_github_runner.configuration.os.environ", TEST_ENVIRON, clear=True):
            config = parse_config()

        self.assertEqual(config.owner, GITHUB_OWNER)
        self.assertEqual(config.runner_name, RUNNER_NAME)
