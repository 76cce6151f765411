# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

import json
import ssl
import urllib.request
from typing import Optional
from urllib.error import HTTPError, URLError

from .configuration import RunnerConfiguration
from .constants import GITHUB_API_ACCEPT, NULL_TOKEN
from .errors import RegistrationTokenError
from .logs import log


def request(
    method: str,
    url: str,
    headers: Optional[dict[str, str]] = None,
) -> tuple[str, int]:
    """Submit a single request to the given URL and return the body and status.

    HTTP error statuses are returned to the caller; network failures raise
    URLError.
    """
    req = urllib.request.Request(
        url,
        method=method,
        headers=headers or {},
    )

    try:
        with urllib.request.urlopen(req, context=ssl.create_default_context()) as response:
            return response.read().decode("utf-8"), response.status
    except HTTPError as e:
        return e.read().decode("utf-8"), e.code


def github_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"token {token}",
        "Accept": GITHUB_API_ACCEPT,
    }


def parse_registration_token(api_response: str) -> str:
    """Extract the ``token`` field, rendering it the way ``jq -r`` would."""
    try:
        payload = json.loads(api_response)
    except json.JSONDecodeError:
        return ""
    if not isinstance(payload, dict):
        return ""
    token = payload.get("token")
    if token is None:
        return NULL_TOKEN
    return token if isinstance(token, str) else json.dumps(token)


def request_registration_token(config: RunnerConfiguration) -> str:
    """Exchange the personal access token for a short-lived runner registration token.

    A single attempt is made.

    Raises:
        RegistrationTokenError: If GitHub did not return a usable token.
    """
    log.info("Generating registration token...")
    url = config.registration_token_url
    log.info(f"API URL: {url}")

    try:
        api_response, status = request("POST", url, headers=github_headers(config.token))
    except URLError as e:
        raise RegistrationTokenError(
            "Failed to generate registration token", api_response=f"Network error: {e.reason}"
        ) from e

    log.debug(f"Registration token request returned HTTP {status}")

    registration_token = parse_registration_token(api_response)
    if not registration_token or registration_token == NULL_TOKEN:
        raise RegistrationTokenError("Failed to generate registration token", api_response=api_response)

    log.info("Registration token generated successfully")
    return registration_token
