# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

import logging
from logging import basicConfig, getLogger

log = getLogger("github_runner")


def configure_logging(log_level: str):
    basicConfig(level=getattr(logging, log_level.upper(), logging.INFO))


def log_header(message: str):
    """Log a formatted header message."""
    separator = "=" * 70
    header = "\n".join(["", separator, message, separator, ""])
    log.info(header)
