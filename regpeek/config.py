"""
Configuration for regpeek.

Loads all configuration from environment variables with sensible defaults.
"""

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Config:
    """
    Configuration from environment variables.

    Environment Variables:
        DOCKERHUB_PUBLIC_PROXY: URL of a mirror to use instead of docker.io.
            Default: unset, docker.io is contacted directly.
        REGPEEK_TIMEOUT: Timeout for registry requests in seconds. Default: 30
    """

    def __init__(self):
        self.DOCKERHUB_PUBLIC_PROXY = os.getenv("DOCKERHUB_PUBLIC_PROXY") or None
        self.TIMEOUT = _float_env("REGPEEK_TIMEOUT", DEFAULT_TIMEOUT)

    def __repr__(self):
        return (
            f"Config(DOCKERHUB_PUBLIC_PROXY={self.DOCKERHUB_PUBLIC_PROXY}, "
            f"TIMEOUT={self.TIMEOUT})"
        )


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, value, default)
        return default
