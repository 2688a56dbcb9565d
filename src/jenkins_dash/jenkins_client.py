"""Jenkins client wrapper with environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

import jenkins

from jenkins_dash.errors import ConfigurationError


@dataclass(frozen=True)
class JenkinsSettings:
    url: str
    username: str = ""
    api_token: str = ""
    view: str | None = None
    log_level: str = "INFO"


def load_settings(environ: Mapping[str, str] | None = None) -> JenkinsSettings:
    """Read client settings from environment variables.

    Environment variables:
        JENKINS_URL: Jenkins server URL (required)
        JENKINS_USERNAME: Jenkins username (optional)
        JENKINS_API_TOKEN: Jenkins API token (optional)
        JENKINS_VIEW: Name of the view whose jobs are listed (optional)
        JENKINS_DASH_LOG_LEVEL: Log level, defaults to INFO (optional)

    Returns:
        The settings, read once; callers keep the returned record.

    Raises:
        ConfigurationError: If JENKINS_URL is not set.
    """
    env = os.environ if environ is None else environ
    url = env.get("JENKINS_URL")
    if not url:
        raise ConfigurationError(
            "JENKINS_URL environment variable is required. "
            "Please set it to your Jenkins server URL."
        )
    return JenkinsSettings(
        url=url,
        username=env.get("JENKINS_USERNAME", ""),
        api_token=env.get("JENKINS_API_TOKEN", ""),
        view=env.get("JENKINS_VIEW") or None,
        log_level=env.get("JENKINS_DASH_LOG_LEVEL", "INFO"),
    )


def get_client(settings: JenkinsSettings) -> jenkins.Jenkins:
    """Create a Jenkins client authenticated with HTTP Basic auth.

    The username/API-token pair is bound to the client here, once, and sent
    with every request it issues afterwards.
    """
    return jenkins.Jenkins(
        settings.url, username=settings.username, password=settings.api_token
    )
