"""Configuration parsing and validation for the PR delivery metrics generator."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .errors import AuthenticationError, ConfigurationError

DEFAULT_WINDOW_DAYS = 14
DEFAULT_NO_TICKET_MARKER = "noticket"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics generator."""

    owner: str
    repo_name: str
    window_days: int
    no_ticket_marker: str
    max_workers: int
    token: str


def load_config(
    owner: str,
    repo_name: str,
    window_days: int = DEFAULT_WINDOW_DAYS,
    no_ticket_marker: str = DEFAULT_NO_TICKET_MARKER,
    max_workers: int = 1,
) -> Config:
    """Build and validate application configuration.

    A ``.env`` file in the working directory is loaded first; variables that are
    already set in the environment take precedence over it.

    Args:
        owner: GitHub user or organization owning the repository.
        repo_name: GitHub repository name.
        window_days: Positive number of days of merged pull requests to analyze.
        no_ticket_marker: Branch-label substring marking untracked pull requests.
        max_workers: Positive number of concurrent timeline fetches.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If any value is empty or not greater than ``0``.
        AuthenticationError: If ``GITHUB_TOKEN`` is not configured.
    """
    if not owner.strip():
        raise ConfigurationError("Invalid value for 'owner': expected a non-empty string.")
    if not repo_name.strip():
        raise ConfigurationError("Invalid value for 'repo': expected a non-empty string.")
    if window_days <= 0:
        raise ConfigurationError("Invalid value for 'days': expected an integer greater than 0.")
    if max_workers <= 0:
        raise ConfigurationError("Invalid value for 'workers': expected an integer greater than 0.")
    if not no_ticket_marker:
        raise ConfigurationError("Invalid value for 'no-ticket-marker': expected a non-empty string.")

    load_dotenv(override=False)

    token: str = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub access token. "
            "Set the 'GITHUB_TOKEN' environment variable (or add it to a .env file) "
            "before running the metrics generator."
        )

    return Config(
        owner=owner.strip(),
        repo_name=repo_name.strip(),
        window_days=window_days,
        no_ticket_marker=no_ticket_marker,
        max_workers=max_workers,
        token=token,
    )
