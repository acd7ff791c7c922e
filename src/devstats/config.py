"""Configuration parsing and validation for devstats."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple

from dotenv import load_dotenv

from .errors import AuthenticationError, ConfigurationError
from .models import SearchOptions

_OWNER_REPO_TOKEN_LEN = 2
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the statistics run."""

    search: SearchOptions
    owner: str
    name: str
    workers: int
    token: str


def parse_repository(repository: str) -> Tuple[str, str]:
    """Split an ``owner/name`` repository identifier.

    Raises:
        ConfigurationError: If the identifier does not hold exactly two
            non-empty tokens.
    """
    tokens = repository.split("/")
    if len(tokens) != _OWNER_REPO_TOKEN_LEN or not all(tokens):
        raise ConfigurationError(
            f"Invalid repository '{repository}': must provide owner and repo, "
            "for example 'jtsiros/devstats'."
        )
    return tokens[0], tokens[1]


def load_config(
    repository: str,
    authors: Sequence[str],
    from_date: Optional[date],
    workers: int = DEFAULT_WORKERS,
) -> Config:
    """Build and validate application configuration.

    Args:
        repository: GitHub repository in ``owner/name`` form.
        authors: Logins whose pull requests are analyzed, in report order.
        from_date: Only pull requests created after this date are searched.
        workers: Number of concurrent enrichment workers.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If the repository, authors or workers are invalid.
        AuthenticationError: If ``GITHUB_TOKEN`` is not configured.
    """
    owner, name = parse_repository(repository)

    cleaned_authors = tuple(author.strip() for author in authors if author.strip())
    if not cleaned_authors:
        raise ConfigurationError("At least one author is required.")

    if workers <= 0:
        raise ConfigurationError("Invalid value for 'workers': expected an integer greater than 0.")

    load_dotenv()
    token: str = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable or add it to a .env file."
        )

    return Config(
        search=SearchOptions(from_date=from_date, authors=cleaned_authors, repository=repository),
        owner=owner,
        name=name,
        workers=workers,
        token=token,
    )
