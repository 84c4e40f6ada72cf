"""
Error taxonomy for repository collection and scoring.
Fetch failures are categorized here so the CLI can report them without inspecting HTTP details.
"""
from typing import Optional


class RepoScoreError(Exception):
    """Base exception for all reposcore errors."""


class ConfigurationError(RepoScoreError):
    """Raised for invalid weights files, presets or repository arguments."""


class AuthenticationError(RepoScoreError):
    """Raised when GitHub rejects the supplied token. Fatal to the whole run, not just one repository."""

    def __init__(self, message: str, repo: Optional[str] = None):
        super().__init__(message)
        self.repo = repo


class CollectionError(RepoScoreError):
    """Base class for failures while collecting a repository's issues and PRs."""

    def __init__(self, message: str, repo: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.repo = repo
        self.status = status


class RepositoryNotFound(CollectionError):
    """Raised when the repository does not exist or is not visible to the token."""


class RateLimited(CollectionError):
    """Raised when the GitHub API quota is exhausted."""


class TransientNetworkError(CollectionError):
    """Raised for connection failures and unexpected HTTP statuses."""


class CollectionCancelled(CollectionError):
    """Raised inside a repository pipeline after the collector was cancelled."""


__all__ = [
    "RepoScoreError",
    "ConfigurationError",
    "AuthenticationError",
    "CollectionError",
    "RepositoryNotFound",
    "RateLimited",
    "TransientNetworkError",
    "CollectionCancelled",
]
