"""Repository fetching."""

from .base import RepositoryFetcher
from .github import GitHubFetcher

__all__ = ["RepositoryFetcher", "GitHubFetcher"]
