"""Core domain types: categories and the repository layout."""

from .category import Category, CategoryRegistry
from .repository import BACKUP_SUFFIX, RepoConfig, Repository

__all__ = [
    "BACKUP_SUFFIX",
    "Category",
    "CategoryRegistry",
    "RepoConfig",
    "Repository",
]
