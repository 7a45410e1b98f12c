"""Filesystem-side state kept outside file content."""

from .metadata import FileMetadata, MetadataStore

__all__ = ["FileMetadata", "MetadataStore"]
