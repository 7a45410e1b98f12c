"""confect: system configuration files tracked in a repository.

Files are grouped into categories, copied into a version-controlled
repository together with their POSIX metadata, and optionally encrypted at
rest.
"""

__version__ = "0.3.0"

from .core import Category, CategoryRegistry, Repository
from .crypto import EncryptionScheme, SecretCodec
from .errors import ConfectError
from .fs import FileMetadata, MetadataStore
from .sync import FileReconciler, FileStatus

__all__ = [
    "Category",
    "CategoryRegistry",
    "ConfectError",
    "EncryptionScheme",
    "FileMetadata",
    "FileReconciler",
    "FileStatus",
    "MetadataStore",
    "Repository",
    "SecretCodec",
    "__version__",
]
