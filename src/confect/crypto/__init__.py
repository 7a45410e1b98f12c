"""Encryption at rest for designated tracked files."""

from .codec import EncryptionScheme, SecretCodec

__all__ = ["EncryptionScheme", "SecretCodec"]
