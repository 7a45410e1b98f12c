"""age X25519 backend.

Files are standard age envelopes (``age-encryption.org/v1``), so anything
sealed here opens with the ``age`` command line tool and vice versa.

Key strings:

- recipient: ``age1...``
- identity: ``AGE-SECRET-KEY-1...``
"""

from __future__ import annotations

import pyrage
from pyrage import x25519

from confect.errors import DecryptionError, EncryptionError

MAGIC = b"age-encryption.org/v1\n"
PASSPHRASE_STANZA = b"\n-> scrypt "


def parse_recipient(text: str) -> x25519.Recipient:
    """Parse an ``age1...`` recipient string.

    Raises:
        ValueError: *text* is not a valid X25519 recipient.
    """
    try:
        return x25519.Recipient.from_str(text.strip())
    except pyrage.RecipientError as exc:
        raise ValueError(f"not an age recipient: {text!r} ({exc})") from exc


def parse_identity(text: str) -> x25519.Identity:
    """Parse an ``AGE-SECRET-KEY-1...`` identity string."""
    try:
        return x25519.Identity.from_str(text.strip())
    except pyrage.IdentityError as exc:
        raise ValueError(f"not an age identity ({exc})") from exc


def generate() -> tuple[str, str]:
    """Return a fresh ``(identity, recipient)`` pair."""
    identity = x25519.Identity.generate()
    return str(identity), str(identity.to_public())


def seal(plaintext: bytes, recipients: list[x25519.Recipient]) -> bytes:
    """Encrypt *plaintext* so any of *recipients* can open it."""
    if not recipients:
        raise EncryptionError("No recipients configured")
    try:
        return pyrage.encrypt(plaintext, recipients)
    except pyrage.EncryptError as exc:
        raise EncryptionError(f"Failed to encrypt: {exc}") from exc


def open_envelope(data: bytes, identity: x25519.Identity) -> bytes:
    """Decrypt an age envelope with *identity*.

    Raises:
        DecryptionError: Not an age file, passphrase-encrypted, no stanza
            for *identity*, or the body fails authentication.
    """
    if not data.startswith(MAGIC):
        raise DecryptionError("Not an age-encrypted file")

    header_end = data.find(b"\n---")
    header = data if header_end == -1 else data[:header_end]
    if PASSPHRASE_STANZA in header:
        raise DecryptionError("Passphrase-encrypted files not supported")

    try:
        return pyrage.decrypt(data, [identity])
    except pyrage.DecryptError as exc:
        raise DecryptionError(f"Failed to decrypt: {exc}") from exc
