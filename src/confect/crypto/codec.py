"""Per-file secret codec.

``SecretCodec`` encrypts tracked files for a set of recipients before they
land in the repository and decrypts them on restore.  The envelope scheme is
a closed set (``EncryptionScheme``); callers only ever use
``encrypt_*`` / ``decrypt_*`` / ``is_encrypted`` and never see which backend
is behind them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import Any

from confect.crypto import x25519
from confect.errors import DecryptionError, EncryptionError, io_errors

logger = logging.getLogger(__name__)


class EncryptionScheme(str, Enum):
    """Supported envelope schemes."""

    X25519 = "x25519"


_BACKENDS: dict[EncryptionScheme, ModuleType] = {
    EncryptionScheme.X25519: x25519,
}


def _key_lines(lines: Iterable[str]) -> list[str]:
    """Drop blank and ``#`` comment lines."""
    result = []
    for line in lines:
        line = line.strip()
        if line and not line.startswith("#"):
            result.append(line)
    return result


class SecretCodec:
    """Encrypt and decrypt whole files for one or more recipients.

    Args:
        recipients: Recipient public-key strings.  Blank and comment lines
            are ignored.
        scheme: Envelope scheme; only ``x25519`` exists today.

    Raises:
        EncryptionError: A non-blank, non-comment entry is not a valid
            recipient for *scheme*.
    """

    def __init__(
        self,
        recipients: Iterable[str] = (),
        scheme: EncryptionScheme = EncryptionScheme.X25519,
    ) -> None:
        self.scheme = EncryptionScheme(scheme)
        self._backend = _BACKENDS[self.scheme]
        self._recipient_strings = _key_lines(recipients)

        parsed: list[Any] = []
        for entry in self._recipient_strings:
            try:
                parsed.append(self._backend.parse_recipient(entry))
            except ValueError as exc:
                raise EncryptionError(f"Invalid recipient: {exc}") from exc
        self._recipients = parsed

    @classmethod
    def from_recipients_file(
        cls,
        path: Path,
        scheme: EncryptionScheme = EncryptionScheme.X25519,
    ) -> SecretCodec:
        """Build a codec from a file holding one recipient per line."""
        with io_errors("read recipients file", path):
            text = Path(path).read_text(encoding="utf-8")
        return cls(text.splitlines(), scheme=scheme)

    @property
    def recipients(self) -> list[str]:
        return list(self._recipient_strings)

    # ------------------------------------------------------------------
    # In-memory
    # ------------------------------------------------------------------

    def encrypt_bytes(self, plaintext: bytes) -> bytes:
        """Seal *plaintext* for every configured recipient.

        Raises:
            EncryptionError: No recipients are configured.
        """
        if not self._recipients:
            raise EncryptionError("No recipients configured")
        return self._backend.seal(plaintext, self._recipients)

    def decrypt_bytes(self, ciphertext: bytes, identity: str) -> bytes:
        """Open an envelope with the private *identity* string.

        Raises:
            DecryptionError: The identity is malformed, does not match any
                recipient, or the envelope uses an unsupported scheme.
        """
        try:
            key = self._backend.parse_identity(identity)
        except ValueError as exc:
            raise DecryptionError(f"Invalid identity: {exc}") from exc
        return self._backend.open_envelope(ciphertext, key)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def encrypt_file(self, input_path: Path, output_path: Path) -> None:
        if not self._recipients:
            raise EncryptionError("No recipients configured")
        with io_errors("read", input_path):
            plaintext = Path(input_path).read_bytes()
        ciphertext = self.encrypt_bytes(plaintext)
        with io_errors("write", output_path):
            Path(output_path).write_bytes(ciphertext)
        logger.debug("Encrypted %s -> %s", input_path, output_path)

    def decrypt_file(
        self, input_path: Path, output_path: Path, identity: str
    ) -> None:
        with io_errors("read", input_path):
            ciphertext = Path(input_path).read_bytes()
        plaintext = self.decrypt_bytes(ciphertext, identity)
        with io_errors("write", output_path):
            Path(output_path).write_bytes(plaintext)
        logger.debug("Decrypted %s -> %s", input_path, output_path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def is_encrypted(path: Path) -> bool:
        """Cheap check for the envelope tag at the start of *path*.

        Short or unreadable files simply return ``False``.
        """
        tag = x25519.MAGIC
        try:
            with open(path, "rb") as fh:
                head = fh.read(len(tag))
        except OSError:
            return False
        return head == tag

    @staticmethod
    def generate_keypair(
        scheme: EncryptionScheme = EncryptionScheme.X25519,
    ) -> tuple[str, str]:
        """Return a fresh ``(identity, recipient)`` pair of opaque strings."""
        return _BACKENDS[EncryptionScheme(scheme)].generate()

    @staticmethod
    def load_identity(path: Path) -> str:
        """Return the first identity line of an identity file.

        Raises:
            DecryptionError: The file holds no identity.
        """
        with io_errors("read identity file", path):
            lines = _key_lines(Path(path).read_text(encoding="utf-8").splitlines())
        if not lines:
            raise DecryptionError(f"No identity found in {path}")
        return lines[0]
