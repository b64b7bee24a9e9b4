"""
Transaction signing abstractions

Key material stays behind the Signer protocol; the rest of the library
only ever asks for a public key and a signature over message bytes.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional, Protocol, runtime_checkable

import base58
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from ..errors import SignerError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for transaction signers

    Implementations must provide:
    - pubkey: The signer's public key (base58)
    - sign(): Sign arbitrary message bytes
    """

    @property
    def pubkey(self) -> str:
        """Signer's public key (base58)"""
        ...

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message

        Args:
            message: Message bytes to sign

        Returns:
            64-byte signature
        """
        ...


def message_bytes_for_signing(tx: VersionedTransaction) -> bytes:
    """
    Bytes a signer must sign for a versioned transaction.

    MessageV0 is signed with its 0x80 version prefix.
    """
    message = tx.message
    message_bytes = bytes(message)
    if isinstance(message, MessageV0):
        message_bytes = bytes([0x80]) + message_bytes
    return message_bytes


class LocalSigner:
    """
    Local signer using Solana keypair

    Usage:
        signer = LocalSigner.from_file("~/.config/solana/id.json")
        signature = signer.sign(message_bytes_for_signing(tx))
    """

    def __init__(self, keypair: Keypair):
        """
        Initialize with keypair

        Args:
            keypair: solders.keypair.Keypair instance
        """
        self._keypair = keypair

    @property
    def pubkey(self) -> str:
        """Public key as base58 string"""
        return str(self._keypair.pubkey())

    def sign(self, message: bytes) -> bytes:
        """Sign message bytes"""
        return bytes(self._keypair.sign_message(message))

    @classmethod
    def from_bytes(cls, secret_key: bytes) -> "LocalSigner":
        """Create signer from secret key bytes (64 bytes)"""
        if len(secret_key) != 64:
            raise ConfigurationError.invalid(
                "secret_key", f"expected 64 bytes, got {len(secret_key)}"
            )
        try:
            keypair = Keypair.from_bytes(secret_key)
        except ValueError as e:
            raise ConfigurationError.invalid("secret_key", str(e)) from e
        return cls(keypair)

    @classmethod
    def from_base58(cls, secret_key: str) -> "LocalSigner":
        """Create signer from base58 secret key"""
        try:
            secret_bytes = base58.b58decode(secret_key.strip())
        except ValueError as e:
            raise ConfigurationError.invalid("secret_key", "not valid base58") from e
        return cls.from_bytes(secret_bytes)

    @classmethod
    def from_secret(cls, secret: str) -> "LocalSigner":
        """
        Create signer from an exported secret

        Accepts a JSON byte array (Solana CLI format) or a base58 string.
        """
        text = secret.strip()
        if text.startswith("["):
            try:
                return cls.from_bytes(bytes(json.loads(text)))
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                raise ConfigurationError.invalid("secret_key", "malformed JSON byte array") from e
        return cls.from_base58(text)

    @classmethod
    def from_file(cls, path: str) -> "LocalSigner":
        """
        Create signer from keypair file

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - Raw bytes file (64 bytes)
        """
        path = os.path.expanduser(path)
        with open(path, "rb") as f:
            content = f.read()

        try:
            data = json.loads(content.decode("utf-8"))
            if isinstance(data, list):
                return cls.from_bytes(bytes(data))
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass

        if len(content) == 64:
            return cls.from_bytes(content)

        raise ConfigurationError.invalid("keypair_file", f"Cannot parse keypair file: {path}")


def create_signer(
    keypair: Optional[Keypair] = None,
    keypair_path: Optional[str] = None,
    private_key: Optional[str] = None,
) -> Signer:
    """
    Create signer based on configuration

    Priority:
    1. keypair: Use LocalSigner with provided keypair
    2. keypair_path: Load keypair from file
    3. private_key: Base58 or JSON byte array secret
    4. Environment: SOLANA_KEYPAIR_PATH, then SOLANA_PRIVATE_KEY

    Raises:
        SignerError: If no valid signer configuration found
    """
    if keypair is not None:
        return LocalSigner(keypair)

    if keypair_path is not None:
        return LocalSigner.from_file(keypair_path)

    if private_key:
        return LocalSigner.from_secret(private_key)

    env_path = global_config.signer.keypair_path
    if env_path and os.path.isfile(os.path.expanduser(env_path)):
        logger.debug("Loading signer from SOLANA_KEYPAIR_PATH")
        return LocalSigner.from_file(env_path)

    if global_config.signer.private_key:
        logger.debug("Loading signer from SOLANA_PRIVATE_KEY")
        return LocalSigner.from_secret(global_config.signer.private_key)

    raise SignerError.not_configured()
