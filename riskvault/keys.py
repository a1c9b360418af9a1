"""
Key management for the decryption oracle.

The oracle signs every answered request with Ed25519. The ledger side only
ever needs the trust store: a mapping of key id to base64 public key.
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .hashing import b64d, b64e

DEFAULT_ORACLE_KID = "riskvault-oracle-01"


class OracleKeyProvider(ABC):
    """Abstract interface for oracle answer signing and trust store retrieval."""

    @abstractmethod
    def sign_decryption(self, payload: bytes) -> Tuple[str, str]:
        """
        Sign a payload and return (kid, signature_b64).

        Args:
            payload: The canonical proof message to sign
        """
        pass

    @abstractmethod
    def get_trust_store(self) -> Dict[str, Any]:
        """
        Get the trust store containing public keys.

        Returns:
            Dict with an "oracle_keys" mapping of kid -> base64 public key
        """
        pass

    @abstractmethod
    def get_kid(self) -> str:
        pass


class EphemeralOracleKeyProvider(OracleKeyProvider):
    """In-memory key pair, generated at construction. For tests and demos."""

    def __init__(self, kid: str = DEFAULT_ORACLE_KID, signing_key: Optional[SigningKey] = None):
        self._kid = kid
        self._sk = signing_key or SigningKey.generate()

    def sign_decryption(self, payload: bytes) -> Tuple[str, str]:
        return self._kid, b64e(self._sk.sign(payload).signature)

    def get_trust_store(self) -> Dict[str, Any]:
        return {
            "trust_store_id": "riskvault-ephemeral",
            "oracle_keys": {self._kid: b64e(bytes(self._sk.verify_key))},
        }

    def get_kid(self) -> str:
        return self._kid


class FileOracleKeyProvider(OracleKeyProvider):
    """
    File-based key provider using an Ed25519 key stored in a JSON file.

    Thread-safe with cached trust store loading.
    """

    def __init__(self, signing_key_path: str, trust_store_path: str):
        self._signing_key_path = signing_key_path
        self._trust_store_path = trust_store_path
        self._lock = threading.RLock()
        self._trust_store_cache: Optional[Dict[str, Any]] = None
        self._trust_store_mtime: float = 0

        with open(self._signing_key_path, "r", encoding="utf-8") as f:
            raw = json.load(f)

        self._kid = raw["kid"]
        self._sk = SigningKey(b64d(raw["private_key_b64"]))

    def sign_decryption(self, payload: bytes) -> Tuple[str, str]:
        sig = self._sk.sign(payload).signature
        return self._kid, b64e(sig)

    def get_trust_store(self) -> Dict[str, Any]:
        """Reloads the trust store if the file has been modified."""
        with self._lock:
            try:
                mtime = os.path.getmtime(self._trust_store_path)
                if self._trust_store_cache is None or mtime > self._trust_store_mtime:
                    with open(self._trust_store_path, "r", encoding="utf-8") as f:
                        self._trust_store_cache = json.load(f)
                    self._trust_store_mtime = mtime
            except FileNotFoundError:
                if self._trust_store_cache is None:
                    raise

            return self._trust_store_cache

    def get_kid(self) -> str:
        return self._kid


def generate_oracle_keys(
    signing_key_path: str,
    trust_store_path: str,
    kid: str = DEFAULT_ORACLE_KID
) -> Dict[str, Any]:
    """
    Generate an oracle signing key and a trust store listing its public key.

    Returns:
        The trust store that was written
    """
    sk = SigningKey.generate()
    Path(signing_key_path).parent.mkdir(parents=True, exist_ok=True)
    Path(trust_store_path).parent.mkdir(parents=True, exist_ok=True)

    with open(signing_key_path, "w", encoding="utf-8") as f:
        json.dump({"kid": kid, "private_key_b64": b64e(bytes(sk))}, f, indent=2)

    trust = {
        "trust_store_id": "riskvault-trust-store",
        "trust_store_version": "1.0.0",
        "oracle_keys": {kid: b64e(bytes(sk.verify_key))},
        "revoked_kids": [],
    }
    with open(trust_store_path, "w", encoding="utf-8") as f:
        json.dump(trust, f, indent=2)

    return trust


def verify_ed25519(signature_b64: str, payload: bytes, public_key_b64: str) -> bool:
    """
    Verify an Ed25519 signature.

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        vk = VerifyKey(b64d(public_key_b64))
        vk.verify(payload, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False
