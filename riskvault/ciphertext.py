"""
RiskVault external encryption capability.

The ledger never reads ciphertext contents. It only stores, forwards and
combines CiphertextHandle values through an EncryptionBackend, and asks a
DecryptionOracle to reveal batches of them. Both are external collaborators;
oracle.py ships a reference implementation.
"""

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence

from .errors import MalformedPlaintext

# Plaintext layout delivered by the oracle: one big-endian uint32 per handle
UINT32_FORMAT = ">I"
UINT32_SIZE = struct.calcsize(UINT32_FORMAT)

RequestId = str


@dataclass(frozen=True)
class CiphertextHandle:
    """
    Opaque reference to an encrypted unsigned integer.

    handle_id identifies the ciphertext; payload is whatever the backend
    needs and is never inspected, compared or printed by the ledger.
    """
    handle_id: str
    payload: Any = field(default=None, repr=False, compare=False)


# (request_id, plaintext, proof) -> outcome
RevealCallback = Callable[[RequestId, bytes, Any], Any]


class EncryptionBackend(ABC):
    """Homomorphic operations over CiphertextHandle values."""

    @abstractmethod
    def encrypt(self, value: int) -> CiphertextHandle:
        """Encrypt an unsigned 32-bit integer."""
        pass

    @abstractmethod
    def add(self, a: CiphertextHandle, b: CiphertextHandle) -> CiphertextHandle:
        """Return a handle encrypting the sum of a and b."""
        pass

    def encrypt_zero(self) -> CiphertextHandle:
        return self.encrypt(0)

    def increment(self, handle: CiphertextHandle) -> CiphertextHandle:
        """Return a handle encrypting the value of handle plus one."""
        return self.add(handle, self.encrypt(1))


class DecryptionOracle(ABC):
    """
    Client side of the trusted decryption oracle.

    request_batch_decrypt returns immediately; the oracle later invokes the
    callback exactly once per request with the plaintext and a proof.
    """

    @abstractmethod
    def request_batch_decrypt(
        self,
        handles: Sequence[CiphertextHandle],
        callback: RevealCallback
    ) -> RequestId:
        pass

    @abstractmethod
    def verify(self, request_id: RequestId, plaintext: bytes, proof: Any) -> bool:
        """Check that proof authenticates plaintext as the answer to request_id."""
        pass


def encode_uint32s(values: Sequence[int]) -> bytes:
    """Pack values as consecutive big-endian uint32 words."""
    return b"".join(struct.pack(UINT32_FORMAT, v) for v in values)


def decode_uint32s(plaintext: bytes, count: int) -> List[int]:
    """
    Unpack exactly count big-endian uint32 words.

    Raises:
        MalformedPlaintext: If the length does not match count words
    """
    if not isinstance(plaintext, (bytes, bytearray)):
        raise MalformedPlaintext("plaintext must be bytes")
    expected = count * UINT32_SIZE
    if len(plaintext) != expected:
        raise MalformedPlaintext(
            f"expected {expected} bytes for {count} uint32 values, got {len(plaintext)}"
        )
    return list(struct.unpack(">" + "I" * count, bytes(plaintext)))
