"""
Reference encryption backend and decryption oracle.

PaillierBackend implements the additive homomorphic capability with
python-paillier. LocalDecryptionOracle plays the external oracle in-process:
it queues batch decryption requests, answers them later (on demand or from
a background worker thread) and signs every answer with Ed25519 so the ledger
can authenticate it.

Production deployments replace both with their own EncryptionBackend and
DecryptionOracle implementations.
"""

import logging
import secrets
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from phe import paillier

from .ciphertext import (
    CiphertextHandle,
    DecryptionOracle,
    EncryptionBackend,
    RequestId,
    RevealCallback,
    encode_uint32s,
)
from .classification import UINT32_MAX
from .errors import RiskVaultError
from .hashing import proof_message, sha256_hex
from .keys import EphemeralOracleKeyProvider, OracleKeyProvider
from .models import DecryptionProof
from .verifier import ProofVerifier

logger = logging.getLogger(__name__)

UINT32_MODULUS = 2**32


class PaillierBackend(EncryptionBackend):
    """
    Additive homomorphic encryption over uint32 values.

    Holds only the public key: anyone with a backend can encrypt and add,
    only the oracle holding the private key can decrypt.
    """

    def __init__(self, public_key: paillier.PaillierPublicKey):
        self.public_key = public_key

    def _wrap(self, encrypted: paillier.EncryptedNumber) -> CiphertextHandle:
        return CiphertextHandle(handle_id=f"ct-{secrets.token_hex(12)}", payload=encrypted)

    def _unwrap(self, handle: CiphertextHandle) -> paillier.EncryptedNumber:
        payload = handle.payload
        if not isinstance(payload, paillier.EncryptedNumber):
            raise ValueError(f"handle {handle.handle_id} is not a Paillier ciphertext")
        if payload.public_key != self.public_key:
            raise ValueError(f"handle {handle.handle_id} was encrypted under another key")
        return payload

    def encrypt(self, value: int) -> CiphertextHandle:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT32_MAX:
            raise ValueError("value must be an unsigned 32-bit integer")
        return self._wrap(self.public_key.encrypt(value))

    def add(self, a: CiphertextHandle, b: CiphertextHandle) -> CiphertextHandle:
        return self._wrap(self._unwrap(a) + self._unwrap(b))

    def increment(self, handle: CiphertextHandle) -> CiphertextHandle:
        return self._wrap(self._unwrap(handle) + 1)


def generate_paillier_keypair(
    key_bits: int = 2048
) -> Tuple[PaillierBackend, paillier.PaillierPrivateKey]:
    """
    Generate a Paillier key pair.

    Returns:
        Tuple of (backend holding the public key, private key for the oracle)
    """
    public_key, private_key = paillier.generate_paillier_keypair(n_length=key_bits)
    return PaillierBackend(public_key), private_key


@dataclass
class QueuedRequest:
    """A batch decryption request waiting for the oracle to answer it."""
    request_id: RequestId
    handles: Tuple[CiphertextHandle, ...]
    callback: RevealCallback
    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LocalDecryptionOracle(DecryptionOracle):
    """
    In-process decryption oracle.

    Usage:
        backend, private_key = generate_paillier_keypair()
        oracle = LocalDecryptionOracle(private_key)

        request_id = oracle.request_batch_decrypt(handles, ledger.on_revealed)
        ...
        oracle.deliver(request_id)      # or deliver_all(), or start()
    """

    def __init__(
        self,
        private_key: paillier.PaillierPrivateKey,
        key_provider: Optional[OracleKeyProvider] = None,
        verifier: Optional[ProofVerifier] = None,
        max_delivery_errors: int = 100
    ):
        self._private_key = private_key
        self.key_provider = key_provider or EphemeralOracleKeyProvider()
        self.verifier = verifier or ProofVerifier(self.key_provider.get_trust_store)
        self._queued: "OrderedDict[RequestId, QueuedRequest]" = OrderedDict()
        self._has_work = threading.Event()
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.delivery_errors: "deque[Tuple[RequestId, Exception]]" = deque(maxlen=max_delivery_errors)

    # ------------------------------------------------------------------
    # DecryptionOracle interface
    # ------------------------------------------------------------------

    def request_batch_decrypt(
        self,
        handles: Sequence[CiphertextHandle],
        callback: RevealCallback
    ) -> RequestId:
        if not handles:
            raise ValueError("at least one handle is required")
        request_id = secrets.token_hex(16)
        with self._lock:
            self._queued[request_id] = QueuedRequest(request_id, tuple(handles), callback)
        self._has_work.set()
        logger.debug("queued decryption request %s for %d handles", request_id, len(handles))
        return request_id

    def verify(self, request_id: RequestId, plaintext: bytes, proof: Any) -> bool:
        return self.verifier.verify(request_id, plaintext, proof)

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    def pending_request_ids(self) -> List[RequestId]:
        with self._lock:
            return list(self._queued.keys())

    def answer(self, request_id: RequestId) -> Tuple[bytes, DecryptionProof]:
        """
        Decrypt a queued request and sign the plaintext without delivering it.

        The request stays queued.
        """
        with self._lock:
            queued = self._queued.get(request_id)
        if queued is None:
            raise KeyError(f"no queued request {request_id}")
        return self._answer(queued)

    def _answer(self, queued: QueuedRequest) -> Tuple[bytes, DecryptionProof]:
        # euint32 semantics: values wrap at 2**32
        values = [self._private_key.decrypt(h.payload) % UINT32_MODULUS for h in queued.handles]
        plaintext = encode_uint32s(values)
        kid, sig_b64 = self.key_provider.sign_decryption(proof_message(queued.request_id, plaintext))
        proof = DecryptionProof(kid=kid, plaintext_sha256=sha256_hex(plaintext), sig_b64=sig_b64)
        return plaintext, proof

    def deliver(self, request_id: RequestId) -> Any:
        """
        Answer one queued request and invoke its callback.

        Returns:
            Whatever the callback returns; callback exceptions propagate
        """
        with self._lock:
            queued = self._queued.pop(request_id, None)
        if queued is None:
            raise KeyError(f"no queued request {request_id}")
        plaintext, proof = self._answer(queued)
        logger.debug("delivering decryption answer for %s", request_id)
        return queued.callback(request_id, plaintext, proof)

    def deliver_all(self) -> List[Any]:
        """Deliver every queued request in submission order."""
        return [self.deliver(rid) for rid in self.pending_request_ids()]

    # ------------------------------------------------------------------
    # Background delivery
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Deliver queued requests from a background thread until stop()."""
        if self._worker is not None and self._worker.is_alive():
            return
        self._stop.clear()
        self._worker = threading.Thread(target=self._run, name="riskvault-oracle", daemon=True)
        self._worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None

    def _run(self) -> None:
        while not self._stop.is_set():
            with self._lock:
                request_id = next(iter(self._queued), None)
                if request_id is None:
                    self._has_work.clear()
            if request_id is None:
                self._has_work.wait(0.05)
                continue
            try:
                self.deliver(request_id)
            except KeyError:
                # delivered manually in the meantime
                continue
            except RiskVaultError as e:
                logger.warning("callback rejected answer for %s: %s", request_id, e)
                self.delivery_errors.append((request_id, e))
            except Exception as e:
                logger.exception("callback failed for %s", request_id)
                self.delivery_errors.append((request_id, e))
