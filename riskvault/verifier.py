"""
RiskVault decryption proof verification.

A decryption answer is trusted only when:
1. The proof names a key id present in the trust store
2. That key id has not been revoked
3. The proof's plaintext hash matches the delivered plaintext
4. The Ed25519 signature over the canonical proof message verifies

Verification never raises on bad input; any doubt resolves to invalid.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Union

from pydantic import ValidationError

from .hashing import proof_message, sha256_hex
from .keys import verify_ed25519
from .models import DecryptionProof


class ProofOutcome(str, Enum):
    VALID = "VALID"
    MALFORMED = "MALFORMED"
    UNKNOWN_KID = "UNKNOWN_KID"
    KEY_REVOKED = "KEY_REVOKED"
    UNSUPPORTED_ALG = "UNSUPPORTED_ALG"
    PLAINTEXT_MISMATCH = "PLAINTEXT_MISMATCH"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


@dataclass
class ProofCheck:
    """Result of checking one decryption proof."""
    outcome: ProofOutcome
    kid: Optional[str] = None

    def is_valid(self) -> bool:
        return self.outcome == ProofOutcome.VALID


class ProofVerifier:
    """
    Checks oracle proofs against a trust store.

    trust_store is either a fixed dict or a callable returning the current
    one (such as OracleKeyProvider.get_trust_store), read on every check so
    key additions and revocations in a reloaded store apply immediately.
    """

    def __init__(
        self,
        trust_store: Union[Dict[str, Any], Callable[[], Dict[str, Any]]],
        revoked_kids: Optional[Iterable[str]] = None
    ):
        self._trust_store = trust_store
        self.revoked_kids = set(revoked_kids or ())

    @property
    def trust_store(self) -> Dict[str, Any]:
        if callable(self._trust_store):
            return self._trust_store()
        return self._trust_store

    def revoke(self, kid: str) -> None:
        self.revoked_kids.add(kid)

    def is_revoked(self, kid: str, trust_store: Optional[Dict[str, Any]] = None) -> bool:
        trust_store = trust_store if trust_store is not None else self.trust_store
        return kid in self.revoked_kids or kid in trust_store.get("revoked_kids", [])

    def check(self, request_id: str, plaintext: bytes, proof: Any) -> ProofCheck:
        try:
            if isinstance(proof, dict):
                proof = DecryptionProof.model_validate(proof)
            if not isinstance(proof, DecryptionProof):
                return ProofCheck(ProofOutcome.MALFORMED)
        except ValidationError:
            return ProofCheck(ProofOutcome.MALFORMED)

        if not isinstance(plaintext, (bytes, bytearray)) or not isinstance(request_id, str):
            return ProofCheck(ProofOutcome.MALFORMED, proof.kid)

        if proof.alg.lower() != "ed25519":
            return ProofCheck(ProofOutcome.UNSUPPORTED_ALG, proof.kid)

        trust_store = self.trust_store
        public_key = trust_store.get("oracle_keys", {}).get(proof.kid)
        if not public_key:
            return ProofCheck(ProofOutcome.UNKNOWN_KID, proof.kid)

        if self.is_revoked(proof.kid, trust_store):
            return ProofCheck(ProofOutcome.KEY_REVOKED, proof.kid)

        plaintext = bytes(plaintext)
        if proof.plaintext_sha256 != sha256_hex(plaintext):
            return ProofCheck(ProofOutcome.PLAINTEXT_MISMATCH, proof.kid)

        if not verify_ed25519(proof.sig_b64, proof_message(request_id, plaintext), public_key):
            return ProofCheck(ProofOutcome.INVALID_SIGNATURE, proof.kid)

        return ProofCheck(ProofOutcome.VALID, proof.kid)

    def verify(self, request_id: str, plaintext: bytes, proof: Any) -> bool:
        return self.check(request_id, plaintext, proof).is_valid()
