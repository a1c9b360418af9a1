from pydantic import BaseModel, Field

from .hashing import b64d, b64e


class DecryptionProof(BaseModel):
    """Ed25519 proof that a plaintext answers one decryption request."""
    kid: str
    alg: str = "ed25519"
    plaintext_sha256: str
    sig_b64: str


class RevealDelivery(BaseModel):
    """JSON envelope for an oracle answer delivered out of process."""
    request_id: str = Field(min_length=1)
    plaintext_b64: str
    proof: DecryptionProof

    def plaintext(self) -> bytes:
        return b64d(self.plaintext_b64)

    @classmethod
    def build(cls, request_id: str, plaintext: bytes, proof: DecryptionProof) -> "RevealDelivery":
        return cls(request_id=request_id, plaintext_b64=b64e(plaintext), proof=proof)
