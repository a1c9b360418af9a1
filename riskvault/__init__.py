"""
RiskVault Confidential Risk Ledger

Version: 1.0.0

A ledger that accepts encrypted cybersecurity risk measurements from
institutions and reveals only the derived assessment, never the raw values.

Ciphertexts are combined homomorphically. Plaintext exists only transiently,
when a trusted decryption oracle answers a reveal request through an
authenticated callback:

    submit  ──>  request reveal  ──>  oracle decrypts  ──>  on_revealed
                                                              │
                                       assessment finalized + encrypted
                                       per-level counter incremented

Usage:
    from riskvault import (
        LocalDecryptionOracle,
        RiskLedger,
        RiskLevel,
        generate_paillier_keypair,
    )

    backend, private_key = generate_paillier_keypair()
    oracle = LocalDecryptionOracle(private_key)
    ledger = RiskLedger(backend, oracle)

    record_id = ledger.submit(
        backend.encrypt(6),     # breach attempts
        backend.encrypt(130),   # response time, minutes
        backend.encrypt(11),    # open vulnerabilities
    )

    ledger.request_assessment_reveal(record_id)
    oracle.deliver_all()

    assessment = ledger.get_assessment(record_id)
    # assessment.risk_level == RiskLevel.CRITICAL

    ledger.request_category_reveal(RiskLevel.CRITICAL)
    outcome, = oracle.deliver_all()
    # outcome.count == 1
"""

__version__ = "1.0.0"

# Classification
from .classification import (
    Classification,
    RiskLevel,
    SystemicRiskFlag,
    classify,
    risk_score,
)

# Errors
from .errors import (
    ErrorCode,
    RiskVaultError,
    NotFound,
    AlreadyFinalized,
    UnknownRequest,
    AuthenticationFailed,
    CategoryNotFound,
    DuplicateRequest,
    MalformedPlaintext,
    RequestIdCollision,
)

# Encryption capability
from .ciphertext import (
    CiphertextHandle,
    EncryptionBackend,
    DecryptionOracle,
    encode_uint32s,
    decode_uint32s,
)

# Ledger state
from .store import EncryptedMeasurement, Assessment, RecordStore
from .aggregate import AggregateRiskCounter, AggregateCounters
from .broker import (
    InstitutionTarget,
    CategoryTarget,
    RevealTarget,
    RerequestPolicy,
    PendingDecryptionRequest,
)
from .events import (
    LedgerEvent,
    DataSubmitted,
    RevealRequested,
    Finalized,
    AggregateRevealed,
    EventLog,
    InMemoryEventLog,
)
from .config import LedgerSettings
from .ledger import RiskLedger, RevealOutcome, LedgerStatistics

# Proofs and reference oracle
from .hashing import category_digest, proof_message
from .models import DecryptionProof, RevealDelivery
from .keys import (
    OracleKeyProvider,
    EphemeralOracleKeyProvider,
    FileOracleKeyProvider,
    generate_oracle_keys,
)
from .verifier import ProofVerifier, ProofOutcome, ProofCheck
from .oracle import PaillierBackend, LocalDecryptionOracle, generate_paillier_keypair


__all__ = [
    # Version
    "__version__",

    # Classification
    "Classification",
    "RiskLevel",
    "SystemicRiskFlag",
    "classify",
    "risk_score",

    # Errors
    "ErrorCode",
    "RiskVaultError",
    "NotFound",
    "AlreadyFinalized",
    "UnknownRequest",
    "AuthenticationFailed",
    "CategoryNotFound",
    "DuplicateRequest",
    "MalformedPlaintext",
    "RequestIdCollision",

    # Encryption capability
    "CiphertextHandle",
    "EncryptionBackend",
    "DecryptionOracle",
    "encode_uint32s",
    "decode_uint32s",

    # Ledger state
    "EncryptedMeasurement",
    "Assessment",
    "RecordStore",
    "AggregateRiskCounter",
    "AggregateCounters",
    "InstitutionTarget",
    "CategoryTarget",
    "RevealTarget",
    "RerequestPolicy",
    "PendingDecryptionRequest",
    "LedgerEvent",
    "DataSubmitted",
    "RevealRequested",
    "Finalized",
    "AggregateRevealed",
    "EventLog",
    "InMemoryEventLog",
    "LedgerSettings",
    "RiskLedger",
    "RevealOutcome",
    "LedgerStatistics",

    # Proofs and reference oracle
    "category_digest",
    "proof_message",
    "DecryptionProof",
    "RevealDelivery",
    "OracleKeyProvider",
    "EphemeralOracleKeyProvider",
    "FileOracleKeyProvider",
    "generate_oracle_keys",
    "ProofVerifier",
    "ProofOutcome",
    "ProofCheck",
    "PaillierBackend",
    "LocalDecryptionOracle",
    "generate_paillier_keypair",
]
