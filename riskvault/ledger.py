"""
RiskVault Ledger

The single authoritative state of the system and the protocol that drives
it:

    submit ──> request_reveal ──> oracle (off-path) ──> on_revealed
                                                          │
                         classify <── verify proof <──────┘
                            │
             finalize assessment + increment encrypted counter

Category counters are revealed through the same two-phase flow.

Every operation runs under one re-entrant lock, so mutations never
interleave and reads observe a consistent snapshot. on_revealed is the only
entry point driven by an external actor and its input is untrusted until
the oracle's proof verifies.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .aggregate import AggregateCounters
from .broker import (
    CategoryTarget,
    InstitutionTarget,
    PendingDecryptionRequest,
    PendingRequestTable,
    RerequestPolicy,
    RevealTarget,
)
from .ciphertext import CiphertextHandle, DecryptionOracle, EncryptionBackend, decode_uint32s
from .classification import Classification, RiskLevel, classify
from .config import LedgerSettings
from .errors import (
    AlreadyFinalized,
    AuthenticationFailed,
    CategoryNotFound,
    DuplicateRequest,
    NotFound,
    RiskVaultError,
    UnknownRequest,
)
from .events import (
    AggregateRevealed,
    DataSubmitted,
    EventBus,
    EventLog,
    Finalized,
    InMemoryEventLog,
    RevealRequested,
)
from .logging_config import AuditLogger, audit_log
from .store import Assessment, EncryptedMeasurement, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class RevealOutcome:
    """What an accepted oracle callback produced."""
    request_id: str
    target: RevealTarget
    assessment: Optional[Assessment] = None
    classification: Optional[Classification] = None
    category: Optional[RiskLevel] = None
    count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"request_id": self.request_id, "target": self.target.describe()}
        if self.assessment is not None:
            d["assessment"] = self.assessment.to_dict()
        if self.classification is not None:
            d["score"] = self.classification.score
        if self.category is not None:
            d["category"] = self.category.value
            d["count"] = self.count
        return d


@dataclass(frozen=True)
class LedgerStatistics:
    """Summary counts for dashboards."""
    total: int
    revealed: int
    pending: int
    outstanding_requests: int
    by_level: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _as_level(level: Any) -> RiskLevel:
    try:
        return RiskLevel(level)
    except ValueError:
        raise CategoryNotFound(f"unknown risk category {level!r}", level) from None


class RiskLedger:
    """
    Encrypted-record lifecycle and asynchronous decrypt/aggregate protocol.

    Usage:
        backend, private_key = generate_paillier_keypair()
        oracle = LocalDecryptionOracle(private_key)
        ledger = RiskLedger(backend, oracle)

        record_id = ledger.submit(backend.encrypt(2), backend.encrypt(30), backend.encrypt(1))
        ledger.request_assessment_reveal(record_id)
        oracle.deliver_all()                     # oracle calls ledger.on_revealed
        ledger.get_assessment(record_id).risk_level   # RiskLevel.HIGH
    """

    def __init__(
        self,
        backend: EncryptionBackend,
        oracle: DecryptionOracle,
        settings: Optional[LedgerSettings] = None,
        event_log: Optional[EventLog] = None,
        audit: Optional[AuditLogger] = None
    ):
        self.backend = backend
        self.oracle = oracle
        self.settings = settings or LedgerSettings()
        self.policy = RerequestPolicy(self.settings.rerequest_policy)
        self.records = RecordStore()
        self.counters = AggregateCounters(backend)
        self.pending = PendingRequestTable(ttl_seconds=self.settings.pending_ttl_seconds)
        if event_log is None:
            event_log = InMemoryEventLog(max_events=self.settings.event_log_max_events)
        self.events = EventBus(event_log)
        self.audit = audit or audit_log
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Record Store
    # ------------------------------------------------------------------

    def submit(
        self,
        breach_attempts: CiphertextHandle,
        response_time_minutes: CiphertextHandle,
        vulnerability_count: CiphertextHandle,
        institution: Optional[str] = None,
        submitter: Optional[str] = None
    ) -> int:
        """
        Store one encrypted measurement and its empty assessment.

        Returns:
            The new record id (1, 2, 3, ...)
        """
        with self._lock:
            measurement = self.records.submit(
                breach_attempts,
                response_time_minutes,
                vulnerability_count,
                institution=institution,
                submitter=submitter,
            )
            self.events.publish(DataSubmitted(record_id=measurement.record_id,
                                              timestamp=measurement.submitted_at))
        self.audit.data_submitted(measurement.record_id, institution)
        return measurement.record_id

    def get_measurement(self, record_id: int) -> EncryptedMeasurement:
        with self._lock:
            return self.records.get_measurement(record_id)

    def get_assessment(self, record_id: int) -> Assessment:
        """Return a copy of the assessment as of now."""
        with self._lock:
            return dataclasses.replace(self.records.get_assessment(record_id))

    # ------------------------------------------------------------------
    # Decryption Request Broker
    # ------------------------------------------------------------------

    def request_assessment_reveal(self, record_id: int) -> str:
        return self.request_reveal(InstitutionTarget(record_id))

    def request_category_reveal(self, level: RiskLevel) -> str:
        return self.request_reveal(CategoryTarget.for_level(_as_level(level)))

    def request_reveal(self, target: RevealTarget) -> str:
        """
        Ask the oracle to reveal the ciphertexts behind target.

        Returns immediately with the oracle's request id.

        Raises:
            NotFound: Unknown record id
            AlreadyFinalized: Assessment already revealed
            CategoryNotFound: Counter never initialized
            DuplicateRequest: Target has a live request and the policy is reject
        """
        with self._lock:
            handles = self._gather_handles(target)
            stale = self._check_outstanding(target)
            request_id = self.oracle.request_batch_decrypt(handles, self.on_revealed)
            self.pending.add(request_id, target)
            for entry in stale:
                # a late answer to the superseded request is now an UnknownRequest
                self.pending.consume(entry.request_id)
                logger.info("dropped expired request %s for %s", entry.request_id, target.describe())
            record_id = target.record_id if isinstance(target, InstitutionTarget) else None
            self.events.publish(RevealRequested(target=target.describe(), request_id=request_id,
                                                record_id=record_id))
        self.audit.reveal_requested(target.describe(), request_id)
        return request_id

    def _gather_handles(self, target: RevealTarget) -> List[CiphertextHandle]:
        if isinstance(target, InstitutionTarget):
            assessment = self.records.get_assessment(target.record_id)
            if assessment.is_revealed:
                raise AlreadyFinalized(f"assessment {target.record_id} is already revealed",
                                       target.record_id)
            return self.records.get_measurement(target.record_id).handles()
        if isinstance(target, CategoryTarget):
            level = self.counters.resolve_digest(target.key)
            return [self.counters.peek_encrypted(level)]
        raise TypeError(f"unsupported reveal target {target!r}")

    def _check_outstanding(self, target: RevealTarget) -> List[PendingDecryptionRequest]:
        """Enforce the re-request policy and return expired entries to supersede."""
        now = datetime.now(timezone.utc)
        live = self.pending.live_for(target, now)
        if live and self.policy == RerequestPolicy.REJECT:
            raise DuplicateRequest(
                f"{target.describe()} already has pending request {live[0].request_id}",
                live[0].request_id,
            )
        return self.pending.expired_for(target, now)

    def on_revealed(self, request_id: str, plaintext: bytes, proof: Any) -> RevealOutcome:
        """
        Oracle callback: authenticate and apply one decryption answer.

        Raises:
            UnknownRequest: Never issued or already processed; nothing changes
            AuthenticationFailed: Proof rejected; the request stays pending
            AlreadyFinalized: Assessment was finalized by another request
            MalformedPlaintext: Plaintext has the wrong layout; request stays pending
            CategoryNotFound: Category digest matches no registry entry
        """
        try:
            with self._lock:
                entry = self.pending.get(request_id) if isinstance(request_id, str) else None
                if entry is None:
                    raise UnknownRequest(f"no pending request {request_id}", request_id)

                if not self.oracle.verify(request_id, plaintext, proof):
                    self.audit.security_event(
                        "DECRYPTION_PROOF_INVALID",
                        severity="high",
                        oracle_request_id=request_id,
                        target=entry.target.describe(),
                    )
                    raise AuthenticationFailed(f"proof for {request_id} did not verify", request_id)

                if isinstance(entry.target, InstitutionTarget):
                    outcome = self._finalize_assessment(entry, plaintext)
                else:
                    outcome = self._reveal_aggregate(entry, plaintext)
        except RiskVaultError as e:
            self.audit.callback_rejected(str(request_id), e.code.value, e.message)
            raise

        if outcome.assessment is not None:
            self.audit.assessment_finalized(
                outcome.assessment.record_id,
                outcome.assessment.risk_level.value,
                outcome.assessment.systemic_risk_flag.value,
            )
        else:
            self.audit.aggregate_revealed(outcome.category.value, outcome.count)
        return outcome

    def _finalize_assessment(self, entry: PendingDecryptionRequest, plaintext: bytes) -> RevealOutcome:
        record_id = entry.target.record_id
        assessment = self.records.get_assessment(record_id)
        if assessment.is_revealed:
            # nothing left to apply for this request
            self.pending.consume(entry.request_id)
            raise AlreadyFinalized(f"assessment {record_id} is already revealed", record_id)

        breaches, response_time, vulnerabilities = decode_uint32s(plaintext, 3)
        result = classify(breaches, response_time, vulnerabilities)
        prepared = self.counters.prepare_increment(result.risk_level)

        # no fallible calls past this point
        assessment.finalize(result)
        self.counters.apply(prepared)
        self.pending.consume(entry.request_id)
        self.events.publish(Finalized(record_id=record_id, request_id=entry.request_id))
        logger.debug("finalized record %s as %s", record_id, result.risk_level.value)

        return RevealOutcome(
            request_id=entry.request_id,
            target=entry.target,
            assessment=dataclasses.replace(assessment),
            classification=result,
        )

    def _reveal_aggregate(self, entry: PendingDecryptionRequest, plaintext: bytes) -> RevealOutcome:
        level = self.counters.resolve_digest(entry.target.key)
        (count,) = decode_uint32s(plaintext, 1)

        counter = self.counters.get(level)
        counter.last_revealed_count = count
        self.pending.consume(entry.request_id)
        self.events.publish(AggregateRevealed(category=level.value, count=count,
                                              request_id=entry.request_id))

        return RevealOutcome(request_id=entry.request_id, target=entry.target,
                             category=level, count=count)

    def cleanup_expired(self) -> int:
        """
        Forget every expired pending request. Returns count removed.

        Late answers to removed requests fail with UnknownRequest.
        """
        now = datetime.now(timezone.utc)
        with self._lock:
            expired = [e.request_id for e in self.pending.entries() if e.is_expired(now)]
            for request_id in expired:
                self.pending.consume(request_id)
        return len(expired)

    def pending_requests(self) -> List[PendingDecryptionRequest]:
        with self._lock:
            return [dataclasses.replace(e) for e in self.pending.entries()]

    # ------------------------------------------------------------------
    # Aggregate Risk Counters
    # ------------------------------------------------------------------

    def peek_encrypted_count(self, level: RiskLevel) -> CiphertextHandle:
        """
        Current encrypted count for level.

        Raises:
            NotFound: If no assessment of that level was finalized yet
        """
        try:
            level = RiskLevel(level)
        except ValueError:
            raise NotFound(f"unknown risk category {level!r}", level) from None
        with self._lock:
            return self.counters.peek_encrypted(level)

    def last_revealed_count(self, level: RiskLevel) -> Optional[int]:
        with self._lock:
            return self.counters.get(_as_level(level)).last_revealed_count

    def category_registry(self) -> List[RiskLevel]:
        with self._lock:
            return self.counters.registry()

    # ------------------------------------------------------------------
    # Dashboard reads
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        return self.backend is not None and self.oracle is not None

    def list_record_ids(self) -> List[int]:
        with self._lock:
            return self.records.record_ids()

    def statistics(self) -> LedgerStatistics:
        with self._lock:
            assessments = self.records.assessments()
            by_level = {level.value: 0 for level in RiskLevel}
            for a in assessments:
                if a.is_revealed:
                    by_level[a.risk_level.value] += 1
            revealed = sum(by_level.values())
            return LedgerStatistics(
                total=len(assessments),
                revealed=revealed,
                pending=len(assessments) - revealed,
                outstanding_requests=len(self.pending),
                by_level=by_level,
            )

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data copy of the whole authoritative state."""
        with self._lock:
            return {
                "last_record_id": self.records.last_id,
                "measurements": [self.records.get_measurement(i).to_dict()
                                 for i in self.records.record_ids()],
                "assessments": [a.to_dict() for a in self.records.assessments()],
                "pending": sorted((e.request_id, e.target.describe()) for e in self.pending.entries()),
                "counters": {level.value: self.counters.peek_encrypted(level).handle_id
                             for level in self.counters.registry()},
                "registry": [level.value for level in self.counters.registry()],
            }
