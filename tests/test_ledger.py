"""
RiskVault Ledger Test Suite

Critical invariants tested:
    AN ASSESSMENT IS FINALIZED AT MOST ONCE
    ONLY AUTHENTICATED ORACLE ANSWERS CHANGE STATE
    A REJECTED CALLBACK LEAVES NO PARTIAL STATE
"""

import json
import os
import tempfile
import threading
import time
import unittest
from datetime import datetime, timedelta, timezone

from riskvault import (
    AggregateRevealed,
    AlreadyFinalized,
    AuthenticationFailed,
    CategoryNotFound,
    CategoryTarget,
    DataSubmitted,
    DecryptionProof,
    DuplicateRequest,
    EphemeralOracleKeyProvider,
    FileOracleKeyProvider,
    Finalized,
    InstitutionTarget,
    LedgerSettings,
    LocalDecryptionOracle,
    MalformedPlaintext,
    NotFound,
    PaillierBackend,
    RevealRequested,
    RiskLedger,
    RiskLevel,
    SystemicRiskFlag,
    UnknownRequest,
    generate_oracle_keys,
    generate_paillier_keypair,
)
from riskvault.classification import ENHANCE_MONITORING, IMMEDIATE_REMEDIATION, REGULAR_MAINTENANCE
from riskvault.hashing import proof_message, sha256_hex

TEST_KEY_BITS = 512


class FlakyBackend(PaillierBackend):
    """Paillier backend whose increment can be made to fail."""

    fail_increment = False

    def increment(self, handle):
        if self.fail_increment:
            raise RuntimeError("backend unavailable")
        return super().increment(handle)


class LedgerTestCase(unittest.TestCase):
    """Shared key material and helpers."""

    @classmethod
    def setUpClass(cls):
        cls.backend, cls.private_key = generate_paillier_keypair(TEST_KEY_BITS)

    def setUp(self):
        self.oracle = LocalDecryptionOracle(self.private_key)
        self.ledger = self._make_ledger()

    def _make_ledger(self, backend=None, settings=None):
        return RiskLedger(backend or self.backend, self.oracle, settings=settings)

    def _submit(self, breaches, response_time, vulns, ledger=None, **kwargs):
        ledger = ledger or self.ledger
        return ledger.submit(
            ledger.backend.encrypt(breaches),
            ledger.backend.encrypt(response_time),
            ledger.backend.encrypt(vulns),
            **kwargs
        )

    def _sign(self, request_id, plaintext, provider=None):
        """Build a proof for arbitrary plaintext with the oracle's key."""
        provider = provider or self.oracle.key_provider
        kid, sig = provider.sign_decryption(proof_message(request_id, plaintext))
        return DecryptionProof(kid=kid, plaintext_sha256=sha256_hex(plaintext), sig_b64=sig)

    def _reveal_count(self, level):
        request_id = self.ledger.request_category_reveal(level)
        return self.oracle.deliver(request_id).count


class TestSubmission(LedgerTestCase):

    def test_record_ids_are_sequential(self):
        ids = [self._submit(1, 1, 1) for _ in range(3)]
        self.assertEqual(ids, [1, 2, 3])
        self.assertEqual(self.ledger.list_record_ids(), [1, 2, 3])

    def test_new_assessment_is_empty(self):
        record_id = self._submit(2, 30, 1)
        a = self.ledger.get_assessment(record_id)
        self.assertFalse(a.is_revealed)
        self.assertEqual(a.as_tuple(), (None, None, None, False))

    def test_measurement_keeps_handles_and_label(self):
        b = self.backend.encrypt(4)
        rt = self.backend.encrypt(5)
        v = self.backend.encrypt(6)
        record_id = self.ledger.submit(b, rt, v, institution="First National", submitter="ops")
        m = self.ledger.get_measurement(record_id)
        self.assertEqual(m.handles(), [b, rt, v])
        self.assertEqual(m.institution, "First National")
        self.assertEqual(m.submitter, "ops")
        self.assertIsNotNone(m.submitted_at)

    def test_submission_event(self):
        record_id = self._submit(0, 0, 0)
        events = self.ledger.events.log.query(event_type=DataSubmitted)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].record_id, record_id)

    def test_non_handle_rejected_without_allocating(self):
        with self.assertRaises(TypeError):
            self.ledger.submit(1, 2, 3)
        self.assertEqual(self.ledger.list_record_ids(), [])
        self.assertEqual(self._submit(0, 0, 0), 1)

    def test_unknown_record(self):
        for record_id in (0, 1, 99):
            with self.subTest(record_id=record_id):
                with self.assertRaises(NotFound):
                    self.ledger.get_assessment(record_id)
                with self.assertRaises(NotFound):
                    self.ledger.get_measurement(record_id)

    def test_returned_assessment_is_a_copy(self):
        record_id = self._submit(0, 0, 0)
        a = self.ledger.get_assessment(record_id)
        a.is_revealed = True
        self.assertFalse(self.ledger.get_assessment(record_id).is_revealed)

    def test_non_integer_record_ids_rejected(self):
        self._submit(2, 30, 1)
        for record_id in (True, "1", 1.0, None, [1]):
            with self.subTest(record_id=record_id):
                with self.assertRaises(NotFound):
                    self.ledger.get_assessment(record_id)
                with self.assertRaises(NotFound):
                    self.ledger.get_measurement(record_id)

    def test_bool_target_cannot_finalize_record_one(self):
        self._submit(2, 30, 1)
        with self.assertRaises(NotFound):
            self.ledger.request_reveal(InstitutionTarget(True))
        self.assertEqual(self.oracle.pending_request_ids(), [])
        self.assertFalse(self.ledger.get_assessment(1).is_revealed)


class TestAssessmentReveal(LedgerTestCase):

    def test_reveal_finalizes(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)
        self.assertIn(request_id, self.ledger.pending)
        self.assertFalse(self.ledger.get_assessment(record_id).is_revealed)

        outcome = self.oracle.deliver(request_id)

        a = self.ledger.get_assessment(record_id)
        self.assertTrue(a.is_revealed)
        self.assertEqual(a.risk_level, RiskLevel.HIGH)
        self.assertEqual(a.recommendations, REGULAR_MAINTENANCE)
        self.assertEqual(a.systemic_risk_flag, SystemicRiskFlag.NONE)
        self.assertEqual(outcome.assessment, a)
        self.assertEqual(outcome.classification.score, 71)
        self.assertNotIn(request_id, self.ledger.pending)

    def test_finalize_increments_counter(self):
        record_id = self._submit(6, 130, 11)
        self.ledger.request_assessment_reveal(record_id)
        self.oracle.deliver_all()

        self.assertEqual(self.ledger.category_registry(), [RiskLevel.CRITICAL])
        handle = self.ledger.peek_encrypted_count(RiskLevel.CRITICAL)
        self.assertEqual(self.private_key.decrypt(handle.payload), 1)

    def test_events_emitted(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)
        self.oracle.deliver_all()

        requested = self.ledger.events.log.query(event_type=RevealRequested)
        self.assertEqual(len(requested), 1)
        self.assertEqual(requested[0].request_id, request_id)
        self.assertEqual(requested[0].record_id, record_id)

        finalized = self.ledger.events.log.query(event_type=Finalized)
        self.assertEqual([(e.record_id, e.request_id) for e in finalized], [(record_id, request_id)])

    def test_reveal_of_finalized_record_rejected(self):
        record_id = self._submit(2, 30, 1)
        self.ledger.request_assessment_reveal(record_id)
        self.oracle.deliver_all()

        with self.assertRaises(AlreadyFinalized):
            self.ledger.request_assessment_reveal(record_id)
        self.assertEqual(self.oracle.pending_request_ids(), [])

    def test_reveal_of_unknown_record(self):
        with self.assertRaises(NotFound):
            self.ledger.request_assessment_reveal(42)
        self.assertEqual(len(self.ledger.pending), 0)
        self.assertEqual(self.oracle.pending_request_ids(), [])

    def test_out_of_order_delivery(self):
        fixtures = {
            self._submit(2, 30, 1): (RiskLevel.HIGH, REGULAR_MAINTENANCE),
            self._submit(6, 130, 11): (RiskLevel.CRITICAL, IMMEDIATE_REMEDIATION),
            self._submit(0, 10, 0): (RiskLevel.LOW, REGULAR_MAINTENANCE),
            self._submit(3, 0, 0): (RiskLevel.LOW, ENHANCE_MONITORING),
        }
        request_ids = [self.ledger.request_assessment_reveal(rid) for rid in fixtures]

        for request_id in reversed(request_ids):
            self.oracle.deliver(request_id)

        for record_id, (level, recommendation) in fixtures.items():
            a = self.ledger.get_assessment(record_id)
            self.assertEqual((a.risk_level, a.recommendations), (level, recommendation))

        self.assertEqual(
            self.ledger.category_registry(),
            [RiskLevel.LOW, RiskLevel.CRITICAL, RiskLevel.HIGH]
        )
        self.assertEqual(self._reveal_count(RiskLevel.LOW), 2)

    def test_institution_and_category_requests_coexist(self):
        first = self._submit(2, 30, 1)
        self.ledger.request_assessment_reveal(first)
        self.oracle.deliver_all()

        second = self._submit(1, 1, 1)
        r1 = self.ledger.request_assessment_reveal(second)
        r2 = self.ledger.request_category_reveal(RiskLevel.HIGH)

        self.assertEqual(self.oracle.deliver(r2).count, 1)
        self.assertTrue(self.oracle.deliver(r1).assessment.is_revealed)

    def test_unsupported_target(self):
        with self.assertRaises(TypeError):
            self.ledger.request_reveal(("institution", 1))


class TestCallbackAuthentication(LedgerTestCase):

    def test_unknown_request_changes_nothing(self):
        record_id = self._submit(2, 30, 1)
        self.ledger.request_assessment_reveal(record_id)
        before = self.ledger.snapshot()

        plaintext = b"\x00" * 12
        with self.assertRaises(UnknownRequest):
            self.ledger.on_revealed("not-a-request", plaintext, self._sign("not-a-request", plaintext))
        with self.assertRaises(UnknownRequest):
            self.ledger.on_revealed(None, plaintext, None)

        self.assertEqual(self.ledger.snapshot(), before)

    def test_replayed_answer_rejected(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)
        plaintext, proof = self.oracle.answer(request_id)

        self.ledger.on_revealed(request_id, plaintext, proof)
        after_first = self.ledger.snapshot()

        with self.assertRaises(UnknownRequest):
            self.ledger.on_revealed(request_id, plaintext, proof)

        self.assertEqual(self.ledger.snapshot(), after_first)
        self.assertEqual(self._reveal_count(RiskLevel.HIGH), 1)

    def test_tampered_plaintext_rejected_and_retryable(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)
        plaintext, proof = self.oracle.answer(request_id)
        before = self.ledger.snapshot()

        forged = b"\x00\x00\x00\x00" + plaintext[4:]
        with self.assertRaises(AuthenticationFailed) as ctx:
            self.ledger.on_revealed(request_id, forged, proof)
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(self.ledger.snapshot(), before)
        self.assertIn(request_id, self.ledger.pending)

        self.ledger.on_revealed(request_id, plaintext, proof)
        self.assertEqual(self.ledger.get_assessment(record_id).risk_level, RiskLevel.HIGH)

    def test_untrusted_signer_rejected(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)
        plaintext, _ = self.oracle.answer(request_id)

        impostor = EphemeralOracleKeyProvider(kid=self.oracle.key_provider.get_kid())
        with self.assertRaises(AuthenticationFailed):
            self.ledger.on_revealed(request_id, plaintext, self._sign(request_id, plaintext, impostor))
        self.assertFalse(self.ledger.get_assessment(record_id).is_revealed)

    def test_proof_bound_to_request(self):
        first = self._submit(0, 0, 0)
        second = self._submit(0, 0, 0)
        r1 = self.ledger.request_assessment_reveal(first)
        r2 = self.ledger.request_assessment_reveal(second)
        plaintext, proof = self.oracle.answer(r1)

        with self.assertRaises(AuthenticationFailed):
            self.ledger.on_revealed(r2, plaintext, proof)
        self.assertFalse(self.ledger.get_assessment(second).is_revealed)

    def test_missing_proof_rejected(self):
        record_id = self._submit(0, 0, 0)
        request_id = self.ledger.request_assessment_reveal(record_id)
        plaintext, _ = self.oracle.answer(request_id)
        for proof in (None, {}, {"kid": "x"}, "signature"):
            with self.subTest(proof=proof):
                with self.assertRaises(AuthenticationFailed):
                    self.ledger.on_revealed(request_id, plaintext, proof)

    def test_malformed_plaintext_changes_nothing(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)
        before = self.ledger.snapshot()

        short = b"\x00" * 8
        with self.assertRaises(MalformedPlaintext):
            self.ledger.on_revealed(request_id, short, self._sign(request_id, short))

        self.assertEqual(self.ledger.snapshot(), before)
        self.oracle.deliver(request_id)
        self.assertTrue(self.ledger.get_assessment(record_id).is_revealed)

    def test_rejections_are_audited(self):
        with self.assertLogs("riskvault.audit", level="WARNING") as cm:
            with self.assertRaises(UnknownRequest):
                self.ledger.on_revealed("missing", b"", None)
        self.assertTrue(any("CALLBACK_REJECTED" in line for line in cm.output))

    def test_failed_proof_is_a_security_event(self):
        record_id = self._submit(0, 0, 0)
        request_id = self.ledger.request_assessment_reveal(record_id)
        with self.assertLogs("riskvault.audit", level="ERROR") as cm:
            with self.assertRaises(AuthenticationFailed):
                self.ledger.on_revealed(request_id, b"\x00" * 12, None)
        self.assertTrue(any("DECRYPTION_PROOF_INVALID" in line for line in cm.output))


class TestRerequestPolicy(LedgerTestCase):

    def test_duplicate_request_rejected_by_default(self):
        record_id = self._submit(2, 30, 1)
        request_id = self.ledger.request_assessment_reveal(record_id)

        with self.assertRaises(DuplicateRequest) as ctx:
            self.ledger.request_assessment_reveal(record_id)
        self.assertEqual(ctx.exception.subject, request_id)
        self.assertEqual(self.oracle.pending_request_ids(), [request_id])

    def test_reissue_finalizes_once(self):
        ledger = self._make_ledger(settings=LedgerSettings(rerequest_policy="reissue"))
        self.ledger = ledger
        record_id = self._submit(2, 30, 1)
        r1 = ledger.request_assessment_reveal(record_id)
        r2 = ledger.request_assessment_reveal(record_id)
        self.assertNotEqual(r1, r2)

        self.oracle.deliver(r2)
        with self.assertRaises(AlreadyFinalized):
            self.oracle.deliver(r1)

        self.assertEqual(len(ledger.pending), 0)
        self.assertEqual(len(ledger.events.log.query(event_type=Finalized)), 1)
        self.assertEqual(self._reveal_count(RiskLevel.HIGH), 1)

    def test_expired_request_is_replaced(self):
        ledger = self._make_ledger(settings=LedgerSettings(pending_ttl_seconds=60))
        self.ledger = ledger
        record_id = self._submit(2, 30, 1)
        stale = ledger.request_assessment_reveal(record_id)
        ledger.pending.get(stale).expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)

        fresh = ledger.request_assessment_reveal(record_id)
        self.assertNotIn(stale, ledger.pending)

        with self.assertRaises(UnknownRequest):
            self.oracle.deliver(stale)
        self.assertFalse(ledger.get_assessment(record_id).is_revealed)

        self.oracle.deliver(fresh)
        self.assertTrue(ledger.get_assessment(record_id).is_revealed)

    def test_live_request_within_ttl_still_duplicate(self):
        ledger = self._make_ledger(settings=LedgerSettings(pending_ttl_seconds=60))
        self.ledger = ledger
        record_id = self._submit(2, 30, 1)
        ledger.request_assessment_reveal(record_id)
        with self.assertRaises(DuplicateRequest):
            ledger.request_assessment_reveal(record_id)

    def test_cleanup_expired(self):
        ledger = self._make_ledger(settings=LedgerSettings(pending_ttl_seconds=60))
        self.ledger = ledger
        a = ledger.request_assessment_reveal(self._submit(0, 0, 0))
        b = ledger.request_assessment_reveal(self._submit(0, 0, 0))
        ledger.pending.get(a).expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)

        self.assertEqual(ledger.cleanup_expired(), 1)
        self.assertEqual([e.request_id for e in ledger.pending_requests()], [b])
        with self.assertRaises(UnknownRequest):
            self.oracle.deliver(a)


class TestAtomicity(LedgerTestCase):

    def test_backend_failure_leaves_no_partial_state(self):
        backend = FlakyBackend(self.backend.public_key)
        ledger = self._make_ledger(backend=backend)
        self.ledger = ledger
        record_id = self._submit(6, 130, 11)
        request_id = ledger.request_assessment_reveal(record_id)
        plaintext, proof = self.oracle.answer(request_id)
        before = ledger.snapshot()

        backend.fail_increment = True
        with self.assertRaises(RuntimeError):
            ledger.on_revealed(request_id, plaintext, proof)

        self.assertEqual(ledger.snapshot(), before)
        self.assertEqual(ledger.category_registry(), [])
        self.assertEqual(ledger.events.log.query(event_type=Finalized), [])

        backend.fail_increment = False
        ledger.on_revealed(request_id, plaintext, proof)
        self.assertTrue(ledger.get_assessment(record_id).is_revealed)
        self.assertEqual(ledger.category_registry(), [RiskLevel.CRITICAL])

    def test_counter_matches_finalized_assessments(self):
        triples = [(2, 30, 1), (6, 130, 11), (0, 0, 0), (1, 34, 0), (20, 200, 0), (0, 1, 0)]
        for t in triples:
            self.ledger.request_assessment_reveal(self._submit(*t))
        self.oracle.deliver_all()

        stats = self.ledger.statistics()
        for level in self.ledger.category_registry():
            with self.subTest(level=level):
                self.assertEqual(self._reveal_count(level), stats.by_level[level.value])


class TestCategoryReveal(LedgerTestCase):

    def test_uninitialized_category(self):
        with self.assertRaises(CategoryNotFound):
            self.ledger.request_category_reveal(RiskLevel.MEDIUM)
        with self.assertRaises(NotFound):
            self.ledger.peek_encrypted_count(RiskLevel.MEDIUM)
        self.assertEqual(self.oracle.pending_request_ids(), [])

    def test_unknown_category_name(self):
        with self.assertRaises(CategoryNotFound):
            self.ledger.request_category_reveal("Severe")
        with self.assertRaises(NotFound):
            self.ledger.peek_encrypted_count("Severe")

    def test_unknown_digest(self):
        with self.assertRaises(CategoryNotFound):
            self.ledger.request_reveal(CategoryTarget(key=12345))

    def test_reveal_delivers_count(self):
        for _ in range(3):
            self.ledger.request_assessment_reveal(self._submit(2, 30, 1))
        self.oracle.deliver_all()

        request_id = self.ledger.request_category_reveal("High")
        outcome = self.oracle.deliver(request_id)

        self.assertEqual(outcome.category, RiskLevel.HIGH)
        self.assertEqual(outcome.count, 3)
        self.assertEqual(self.ledger.last_revealed_count(RiskLevel.HIGH), 3)
        events = self.ledger.events.log.query(event_type=AggregateRevealed)
        self.assertEqual([(e.category, e.count) for e in events], [("High", 3)])

    def test_counter_stays_encrypted(self):
        self.ledger.request_assessment_reveal(self._submit(2, 30, 1))
        self.oracle.deliver_all()
        before = self.ledger.peek_encrypted_count(RiskLevel.HIGH)

        self._reveal_count(RiskLevel.HIGH)
        self.assertEqual(self.ledger.peek_encrypted_count(RiskLevel.HIGH), before)

    def test_targets_never_confused(self):
        self.assertNotEqual(InstitutionTarget(1), CategoryTarget(1))


class TestDashboardReads(LedgerTestCase):

    def test_statistics(self):
        self.assertTrue(self.ledger.is_available())
        for t in [(2, 30, 1), (6, 130, 11), (0, 0, 0)]:
            self._submit(*t)
        self.ledger.request_assessment_reveal(1)
        self.ledger.request_assessment_reveal(2)
        self.oracle.deliver_all()
        self.ledger.request_assessment_reveal(3)

        stats = self.ledger.statistics()
        self.assertEqual(stats.total, 3)
        self.assertEqual(stats.revealed, 2)
        self.assertEqual(stats.pending, 1)
        self.assertEqual(stats.outstanding_requests, 1)
        self.assertEqual(stats.by_level, {"Low": 0, "Medium": 0, "High": 1, "Critical": 1})

    def test_snapshot_layout(self):
        record_id = self._submit(2, 30, 1, institution="First National")
        snap = self.ledger.snapshot()
        self.assertEqual(snap["last_record_id"], record_id)
        self.assertEqual(snap["measurements"][0]["institution"], "First National")
        self.assertEqual(snap["pending"], [])
        self.assertEqual(snap["registry"], [])


class TestConcurrency(LedgerTestCase):

    def test_concurrent_submissions_get_unique_ids(self):
        handles = [self.backend.encrypt(i) for i in range(3)]
        ids = []
        lock = threading.Lock()

        def worker():
            for _ in range(10):
                record_id = self.ledger.submit(*handles)
                with lock:
                    ids.append(record_id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(ids), list(range(1, 81)))

    def test_background_oracle_delivery(self):
        records = [self._submit(i, 10 * i, i) for i in range(5)]
        self.oracle.start()
        try:
            for record_id in records:
                self.ledger.request_assessment_reveal(record_id)

            deadline = time.monotonic() + 30
            while self.ledger.statistics().revealed < len(records):
                if time.monotonic() > deadline:
                    self.fail("oracle did not deliver in time")
                time.sleep(0.01)
        finally:
            self.oracle.stop()

        self.assertEqual(list(self.oracle.delivery_errors), [])
        self.assertEqual(len(self.ledger.pending), 0)


class TestTrustStoreReload(LedgerTestCase):
    """Oracle keys loaded from files; the trust store can change at runtime."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.key_path = os.path.join(self._tmp.name, "oracle_signing_key.json")
        self.trust_path = os.path.join(self._tmp.name, "trust_store.json")
        self.trust = generate_oracle_keys(self.key_path, self.trust_path, kid="oracle-file")
        provider = FileOracleKeyProvider(self.key_path, self.trust_path)
        self.oracle = LocalDecryptionOracle(self.private_key, key_provider=provider)
        self.ledger = self._make_ledger()

    def tearDown(self):
        self._tmp.cleanup()

    def _rewrite_trust_store(self):
        with open(self.trust_path, "w", encoding="utf-8") as f:
            json.dump(self.trust, f)
        later = os.path.getmtime(self.trust_path) + 10
        os.utime(self.trust_path, (later, later))

    def test_file_keys_finalize(self):
        record_id = self._submit(6, 130, 11)
        self.ledger.request_assessment_reveal(record_id)
        self.oracle.deliver_all()
        self.assertEqual(self.ledger.get_assessment(record_id).risk_level, RiskLevel.CRITICAL)

    def test_kid_revoked_after_startup(self):
        record_id = self._submit(6, 130, 11)
        request_id = self.ledger.request_assessment_reveal(record_id)
        plaintext, proof = self.oracle.answer(request_id)

        self.trust["revoked_kids"] = ["oracle-file"]
        self._rewrite_trust_store()

        with self.assertRaises(AuthenticationFailed):
            self.ledger.on_revealed(request_id, plaintext, proof)
        self.assertFalse(self.ledger.get_assessment(record_id).is_revealed)
        self.assertIn(request_id, self.ledger.pending)

    def test_kid_removed_after_startup(self):
        record_id = self._submit(0, 0, 0)
        request_id = self.ledger.request_assessment_reveal(record_id)

        self.trust["oracle_keys"] = {}
        self._rewrite_trust_store()

        with self.assertRaises(AuthenticationFailed):
            self.oracle.deliver(request_id)


if __name__ == "__main__":
    unittest.main()
