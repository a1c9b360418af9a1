"""
RiskVault Record Store

Holds submitted encrypted measurements and their paired assessments, keyed
by sequential record ids starting at 1. The store does no locking of its
own; RiskLedger serializes every access.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .ciphertext import CiphertextHandle
from .classification import Classification, RiskLevel, SystemicRiskFlag
from .errors import AlreadyFinalized, NotFound

# Never assigned to a record
NO_RECORD = 0


@dataclass(frozen=True)
class EncryptedMeasurement:
    """One institution's encrypted submission."""
    record_id: int
    breach_attempts: CiphertextHandle
    response_time_minutes: CiphertextHandle
    vulnerability_count: CiphertextHandle
    submitted_at: datetime
    institution: Optional[str] = None
    submitter: Optional[str] = None

    def handles(self) -> List[CiphertextHandle]:
        """Handles in the fixed decryption order."""
        return [self.breach_attempts, self.response_time_minutes, self.vulnerability_count]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "breach_attempts": self.breach_attempts.handle_id,
            "response_time_minutes": self.response_time_minutes.handle_id,
            "vulnerability_count": self.vulnerability_count.handle_id,
            "submitted_at": self.submitted_at.isoformat().replace("+00:00", "Z"),
            "institution": self.institution,
            "submitter": self.submitter,
        }


@dataclass
class Assessment:
    """
    Derived risk conclusion for one measurement.

    All derived fields are None until finalize() sets them together with
    is_revealed. is_revealed never goes back to False.
    """
    record_id: int
    risk_level: Optional[RiskLevel] = None
    recommendations: Optional[str] = None
    systemic_risk_flag: Optional[SystemicRiskFlag] = None
    is_revealed: bool = False
    revealed_at: Optional[datetime] = None

    def finalize(self, result: Classification, revealed_at: Optional[datetime] = None) -> None:
        if self.is_revealed:
            raise AlreadyFinalized(f"assessment {self.record_id} is already revealed", self.record_id)
        self.risk_level = result.risk_level
        self.recommendations = result.recommendations
        self.systemic_risk_flag = result.systemic_risk_flag
        self.revealed_at = revealed_at or datetime.now(timezone.utc)
        self.is_revealed = True

    def as_tuple(self):
        return (self.risk_level, self.recommendations, self.systemic_risk_flag, self.is_revealed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "recommendations": self.recommendations,
            "systemic_risk_flag": self.systemic_risk_flag.value if self.systemic_risk_flag else None,
            "is_revealed": self.is_revealed,
        }


class RecordStore:
    """Mappings from record id to measurement and to assessment."""

    def __init__(self):
        self._measurements: Dict[int, EncryptedMeasurement] = {}
        self._assessments: Dict[int, Assessment] = {}
        self._last_id = NO_RECORD

    def submit(
        self,
        breach_attempts: CiphertextHandle,
        response_time_minutes: CiphertextHandle,
        vulnerability_count: CiphertextHandle,
        institution: Optional[str] = None,
        submitter: Optional[str] = None,
        submitted_at: Optional[datetime] = None
    ) -> EncryptedMeasurement:
        for name, handle in (
            ("breach_attempts", breach_attempts),
            ("response_time_minutes", response_time_minutes),
            ("vulnerability_count", vulnerability_count),
        ):
            if not isinstance(handle, CiphertextHandle):
                raise TypeError(f"{name} must be a CiphertextHandle")

        record_id = self._last_id + 1
        measurement = EncryptedMeasurement(
            record_id=record_id,
            breach_attempts=breach_attempts,
            response_time_minutes=response_time_minutes,
            vulnerability_count=vulnerability_count,
            submitted_at=submitted_at or datetime.now(timezone.utc),
            institution=institution,
            submitter=submitter,
        )
        self._measurements[record_id] = measurement
        self._assessments[record_id] = Assessment(record_id=record_id)
        self._last_id = record_id
        return measurement

    def _lookup(self, table: Dict[int, Any], record_id: int) -> Any:
        # bool is an int subclass: True would otherwise alias record 1
        if isinstance(record_id, bool) or not isinstance(record_id, int):
            raise NotFound(f"invalid record id {record_id!r}", record_id)
        found = table.get(record_id)
        if found is None:
            raise NotFound(f"no record {record_id}", record_id)
        return found

    def get_measurement(self, record_id: int) -> EncryptedMeasurement:
        return self._lookup(self._measurements, record_id)

    def get_assessment(self, record_id: int) -> Assessment:
        return self._lookup(self._assessments, record_id)

    def record_ids(self) -> List[int]:
        return sorted(self._measurements)

    def assessments(self) -> List[Assessment]:
        return [self._assessments[i] for i in sorted(self._assessments)]

    def __len__(self) -> int:
        return len(self._measurements)

    @property
    def last_id(self) -> int:
        return self._last_id
