"""
RiskVault Decryption Request Broker state

Maps outstanding oracle request ids to the domain operation they belong to.
Targets are a tagged union, so a record id and a category digest can never
be confused even when they are numerically equal.

Single-use enforcement mirrors a permit store: an entry is consumed exactly
once, and a consumed id is unknown from then on.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from .classification import RiskLevel
from .errors import RequestIdCollision
from .hashing import category_digest


class TargetKind(str, Enum):
    INSTITUTION = "institution"
    CATEGORY = "category"


@dataclass(frozen=True)
class InstitutionTarget:
    """Finalize the assessment of one record."""
    record_id: int
    kind: TargetKind = TargetKind.INSTITUTION

    def describe(self) -> str:
        return f"institution:{self.record_id}"


@dataclass(frozen=True)
class CategoryTarget:
    """Reveal the aggregate counter whose category digest is key."""
    key: int
    kind: TargetKind = TargetKind.CATEGORY

    @classmethod
    def for_level(cls, level: RiskLevel) -> "CategoryTarget":
        return cls(key=category_digest(RiskLevel(level)))

    def describe(self) -> str:
        return f"category:{self.key:#x}"


RevealTarget = Union[InstitutionTarget, CategoryTarget]


class RerequestPolicy(str, Enum):
    """What request_reveal does while the target already has a live request."""
    REJECT = "reject"      # raise DuplicateRequest
    REISSUE = "reissue"    # issue another request; the handler's finalization check rejects the loser


@dataclass
class PendingDecryptionRequest:
    request_id: str
    target: RevealTarget
    requested_at: datetime
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def to_dict(self):
        return {
            "request_id": self.request_id,
            "target": self.target.describe(),
            "requested_at": self.requested_at.isoformat().replace("+00:00", "Z"),
            "expires_at": self.expires_at.isoformat().replace("+00:00", "Z") if self.expires_at else None,
        }


class PendingRequestTable:
    """Request id -> pending target, with a side index of live requests per target."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self._pending: Dict[str, PendingDecryptionRequest] = {}
        self._by_target: Dict[RevealTarget, List[str]] = {}
        self.ttl_seconds = ttl_seconds or None

    def add(self, request_id: str, target: RevealTarget, now: Optional[datetime] = None) -> PendingDecryptionRequest:
        if request_id in self._pending:
            raise RequestIdCollision(f"request id {request_id} is already pending", request_id)
        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self.ttl_seconds) if self.ttl_seconds else None
        entry = PendingDecryptionRequest(request_id, target, now, expires_at)
        self._pending[request_id] = entry
        self._by_target.setdefault(target, []).append(request_id)
        return entry

    def get(self, request_id: str) -> Optional[PendingDecryptionRequest]:
        return self._pending.get(request_id)

    def consume(self, request_id: str) -> Optional[PendingDecryptionRequest]:
        """Remove an entry so the id can never be processed again."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return None
        ids = self._by_target.get(entry.target, [])
        if request_id in ids:
            ids.remove(request_id)
        if not ids:
            self._by_target.pop(entry.target, None)
        return entry

    def live_for(self, target: RevealTarget, now: Optional[datetime] = None) -> List[PendingDecryptionRequest]:
        return [
            self._pending[rid] for rid in self._by_target.get(target, [])
            if not self._pending[rid].is_expired(now)
        ]

    def expired_for(self, target: RevealTarget, now: Optional[datetime] = None) -> List[PendingDecryptionRequest]:
        return [
            self._pending[rid] for rid in self._by_target.get(target, [])
            if self._pending[rid].is_expired(now)
        ]

    def entries(self) -> List[PendingDecryptionRequest]:
        return list(self._pending.values())

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)
