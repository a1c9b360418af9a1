"""
RiskVault Aggregate Risk Counters

One encrypted running count per risk level, created lazily on the first
finalized assessment of that level. The Category Registry records the order
in which levels were initialized and is the only way to turn a category
digest back into a level.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .ciphertext import CiphertextHandle, EncryptionBackend
from .classification import RiskLevel
from .errors import CategoryNotFound, NotFound
from .hashing import category_digest


@dataclass
class AggregateRiskCounter:
    """Encrypted count of finalized assessments for one level."""
    level: RiskLevel
    count: CiphertextHandle
    initialized: bool = True
    last_revealed_count: Optional[int] = None


@dataclass(frozen=True)
class PreparedIncrement:
    """
    A counter update computed but not yet applied.

    Splitting compute from apply lets finalization run every fallible
    backend call before it mutates anything.
    """
    level: RiskLevel
    new_count: CiphertextHandle
    creates_counter: bool


class AggregateCounters:
    """Per-level counters plus the append-only Category Registry."""

    def __init__(self, backend: EncryptionBackend):
        self.backend = backend
        self._counters: Dict[RiskLevel, AggregateRiskCounter] = {}
        self._registry: List[RiskLevel] = []

    def prepare_increment(self, level: RiskLevel) -> PreparedIncrement:
        level = RiskLevel(level)
        counter = self._counters.get(level)
        if counter is None:
            base = self.backend.encrypt_zero()
            return PreparedIncrement(level, self.backend.increment(base), creates_counter=True)
        return PreparedIncrement(level, self.backend.increment(counter.count), creates_counter=False)

    def apply(self, prepared: PreparedIncrement) -> AggregateRiskCounter:
        counter = self._counters.get(prepared.level)
        if counter is None:
            counter = AggregateRiskCounter(level=prepared.level, count=prepared.new_count)
            self._counters[prepared.level] = counter
            self._registry.append(prepared.level)
        else:
            counter.count = prepared.new_count
        return counter

    def increment(self, level: RiskLevel) -> AggregateRiskCounter:
        """Add one to the level's counter, creating it at encrypted zero first if needed."""
        return self.apply(self.prepare_increment(level))

    def is_initialized(self, level: RiskLevel) -> bool:
        counter = self._counters.get(RiskLevel(level))
        return counter is not None and counter.initialized

    def get(self, level: RiskLevel) -> AggregateRiskCounter:
        counter = self._counters.get(RiskLevel(level))
        if counter is None:
            raise NotFound(f"no counter for {RiskLevel(level).value}", level)
        return counter

    def peek_encrypted(self, level: RiskLevel) -> CiphertextHandle:
        return self.get(level).count

    def registry(self) -> List[RiskLevel]:
        return list(self._registry)

    def resolve_digest(self, key: int) -> RiskLevel:
        """
        Map a category digest back to its level by rescanning the registry.

        Raises:
            CategoryNotFound: If no initialized level hashes to key
        """
        for level in self._registry:
            if category_digest(level) == key:
                return level
        raise CategoryNotFound(f"no initialized category for digest {key:#x}", key)
