"""
Configuration module for RiskVault.

Centralizes configuration with environment variable support and
validation.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("RISKVAULT_ENV", "dev")  # dev|stage|prod

# Ledger behaviour
REREQUEST_POLICY = os.getenv("RISKVAULT_REREQUEST_POLICY", "reject")  # reject|reissue
PENDING_TTL_SECONDS = int(os.getenv("RISKVAULT_PENDING_TTL_SECONDS", "0"))  # 0 = never expire
EVENT_LOG_MAX_EVENTS = int(os.getenv("RISKVAULT_EVENT_LOG_MAX_EVENTS", "10000"))

# Oracle keys
ORACLE_KEY_PATH = os.getenv("RISKVAULT_ORACLE_KEY_PATH", "secrets/oracle_signing_key.json")
TRUST_STORE_PATH = os.getenv("RISKVAULT_TRUST_STORE_PATH", "trust/trust_store.json")

# Reference Paillier backend
PAILLIER_KEY_BITS = int(os.getenv("RISKVAULT_PAILLIER_KEY_BITS", "2048"))

# Logging
LOG_LEVEL = os.getenv("RISKVAULT_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("RISKVAULT_LOG_JSON", "true").lower() in ("1", "true", "yes")


@dataclass
class LedgerSettings:
    """Settings consumed by RiskLedger."""
    rerequest_policy: str = "reject"
    pending_ttl_seconds: Optional[int] = None
    event_log_max_events: int = 10000

    def __post_init__(self):
        if self.rerequest_policy not in ("reject", "reissue"):
            raise ValueError(
                f"Invalid rerequest_policy '{self.rerequest_policy}': must be 'reject' or 'reissue'"
            )
        if self.pending_ttl_seconds is not None and self.pending_ttl_seconds < 0:
            raise ValueError("pending_ttl_seconds must not be negative")
        if self.pending_ttl_seconds == 0:
            self.pending_ttl_seconds = None

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        return cls(
            rerequest_policy=REREQUEST_POLICY,
            pending_ttl_seconds=PENDING_TTL_SECONDS,
            event_log_max_events=EVENT_LOG_MAX_EVENTS,
        )


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate that required key material exists.
    Returns dict of name -> exists.
    """
    paths = {
        "oracle_signing_key": ORACLE_KEY_PATH,
        "trust_store": TRUST_STORE_PATH,
    }
    return {name: Path(path).exists() for name, path in paths.items()}


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("RISKVAULT_DEBUG", "").lower() in ("1", "true", "yes")
