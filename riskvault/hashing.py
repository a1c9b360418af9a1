"""
RiskVault canonical encoding and hashing.

All hashes use SHA-256. Canonical JSON is used wherever bytes are signed so
that semantically identical messages produce identical signatures.
"""

import base64
import hashlib
import json
from typing import Any, Union


def canonicalize(obj: Any) -> bytes:
    """
    Convert an object to canonical JSON bytes.

    - Object keys sorted lexicographically
    - No whitespace between tokens
    - UTF-8 encoding
    """
    s = json.dumps(obj, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
    return s.encode('utf-8')


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as lowercase hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def category_digest(category: Union[str, Any]) -> int:
    """
    Derive the numeric routing key for a risk category.

    The key is SHA-256 of the category name read as a big-endian 256-bit
    integer. It is one-way: turning a key back into a category requires
    scanning the category registry.
    """
    name = getattr(category, "value", category)
    return int.from_bytes(hashlib.sha256(name.encode('utf-8')).digest(), 'big')


def proof_message(request_id: str, plaintext: bytes) -> bytes:
    """
    Bytes signed by the decryption oracle for one answered request.

    Binds the request id to the exact plaintext so a valid proof cannot be
    replayed against another request or another plaintext.
    """
    return canonicalize({
        "domain": "riskvault.decryption.v1",
        "plaintext_sha256": sha256_hex(plaintext),
        "request_id": request_id,
    })


def b64e(b: bytes) -> str:
    """Base64 encode bytes to string."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Base64 decode string to bytes."""
    return base64.b64decode(s.encode('ascii'))
