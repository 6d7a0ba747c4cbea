# Raw key material holder handed to the row encryption pipeline.

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class SymmetricKey:
    """Opaque holder of raw key bytes"""
    raw_key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.raw_key, (bytes, bytearray)):
            raise TypeError("Symmetric key material must be bytes")
        if not self.raw_key:
            raise ValueError("Symmetric key material must be non-empty")
        object.__setattr__(self, "raw_key", bytes(self.raw_key))

    def get_raw_key(self) -> bytes:
        return self.raw_key

    def fingerprint(self) -> str:
        """Short SHA-256 fingerprint, safe to display"""
        return hashlib.sha256(self.raw_key).hexdigest()[:12]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SymmetricKey):
            return NotImplemented
        return hmac.compare_digest(self.raw_key, other.raw_key)

    def __hash__(self) -> int:
        return hash(self.raw_key)

    def __len__(self) -> int:
        return len(self.raw_key)
