"""Cipher suite descriptors.

The row encryption pipeline owns the actual ciphers. This module only knows
the short prefix each suite stamps on the encrypted data keys it accepts.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Final, Protocol, runtime_checkable

from .core.exceptions import ConfigurationError


@runtime_checkable
class Backend(Protocol):
    prefix: str


@dataclass(frozen=True, slots=True)
class BoringCrypto:
    prefix: str = "brng:"


@dataclass(frozen=True, slots=True)
class FIPSCrypto:
    prefix: str = "fips:"


@dataclass(frozen=True, slots=True)
class ModernCrypto:
    prefix: str = "nacl:"


_BACKENDS: Final[Dict[str, type]] = {
    "boring": BoringCrypto,
    "fips": FIPSCrypto,
    "modern": ModernCrypto,
}


def backend_from_name(name: str) -> Backend:
    backend_cls = _BACKENDS.get(name.strip().lower())
    if backend_cls is None:
        raise ConfigurationError(f"Unsupported backend: {name}")
    return backend_cls()


__all__ = ["Backend", "BoringCrypto", "FIPSCrypto", "ModernCrypto", "backend_from_name"]
