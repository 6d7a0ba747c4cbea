# Encrypted data key string format: <backend prefix><unpadded url-safe base64 blob>

from __future__ import annotations

import hashlib

from .core.exceptions import BackendMismatchError, ConfigurationError
from .utils import b64d, b64e


def encode_edk(prefix: str, blob: bytes) -> str:
    return prefix + b64e(blob)


def has_prefix(prefix: str, edk: str) -> bool:
    return edk.startswith(prefix)


def split_edk(prefix: str, edk: str) -> bytes:
    """Strip ``prefix`` from ``edk`` and decode the ciphertext blob"""
    if not has_prefix(prefix, edk):
        raise BackendMismatchError("EDK is intended for the wrong backend")
    try:
        return b64d(edk[len(prefix):])
    except ValueError as exc:
        raise ConfigurationError(f"EDK is malformed: {exc}") from exc


def edk_fingerprint(edk: str) -> str:
    return hashlib.sha256(edk.encode("utf-8")).hexdigest()[:12]


__all__ = ["encode_edk", "has_prefix", "split_edk", "edk_fingerprint"]
