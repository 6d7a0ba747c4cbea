"""Envelope-encryption key management for multi-tenant data protection."""
from __future__ import annotations

from .backends import Backend, BoringCrypto, FIPSCrypto, ModernCrypto, backend_from_name
from .cache import DataKeyCache, MemoryDataKeyCache
from .core.exceptions import (
    BackendMismatchError,
    ConfigurationError,
    KeyringError,
    KmsError,
    NoActiveTenantError,
    NotFoundError,
    TenantTypeError,
    TypeMismatchError,
)
from .keys import SymmetricKey
from .kms import LocalKms
from .providers import KmsKeyProvider, MultiTenantKmsKeyProvider, MultiTenantProvider
from .tenants import FileTenantStore, LookupResponse, MemoryTenantStore, TenantStore
from .version import __version__

__all__ = [
    "Backend",
    "BackendMismatchError",
    "BoringCrypto",
    "ConfigurationError",
    "DataKeyCache",
    "FIPSCrypto",
    "FileTenantStore",
    "KeyringError",
    "KmsError",
    "KmsKeyProvider",
    "LocalKms",
    "LookupResponse",
    "MemoryDataKeyCache",
    "MemoryTenantStore",
    "ModernCrypto",
    "MultiTenantKmsKeyProvider",
    "MultiTenantProvider",
    "NoActiveTenantError",
    "NotFoundError",
    "SymmetricKey",
    "TenantStore",
    "TenantTypeError",
    "TypeMismatchError",
    "__version__",
    "backend_from_name",
]
