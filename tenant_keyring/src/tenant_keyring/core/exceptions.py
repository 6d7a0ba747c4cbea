"""Central exception hierarchy"""
from __future__ import annotations


class KeyringError(Exception):
    """Base exception for all failures"""


class ConfigurationError(KeyringError):
    """Raised when a required collaborator or mapping entry is missing"""


class BackendMismatchError(KeyringError):
    """Raised when an EDK was produced for a different cryptographic backend"""


class NoActiveTenantError(KeyringError):
    """Raised when a tenant-relative operation runs with no active tenant"""


class NotFoundError(KeyringError, LookupError):
    """Raised when a tenant record cannot be resolved"""


class TypeMismatchError(KeyringError, TypeError):
    """Raised when a provider, backend or tenant id has the wrong type"""


class TenantTypeError(KeyringError, TypeError):
    """Raised when row data does not carry a usable tenant id"""


class KmsError(KeyringError):
    """Raised when a call to the key management service fails"""
