from __future__ import annotations

from .kms_provider import KmsKeyProvider
from .multi_tenant import MultiTenantKmsKeyProvider, MultiTenantProvider

__all__ = ["KmsKeyProvider", "MultiTenantKmsKeyProvider", "MultiTenantProvider"]
