from __future__ import annotations

from .b64d import b64d
from .b64e import b64e
from .validation import TenantId, ensure_tenant_id, is_tenant_id

__all__ = [
    "b64e",
    "b64d",
    "TenantId",
    "ensure_tenant_id",
    "is_tenant_id",
]
