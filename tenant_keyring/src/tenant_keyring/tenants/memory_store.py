from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Dict

from ..core.exceptions import NotFoundError
from ..utils import TenantId, ensure_tenant_id
from .lookup import LookupResponse, apply_record

if TYPE_CHECKING:
    from ..providers.kms_provider import KmsKeyProvider


class MemoryTenantStore:
    """Dict-backed tenant store, mostly for tests and short-lived processes"""

    def __init__(self) -> None:
        self._records: Dict[TenantId, LookupResponse] = {}
        self._lock = threading.Lock()
        self.lookup_count = 0

    def create_tenant(self, index: TenantId, provider: "KmsKeyProvider") -> "KmsKeyProvider":
        index = ensure_tenant_id(index)
        with self._lock:
            existing = self._records.get(index)
            if existing is None:
                self._records[index] = LookupResponse(provider.edk, provider.key_id, provider.encryption_context)
                return provider
        # never clobber an existing tenant
        return apply_record(provider, existing)

    def lookup_tenant_data(self, index: TenantId) -> LookupResponse:
        with self._lock:
            self.lookup_count += 1
            record = self._records.get(index)
        if record is None:
            raise NotFoundError("No such tenant is defined")
        return record

    def __contains__(self, index: object) -> bool:
        return index in self._records

    def __len__(self) -> int:
        return len(self._records)
