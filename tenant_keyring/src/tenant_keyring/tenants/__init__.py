from __future__ import annotations

from .file_store import FileTenantStore
from .lookup import LookupResponse, TenantStore, apply_record
from .memory_store import MemoryTenantStore

__all__ = ["FileTenantStore", "LookupResponse", "MemoryTenantStore", "TenantStore", "apply_record"]
