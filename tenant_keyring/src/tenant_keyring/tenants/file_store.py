from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from filelock import FileLock

from ..core.exceptions import NotFoundError
from ..paths import default_tenant_store_dir
from ..utils import TenantId, ensure_tenant_id
from .lookup import LookupResponse, apply_record

if TYPE_CHECKING:
    from ..providers.kms_provider import KmsKeyProvider

logger = structlog.get_logger(__name__)


class FileTenantStore:
    """Filesystem-backed tenant store under ``root``.

    Layout:
      - tenants.json: {"tenants": [{tenant_id, id_type, edk, key_id,
        encryption_context, created_at}]}
      - tenants.json.lock: held across every read-modify-write

    Only encrypted data keys are written; the store never sees plaintext
    key material. ``1`` and ``"1"`` are distinct tenants. Several instances,
    in one process or many, may share a root: the first record written for a
    tenant is the one every caller gets back.
    """

    def __init__(self, root: Optional[Path | str] = None) -> None:
        self.root = Path(root) if root else default_tenant_store_dir()
        self.index = self.root / "tenants.json"
        self._lock = FileLock(str(self.root / "tenants.json.lock"))
        self.ensure()

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if not self.index.exists():
                self._save_index({"tenants": []})

    # ----- Index helpers -----
    def _load_index(self) -> dict:
        return json.loads(self.index.read_text(encoding="utf-8"))

    def _save_index(self, data: dict) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix="tenants.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp, self.index)
        except BaseException:
            os.unlink(tmp)
            raise

    @staticmethod
    def _matches(entry: Dict[str, Any], index: TenantId) -> bool:
        id_type = "int" if isinstance(index, int) else "str"
        return entry.get("id_type") == id_type and entry.get("tenant_id") == index

    def _find(self, entries: List[Dict[str, Any]], index: TenantId) -> Optional[LookupResponse]:
        for entry in entries:
            if self._matches(entry, index):
                return LookupResponse(
                    entry["edk"],
                    entry["key_id"],
                    entry.get("encryption_context") or {},
                )
        return None

    # ----- TenantStore -----
    def create_tenant(self, index: TenantId, provider: "KmsKeyProvider") -> "KmsKeyProvider":
        index = ensure_tenant_id(index)
        with self._lock:
            data = self._load_index()
            entries = data.get("tenants", [])
            existing = self._find(entries, index)
            if existing is None:
                entries.append(
                    {
                        "tenant_id": index,
                        "id_type": "int" if isinstance(index, int) else "str",
                        "edk": provider.edk,
                        "key_id": provider.key_id,
                        "encryption_context": dict(provider.encryption_context),
                        "created_at": int(time.time()),
                    }
                )
                data["tenants"] = entries
                self._save_index(data)
                logger.info("tenant.store.created", tenant=index, key_id=provider.key_id)
                return provider
        logger.info("tenant.store.exists", tenant=index)
        return apply_record(provider, existing)

    def lookup_tenant_data(self, index: TenantId) -> LookupResponse:
        index = ensure_tenant_id(index)
        with self._lock:
            record = self._find(self._load_index().get("tenants", []), index)
        if record is None:
            raise NotFoundError("No such tenant is defined")
        return record

    def list_tenants(self) -> List[TenantId]:
        with self._lock:
            return [entry["tenant_id"] for entry in self._load_index().get("tenants", [])]
