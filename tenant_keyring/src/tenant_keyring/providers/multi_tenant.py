"""Tenant-scoped resolution of KMS-backed data keys.

A ``MultiTenantKmsKeyProvider`` is single-owner state: the ``tenants`` map and
the ``active`` pointer are not synchronized. Use one instance per request (or
guard it externally) when tenants are switched concurrently.

Per tenant id the lifecycle is Unresolved -> Resolving -> Resolved. A
resolved provider is never re-fetched or evicted for the lifetime of the
instance.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, MutableMapping, Optional

import structlog

from ..backends import Backend, BoringCrypto
from ..cache import DataKeyCache
from ..core.exceptions import (
    ConfigurationError,
    NoActiveTenantError,
    NotFoundError,
    TenantTypeError,
    TypeMismatchError,
)
from ..edk import edk_fingerprint
from ..keys import SymmetricKey
from ..kms.base import KmsClient
from ..tenants.lookup import TenantStore
from ..utils import TenantId, ensure_tenant_id, is_tenant_id
from .kms_provider import KmsKeyProvider

logger = structlog.get_logger(__name__)


class MultiTenantProvider:
    """Registry of per-tenant key providers with one active tenant"""

    def __init__(
        self,
        key_providers: Optional[Mapping[TenantId, KmsKeyProvider]] = None,
        active: Optional[TenantId] = None,
    ) -> None:
        self.tenants: Dict[TenantId, KmsKeyProvider] = {}
        for index, provider in (key_providers or {}).items():
            self.add_tenant(index, provider)
        self.active: Optional[TenantId] = None if active is None else ensure_tenant_id(active)

    @property
    def active_tenant(self) -> Optional[TenantId]:
        return self.active

    def add_tenant(self, index: TenantId, provider: KmsKeyProvider) -> "MultiTenantProvider":
        self.tenants[ensure_tenant_id(index)] = provider
        return self

    def has_tenant(self, index: TenantId) -> bool:
        return index in self.tenants

    def get_tenant(self, index: TenantId) -> KmsKeyProvider:
        try:
            return self.tenants[index]
        except KeyError:
            raise NotFoundError(f"Tenant {index!r} does not exist") from None

    def get_active_tenant(self) -> KmsKeyProvider:
        if self.active is None:
            raise NoActiveTenantError("Active tenant not set")
        return self.get_tenant(self.active)

    def set_active_tenant(self, index: TenantId) -> "MultiTenantProvider":
        self.active = ensure_tenant_id(index)
        return self


class MultiTenantKmsKeyProvider(MultiTenantProvider):
    def __init__(
        self,
        key_providers: Optional[Mapping[TenantId, KmsKeyProvider]] = None,
        active: Optional[TenantId] = None,
        backend: Optional[Backend] = None,
        kms_client: Optional[KmsClient] = None,
        edk_lookup: Optional[TenantStore] = None,
        cache: Optional[DataKeyCache] = None,
    ) -> None:
        if backend is None:
            backend = BoringCrypto()
        for name, provider in (key_providers or {}).items():
            if not isinstance(provider, KmsKeyProvider):
                raise TypeMismatchError(f"Key provider is not a KMS key provider: {name}")
            if provider.backend.prefix != backend.prefix:
                raise TypeMismatchError(f"Key provider has the wrong backend: {name}")
        super().__init__(key_providers, active)
        self.backend: Backend = backend
        self.kms_client = kms_client
        self.edk_lookup = edk_lookup
        self.cache = cache
        self.tenant_column_map: Dict[str, str] = {}
        self.blind_index_tenant: Optional[TenantId] = None

    def get_backend(self) -> Backend:
        return self.backend

    def create_tenant(
        self,
        index: TenantId,
        key_id: str,
        encryption_context: Optional[Mapping[str, str]] = None,
    ) -> KmsKeyProvider:
        """Generate a data key for ``index`` and persist it through the tenant store.

        When the store already holds a record for ``index`` it returns that
        record instead of the new key; the stored key is never overwritten.
        """
        index = ensure_tenant_id(index)
        if self.kms_client is None:
            raise ConfigurationError("KMS client not defined")
        provider = KmsKeyProvider.generate(
            self.kms_client,
            self.backend,
            key_id,
            encryption_context,
            self.cache,
        )
        if self.edk_lookup is None:
            return provider
        canonical = self.edk_lookup.create_tenant(index, provider)
        logger.info(
            "tenant.create",
            tenant=index,
            key_id=canonical.key_id,
            edk=edk_fingerprint(canonical.edk),
            reused=canonical.edk != provider.edk,
        )
        return canonical

    def get_symmetric_key(self) -> SymmetricKey:
        if self.active is None:
            raise NoActiveTenantError("Active tenant not set")
        self._ensure_resolved(self.active)
        return self.get_active_tenant().get_symmetric_key()

    def get_blind_index_key(self) -> SymmetricKey:
        """Key for blind-index computation, independent of the active tenant when configured"""
        if self.blind_index_tenant is None:
            return self.get_symmetric_key()
        self._ensure_resolved(self.blind_index_tenant)
        return self.get_tenant(self.blind_index_tenant).get_symmetric_key()

    def get_tenant_from_row(self, row: Mapping[str, Any], table_name: str) -> TenantId:
        if table_name not in self.tenant_column_map:
            raise ConfigurationError(f"Column name not specified for table {table_name}")
        column = self.tenant_column_map[table_name]
        if column not in row:
            raise TenantTypeError("Tenant information is not provided")
        value = row[column]
        if not is_tenant_id(value):
            raise TenantTypeError(f"Tenant information is the wrong type: {type(value).__name__}")
        return value

    def inject_tenant_metadata(self, row: Mapping[str, Any], table_name: str) -> Dict[str, Any]:
        if self.active is None:
            return dict(row)
        if table_name not in self.tenant_column_map:
            raise ConfigurationError(f"Table {table_name} does not have a column for tenant ID")
        injected = dict(row)
        injected[self.tenant_column_map[table_name]] = self.active
        return injected

    def lookup_edk_for(self, index: TenantId) -> str:
        """Return the EDK for ``index``, fetching and registering it on first use"""
        index = ensure_tenant_id(index)
        if index in self.tenants:
            return self.tenants[index].edk
        if self.edk_lookup is None:
            raise ConfigurationError("EDK lookup callback not specified")
        if self.kms_client is None:
            raise ConfigurationError("KMS client not defined")
        response = self.edk_lookup.lookup_tenant_data(index)
        provider = KmsKeyProvider(
            self.kms_client,
            self.backend,
            response.key_id,
            response.encryption_context,
            response.edk,
            self.cache,
        )
        self.add_tenant(index, provider)
        logger.info("tenant.lookup", tenant=index, key_id=response.key_id, edk=edk_fingerprint(response.edk))
        return response.edk

    def set_active_tenant(self, index: TenantId) -> "MultiTenantKmsKeyProvider":
        index = ensure_tenant_id(index)
        if index not in self.tenants and self.edk_lookup is not None:
            self.lookup_edk_for(index)
        self.active = index
        return self

    def set_data_key_cache(self, cache: DataKeyCache) -> "MultiTenantKmsKeyProvider":
        self.cache = cache
        return self

    def set_edk_lookup(self, lookup: TenantStore) -> "MultiTenantKmsKeyProvider":
        self.edk_lookup = lookup
        return self

    def set_kms_client(self, kms_client: KmsClient) -> "MultiTenantKmsKeyProvider":
        self.kms_client = kms_client
        return self

    def set_tenant_column_for_table(self, table_name: str, tenant_column_name: str) -> "MultiTenantKmsKeyProvider":
        self.tenant_column_map[table_name] = tenant_column_name
        return self

    def get_static_blind_index_tenant(self) -> Optional[TenantId]:
        return self.blind_index_tenant

    def set_static_blind_index_tenant(self, tenant: Optional[TenantId] = None) -> None:
        self.blind_index_tenant = None if tenant is None else ensure_tenant_id(tenant)

    def _ensure_resolved(self, index: TenantId) -> None:
        if index not in self.tenants and self.edk_lookup is not None:
            self.lookup_edk_for(index)


__all__ = ["MultiTenantProvider", "MultiTenantKmsKeyProvider"]
