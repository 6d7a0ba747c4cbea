"""Assemble a multi-tenant key provider from configuration."""
from __future__ import annotations

from typing import Callable, Dict, Optional

from .backends import backend_from_name
from .cache import MemoryDataKeyCache
from .config import KeyringConfig, KmsSettings, TenantStoreSettings
from .core.exceptions import ConfigurationError
from .kms.aws import create_kms_client
from .kms.base import KmsClient
from .kms.local import LocalKms
from .paths import default_local_kms_key_file
from .providers.multi_tenant import MultiTenantKmsKeyProvider
from .tenants import FileTenantStore, MemoryTenantStore, TenantStore

_KMS_DRIVERS: Dict[str, Callable[[KmsSettings], KmsClient]] = {
    "aws": create_kms_client,
    "local": lambda settings: LocalKms(key_file=settings.master_key_file or default_local_kms_key_file()),
}

_STORE_DRIVERS: Dict[str, Callable[[TenantStoreSettings], TenantStore]] = {
    "file": lambda settings: FileTenantStore(settings.path),
    "memory": lambda _settings: MemoryTenantStore(),
}


def build_kms_client(settings: KmsSettings) -> KmsClient:
    driver = _KMS_DRIVERS.get(settings.driver)
    if driver is None:
        raise ConfigurationError(f"Unsupported KMS driver: {settings.driver}")
    return driver(settings)


def build_tenant_store(settings: TenantStoreSettings) -> TenantStore:
    driver = _STORE_DRIVERS.get(settings.driver)
    if driver is None:
        raise ConfigurationError(f"Unsupported tenant store driver: {settings.driver}")
    return driver(settings)


def build_provider(
    config: KeyringConfig,
    kms_client: Optional[KmsClient] = None,
    edk_lookup: Optional[TenantStore] = None,
) -> MultiTenantKmsKeyProvider:
    cache = MemoryDataKeyCache(config.cache.max_entries) if config.cache.enabled else None
    provider = MultiTenantKmsKeyProvider(
        backend=backend_from_name(config.backend),
        kms_client=kms_client if kms_client is not None else build_kms_client(config.kms),
        edk_lookup=edk_lookup if edk_lookup is not None else build_tenant_store(config.tenant_store),
        cache=cache,
    )
    for table_name, column in config.tenant_columns.items():
        provider.set_tenant_column_for_table(table_name, column)
    provider.set_static_blind_index_tenant(config.static_blind_index_tenant)
    return provider
