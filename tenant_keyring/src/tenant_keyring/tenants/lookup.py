# Contract between the multi-tenant key provider and whatever persists tenant records.

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Protocol, runtime_checkable

from ..utils import TenantId

if TYPE_CHECKING:
    from ..providers.kms_provider import KmsKeyProvider


@dataclass(frozen=True, slots=True)
class LookupResponse:
    edk: str
    key_id: str
    encryption_context: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "encryption_context", MappingProxyType(dict(self.encryption_context)))


@runtime_checkable
class TenantStore(Protocol):
    """Persists one {edk, key_id, encryption_context} record per tenant.

    ``create_tenant`` must be idempotent: when a record for ``index`` already
    exists it returns the stored record applied onto ``provider`` and leaves
    the store untouched. ``lookup_tenant_data`` raises ``NotFoundError`` for an
    unknown tenant.
    """

    def create_tenant(self, index: TenantId, provider: "KmsKeyProvider") -> "KmsKeyProvider":
        ...

    def lookup_tenant_data(self, index: TenantId) -> LookupResponse:
        ...


def apply_record(provider: "KmsKeyProvider", record: LookupResponse) -> "KmsKeyProvider":
    """Replace the key id, context and EDK of ``provider`` with a stored record"""
    return (
        provider.with_key_id(record.key_id)
        .with_encryption_context(record.encryption_context)
        .with_encrypted_data_key(record.edk)
    )
