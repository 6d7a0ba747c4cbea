"""Envelope-encryption key provider backed by a remote KMS.

One provider holds one tenant's relationship to its master key: the key id,
the encryption context bound into every KMS call, and the encrypted data key
(EDK) persisted locally. Instances are immutable; the ``with_*`` methods
return modified copies.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

import structlog

from ..backends import Backend, BoringCrypto
from ..cache import DataKeyCache
from ..core.exceptions import BackendMismatchError, ConfigurationError
from ..edk import edk_fingerprint, encode_edk, has_prefix, split_edk
from ..keys import SymmetricKey
from ..kms.aws import call_kms
from ..kms.base import DATA_KEY_BYTES, KmsClient, bind_context

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, eq=False)
class KmsKeyProvider:
    kms_client: KmsClient = field(repr=False)
    backend: Backend = field(default_factory=BoringCrypto)
    key_id: str = ""
    encryption_context: Mapping[str, str] = field(default_factory=dict)
    edk: str = ""
    cache: Optional[DataKeyCache] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "encryption_context", MappingProxyType(dict(self.encryption_context)))

    @classmethod
    def generate(
        cls,
        kms_client: KmsClient,
        backend: Backend,
        key_id: str,
        encryption_context: Optional[Mapping[str, str]] = None,
        cache: Optional[DataKeyCache] = None,
    ) -> "KmsKeyProvider":
        """Mint a new data key under ``key_id`` and keep only its ciphertext"""
        context = dict(encryption_context or {})
        response = call_kms(
            kms_client,
            "generate_data_key",
            KeyId=key_id,
            NumberOfBytes=DATA_KEY_BYTES,
            EncryptionContext=bind_context(context, backend.prefix),
        )
        response.pop("Plaintext", None)
        edk = encode_edk(backend.prefix, response["CiphertextBlob"])
        logger.info("kms.generate_data_key", key_id=key_id, backend=backend.prefix, edk=edk_fingerprint(edk))
        return cls(kms_client, backend, key_id, context, edk, cache)

    def encrypt_data_key(self, key: SymmetricKey) -> str:
        """Wrap externally supplied key material and return its EDK"""
        prefix = self.backend.prefix
        response = call_kms(
            self.kms_client,
            "encrypt",
            KeyId=self.key_id,
            Plaintext=key.get_raw_key(),
            EncryptionContext=bind_context(self.encryption_context, prefix),
        )
        edk = encode_edk(prefix, response["CiphertextBlob"])
        logger.info("kms.encrypt", key_id=self.key_id, backend=prefix, edk=edk_fingerprint(edk))
        return edk

    def get_symmetric_key(self) -> SymmetricKey:
        if not self.edk:
            raise ConfigurationError("EDK not set on this KMS key provider")
        prefix = self.backend.prefix
        if not has_prefix(prefix, self.edk):
            raise BackendMismatchError("EDK is intended for the wrong backend")

        if self.cache is not None and self.cache.has(self.edk):
            cached = self.cache.get(self.edk)
            if cached is not None:
                logger.debug("tenant.cache.hit", key_id=self.key_id, edk=edk_fingerprint(self.edk))
                return cached

        blob = split_edk(prefix, self.edk)
        response = call_kms(
            self.kms_client,
            "decrypt",
            KeyId=self.key_id,
            CiphertextBlob=blob,
            EncryptionContext=bind_context(self.encryption_context, prefix),
        )
        key = SymmetricKey(response["Plaintext"])
        logger.debug("kms.decrypt", key_id=self.key_id, edk=edk_fingerprint(self.edk))
        if self.cache is not None:
            self.cache.set(self.edk, key)
        return key

    def with_data_key_cache(self, cache: DataKeyCache) -> "KmsKeyProvider":
        return replace(self, cache=cache)

    def with_encrypted_data_key(self, edk: str) -> "KmsKeyProvider":
        if not has_prefix(self.backend.prefix, edk):
            raise BackendMismatchError("EDK is intended for the wrong backend")
        return replace(self, edk=edk)

    def with_encryption_context(self, encryption_context: Mapping[str, str]) -> "KmsKeyProvider":
        return replace(self, encryption_context=encryption_context)

    def with_key_id(self, key_id: str) -> "KmsKeyProvider":
        return replace(self, key_id=key_id)
