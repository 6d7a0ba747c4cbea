import os
from unittest.mock import MagicMock

import pytest

from tenant_keyring.backends import BoringCrypto, FIPSCrypto, ModernCrypto
from tenant_keyring.cache import MemoryDataKeyCache
from tenant_keyring.core.exceptions import (
    BackendMismatchError,
    ConfigurationError,
    KmsError,
)
from tenant_keyring.edk import edk_fingerprint
from tenant_keyring.keys import SymmetricKey
from tenant_keyring.kms.base import CONTEXT_HEADER
from tenant_keyring.providers import KmsKeyProvider
from tenant_keyring.utils import b64d


def test_encrypt_then_unwrap_returns_same_key(kms, backend, key_id) -> None:
    provider = KmsKeyProvider(kms, backend, key_id)
    symmetric = SymmetricKey(os.urandom(32))
    wrapped = provider.encrypt_data_key(symmetric)
    unwrapped = provider.with_encrypted_data_key(wrapped).get_symmetric_key()
    assert unwrapped.get_raw_key().hex() == symmetric.get_raw_key().hex()


def test_generate_prefixes_edk_and_unwraps(kms, backend, key_id) -> None:
    provider = KmsKeyProvider.generate(kms, backend, key_id, {"tenant": "foo"})
    assert provider.edk.startswith(backend.prefix)
    assert "=" not in provider.edk
    assert len(provider.get_symmetric_key()) == 32
    assert dict(provider.encryption_context) == {"tenant": "foo"}


def test_generate_binds_backend_prefix_into_context(key_id) -> None:
    client = MagicMock()
    client.generate_data_key.return_value = {"Plaintext": b"\x01" * 32, "CiphertextBlob": b"cipher"}
    provider = KmsKeyProvider.generate(client, FIPSCrypto(), key_id, {"tenant": "foo"})

    client.generate_data_key.assert_called_once_with(
        KeyId=key_id,
        NumberOfBytes=32,
        EncryptionContext={"tenant": "foo", CONTEXT_HEADER: "fips:"},
    )
    assert b64d(provider.edk[len("fips:"):]) == b"cipher"


def test_generate_discards_plaintext(key_id) -> None:
    plaintext = b"\x42" * 32
    client = MagicMock()
    client.generate_data_key.return_value = {"Plaintext": plaintext, "CiphertextBlob": b"cipher"}
    provider = KmsKeyProvider.generate(client, BoringCrypto(), key_id)
    for value in vars(provider).values():
        assert value != plaintext
    assert plaintext.hex() not in repr(provider)


def test_reserved_header_cannot_be_overridden(key_id) -> None:
    client = MagicMock()
    client.encrypt.return_value = {"CiphertextBlob": b"cipher"}
    provider = KmsKeyProvider(client, BoringCrypto(), key_id, {CONTEXT_HEADER: "nacl:"})
    provider.encrypt_data_key(SymmetricKey(b"k" * 32))
    assert client.encrypt.call_args.kwargs["EncryptionContext"][CONTEXT_HEADER] == "brng:"


def test_missing_edk_is_configuration_error(kms, key_id) -> None:
    with pytest.raises(ConfigurationError):
        KmsKeyProvider(kms, BoringCrypto(), key_id).get_symmetric_key()


def test_backend_mismatch_fails_before_network(spy_kms, key_id) -> None:
    boring = KmsKeyProvider.generate(spy_kms, BoringCrypto(), key_id)
    fips = KmsKeyProvider(spy_kms, FIPSCrypto(), key_id, {}, boring.edk)
    with pytest.raises(BackendMismatchError):
        fips.get_symmetric_key()
    spy_kms.decrypt.assert_not_called()


def test_with_encrypted_data_key_rejects_foreign_prefix(kms, key_id) -> None:
    boring = KmsKeyProvider.generate(kms, BoringCrypto(), key_id)
    with pytest.raises(BackendMismatchError):
        KmsKeyProvider(kms, ModernCrypto(), key_id).with_encrypted_data_key(boring.edk)


def test_context_mismatch_fails_at_kms(kms, backend, key_id) -> None:
    provider = KmsKeyProvider.generate(kms, backend, key_id, {"tenant": "foo"})
    with pytest.raises(KmsError):
        provider.with_encryption_context({"tenant": "bar"}).get_symmetric_key()


def test_key_id_mismatch_fails_at_kms(kms, key_id) -> None:
    provider = KmsKeyProvider.generate(kms, BoringCrypto(), key_id)
    with pytest.raises(KmsError):
        provider.with_key_id("alias/other").get_symmetric_key()


def test_malformed_edk_body_is_rejected_before_network(spy_kms, key_id) -> None:
    provider = KmsKeyProvider(spy_kms, BoringCrypto(), key_id, {}, "brng:not base64!")
    with pytest.raises(ConfigurationError):
        provider.get_symmetric_key()
    spy_kms.decrypt.assert_not_called()


def test_cache_avoids_repeat_decrypt(spy_kms, key_id) -> None:
    cache = MemoryDataKeyCache()
    provider = KmsKeyProvider.generate(spy_kms, BoringCrypto(), key_id, cache=cache)
    first = provider.get_symmetric_key()
    second = provider.get_symmetric_key()
    assert first == second
    assert spy_kms.decrypt.call_count == 1
    assert cache.get(provider.edk) == first


def test_cache_hit_is_logged_by_fingerprint(kms, key_id, monkeypatch) -> None:
    logger = MagicMock()
    monkeypatch.setattr("tenant_keyring.providers.kms_provider.logger", logger)
    provider = KmsKeyProvider.generate(kms, BoringCrypto(), key_id, cache=MemoryDataKeyCache())
    provider.get_symmetric_key()
    provider.get_symmetric_key()

    events = [call.args[0] for call in logger.debug.call_args_list]
    assert events == ["kms.decrypt", "tenant.cache.hit"]
    assert logger.debug.call_args.kwargs["edk"] == edk_fingerprint(provider.edk)


def test_cache_entry_is_trusted_without_kms(key_id) -> None:
    client = MagicMock()
    cached = SymmetricKey(b"c" * 32)
    cache = MemoryDataKeyCache()
    cache.set("brng:Y2lwaGVy", cached)
    provider = KmsKeyProvider(client, BoringCrypto(), key_id, {}, "brng:Y2lwaGVy", cache)
    assert provider.get_symmetric_key() is cached
    client.decrypt.assert_not_called()


def test_failed_decrypt_does_not_populate_cache(kms, key_id) -> None:
    cache = MemoryDataKeyCache()
    provider = KmsKeyProvider.generate(kms, BoringCrypto(), key_id, {"a": "1"}, cache)
    broken = provider.with_encryption_context({"a": "2"})
    with pytest.raises(KmsError):
        broken.get_symmetric_key()
    assert len(cache) == 0


def test_copy_methods_leave_original_untouched(kms, key_id) -> None:
    original = KmsKeyProvider.generate(kms, BoringCrypto(), key_id, {"tenant": "foo"})
    cache = MemoryDataKeyCache()
    changed = (
        original.with_key_id("alias/other")
        .with_encryption_context({"tenant": "bar"})
        .with_data_key_cache(cache)
    )
    assert original.key_id == key_id
    assert dict(original.encryption_context) == {"tenant": "foo"}
    assert original.cache is None
    assert changed.key_id == "alias/other"
    assert dict(changed.encryption_context) == {"tenant": "bar"}
    assert changed.cache is cache
    assert changed.edk == original.edk


def test_encryption_context_is_read_only(kms, key_id) -> None:
    context = {"tenant": "foo"}
    provider = KmsKeyProvider(kms, BoringCrypto(), key_id, context)
    context["tenant"] = "bar"
    assert provider.encryption_context["tenant"] == "foo"
    with pytest.raises(TypeError):
        provider.encryption_context["tenant"] = "baz"  # type: ignore[index]
