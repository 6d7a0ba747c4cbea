from pathlib import Path

import pytest
import yaml

from tenant_keyring.backends import FIPSCrypto
from tenant_keyring.cache import MemoryDataKeyCache
from tenant_keyring.config import DEFAULT_CONFIG, KeyringConfig, dump_default_config, load_config
from tenant_keyring.core.exceptions import ConfigurationError
from tenant_keyring.factory import build_kms_client, build_provider, build_tenant_store
from tenant_keyring.kms.local import LocalKms
from tenant_keyring.tenants import FileTenantStore, MemoryTenantStore


def test_defaults() -> None:
    config = KeyringConfig()
    assert config.backend == "boring"
    assert config.kms.driver == "aws"
    assert config.cache.enabled is True
    assert config.tenant_store.driver == "file"
    assert config.static_blind_index_tenant is None


def test_load_explicit_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "backend": "FIPS",
                "kms": {"driver": "local", "key_id": "alias/app"},
                "tenant_columns": {"users": "tenant_id"},
                "static_blind_index_tenant": 0,
            }
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.backend == "fips"
    assert config.kms.key_id == "alias/app"
    assert config.tenant_columns == {"users": "tenant_id"}
    assert config.static_blind_index_tenant == 0


def test_invalid_yaml_names_the_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("backend: rot13\n", encoding="utf-8")
    with pytest.raises(ValueError, match="config.yaml"):
        load_config(path)


def test_missing_config_falls_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("tenant_keyring.config.runtime_config_dir", lambda: tmp_path / "nowhere")
    config = load_config()
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_dump_default_config_round_trips(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "config.yaml"
    dump_default_config(target)
    assert load_config(target) == DEFAULT_CONFIG


def test_log_level_env_override(monkeypatch) -> None:
    monkeypatch.setenv("TENANT_KEYRING_LOG_LEVEL", "debug")
    assert KeyringConfig().logging.normalized_level() == "DEBUG"


def test_build_drivers(tmp_path: Path) -> None:
    config = KeyringConfig.model_validate(
        {
            "kms": {"driver": "local", "master_key_file": str(tmp_path / "kms.json")},
            "tenant_store": {"driver": "file", "path": str(tmp_path)},
        }
    )
    client = build_kms_client(config.kms)
    assert isinstance(client, LocalKms)
    assert client.key_file == tmp_path / "kms.json"
    assert isinstance(build_tenant_store(config.tenant_store), FileTenantStore)


def test_build_provider_applies_config(kms) -> None:
    config = KeyringConfig.model_validate(
        {
            "backend": "fips",
            "cache": {"max_entries": 4},
            "tenant_store": {"driver": "memory"},
            "tenant_columns": {"users": "tenant_id"},
            "static_blind_index_tenant": "search",
        }
    )
    provider = build_provider(config, kms_client=kms)
    assert isinstance(provider.get_backend(), FIPSCrypto)
    assert provider.kms_client is kms
    assert isinstance(provider.edk_lookup, MemoryTenantStore)
    assert isinstance(provider.cache, MemoryDataKeyCache)
    assert provider.get_static_blind_index_tenant() == "search"
    assert provider.get_tenant_from_row({"tenant_id": "foo"}, "users") == "foo"


def test_build_provider_without_cache(kms) -> None:
    config = KeyringConfig.model_validate({"cache": {"enabled": False}, "tenant_store": {"driver": "memory"}})
    assert build_provider(config, kms_client=kms).cache is None


def test_unknown_driver_is_configuration_error() -> None:
    settings = KeyringConfig().kms.model_copy(update={"driver": "vault"})
    with pytest.raises(ConfigurationError):
        build_kms_client(settings)


def test_local_driver_defaults_to_config_dir_key_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("tenant_keyring.paths.runtime_config_dir", lambda: tmp_path)
    client = build_kms_client(KeyringConfig.model_validate({"kms": {"driver": "local"}}).kms)
    assert client.key_file == tmp_path / "local-kms.json"
