"""Configuration loading utilities for tenant-keyring."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .paths import runtime_config_dir

_LOG_LEVEL_ENV = "TENANT_KEYRING_LOG_LEVEL"


class KmsSettings(BaseModel):
    driver: Literal["aws", "local"] = Field(default="aws", description="KMS client to build: aws|local")
    key_id: Optional[str] = Field(default=None, description="Default master key id or ARN")
    region: Optional[str] = Field(default=None)
    profile: Optional[str] = Field(default=None, description="Shared credentials profile")
    endpoint_url: Optional[str] = Field(default=None, description="Override the KMS endpoint")
    master_key_file: Optional[Path] = Field(
        default=None, description="Master key file of the local driver (default: <config dir>/local-kms.json)"
    )


class CacheSettings(BaseModel):
    enabled: bool = Field(default=True, description="Cache decrypted data keys in memory")
    max_entries: int = Field(default=1024, ge=1)


class TenantStoreSettings(BaseModel):
    driver: Literal["file", "memory"] = Field(default="file")
    path: Optional[Path] = Field(default=None, description="Directory of the file store")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return os.getenv(_LOG_LEVEL_ENV, self.level).upper()


class KeyringConfig(BaseModel):
    backend: str = Field(default="boring", description="Cipher suite: boring|fips|modern")
    kms: KmsSettings = Field(default_factory=KmsSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    tenant_store: TenantStoreSettings = Field(default_factory=TenantStoreSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tenant_columns: Dict[str, str] = Field(default_factory=dict, description="table name -> tenant column")
    static_blind_index_tenant: Optional[Union[int, str]] = Field(default=None)

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"boring", "fips", "modern"}:
            raise ValueError(f"Unsupported backend '{value}'")
        return normalized


DEFAULT_CONFIG = KeyringConfig()


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    yield Path.cwd() / ".tenant_keyring" / "config.yaml"
    yield runtime_config_dir() / "config.yaml"


def load_config(path: Optional[Path] = None) -> KeyringConfig:
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            try:
                return KeyringConfig.model_validate(data)
            except ValidationError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
    return DEFAULT_CONFIG.model_copy(deep=True)


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(mode="json"), handle, sort_keys=False)
