"""Shared filesystem path helpers for tenant-keyring."""
from __future__ import annotations

import sys
from pathlib import Path

from platformdirs import PlatformDirs

_APP_NAME = "Tenant Keyring"
_LINUX_APP_NAME = "tenant-keyring"


def runtime_config_dir() -> Path:
    """Return the per-user runtime configuration directory."""
    if sys.platform in ("win32", "darwin"):
        dirs = PlatformDirs(appname=_APP_NAME, appauthor=None, roaming=True)
    else:
        dirs = PlatformDirs(appname=_LINUX_APP_NAME, appauthor=None, roaming=False)
    return Path(dirs.user_config_path)


def default_tenant_store_dir() -> Path:
    """Return the default directory of the file-backed tenant store."""
    return runtime_config_dir() / "tenants"


def default_local_kms_key_file() -> Path:
    """Return the master key file used by the local KMS driver."""
    return runtime_config_dir() / "local-kms.json"
