from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tenant_keyring.backends import BoringCrypto, FIPSCrypto
from tenant_keyring.kms.local import LocalKms

KEY_ID = "alias/tenant-keyring-test"


@pytest.fixture
def kms() -> LocalKms:
    return LocalKms()


@pytest.fixture
def spy_kms(kms: LocalKms) -> MagicMock:
    """LocalKms wrapped so tests can count KMS round trips"""
    return MagicMock(wraps=kms)


@pytest.fixture(params=[BoringCrypto(), FIPSCrypto()], ids=["boring", "fips"])
def backend(request):
    return request.param


@pytest.fixture
def key_id() -> str:
    return KEY_ID
