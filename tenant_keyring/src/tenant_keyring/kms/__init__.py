from __future__ import annotations

from .aws import call_kms, create_kms_client
from .base import CONTEXT_HEADER, DATA_KEY_BYTES, KmsClient, bind_context
from .local import LocalKms

__all__ = [
    "CONTEXT_HEADER",
    "DATA_KEY_BYTES",
    "KmsClient",
    "LocalKms",
    "bind_context",
    "call_kms",
    "create_kms_client",
]
