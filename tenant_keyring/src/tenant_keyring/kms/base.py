from __future__ import annotations

from typing import Any, Dict, Final, Mapping, Protocol

DATA_KEY_BYTES: Final[int] = 32
CONTEXT_HEADER: Final[str] = "CipherSweetHeader"


class KmsClient(Protocol):
    """Subset of the boto3 ``kms`` client used for envelope encryption.

    A ``boto3.client("kms")`` satisfies this protocol as-is. Every call takes
    an ``EncryptionContext`` that the service binds to the ciphertext;
    decrypting under a different context must fail.
    """

    def generate_data_key(
        self,
        *,
        KeyId: str,
        NumberOfBytes: int,
        EncryptionContext: Mapping[str, str],
    ) -> Dict[str, Any]:
        ...

    def encrypt(
        self,
        *,
        KeyId: str,
        Plaintext: bytes,
        EncryptionContext: Mapping[str, str],
    ) -> Dict[str, Any]:
        ...

    def decrypt(
        self,
        *,
        KeyId: str,
        CiphertextBlob: bytes,
        EncryptionContext: Mapping[str, str],
    ) -> Dict[str, Any]:
        ...


def bind_context(encryption_context: Mapping[str, str], prefix: str) -> Dict[str, str]:
    """Merge the backend prefix into a caller-supplied encryption context.

    The reserved header entry always wins over a caller entry of the same name.
    """
    merged = dict(encryption_context)
    merged[CONTEXT_HEADER] = prefix
    return merged
