"""In-process KMS for local development and tests.

Holds one AES-256-GCM master key per key id and performs envelope
encryption of data keys with the same call shape as the boto3 ``kms``
client. The key id and encryption context are bound as associated data,
so decrypting under a different context fails the way a real KMS does.

With ``key_file`` set, master keys live in a JSON file
(``{"keys": {key_id: b64url key}}``, mode 0600) that is read on first use
and extended under a file lock when a key id is auto-created, so separate
processes sharing the file unwrap each other's data keys.

Ciphertext blob layout: ``nonce (12 bytes) || ciphertext || tag (16 bytes)``.
"""
from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from filelock import FileLock

from ..core.exceptions import KmsError
from ..utils import b64d, b64e

logger = structlog.get_logger(__name__)

NONCE_SIZE = 12
MASTER_KEY_SIZE = 32


def _associated_data(key_id: str, encryption_context: Mapping[str, str]) -> bytes:
    payload = {"KeyId": key_id, "EncryptionContext": dict(encryption_context)}
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


class LocalKms:
    def __init__(
        self,
        master_keys: Optional[Mapping[str, bytes]] = None,
        *,
        auto_create: bool = True,
        key_file: Optional[Union[Path, str]] = None,
    ) -> None:
        self._master_keys: Dict[str, bytes] = {}
        self._auto_create = auto_create
        self._lock = threading.Lock()
        self.key_file = Path(key_file) if key_file is not None else None
        self._file_lock = FileLock(str(self.key_file) + ".lock") if self.key_file is not None else None
        for key_id, key in (master_keys or {}).items():
            self.add_master_key(key_id, key)

    def add_master_key(self, key_id: str, key: Optional[bytes] = None) -> None:
        material = key if key is not None else AESGCM.generate_key(bit_length=256)
        if len(material) != MASTER_KEY_SIZE:
            raise ValueError("Master key must be 32 bytes")
        with self._lock:
            self._master_keys[key_id] = bytes(material)

    def _master(self, key_id: str) -> AESGCM:
        with self._lock:
            key = self._master_keys.get(key_id)
            if key is None and self.key_file is not None:
                key = self._load_or_create_persisted(key_id)
            if key is None:
                if not self._auto_create:
                    raise KmsError(f"NotFoundException: unknown key id {key_id}")
                key = AESGCM.generate_key(bit_length=256)
                self._master_keys[key_id] = key
                logger.info("kms.local.master_key.created", key_id=key_id)
        return AESGCM(key)

    def _load_or_create_persisted(self, key_id: str) -> Optional[bytes]:
        with self._file_lock:
            stored = self._read_key_file()
            for stored_id, material in stored.items():
                self._master_keys.setdefault(stored_id, material)
            key = self._master_keys.get(key_id)
            if key is not None or not self._auto_create:
                return key
            key = AESGCM.generate_key(bit_length=256)
            stored[key_id] = key
            self._write_key_file(stored)
            self._master_keys[key_id] = key
        logger.info("kms.local.master_key.created", key_id=key_id, key_file=str(self.key_file))
        return key

    def _read_key_file(self) -> Dict[str, bytes]:
        if not self.key_file.exists():
            return {}
        try:
            data = json.loads(self.key_file.read_text(encoding="utf-8"))
            keys = {key_id: b64d(value) for key_id, value in data.get("keys", {}).items()}
        except ValueError as exc:
            raise KmsError(f"Master key file {self.key_file} is unreadable: {exc}") from exc
        for key_id, material in keys.items():
            if len(material) != MASTER_KEY_SIZE:
                raise KmsError(f"Master key {key_id} in {self.key_file} is not 32 bytes")
        return keys

    def _write_key_file(self, keys: Mapping[str, bytes]) -> None:
        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        payload = {"keys": {key_id: b64e(material) for key_id, material in keys.items()}}
        fd, tmp = tempfile.mkstemp(dir=self.key_file.parent, prefix=self.key_file.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.key_file)
        except BaseException:
            os.unlink(tmp)
            raise

    def _wrap(self, key_id: str, plaintext: bytes, encryption_context: Mapping[str, str]) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        ct = self._master(key_id).encrypt(nonce, plaintext, _associated_data(key_id, encryption_context))
        return nonce + ct

    def generate_data_key(
        self,
        *,
        KeyId: str,
        NumberOfBytes: int = 32,
        EncryptionContext: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        if not 1 <= NumberOfBytes <= 1024:
            raise KmsError("ValidationException: NumberOfBytes must be between 1 and 1024")
        plaintext = os.urandom(NumberOfBytes)
        blob = self._wrap(KeyId, plaintext, EncryptionContext or {})
        return {"KeyId": KeyId, "Plaintext": plaintext, "CiphertextBlob": blob}

    def encrypt(
        self,
        *,
        KeyId: str,
        Plaintext: bytes,
        EncryptionContext: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        if not Plaintext:
            raise KmsError("ValidationException: Plaintext must be non-empty")
        blob = self._wrap(KeyId, Plaintext, EncryptionContext or {})
        return {"KeyId": KeyId, "CiphertextBlob": blob}

    def decrypt(
        self,
        *,
        KeyId: str,
        CiphertextBlob: bytes,
        EncryptionContext: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        if len(CiphertextBlob) <= NONCE_SIZE:
            raise KmsError("InvalidCiphertextException: ciphertext blob is too short")
        nonce, ct = CiphertextBlob[:NONCE_SIZE], CiphertextBlob[NONCE_SIZE:]
        try:
            plaintext = self._master(KeyId).decrypt(nonce, ct, _associated_data(KeyId, EncryptionContext or {}))
        except InvalidTag as exc:
            raise KmsError("InvalidCiphertextException: ciphertext or encryption context mismatch") from exc
        return {"KeyId": KeyId, "Plaintext": plaintext}
