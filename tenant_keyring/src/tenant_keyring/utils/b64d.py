import base64
import binascii
import re

_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


def b64d(value: str) -> bytes:
    """URL-safe base64 decode that tolerates missing padding"""
    if not _URLSAFE_ALPHABET.fullmatch(value):
        raise ValueError("Value is not unpadded URL-safe base64")
    pad = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode((value + pad).encode("ascii"))
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 length: {exc}") from exc
