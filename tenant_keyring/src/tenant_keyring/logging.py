"""Structured logging setup for tenant-keyring."""
from __future__ import annotations

import logging
import sys
from typing import Dict

import structlog

from .edk import edk_fingerprint
from .keys import SymmetricKey

_DEFAULT_LEVEL = "info"

# Fields that may carry plaintext key material; dropped outright.
_SECRET_FIELDS = frozenset({"Plaintext", "plaintext", "raw_key", "key", "data_key"})
# Fields that may carry a full EDK or wrapped blob; replaced with a fingerprint.
_EDK_FIELDS = frozenset({"edk", "CiphertextBlob", "ciphertext_blob"})
_REDACTED = "[redacted]"


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for the application.

    The configuration emits JSON lines with the keys ``level``, ``ts``, ``msg`` and
    ``component`` while still preserving any additional context supplied by callers.
    Records pass through :func:`redact_key_material` before rendering, so a
    stray data key or EDK in a log call never reaches the output.
    """

    log_level = (level or _DEFAULT_LEVEL).lower()
    numeric_level = _level_from_str(log_level)

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(sys.stderr)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _component_processor,
            redact_key_material,
            _rename_event_to_msg,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _component_processor(
    logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Ensure every log record carries a ``component`` field."""

    component = event_dict.get("component")
    if component is None:
        logger_name = getattr(logger, "name", None) or "tenant_keyring"
        event_dict["component"] = logger_name
    return event_dict


def redact_key_material(
    _logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Strip key material from a log record.

    Secret fields are replaced with ``[redacted]``. EDK fields are reduced to
    :func:`~tenant_keyring.edk.edk_fingerprint` unless they already hold one.
    Any ``bytes`` value or :class:`SymmetricKey` is treated as key material
    whatever its field name.
    """

    for field, value in list(event_dict.items()):
        if isinstance(value, SymmetricKey):
            event_dict[field] = value.fingerprint()
        elif field in _SECRET_FIELDS or isinstance(value, (bytes, bytearray, memoryview)):
            event_dict[field] = _REDACTED
        elif field in _EDK_FIELDS and isinstance(value, str) and not _is_fingerprint(value):
            event_dict[field] = edk_fingerprint(value)
    return event_dict


def _is_fingerprint(value: str) -> bool:
    return len(value) == 12 and all(c in "0123456789abcdef" for c in value)


def _rename_event_to_msg(
    _logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Normalize the event field to ``msg`` for downstream consumers."""

    if "msg" not in event_dict:
        event = event_dict.pop("event", "")
        event_dict["msg"] = event
    return event_dict


def _level_from_str(level: str) -> int:
    mapping: Dict[str, int] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
    }
    return mapping.get(level, logging.INFO)


__all__ = ["configure_logging", "redact_key_material"]
