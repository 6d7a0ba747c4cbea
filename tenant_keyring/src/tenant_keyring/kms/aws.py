"""AWS KMS access through boto3.

Expects AWS credentials available in environment, shared profile or
instance role.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..core.exceptions import KmsError

if TYPE_CHECKING:
    from ..config import KmsSettings
    from .base import KmsClient

logger = structlog.get_logger(__name__)

_OPERATIONS = frozenset({"generate_data_key", "encrypt", "decrypt"})


def create_kms_client(settings: "KmsSettings") -> "KmsClient":
    session = boto3.session.Session(profile_name=settings.profile) if settings.profile else boto3
    logger.debug("kms.client.create", region=settings.region, profile=settings.profile)
    return session.client("kms", region_name=settings.region, endpoint_url=settings.endpoint_url)


def call_kms(client: "KmsClient", operation: str, **params: Any) -> Dict[str, Any]:
    """Invoke ``operation`` on ``client``, folding botocore failures into ``KmsError``"""
    if operation not in _OPERATIONS:
        raise ValueError(f"Unsupported KMS operation: {operation}")
    try:
        return getattr(client, operation)(**params)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code", "Unknown")
        logger.warning("kms.call.failed", operation=operation, key_id=params.get("KeyId"), code=code)
        raise KmsError(f"KMS {operation} failed: {code}") from exc
    except BotoCoreError as exc:
        logger.warning("kms.call.failed", operation=operation, key_id=params.get("KeyId"), code="transport")
        raise KmsError(f"KMS {operation} failed: {exc}") from exc
