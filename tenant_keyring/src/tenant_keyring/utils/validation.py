"""Validation helpers for tenant identifiers."""
from __future__ import annotations

from typing import Type, Union

from ..core.exceptions import TypeMismatchError

TenantId = Union[str, int]


def is_tenant_id(value: object) -> bool:
    """Return ``True`` for ``str`` and ``int`` values, excluding ``bool``."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int))


def ensure_tenant_id(value: object, *, error: Type[Exception] = TypeMismatchError) -> TenantId:
    """Validate a tenant identifier.

    Parameters
    ----------
    value:
        Candidate tenant id.
    error:
        Exception class raised when ``value`` is not a string or integer.

    Returns
    -------
    str | int
        ``value`` unchanged.
    """

    if not is_tenant_id(value):
        raise error(f"Tenant id must be a string or integer, got {type(value).__name__}")
    return value  # type: ignore[return-value]
