"""Typer-based command line interface for tenant-keyring."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Union

import typer

from .backends import backend_from_name
from .config import KeyringConfig, dump_default_config, load_config
from .core.exceptions import KeyringError
from .factory import build_kms_client, build_provider, build_tenant_store
from .logging import configure_logging
from .providers.kms_provider import KmsKeyProvider
from .version import __version__

app = typer.Typer(help="Tenant keyring command line interface")


@app.callback()
def main(ctx: typer.Context, config: Optional[Path] = typer.Option(None, "--config", metavar="PATH")) -> None:
    ctx.obj = load_config(config)
    configure_logging(ctx.obj.logging.normalized_level())


def _config(ctx: typer.Context) -> KeyringConfig:
    return ctx.find_root().obj


def _parse_context(pairs: List[str]) -> Dict[str, str]:
    context: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--context")
        context[key] = value
    return context


def _tenant_id(tenant: str, int_id: bool) -> Union[int, str]:
    if not int_id:
        return tenant
    try:
        return int(tenant)
    except ValueError:
        raise typer.BadParameter(f"'{tenant}' is not an integer", param_hint="TENANT") from None


def _key_id(key_id: Optional[str], config: KeyringConfig) -> str:
    resolved = key_id or config.kms.key_id
    if not resolved:
        typer.echo("No key id given and none configured (kms.key_id)", err=True)
        raise typer.Exit(code=2)
    return resolved


def _fail(exc: KeyringError) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=2)


@app.command()
def generate(
    ctx: typer.Context,
    key_id: Optional[str] = typer.Option(None, "--key-id", help="Master key id or ARN"),
    context: List[str] = typer.Option([], "--context", help="Encryption context entry KEY=VALUE"),
) -> None:
    """Generate a new data key and print its EDK"""
    config = _config(ctx)
    try:
        provider = KmsKeyProvider.generate(
            build_kms_client(config.kms),
            backend_from_name(config.backend),
            _key_id(key_id, config),
            _parse_context(context),
        )
    except KeyringError as exc:
        _fail(exc)
    typer.echo(provider.edk)


@app.command("create-tenant")
def create_tenant(
    ctx: typer.Context,
    tenant: str = typer.Argument(...),
    key_id: Optional[str] = typer.Option(None, "--key-id", help="Master key id or ARN"),
    context: List[str] = typer.Option([], "--context", help="Encryption context entry KEY=VALUE"),
    int_id: bool = typer.Option(False, "--int-id", help="Treat TENANT as an integer id"),
) -> None:
    """Create a tenant data key, or print the existing one"""
    config = _config(ctx)
    index = _tenant_id(tenant, int_id)
    try:
        provider = build_provider(config).create_tenant(index, _key_id(key_id, config), _parse_context(context))
    except KeyringError as exc:
        _fail(exc)
    typer.echo(json.dumps(_record(index, provider.edk, provider.key_id, provider.encryption_context), indent=2))


@app.command("show-tenant")
def show_tenant(
    ctx: typer.Context,
    tenant: str = typer.Argument(...),
    int_id: bool = typer.Option(False, "--int-id", help="Treat TENANT as an integer id"),
) -> None:
    """Print the stored record of a tenant"""
    index = _tenant_id(tenant, int_id)
    try:
        record = build_tenant_store(_config(ctx).tenant_store).lookup_tenant_data(index)
    except KeyringError as exc:
        _fail(exc)
    typer.echo(json.dumps(_record(index, record.edk, record.key_id, record.encryption_context), indent=2))


@app.command("verify-tenant")
def verify_tenant(
    ctx: typer.Context,
    tenant: str = typer.Argument(...),
    int_id: bool = typer.Option(False, "--int-id", help="Treat TENANT as an integer id"),
) -> None:
    """Unwrap a tenant's data key through the KMS"""
    index = _tenant_id(tenant, int_id)
    try:
        key = build_provider(_config(ctx)).set_active_tenant(index).get_symmetric_key()
    except KeyringError as exc:
        _fail(exc)
    typer.echo(f"OK {key.fingerprint()}")


@app.command("init-config")
def init_config(target: Path = typer.Argument(..., help="Where to write the default config")) -> None:
    dump_default_config(target)
    typer.echo(f"Default config written to {target}")


@app.command()
def version() -> None:
    typer.echo(f"tenant-keyring {__version__}")


def _record(index: Union[int, str], edk: str, key_id: str, context) -> dict:
    return {"tenant_id": index, "key_id": key_id, "encryption_context": dict(context), "edk": edk}


if __name__ == "__main__":  # pragma: no cover
    app()
