"""CLI entry point."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import typer
from cryptography.hazmat.primitives import serialization
from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from compactjwt import codec
from compactjwt.algorithms import Family, hash_available
from compactjwt.claims import Claims, format_numeric_time, numeric_time
from compactjwt.engine import default_engine
from compactjwt.errors import TokenError
from compactjwt.logging_config import configure_logging
from compactjwt.settings import settings
from compactjwt.validators import (
    audiences_validator,
    id_validator,
    issuer_validator,
    subject_validator,
    time_validator,
    validate_fields,
)

app = typer.Typer(name="compactjwt", help="Sign, verify and inspect compact JWTs")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
) -> None:
    """Configure logging before any command runs."""
    config = settings
    if verbose:
        config = settings.model_copy(update={"log_enabled": True, "log_level": "DEBUG"})
    configure_logging(config)


def _load_key(path: Path, private: bool) -> Any:
    data = path.read_bytes()
    if private:
        return serialization.load_pem_private_key(data, password=None)
    try:
        return serialization.load_pem_public_key(data)
    except ValueError:
        return serialization.load_pem_private_key(data, password=None)


def _resolve_key(secret: str | None, key: Path | None, private: bool) -> Any:
    if (secret is None) == (key is None):
        console.print("[red]Give exactly one of --secret or --key[/red]")
        raise typer.Exit(code=2)
    if secret is not None:
        return secret.encode("utf-8")
    try:
        return _load_key(key, private)
    except (OSError, ValueError, TypeError) as e:
        console.print(f"[red]Cannot load key {key}:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)


def _parse_claim(item: str) -> tuple[str, Any]:
    name, sep, value = item.partition("=")
    if not sep or not name:
        raise typer.BadParameter(f"expected name=value, got {item!r}", param_hint="--claim")
    try:
        return name, json.loads(value)
    except ValueError:
        return name, value


@app.command()
def sign(
    alg: str = typer.Option(settings.default_algorithm, "--alg", help="Algorithm name"),
    secret: str | None = typer.Option(
        None, help="HMAC secret", envvar="COMPACTJWT_SECRET"
    ),
    key: Path | None = typer.Option(None, help="PEM private key (RSA or EC)"),
    iss: str | None = typer.Option(None, help="Issuer claim"),
    sub: str | None = typer.Option(None, help="Subject claim"),
    aud: list[str] | None = typer.Option(None, help="Audience (repeatable)"),
    jti: str | None = typer.Option(None, help="Token ID claim"),
    expires_in: int | None = typer.Option(None, help="Seconds until expiry"),
    not_before_in: int | None = typer.Option(None, help="Seconds until valid"),
    issued_at: bool = typer.Option(False, "--iat", help="Add issued-at claim"),
    claim: list[str] | None = typer.Option(None, help="Extra claim name=json (repeatable)"),
) -> None:
    """Sign a claims set and print the token.

    Examples:
        compactjwt sign --alg HS256 --secret s3cret --sub user-123 --expires-in 3600
        compactjwt sign --alg ES256 --key ec-private.pem --aud api --claim 'scope=["read"]'
    """
    signing_key = _resolve_key(secret, key, private=True)
    now = datetime.now(timezone.utc)

    claims = Claims(issuer=iss, subject=sub, id=jti)
    if aud:
        claims.audience = aud[0] if len(aud) == 1 else list(aud)
    if expires_in is not None:
        claims.expires = numeric_time(now + timedelta(seconds=expires_in))
    if not_before_in is not None:
        claims.not_before = numeric_time(now + timedelta(seconds=not_before_in))
    if issued_at:
        claims.issued = numeric_time(now)
    for item in claim or []:
        name, value = _parse_claim(item)
        claims.claim_set[name] = value

    try:
        token = default_engine().sign(claims, alg, signing_key)
    except TokenError as e:
        console.print(f"[red]Sign failed ({e.code}):[/red] {escape(e.message)}")
        raise typer.Exit(code=1)
    except TypeError as e:
        console.print(f"[red]Sign failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    typer.echo(token)


@app.command()
def verify(
    token: str = typer.Argument(..., help="Compact token"),
    family: Family = typer.Option(Family.HMAC, help="Accepted signature family"),
    secret: str | None = typer.Option(
        None, help="HMAC secret", envvar="COMPACTJWT_SECRET"
    ),
    key: Path | None = typer.Option(None, help="PEM public key (RSA or EC)"),
    iss: str | None = typer.Option(None, help="Required issuer"),
    sub: str | None = typer.Option(None, help="Required subject"),
    aud: list[str] | None = typer.Option(None, help="Required audience set (repeatable)"),
    jti: str | None = typer.Option(None, help="Required token ID"),
    check_time: bool = typer.Option(True, help="Reject expired or not-yet-valid tokens"),
) -> None:
    """Verify a token and print its claims.

    Exit code 1 on any rejection.

    Examples:
        compactjwt verify "$TOKEN" --secret s3cret --sub user-123
        compactjwt verify "$TOKEN" --family ecdsa --key ec-public.pem --aud api
    """
    verifying_key = _resolve_key(secret, key, private=False)

    validators = []
    if iss is not None:
        validators.append(issuer_validator(iss))
    if sub is not None:
        validators.append(subject_validator(sub))
    if aud:
        validators.append(audiences_validator(aud))
    if jti is not None:
        validators.append(id_validator(jti))
    if check_time:
        validators.append(time_validator(datetime.now(timezone.utc)))

    try:
        claims = default_engine().verify(token, family, verifying_key)
        validate_fields(claims, *validators)
    except TokenError as e:
        console.print(f"[red]Rejected ({e.code}):[/red] {escape(e.message)}")
        raise typer.Exit(code=1)

    console.print(JSON(json.dumps(claims.to_mapping())))


@app.command()
def inspect(token: str = typer.Argument(..., help="Compact token")) -> None:
    """Show header and payload WITHOUT checking the signature."""
    try:
        header_seg, payload_seg, _ = codec.split(token)
        header = codec.parse_header(header_seg)
        payload = codec.parse_json_object(codec.decode_segment(payload_seg))
    except TokenError as e:
        console.print(f"[red]Malformed ({e.code}):[/red] {escape(e.message)}")
        raise typer.Exit(code=1)

    console.print("[yellow]UNVERIFIED: signature not checked[/yellow]")
    console.print(Panel(JSON(json.dumps(header)), title="header"))
    console.print(Panel(JSON(json.dumps(payload)), title="payload"))

    for name in ("iat", "nbf", "exp"):
        value = payload.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            console.print(f"[dim]{name}:[/dim] {format_numeric_time(float(value))}")


@app.command()
def algorithms() -> None:
    """List the configured algorithms."""
    table = Table(title="Algorithms")
    table.add_column("Name", style="cyan")
    table.add_column("Family")
    table.add_column("Hash")
    table.add_column("Available")

    for algorithm in default_engine().registry:
        available = "yes" if hash_available(algorithm.hash) else "[red]no[/red]"
        table.add_row(algorithm.name, algorithm.family.value, algorithm.hash.name, available)

    console.print(table)


if __name__ == "__main__":
    app()
