"""
sshca Command Line

Commands:
    - sshca keygen --algorithm RSA_4096 --out ca_key
    - sshca pubkey ca_key
    - sshca serial
    - sshca sign --ca-key ca_key --public-key id.pub --template tpl.yaml ...
    - sshca cleanup --older-than 1h
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from sshca import __version__
from sshca.backends import get_backend
from sshca.backends.base import write_key_file
from sshca.config import SSHCAConfig
from sshca.constants import SECRET_FILE_MODE
from sshca.duration import duration_to_seconds
from sshca.exceptions import SSHCAError
from sshca.keys import KeyPairGenerator, PublicKeyDeriver
from sshca.models import CertificateRequest, CertificateTemplate, CertType, KeyAlgorithm
from sshca.serial import SerialNumberGenerator
from sshca.signer import CertificateSigner
from sshca.workspace import purge_stale_workspaces

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _fail(ctx: click.Context, exc: Exception) -> None:
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}", soft_wrap=True)
    ctx.exit(1)


def _output_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.version_option(__version__, prog_name="sshca")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """SSH certificate authority: generate CA keys and issue certificates."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )
    try:
        if config_path:
            ctx.obj = SSHCAConfig.from_yaml(config_path)
        else:
            ctx.obj = SSHCAConfig.from_env()
    except SSHCAError as exc:
        _fail(ctx, exc)


@cli.command("keygen")
@click.option(
    "--algorithm", "-a",
    type=click.Choice([a.value for a in KeyAlgorithm]),
    default=KeyAlgorithm.RSA_2048.value,
    show_default=True,
    help="Key algorithm.",
)
@click.option("--comment", "-C", default="", help="Public key comment.")
@click.option(
    "--out", "-o", "out_path",
    type=click.Path(dir_okay=False, writable=True),
    required=True,
    help="Private key path; the public key is written to <out>.pub.",
)
@click.option("--json", "json_flag", is_flag=True, help="Output as JSON.")
@click.pass_context
def keygen(ctx: click.Context, algorithm: str, comment: str, out_path: str, json_flag: bool) -> None:
    """Generate a CA key pair."""
    config: SSHCAConfig = ctx.obj
    try:
        generator = KeyPairGenerator(get_backend(config), work_dir=config.work_dir)
        key_pair = generator.generate(algorithm, comment)
    except SSHCAError as exc:
        _fail(ctx, exc)
        return

    private_path = Path(out_path)
    public_path = private_path.with_name(private_path.name + ".pub")
    write_key_file(private_path, key_pair.private_key.get_secret_value(), SECRET_FILE_MODE)
    write_key_file(public_path, key_pair.public_key, 0o644)

    if json_flag:
        _output_json({
            "algorithm": algorithm,
            "private_key_path": str(private_path),
            "public_key_path": str(public_path),
            "public_key": key_pair.public_key.strip(),
        })
        return
    console.print(f"[green]✓[/green] Wrote {private_path} and {public_path}")
    click.echo(key_pair.public_key.strip())


@cli.command("pubkey")
@click.argument("private_key", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def pubkey(ctx: click.Context, private_key: str) -> None:
    """Print the public key of a private key file."""
    config: SSHCAConfig = ctx.obj
    try:
        deriver = PublicKeyDeriver(get_backend(config), work_dir=config.work_dir)
        public_key = deriver.derive(Path(private_key).read_text(encoding="utf-8"))
    except SSHCAError as exc:
        _fail(ctx, exc)
        return
    click.echo(public_key.strip())


@cli.command("serial")
@click.option("--count", "-n", type=click.IntRange(min=1), default=1, help="Number of serials.")
def serial(count: int) -> None:
    """Print fresh certificate serial numbers."""
    generator = SerialNumberGenerator()
    for _ in range(count):
        click.echo(generator.next())


@cli.command("sign")
@click.option("--ca-key", type=click.Path(exists=True, dir_okay=False), required=True,
              help="CA private key file.")
@click.option("--public-key", type=click.Path(exists=True, dir_okay=False), required=True,
              help="Requester public key file.")
@click.option("--template", "template_path", type=click.Path(exists=True, dir_okay=False),
              required=True, help="Certificate template YAML file.")
@click.option("--type", "cert_type", type=click.Choice([t.value for t in CertType]),
              default=CertType.USER.value, show_default=True, help="Certificate type.")
@click.option("--principal", "-n", "principals", multiple=True, required=True,
              help="Principal (repeatable).")
@click.option("--key-id", "-I", default=None, help="Certificate identity (default: first principal).")
@click.option("--ttl", default=None, help="Requested TTL, e.g. 1h (default: template TTL).")
@click.option("--out", "-o", "out_path", type=click.Path(dir_okay=False, writable=True),
              default=None, help="Write the certificate to this file.")
@click.option("--json", "json_flag", is_flag=True, help="Output as JSON.")
@click.pass_context
def sign(
    ctx: click.Context,
    ca_key: str,
    public_key: str,
    template_path: str,
    cert_type: str,
    principals: tuple[str, ...],
    key_id: Optional[str],
    ttl: Optional[str],
    out_path: Optional[str],
    json_flag: bool,
) -> None:
    """Sign a public key after checking it against a template."""
    config: SSHCAConfig = ctx.obj
    try:
        template = CertificateTemplate.from_yaml(template_path)
        request = CertificateRequest(
            cert_type=cert_type,
            principals=list(principals),
            requested_ttl=ttl,
            key_id=key_id or principals[0],
            public_key=Path(public_key).read_text(encoding="utf-8"),
        )
        signer = CertificateSigner(get_backend(config), work_dir=config.work_dir)
        signed = signer.issue(template, Path(ca_key).read_text(encoding="utf-8"), request)
    except (SSHCAError, ValidationError) as exc:
        _fail(ctx, exc)
        return

    if out_path:
        Path(out_path).write_text(signed.signed_public_key, encoding="utf-8")

    if json_flag:
        _output_json(signed.model_dump())
    elif out_path:
        console.print(f"[green]✓[/green] Serial {signed.serial_number} written to {out_path}")
    else:
        click.echo(signed.signed_public_key.strip())


@cli.command("cleanup")
@click.option("--older-than", default=None,
              help="Only purge workspaces older than this duration (default from config).")
@click.pass_context
def cleanup(ctx: click.Context, older_than: Optional[str]) -> None:
    """Remove transient workspaces left behind by crashed processes."""
    config: SSHCAConfig = ctx.obj
    try:
        max_age = duration_to_seconds(older_than) if older_than else config.stale_workspace_seconds
    except SSHCAError as exc:
        _fail(ctx, exc)
        return
    removed = purge_stale_workspaces(config.work_dir, max_age)
    console.print(f"Removed {len(removed)} stale workspace(s)")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
