#!/usr/bin/env python3
"""
multisig.cli.main
=================

Offline helpers for owners of a threshold wallet:

- address : derive an owner identity from a secp256k1 private key
- digest  : compute the digest owners sign for a transaction
- sign    : sign a digest, producing a 65-byte r||s||v signature
- recover : recover the signer identity of a signature over a digest
- config  : show the effective configuration (env + defaults)

By default prints a human report; use --json for machine-readable output.

Examples:
  python -m multisig.cli address --key 0x4c0883a6...
  python -m multisig.cli digest --wallet 0xWALLET --index 0 --value 10 \\
      --destination 0xDEST --payload 0x
  python -m multisig.cli sign --key 0x4c08... --digest 0x9f2a...
  python -m multisig.cli recover --digest 0x9f2a... --signature 0xab12...
"""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from multisig.config import load_config, summary
from multisig.crypto.oracle import PrivateKeySigner, Secp256k1Oracle
from multisig.errors import MultisigError, error_to_dict
from multisig.logging import configure_from_env, get_logger
from multisig.runtime.digest import transaction_digest
from multisig.types.address import to_address, to_checksum_address
from multisig.version import version_string

log = get_logger("multisig.cli")

app = typer.Typer(
    name="multisig",
    help="Keys, digests and signatures for M-of-N threshold wallets",
    no_args_is_help=True,
    add_completion=False,
)


def _die(msg: str, code: int = 1) -> None:
    sys.stderr.write(msg.rstrip() + "\n")
    raise typer.Exit(code)


def _hex_bytes(value: str, what: str) -> bytes:
    s = value.strip()
    if s.startswith(("0x", "0X")):
        s = s[2:]
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValueError(f"{what} is not valid hex") from e


def _emit(json_out: bool, payload: Dict[str, Any], title: str) -> None:
    if json_out:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    t = Table(title=title, box=box.SIMPLE)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in payload.items():
        t.add_row(k, str(v))
    Console().print(t)


def _fail(json_out: bool, err: Exception) -> None:
    if json_out:
        out: Dict[str, Any] = {"ok": False, "error": str(err)}
        if isinstance(err, MultisigError):
            out.update(error_to_dict(err))
        typer.echo(json.dumps(out, sort_keys=True))
        raise typer.Exit(1)
    _die(f"[multisig] {err}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(version_string())
        raise typer.Exit(0)


@app.callback()
def _meta(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Print version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Keys, digests and signatures for M-of-N threshold wallets."""
    configure_from_env()


@app.command("address")
def address_cmd(
    key: str = typer.Option(..., "--key", "-k", help="32-byte private key (hex)"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Derive the owner identity controlled by a private key."""
    try:
        signer = PrivateKeySigner.from_hex(key)
    except ValueError as e:
        _fail(json_out, e)
        return
    addr = to_checksum_address(signer.address)
    if json_out:
        typer.echo(json.dumps({"ok": True, "address": addr}, sort_keys=True))
        return
    typer.echo(addr)


@app.command("digest")
def digest_cmd(
    wallet: str = typer.Option(..., "--wallet", "-w", help="Wallet identity (hex)"),
    index: int = typer.Option(..., "--index", "-i", min=0, help="Transaction index"),
    value: int = typer.Option(0, "--value", min=0, help="Transaction value"),
    destination: str = typer.Option(..., "--destination", "-d", help="Destination identity (hex)"),
    payload: str = typer.Option("0x", "--payload", "-p", help="Call payload (hex)"),
    prefixed: Optional[bool] = typer.Option(
        None,
        "--prefixed/--raw",
        help="Wrap in the signed-message prefix (default: MULTISIG_SIGNED_MESSAGE_PREFIX)",
    ),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Compute the digest owners sign for a transaction."""
    try:
        if prefixed is None:
            prefixed = load_config().features.signed_message_prefix
        d = transaction_digest(
            to_address(wallet),
            index,
            value,
            _hex_bytes(payload, "payload"),
            to_address(destination),
            prefixed=prefixed,
        )
    except (ValueError, TypeError, MultisigError) as e:
        _fail(json_out, e)
        return
    log.debug("digest computed", extra={"index": index, "prefixed": prefixed})
    _emit(
        json_out,
        {"ok": True, "digest": "0x" + d.hex(), "index": index, "prefixed": prefixed},
        "Transaction digest",
    )


@app.command("sign")
def sign_cmd(
    key: str = typer.Option(..., "--key", "-k", help="32-byte private key (hex)"),
    digest: str = typer.Option(..., "--digest", help="32-byte digest (hex)"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Sign a digest; prints the 65-byte r||s||v signature."""
    try:
        signer = PrivateKeySigner.from_hex(key)
        sig = signer.sign_digest(_hex_bytes(digest, "digest"))
    except ValueError as e:
        _fail(json_out, e)
        return
    log.debug("digest signed", extra={"signer": to_checksum_address(signer.address)})
    if json_out:
        typer.echo(
            json.dumps(
                {"ok": True, "signature": "0x" + sig.hex(), "signer": to_checksum_address(signer.address)},
                sort_keys=True,
            )
        )
        return
    typer.echo("0x" + sig.hex())


@app.command("recover")
def recover_cmd(
    digest: str = typer.Option(..., "--digest", help="32-byte digest (hex)"),
    signature: str = typer.Option(..., "--signature", "-s", help="65-byte signature (hex)"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Recover the identity that produced a signature."""
    try:
        signer = Secp256k1Oracle().recover(_hex_bytes(digest, "digest"), signature)
    except (ValueError, MultisigError) as e:
        _fail(json_out, e)
        return
    addr = to_checksum_address(signer)
    log.debug("signer recovered", extra={"signer": addr})
    if json_out:
        typer.echo(json.dumps({"ok": True, "signer": addr}, sort_keys=True))
        return
    typer.echo(addr)


@app.command("config")
def config_cmd(
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Show the effective configuration."""
    try:
        cfg = load_config()
    except MultisigError as e:
        _fail(json_out, e)
        return
    if json_out:
        typer.echo(json.dumps(cfg.to_dict(), indent=2, sort_keys=True))
        return
    t = Table(title=summary(cfg), box=box.SIMPLE)
    t.add_column("Setting")
    t.add_column("Value", justify="right")
    t.add_row("signed_message_prefix", str(cfg.features.signed_message_prefix))
    t.add_row("enforce_quorum_on_removal", str(cfg.features.enforce_quorum_on_removal))
    t.add_row("max_payload_bytes", str(cfg.limits.max_payload_bytes))
    t.add_row("max_signatures", str(cfg.limits.max_signatures))
    t.add_row("events_path", str(cfg.events_path or "-"))
    Console().print(t)


def main() -> None:  # pragma: no cover - console entrypoint
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
