"""
multisig.cli
------------
Command-line entrypoints for wallet owners (see ``multisig.cli.main``):

- address : derive an owner identity from a private key
- digest  : compute a transaction digest
- sign    : sign a digest
- recover : recover the signer of a signature
- config  : show the effective configuration

Usage:
  python -m multisig.cli            # runs the app
  python -m multisig.cli sign -h    # help for a subcommand
"""
from __future__ import annotations

from .main import app, main

__all__ = ["app", "main"]
