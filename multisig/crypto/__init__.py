"""
multisig.crypto — hashing and signer recovery used by the execution gate.

- hashing: Keccak-256 (pycryptodome)
- oracle:  SignatureOracle protocol and the secp256k1 recovering implementation

Symbols are lazily re-exported from their submodules on first access so that
``multisig.types`` can depend on ``hashing`` without importing the oracle.
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "keccak256": ("hashing", "keccak256"),
    "SignatureOracle": ("oracle", "SignatureOracle"),
    "Secp256k1Oracle": ("oracle", "Secp256k1Oracle"),
    "PrivateKeySigner": ("oracle", "PrivateKeySigner"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        mod = _imp(f"{__name__}.{submod}")
        return getattr(mod, symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))
