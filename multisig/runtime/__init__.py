"""
multisig.runtime — operation orchestration over the state components.

Submodules (thin overview)
--------------------------
- guards : composable preconditions (administrator/owner/existence/status checks)
- digest : canonical transaction digest
- calls  : external call boundary protocol + in-memory value host
- gate   : ExecutionGate (approvals + signature bundle → single execution)
- wallet : MultisigWallet facade exposing every public operation

Re-exports
----------
    from multisig.runtime import MultisigWallet, InMemoryValueHost

These are lazily loaded; importing this package does not import the crypto
backend until the attributes are first accessed.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Tuple

__all__ = (
    "guards",
    "digest",
    "calls",
    "gate",
    "wallet",
)

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "MultisigWallet": ("wallet", "MultisigWallet"),
    "ExecutionGate": ("gate", "ExecutionGate"),
    "InMemoryValueHost": ("calls", "InMemoryValueHost"),
    "CallResult": ("calls", "CallResult"),
    "transaction_digest": ("digest", "transaction_digest"),
}


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    if name in __all__:
        return import_module(f".{name}", __name__)
    target = _EXPORTS.get(name)
    if target:
        mod, attr = target
        return getattr(import_module(f".{mod}", __name__), attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(__all__) + list(_EXPORTS))
