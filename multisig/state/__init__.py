"""
multisig.state — wallet state components (owners, ledger, approvals, journal, events).

Common symbols are lazily re-exported from their submodules on first access.

Submodules
----------
- journal:   nested checkpoints with undo records and staged events
- owners:    OwnerRegistry (owner set, ordered list, fixed threshold)
- ledger:    TransactionLedger (append-only, index-addressed)
- approvals: ApprovalBook (per-(tx, owner) bits and running counts)
- events:    event sink backends
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "Journal": ("journal", "Journal"),
    "OwnerRegistry": ("owners", "OwnerRegistry"),
    "TransactionLedger": ("ledger", "TransactionLedger"),
    "ApprovalBook": ("approvals", "ApprovalBook"),
    "EventRecord": ("events", "EventRecord"),
    "EventSink": ("events", "EventSink"),
    "InMemoryEventSink": ("events", "InMemoryEventSink"),
    "JsonlEventSink": ("events", "JsonlEventSink"),
    "NullEventSink": ("events", "NullEventSink"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    """
    Lazy attribute loader to avoid import-time dependency tangles.
    """
    if name in _exports:
        submod, symbol = _exports[name]
        mod = _imp(f"{__name__}.{submod}")
        return getattr(mod, symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))
