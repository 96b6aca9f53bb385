"""
multisig.state.events — pluggable sinks for wallet events.

Events reach a sink only after the operation that emitted them commits (see
state.journal). Three backends ship here:

- InMemoryEventSink: keeps all records in RAM; handy for tests and tooling.
- JsonlEventSink: append-only JSONL file; durable and simple to operate.
- NullEventSink: drops everything.

Each stored record carries the emitting wallet's identity and a sequence number that
strictly increases per sink in publication order.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from ..types.events import WalletEvent

# =============================================================================
# Utilities
# =============================================================================


def _b2h(b: bytes) -> str:
    return "0x" + b.hex()


def _h2b(h: str) -> bytes:
    if not isinstance(h, str):
        raise TypeError("expected hex string")
    if h.startswith("0x") or h.startswith("0X"):
        h = h[2:]
    return bytes.fromhex(h)


# =============================================================================
# Public data model
# =============================================================================


@dataclass(frozen=True)
class EventRecord:
    """
    A published event with its origin.

    Fields
    ------
    wallet : bytes
        Identity of the wallet that emitted the event.
    sequence : int
        0-based position of the record in its sink.
    event : WalletEvent
        Name and arguments.
    """

    wallet: bytes
    sequence: int
    event: WalletEvent

    @property
    def name(self) -> str:
        return self.event.name

    @property
    def args(self) -> Any:
        return self.event.args

    def to_dict(self) -> Dict[str, Any]:
        d = self.event.to_dict()
        return {"wallet": _b2h(self.wallet), "seq": self.sequence, **d}


# =============================================================================
# Sink interface
# =============================================================================


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: WalletEvent, *, wallet: bytes) -> EventRecord:
        """Append a single event. Returns the stored record."""

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        wallet: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in publication order."""

    def flush(self) -> None:
        """Force persistence, if applicable."""

    def close(self) -> None:
        """Release resources (files, buffers)."""


def _record_matches(rec: EventRecord, name: Optional[str], wallet: Optional[bytes]) -> bool:
    if name is not None and rec.event.name != name:
        return False
    if wallet is not None and rec.wallet != wallet:
        return False
    return True


# =============================================================================
# In-memory sink
# =============================================================================


class InMemoryEventSink(EventSink):
    """A simple, thread-safe in-memory sink."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def append(self, event: WalletEvent, *, wallet: bytes) -> EventRecord:
        with self._lock:
            rec = EventRecord(wallet=wallet, sequence=len(self._records), event=event)
            self._records.append(rec)
        return rec

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        wallet: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            matching = [r for r in self._records if _record_matches(r, name, wallet)]
        return matching if limit is None else matching[:limit]

    def names(self) -> List[str]:
        """Event names in publication order."""
        with self._lock:
            return [r.event.name for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> None:
        return

    def close(self) -> None:
        with self._lock:
            self._records.clear()


# =============================================================================
# JSONL sink (durable)
# =============================================================================


class JsonlEventSink(EventSink):
    """
    Append-only JSONL sink. Each line is one EventRecord:

        {"wallet": "0x…", "seq": 3, "name": "TransactionApproval",
         "args": {"owner": "0x…", "index": 0}}

    Reopening an existing file continues its sequence numbering.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._fh = open(path, "a+", encoding="utf-8", buffering=1)  # line-buffered
        self._lock = threading.RLock()
        self._log = logging.getLogger(__name__)
        self._fh.seek(0)
        self._next_seq = sum(1 for line in self._fh if line.strip())
        self._fh.seek(0, os.SEEK_END)

    @staticmethod
    def _encode(rec: EventRecord) -> str:
        return json.dumps(rec.to_dict(), separators=(",", ":"))

    @staticmethod
    def _decode(line: str) -> EventRecord:
        obj = json.loads(line)
        return EventRecord(
            wallet=_h2b(obj["wallet"]),
            sequence=int(obj["seq"]),
            event=WalletEvent.from_dict(obj),
        )

    def append(self, event: WalletEvent, *, wallet: bytes) -> EventRecord:
        with self._lock:
            rec = EventRecord(wallet=wallet, sequence=self._next_seq, event=event)
            self._fh.write(self._encode(rec) + "\n")
            self._next_seq += 1
        return rec

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        wallet: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        out: List[EventRecord] = []
        with self._lock:
            self._fh.flush()
            self._fh.seek(0)
            for line in self._fh:
                if not line.strip():
                    continue
                try:
                    rec = self._decode(line)
                except (ValueError, KeyError, TypeError) as e:
                    self._log.warning("Skipping malformed event line: %s (%r)", line[:120], e)
                    continue
                if _record_matches(rec, name, wallet):
                    out.append(rec)
                    if limit is not None and len(out) >= limit:
                        break
            self._fh.seek(0, os.SEEK_END)
        return out

    def flush(self) -> None:
        with self._lock:
            self._fh.flush()
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.flush()
                self._fh.close()


# =============================================================================
# Null sink
# =============================================================================


class NullEventSink(EventSink):
    """A sink that drops everything."""

    def append(self, event: WalletEvent, *, wallet: bytes) -> EventRecord:
        return EventRecord(wallet=wallet, sequence=0, event=event)

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        wallet: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        return []

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


__all__ = [
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
]
