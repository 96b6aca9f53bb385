"""
multisig.state.journal — nested checkpoints with undo records and staged events.

Every public wallet operation runs inside a checkpoint. State components record an
*undo* callback for each write they perform and stage the events they want to emit.
`commit()` merges the top checkpoint into its parent; committing the outermost
checkpoint publishes its staged events (a publisher that raises reverts the
checkpoint instead). `revert()` runs the top checkpoint's undo
callbacks in reverse order and drops its events, so a failed operation leaves no
observable effect.

Key properties
--------------
- Pure Python, no I/O (publishing is delegated to a callback).
- Nested checkpoints: a reentrant operation started from inside the external call
  boundary opens a child checkpoint and can be reverted without touching the parent.
- Writes outside any checkpoint apply immediately and cannot be undone.

Intended usage
--------------
    j = Journal(publish=sink_writer)
    with j.atomic():
        registry.add(owner)          # records undo + stages OwnerAddition
        ...                          # an exception here reverts everything above
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence

from ..types.events import WalletEvent

UndoFn = Callable[[], None]
PublishFn = Callable[[Sequence[WalletEvent]], None]


# =============================================================================
# Checkpoint model
# =============================================================================


@dataclass
class _Checkpoint:
    """
    A single journal layer.

    - `undo`: callbacks restoring the state before each write, in write order.
    - `events`: events staged in this layer, in emission order.
    """

    undo: List[UndoFn] = field(default_factory=list)
    events: List[WalletEvent] = field(default_factory=list)


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    Undo journal with nested checkpoints.

    Parameters
    ----------
    publish : callable, optional
        Receives the events of an outermost checkpoint once it commits (and single
        events emitted outside any checkpoint).
    """

    def __init__(self, publish: Optional[PublishFn] = None) -> None:
        self._publish = publish
        self._layers: List[_Checkpoint] = []

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Open a checkpoint. Returns the new depth marker."""
        self._layers.append(_Checkpoint())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top checkpoint into its parent, or publish if it is the outermost."""
        if not self._layers:
            raise RuntimeError("commit() without an open checkpoint")
        if len(self._layers) > 1:
            top = self._layers.pop()
            parent = self._layers[-1]
            parent.undo.extend(top.undo)
            parent.events.extend(top.events)
            return
        # The outermost layer stays open until its events are out; a publish
        # failure reverts the writes it covers.
        top = self._layers[-1]
        if top.events and self._publish is not None:
            try:
                self._publish(list(top.events))
            except BaseException:
                self.revert()
                raise
        self._layers.pop()

    def revert(self) -> None:
        """Undo every write of the top checkpoint (newest first) and drop its events."""
        if not self._layers:
            raise RuntimeError("revert() without an open checkpoint")
        top = self._layers.pop()
        for fn in reversed(top.undo):
            fn()

    @contextmanager
    def atomic(self) -> Iterator[int]:
        """Run a block inside a checkpoint: commit on success, revert on any exception."""
        marker = self.begin()
        try:
            yield marker
        except BaseException:
            self.revert()
            raise
        self.commit()

    # --------------------------------------------------------------------- #
    # Recording
    # --------------------------------------------------------------------- #

    def record(self, undo: UndoFn) -> None:
        """Register the inverse of a write that has just been applied."""
        if self._layers:
            self._layers[-1].undo.append(undo)

    def emit(self, event: WalletEvent) -> None:
        """Stage an event in the top checkpoint (publish right away when idle)."""
        if self._layers:
            self._layers[-1].events.append(event)
        elif self._publish is not None:
            self._publish([event])

    def staged_events(self) -> List[WalletEvent]:
        """Events staged across all open checkpoints, oldest first (debug aid)."""
        out: List[WalletEvent] = []
        for layer in self._layers:
            out.extend(layer.events)
        return out


__all__ = ["Journal", "UndoFn", "PublishFn"]
