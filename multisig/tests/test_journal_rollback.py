# -*- coding: utf-8 -*-
"""
Atomic rollback — journal checkpoints, failed external calls, reentrancy.

The journal is checked on its own first (nested begin/commit/revert, staged events),
then through the wallet: a failed destination call must undo the executed flag and
every event of the operation, and a reentrant execute started by the destination
must observe `executed=True` and be rejected.
"""

from __future__ import annotations

import pytest

from multisig.errors import (EventPublishFailed, ExternalCallFailed,
                             MultisigError, TransactionAlreadyExecuted)
from multisig.runtime.calls import CallResult
from multisig.state.events import InMemoryEventSink, JsonlEventSink
from multisig.state.journal import Journal
from multisig.types.events import (OWNER_ADDITION, TRANSACTION_EXECUTED,
                                   WalletEvent)

from .conftest import DESTINATION, FUNDING

# =============================================================================
# Journal unit behaviour
# =============================================================================


class _Cell:
    def __init__(self, journal: Journal, value: int = 0) -> None:
        self.journal = journal
        self.value = value

    def set(self, v: int) -> None:
        prev = self.value
        self.value = v

        def undo() -> None:
            self.value = prev

        self.journal.record(undo)


def _ev(n: int) -> WalletEvent:
    return WalletEvent(OWNER_ADDITION, {"owner": bytes([n]) * 20})


def test_revert_restores_in_reverse_order():
    j = Journal()
    c = _Cell(j, 1)
    j.begin()
    c.set(2)
    c.set(3)
    c.set(4)
    j.revert()
    assert c.value == 1
    assert j.depth() == 0


def test_nested_commit_then_outer_revert():
    published = []
    j = Journal(publish=published.extend)
    c = _Cell(j, 0)
    j.begin()
    c.set(1)
    j.emit(_ev(1))
    j.begin()
    c.set(2)
    j.emit(_ev(2))
    j.commit()  # merged into the outer checkpoint, nothing published yet
    assert published == []
    assert len(j.staged_events()) == 2
    j.revert()
    assert c.value == 0
    assert published == []


def test_inner_revert_keeps_outer_writes():
    published = []
    j = Journal(publish=published.extend)
    c = _Cell(j, 0)
    j.begin()
    c.set(1)
    j.emit(_ev(1))
    j.begin()
    c.set(2)
    j.emit(_ev(2))
    j.revert()
    assert c.value == 1
    j.commit()
    assert c.value == 1
    assert published == [_ev(1)]


def test_atomic_context_manager():
    published = []
    j = Journal(publish=published.extend)
    c = _Cell(j, 0)
    with j.atomic():
        c.set(5)
        j.emit(_ev(5))
    assert c.value == 5
    assert published == [_ev(5)]

    with pytest.raises(RuntimeError):
        with j.atomic():
            c.set(6)
            j.emit(_ev(6))
            raise RuntimeError("boom")
    assert c.value == 5
    assert published == [_ev(5)]
    assert j.depth() == 0


def test_writes_outside_checkpoint_are_final():
    published = []
    j = Journal(publish=published.extend)
    c = _Cell(j, 0)
    c.set(9)
    j.emit(_ev(9))
    assert published == [_ev(9)]
    with pytest.raises(RuntimeError):
        j.revert()
    with pytest.raises(RuntimeError):
        j.commit()
    assert c.value == 9


def test_publish_failure_reverts_outermost_checkpoint():
    def refuse(events):
        raise OSError("disk full")

    j = Journal(publish=refuse)
    c = _Cell(j, 0)
    with pytest.raises(OSError):
        with j.atomic():
            c.set(7)
            j.emit(_ev(7))
    assert c.value == 0
    assert j.depth() == 0

    # nothing staged, nothing to publish: the checkpoint commits
    with j.atomic():
        c.set(8)
    assert c.value == 8


# =============================================================================
# Wallet-level rollback
# =============================================================================


def _ready(wallet, addr, value=0, payload=b""):
    i = wallet.submit_transaction(addr("alice"), DESTINATION, value, payload)
    wallet.approve_transaction(addr("alice"), i)
    wallet.approve_transaction(addr("bob"), i)
    return i


def test_failed_handler_rolls_back_execution(wallet, addr, sign):
    def reject(payload, value, host):
        raise RuntimeError("destination refused")

    wallet.host.register(DESTINATION, reject)
    i = _ready(wallet, addr, value=10, payload=b"\x01")
    events_before = len(wallet.events.get_events())

    with pytest.raises(ExternalCallFailed) as ei:
        wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "bob"))
    assert "destination refused" in ei.value.data["reason"]

    tx = wallet.get_transaction(i)
    assert tx.executed is False
    assert tx.approvals_count == 2
    assert wallet.balance() == FUNDING
    assert wallet.host.balance_of(DESTINATION) == 0
    assert len(wallet.events.get_events()) == events_before
    assert wallet.events.get_events(name=TRANSACTION_EXECUTED) == []

    # once the destination accepts, the same signatures execute it
    wallet.host.register(DESTINATION, lambda payload, value, host: b"ok")
    result = wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "bob"))
    assert result.return_data == b"ok"
    assert wallet.get_transaction(i).executed is True


def test_insufficient_funds_is_a_failed_call(make_wallet, addr, sign):
    w = make_wallet(funding=5)
    i = _ready(w, addr, value=6)
    with pytest.raises(ExternalCallFailed):
        w.execute_transaction(addr("alice"), i, sign(w, i, "alice", "bob"))
    assert w.get_transaction(i).executed is False
    assert w.balance() == 5


def test_custom_boundary_reporting_failure(make_wallet, addr, sign):
    class Refusing:
        def call(self, sender, destination, value, payload):
            return CallResult.failed("nope", b"\xde\xad")

        def balance_of(self, address):
            return 0

        def credit(self, address, amount):
            return amount

    w = make_wallet(funding=0, host=Refusing())
    i = _ready(w, addr)
    with pytest.raises(ExternalCallFailed) as ei:
        w.execute_transaction(addr("alice"), i, sign(w, i, "alice", "bob"))
    assert ei.value.data["reason"] == "nope"
    assert ei.value.data["return_data"] == "0xdead"
    assert w.get_transaction(i).executed is False


def test_reentrant_execute_is_rejected(wallet, addr, sign):
    i = _ready(wallet, addr, value=100)
    sigs = sign(wallet, i, "alice", "bob")
    seen = []

    def reenter(payload, value, host):
        assert wallet.get_transaction(i).executed is True
        try:
            wallet.execute_transaction(addr("bob"), i, sigs)
        except MultisigError as e:
            seen.append(e)
        return b""

    wallet.host.register(DESTINATION, reenter)
    wallet.execute_transaction(addr("alice"), i, sigs)

    assert len(seen) == 1
    assert isinstance(seen[0], TransactionAlreadyExecuted)
    assert wallet.balance() == FUNDING - 100
    assert len(wallet.events.get_events(name=TRANSACTION_EXECUTED)) == 1


def test_reentrant_state_changes_commit_with_outer_operation(wallet, addr, sign):
    i = _ready(wallet, addr)
    j = wallet.submit_transaction(addr("alice"), DESTINATION, 0)

    def approve_other(payload, value, host):
        wallet.approve_transaction(addr("carol"), j)
        return b""

    wallet.host.register(DESTINATION, approve_other)
    wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "bob"))
    assert wallet.approved(j, addr("carol"))
    names = [r.name for r in wallet.events.get_events()]
    # the nested approval is published inside the outer operation, before its own event
    assert names[-2:] == ["TransactionApproval", TRANSACTION_EXECUTED]


def test_reentrant_changes_undone_when_outer_call_fails(wallet, addr, sign):
    i = _ready(wallet, addr)
    j = wallet.submit_transaction(addr("alice"), DESTINATION, 0)

    def approve_then_fail(payload, value, host):
        wallet.approve_transaction(addr("carol"), j)
        raise RuntimeError("late failure")

    wallet.host.register(DESTINATION, approve_then_fail)
    with pytest.raises(ExternalCallFailed):
        wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "bob"))
    assert not wallet.approved(j, addr("carol"))
    assert wallet.get_transaction(j).approvals_count == 0
    assert wallet.get_transaction(i).executed is False


def test_failed_owner_mutation_leaves_no_trace(wallet, addr):
    before = wallet.owners()
    with pytest.raises(MultisigError):
        wallet.replace_owner(addr("admin"), addr("alice"), addr("carol"))
    assert wallet.owners() == before
    assert [r.name for r in wallet.events.get_events()] == ["Deposit"]


# =============================================================================
# Event sink failures
# =============================================================================


class _RefusingSink(InMemoryEventSink):
    def __init__(self, refuse: str) -> None:
        super().__init__()
        self.refuse = refuse

    def append(self, event, *, wallet):
        if event.name == self.refuse:
            raise OSError(f"cannot store {event.name}")
        return super().append(event, wallet=wallet)


def test_closed_jsonl_sink_rejects_submit_without_effect(make_wallet, addr, tmp_path):
    sink = JsonlEventSink(str(tmp_path / "events.jsonl"))
    w = make_wallet(funding=0, sink=sink)
    w.close()
    with pytest.raises(EventPublishFailed) as ei:
        w.submit_transaction(addr("alice"), DESTINATION, 0)
    assert ei.value.data["event"] == "TransactionSubmitted"
    assert w.transaction_count() == 0


def test_sink_failure_on_execute_undoes_transfer(make_wallet, addr, sign):
    w = make_wallet(sink=_RefusingSink(TRANSACTION_EXECUTED))
    i = _ready(w, addr, value=40)
    with pytest.raises(EventPublishFailed):
        w.execute_transaction(addr("alice"), i, sign(w, i, "alice", "bob"))
    assert w.get_transaction(i).executed is False
    assert w.balance() == FUNDING
    assert w.host.balance_of(DESTINATION) == 0
    assert w.host.calls == []


def test_sink_failure_on_deposit_undoes_credit(make_wallet, addr):
    w = make_wallet(funding=0, sink=_RefusingSink("Deposit"))
    with pytest.raises(EventPublishFailed):
        w.deposit(addr("dave"), 500)
    assert w.balance() == 0
