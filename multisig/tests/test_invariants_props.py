# -*- coding: utf-8 -*-
"""
Property tests — random operation sequences preserve the bookkeeping invariants.

For any interleaving of approve / revoke / owner churn (valid or not):
  • approvals_count[tx] == |{o : approved[tx][o]}|
  • the threshold never changes
  • failed operations leave state unchanged
  • owners() has no duplicates and agrees with is_owner()

The sequences never execute, so no signing is needed and examples stay fast.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from multisig.config import load_config
from multisig.errors import MultisigError
from multisig.runtime.wallet import MultisigWallet
from multisig.state.events import NullEventSink

IDS: List[bytes] = [bytes([0xA0 + i]) * 20 for i in range(6)]
ADMIN = b"\xad" * 20
DEST = b"\xde" * 20
N_TXS = 3

op_strategy = st.one_of(
    st.tuples(st.just("approve"), st.sampled_from(IDS), st.integers(0, N_TXS)),
    st.tuples(st.just("revoke"), st.sampled_from(IDS), st.integers(0, N_TXS)),
    st.tuples(st.just("add"), st.sampled_from(IDS), st.just(0)),
    st.tuples(st.just("remove"), st.sampled_from(IDS), st.just(0)),
)


def _snapshot(w: MultisigWallet) -> Tuple:
    txs = tuple(
        (w.get_transaction(i).approvals_count, w.get_transaction(i).executed)
        for i in range(w.transaction_count())
    )
    bits = tuple(w.approved(i, o) for i in range(w.transaction_count()) for o in IDS)
    return (frozenset(w.owners()), txs, bits)


def _true_bits(w: MultisigWallet, index: int) -> int:
    return sum(1 for o in IDS if w.approved(index, o))


@settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(
    threshold=st.integers(1, 3),
    ops=st.lists(op_strategy, min_size=1, max_size=40),
)
def test_approval_count_matches_bits(threshold, ops):
    w = MultisigWallet(
        IDS[:3],
        threshold,
        administrator=ADMIN,
        sink=NullEventSink(),
        config=load_config(env={}),
    )
    for _ in range(N_TXS):
        w.submit_transaction(IDS[0], DEST, 0)

    outcomes: Dict[str, int] = {"ok": 0, "rejected": 0}
    for kind, who, index in ops:
        before = _snapshot(w)
        try:
            if kind == "approve":
                w.approve_transaction(who, index)
            elif kind == "revoke":
                w.revoke_approval(who, index)
            elif kind == "add":
                w.add_owner(ADMIN, who)
            else:
                w.remove_owner(ADMIN, who)
            outcomes["ok"] += 1
        except MultisigError:
            outcomes["rejected"] += 1
            assert _snapshot(w) == before

        for i in range(w.transaction_count()):
            assert w.get_transaction(i).approvals_count == _true_bits(w, i)
        owners = w.owners()
        assert len(owners) == len(set(owners))
        assert all(w.is_owner(o) for o in owners)
        assert all(not w.is_owner(o) for o in IDS if o not in owners)
        assert w.threshold == threshold

    assert outcomes["ok"] + outcomes["rejected"] == len(ops)


@settings(max_examples=40, deadline=None)
@given(who=st.sampled_from(IDS[:3]), repeats=st.integers(1, 5))
def test_approve_revoke_round_trip_restores_count(who, repeats):
    w = MultisigWallet(IDS[:3], 2, administrator=ADMIN, sink=NullEventSink(), config=load_config(env={}))
    i = w.submit_transaction(IDS[0], DEST, 0)
    w.approve_transaction(IDS[1] if who != IDS[1] else IDS[2], i)
    base = w.get_transaction(i).approvals_count
    for _ in range(repeats):
        w.approve_transaction(who, i)
        assert w.get_transaction(i).approvals_count == base + 1
        w.revoke_approval(who, i)
        assert w.get_transaction(i).approvals_count == base
        assert not w.approved(i, who)
