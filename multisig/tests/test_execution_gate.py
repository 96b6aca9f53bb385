# -*- coding: utf-8 -*-
"""
Execution gate — approvals + signature bundle → exactly one execution.

Scenarios (2-of-3: alice, bob, carol):
  A  one approval only → InsufficientNumApprovals
  B  two approvals + two valid signatures → executes once; second call rejected
  C  two signatures recovering to the same signer back to back → SigManipulationDetected
  D  removed owner keeps the approval bit, but their signature no longer counts

Also:
  • check precedence (owner → exists → executed → approvals → sig count)
  • signatures from non-owners / non-approvers are ignored
  • malformed bundle entries abort the call
  • the non-adjacent repeat [A, B, A] is not detected (known limitation)
  • bundle length limit
"""

from __future__ import annotations

import pytest

from multisig.errors import (InsufficientNumApprovals,
                             InsufficientSignatureCount,
                             InsufficientValidSignatureCount, InvalidInput,
                             InvalidTransaction, MalformedSignature, NotOwner,
                             SigManipulationDetected,
                             TransactionAlreadyExecuted)
from multisig.types.events import TRANSACTION_EXECUTED

from .conftest import DESTINATION, FUNDING


def _approved_tx(wallet, addr, *names, value=0, payload=b""):
    i = wallet.submit_transaction(addr("alice"), DESTINATION, value, payload)
    for n in names:
        wallet.approve_transaction(addr(n), i)
    return i


# ----------------------------- scenarios ------------------------------------


def test_scenario_a_single_approval_is_insufficient(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice")
    with pytest.raises(InsufficientNumApprovals) as ei:
        wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "bob"))
    assert ei.value.data == {"approvals": 1, "threshold": 2}
    assert wallet.get_transaction(i).executed is False


def test_scenario_b_executes_exactly_once(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob", value=250, payload=b"\xca\xfe")
    sigs = sign(wallet, i, "alice", "bob")

    result = wallet.execute_transaction(addr("carol"), i, sigs)
    assert result.success
    assert wallet.get_transaction(i).executed is True
    assert wallet.balance() == FUNDING - 250
    assert wallet.host.balance_of(DESTINATION) == 250
    assert wallet.host.calls == [(wallet.address, DESTINATION, 250, b"\xca\xfe")]

    (rec,) = wallet.events.get_events(name=TRANSACTION_EXECUTED)
    assert rec.args == {
        "owner": addr("carol"),
        "index": i,
        "destination": DESTINATION,
        "value": 250,
        "payload": b"\xca\xfe",
    }

    with pytest.raises(TransactionAlreadyExecuted):
        wallet.execute_transaction(addr("carol"), i, sigs)
    assert wallet.balance() == FUNDING - 250
    assert len(wallet.host.calls) == 1


def test_scenario_c_adjacent_duplicate_signer(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    sig_a = sign(wallet, i, "alice")[0]
    with pytest.raises(SigManipulationDetected) as ei:
        wallet.execute_transaction(addr("alice"), i, [sig_a, sig_a])
    assert ei.value.data["position"] == 1
    assert ei.value.data["signer"] == "0x" + addr("alice").hex()
    assert wallet.get_transaction(i).executed is False


def test_scenario_d_removed_owner_signature_not_counted(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    wallet.remove_owner(addr("admin"), addr("bob"))
    assert wallet.get_transaction(i).approvals_count == 2
    assert wallet.approved(i, addr("bob"))

    with pytest.raises(InsufficientValidSignatureCount) as ei:
        wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "bob"))
    assert ei.value.data == {"valid": 1, "threshold": 2}

    # carol approves; the pre-check counts bob's stale bit, signatures do not
    wallet.approve_transaction(addr("carol"), i)
    wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "carol"))
    assert wallet.get_transaction(i).executed is True


# ----------------------------- precedence -----------------------------------


def test_non_owner_cannot_execute(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    with pytest.raises(NotOwner):
        wallet.execute_transaction(addr("mallory"), i, sign(wallet, i, "alice", "bob"))


def test_execute_unknown_index(wallet, addr):
    with pytest.raises(InvalidTransaction):
        wallet.execute_transaction(addr("alice"), 0, [])


def test_approval_count_checked_before_signature_count(wallet, addr):
    i = _approved_tx(wallet, addr, "alice")
    with pytest.raises(InsufficientNumApprovals):
        wallet.execute_transaction(addr("alice"), i, [])


def test_too_few_signatures(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    with pytest.raises(InsufficientSignatureCount) as ei:
        wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice"))
    assert ei.value.data == {"supplied": 1, "threshold": 2}


def test_bundle_over_limit(make_wallet, addr, sign):
    w = make_wallet(max_signatures=2)
    i = _approved_tx(w, addr, "alice", "bob")
    with pytest.raises(InvalidInput):
        w.execute_transaction(addr("alice"), i, sign(w, i, "alice", "bob", "carol"))
    assert w.get_transaction(i).executed is False


# ----------------------------- signature validity ----------------------------


def test_non_approver_signature_not_counted(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    with pytest.raises(InsufficientValidSignatureCount):
        wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "alice", "carol"))


def test_outsider_signatures_are_ignored(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    sigs = sign(wallet, i, "mallory", "alice", "dave", "bob")
    wallet.execute_transaction(addr("alice"), i, sigs)
    assert wallet.get_transaction(i).executed is True


def test_signature_over_other_transaction_not_counted(wallet, addr, sign):
    i0 = _approved_tx(wallet, addr, "alice", "bob")
    i1 = _approved_tx(wallet, addr, "alice", "bob")
    with pytest.raises(InsufficientValidSignatureCount):
        wallet.execute_transaction(addr("alice"), i1, sign(wallet, i0, "alice", "bob"))


def test_signature_order_is_free(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    wallet.execute_transaction(addr("alice"), i, sign(wallet, i, "bob", "alice"))
    assert wallet.get_transaction(i).executed is True


def test_hex_signatures_are_accepted(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    sigs = ["0x" + s.hex() for s in sign(wallet, i, "alice", "bob")]
    wallet.execute_transaction(addr("alice"), i, sigs)
    assert wallet.get_transaction(i).executed is True


def test_zero_one_recovery_discriminant_is_normalized(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    sigs = [s[:64] + bytes([s[64] - 27]) for s in sign(wallet, i, "alice", "bob")]
    wallet.execute_transaction(addr("alice"), i, sigs)
    assert wallet.get_transaction(i).executed is True


@pytest.mark.parametrize(
    "mangle",
    [
        lambda s: s[:64],                                  # short
        lambda s: s + b"\x00",                             # long
        lambda s: s[:64] + b"\x05",                        # bad v
        lambda s: b"\x00" * 32 + s[32:],                   # r == 0
        lambda s: s[:32] + b"\x00" * 32 + s[64:],          # s == 0
        lambda s: b"\xff" * 32 + s[32:],                   # r >= n
    ],
)
def test_malformed_signature_aborts(wallet, addr, sign, mangle):
    i = _approved_tx(wallet, addr, "alice", "bob")
    good = sign(wallet, i, "alice", "bob")
    bundle = [good[0], mangle(good[1])]
    with pytest.raises(MalformedSignature) as ei:
        wallet.execute_transaction(addr("alice"), i, bundle)
    assert ei.value.data["position"] == 1
    assert wallet.get_transaction(i).executed is False


def test_non_hex_signature_text_is_malformed(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    with pytest.raises(MalformedSignature):
        wallet.execute_transaction(addr("alice"), i, ["0xnothex", "0x00"])


# ----------------------------- known limitation ------------------------------


def test_non_adjacent_repeat_counts_twice(make_wallet, addr, sign):
    # 3-of-3: alice's signature is supplied twice around bob's, carol never signs
    w = make_wallet(threshold=3)
    i = _approved_tx(w, addr, "alice", "bob", "carol")
    sig_a, sig_b = sign(w, i, "alice", "bob")
    w.execute_transaction(addr("alice"), i, [sig_a, sig_b, sig_a])
    assert w.get_transaction(i).executed is True


def test_adjacent_repeat_after_other_signer_still_detected(wallet, addr, sign):
    i = _approved_tx(wallet, addr, "alice", "bob")
    sig_a, sig_b = sign(wallet, i, "alice", "bob")
    with pytest.raises(SigManipulationDetected) as ei:
        wallet.execute_transaction(addr("alice"), i, [sig_a, sig_b, sig_b])
    assert ei.value.data["position"] == 2


def test_repeat_of_outsider_signature_is_detected(wallet, addr, sign):
    # previous signer is tracked even for signatures that do not count
    i = _approved_tx(wallet, addr, "alice", "bob")
    sig_m = sign(wallet, i, "mallory")[0]
    sig_a, sig_b = sign(wallet, i, "alice", "bob")
    with pytest.raises(SigManipulationDetected):
        wallet.execute_transaction(addr("alice"), i, [sig_m, sig_m, sig_a, sig_b])


# ----------------------------- digest --------------------------------------


def test_prefixed_digest_mode(make_wallet, addr, sign):
    plain = make_wallet()
    prefixed = make_wallet(signed_message_prefix=True)
    for w in (plain, prefixed):
        _approved_tx(w, addr, "alice", "bob")
    assert plain.digest(0) != prefixed.digest(0)

    # signatures over the plain digest do not authorize the prefixed wallet
    plain_sigs = sign(plain, 0, "alice", "bob")
    with pytest.raises(InsufficientValidSignatureCount):
        prefixed.execute_transaction(addr("alice"), 0, plain_sigs)
    prefixed.execute_transaction(addr("alice"), 0, sign(prefixed, 0, "alice", "bob"))
    assert prefixed.get_transaction(0).executed is True
