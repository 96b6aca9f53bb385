# -*- coding: utf-8 -*-
"""
multisig.tests.conftest
=======================

Shared fixtures for the wallet test-suite.

- Deterministic secp256k1 keys derived from SHA3 tags (no RNG), so identities and
  signatures are stable across runs.
- A `make_wallet` factory building a wallet over an in-memory value host and an
  in-memory event sink, with default configuration unless overridden.
- `sign` helper producing an ordered signature bundle for a transaction index.

Usage (inside a test file):
    def test_flow(wallet, people, sign):
        i = wallet.submit_transaction(people["alice"].address, DEST, 0)
        wallet.approve_transaction(people["alice"].address, i)
        wallet.approve_transaction(people["bob"].address, i)
        wallet.execute_transaction(people["alice"].address, i, sign(wallet, i, "alice", "bob"))
"""
from __future__ import annotations

import hashlib
import logging
import os
from typing import Callable, Dict, Iterator, List, Optional, Sequence

import pytest

from multisig.config import WalletConfig, load_config
from multisig.crypto.oracle import PrivateKeySigner
from multisig.runtime.calls import InMemoryValueHost
from multisig.runtime.wallet import MultisigWallet
from multisig.state.events import EventSink, InMemoryEventSink

# Keep the suite independent of a developer's shell configuration.
for _var in (
    "MULTISIG_SIGNED_MESSAGE_PREFIX",
    "MULTISIG_ENFORCE_QUORUM_ON_REMOVAL",
    "MULTISIG_MAX_PAYLOAD_BYTES",
    "MULTISIG_MAX_SIGNATURES",
    "MULTISIG_EVENTS_PATH",
    "MULTISIG_LOG_LEVEL",
    "MULTISIG_LOG_FORMAT",
    "MULTISIG_GIT_DESCRIBE",
):
    os.environ.pop(_var, None)

NAMES = ("alice", "bob", "carol", "dave", "erin", "mallory", "admin")

WALLET_ADDRESS = bytes.fromhex("5a11e7" + "00" * 16 + "01")
DESTINATION = bytes.fromhex("de57" + "00" * 17 + "42")
FUNDING = 1_000_000


def derive_key(label: str) -> bytes:
    """32-byte secp256k1 secret derived from a tag (valid with overwhelming probability)."""
    return hashlib.sha3_256(b"multisig-tests|" + label.encode("utf-8")).digest()


@pytest.fixture(scope="session")
def people() -> Dict[str, PrivateKeySigner]:
    return {name: PrivateKeySigner(derive_key(name)) for name in NAMES}


@pytest.fixture
def config() -> WalletConfig:
    return load_config(env={})


@pytest.fixture
def make_wallet(people: Dict[str, PrivateKeySigner]) -> Iterator[Callable[..., MultisigWallet]]:
    """
    Build a funded wallet:

        make_wallet(owners=("alice", "bob", "carol"), threshold=2, **config_overrides)
    """
    created: List[MultisigWallet] = []

    def _make(
        owners: Sequence[str] = ("alice", "bob", "carol"),
        threshold: int = 2,
        *,
        funding: int = FUNDING,
        host: Optional[InMemoryValueHost] = None,
        sink: Optional[EventSink] = None,
        **overrides: object,
    ) -> MultisigWallet:
        cfg = load_config(env={}, overrides=overrides or None)  # type: ignore[arg-type]
        host = host if host is not None else InMemoryValueHost()
        w = MultisigWallet(
            [people[o].address for o in owners],
            threshold,
            administrator=people["admin"].address,
            address=WALLET_ADDRESS,
            host=host,
            sink=sink if sink is not None else InMemoryEventSink(),
            config=cfg,
        )
        if funding:
            w.deposit(people["admin"].address, funding)
        created.append(w)
        return w

    yield _make
    for w in created:
        w.close()


@pytest.fixture
def wallet(make_wallet: Callable[..., MultisigWallet]) -> MultisigWallet:
    """2-of-3 wallet owned by alice, bob and carol."""
    return make_wallet()


@pytest.fixture
def sign(people: Dict[str, PrivateKeySigner]) -> Callable[..., List[bytes]]:
    def _sign(wallet: MultisigWallet, index: int, *names: str) -> List[bytes]:
        d = wallet.digest(index)
        return [people[n].sign_digest(d) for n in names]

    return _sign


@pytest.fixture
def addr(people: Dict[str, PrivateKeySigner]) -> Callable[[str], bytes]:
    return lambda name: people[name].address


@pytest.fixture(autouse=True)
def _reset_multisig_logging() -> Iterator[None]:
    """Drop handlers installed by `configure()` (CLI runs, logging tests)."""
    yield
    root = logging.getLogger("multisig")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(logging.NOTSET)
