"""
multisig.types — value types shared by state components and runtime.

- address:     20-byte identities (normalization, checksum rendering)
- transaction: Transaction record
- events:      WalletEvent and event-name constants
- signature:   65-byte recoverable signature layout
"""

from .address import ZERO_ADDRESS, Address, to_address, to_checksum_address
from .events import WalletEvent
from .signature import SIGNATURE_LENGTH, Signature
from .transaction import UINT256_MAX, Transaction

__all__ = [
    "ZERO_ADDRESS",
    "Address",
    "to_address",
    "to_checksum_address",
    "WalletEvent",
    "SIGNATURE_LENGTH",
    "Signature",
    "UINT256_MAX",
    "Transaction",
]
