"""
multisig.errors — typed failures of the threshold-authorization engine.

Every public wallet operation either completes or raises exactly one of the
exceptions below, after the journal has rolled back all of its effects. Calling code
and tests assert on the *class* (or the stable ``code`` string), never on messages.

Hierarchy
---------
MultisigError (base)
 ├─ AuthorizationError
 │   ├─ NotOwner                        : caller is not a wallet owner
 │   └─ NotAdministrator                : caller is not the privileged administrator
 ├─ StateError
 │   ├─ OwnerAlreadyExists
 │   ├─ OwnerDoesntExist
 │   ├─ InvalidTransaction              : index outside the allocated range
 │   ├─ TransactionAlreadyApproved
 │   ├─ TransactionAlreadyExecuted
 │   ├─ TransactionNotApproved
 │   ├─ InsufficientNumApprovals
 │   └─ QuorumUnreachable               : opt-in removal guard (see config)
 ├─ SignatureError
 │   ├─ InsufficientSignatureCount
 │   ├─ SigManipulationDetected         : adjacent duplicate recovered signer
 │   ├─ InsufficientValidSignatureCount
 │   └─ MalformedSignature              : oracle could not recover a signer
 ├─ ExternalCallFailed                  : destination call reported failure
 ├─ EventPublishFailed                  : the event sink rejected the operation's events
 ├─ InvalidInput                        : malformed argument at the API boundary
 └─ InvalidConfiguration                : bad construction parameters

These classes import nothing from the rest of the package so they can be raised from
any layer (oracle, state components, runtime) without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _hex(x: Optional[bytes]) -> Optional[str]:
    if x is None:
        return None
    return "0x" + bytes(x).hex()


@dataclass
class MultisigError(Exception):
    """
    Base wallet error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'NOT_OWNER').
        data:    Optional structured details (kept JSON-serializable).
    """

    message: str = "multisig error"
    code: str = "MULTISIG_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _details(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


# -------- authorization ------------------------------------------------------


class AuthorizationError(MultisigError):
    """Caller lacks the role an operation requires."""


class NotOwner(AuthorizationError):
    def __init__(self, caller: Optional[bytes] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="caller is not a wallet owner",
            code="NOT_OWNER",
            data=_details(data, caller=_hex(caller)),
        )


class NotAdministrator(AuthorizationError):
    def __init__(self, caller: Optional[bytes] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="caller is not the administrator",
            code="NOT_ADMINISTRATOR",
            data=_details(data, caller=_hex(caller)),
        )


# -------- state consistency --------------------------------------------------


class StateError(MultisigError):
    """An operation's precondition on owner set or ledger state does not hold."""


class OwnerAlreadyExists(StateError):
    def __init__(self, owner: Optional[bytes] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="owner already exists",
            code="OWNER_ALREADY_EXISTS",
            data=_details(data, owner=_hex(owner)),
        )


class OwnerDoesntExist(StateError):
    def __init__(self, owner: Optional[bytes] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="owner does not exist",
            code="OWNER_DOESNT_EXIST",
            data=_details(data, owner=_hex(owner)),
        )


class InvalidTransaction(StateError):
    def __init__(
        self,
        index: Optional[int] = None,
        *,
        length: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="transaction does not exist",
            code="INVALID_TRANSACTION",
            data=_details(data, index=index, length=length),
        )


class TransactionAlreadyApproved(StateError):
    def __init__(
        self,
        index: Optional[int] = None,
        owner: Optional[bytes] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="transaction already approved by caller",
            code="TRANSACTION_ALREADY_APPROVED",
            data=_details(data, index=index, owner=_hex(owner)),
        )


class TransactionAlreadyExecuted(StateError):
    def __init__(self, index: Optional[int] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="transaction already executed",
            code="TRANSACTION_ALREADY_EXECUTED",
            data=_details(data, index=index),
        )


class TransactionNotApproved(StateError):
    def __init__(
        self,
        index: Optional[int] = None,
        owner: Optional[bytes] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="transaction not approved by caller",
            code="TRANSACTION_NOT_APPROVED",
            data=_details(data, index=index, owner=_hex(owner)),
        )


class InsufficientNumApprovals(StateError):
    def __init__(
        self,
        approvals: Optional[int] = None,
        threshold: Optional[int] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="not enough approvals recorded",
            code="INSUFFICIENT_NUM_APPROVALS",
            data=_details(data, approvals=approvals, threshold=threshold),
        )


class QuorumUnreachable(StateError):
    def __init__(
        self,
        owners: Optional[int] = None,
        threshold: Optional[int] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="removal would leave fewer owners than the threshold",
            code="QUORUM_UNREACHABLE",
            data=_details(data, owners=owners, threshold=threshold),
        )


# -------- signatures ---------------------------------------------------------


class SignatureError(MultisigError):
    """The signature bundle supplied to execute is insufficient or inconsistent."""


class InsufficientSignatureCount(SignatureError):
    def __init__(
        self,
        supplied: Optional[int] = None,
        threshold: Optional[int] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="fewer signatures supplied than the threshold",
            code="INSUFFICIENT_SIGNATURE_COUNT",
            data=_details(data, supplied=supplied, threshold=threshold),
        )


class SigManipulationDetected(SignatureError):
    def __init__(
        self,
        signer: Optional[bytes] = None,
        *,
        position: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="consecutive signatures recover to the same signer",
            code="SIG_MANIPULATION_DETECTED",
            data=_details(data, signer=_hex(signer), position=position),
        )


class InsufficientValidSignatureCount(SignatureError):
    def __init__(
        self,
        valid: Optional[int] = None,
        threshold: Optional[int] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="not enough signatures from approving owners",
            code="INSUFFICIENT_VALID_SIGNATURE_COUNT",
            data=_details(data, valid=valid, threshold=threshold),
        )


class MalformedSignature(SignatureError):
    def __init__(
        self,
        message: str = "malformed signature",
        *,
        position: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="MALFORMED_SIGNATURE",
            data=_details(data, position=position),
        )


# -------- external call / input / config ------------------------------------


class ExternalCallFailed(MultisigError):
    def __init__(
        self,
        index: Optional[int] = None,
        *,
        reason: Optional[str] = None,
        return_data: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="destination call failed",
            code="EXTERNAL_CALL_FAILED",
            data=_details(data, index=index, reason=reason, return_data=_hex(return_data)),
        )


class EventPublishFailed(MultisigError):
    def __init__(
        self,
        event: Optional[str] = None,
        *,
        reason: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="event sink rejected the operation's events",
            code="EVENT_PUBLISH_FAILED",
            data=_details(data, event=event, reason=reason),
        )


class InvalidInput(MultisigError):
    def __init__(self, message: str = "invalid input", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_INPUT", data=data)


class InvalidConfiguration(MultisigError):
    def __init__(self, message: str = "invalid configuration", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_CONFIGURATION", data=data)


# -------- helper utilities ---------------------------------------------------


def error_to_dict(err: MultisigError) -> Dict[str, Any]:
    """
    Map a MultisigError to a status/error pair for logs and CLI output.

    Returns:
        {"status": "UNAUTHORIZED" | "REJECTED" | "BAD_SIGNATURES" | "CALL_FAILED" | "ERROR",
         "error":  {code, message, data?}}
    """
    if isinstance(err, AuthorizationError):
        status = "UNAUTHORIZED"
    elif isinstance(err, StateError):
        status = "REJECTED"
    elif isinstance(err, SignatureError):
        status = "BAD_SIGNATURES"
    elif isinstance(err, ExternalCallFailed):
        status = "CALL_FAILED"
    else:
        status = "ERROR"
    return {"status": status, "error": err.to_dict()}


__all__ = [
    "MultisigError",
    "AuthorizationError",
    "NotOwner",
    "NotAdministrator",
    "StateError",
    "OwnerAlreadyExists",
    "OwnerDoesntExist",
    "InvalidTransaction",
    "TransactionAlreadyApproved",
    "TransactionAlreadyExecuted",
    "TransactionNotApproved",
    "InsufficientNumApprovals",
    "QuorumUnreachable",
    "SignatureError",
    "InsufficientSignatureCount",
    "SigManipulationDetected",
    "InsufficientValidSignatureCount",
    "MalformedSignature",
    "ExternalCallFailed",
    "EventPublishFailed",
    "InvalidInput",
    "InvalidConfiguration",
    "error_to_dict",
]
