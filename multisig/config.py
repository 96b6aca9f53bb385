"""
multisig.config — runtime configuration for the threshold wallet.

This module centralizes knobs for:
  • Feature flags (signed-message digest prefix, quorum guard on owner removal)
  • Limits (payload size, signature bundle length)
  • Event persistence (optional JSONL sink path)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  MULTISIG_SIGNED_MESSAGE_PREFIX      -> 0/1/true/false (default: 0)
  MULTISIG_ENFORCE_QUORUM_ON_REMOVAL  -> 0/1/true/false (default: 0)
  MULTISIG_MAX_PAYLOAD_BYTES          -> e.g. "128KiB", "131072" (default: 128KiB)
  MULTISIG_MAX_SIGNATURES             -> integer (default: 256)
  MULTISIG_EVENTS_PATH                -> path of an append-only JSONL event log (default: unset)

Programmatic usage:
    from multisig.config import get_config
    cfg = get_config()
    if cfg.features.signed_message_prefix:
        ...

Note: This module does not perform any I/O beyond reading env vars.
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .errors import InvalidConfiguration

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    # Be forgiving: non-empty → True, empty → default
    return bool(v) if v != "" else default


_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kKmM]i?[bB]|[bB])?\s*$")

_SIZE_UNITS = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
}


def _parse_size_bytes(s: Union[str, int]) -> int:
    """
    Parse human-friendly byte sizes:
      "128KiB", "64KB", "1MiB", "131072", 131072 -> bytes (int)
    """
    if isinstance(s, int):
        if s < 0:
            raise InvalidConfiguration("size must be non-negative", data={"value": s})
        return s

    m = _SIZE_RE.match(str(s))
    if not m:
        raise InvalidConfiguration(f"invalid size: {s!r}")
    unit = (m.group(2) or "B").lower()
    return int(m.group(1)) * _SIZE_UNITS[unit]


def _int_value(name: str, raw: Union[str, int]) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration(f"{name} must be an integer", data={"value": str(raw)}) from e


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class FeatureFlags:
    signed_message_prefix: bool = False
    enforce_quorum_on_removal: bool = False


@dataclass(frozen=True)
class Limits:
    max_payload_bytes: int = 128 * 1024  # 128 KiB
    max_signatures: int = 256


@dataclass(frozen=True)
class WalletConfig:
    features: FeatureFlags = field(default_factory=FeatureFlags)
    limits: Limits = field(default_factory=Limits)
    events_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, object]:
        d = asdict(self)
        d["events_path"] = str(self.events_path) if self.events_path else None
        return d


# ------------------------------ loader --------------------------------------


def _validate_limits(lim: Limits) -> Limits:
    if lim.max_payload_bytes < 0:
        raise InvalidConfiguration("max_payload_bytes must be ≥ 0")
    if lim.max_signatures < 1:
        raise InvalidConfiguration("max_signatures must be ≥ 1")
    return lim


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool, Path]]] = None,
) -> WalletConfig:
    """
    Build a WalletConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'signed_message_prefix', 'enforce_quorum_on_removal',
          'max_payload_bytes', 'max_signatures', 'events_path'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    features = FeatureFlags(
        signed_message_prefix=bool(
            overrides["signed_message_prefix"]
            if "signed_message_prefix" in overrides
            else _bool_env(env.get("MULTISIG_SIGNED_MESSAGE_PREFIX"), False)
        ),
        enforce_quorum_on_removal=bool(
            overrides["enforce_quorum_on_removal"]
            if "enforce_quorum_on_removal" in overrides
            else _bool_env(env.get("MULTISIG_ENFORCE_QUORUM_ON_REMOVAL"), False)
        ),
    )

    limits = Limits(
        max_payload_bytes=_parse_size_bytes(
            overrides.get(
                "max_payload_bytes", env.get("MULTISIG_MAX_PAYLOAD_BYTES", 128 * 1024)
            )
        ),
        max_signatures=_int_value(
            "max_signatures",
            overrides.get("max_signatures", env.get("MULTISIG_MAX_SIGNATURES", 256)),
        ),
    )
    limits = _validate_limits(limits)

    raw_path = overrides.get("events_path", env.get("MULTISIG_EVENTS_PATH"))
    events_path = Path(str(raw_path)).expanduser() if raw_path else None

    return WalletConfig(features=features, limits=limits, events_path=events_path)


@lru_cache(maxsize=1)
def get_config() -> WalletConfig:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def _fmt_bytes(n: int) -> str:
    for unit, div in (("MiB", 1024**2), ("KiB", 1024)):
        if n >= div and n % div == 0:
            return f"{n // div}{unit}"
    return f"{n}B"


def summary(cfg: Optional[WalletConfig] = None) -> str:
    """
    Return a human-friendly one-line summary of the wallet knobs.
    """
    cfg = cfg or get_config()
    f = cfg.features
    lim = cfg.limits
    return (
        "multisig{"
        f"prefix={int(f.signed_message_prefix)}, quorum_guard={int(f.enforce_quorum_on_removal)}, "
        f"payload={_fmt_bytes(lim.max_payload_bytes)}, sigs={lim.max_signatures}, "
        f"events={cfg.events_path or '-'}"
        "}"
    )


__all__ = [
    "FeatureFlags",
    "Limits",
    "WalletConfig",
    "load_config",
    "get_config",
    "summary",
]
