"""
Finish reason codec.

A finals match row has a single free-text reason column. It carries two facts:
the finish reason (normal / time_limit / forfeit) and, optionally, which
contestant entered the series holding a qualifying-stage advantage win.

Wire format:
  "normal"                        → no advantage
  "adv_def:<playerId>|time_limit" → advantage held by <playerId>

Decoding never raises; anything unrecognised degrades to "normal" with no
advantage holder.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

ADV_PREFIX = "adv_def:"
ADV_SEPARATOR = "|"


class BaseReason(str, Enum):
    NORMAL = "normal"
    TIME_LIMIT = "time_limit"
    FORFEIT = "forfeit"


_BASE_LABELS = {
    BaseReason.NORMAL: "Normal",
    BaseReason.TIME_LIMIT: "Time limit",
    BaseReason.FORFEIT: "Forfeit",
}


def parse_base(value: Any) -> BaseReason:
    """Coerce any value to a BaseReason, falling back to NORMAL."""
    if isinstance(value, BaseReason):
        return value
    token = str(value or "").strip().lower()
    try:
        return BaseReason(token)
    except ValueError:
        return BaseReason.NORMAL


@dataclass(frozen=True)
class EncodedReason:
    base: BaseReason = BaseReason.NORMAL
    advantage_holder: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "base", parse_base(self.base))
        holder = (self.advantage_holder or "").strip() or None
        if holder is not None and ADV_SEPARATOR in holder:
            raise ValueError(f"advantage holder id may not contain {ADV_SEPARATOR!r}: {holder!r}")
        object.__setattr__(self, "advantage_holder", holder)


def encode_reason(reason: EncodedReason) -> str:
    if not reason.advantage_holder:
        return reason.base.value
    return f"{ADV_PREFIX}{reason.advantage_holder}{ADV_SEPARATOR}{reason.base.value}"


def decode_reason(raw: Optional[str]) -> EncodedReason:
    text = str(raw or "").strip()
    if not text:
        return EncodedReason()

    # Marker and base are case-insensitive; player ids keep their case
    if text.lower().startswith(ADV_PREFIX):
        rest = text[len(ADV_PREFIX):]
        id_part, _, base_part = rest.partition(ADV_SEPARATOR)
        holder = id_part.strip() or None
        return EncodedReason(base=parse_base(base_part), advantage_holder=holder)

    return EncodedReason(base=parse_base(text))


def reason_label(raw: Optional[str]) -> str:
    decoded = decode_reason(raw)
    label = _BASE_LABELS[decoded.base]
    if decoded.advantage_holder:
        return f"Advantage / {label}"
    return label
