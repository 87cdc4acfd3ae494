"""
Opaque handles returned by the sharing backend.

Callers only pass handles back to the backend that issued them; the fields
are backend bookkeeping.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import NotReady


class ValueKind(Enum):
    """What a handle's share holds."""

    BYTE = "byte"  # additive share mod 256
    BIT = "bit"  # XOR share of a boolean


@dataclass(frozen=True)
class ShareHandle:
    """Reference to one shared value. Resolved at the next run()."""

    gate_id: int
    kind: ValueKind


@dataclass
class InputSlot:
    """
    Deferred plaintext input for an owned value.

    fulfill() must be called exactly once, before the barrier that resolves
    the matching handle.
    """

    handle: ShareHandle
    _value: Optional[int] = field(default=None, repr=False)
    _sealed: bool = field(default=False, repr=False)

    def fulfill(self, value: int) -> None:
        """Supply the plaintext byte."""
        if self._sealed:
            raise NotReady(f"Input slot for gate {self.handle.gate_id} already consumed by a barrier")
        if self._value is not None:
            raise NotReady(f"Input slot for gate {self.handle.gate_id} fulfilled twice")
        if not 0 <= value < 256:
            raise ValueError(f"Input must be a byte, got {value}")
        self._value = value

    @property
    def fulfilled(self) -> bool:
        return self._value is not None

    def take(self) -> int:
        """Consume the value at the barrier. Backend use only."""
        if self._value is None:
            raise NotReady(f"Input slot for gate {self.handle.gate_id} not fulfilled before run()")
        self._sealed = True
        return self._value
