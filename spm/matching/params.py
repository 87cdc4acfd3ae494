"""
Parameters for the secure exact pattern matching protocol.

Key parameters:
- role: which input this party holds (pattern or text)
- party_id: this party's PeerId, fixes request ordering in paired sharing
- pattern_size: pattern length in bytes (m)
- text_size: text length in bytes (n)
- num_repetitions: independent protocol runs with the same inputs

Windows: the text is compared against the pattern at every offset
w ∈ [0, n - m], giving n - m + 1 windows of m bytes each. Requires m < n.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..errors import InvalidInput
from ..party import PeerId


class RoleName(Enum):
    """The two input-holding roles."""

    PATTERN_HOLDER = "pattern_holder"
    TEXT_HOLDER = "text_holder"


def to_bytes(value: Union[str, bytes]) -> bytes:
    """Inputs are compared byte-wise; strings are UTF-8 encoded."""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


@dataclass
class ProtocolParams:
    """Parameters for one party's view of the protocol."""

    role: RoleName
    party_id: PeerId
    pattern_size: int
    text_size: int
    num_repetitions: int = 1

    def __post_init__(self):
        try:
            self.role = RoleName(self.role)
        except ValueError:
            raise InvalidInput(
                f"role must be 'pattern_holder' or 'text_holder', got {self.role!r}"
            ) from None
        try:
            self.party_id = PeerId(self.party_id)
        except ValueError:
            raise InvalidInput(f"party_id must be 0 or 1, got {self.party_id!r}") from None

        if self.pattern_size < 1:
            raise InvalidInput("pattern_size must be at least 1")
        if self.text_size < 1:
            raise InvalidInput("text_size must be at least 1")
        if self.pattern_size >= self.text_size:
            raise InvalidInput(
                f"pattern size must be smaller than text size "
                f"({self.pattern_size} >= {self.text_size})"
            )
        if self.num_repetitions < 1:
            raise InvalidInput("num_repetitions must be at least 1")

    @classmethod
    def for_input(
        cls,
        role: Union[RoleName, str],
        party_id: Union[PeerId, int],
        own_input: Union[str, bytes],
        expected_peer_size: int,
        num_repetitions: int = 1,
    ) -> "ProtocolParams":
        """Derive sizes from this party's input and the size it expects from the peer."""
        own_size = len(to_bytes(own_input))
        try:
            role = RoleName(role)
        except ValueError:
            raise InvalidInput(f"role must be 'pattern_holder' or 'text_holder', got {role!r}") from None
        if role is RoleName.PATTERN_HOLDER:
            return cls(role, party_id, own_size, expected_peer_size, num_repetitions)
        return cls(role, party_id, expected_peer_size, own_size, num_repetitions)

    @property
    def num_windows(self) -> int:
        """Number of sliding windows, n - m + 1 (so m == n - 1 gives two windows)."""
        return self.text_size - self.pattern_size + 1

    @property
    def own_size(self) -> int:
        """Length of this party's own input."""
        if self.role is RoleName.PATTERN_HOLDER:
            return self.pattern_size
        return self.text_size

    def window_span(self, window: int) -> tuple[int, int]:
        """Text offsets [start, end) covered by a window."""
        if not 0 <= window < self.num_windows:
            raise IndexError(f"window {window} out of range [0, {self.num_windows})")
        return window, window + self.pattern_size

    def __repr__(self) -> str:
        return (
            f"ProtocolParams(role={self.role.value}, party_id={int(self.party_id)}, "
            f"pattern_size={self.pattern_size}, text_size={self.text_size}, "
            f"num_windows={self.num_windows}, num_repetitions={self.num_repetitions})"
        )


def sliding_windows(text: bytes, pattern_size: int) -> list[bytes]:
    """
    All windows of the text with the pattern's length.

    Example: text=b"HELLO", pattern_size=3 -> [b"HEL", b"ELL", b"LLO"]
    """
    if pattern_size < 1 or pattern_size >= len(text):
        raise InvalidInput(
            f"need 0 < pattern size < text size, got {pattern_size} and {len(text)}"
        )
    return [text[w:w + pattern_size] for w in range(len(text) - pattern_size + 1)]
