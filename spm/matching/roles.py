"""
Role-specific stages: character sharing and the masked difference.

Both roles register the same request sequence, mirrored:
1. pattern positions 0..m-1
2. text bytes window-major, position-minor (a text byte appears once per
   window that covers it; it is never deduplicated)
The owner of a byte registers input_my(), the other party input_other().

Masked difference for window w, position p:
    local = text_share(w, p) - pattern_share(p)      (mod 256)
    pattern holder: -local, text holder: local
With additive sharing t = t_own + t_recv and p = p_own + p_recv, the two
values are r_t + r_p - t and r_t + r_p - p, equal exactly when t == p.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..backend.handles import InputSlot, ShareHandle
from ..errors import InvalidInput
from ..protocols import SharingBackend
from .params import ProtocolParams, RoleName, sliding_windows


@dataclass
class CharacterShares:
    """Handles for every pattern byte and every (window, position) text byte."""

    pattern: list[ShareHandle] = field(default_factory=list)  # [position]
    text: list[list[ShareHandle]] = field(default_factory=list)  # [window][position]
    slots: list[InputSlot] = field(default_factory=list)  # owned bytes, registration order


class Role(ABC):
    """Behaviour that differs between the pattern holder and the text holder."""

    name: RoleName

    def __init__(self, params: ProtocolParams):
        self.params = params

    @abstractmethod
    def register_characters(self, backend: SharingBackend) -> CharacterShares:
        """Register sharing requests for all pattern and text bytes."""

    @abstractmethod
    def owned_bytes(self, own_input: bytes) -> list[int]:
        """This party's plaintext bytes, in the order of CharacterShares.slots."""

    @abstractmethod
    def orient(self, local_diff: int) -> int:
        """Apply the role's sign to a local share difference."""

    def provide_characters(self, shares: CharacterShares, own_input: bytes) -> None:
        """Fulfill the owned input slots. Must happen before the next barrier."""
        values = self.owned_bytes(own_input)
        if len(values) != len(shares.slots):
            raise InvalidInput(
                f"{self.name.value} supplied {len(values)} bytes for {len(shares.slots)} slots"
            )
        for slot, value in zip(shares.slots, values):
            slot.fulfill(value)

    def masked_difference(self, backend: SharingBackend, shares: CharacterShares) -> list[bytes]:
        """
        Masked-difference vector per window, from locally held shares only.

        Returns:
            One pattern_size-byte vector per window
        """
        pattern = [backend.share(h) for h in shares.pattern]
        vectors = []
        for window_handles in shares.text:
            vector = bytearray()
            for pos, handle in enumerate(window_handles):
                local_diff = (backend.share(handle) - pattern[pos]) % 256
                vector.append(self.orient(local_diff))
            vectors.append(bytes(vector))
        return vectors


class PatternHolderRole(Role):
    """Owns the pattern, receives shares of every text window."""

    name = RoleName.PATTERN_HOLDER

    def register_characters(self, backend: SharingBackend) -> CharacterShares:
        p = self.params
        shares = CharacterShares()
        for pos in range(p.pattern_size):
            backend.locate(None, pos)
            slot, handle = backend.input_my()
            shares.slots.append(slot)
            shares.pattern.append(handle)
        for w in range(p.num_windows):
            window_handles = []
            for pos in range(p.pattern_size):
                backend.locate(w, pos)
                window_handles.append(backend.input_other(p.party_id.peer))
            shares.text.append(window_handles)
        return shares

    def owned_bytes(self, own_input: bytes) -> list[int]:
        return list(own_input)

    def orient(self, local_diff: int) -> int:
        return (-local_diff) % 256


class TextHolderRole(Role):
    """Owns the text, receives shares of the pattern."""

    name = RoleName.TEXT_HOLDER

    def register_characters(self, backend: SharingBackend) -> CharacterShares:
        p = self.params
        shares = CharacterShares()
        for pos in range(p.pattern_size):
            backend.locate(None, pos)
            shares.pattern.append(backend.input_other(p.party_id.peer))
        for w in range(p.num_windows):
            window_handles = []
            for pos in range(p.pattern_size):
                backend.locate(w, pos)
                slot, handle = backend.input_my()
                shares.slots.append(slot)
                window_handles.append(handle)
            shares.text.append(window_handles)
        return shares

    def owned_bytes(self, own_input: bytes) -> list[int]:
        return [byte for window in sliding_windows(own_input, self.params.pattern_size) for byte in window]

    def orient(self, local_diff: int) -> int:
        return local_diff


def make_role(params: ProtocolParams) -> Role:
    """Role implementation for the configured role name."""
    if params.role is RoleName.PATTERN_HOLDER:
        return PatternHolderRole(params)
    return TextHolderRole(params)
