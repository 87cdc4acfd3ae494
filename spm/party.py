"""
Party identities for the two-party setting.
"""

from enum import IntEnum


class PeerId(IntEnum):
    """Identity of one of the two parties."""

    FIRST = 0
    SECOND = 1

    @property
    def peer(self) -> "PeerId":
        """The other party."""
        return PeerId.SECOND if self is PeerId.FIRST else PeerId.FIRST

    def precedes(self, other: "PeerId") -> bool:
        """Whether this party issues its requests first in paired sharing."""
        return self < other
