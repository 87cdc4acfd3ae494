"""
Interfaces between the matching protocol and its collaborators.

This module defines SharingBackend, the secret-sharing / circuit-evaluation
capability, in terms of PeerId and the opaque handle types.

The protocol depends only on these interfaces. spm.backend provides a
reference implementation; any engine with the same contract can be used.

Backend model:
- Requests (input gates and combinators) are registered, not executed
- run() is a blocking barrier that evaluates everything registered since
  the previous barrier and resolves the handles
- Both parties must register requests in the same structural order, since
  requests are matched across parties by creation order
"""

from typing import Optional, Protocol

from .backend.handles import InputSlot, ShareHandle
from .backend.stats import BackendStats
from .party import PeerId


class SharingBackend(Protocol):
    """
    Two-party additive secret-sharing backend.

    Byte handles carry additive shares mod 256, bit handles carry XOR shares.
    """

    @property
    def party_id(self) -> PeerId:
        """This party's identity."""
        ...

    def input_my(self) -> tuple[InputSlot, ShareHandle]:
        """
        Register a byte this party owns.

        Returns:
            (slot to fulfill with the plaintext, handle for this party's share)
        """
        ...

    def input_other(self, peer: PeerId) -> ShareHandle:
        """Register a receiving slot for a byte the peer owns."""
        ...

    def neg(self, x: ShareHandle) -> ShareHandle:
        """Shares of -x mod 256."""
        ...

    def add(self, x: ShareHandle, y: ShareHandle) -> ShareHandle:
        """Shares of x + y mod 256."""
        ...

    def ham(self, x: ShareHandle) -> ShareHandle:
        """Masked reduction: publishes x + r for a preprocessed random r."""
        ...

    def dpf(self, masked: ShareHandle) -> ShareHandle:
        """Zero test on a ham() output: bit shares of [x == 0]."""
        ...

    def and_(self, x: ShareHandle, y: ShareHandle) -> ShareHandle:
        """Bit shares of x AND y."""
        ...

    def locate(self, window: Optional[int], byte: Optional[int]) -> None:
        """
        Tag requests registered from now on with a protocol location.

        The tag only feeds BackendFailure context; it never affects evaluation.
        """
        ...

    def run(self) -> None:
        """Evaluate all pending requests. Blocks until both parties finish."""
        ...

    def share(self, handle: ShareHandle) -> int:
        """
        This party's share of a resolved handle.

        Raises:
            NotReady: if the handle has not been resolved by run()
        """
        ...

    def open(self, handles: list[ShareHandle]) -> list[bool]:
        """Reconstruct resolved bit handles jointly with the peer."""
        ...

    @property
    def stats(self) -> BackendStats:
        """Statistics collected since the backend was created."""
        ...
