"""
Correlated randomness for the interactive gates.

Simulates a trusted offline phase: both parties hold the same dealer seed
and deterministically derive the full correlation for every gate, keeping
only their own half. Correlations are indexed by creation order of the
gates that consume them, which is identical on both sides.

Security: whoever knows the seed knows both halves. The seed stands in for
an offline phase (e.g. OT-based triple generation) and must come from a
setup that the evaluating parties trust.
"""

import hashlib
import hmac
import secrets
import struct
from dataclasses import dataclass

from ..errors import BackendFailure
from ..primitives import dpf
from ..primitives.dpf import DPFKey
from .channel import ChannelProtocol

SEED_SIZE = 32


class _Stream:
    """HMAC-SHA-256 in counter mode over (label, index)."""

    def __init__(self, key: bytes, label: bytes, index: int):
        self._key = key
        self._prefix = label + struct.pack("<Q", index)
        self._counter = 0
        self._buffer = b""

    def read(self, n: int) -> bytes:
        while len(self._buffer) < n:
            block = hmac.new(
                self._key, self._prefix + struct.pack("<I", self._counter), hashlib.sha256
            ).digest()
            self._counter += 1
            self._buffer += block
        out, self._buffer = self._buffer[:n], self._buffer[n:]
        return out


@dataclass
class BeaverTriple:
    """One party's XOR shares of (a, b, c) with c = a & b."""

    a: int
    b: int
    c: int


@dataclass
class ZeroTestMaterial:
    """One party's share of the HAM mask r and its DPF key for the point r."""

    mask: int
    key: DPFKey


class Dealer:
    """Deterministic source of per-gate correlated randomness."""

    def __init__(self, seed: bytes):
        if len(seed) != SEED_SIZE:
            raise ValueError(f"Dealer seed must be {SEED_SIZE} bytes")
        self._seed = seed

    @classmethod
    def random(cls) -> "Dealer":
        return cls(secrets.token_bytes(SEED_SIZE))

    @property
    def seed(self) -> bytes:
        return self._seed

    def child(self, index: int) -> "Dealer":
        """Independent dealer for the index-th backend on the same seed."""
        return Dealer(_Stream(self._seed, b"child", index).read(SEED_SIZE))

    def beaver_triple(self, index: int, party_id: int) -> BeaverTriple:
        """Boolean Beaver triple for the index-th AND gate."""
        raw = _Stream(self._seed, b"and", index).read(5)
        a0, a1, b0, b1, c0 = (x & 1 for x in raw)
        c1 = ((a0 ^ a1) & (b0 ^ b1)) ^ c0
        if party_id == 0:
            return BeaverTriple(a0, b0, c0)
        return BeaverTriple(a1, b1, c1)

    def zero_test(self, index: int, party_id: int) -> ZeroTestMaterial:
        """Mask share and DPF key for the index-th HAM/DPF gate pair."""
        stream = _Stream(self._seed, b"zero", index)
        r0, r1 = stream.read(2)
        key0, key1 = dpf.gen((r0 + r1) % 256, randbytes=stream.read)
        if party_id == 0:
            return ZeroTestMaterial(r0, key0)
        return ZeroTestMaterial(r1, key1)


def agree_on_seed(channel: ChannelProtocol, party_id: int) -> bytes:
    """Party 0 picks the dealer seed and sends it to party 1."""
    if party_id == 0:
        seed = secrets.token_bytes(SEED_SIZE)
        channel.send(seed)
        return seed
    seed = channel.recv()
    if len(seed) != SEED_SIZE:
        raise BackendFailure(f"expected {SEED_SIZE}-byte dealer seed, got {len(seed)} bytes")
    return seed
