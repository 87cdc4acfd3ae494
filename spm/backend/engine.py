"""
Two-party arithmetic/boolean sharing engine.

Evaluation model:
- Every gate has a round: interactive gates (inputs, HAM, AND) sit one round
  after their latest pending input, local gates (NEG, ADD, DPF) share the
  round of their latest pending input
- run() walks rounds in order. In each round the interactive gates build one
  batched message, the parties exchange it, then the round's gates are
  finished in creation order
- Gates resolved by an earlier run() count as round 0

Message layout per round: one byte per interactive gate for which this party
contributes, in creation order. Input gates: the owner sends value - r.
HAM: both send share + mask. AND: both send (x ⊕ a) << 1 | (y ⊕ b).
"""

import logging
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import BackendFailure, NotReady
from ..party import PeerId
from ..primitives import dpf
from .channel import ChannelProtocol
from .dealer import BeaverTriple, Dealer, ZeroTestMaterial
from .handles import InputSlot, ShareHandle, ValueKind
from .stats import BackendStats, RunTimeStats

logger = logging.getLogger(__name__)


class Op(Enum):
    INPUT_MY = "input_my"
    INPUT_OTHER = "input_other"
    NEG = "neg"
    ADD = "add"
    HAM = "ham"
    DPF = "dpf"
    AND = "and"


_INTERACTIVE = {Op.INPUT_MY, Op.INPUT_OTHER, Op.HAM, Op.AND}
# Ops for which the peer contributes one byte to the round message.
_PEER_SENDS = {Op.INPUT_OTHER, Op.HAM, Op.AND}


@dataclass
class _Gate:
    """Internal gate record."""

    gate_id: int
    op: Op
    kind: ValueKind
    inputs: tuple[int, ...]
    round: int
    slot: Optional[InputSlot] = None
    window: Optional[int] = None
    byte: Optional[int] = None
    corr: int = -1  # correlation index for HAM/DPF and AND
    scratch: int = 0  # per-run intermediate (kept share, own message byte)


def _divergence(interactive: list[_Gate], receiving: list[_Gate], received: int) -> _Gate:
    """
    Gate where a round's message stopped lining up with the peer's.

    With too few peer bytes this is the first receiving gate left without
    one; with too many it is the last receiving gate that got one. A round
    in which this party expects nothing reports its last interactive gate.
    """
    if received < len(receiving):
        return receiving[received]
    if receiving:
        return receiving[-1]
    return interactive[-1]


class TwoPartyBackend:
    """
    Reference SharingBackend over a ChannelProtocol.

    One instance per protocol repetition; the channel may be reused by the
    next instance once this one is done.
    """

    def __init__(self, channel: ChannelProtocol, party_id: PeerId, dealer: Dealer):
        self._channel = channel
        self._party_id = PeerId(party_id)
        self._dealer = dealer
        self._gates: list[_Gate] = []
        self._values: dict[int, int] = {}
        self._pending: list[int] = []
        self._num_zero_tests = 0
        self._num_ands = 0
        self._zero_tests: dict[int, ZeroTestMaterial] = {}
        self._run_time = RunTimeStats()
        self._comm_start = channel.stats.snapshot()
        self._num_runs = 0
        self._location: tuple[Optional[int], Optional[int]] = (None, None)

    @property
    def party_id(self) -> PeerId:
        return self._party_id

    # -------------------------------------------------------------------------
    # Gate registration
    # -------------------------------------------------------------------------

    def _round_of(self, inputs: tuple[int, ...]) -> int:
        rounds = [self._gates[i].round for i in inputs if i not in self._values]
        return max(rounds, default=0)

    def _new_gate(self, op: Op, kind: ValueKind, inputs: tuple[int, ...] = ()) -> _Gate:
        base = self._round_of(inputs)
        gate = _Gate(
            gate_id=len(self._gates),
            op=op,
            kind=kind,
            inputs=inputs,
            round=base + 1 if op in _INTERACTIVE else base,
            window=self._location[0],
            byte=self._location[1],
        )
        self._gates.append(gate)
        self._pending.append(gate.gate_id)
        return gate

    def locate(self, window: Optional[int], byte: Optional[int]) -> None:
        self._location = (window, byte)

    def _check(self, handle: ShareHandle, kind: ValueKind) -> int:
        if not 0 <= handle.gate_id < len(self._gates):
            raise ValueError(f"Unknown handle: {handle}")
        if handle.kind is not kind:
            raise ValueError(f"Expected {kind.value} handle, got {handle.kind.value}")
        return handle.gate_id

    def input_my(self) -> tuple[InputSlot, ShareHandle]:
        gate = self._new_gate(Op.INPUT_MY, ValueKind.BYTE)
        handle = ShareHandle(gate.gate_id, ValueKind.BYTE)
        gate.slot = InputSlot(handle)
        return gate.slot, handle

    def input_other(self, peer: PeerId) -> ShareHandle:
        if PeerId(peer) != self._party_id.peer:
            raise ValueError(f"Party {self._party_id} cannot receive from {peer}")
        gate = self._new_gate(Op.INPUT_OTHER, ValueKind.BYTE)
        return ShareHandle(gate.gate_id, ValueKind.BYTE)

    def neg(self, x: ShareHandle) -> ShareHandle:
        gate = self._new_gate(Op.NEG, ValueKind.BYTE, (self._check(x, ValueKind.BYTE),))
        return ShareHandle(gate.gate_id, ValueKind.BYTE)

    def add(self, x: ShareHandle, y: ShareHandle) -> ShareHandle:
        inputs = (self._check(x, ValueKind.BYTE), self._check(y, ValueKind.BYTE))
        gate = self._new_gate(Op.ADD, ValueKind.BYTE, inputs)
        return ShareHandle(gate.gate_id, ValueKind.BYTE)

    def ham(self, x: ShareHandle) -> ShareHandle:
        gate = self._new_gate(Op.HAM, ValueKind.BYTE, (self._check(x, ValueKind.BYTE),))
        gate.corr = self._num_zero_tests
        self._num_zero_tests += 1
        return ShareHandle(gate.gate_id, ValueKind.BYTE)

    def dpf(self, masked: ShareHandle) -> ShareHandle:
        source = self._gates[self._check(masked, ValueKind.BYTE)]
        if source.op is not Op.HAM:
            raise ValueError("dpf() requires the output of ham()")
        gate = self._new_gate(Op.DPF, ValueKind.BIT, (source.gate_id,))
        gate.corr = source.corr
        return ShareHandle(gate.gate_id, ValueKind.BIT)

    def and_(self, x: ShareHandle, y: ShareHandle) -> ShareHandle:
        inputs = (self._check(x, ValueKind.BIT), self._check(y, ValueKind.BIT))
        gate = self._new_gate(Op.AND, ValueKind.BIT, inputs)
        gate.corr = self._num_ands
        self._num_ands += 1
        return ShareHandle(gate.gate_id, ValueKind.BIT)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def _exchange(self, data: bytes) -> bytes:
        """Send then receive on party 0, receive then send on party 1."""
        if self._party_id is PeerId.FIRST:
            self._channel.send(data)
            return self._channel.recv()
        received = self._channel.recv()
        self._channel.send(data)
        return received

    def _zero_test(self, corr: int) -> ZeroTestMaterial:
        material = self._zero_tests.get(corr)
        if material is None:
            material = self._dealer.zero_test(corr, self._party_id)
            self._zero_tests[corr] = material
        return material

    def _triple(self, gate: _Gate) -> BeaverTriple:
        return self._dealer.beaver_triple(gate.corr, self._party_id)

    def _outgoing(self, gate: _Gate) -> Optional[int]:
        """This party's message byte for an interactive gate, if any."""
        if gate.op is Op.INPUT_MY:
            value = gate.slot.take()
            kept = secrets.randbelow(256)
            gate.scratch = kept
            return (value - kept) % 256
        if gate.op is Op.HAM:
            mask = self._zero_test(gate.corr).mask
            return (self._values[gate.inputs[0]] + mask) % 256
        if gate.op is Op.AND:
            t = self._triple(gate)
            d = self._values[gate.inputs[0]] ^ t.a
            e = self._values[gate.inputs[1]] ^ t.b
            gate.scratch = (d << 1) | e
            return gate.scratch
        return None

    def _finish(self, gate: _Gate, peer_byte: Optional[int]) -> int:
        """Resolve an interactive gate given the peer's message byte."""
        if gate.op is Op.INPUT_MY:
            return gate.scratch
        if gate.op is Op.INPUT_OTHER:
            return peer_byte
        if gate.op is Op.HAM:
            mask = self._zero_test(gate.corr).mask
            own = (self._values[gate.inputs[0]] + mask) % 256
            return (own + peer_byte) % 256
        if gate.op is Op.AND:
            t = self._triple(gate)
            opened = gate.scratch ^ peer_byte
            d, e = opened >> 1, opened & 1
            z = t.c ^ (d & t.b) ^ (e & t.a)
            if self._party_id is PeerId.FIRST:
                z ^= d & e
            return z
        raise AssertionError(f"not an interactive op: {gate.op}")

    def _evaluate_local(self, gate: _Gate) -> int:
        v = self._values
        if gate.op is Op.NEG:
            return (-v[gate.inputs[0]]) % 256
        if gate.op is Op.ADD:
            return (v[gate.inputs[0]] + v[gate.inputs[1]]) % 256
        if gate.op is Op.DPF:
            key = self._zero_test(gate.corr).key
            return dpf.eval_point(key, v[gate.inputs[0]])
        raise AssertionError(f"not a local op: {gate.op}")

    def _run_round(self, round_no: int, gates: list[_Gate]) -> None:
        interactive = [g for g in gates if g.op in _INTERACTIVE]
        if interactive:
            outgoing = bytearray()
            for gate in interactive:
                byte = self._outgoing(gate)
                if byte is not None:
                    outgoing.append(byte)
            incoming = self._exchange(bytes(outgoing))
            receiving = [g for g in interactive if g.op in _PEER_SENDS]
            if len(incoming) != len(receiving):
                gate = _divergence(interactive, receiving, len(incoming))
                raise BackendFailure(
                    f"round {round_no}: peer sent {len(incoming)} bytes, expected {len(receiving)}; "
                    f"parties registered requests in different orders near gate {gate.gate_id}",
                    window=gate.window,
                    byte=gate.byte,
                )
            pos = 0
            for gate in interactive:
                peer_byte = None
                if gate.op in _PEER_SENDS:
                    peer_byte = incoming[pos]
                    pos += 1
                self._values[gate.gate_id] = self._finish(gate, peer_byte)
            self._run_time.rounds += 1

        for gate in gates:
            if gate.op not in _INTERACTIVE:
                self._values[gate.gate_id] = self._evaluate_local(gate)

    def run(self) -> None:
        for gate_id in self._pending:
            slot = self._gates[gate_id].slot
            if slot is not None and not slot.fulfilled:
                raise NotReady(f"Input slot for gate {gate_id} not fulfilled before run()")
        pending, self._pending = self._pending, []
        self._num_runs += 1
        start = time.perf_counter()

        by_round: dict[int, list[_Gate]] = {}
        for gate_id in pending:
            gate = self._gates[gate_id]
            by_round.setdefault(gate.round, []).append(gate)

        logger.debug(
            "party %d: run %d evaluating %d gates in %d rounds",
            self._party_id, self._num_runs, len(pending), max(by_round, default=0),
        )
        for round_no in sorted(by_round):
            self._run_round(round_no, by_round[round_no])

        self._run_time.record(f"run_{self._num_runs}", time.perf_counter() - start)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def share(self, handle: ShareHandle) -> int:
        if handle.gate_id not in self._values:
            raise NotReady(f"Handle {handle.gate_id} read before run() resolved it")
        return self._values[handle.gate_id]

    def open(self, handles: list[ShareHandle]) -> list[bool]:
        start = time.perf_counter()
        for handle in handles:
            self._check(handle, ValueKind.BIT)
        bits = [self.share(h) for h in handles]
        packed = bytearray((len(bits) + 7) // 8)
        for i, bit in enumerate(bits):
            packed[i // 8] |= bit << (i % 8)
        incoming = self._exchange(bytes(packed))
        if len(incoming) != len(packed):
            raise BackendFailure(
                f"open: peer sent {len(incoming)} bytes, expected {len(packed)}"
            )
        opened = [bool(bit ^ ((incoming[i // 8] >> (i % 8)) & 1)) for i, bit in enumerate(bits)]
        self._run_time.rounds += 1
        self._run_time.record("open", time.perf_counter() - start)
        return opened

    @property
    def stats(self) -> BackendStats:
        run_time = RunTimeStats()
        run_time.add(self._run_time)
        return BackendStats(
            run_time=run_time,
            communication=self._channel.stats.since(self._comm_start),
        )
