"""
Secure exact pattern matching: one repetition and the multi-repetition run.

Per repetition the state machine is

    INIT → SHARE_CHARACTERS → RUN_1 → COMPUTE_DIGESTS → SHARE_DIGESTS
         → BUILD_EQUALITY_CIRCUIT → RUN_2 → AGGREGATE → DONE

with FAILED reachable from any step. RUN_1 and RUN_2 are the two backend
barriers; nothing after a barrier reads a share before it completes.

Equality circuit per window w and digest byte b:
    diff = [D_first(w,b)] - [D_second(w,b)]     (NEG + ADD, local)
    m    = HAM(diff)                            (masked, opened)
    eq   = DPF(m)                               (bit shares of diff == 0)
and the window's match bit is eq_0 AND eq_1 AND ... AND eq_31.
The difference is always taken as the FIRST party's digest minus the
SECOND party's, so both parties' shares sum to the same difference.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from ..backend.channel import ChannelProtocol
from ..backend.handles import InputSlot, ShareHandle
from ..backend.stats import BackendStats
from ..errors import BackendFailure, InvalidInput
from ..party import PeerId
from ..primitives import DIGEST_SIZE, CompressorProtocol
from ..protocols import SharingBackend
from .digest import compute_digests
from .messages import MatchReport, RepetitionResult, WindowMatch
from .params import ProtocolParams, RoleName, to_bytes
from .roles import make_role

logger = logging.getLogger(__name__)


class Phase(Enum):
    INIT = "init"
    SHARE_CHARACTERS = "share_characters"
    RUN_1 = "run_1"
    COMPUTE_DIGESTS = "compute_digests"
    SHARE_DIGESTS = "share_digests"
    BUILD_EQUALITY_CIRCUIT = "build_equality_circuit"
    RUN_2 = "run_2"
    AGGREGATE = "aggregate"
    DONE = "done"
    FAILED = "failed"


_SEQUENCE = [
    Phase.INIT,
    Phase.SHARE_CHARACTERS,
    Phase.RUN_1,
    Phase.COMPUTE_DIGESTS,
    Phase.SHARE_DIGESTS,
    Phase.BUILD_EQUALITY_CIRCUIT,
    Phase.RUN_2,
    Phase.AGGREGATE,
    Phase.DONE,
]


class PhaseTracker:
    """Enforces the repetition state machine. No phase may be skipped."""

    def __init__(self):
        self.phase = Phase.INIT

    def advance(self, phase: Phase) -> None:
        if self.phase is Phase.FAILED:
            raise RuntimeError(f"cannot enter {phase.value}: repetition already failed")
        expected = _SEQUENCE[_SEQUENCE.index(self.phase) + 1]
        if phase is not expected:
            raise RuntimeError(f"cannot enter {phase.value} from {self.phase.value}")
        logger.debug("phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def fail(self) -> None:
        self.phase = Phase.FAILED


@dataclass
class DigestShares:
    """Per window, 32 handles for this party's digest and 32 for the peer's."""

    own: list[list[ShareHandle]] = field(default_factory=list)  # [window][byte]
    other: list[list[ShareHandle]] = field(default_factory=list)  # [window][byte]
    slots: list[list[InputSlot]] = field(default_factory=list)  # [window][byte]


def share_digests(backend: SharingBackend, digests: list[bytes]) -> DigestShares:
    """
    Register and fulfill the paired digest sharing requests.

    For every (window, byte) the party that precedes its peer issues
    "provide own" then "receive other"; the peer issues them reversed, so
    both request sequences line up.
    """
    me = backend.party_id
    provide_first = me.precedes(me.peer)
    shares = DigestShares()
    for w, digest in enumerate(digests):
        if len(digest) != DIGEST_SIZE:
            raise ValueError(f"window {w}: digest must be {DIGEST_SIZE} bytes")
        own_row, other_row, slot_row = [], [], []
        for b in range(DIGEST_SIZE):
            backend.locate(w, b)
            if provide_first:
                slot, handle = backend.input_my()
                other = backend.input_other(me.peer)
            else:
                other = backend.input_other(me.peer)
                slot, handle = backend.input_my()
            slot.fulfill(digest[b])
            own_row.append(handle)
            other_row.append(other)
            slot_row.append(slot)
        shares.own.append(own_row)
        shares.other.append(other_row)
        shares.slots.append(slot_row)
    return shares


def build_equality_circuit(backend: SharingBackend, shares: DigestShares) -> list[ShareHandle]:
    """One shared match bit per window: all 32 digest bytes equal."""
    me = backend.party_id
    match_bits = []
    for w in range(len(shares.own)):
        if me.precedes(me.peer):
            first, second = shares.own[w], shares.other[w]
        else:
            first, second = shares.other[w], shares.own[w]
        result = None
        for b in range(DIGEST_SIZE):
            backend.locate(w, b)
            diff = backend.add(first[b], backend.neg(second[b]))
            is_equal = backend.dpf(backend.ham(diff))
            result = is_equal if result is None else backend.and_(result, is_equal)
        match_bits.append(result)
    return match_bits


def aggregate(backend: SharingBackend, match_bits: list[ShareHandle]) -> RepetitionResult:
    """Open every window's match bit."""
    opened = backend.open(match_bits)
    return RepetitionResult([WindowMatch(w, bit) for w, bit in enumerate(opened)])


def run_repetition(
    params: ProtocolParams,
    own_input: bytes,
    backend: SharingBackend,
    compressor: Optional[CompressorProtocol] = None,
) -> RepetitionResult:
    """
    Run one repetition of the protocol on a fresh backend.

    Raises:
        BackendFailure: tagged with the phase in which it occurred
    """
    tracker = PhaseTracker()
    role = make_role(params)
    try:
        tracker.advance(Phase.SHARE_CHARACTERS)
        char_shares = role.register_characters(backend)
        role.provide_characters(char_shares, own_input)

        tracker.advance(Phase.RUN_1)
        backend.run()

        tracker.advance(Phase.COMPUTE_DIGESTS)
        vectors = role.masked_difference(backend, char_shares)
        digests = compute_digests(vectors, compressor)

        tracker.advance(Phase.SHARE_DIGESTS)
        digest_shares = share_digests(backend, digests)

        tracker.advance(Phase.BUILD_EQUALITY_CIRCUIT)
        match_bits = build_equality_circuit(backend, digest_shares)

        tracker.advance(Phase.RUN_2)
        backend.run()

        tracker.advance(Phase.AGGREGATE)
        result = aggregate(backend, match_bits)

        tracker.advance(Phase.DONE)
    except BackendFailure as e:
        failed_in = tracker.phase
        tracker.fail()
        raise e.with_phase(failed_in.value) from e
    return result


def check_input(params: ProtocolParams, own_input: Union[str, bytes]) -> bytes:
    """Validate this party's input against its declared size."""
    data = to_bytes(own_input)
    if len(data) != params.own_size:
        raise InvalidInput(
            f"{params.role.value} input has {len(data)} bytes, expected {params.own_size}"
        )
    return data


# (pattern_size, text_size, role code)
_PARAMS = struct.Struct("!QQB")
_ROLE_CODES = {RoleName.PATTERN_HOLDER: 0, RoleName.TEXT_HOLDER: 1}


def agree_on_params(channel: ChannelProtocol, params: ProtocolParams) -> None:
    """
    Exchange sizes and roles with the peer before any sharing.

    Raises:
        InvalidInput: if the peer expects different sizes or claims this
            party's role
    """
    mine = _PARAMS.pack(params.pattern_size, params.text_size, _ROLE_CODES[params.role])
    if params.party_id is PeerId.FIRST:
        channel.send(mine)
        theirs = channel.recv()
    else:
        theirs = channel.recv()
        channel.send(mine)
    if len(theirs) != _PARAMS.size:
        raise BackendFailure(f"malformed parameter message ({len(theirs)} bytes)", phase="init")
    peer_pattern, peer_text, peer_role = _PARAMS.unpack(theirs)
    if peer_role == _ROLE_CODES[params.role]:
        raise InvalidInput(f"both parties claim the {params.role.value} role")
    if peer_role not in _ROLE_CODES.values():
        raise BackendFailure(f"unknown peer role code {peer_role}", phase="init")
    if (peer_pattern, peer_text) != (params.pattern_size, params.text_size):
        raise InvalidInput(
            f"peer expects pattern_size={peer_pattern}, text_size={peer_text}; "
            f"this party has pattern_size={params.pattern_size}, text_size={params.text_size}"
        )


def run_exact_match(
    params: ProtocolParams,
    own_input: Union[str, bytes],
    backend_factory: Callable[[], SharingBackend],
    compressor: Optional[CompressorProtocol] = None,
) -> MatchReport:
    """
    Run num_repetitions independent repetitions.

    Args:
        params: Protocol parameters for this party
        own_input: The pattern or the text, matching params.role
        backend_factory: Returns a fresh backend for each repetition
        compressor: Keyed compression function (both parties must agree)

    Returns:
        Per-repetition window outcomes and accumulated backend statistics

    Raises:
        InvalidInput: before any backend is created
        BackendFailure: with completed repetitions in its `partial` attribute
    """
    data = check_input(params, own_input)
    report = MatchReport(stats=BackendStats())

    for rep in range(params.num_repetitions):
        backend = backend_factory()
        try:
            result = run_repetition(params, data, backend, compressor)
        except BackendFailure as e:
            logger.error("repetition %d failed: %s", rep, e)
            e.partial = list(report.repetitions)
            raise
        report.repetitions.append(result)
        report.stats.add(backend.stats)
        logger.info(
            "repetition %d: %d/%d windows matched",
            rep, len(result.matching_windows), len(result.matches),
        )

    return report
