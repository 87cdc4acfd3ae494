"""
One party's side of a complete run over an established channel.

Setup on the channel, in order:
1. parameter agreement (both parties must expect the same sizes)
2. dealer seed agreement
then one fresh TwoPartyBackend per repetition, each with its own
correlated randomness.
"""

import itertools
import logging
from typing import Optional, Union

from .backend.channel import ChannelProtocol
from .backend.dealer import Dealer, agree_on_seed
from .backend.engine import TwoPartyBackend
from .matching.messages import MatchReport
from .matching.params import ProtocolParams, RoleName
from .matching.protocol import agree_on_params, check_input, run_exact_match
from .party import PeerId
from .primitives import CompressorProtocol

logger = logging.getLogger(__name__)


def run_party(
    channel: ChannelProtocol,
    role: Union[RoleName, str],
    party_id: Union[PeerId, int],
    own_input: Union[str, bytes],
    expected_peer_size: int,
    num_repetitions: int = 1,
    compressor: Optional[CompressorProtocol] = None,
) -> MatchReport:
    """
    Run the matching protocol for one party.

    Args:
        channel: Connected channel to the peer, owned for the whole run
        role: "pattern_holder" or "text_holder"
        party_id: 0 or 1; the two parties must use different ids
        own_input: This party's pattern or text
        expected_peer_size: Length of the peer's input
        num_repetitions: Number of independent repetitions

    Returns:
        MatchReport with one RepetitionResult per repetition

    Raises:
        InvalidInput: before any I/O for local size errors, after parameter
            agreement if the peer disagrees
        BackendFailure: on any channel or sharing failure
    """
    params = ProtocolParams.for_input(role, party_id, own_input, expected_peer_size, num_repetitions)
    data = check_input(params, own_input)
    logger.info("starting %r", params)

    agree_on_params(channel, params)
    dealer = Dealer(agree_on_seed(channel, params.party_id))
    counter = itertools.count()

    def new_backend() -> TwoPartyBackend:
        return TwoPartyBackend(channel, params.party_id, dealer.child(next(counter)))

    return run_exact_match(params, data, new_backend, compressor)
