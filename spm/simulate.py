"""
Run both parties in one process, each in its own thread, over a LocalChannel.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Union

from .backend.channel import LocalChannel
from .matching.messages import MatchReport
from .matching.params import RoleName, to_bytes
from .party import PeerId
from .primitives import CompressorProtocol
from .session import run_party


def _close_on_error(end: LocalChannel) -> Callable[[Future], None]:
    """A failed party closes its end so the peer stops waiting."""

    def callback(future: Future) -> None:
        if future.exception() is not None:
            end.close()

    return callback


def run_local(
    pattern: Union[str, bytes],
    text: Union[str, bytes],
    num_repetitions: int = 1,
    compressor: Optional[CompressorProtocol] = None,
    pattern_holder_id: PeerId = PeerId.FIRST,
    timeout: Optional[float] = 30.0,
) -> tuple[MatchReport, MatchReport]:
    """
    Run the protocol between a local pattern holder and text holder.

    Returns:
        (pattern holder's report, text holder's report)

    Raises:
        The first party's exception if either party fails
    """
    pattern, text = to_bytes(pattern), to_bytes(text)
    pattern_holder_id = PeerId(pattern_holder_id)
    pattern_end, text_end = LocalChannel.pair(timeout=timeout)

    with ThreadPoolExecutor(max_workers=2) as pool:
        pattern_future = pool.submit(
            run_party, pattern_end, RoleName.PATTERN_HOLDER, pattern_holder_id,
            pattern, len(text), num_repetitions, compressor,
        )
        pattern_future.add_done_callback(_close_on_error(pattern_end))
        text_future = pool.submit(
            run_party, text_end, RoleName.TEXT_HOLDER, pattern_holder_id.peer,
            text, len(pattern), num_repetitions, compressor,
        )
        text_future.add_done_callback(_close_on_error(text_end))

        pattern_report = pattern_future.result()
        text_report = text_future.result()

    return pattern_report, text_report
