"""
Test helper functions.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from spm.backend import Dealer, LocalChannel, TwoPartyBackend
from spm.party import PeerId


def run_pair(
    fn0: Callable[[LocalChannel], Any],
    fn1: Callable[[LocalChannel], Any],
    timeout: float = 10.0,
) -> tuple[Any, Any]:
    """
    Run fn0 and fn1 concurrently on the two ends of a LocalChannel.

    Returns:
        (outcome 0, outcome 1), each the function's result or the exception
        it raised. A failing side closes its end so the other stops waiting.
    """
    ch0, ch1 = LocalChannel.pair(timeout=timeout)

    def guarded(fn, channel):
        try:
            return fn(channel)
        except Exception as e:
            channel.close()
            return e

    with ThreadPoolExecutor(max_workers=2) as pool:
        f0 = pool.submit(guarded, fn0, ch0)
        f1 = pool.submit(guarded, fn1, ch1)
        return f0.result(), f1.result()


def run_backends(
    fn0: Callable[[TwoPartyBackend], Any],
    fn1: Callable[[TwoPartyBackend], Any],
    timeout: float = 10.0,
) -> tuple[Any, Any]:
    """Like run_pair, but hands each side a TwoPartyBackend sharing one dealer."""
    dealer = Dealer.random()
    return run_pair(
        lambda ch: fn0(TwoPartyBackend(ch, PeerId.FIRST, dealer)),
        lambda ch: fn1(TwoPartyBackend(ch, PeerId.SECOND, dealer)),
        timeout,
    )


def expected_matches(pattern: bytes, text: bytes) -> list[bool]:
    """Plaintext reference for which windows equal the pattern."""
    m = len(pattern)
    return [text[w:w + m] == pattern for w in range(len(text) - m + 1)]
