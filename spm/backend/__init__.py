"""
Reference two-party secret-sharing backend.

Modules:
- engine: TwoPartyBackend, the gate-level evaluator
- channel: in-process and TCP message channels
- dealer: correlated randomness (Beaver triples, zero-test masks and DPF keys)
- handles: opaque share handles and input slots
- stats: run-time and communication statistics
"""

from .channel import ChannelProtocol, LocalChannel, TCPChannel, open_tcp_channel
from .dealer import Dealer, agree_on_seed
from .engine import TwoPartyBackend
from .handles import InputSlot, ShareHandle, ValueKind
from .stats import BackendStats, CommunicationStats, RunTimeStats, format_stats

__all__ = [
    "ChannelProtocol",
    "LocalChannel",
    "TCPChannel",
    "open_tcp_channel",
    "Dealer",
    "agree_on_seed",
    "TwoPartyBackend",
    "InputSlot",
    "ShareHandle",
    "ValueKind",
    "BackendStats",
    "CommunicationStats",
    "RunTimeStats",
    "format_stats",
]
