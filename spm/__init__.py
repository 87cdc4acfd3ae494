"""
SPM: two-party secure exact pattern matching.

One party holds a pattern, the other a text. Both learn which text windows
equal the pattern, and nothing else about the other's input.

Modules:
- primitives: keyed compression functions and the DPF
- protocols: interface of the secret-sharing backend
- backend: reference two-party backend (engine, channels, dealer, stats)
- matching: the matching protocol (windows, roles, digests, equality circuit)
- session: one party's full run over a channel
- simulate: both parties in one process
"""

from . import primitives
from . import protocols
from . import backend
from . import matching
from .errors import BackendFailure, InvalidInput, NotReady, SPMError
from .party import PeerId
from .session import run_party
from .simulate import run_local

__version__ = "0.1.0"
__all__ = [
    "primitives",
    "protocols",
    "backend",
    "matching",
    "BackendFailure",
    "InvalidInput",
    "NotReady",
    "SPMError",
    "PeerId",
    "run_party",
    "run_local",
]
