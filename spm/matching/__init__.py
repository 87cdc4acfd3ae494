"""
Two-party secure exact pattern matching.

The pattern holder and the text holder additively share their bytes, derive
per-window masked differences that coincide exactly at matching windows,
compress them to digests, and compare the digests with a secure equality
circuit. Both parties learn which windows match.
"""

from .params import ProtocolParams, RoleName, sliding_windows
from .roles import PatternHolderRole, TextHolderRole, make_role
from .digest import compute_digests, pack_block
from .messages import MatchReport, RepetitionResult, WindowMatch
from .protocol import (
    Phase,
    agree_on_params,
    build_equality_circuit,
    run_exact_match,
    run_repetition,
    share_digests,
)

__all__ = [
    "ProtocolParams",
    "RoleName",
    "sliding_windows",
    "PatternHolderRole",
    "TextHolderRole",
    "make_role",
    "compute_digests",
    "pack_block",
    "MatchReport",
    "RepetitionResult",
    "WindowMatch",
    "Phase",
    "agree_on_params",
    "build_equality_circuit",
    "run_exact_match",
    "run_repetition",
    "share_digests",
]
