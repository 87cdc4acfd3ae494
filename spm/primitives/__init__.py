"""
Cryptographic primitives for secure pattern matching.

- compress: keyed 16 → 32 byte compression functions
- dpf: two-party distributed point function used for zero tests
"""

from .compress import (
    BLOCK_SIZE,
    DIGEST_SIZE,
    AESCompressor,
    CompressorProtocol,
    HMACCompressor,
)
from .dpf import DPFKey

__all__ = [
    "BLOCK_SIZE",
    "DIGEST_SIZE",
    "AESCompressor",
    "CompressorProtocol",
    "HMACCompressor",
    "DPFKey",
]
