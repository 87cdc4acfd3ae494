"""
Digest stage: compress a masked-difference vector to a fixed-size digest.

The vector is packed into one compression block: zero padded when shorter
than BLOCK_SIZE, longer vectors fold byte i into offset i mod BLOCK_SIZE
with XOR. Identical vectors always give identical digests.
"""

from typing import Optional

from ..primitives import BLOCK_SIZE, AESCompressor, CompressorProtocol


def pack_block(vector: bytes) -> bytes:
    """Pack a vector of any length into exactly BLOCK_SIZE bytes."""
    block = bytearray(BLOCK_SIZE)
    block[:min(len(vector), BLOCK_SIZE)] = vector[:BLOCK_SIZE]
    for i in range(BLOCK_SIZE, len(vector)):
        block[i % BLOCK_SIZE] ^= vector[i]
    return bytes(block)


def compute_digests(
    vectors: list[bytes], compressor: Optional[CompressorProtocol] = None
) -> list[bytes]:
    """One digest per window's masked-difference vector."""
    compressor = compressor or AESCompressor()
    return [compressor.compress(pack_block(v)) for v in vectors]
