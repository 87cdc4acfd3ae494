"""
Keyed compression functions.

A compression function maps a 16-byte block to a 32-byte digest. It must be
deterministic and collision-resistant, and keep no state between calls.
Both parties must use the same key; the key is a public protocol constant.
"""

import hashlib
import hmac
from typing import Protocol

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

BLOCK_SIZE = 16
DIGEST_SIZE = 32

# Fixed public key shared by both parties.
DEFAULT_KEY = bytes(range(16))


class CompressorProtocol(Protocol):
    """
    Generic keyed compression interface.

    Takes exactly BLOCK_SIZE bytes, returns DIGEST_SIZE bytes.
    """

    @property
    def key(self) -> bytes:
        """Get the compression key."""
        ...

    def compress(self, block: bytes) -> bytes:
        """
        Compress one block.

        Args:
            block: 16-byte input block

        Returns:
            32-byte digest
        """
        ...


def _check_block(block: bytes) -> None:
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"Block must be {BLOCK_SIZE} bytes, got {len(block)}")


class AESCompressor:
    """
    Fixed-key AES-128 compression (Matyas-Meyer-Oseas style).

    digest = (E_k(x) ⊕ x) || (E_k(x ⊕ 1) ⊕ x ⊕ 1), where ⊕ 1 flips the
    lowest bit of the last byte.
    """

    def __init__(self, key: bytes = DEFAULT_KEY):
        if len(key) != 16:
            raise ValueError("Key must be 16 bytes")
        self._key = key
        self._cipher = Cipher(algorithms.AES(key), modes.ECB())

    @property
    def key(self) -> bytes:
        """Get the compression key."""
        return self._key

    def compress(self, block: bytes) -> bytes:
        _check_block(block)
        tweaked = block[:-1] + bytes([block[-1] ^ 1])
        # Fresh encryptor per call: no state carried between digests.
        encryptor = self._cipher.encryptor()
        out = encryptor.update(block + tweaked) + encryptor.finalize()
        left = bytes(a ^ b for a, b in zip(out[:16], block))
        right = bytes(a ^ b for a, b in zip(out[16:], tweaked))
        return left + right


class HMACCompressor:
    """HMAC-SHA-256 compression. Output is the full 32-byte MAC."""

    def __init__(self, key: bytes = DEFAULT_KEY):
        if not key:
            raise ValueError("Key must be non-empty")
        self._key = key

    @property
    def key(self) -> bytes:
        """Get the compression key."""
        return self._key

    def compress(self, block: bytes) -> bytes:
        _check_block(block)
        return hmac.new(self._key, block, hashlib.sha256).digest()
