"""
Distributed point function over a small domain with 1-bit output.

Two-party GGM-tree construction (Boyle, Gilboa, Ishai). gen(alpha) produces
keys k0, k1 such that eval(k0, x) ⊕ eval(k1, x) = 1 if x == alpha else 0.
Neither key alone reveals alpha.

The PRG expands a 16-byte seed with AES-128 in counter form: the seed is the
AES key, blocks 0 and 1 give the left and right children.
"""

import secrets
from dataclasses import dataclass
from typing import Callable

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

SEED_SIZE = 16
DOMAIN_BITS = 8

_PRG_INPUT = bytes(15) + b"\x00" + bytes(15) + b"\x01"


@dataclass
class CorrectionWord:
    """Per-level correction: seed correction and control-bit corrections."""

    seed: bytes
    bit_left: int
    bit_right: int


@dataclass
class DPFKey:
    """One party's DPF key."""

    party_id: int
    seed: bytes
    bit: int  # initial control bit: 0 for party 0, 1 for party 1
    correction_words: list[CorrectionWord]
    output_cw: int
    domain_bits: int = DOMAIN_BITS


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def _prg(seed: bytes) -> tuple[bytes, bytes, int, int]:
    """Expand a seed into (left seed, right seed, left bit, right bit)."""
    encryptor = Cipher(algorithms.AES(seed), modes.ECB()).encryptor()
    out = encryptor.update(_PRG_INPUT) + encryptor.finalize()
    left, right = out[:SEED_SIZE], out[SEED_SIZE:]
    t_left, t_right = left[0] & 1, right[0] & 1
    # Control bits are taken from the low bit, which is cleared in the seed.
    left = bytes([left[0] & 0xFE]) + left[1:]
    right = bytes([right[0] & 0xFE]) + right[1:]
    return left, right, t_left, t_right


def _bit_at(value: int, domain_bits: int, level: int) -> int:
    """Bit of value used at tree level (0 = most significant)."""
    return (value >> (domain_bits - 1 - level)) & 1


def _output_bit(seed: bytes) -> int:
    return seed[-1] & 1


def gen(
    alpha: int,
    domain_bits: int = DOMAIN_BITS,
    randbytes: Callable[[int], bytes] = secrets.token_bytes,
) -> tuple[DPFKey, DPFKey]:
    """
    Generate DPF keys for the point function at alpha.

    Args:
        alpha: Point where the shared output is 1
        domain_bits: Domain size in bits
        randbytes: Source of root seeds (deterministic sources allowed)

    Returns:
        (key for party 0, key for party 1)
    """
    if not 0 <= alpha < (1 << domain_bits):
        raise ValueError(f"alpha out of range for {domain_bits}-bit domain: {alpha}")

    root0, root1 = randbytes(SEED_SIZE), randbytes(SEED_SIZE)
    s0, s1 = root0, root1
    t0, t1 = 0, 1
    correction_words = []

    for level in range(domain_bits):
        s0_l, s0_r, t0_l, t0_r = _prg(s0)
        s1_l, s1_r, t1_l, t1_r = _prg(s1)
        a = _bit_at(alpha, domain_bits, level)

        if a == 0:
            s_cw = _xor(s0_r, s1_r)
        else:
            s_cw = _xor(s0_l, s1_l)
        t_cw_l = t0_l ^ t1_l ^ a ^ 1
        t_cw_r = t0_r ^ t1_r ^ a
        correction_words.append(CorrectionWord(seed=s_cw, bit_left=t_cw_l, bit_right=t_cw_r))

        if a == 0:
            keep0, keep1, tk0, tk1, t_cw = s0_l, s1_l, t0_l, t1_l, t_cw_l
        else:
            keep0, keep1, tk0, tk1, t_cw = s0_r, s1_r, t0_r, t1_r, t_cw_r

        s0 = _xor(keep0, s_cw) if t0 else keep0
        s1 = _xor(keep1, s_cw) if t1 else keep1
        t0 = tk0 ^ (t0 & t_cw)
        t1 = tk1 ^ (t1 & t_cw)

    output_cw = 1 ^ _output_bit(s0) ^ _output_bit(s1)

    key0 = DPFKey(0, root0, 0, correction_words, output_cw, domain_bits)
    key1 = DPFKey(1, root1, 1, correction_words, output_cw, domain_bits)
    return key0, key1


def eval_point(key: DPFKey, x: int) -> int:
    """
    Evaluate one party's key at x.

    Returns:
        This party's XOR share of [x == alpha]
    """
    seed, t = key.seed, key.bit
    for level in range(key.domain_bits):
        s_l, s_r, t_l, t_r = _prg(seed)
        cw = key.correction_words[level]
        if t:
            s_l = _xor(s_l, cw.seed)
            s_r = _xor(s_r, cw.seed)
            t_l ^= cw.bit_left
            t_r ^= cw.bit_right
        if _bit_at(x, key.domain_bits, level) == 0:
            seed, t = s_l, t_l
        else:
            seed, t = s_r, t_r
    return _output_bit(seed) ^ (t & key.output_cw)
