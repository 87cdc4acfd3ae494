"""
Tests for the compression functions, the DPF and the dealer.
"""

import hashlib
import hmac

import pytest

from spm.backend.dealer import SEED_SIZE, Dealer
from spm.primitives import BLOCK_SIZE, DIGEST_SIZE, AESCompressor, HMACCompressor
from spm.primitives import dpf


class TestAESCompressor:
    """Fixed-key AES compression."""

    def test_output_size(self):
        digest = AESCompressor().compress(bytes(BLOCK_SIZE))
        assert len(digest) == DIGEST_SIZE

    def test_deterministic(self):
        block = bytes(range(100, 116))
        assert AESCompressor().compress(block) == AESCompressor().compress(block)

    def test_different_blocks_differ(self):
        c = AESCompressor()
        assert c.compress(bytes(16)) != c.compress(bytes(15) + b"\x01")

    def test_halves_differ(self):
        """The tweaked second half is not a copy of the first."""
        digest = AESCompressor().compress(b"abcdefghijklmnop")
        assert digest[:16] != digest[16:]

    def test_key_changes_output(self):
        block = bytes(16)
        assert AESCompressor(bytes(16)).compress(block) != AESCompressor().compress(block)

    def test_bad_key(self):
        with pytest.raises(ValueError):
            AESCompressor(b"short")

    def test_bad_block(self):
        with pytest.raises(ValueError):
            AESCompressor().compress(bytes(15))


class TestHMACCompressor:
    """HMAC-SHA-256 compression."""

    def test_matches_hmac(self):
        key = b"k" * 32
        block = bytes(range(16))
        expected = hmac.new(key, block, hashlib.sha256).digest()
        assert HMACCompressor(key).compress(block) == expected

    def test_output_size(self):
        assert len(HMACCompressor().compress(bytes(16))) == DIGEST_SIZE

    def test_empty_key(self):
        with pytest.raises(ValueError):
            HMACCompressor(b"")

    def test_bad_block(self):
        with pytest.raises(ValueError):
            HMACCompressor().compress(bytes(17))


class TestDPF:
    """Point function keys over the 8-bit domain."""

    @pytest.mark.parametrize("alpha", [0, 1, 77, 128, 255])
    def test_point_function(self, alpha):
        key0, key1 = dpf.gen(alpha)
        for x in range(256):
            bit = dpf.eval_point(key0, x) ^ dpf.eval_point(key1, x)
            assert bit == (1 if x == alpha else 0), f"x={x}"

    def test_small_domain(self):
        key0, key1 = dpf.gen(5, domain_bits=3)
        outputs = [dpf.eval_point(key0, x) ^ dpf.eval_point(key1, x) for x in range(8)]
        assert outputs == [0, 0, 0, 0, 0, 1, 0, 0]

    def test_alpha_out_of_range(self):
        with pytest.raises(ValueError):
            dpf.gen(256)

    def test_deterministic_randomness(self):
        """Same seed source, same keys."""
        def source():
            state = iter(range(1000))
            return lambda n: bytes(next(state) % 256 for _ in range(n))

        a0, a1 = dpf.gen(42, randbytes=source())
        b0, b1 = dpf.gen(42, randbytes=source())
        assert a0 == b0
        assert a1 == b1

    def test_keys_share_corrections(self):
        key0, key1 = dpf.gen(9)
        assert key0.correction_words == key1.correction_words
        assert (key0.bit, key1.bit) == (0, 1)
        assert key0.seed != key1.seed


class TestDealer:
    """Correlated randomness derived from a shared seed."""

    def test_seed_size(self):
        with pytest.raises(ValueError):
            Dealer(bytes(SEED_SIZE - 1))

    def test_beaver_triples(self):
        dealer = Dealer.random()
        for index in range(64):
            t0 = dealer.beaver_triple(index, 0)
            t1 = dealer.beaver_triple(index, 1)
            assert t0.c ^ t1.c == (t0.a ^ t1.a) & (t0.b ^ t1.b)

    def test_zero_test_material(self):
        dealer = Dealer.random()
        for index in range(8):
            m0 = dealer.zero_test(index, 0)
            m1 = dealer.zero_test(index, 1)
            r = (m0.mask + m1.mask) % 256
            for x in range(256):
                bit = dpf.eval_point(m0.key, x) ^ dpf.eval_point(m1.key, x)
                assert bit == (1 if x == r else 0)

    def test_both_parties_derive_same_material(self):
        seed = bytes(range(SEED_SIZE))
        assert Dealer(seed).beaver_triple(3, 1) == Dealer(seed).beaver_triple(3, 1)
        assert Dealer(seed).zero_test(3, 0) == Dealer(seed).zero_test(3, 0)

    def test_children_are_independent(self):
        dealer = Dealer.random()
        seeds = {dealer.child(i).seed for i in range(10)}
        assert len(seeds) == 10
        assert dealer.seed not in seeds
        assert dealer.child(4).seed == dealer.child(4).seed
