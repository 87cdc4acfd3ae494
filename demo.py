#!/usr/bin/env python3
"""
Demo and benchmarks for two-party secure exact pattern matching.

Runs both parties in one process over an in-memory channel and checks the
result against a plaintext search.

Usage:
    python3 demo.py                              # "AB" in "XABY"
    python3 demo.py --pattern ZZ --text ABCDE    # custom inputs
    python3 demo.py --random 64 --pattern-len 4  # random text, sliced pattern
    python3 demo.py --repetitions 3 --hmac       # HMAC-SHA-256 digests
"""

import argparse
import secrets
import string
import time

from spm import run_local
from spm.backend.stats import format_bytes, format_time
from spm.matching import ProtocolParams, sliding_windows
from spm.primitives import AESCompressor, HMACCompressor, DIGEST_SIZE


# =============================================================================
# Helpers
# =============================================================================


def random_text(length: int) -> str:
    """Random uppercase text."""
    return "".join(secrets.choice(string.ascii_uppercase) for _ in range(length))


def expected_matches(pattern: bytes, text: bytes) -> list[bool]:
    """Plaintext reference: which windows equal the pattern."""
    return [window == pattern for window in sliding_windows(text, len(pattern))]


# =============================================================================
# Demo
# =============================================================================


def run_demo(pattern: str, text: str, repetitions: int, use_hmac: bool):
    print("=" * 70)
    print("Secure Exact Pattern Matching - Demo & Benchmarks")
    print("=" * 70)

    params = ProtocolParams.for_input("pattern_holder", 0, pattern, len(text.encode()), repetitions)
    num_windows = params.num_windows

    print(f"\n{'Parameters':─^70}")
    print(f"  Pattern:            {pattern!r:>12}  ({params.pattern_size} bytes)")
    print(f"  Text size:          {params.text_size:>12} bytes")
    print(f"  Windows:            {num_windows:>12}")
    print(f"  Character sharings: {params.pattern_size * (num_windows + 1):>12}")
    print(f"  Digest sharings:    {2 * num_windows * DIGEST_SIZE:>12}")
    print(f"  Zero tests:         {num_windows * DIGEST_SIZE:>12}")
    print(f"  Compression:        {'HMAC-SHA-256' if use_hmac else 'AES-128 MMO':>12}")
    print(f"  Repetitions:        {repetitions:>12}")

    compressor = HMACCompressor() if use_hmac else AESCompressor()

    print(f"\n{'Protocol Run':─^70}")
    start = time.perf_counter()
    pattern_report, text_report = run_local(pattern, text, repetitions, compressor)
    total_time = time.perf_counter() - start

    expected = expected_matches(pattern.encode(), text.encode())
    all_correct = all(
        rep.as_bits() == expected
        for report in (pattern_report, text_report)
        for rep in report.repetitions
    )

    last = pattern_report.repetitions[-1]
    print(f"  Correctness:    {'PASS' if all_correct else 'FAIL':>12}")
    print(f"  Pattern found:  {'yes' if last.pattern_found else 'no':>12}")
    print(f"  Matching windows: {last.matching_windows}")

    run_time = pattern_report.stats.run_time
    print(f"\n  Timing breakdown (pattern holder, per repetition):")
    for name in sorted(run_time.timings):
        print(f"    {name + ':':<22}{format_time(run_time.total(name) / repetitions):>10}")
    print(f"    ─────────────────────────────────")
    print(f"    Total (both parties): {format_time(total_time / repetitions):>10}")

    comm = pattern_report.stats.communication
    print(f"\n{'Communication Costs':─^70}")
    print(f"  Rounds:             {run_time.rounds // repetitions:>12}  per repetition")
    print(f"  Sent:               {format_bytes(comm.bytes_sent // repetitions):>12}  per repetition")
    print(f"  Received:           {format_bytes(comm.bytes_received // repetitions):>12}  per repetition")
    print("=" * 70)


# =============================================================================
# Main
# =============================================================================


def main():
    parser = argparse.ArgumentParser(
        description="Secure exact pattern matching demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--pattern", default="AB", help="Pattern (default: AB)")
    parser.add_argument("--text", default="XABY", help="Text (default: XABY)")
    parser.add_argument("--random", type=int, default=None, help="Use a random text of this length")
    parser.add_argument("--pattern-len", type=int, default=3, help="With --random: pattern sliced from the text")
    parser.add_argument("--repetitions", type=int, default=1, help="Number of repetitions")
    parser.add_argument("--hmac", action="store_true", help="Use HMAC-SHA-256 compression")
    args = parser.parse_args()

    pattern, text = args.pattern, args.text
    if args.random:
        text = random_text(args.random)
        offset = secrets.randbelow(args.random - args.pattern_len + 1)
        pattern = text[offset:offset + args.pattern_len]

    run_demo(pattern, text, args.repetitions, args.hmac)


if __name__ == "__main__":
    main()
