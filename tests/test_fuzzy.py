"""
Unit tests for context-triggered piecewise hashing.
Verifies digest format, edit tolerance and comparison across block sizes.
"""
import io

import pytest
import xxhash

from clutterscope.core.fuzzy import (
    CTPHState, ctph_hash, ctph_hash_stream, ctph_compare, parse_digest,
    B64, MIN_BLOCKSIZE, ROLLING_WINDOW, SPAMSUM_LENGTH,
)


def byte_by_byte_ctph(data: bytes) -> str:
    """Straightforward per-byte rendition of the digest, used as a reference."""
    def chunk_char(start, stop):
        return B64[xxhash.xxh32_intdigest(data[start:stop]) & 63]

    def signatures(block_size):
        window = [0] * ROLLING_WINDOW
        h1 = h2 = h3 = 0
        sig1, sig2 = [], []
        start1 = start2 = 0
        for i, c in enumerate(data):
            slot = i % ROLLING_WINDOW
            h2 = h2 - h1 + ROLLING_WINDOW * c
            h1 = h1 + c - window[slot]
            window[slot] = c
            h3 = ((h3 << 5) & 0xFFFFFFFF) ^ c
            rolling = (h1 + h2 + h3) & 0xFFFFFFFF
            if rolling % block_size == block_size - 1:
                if len(sig1) < SPAMSUM_LENGTH - 1:
                    sig1.append(chunk_char(start1, i + 1))
                    start1 = i + 1
                if rolling % (2 * block_size) == 2 * block_size - 1 and len(sig2) < SPAMSUM_LENGTH // 2 - 1:
                    sig2.append(chunk_char(start2, i + 1))
                    start2 = i + 1
        if start1 < len(data):
            sig1.append(chunk_char(start1, len(data)))
        if start2 < len(data):
            sig2.append(chunk_char(start2, len(data)))
        return "".join(sig1), "".join(sig2)

    block_size = MIN_BLOCKSIZE
    while block_size * SPAMSUM_LENGTH < len(data):
        block_size *= 2
    while True:
        sig1, sig2 = signatures(block_size)
        if block_size > MIN_BLOCKSIZE and len(sig1) < SPAMSUM_LENGTH // 2:
            block_size //= 2
            continue
        return f"{block_size}:{sig1}:{sig2}"


class TestCtphHash:
    def test_digest_format(self, random_bytes):
        block_size, sig1, sig2 = parse_digest(ctph_hash(random_bytes(32 * 1024, seed=10)))
        assert block_size >= MIN_BLOCKSIZE
        assert block_size % MIN_BLOCKSIZE == 0
        assert 0 < len(sig1) <= SPAMSUM_LENGTH
        assert 0 < len(sig2) <= SPAMSUM_LENGTH // 2

    @pytest.mark.parametrize("length, seed", [(0, 1), (5, 2), (100, 3), (4096, 4), (40_000, 5), (300_000, 6)])
    def test_matches_byte_by_byte_reference(self, random_bytes, length, seed):
        data = random_bytes(length, seed=seed)
        assert ctph_hash(data) == byte_by_byte_ctph(data)

    def test_low_entropy_input_matches_reference(self):
        """Repetitive content has few boundaries and falls back to small block sizes."""
        data = b"abcdefgh" * 5000 + b"tail"
        assert ctph_hash(data) == byte_by_byte_ctph(data)

    @pytest.mark.parametrize("buffer_size", [1, 7, 1000, 4099])
    def test_buffer_boundaries_do_not_change_digest(self, random_bytes, buffer_size):
        data = random_bytes(5000, seed=18)
        state = CTPHState(size_hint=len(data))
        for offset in range(0, len(data), buffer_size):
            state.update(data[offset:offset + buffer_size])
        assert state.digest() == ctph_hash(data)

    def test_stream_matches_bytes(self, random_bytes):
        data = random_bytes(70_000, seed=19)
        assert ctph_hash_stream(io.BytesIO(data), size_hint=len(data)) == ctph_hash(data)

    def test_deterministic(self, random_bytes):
        data = random_bytes(16 * 1024, seed=11)
        assert ctph_hash(data) == ctph_hash(bytes(data))

    def test_small_edit_keeps_high_similarity(self, random_bytes):
        """Changing a few bytes only alters the chunks around the edit."""
        original = random_bytes(32 * 1024, seed=12)
        edited = original[:16000] + b"EDITED-BYTES" + original[16012:]
        assert ctph_compare(ctph_hash(original), ctph_hash(edited)) >= 80

    def test_appended_data_keeps_similarity(self, random_bytes):
        original = random_bytes(32 * 1024, seed=13)
        extended = original + random_bytes(1024, seed=14)
        assert ctph_compare(ctph_hash(original), ctph_hash(extended)) >= 60

    def test_unrelated_content_scores_zero(self, random_bytes):
        left = ctph_hash(random_bytes(32 * 1024, seed=15))
        right = ctph_hash(random_bytes(32 * 1024, seed=16))
        assert ctph_compare(left, right) == 0


class TestCtphCompare:
    def test_identical_digests(self):
        assert ctph_compare("96:ABCDEFGHIJ:KLMN", "96:ABCDEFGHIJ:KLMN") == 100

    def test_symmetric(self, random_bytes):
        original = random_bytes(20 * 1024, seed=17)
        edited = original[:5000] + b"xyz" + original[5003:]
        a, b = ctph_hash(original), ctph_hash(edited)
        assert ctph_compare(a, b) == ctph_compare(b, a)

    def test_block_sizes_differing_by_factor_two(self):
        """sig1 at 96 is comparable with sig2 of a digest at 48."""
        assert ctph_compare("96:ABCDEFGHIJ:KLMN", "48:zyxwvutsrq:ABCDEFGHIJ") == 100
        assert ctph_compare("48:zyxwvutsrq:ABCDEFGHIJ", "96:ABCDEFGHIJ:KLMN") == 100

    def test_incomparable_block_sizes(self):
        assert ctph_compare("96:ABCDEFGHIJ:KLMN", "12:ABCDEFGHIJ:KLMN") == 0

    def test_no_common_substring_scores_zero(self):
        assert ctph_compare("96:ABCDEFGHIJ:", "96:ABCDEFxHIJ:") == 0

    def test_runs_are_collapsed(self):
        assert ctph_compare("96:AAAAAAABCDEFGH:", "96:AAABCDEFGH:") == 100

    def test_small_block_size_caps_score(self):
        """At block size 3 a 10-character signature can score at most 10."""
        assert ctph_compare("3:ABCDEFGHIJ:", "3:ABCDEFGHIJK:") <= 10

    @pytest.mark.parametrize("digest", ["garbage", "x:ABC:DEF"])
    def test_malformed_digest_raises(self, digest):
        with pytest.raises(ValueError):
            ctph_compare(digest, "96:ABCDEFGHIJ:KLMN")
