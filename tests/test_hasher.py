"""
Unit tests for the hash algorithms and the per-file digest tasks.
Verifies streaming content digests, the reserved empty digest and fuzzy-hash size gating.
"""
import pytest
import xxhash

from clutterscope.core.hasher import (
    XXHashAlgorithmImpl, CTPHAlgorithmImpl, EMPTY_CONTENT_DIGEST, FuzzyHashTooSmall,
    READ_CHUNK_SIZE, compute_content_digest_of, compute_fuzzy_digest_of,
)
from clutterscope.core.fuzzy import ctph_hash, STREAM_BUFFER_SIZE


class TestContentDigest:
    def test_matches_one_shot_xxhash(self, temp_dir):
        """Streaming in chunks gives the same digest as hashing all bytes at once."""
        data = b"0123456789" * (READ_CHUNK_SIZE // 5)
        path = temp_dir / "big.bin"
        path.write_bytes(data)

        digest = compute_content_digest_of(str(path), len(data), XXHashAlgorithmImpl())
        assert digest == xxhash.xxh3_128(data).hexdigest()
        assert digest == XXHashAlgorithmImpl.hash(data)

    def test_identical_content_identical_digest(self, test_files):
        algorithm = XXHashAlgorithmImpl()
        a = compute_content_digest_of(str(test_files["dup_a.txt"]), 1024, algorithm)
        b = compute_content_digest_of(str(test_files["dup_b.txt"]), 1024, algorithm)
        c = compute_content_digest_of(str(test_files["same_size.txt"]), 1024, algorithm)
        assert a == b
        assert a != c

    def test_empty_file_gets_reserved_digest_without_reading(self, temp_dir):
        """Zero-byte files collapse to one digest; the file need not even exist."""
        assert compute_content_digest_of(str(temp_dir / "missing"), 0, XXHashAlgorithmImpl()) == EMPTY_CONTENT_DIGEST

    def test_unreadable_file_raises_oserror(self, temp_dir):
        with pytest.raises(OSError):
            compute_content_digest_of(str(temp_dir / "gone.txt"), 10, XXHashAlgorithmImpl())


class TestFuzzyDigest:
    def test_small_file_has_no_fuzzy_digest(self, test_files):
        with pytest.raises(FuzzyHashTooSmall):
            compute_fuzzy_digest_of(str(test_files["unique.txt"]), 1500, 4096, CTPHAlgorithmImpl())

    def test_ssdeep_format_and_self_similarity(self, temp_dir, random_bytes):
        data = random_bytes(32 * 1024, seed=1)
        path = temp_dir / "doc.bin"
        path.write_bytes(data)

        digest = compute_fuzzy_digest_of(str(path), len(data), 4096, CTPHAlgorithmImpl())

        block_size, first, second = digest.split(":", 2)
        assert int(block_size) > 0 and first and second
        assert CTPHAlgorithmImpl().compare(digest, digest) == 100

    def test_file_digest_matches_in_memory_digest(self, temp_dir, random_bytes):
        """Reading the file buffer by buffer gives the digest of its whole content."""
        data = random_bytes(3 * STREAM_BUFFER_SIZE + 1234, seed=4)
        path = temp_dir / "large.bin"
        path.write_bytes(data)

        assert CTPHAlgorithmImpl().hash_file(str(path)) == ctph_hash(data)

    def test_unrelated_content_scores_low(self, temp_dir, random_bytes):
        algorithm = CTPHAlgorithmImpl()
        left = temp_dir / "left.bin"
        right = temp_dir / "right.bin"
        left.write_bytes(random_bytes(32 * 1024, seed=2))
        right.write_bytes(random_bytes(32 * 1024, seed=3))

        score = algorithm.compare(algorithm.hash_file(str(left)), algorithm.hash_file(str(right)))
        assert 0 <= score < 50
