"""
Unit tests for the hashing stages of the analysis pipeline.
Verifies digest write-back, per-file skips, size gating and cancellation.
"""
import pytest

from clutterscope.core.stages import ContentHashStage, FuzzyHashStage, collect_and_hash
from clutterscope.core.hasher import EMPTY_CONTENT_DIGEST
from clutterscope.core.models import FileRecord, AnalysisCancelled


def records_for(paths):
    return [FileRecord(str(p), p.stat().st_size) for p in paths]


class TestContentHashStage:
    def test_hashes_every_readable_record(self, test_files):
        records = records_for([test_files["dup_a.txt"], test_files["dup_b.txt"], test_files["unique.txt"]])
        hashed, skipped = ContentHashStage(max_workers=1).process(records)

        assert len(hashed) == 3
        assert skipped == []
        assert records[0].content_digest == records[1].content_digest
        assert records[0].content_digest != records[2].content_digest

    def test_thread_pool_gives_same_digests(self, test_files):
        paths = [test_files[n] for n in ("dup_a.txt", "dup_b.txt", "dup_c.txt", "same_size.txt")]
        serial = records_for(paths)
        pooled = records_for(paths)
        ContentHashStage(max_workers=1).process(serial)
        ContentHashStage(max_workers=4).process(pooled)
        assert [r.content_digest for r in serial] == [r.content_digest for r in pooled]

    def test_unreadable_file_is_skipped_not_fatal(self, test_files, temp_dir):
        """A file removed after scanning is reported, the others are still hashed."""
        records = records_for([test_files["dup_a.txt"]])
        records.append(FileRecord(str(temp_dir / "vanished.txt"), 42))

        hashed, skipped = ContentHashStage(max_workers=1).process(records)

        assert [r.path for r in hashed] == [str(test_files["dup_a.txt"])]
        assert len(skipped) == 1
        assert skipped[0].path == str(temp_dir / "vanished.txt")
        assert skipped[0].stage == "content-hash"
        assert "FileNotFoundError" in skipped[0].reason
        assert records[1].content_digest is None

    def test_empty_files_share_reserved_digest(self, test_files):
        records = records_for([test_files["empty1.txt"], test_files["empty2.txt"]])
        ContentHashStage(max_workers=1).process(records)
        assert {r.content_digest for r in records} == {EMPTY_CONTENT_DIGEST}

    def test_already_hashed_records_are_not_rehashed(self, temp_dir):
        record = FileRecord(str(temp_dir / "missing.txt"), 10, content_digest="precomputed")
        hashed, skipped = ContentHashStage(max_workers=1).process([record])
        assert hashed == [record]
        assert skipped == []

    def test_cancel_before_start(self, test_files):
        records = records_for([test_files["dup_a.txt"]])
        with pytest.raises(AnalysisCancelled):
            ContentHashStage(max_workers=1).process(records, stopped_flag=lambda: True)
        assert records[0].content_digest is None

    def test_progress_reported_per_file(self, test_files):
        records = records_for([test_files["dup_a.txt"], test_files["dup_b.txt"]])
        calls = []
        ContentHashStage(max_workers=1).process(
            records, progress_callback=lambda stage, done, total: calls.append((stage, done, total)))
        assert calls == [("content-hash", 1, 2), ("content-hash", 2, 2)]

    def test_collect_and_hash_drains_iterables(self, test_files):
        records = records_for([test_files["dup_a.txt"], test_files["dup_b.txt"]])
        hashed, skipped = collect_and_hash(iter(records), max_workers=1)
        assert len(hashed) == 2
        assert skipped == []


class TestFuzzyHashStage:
    def test_small_files_are_absent_without_warning(self, test_files, table_algorithm):
        records = records_for([test_files["unique.txt"]])
        stage = FuzzyHashStage(algorithm=table_algorithm(), min_size=4096, max_workers=1)
        hashed, skipped = stage.process(records)
        assert hashed == []
        assert skipped == []
        assert records[0].fuzzy_digest is None

    def test_large_enough_files_get_digest(self, temp_dir, table_algorithm):
        path = temp_dir / "big.bin"
        path.write_bytes(b"x" * 5000)
        records = records_for([path])
        hashed, _ = FuzzyHashStage(algorithm=table_algorithm(), min_size=4096, max_workers=1).process(records)
        assert hashed == records
        assert records[0].fuzzy_digest == "big.bin"

    def test_files_above_cap_are_skipped_with_reason(self, temp_dir, table_algorithm):
        path = temp_dir / "huge.bin"
        path.write_bytes(b"x" * 9000)
        stage = FuzzyHashStage(algorithm=table_algorithm(), min_size=10, max_size=8000, max_workers=1)
        hashed, skipped = stage.process(records_for([path]))
        assert hashed == []
        assert skipped[0].stage == "fuzzy-hash"
        assert "8000" in skipped[0].reason

    def test_hashing_failure_is_skipped(self, temp_dir):
        class BrokenAlgorithm:
            def hash_file(self, path):
                raise RuntimeError("corrupt input")

            def compare(self, left, right):
                return 0

        path = temp_dir / "bad.bin"
        path.write_bytes(b"x" * 5000)
        hashed, skipped = FuzzyHashStage(algorithm=BrokenAlgorithm(), max_workers=1).process(records_for([path]))
        assert hashed == []
        assert "corrupt input" in skipped[0].reason

    def test_real_fuzzy_digest_in_process_pool(self, temp_dir, random_bytes):
        paths = []
        for seed in (1, 2):
            path = temp_dir / f"doc{seed}.bin"
            path.write_bytes(random_bytes(8 * 1024, seed=seed))
            paths.append(path)
        records = records_for(paths)
        hashed, skipped = FuzzyHashStage(max_workers=2).process(records)
        assert len(hashed) == 2
        assert all(r.fuzzy_digest.count(":") == 2 for r in records)
