"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Hashing stages of the analysis pipeline.

CLASS HIERARCHY
---------------
HashStageBase      : Shared fan-out / reduce loop, skip bookkeeping and progress reporting
ContentHashStage   : Strong content digest per file (thread pool, I/O bound)
FuzzyHashStage     : ssdeep digest per file (process pool, CPU bound pure Python)

STAGE CONTRACTS
---------------
Each stage implements a consistent `process()` interface that:
  • Accepts the records to hash
  • Maps one task per record onto a worker pool; a task returns either a digest
    or the reason it failed, never touching the record itself
  • Writes digests back onto the records in the calling thread afterwards
  • Returns (records with a digest, skipped files)
  • Reports progress via callback (stage name, processed count, total count)
  • Respects cancellation via stopped_flag callback
"""

import logging
from typing import List, Optional, Callable, Tuple, Iterable

from clutterscope.core.models import FileRecord, SkippedFile, AnalysisCancelled, Stage
from clutterscope.core.hasher import (
    XXHashAlgorithmImpl, CTPHAlgorithmImpl, FuzzyHashTooSmall,
    compute_content_digest_of, compute_fuzzy_digest_of,
)
from clutterscope.core.interfaces import HashStage, HashAlgorithm, FuzzyHashAlgorithm
from clutterscope.core.parallel import parallel_map

logger = logging.getLogger(__name__)

# Outcome of one task: (digest, None), (None, reason) or (None, None) for "absent, no warning"
TaskResult = Tuple[Optional[str], Optional[str]]


def _content_task(path: str, size_bytes: int, algorithm: HashAlgorithm) -> TaskResult:
    try:
        return compute_content_digest_of(path, size_bytes, algorithm), None
    except OSError as e:
        return None, f"{type(e).__name__}: {e}"


def _fuzzy_task(path: str, size_bytes: int, min_size: int, max_size: Optional[int],
                algorithm: FuzzyHashAlgorithm) -> TaskResult:
    if max_size is not None and size_bytes > max_size:
        return None, f"larger than fuzzy-hash limit of {max_size} bytes"
    try:
        return compute_fuzzy_digest_of(path, size_bytes, min_size, algorithm), None
    except FuzzyHashTooSmall:
        return None, None
    except Exception as e:
        # Any failure inside the fuzzy algorithm is a per-file skip
        return None, f"{type(e).__name__}: {e}"


class HashStageBase(HashStage):
    """
    Base class for hashing stages.
    Subclasses supply the task, its arguments and where the digest is stored.
    """
    use_processes = False

    def __init__(self, max_workers: Optional[int] = None):
        self.max_workers = max_workers

    def get_stage_name(self) -> str:
        raise NotImplementedError

    def _cached(self, record: FileRecord) -> Optional[str]:
        raise NotImplementedError

    def _store(self, record: FileRecord, digest: str) -> None:
        raise NotImplementedError

    def _task(self) -> Callable[..., TaskResult]:
        raise NotImplementedError

    def _task_args(self, record: FileRecord) -> Tuple:
        raise NotImplementedError

    def process(
        self,
        records: List[FileRecord],
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Tuple[List[FileRecord], List[SkippedFile]]:
        if stopped_flag and stopped_flag():
            raise AnalysisCancelled(f"Cancelled before {self.get_stage_name()}")

        pending = [r for r in records if self._cached(r) is None]
        stage_name = self.get_stage_name()

        def on_progress(done: int, total: int) -> None:
            if progress_callback:
                progress_callback(stage_name, done, total)

        results = parallel_map(
            self._task(),
            [self._task_args(r) for r in pending],
            max_workers=self.max_workers,
            use_processes=self.use_processes,
            stopped_flag=stopped_flag,
            progress_callback=on_progress,
        )
        if len(results) != len(pending):
            raise AnalysisCancelled(f"Cancelled during {stage_name}")

        skipped: List[SkippedFile] = []
        for record, (digest, reason) in zip(pending, results):
            if digest is not None:
                self._store(record, digest)
            elif reason is not None:
                logger.warning(f"Skipping {record.path} in {stage_name}: {reason}")
                skipped.append(SkippedFile(path=record.path, stage=stage_name, reason=reason))

        hashed = [r for r in records if self._cached(r) is not None]
        logger.debug(f"{stage_name}: {len(hashed)} hashed, {len(skipped)} skipped")
        return hashed, skipped


class ContentHashStage(HashStageBase):
    def __init__(self, algorithm: HashAlgorithm = None, max_workers: Optional[int] = None):
        super().__init__(max_workers)
        self.algorithm = algorithm or XXHashAlgorithmImpl()

    def get_stage_name(self) -> str:
        return Stage.CONTENT_HASH.value

    def _cached(self, record: FileRecord) -> Optional[str]:
        return record.content_digest

    def _store(self, record: FileRecord, digest: str) -> None:
        record.set_content_digest(digest)

    def _task(self):
        return _content_task

    def _task_args(self, record: FileRecord) -> Tuple:
        return record.path, record.size_bytes, self.algorithm


class FuzzyHashStage(HashStageBase):
    use_processes = True

    def __init__(self, algorithm: FuzzyHashAlgorithm = None, min_size: int = 4096,
                 max_size: Optional[int] = None, max_workers: Optional[int] = None):
        super().__init__(max_workers)
        self.algorithm = algorithm or CTPHAlgorithmImpl()
        self.min_size = min_size
        self.max_size = max_size

    def get_stage_name(self) -> str:
        return Stage.FUZZY_HASH.value

    def _cached(self, record: FileRecord) -> Optional[str]:
        return record.fuzzy_digest

    def _store(self, record: FileRecord, digest: str) -> None:
        record.set_fuzzy_digest(digest)

    def _task(self):
        return _fuzzy_task

    def _task_args(self, record: FileRecord) -> Tuple:
        return record.path, record.size_bytes, self.min_size, self.max_size, self.algorithm


def collect_and_hash(
        records: Iterable[FileRecord],
        max_workers: Optional[int] = None,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
) -> Tuple[List[FileRecord], List[SkippedFile]]:
    """
    Drain the record stream and populate content digests in parallel.
    Unreadable files are skipped with a warning; the run never aborts on them.
    """
    stage = ContentHashStage(max_workers=max_workers)
    return stage.process(list(records), stopped_flag=stopped_flag, progress_callback=progress_callback)
