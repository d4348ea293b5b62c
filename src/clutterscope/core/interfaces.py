"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the analysis pipeline.

Key Components:
---------------
- HashAlgorithm: Streaming strong hash used for exact-duplicate detection.
- FuzzyHashAlgorithm: Similarity-preserving hash plus its 0-100 comparison.
- FileScanner: Produces the FileRecord stream the core consumes.
- HashStage: A parallel hashing stage of the pipeline.
- Analyzer: Runs every detector over a record set and builds the report.
"""

from typing import Protocol, List, Optional, Callable, Tuple, Iterable, Any
from clutterscope.core.models import FileRecord, SkippedFile, AnalysisParams, AnalysisStats, Report


class HashAlgorithm(Protocol):
    """
    Interface for strong content hash functions.

    Allows plugging in xxHash, BLAKE2 or SHA-256 without touching the grouping logic.
    """
    name: str

    @staticmethod
    def hash(data: bytes) -> str:
        """Hex digest of the provided byte data."""
        ...

    @staticmethod
    def new() -> Any:
        """Incremental hasher exposing update() and hexdigest()."""
        ...


class FuzzyHashAlgorithm(Protocol):
    """Interface for context-triggered piecewise hashing."""

    def hash_file(self, path: str) -> str:
        ...

    def compare(self, left: str, right: str) -> int:
        """Similarity in [0, 100]; 100 means identical fingerprints."""
        ...


class FileScanner(Protocol):
    """
    Interface for walking a file system and collecting file records.
    """
    def scan(
        self,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Iterable[FileRecord]:
        ...


class HashStage(Protocol):
    """
    Interface for a hashing stage: fans work out to a pool and merges the
    results back onto the records in the calling thread.
    """
    def get_stage_name(self) -> str:
        ...

    def process(
        self,
        records: List[FileRecord],
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Tuple[List[FileRecord], List[SkippedFile]]:
        """
        Returns the records that now carry a digest and the files skipped on the way.
        """
        ...


class Analyzer(Protocol):
    """
    Interface for the analysis engine coordinating all stages.
    """
    def analyze(
        self,
        records: Iterable[FileRecord],
        params: AnalysisParams,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Tuple[Report, AnalysisStats]:
        ...
