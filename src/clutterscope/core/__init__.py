"""
Core analysis engine: hashing stages, detectors and the pipeline orchestrator.

This package contains the compute-heavy foundation of clutterscope:
- ContentHashStage / FuzzyHashStage: parallel xxHash and ssdeep fingerprinting
- FileGrouperImpl: size and digest grouping into exact-duplicate groups
- SimilarityGrouperImpl: all-pairs fuzzy comparison and single-linkage grouping
- Outlier, hidden-consumer and pattern-family detectors
- AnalyzerImpl: runs everything and builds the Report

The core performs no directory walking and no output formatting.
"""

from .models import (
    FileRecord, SkippedFile, DuplicateGroup, PairScore, SimilarityGroup, LargeFileOutlier,
    HiddenConsumer, PatternGroup, Report, AnalysisParams, AnalysisStats,
    ConsumerCategory, PatternKind, Stage, InvalidParameterError, AnalysisCancelled)
from .hasher import XXHashAlgorithmImpl, CTPHAlgorithmImpl
from .stages import ContentHashStage, FuzzyHashStage, collect_and_hash
from .grouper import FileGrouperImpl, find_exact_duplicates
from .similarity import SimilarityGrouperImpl, find_similarity_groups
from .outliers import detect_large_file_outliers
from .consumers import detect_hidden_consumers
from .patterns import detect_pattern_groups
from .report import build_report
from .analyzer import AnalyzerImpl

__all__ = [
    "FileRecord",
    "SkippedFile",
    "DuplicateGroup",
    "PairScore",
    "SimilarityGroup",
    "LargeFileOutlier",
    "HiddenConsumer",
    "PatternGroup",
    "Report",
    "AnalysisParams",
    "AnalysisStats",
    "ConsumerCategory",
    "PatternKind",
    "Stage",
    "InvalidParameterError",
    "AnalysisCancelled",
    "XXHashAlgorithmImpl",
    "CTPHAlgorithmImpl",
    "ContentHashStage",
    "FuzzyHashStage",
    "collect_and_hash",
    "FileGrouperImpl",
    "find_exact_duplicates",
    "SimilarityGrouperImpl",
    "find_similarity_groups",
    "detect_large_file_outliers",
    "detect_hidden_consumers",
    "detect_pattern_groups",
    "build_report",
    "AnalyzerImpl",
]
