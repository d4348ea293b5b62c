"""
clutterscope: storage analysis for directory trees.

Core features:
- Exact duplicates by xxHash content digest
- Near-duplicates by ssdeep-style fuzzy hash (xxhash chunks, rapidfuzz comparison), single-linkage grouping
- Statistical large-file outliers (z-score over files above a size floor)
- Hidden space consumers: dependency caches, VCS metadata, build output
- Numbered and dated file families (backup-001.tar, log-2024-01-31.txt)
- CLI interface with text, JSON and CSV output
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("clutterscope")
except Exception:
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # Python < 3.11: pip install tomli

    with open("pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API: only what users should import directly
from clutterscope.commands import AnalysisCommand
from clutterscope.core import (
    AnalysisParams, AnalyzerImpl, FileRecord, Report, DuplicateGroup, SimilarityGroup,
    LargeFileOutlier, HiddenConsumer, PatternGroup, InvalidParameterError, AnalysisCancelled,
)
from clutterscope.services import FileScannerImpl, ReportService
from clutterscope.utils.convert_utils import ConvertUtils

__all__ = [
    "AnalysisCommand",
    "AnalysisParams",
    "AnalyzerImpl",
    "FileRecord",
    "Report",
    "DuplicateGroup",
    "SimilarityGroup",
    "LargeFileOutlier",
    "HiddenConsumer",
    "PatternGroup",
    "InvalidParameterError",
    "AnalysisCancelled",
    "FileScannerImpl",
    "ReportService",
    "ConvertUtils",
    "__version__",
]
