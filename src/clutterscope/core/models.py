"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain logic for storage analysis: file records, duplicate and
similarity groups, outliers, hidden consumers, pattern families and the report.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Union, Callable, Tuple
from pathlib import PurePath
from enum import Enum
import logging
import os

from clutterscope.utils.convert_utils import ConvertUtils

logger = logging.getLogger(__name__)


# =============================
# Errors
# =============================

class InvalidParameterError(ValueError):
    """Raised before any computation when a caller-supplied parameter is out of range."""


class AnalysisCancelled(RuntimeError):
    """Raised when the caller aborts a run between pipeline stages."""


# =============================
# Enums
# =============================

class ConsumerCategory(Enum):
    """Closed set of known space-wasting subtree categories."""
    DEPENDENCY_CACHE = "dependency-cache"
    VERSION_CONTROL = "version-control"
    BUILD_ARTIFACT = "build-artifact"
    OTHER_KNOWN = "other-known"

    @property
    def display_name(self) -> str:
        """Human-readable name for text output."""
        mapping = {
            ConsumerCategory.DEPENDENCY_CACHE: "Dependency cache",
            ConsumerCategory.VERSION_CONTROL: "Version control",
            ConsumerCategory.BUILD_ARTIFACT: "Build artifact",
            ConsumerCategory.OTHER_KNOWN: "Other known",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class PatternKind(Enum):
    NUMBERED = "numbered"
    DATED = "dated"

    def __repr__(self) -> str:
        return self.value


class Stage(str, Enum):
    CONTENT_HASH = "content-hash"
    EXACT_GROUPS = "exact-groups"
    FUZZY_HASH = "fuzzy-hash"
    SIMILARITY = "similarity"
    OUTLIERS = "outliers"
    HIDDEN_CONSUMERS = "hidden-consumers"
    PATTERNS = "patterns"


# ======================
#  Core Data Models
# ======================

@dataclass(eq=False)
class FileRecord:
    """
    A single file handed to the core by the walker.
    Only the two digests may change after creation, and each is set at most once.
    """
    path: str
    size_bytes: int
    mtime: Optional[float] = None
    content_digest: Optional[str] = None
    fuzzy_digest: Optional[str] = None

    def __post_init__(self):
        if self.size_bytes < 0:
            raise ValueError(f"Negative size for {self.path}: {self.size_bytes}")

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def extension(self) -> str:
        """Lower-cased extension including the dot ("" when absent)."""
        _, ext = os.path.splitext(self.name)
        return ext.lower()

    @property
    def parent_parts(self) -> Tuple[str, ...]:
        """Path components of the containing directories, outermost first."""
        return PurePath(self.path).parent.parts

    def set_content_digest(self, digest: str) -> None:
        self.content_digest = self._set_once("content_digest", self.content_digest, digest)

    def set_fuzzy_digest(self, digest: str) -> None:
        self.fuzzy_digest = self._set_once("fuzzy_digest", self.fuzzy_digest, digest)

    def _set_once(self, field_name: str, current: Optional[str], new: str) -> str:
        if current is not None and current != new:
            raise ValueError(f"{field_name} of {self.path} is already set to a different value")
        return new

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size_bytes}>"


@dataclass(frozen=True)
class SkippedFile:
    """A file left out of one stage, with the reason."""
    path: str
    stage: str
    reason: str


@dataclass(frozen=True)
class DuplicateGroup:
    """
    Files sharing an identical content digest.
    Members are sorted by path; a group always has at least two members.
    """
    digest: str
    members: Tuple[FileRecord, ...]

    def __post_init__(self):
        if len(self.members) < 2:
            raise ValueError("A duplicate group needs at least two members")

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def size_bytes(self) -> int:
        return self.members[0].size_bytes

    @property
    def wasted_bytes(self) -> int:
        """Space reclaimable by keeping a single copy."""
        return self.size_bytes * (self.count - 1)

    def __repr__(self):
        return f"<DuplicateGroup size={self.size_bytes}, count={self.count}>"


@dataclass(frozen=True)
class PairScore:
    left: str
    right: str
    score: int


@dataclass(frozen=True)
class SimilarityGroup:
    """
    Connected component of the similarity graph (single-linkage, not a clique):
    every member is reachable from every other through pairs scoring at or above
    the threshold, but a given pair may score below it.

    pairwise_similarities lists the non-zero scores between members; pairs
    absent from it scored 0. average_similarity is taken over all member pairs.
    """
    members: Tuple[FileRecord, ...]
    pairwise_similarities: Tuple[PairScore, ...]
    average_similarity: float
    density: float = 1.0

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def total_bytes(self) -> int:
        return sum(m.size_bytes for m in self.members)

    def __repr__(self):
        return f"<SimilarityGroup count={self.count}, avg={self.average_similarity:.1f}>"


@dataclass(frozen=True)
class LargeFileOutlier:
    record: FileRecord
    z_score: float
    rank: int
    percentage_of_total: float = 0.0

    @property
    def size_bytes(self) -> int:
        return self.record.size_bytes


@dataclass(frozen=True)
class HiddenConsumer:
    subtree_path: str
    category: ConsumerCategory
    aggregate_bytes: int
    file_count: int = 0
    description: str = ""
    recommendation: str = ""


@dataclass(frozen=True)
class PatternGroup:
    base_name: str
    kind: PatternKind
    members: Tuple[FileRecord, ...]
    extension: str = ""

    @property
    def total_bytes(self) -> int:
        return sum(m.size_bytes for m in self.members)

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def pattern(self) -> str:
        """Display form, e.g. "backup*.tar"."""
        return f"{self.base_name}*{self.extension}"


SIMILARITY_POLICY = "single-linkage"


@dataclass(frozen=True)
class Report:
    """
    Everything one analysis run produced. Built once by build_report() and
    only read afterwards by renderers.
    """
    duplicate_groups: Tuple[DuplicateGroup, ...] = ()
    similarity_groups: Tuple[SimilarityGroup, ...] = ()
    large_files: Tuple[LargeFileOutlier, ...] = ()
    hidden_consumers: Tuple[HiddenConsumer, ...] = ()
    pattern_groups: Tuple[PatternGroup, ...] = ()
    skipped: Tuple[SkippedFile, ...] = ()
    total_files_analyzed: int = 0
    total_size_analyzed: int = 0
    similarity_threshold: Optional[int] = None
    similarity_policy: str = SIMILARITY_POLICY

    @property
    def total_wasted_bytes(self) -> int:
        return sum(g.wasted_bytes for g in self.duplicate_groups)

    def to_dict(self) -> Dict:
        """JSON-ready representation."""
        def record(r: FileRecord) -> Dict:
            return {"path": r.path, "size_bytes": r.size_bytes, "mtime": r.mtime}

        return {
            "summary": {
                "total_files_analyzed": self.total_files_analyzed,
                "total_size_analyzed": self.total_size_analyzed,
                "total_wasted_bytes": self.total_wasted_bytes,
                "similarity_threshold": self.similarity_threshold,
                "similarity_policy": self.similarity_policy,
            },
            "duplicate_groups": [
                {
                    "digest": g.digest,
                    "size_bytes": g.size_bytes,
                    "wasted_bytes": g.wasted_bytes,
                    "members": [record(m) for m in g.members],
                }
                for g in self.duplicate_groups
            ],
            "similarity_groups": [
                {
                    "average_similarity": g.average_similarity,
                    "density": g.density,
                    "total_bytes": g.total_bytes,
                    "members": [record(m) for m in g.members],
                    "pairwise_similarities": [
                        {"left": p.left, "right": p.right, "score": p.score}
                        for p in g.pairwise_similarities
                    ],
                }
                for g in self.similarity_groups
            ],
            "large_files": [
                {
                    "rank": o.rank,
                    "z_score": o.z_score,
                    "percentage_of_total": o.percentage_of_total,
                    **record(o.record),
                }
                for o in self.large_files
            ],
            "hidden_consumers": [
                {
                    "subtree_path": c.subtree_path,
                    "category": c.category.value,
                    "aggregate_bytes": c.aggregate_bytes,
                    "file_count": c.file_count,
                    "description": c.description,
                    "recommendation": c.recommendation,
                }
                for c in self.hidden_consumers
            ],
            "pattern_groups": [
                {
                    "base_name": g.base_name,
                    "kind": g.kind.value,
                    "pattern": g.pattern,
                    "total_bytes": g.total_bytes,
                    "members": [record(m) for m in g.members],
                }
                for g in self.pattern_groups
            ],
            "skipped": [
                {"path": s.path, "stage": s.stage, "reason": s.reason}
                for s in self.skipped
            ],
        }


@dataclass
class AnalysisStats:
    """
    Statistics collected during an analysis run.
    """
    def __init__(self):
        self.total_time: float = 0.0
        self.stage_stats: Dict[str, Dict[str, Union[int, float]]] = {}
        self._listeners: List[Callable[[str, Dict], None]] = []

    def add_listener(self, listener: Callable[[str, Dict], None]):
        """Adds a listener to receive updates when stats are updated."""
        self._listeners.append(listener)

    def update_stage(
            self,
            stage_name: str,
            items_found: int,
            files_processed: int,
            duration: float
    ) -> None:
        if stage_name not in self.stage_stats:
            self.stage_stats[stage_name] = {
                "found": 0,
                "files": 0,
                "time": 0.0
            }
        self.stage_stats[stage_name]["found"] += items_found
        self.stage_stats[stage_name]["files"] += files_processed
        self.stage_stats[stage_name]["time"] += duration

        for listener in self._listeners:
            try:
                listener(stage_name, self.stage_stats[stage_name])
            except Exception as e:
                logger.warning(f"Error in stats event handler: {e}")

    def print_summary(self) -> str:
        lines = [
            "Analysis Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s\n",
            "Stage: FOUND / FILES / TIME"
        ]

        for stage, data in self.stage_stats.items():
            lines.append(f"{stage}: {data['found']} / {data['files']} / {data['time']:.3f}s")

        return "\n".join(lines)


# =============================
# Parameters
# =============================

DEFAULT_SIMILARITY_THRESHOLD = 70
DEFAULT_MIN_CLUSTER_SIZE = 2
DEFAULT_MIN_FUZZY_SIZE = 4096
DEFAULT_MAX_FUZZY_SIZE = 1024 ** 3
DEFAULT_OUTLIER_MIN_SIZE = 10 * 1024 * 1024
DEFAULT_STD_DEV_THRESHOLD = 2.0
DEFAULT_TOP_N = 20


def validate_similarity_params(threshold: int, min_size: int) -> None:
    if not 0 <= threshold <= 100:
        raise InvalidParameterError(f"Similarity threshold must be within [0, 100], got {threshold}")
    if min_size < 2:
        raise InvalidParameterError(f"Minimum cluster size must be at least 2, got {min_size}")


def validate_outlier_params(min_size_floor: int, k: float, top_n: int) -> None:
    if min_size_floor < 0:
        raise InvalidParameterError("Minimum size floor cannot be negative")
    if k < 0:
        raise InvalidParameterError(f"Standard deviation threshold cannot be negative, got {k}")
    if top_n <= 0:
        raise InvalidParameterError(f"Top-N must be positive, got {top_n}")


@dataclass
class AnalysisParams:
    """Parameters for one analysis run with validation."""
    root_dir: Optional[str] = None
    include_hidden: bool = False
    max_depth: Optional[int] = None
    patterns: List[str] = field(default_factory=list)
    excluded_dirs: List[str] = field(default_factory=list)
    find_duplicates: bool = True
    find_similar: bool = False
    similarity_threshold: int = DEFAULT_SIMILARITY_THRESHOLD
    min_cluster_size: int = DEFAULT_MIN_CLUSTER_SIZE
    min_fuzzy_size: int = DEFAULT_MIN_FUZZY_SIZE
    max_fuzzy_size: Optional[int] = DEFAULT_MAX_FUZZY_SIZE
    prefilter: bool = False
    outlier_min_size: int = DEFAULT_OUTLIER_MIN_SIZE
    std_dev_threshold: float = DEFAULT_STD_DEV_THRESHOLD
    top_n: int = DEFAULT_TOP_N
    check_hidden_consumers: bool = True
    check_patterns: bool = True
    max_workers: Optional[int] = None

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        validate_similarity_params(self.similarity_threshold, self.min_cluster_size)
        validate_outlier_params(self.outlier_min_size, self.std_dev_threshold, self.top_n)

        if self.max_depth is not None and self.max_depth < 0:
            raise InvalidParameterError("Maximum depth cannot be negative")
        if self.min_fuzzy_size < 0:
            raise InvalidParameterError("Minimum fuzzy-hash size cannot be negative")
        if self.max_fuzzy_size is not None and self.max_fuzzy_size < self.min_fuzzy_size:
            raise InvalidParameterError("Maximum fuzzy-hash size cannot be less than minimum")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidParameterError("Worker count must be at least 1")

        self.patterns = [p.strip() for p in self.patterns if p and p.strip()]

    @staticmethod
    def from_human_readable(
            root_dir: Optional[str],
            outlier_min_size_str: str = "10MB",
            min_fuzzy_size_str: str = "4KB",
            max_fuzzy_size_str: Optional[str] = "1GB",
            **kwargs
    ) -> 'AnalysisParams':
        """
        Factory method to create params from human-readable size inputs.
        Useful for CLI argument parsing.
        """
        try:
            outlier_min_size = ConvertUtils.human_to_bytes(outlier_min_size_str)
            min_fuzzy_size = ConvertUtils.human_to_bytes(min_fuzzy_size_str)
            max_fuzzy_size = (
                ConvertUtils.human_to_bytes(max_fuzzy_size_str) if max_fuzzy_size_str else None
            )
        except ValueError as e:
            raise InvalidParameterError(str(e)) from e

        return AnalysisParams(
            root_dir=root_dir,
            outlier_min_size=outlier_min_size,
            min_fuzzy_size=min_fuzzy_size,
            max_fuzzy_size=max_fuzzy_size,
            **kwargs
        )
