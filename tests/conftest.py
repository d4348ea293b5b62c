"""
Shared fixtures for analysis core tests.
Creates isolated temporary directories with controlled test files.
"""
import random
import pytest
import tempfile
from pathlib import Path
from typing import Dict


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for analysis scenarios:
    - 3 identical files and 1 distinct file of the same size
    - 1 unique file of another size
    - 2 empty files
    - 1 hidden file
    - a node_modules subtree
    - a numbered backup family
    """
    files = {}

    content_a = b"A" * 1024
    for name in ("dup_a.txt", "dup_b.txt", "dup_c.txt"):
        files[name] = temp_dir / name
        files[name].write_bytes(content_a)

    files["same_size.txt"] = temp_dir / "same_size.txt"
    files["same_size.txt"].write_bytes(b"B" * 1024)

    files["unique.txt"] = temp_dir / "unique.txt"
    files["unique.txt"].write_bytes(b"C" * 1500)

    files["empty1.txt"] = temp_dir / "empty1.txt"
    files["empty1.txt"].write_bytes(b"")
    files["empty2.txt"] = temp_dir / "empty2.txt"
    files["empty2.txt"].write_bytes(b"")

    files[".hidden"] = temp_dir / ".hidden"
    files[".hidden"].write_bytes(b"H" * 10)

    pkg = temp_dir / "web" / "node_modules" / "left-pad"
    pkg.mkdir(parents=True)
    files["index.js"] = pkg / "index.js"
    files["index.js"].write_bytes(b"J" * 300)
    files["package.json"] = pkg / "package.json"
    files["package.json"].write_bytes(b"P" * 200)

    backups = temp_dir / "backups"
    backups.mkdir()
    files["backup-001.tar"] = backups / "backup-001.tar"
    files["backup-001.tar"].write_bytes(b"1" * 700)
    files["backup-002.tar"] = backups / "backup-002.tar"
    files["backup-002.tar"].write_bytes(b"2" * 800)
    files["backup-notes.txt"] = backups / "backup-notes.txt"
    files["backup-notes.txt"].write_bytes(b"N" * 50)

    return files


@pytest.fixture
def random_bytes():
    """Deterministic pseudo-random content of the requested length."""
    def make(length: int, seed: int) -> bytes:
        rng = random.Random(seed)
        return bytes(rng.getrandbits(8) for _ in range(length))
    return make


class TableFuzzyAlgorithm:
    """
    Fuzzy algorithm with scripted scores: digests are plain labels and
    compare() looks the unordered pair up in a table (0 when absent).
    hash_file() returns the file name, so labels can be assigned by naming files.
    """

    def __init__(self, scores=None):
        self.scores = {frozenset(pair): score for pair, score in (scores or {}).items()}
        self.calls = 0

    def hash_file(self, path: str) -> str:
        return Path(path).name

    def compare(self, left: str, right: str) -> int:
        self.calls += 1
        if left == right:
            return 100
        return self.scores.get(frozenset((left, right)), 0)


@pytest.fixture
def table_algorithm():
    """Factory for TableFuzzyAlgorithm: table_algorithm({("a", "b"): 90})."""
    return TableFuzzyAlgorithm
