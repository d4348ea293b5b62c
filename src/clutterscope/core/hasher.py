"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements file hashing utilities using FileRecord and pluggable hash algorithms.

The strong content digest (xxHash) and the fuzzy digest (context-triggered
piecewise hash, see core/fuzzy.py) are computed by module-level functions
so the hashing stages can ship them to pool workers.
"""

import logging
import os

import xxhash

from clutterscope.core.fuzzy import ctph_hash_stream, ctph_compare
from clutterscope.core.interfaces import HashAlgorithm, FuzzyHashAlgorithm

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024

# Reserved digest shared by every zero-byte file; never a valid hex digest
EMPTY_CONTENT_DIGEST = "empty"


class FuzzyHashTooSmall(ValueError):
    """The file is below the size at which a fuzzy digest means anything."""


# Use the same way to implement and use any other hashing algorithm
class XXHashAlgorithmImpl(HashAlgorithm):
    name = "xxh3_128"

    @staticmethod
    def hash(data: bytes) -> str:
        return xxhash.xxh3_128(data).hexdigest()

    @staticmethod
    def new():
        return xxhash.xxh3_128()


class CTPHAlgorithmImpl(FuzzyHashAlgorithm):
    """ssdeep-style fuzzy hashing (picklable for process pools)."""
    name = "ctph"

    def hash_file(self, path: str) -> str:
        with open(path, 'rb') as f:
            return ctph_hash_stream(f, size_hint=os.fstat(f.fileno()).st_size)

    def compare(self, left: str, right: str) -> int:
        return ctph_compare(left, right)


def compute_content_digest_of(path: str, size_bytes: int, algorithm: HashAlgorithm) -> str:
    """
    Streams the file through the algorithm. Raises OSError when unreadable.
    Module level so it can be shipped to pool workers.
    """
    if size_bytes == 0:
        return EMPTY_CONTENT_DIGEST
    digest = algorithm.new()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b''):
            digest.update(chunk)
    return digest.hexdigest()


def compute_fuzzy_digest_of(path: str, size_bytes: int, min_size: int,
                            algorithm: FuzzyHashAlgorithm) -> str:
    if size_bytes < min_size:
        raise FuzzyHashTooSmall(f"{size_bytes} bytes is below the fuzzy-hash minimum of {min_size}")
    return algorithm.hash_file(path)
