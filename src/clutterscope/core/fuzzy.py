"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/fuzzy.py
Context-triggered piecewise hashing (the ssdeep scheme).

DIGEST
------
"block_size:sig1:sig2". A rolling hash over a 7-byte window marks a chunk
boundary whenever it hits block_size - 1 modulo block_size; each chunk
contributes one base64 character (its xxh32 digest, low 6 bits). sig1 uses
block_size, sig2 uses twice that, so digests of files whose block sizes
differ by a factor of two can still be compared.

Boundaries depend only on local content, so an insertion or edit changes the
characters of the chunks it touches and leaves the rest of the signature alone.

STREAMING
---------
CTPHState consumes the input buffer by buffer in a single pass. The rolling
hash of a whole buffer is computed with numpy; it depends on the last 7 bytes
only, so six bytes of context carry over between buffers. Every candidate
block size is tracked at once: a boundary for 2b is always a boundary for b,
so the boundary positions of each block size are filtered from those of the
one below. Block sizes below one whose signature is already long enough can
never be chosen and are dropped as soon as that happens. Memory stays bounded
by the buffer size whatever the size of the input.

COMPARISON
----------
Signatures at a common block size are compared after collapsing runs of more
than three identical characters. Pairs sharing no 7-character substring score 0.
Otherwise the score is the normalized InDel similarity (rapidfuzz fuzz.ratio),
which is 100 * (1 - distance / (len1 + len2)), capped for tiny block sizes
where a short signature says little.
"""

import re
from typing import BinaryIO, Dict, List, Tuple

import numpy as np
import xxhash
from rapidfuzz import fuzz

ROLLING_WINDOW = 7
MIN_BLOCKSIZE = 3
SPAMSUM_LENGTH = 64
B64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
STREAM_BUFFER_SIZE = 256 * 1024

_PATTERN_RUNS = re.compile(r'(.)\1{3,}')
# Below this block size the score is capped by signature length
_CAP_BLOCKSIZE = (99 + ROLLING_WINDOW) // ROLLING_WINDOW * MIN_BLOCKSIZE


class _RollingHash:
    """Per-position rolling hash over consecutive buffers."""

    def __init__(self):
        self.tail = np.zeros(ROLLING_WINDOW - 1, dtype=np.uint32)

    def update(self, buffer: bytes) -> np.ndarray:
        n = len(buffer)
        window = np.concatenate((self.tail, np.frombuffer(buffer, dtype=np.uint8).astype(np.uint32)))
        h1 = np.zeros(n, dtype=np.uint32)
        h2 = np.zeros(n, dtype=np.uint32)
        h3 = np.zeros(n, dtype=np.uint32)
        # m = how many bytes back from the current position
        for m in range(ROLLING_WINDOW):
            start = ROLLING_WINDOW - 1 - m
            shifted = window[start:start + n]
            h1 += shifted
            h2 += shifted * np.uint32(ROLLING_WINDOW - m)
            h3 ^= shifted << np.uint32(5 * m)
        self.tail = window[-(ROLLING_WINDOW - 1):].copy()
        return h1 + h2 + h3


class _SignatureBuilder:
    """
    Accumulates one signature: a character per chunk up to `cap` boundaries,
    after which the last chunk absorbs the rest of the input.
    """
    __slots__ = ("cap", "chars", "hasher", "pending")

    def __init__(self, cap: int):
        self.cap = cap
        self.chars: List[str] = []
        self.hasher = xxhash.xxh32()
        self.pending = 0

    def feed(self, view: memoryview, boundaries: np.ndarray) -> None:
        start = 0
        room = self.cap - len(self.chars)
        if room > 0:
            for end in boundaries[:room].tolist():
                self.hasher.update(view[start:end + 1])
                self.chars.append(B64[self.hasher.intdigest() & 63])
                self.hasher.reset()
                self.pending = 0
                start = end + 1
        if start < len(view):
            self.hasher.update(view[start:])
            self.pending += len(view) - start

    def result(self) -> str:
        if self.pending:
            return "".join(self.chars) + B64[self.hasher.intdigest() & 63]
        return "".join(self.chars)


class CTPHState:
    """
    Single-pass fuzzy hasher. size_hint picks the largest block size worth
    tracking; the digest is correct for any input length.

    Usage:
        state = CTPHState(size_hint=os.fstat(f.fileno()).st_size)
        for chunk in iter(lambda: f.read(STREAM_BUFFER_SIZE), b''):
            state.update(chunk)
        digest = state.digest()
    """

    def __init__(self, size_hint: int = 0):
        guess = MIN_BLOCKSIZE
        while guess * SPAMSUM_LENGTH < size_hint:
            guess *= 2

        self._block_sizes: List[int] = []
        block_size = MIN_BLOCKSIZE
        while block_size <= guess * 2:
            self._block_sizes.append(block_size)
            block_size *= 2
        self._guess_index = len(self._block_sizes) - 2
        self._lowest = 0

        # sig1 of a digest at block size b, and sig2 of a digest at b // 2
        self._sig1: Dict[int, _SignatureBuilder] = {
            b: _SignatureBuilder(SPAMSUM_LENGTH - 1) for b in self._block_sizes[:-1]}
        self._sig2: Dict[int, _SignatureBuilder] = {
            b: _SignatureBuilder(SPAMSUM_LENGTH // 2 - 1) for b in self._block_sizes[1:]}
        self._rolling = _RollingHash()

    def update(self, buffer: bytes) -> None:
        if not buffer:
            return
        rolling = self._rolling.update(buffer)
        view = memoryview(buffer)

        boundaries = None
        for block_size in self._block_sizes[self._lowest:]:
            modulus = np.uint32(block_size)
            if boundaries is None:
                boundaries = np.flatnonzero(rolling % modulus == modulus - 1)
            else:
                boundaries = boundaries[rolling[boundaries] % modulus == modulus - 1]
            if block_size in self._sig1:
                self._sig1[block_size].feed(view, boundaries)
            if block_size in self._sig2:
                self._sig2[block_size].feed(view, boundaries)

        self._prune()

    def _prune(self) -> None:
        """Drops block sizes below the largest one that already has a full-length sig1."""
        for index in range(self._guess_index, self._lowest, -1):
            if len(self._sig1[self._block_sizes[index]].chars) >= SPAMSUM_LENGTH // 2:
                for block_size in self._block_sizes[self._lowest:index]:
                    self._sig1.pop(block_size, None)
                    self._sig2.pop(block_size, None)
                self._lowest = index
                return

    def digest(self) -> str:
        index = self._guess_index
        # Too few boundaries for a useful signature: fall back to smaller chunks
        while index > self._lowest and len(self._sig1[self._block_sizes[index]].result()) < SPAMSUM_LENGTH // 2:
            index -= 1
        block_size = self._block_sizes[index]
        return f"{block_size}:{self._sig1[block_size].result()}:{self._sig2[block_size * 2].result()}"


def ctph_hash(data: bytes) -> str:
    """Fuzzy digest of a byte string."""
    state = CTPHState(len(data))
    for offset in range(0, len(data), STREAM_BUFFER_SIZE):
        state.update(data[offset:offset + STREAM_BUFFER_SIZE])
    return state.digest()


def ctph_hash_stream(stream: BinaryIO, size_hint: int = 0) -> str:
    """Fuzzy digest of a binary stream, read in fixed-size buffers."""
    state = CTPHState(size_hint)
    for buffer in iter(lambda: stream.read(STREAM_BUFFER_SIZE), b''):
        state.update(buffer)
    return state.digest()


def parse_digest(digest: str) -> Tuple[int, str, str]:
    """Raises ValueError on anything that is not "int:str:str"."""
    block_size, sig1, sig2 = digest.split(":", 2)
    return int(block_size), sig1, sig2


def _collapse_runs(signature: str) -> str:
    return _PATTERN_RUNS.sub(r'\1\1\1', signature)


def _has_common_substring(left: str, right: str) -> bool:
    if len(left) < ROLLING_WINDOW or len(right) < ROLLING_WINDOW:
        return False
    grams = {left[i:i + ROLLING_WINDOW] for i in range(len(left) - ROLLING_WINDOW + 1)}
    return any(right[i:i + ROLLING_WINDOW] in grams for i in range(len(right) - ROLLING_WINDOW + 1))


def _score_signatures(left: str, right: str, block_size: int) -> int:
    if not _has_common_substring(left, right):
        return 0
    score = fuzz.ratio(left, right)
    if block_size < _CAP_BLOCKSIZE:
        score = min(score, block_size // MIN_BLOCKSIZE * min(len(left), len(right)))
    return int(round(score))


def ctph_compare(left: str, right: str) -> int:
    """Similarity of two digests in [0, 100]."""
    if left == right:
        return 100

    size1, left1, left2 = parse_digest(left)
    size2, right1, right2 = parse_digest(right)
    left1, left2 = _collapse_runs(left1), _collapse_runs(left2)
    right1, right2 = _collapse_runs(right1), _collapse_runs(right2)

    if size1 == size2:
        return max(_score_signatures(left1, right1, size1), _score_signatures(left2, right2, size1 * 2))
    if size1 == size2 * 2:
        return _score_signatures(left1, right2, size1)
    if size2 == size1 * 2:
        return _score_signatures(left2, right1, size2)
    return 0
