"""
Chunk buffering and part digests
"""
import base64
import hashlib
from typing import Optional, Protocol


class Readable(Protocol):
    def readinto(self, buffer: memoryview) -> Optional[int]: ...


class ChunkBuffer:
    """
    Bounded byte accumulator between source reads and part boundaries.

    Capacity is chunk_size + read_size and a single fill never asks for
    more than read_size bytes, so one read can overshoot the chunk
    boundary but never the capacity.

    Once every full chunk has been cut, at most chunk_size bytes remain.
    With read_size < chunk_size one compaction always gets there. A larger
    read_size can cover several chunks, and each needs its own compaction.
    """

    def __init__(self, chunk_size: int, read_size: int):
        """
        Initialize chunk buffer.

        Args:
            chunk_size: Size of a full upload part
            read_size: Largest single read from the source
        """
        if chunk_size < 1 or read_size < 1:
            raise ValueError("chunk_size and read_size must be positive")
        self.chunk_size = chunk_size
        self.read_size = read_size
        self._buffer = bytearray(chunk_size + read_size)
        self._view = memoryview(self._buffer)
        self._filled = 0

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    @property
    def filled(self) -> int:
        return self._filled

    def has_full_chunk(self) -> bool:
        """More than one part's worth of bytes is buffered"""
        return self._filled > self.chunk_size

    def fill(self, source: Readable) -> int:
        """
        Read once from source into the free space.

        Args:
            source: Object with readinto()

        Returns:
            Bytes read; 0 at end of stream
        """
        end = min(self.capacity, self._filled + self.read_size)
        if end <= self._filled:
            raise BufferError("Chunk buffer is full; upload a part before reading more")
        count = source.readinto(self._view[self._filled:end])
        if not count or count < 0:
            return 0
        self._filled += count
        return count

    def take_front(self, length: int) -> bytes:
        """Copy of the first length bytes; the buffer is not modified"""
        if length > self._filled:
            raise ValueError(f"Only {self._filled} bytes buffered, {length} requested")
        return bytes(self._view[:length])

    def compact(self) -> None:
        """Drop one chunk from the front and move the overshoot down"""
        if self._filled < self.chunk_size:
            raise ValueError("No full chunk to drop")
        overshoot = self._filled - self.chunk_size
        self._buffer[:overshoot] = self._buffer[self.chunk_size:self._filled]
        self._filled = overshoot

    def clear(self) -> None:
        """Forget the buffered bytes"""
        self._filled = 0

    def release(self) -> None:
        """Release the underlying memory; the buffer is unusable afterwards"""
        self._view.release()
        self._buffer = bytearray()
        self._filled = 0


def compute_part_digest(data: bytes, length: Optional[int] = None) -> str:
    """
    Compute Content-MD5 for part data.

    Args:
        data: Part bytes (may be longer than the part)
        length: Number of leading bytes that make up the part

    Returns:
        Base64-encoded MD5 digest
    """
    if length is None:
        length = len(data)
    digest = hashlib.md5(memoryview(data)[:length], usedforsecurity=False).digest()
    return base64.b64encode(digest).decode("ascii")
