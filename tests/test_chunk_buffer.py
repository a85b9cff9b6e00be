"""
Tests for ChunkBuffer and part digests
"""
import base64
import hashlib
import io

import pytest

from s3relay.domain.transfer.chunk import ChunkBuffer, compute_part_digest


class ByteSource:
    """readinto() over a bytes object, optionally capped per call"""

    def __init__(self, data: bytes, max_per_read: int = 1 << 30):
        self._stream = io.BytesIO(data)
        self._max = max_per_read
        self.requested = []

    def readinto(self, buffer):
        self.requested.append(len(buffer))
        view = memoryview(buffer)[:self._max]
        return self._stream.readinto(view)


# ============================================================================
# ChunkBuffer
# ============================================================================


class TestChunkBuffer:
    """Test buffer sizing, filling and compaction"""

    def test_capacity_is_chunk_plus_read_size(self):
        """Capacity leaves room for one read past a full chunk"""
        buffer = ChunkBuffer(chunk_size=10, read_size=4)
        assert buffer.capacity == 14
        assert buffer.filled == 0

    def test_rejects_non_positive_sizes(self):
        """Zero sizes are rejected"""
        with pytest.raises(ValueError):
            ChunkBuffer(chunk_size=0, read_size=4)
        with pytest.raises(ValueError):
            ChunkBuffer(chunk_size=10, read_size=0)

    def test_fill_never_asks_for_more_than_read_size(self):
        """A single fill requests at most read_size bytes"""
        buffer = ChunkBuffer(chunk_size=10, read_size=4)
        source = ByteSource(b"x" * 100)

        assert buffer.fill(source) == 4
        assert buffer.fill(source) == 4
        assert source.requested == [4, 4]
        assert buffer.filled == 8

    def test_fill_returns_zero_at_end_of_stream(self):
        """EOF is reported as 0 and leaves the buffer unchanged"""
        buffer = ChunkBuffer(chunk_size=10, read_size=4)
        source = ByteSource(b"abc")

        assert buffer.fill(source) == 3
        assert buffer.fill(source) == 0
        assert buffer.filled == 3

    def test_fill_treats_none_as_end_of_stream(self):
        """A non-blocking source returning None reads as nothing"""
        buffer = ChunkBuffer(chunk_size=10, read_size=4)

        class NoneSource:
            def readinto(self, view):
                return None

        assert buffer.fill(NoneSource()) == 0

    def test_fill_raises_when_full(self):
        """Filling past capacity without compaction is an error"""
        buffer = ChunkBuffer(chunk_size=4, read_size=2)
        source = ByteSource(b"y" * 100)

        for _ in range(3):
            buffer.fill(source)
        assert buffer.filled == buffer.capacity

        with pytest.raises(BufferError):
            buffer.fill(source)

    def test_fill_is_bounded_by_remaining_capacity(self):
        """The last fill before capacity only asks for what fits"""
        buffer = ChunkBuffer(chunk_size=5, read_size=3)
        source = ByteSource(b"z" * 100)

        buffer.fill(source)  # 3
        buffer.fill(source)  # 6
        buffer.fill(source)  # 8
        assert source.requested == [3, 3, 2]
        assert buffer.filled == 8

    def test_full_chunk_needs_more_than_chunk_size(self):
        """Exactly chunk_size bytes is not yet a full chunk"""
        buffer = ChunkBuffer(chunk_size=4, read_size=4)
        buffer.fill(ByteSource(b"abcd"))
        assert not buffer.has_full_chunk()

        buffer.fill(ByteSource(b"e"))
        assert buffer.has_full_chunk()

    def test_take_front_copies_without_consuming(self):
        """take_front returns bytes and leaves the buffer intact"""
        buffer = ChunkBuffer(chunk_size=4, read_size=8)
        buffer.fill(ByteSource(b"abcdefgh"))

        front = buffer.take_front(4)
        assert front == b"abcd"
        assert isinstance(front, bytes)
        assert buffer.filled == 8
        assert buffer.take_front(8) == b"abcdefgh"

    def test_take_front_rejects_more_than_filled(self):
        """Cannot take unbuffered bytes"""
        buffer = ChunkBuffer(chunk_size=4, read_size=4)
        buffer.fill(ByteSource(b"ab"))
        with pytest.raises(ValueError):
            buffer.take_front(3)

    def test_compact_moves_overshoot_to_front(self):
        """After compaction the overshoot leads the buffer"""
        buffer = ChunkBuffer(chunk_size=4, read_size=3)
        source = ByteSource(b"abcdefg")
        buffer.fill(source)
        buffer.fill(source)
        assert buffer.filled == 6

        buffer.compact()
        assert buffer.filled == 2
        assert buffer.take_front(2) == b"ef"

        buffer.fill(source)
        assert buffer.take_front(3) == b"efg"

    def test_compact_requires_a_full_chunk(self):
        """Compacting a partial chunk is an error"""
        buffer = ChunkBuffer(chunk_size=4, read_size=4)
        buffer.fill(ByteSource(b"abc"))
        with pytest.raises(ValueError):
            buffer.compact()

    def test_compact_keeps_filled_below_chunk_size_when_read_fits(self):
        """With read_size < chunk_size one compaction restores filled < chunk_size"""
        buffer = ChunkBuffer(chunk_size=6, read_size=4)
        source = ByteSource(bytes(range(100)))

        while True:
            if buffer.fill(source) == 0:
                break
            while buffer.has_full_chunk():
                buffer.compact()
                assert buffer.filled < buffer.chunk_size

    def test_large_read_needs_several_compactions(self):
        """A read covering several chunks is drained to at most chunk_size"""
        buffer = ChunkBuffer(chunk_size=3, read_size=10)
        buffer.fill(ByteSource(bytes(range(10))))
        assert buffer.filled == 10

        compactions = 0
        while buffer.has_full_chunk():
            buffer.compact()
            compactions += 1

        assert compactions == 3
        assert buffer.filled == 1
        assert buffer.filled <= buffer.chunk_size
        assert buffer.take_front(1) == bytes([9])

    def test_clear_and_release(self):
        """clear forgets bytes; release frees the storage"""
        buffer = ChunkBuffer(chunk_size=4, read_size=4)
        buffer.fill(ByteSource(b"abc"))
        buffer.clear()
        assert buffer.filled == 0

        buffer.release()
        assert buffer.capacity == 0
        assert buffer.filled == 0


# ============================================================================
# Part digest
# ============================================================================


class TestComputePartDigest:
    """Test Content-MD5 computation"""

    def test_matches_base64_md5(self):
        """Digest is the base64 of the MD5 of the data"""
        data = b"hello multipart"
        expected = base64.b64encode(hashlib.md5(data).digest()).decode("ascii")
        assert compute_part_digest(data) == expected

    def test_covers_only_the_given_length(self):
        """Trailing bytes beyond length do not affect the digest"""
        assert compute_part_digest(b"abcdefXXXX", 6) == compute_part_digest(b"abcdef")
        assert compute_part_digest(b"abcdefXXXX", 6) != compute_part_digest(b"abcdefXXXX")

    def test_empty_part(self):
        """An empty part has the MD5 of nothing"""
        assert compute_part_digest(b"") == "1B2M2Y8AsgTpgAmY7PhCfg=="

    def test_accepts_bytearray(self):
        """Mutable buffers digest the same as bytes"""
        assert compute_part_digest(bytearray(b"abc")) == compute_part_digest(b"abc")
