"""
Shared fakes for transfer tests: an in-memory object store, a scripted
HTTP session that can drop the connection at chosen byte offsets, and a
progress sink that records what it is told.
"""
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

import pytest
import requests

from s3relay.core.exceptions import ObjectStoreError
from s3relay.core.interfaces import ObjectStore, ProgressSink
from s3relay.core.telemetry import Telemetry
from s3relay.domain.transfer.chunk import compute_part_digest
from s3relay.domain.transfer.models import PartResult, TransferConfig
from s3relay.domain.transfer.service import TransferOrchestrator


# ============================================================================
# HTTP source fakes
# ============================================================================


class FakeRaw:
    """Raw body stream with scripted connection resets and early ends."""

    def __init__(self, data: bytes, start: int = 0, breaks: Optional[List[int]] = None,
                 cuts: Optional[List[int]] = None):
        self._data = data
        self._pos = start
        self._breaks = breaks if breaks is not None else []
        self._cuts = cuts if cuts is not None else []

    def _next_stop(self) -> int:
        stops = [o for o in self._breaks + self._cuts if o >= self._pos]
        return min(stops) if stops else len(self._data)

    def readinto(self, buffer) -> int:
        if self._pos in self._breaks:
            self._breaks.remove(self._pos)
            raise ConnectionResetError(f"connection reset at byte {self._pos}")
        if self._pos in self._cuts:
            self._cuts.remove(self._pos)
            return 0
        end = min(self._next_stop(), len(self._data))
        count = min(len(buffer), end - self._pos)
        buffer[:count] = self._data[self._pos:self._pos + count]
        self._pos += count
        return count

    def read(self, amount: int = -1) -> bytes:
        if amount < 0:
            amount = len(self._data) - self._pos
        chunk = self._data[self._pos:self._pos + amount]
        self._pos += len(chunk)
        return chunk


class FakeResponse:
    def __init__(self, status_code: int, headers: Dict[str, str], raw: FakeRaw):
        self.status_code = status_code
        self.headers = headers
        self.raw = raw
        self.encoding = None
        self.closed = False

    def close(self):
        self.closed = True


def range_offset(headers: Dict[str, str]) -> int:
    """Offset requested by a 'bytes=N-' Range header (0 without one)"""
    value = headers.get("Range")
    if not value:
        return 0
    assert value.startswith("bytes=") and value.endswith("-"), value
    return int(value[len("bytes="):-1])


class FakeHttpSession:
    """
    Stand-in for requests.Session serving one resource.

    Args:
        data: Resource body
        content_type: Content-Type header (None to omit)
        breaks: Absolute offsets where the stream raises ConnectionResetError (once each)
        cuts: Absolute offsets where the stream ends cleanly (once each)
        connect_failures: Number of leading get() calls raising requests.ConnectionError
        statuses: Statuses returned (with an error body) before serving normally
        ignore_range: Answer 200 with the full body even to range requests
        declare_length: Send Content-Length
    """

    def __init__(self, data: bytes, content_type: Optional[str] = "application/octet-stream",
                 breaks: Iterable[int] = (), cuts: Iterable[int] = (),
                 connect_failures: int = 0, statuses: Iterable[int] = (),
                 ignore_range: bool = False, declare_length: bool = True,
                 error_body: bytes = b"upstream says no"):
        self.data = data
        self.content_type = content_type
        self.breaks = sorted(breaks)
        self.cuts = sorted(cuts)
        self.connect_failures = connect_failures
        self.statuses = list(statuses)
        self.ignore_range = ignore_range
        self.declare_length = declare_length
        self.error_body = error_body
        self.requests: List[Dict[str, str]] = []
        self.responses: List[FakeResponse] = []
        self.kwargs: List[dict] = []

    def get(self, url, headers=None, **kwargs):
        headers = dict(headers or {})
        self.requests.append(headers)
        self.kwargs.append(kwargs)

        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise requests.ConnectionError("connection refused")

        if self.statuses:
            status = self.statuses.pop(0)
            response = FakeResponse(status, {}, FakeRaw(self.error_body))
            self.responses.append(response)
            return response

        offset = range_offset(headers)
        if offset and not self.ignore_range:
            status = 206
        else:
            status, offset = 200, 0

        response_headers = {}
        if self.declare_length:
            response_headers["Content-Length"] = str(len(self.data) - offset)
        if self.content_type:
            response_headers["Content-Type"] = self.content_type

        response = FakeResponse(status, response_headers, FakeRaw(self.data, offset, self.breaks, self.cuts))
        self.responses.append(response)
        return response

    @property
    def offsets(self) -> List[int]:
        return [range_offset(h) for h in self.requests]


# ============================================================================
# Object store fake
# ============================================================================


class FakeObjectStore(ObjectStore):
    """
    In-memory multipart store.

    Args:
        existing: (bucket, key) pairs that already exist
        upload_failures: part_number -> number of attempts that fail first
        complete_failures: number of failing complete calls
    """

    def __init__(self, existing: Iterable[Tuple[str, str]] = (),
                 upload_failures: Optional[Dict[int, int]] = None,
                 complete_failures: int = 0):
        self.existing = set(existing)
        self.upload_failures = dict(upload_failures or {})
        self.complete_failures = complete_failures
        self.calls: List[str] = []
        self.uploads: Dict[str, dict] = {}
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.part_attempts: Counter = Counter()
        self.aborted: List[str] = []

    def exists(self, bucket, key):
        self.calls.append("exists")
        return (bucket, key) in self.existing or (bucket, key) in self.objects

    def initiate_multipart_upload(self, bucket, key, metadata, storage_class):
        self.calls.append("initiate")
        upload_id = f"upload-{len(self.uploads) + 1}"
        self.uploads[upload_id] = {
            "bucket": bucket,
            "key": key,
            "metadata": dict(metadata),
            "storage_class": storage_class,
            "parts": {},
        }
        return upload_id

    def upload_part(self, upload_id, bucket, key, data, length, part_number, digest, is_last):
        self.calls.append("upload_part")
        self.part_attempts[part_number] += 1
        if self.upload_failures.get(part_number, 0) > 0:
            self.upload_failures[part_number] -= 1
            raise ObjectStoreError(f"simulated failure on part {part_number}", status_code=500)

        payload = bytes(data[:length])
        assert digest == compute_part_digest(payload), "digest does not cover the part bytes"
        self.uploads[upload_id]["parts"][part_number] = {
            "data": payload,
            "digest": digest,
            "is_last": is_last,
        }
        return PartResult(part_number=part_number, tag=f'"etag-{part_number}"')

    def complete_multipart_upload(self, upload_id, bucket, key, parts):
        self.calls.append("complete")
        if self.complete_failures > 0:
            self.complete_failures -= 1
            raise ObjectStoreError("simulated complete failure", status_code=503)
        stored = self.uploads[upload_id]["parts"]
        self.uploads[upload_id]["completed_with"] = [(p.part_number, p.tag) for p in parts]
        self.objects[(bucket, key)] = b"".join(stored[p.part_number]["data"] for p in parts)
        return f'"final-{len(parts)}"'

    def abort_multipart_upload(self, upload_id, bucket, key):
        self.calls.append("abort")
        self.aborted.append(upload_id)

    def parts_of(self, upload_id: str = "upload-1") -> List[dict]:
        stored = self.uploads[upload_id]["parts"]
        return [dict(stored[n], part_number=n) for n in sorted(stored)]


# ============================================================================
# Progress sink fake
# ============================================================================


class RecordingSink(ProgressSink):
    def __init__(self):
        self.progress: List[Tuple[int, Optional[int]]] = []
        self.rates: List[Tuple[int, int]] = []

    def transfer_progress(self, total_transferred, content_length):
        self.progress.append((total_transferred, content_length))

    def transfer_rate_update(self, bytes_transferred, elapsed_ms):
        self.rates.append((bytes_transferred, elapsed_ms))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def payload() -> bytes:
    """25 bytes that make misplaced or duplicated ranges easy to spot"""
    return bytes(range(65, 90))


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def telemetry() -> Telemetry:
    return Telemetry()


@pytest.fixture
def make_orchestrator(sleeps, sink, telemetry):
    """Factory wiring an orchestrator to fakes with a recording sleep"""

    def factory(store, http, config: Optional[TransferConfig] = None, **kwargs):
        config = config or TransferConfig(chunk_size=10, read_size=4, retry_interval_ms=5)
        kwargs.setdefault("progress_sink", sink)
        kwargs.setdefault("telemetry", telemetry)
        return TransferOrchestrator(
            store,
            config,
            http=http,
            sleep=sleeps.append,
            **kwargs,
        )

    return factory
