"""
Transfer service - main business logic
"""
import threading
import time
from typing import Callable, Dict, Optional

import requests

from ...core.exceptions import (
    AlreadyExistsError,
    DownloadError,
    DownloadRetriesExhaustedError,
    ObjectStoreError,
    TransferInterrupted,
)
from ...core.interfaces import ObjectStore, ProgressSink, RetryPolicy
from ...core.logging import get_logger
from ...core.telemetry import Telemetry, get_telemetry
from ...core.utils import format_rate, format_size
from .chunk import ChunkBuffer
from .downloader import ResumableSource, SourceStream, SOURCE_READ_ERRORS
from .models import ProgressState, TransferConfig, TransferSession, UploadSession
from .progress import ConsoleProgressSink
from .retry import AlwaysRetryPolicy, check_cancelled
from .uploader import PartUploader

logger = get_logger(__name__)


class TransferOrchestrator:
    """
    Streams an HTTP(S) resource into an object store as a multipart upload.

    The resource is never held in memory as a whole: bytes flow through a
    ChunkBuffer of chunk_size + read_size and leave it one part at a time.
    A broken source stream is reopened with a byte-range request at the
    first byte not yet read, and every part has its own retry budget.
    Parts are uploaded strictly one after another, in source order.

    Usage:
        orchestrator = TransferOrchestrator(store, TransferConfig(chunk_size=64 * 1024 * 1024))
        etag = orchestrator.execute("https://example.com/big.iso", "bucket", "big.iso")
    """

    def __init__(
        self,
        store: ObjectStore,
        config: Optional[TransferConfig] = None,
        progress_sink: Optional[ProgressSink] = None,
        download_retry_policy: Optional[RetryPolicy] = None,
        upload_retry_policy: Optional[RetryPolicy] = None,
        http: Optional[requests.Session] = None,
        telemetry: Optional[Telemetry] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize transfer orchestrator.

        Args:
            store: Destination object store
            config: Transfer configuration (defaults if None)
            progress_sink: Progress receiver (console printer if None)
            download_retry_policy: Policy for source failures (retry always if None)
            upload_retry_policy: Policy for part failures (retry always if None)
            http: requests session used for the source
            telemetry: Telemetry collector (global one if None)
            sleep: Sleep function, replaceable in tests
            clock: Monotonic clock in seconds, replaceable in tests
        """
        self.store = store
        self.config = config or TransferConfig()
        self.progress_sink = progress_sink or ConsoleProgressSink()
        self.download_retry_policy = download_retry_policy or AlwaysRetryPolicy()
        self.upload_retry_policy = upload_retry_policy or AlwaysRetryPolicy()
        self.http = http or requests.Session()
        self.telemetry = telemetry or get_telemetry()
        self.sleep = sleep
        self.clock = clock

    def execute(
        self,
        source_url: str,
        bucket: str,
        key: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """
        Copy source_url to bucket/key.

        Args:
            source_url: HTTP(S) URL of the resource
            bucket: Destination bucket
            key: Destination key
            cancel_event: Optional flag; setting it stops the transfer

        Returns:
            Object tag (ETag) assigned by the store

        Raises:
            AlreadyExistsError: Destination key is taken; nothing was started
            DownloadError: Source failed beyond what the retry policy allows
            UploadError: A part failed beyond what the retry policy allows
            TransferInterrupted: cancel_event was set
        """
        session = TransferSession.from_config(source_url, bucket, key, self.config)

        if self.store.exists(bucket, key):
            raise AlreadyExistsError(bucket, key)

        source = ResumableSource(
            http=self.http,
            max_try_count=session.max_try_count,
            retry_interval_ms=session.retry_interval_ms,
            retry_policy=self.download_retry_policy,
            connect_timeout=session.connect_timeout,
            read_timeout=session.read_timeout,
            sleep=self.sleep,
            cancel_event=cancel_event,
        )
        uploader = PartUploader(
            self.store,
            max_try_count=session.max_try_count,
            retry_interval_ms=session.retry_interval_ms,
            retry_policy=self.upload_retry_policy,
            sleep=self.sleep,
            cancel_event=cancel_event,
        )

        stream = source.open(source_url, 0)
        upload: Optional[UploadSession] = None
        buffer: Optional[ChunkBuffer] = None

        try:
            upload_id = self.store.initiate_multipart_upload(
                bucket,
                key,
                self._build_metadata(stream),
                session.storage_class.value,
            )
            upload = UploadSession(upload_id=upload_id, bucket=bucket, key=key)
            state = ProgressState(content_length=stream.content_length, last_chunk_at=self.clock())
            self.telemetry.record_event("transfer.started", {
                "source": source_url,
                "destination": session.destination,
                "upload_id": upload_id,
                "content_length": stream.content_length,
            })
            logger.info(
                f"Transferring {source_url} -> {session.destination} "
                f"(upload id {upload_id}, chunk size {format_size(session.chunk_size)})"
            )

            buffer = ChunkBuffer(session.chunk_size, session.read_size)
            read_failures = 0

            while True:
                check_cancelled(cancel_event)
                try:
                    count = buffer.fill(stream)
                except SOURCE_READ_ERRORS as e:
                    read_failures += 1
                    stream = self._reconnect(source, session, stream, state, e, read_failures)
                    continue

                if count == 0:
                    if state.source_exhausted_early():
                        read_failures += 1
                        error = DownloadError(
                            f"Source closed at byte {state.bytes_read} of {state.content_length}"
                        )
                        stream = self._reconnect(source, session, stream, state, error, read_failures)
                        continue
                    break

                read_failures = 0
                state.bytes_read += count

                while buffer.has_full_chunk():
                    self._upload_full_chunk(session, uploader, upload, buffer, state)

            self._upload_final_part(uploader, upload, buffer, state)

            if state.content_length is not None and state.bytes_read != state.content_length:
                logger.warning(
                    f"Source declared {state.content_length} bytes but delivered {state.bytes_read}"
                )

            check_cancelled(cancel_event)
            etag = uploader.complete(upload)

        except TransferInterrupted:
            self._record_failure(session, upload, "interrupted")
            raise
        except Exception as e:
            self._record_failure(session, upload, str(e))
            if upload is not None and session.abort_on_failure:
                self._abort(upload)
            raise
        finally:
            stream.close()
            if buffer is not None:
                buffer.release()

        average_rate = self._average_rate(upload.upload_id)
        self.telemetry.record_event("transfer.completed", {
            "destination": session.destination,
            "upload_id": upload.upload_id,
            "parts": len(upload.parts),
            "bytes": upload.bytes_uploaded,
            "average_rate": average_rate,
            "etag": etag,
        })
        logger.info(
            f"Stored {format_size(upload.bytes_uploaded)} in {len(upload.parts)} parts "
            f"at {session.destination} (ETag {etag}, average {average_rate or 'n/a'})"
        )
        return etag

    def _average_rate(self, upload_id: str) -> Optional[str]:
        """Mean rate over the full parts of one upload, None without any"""
        tags = {"upload_id": upload_id}
        elapsed = self.telemetry.summarize("transfer.part_elapsed_ms", tags)
        if not elapsed.count:
            return None
        # the final part has no elapsed sample; leave its bytes out
        moved = sum(m.value for m in self.telemetry.get_metrics("transfer.part_bytes", tags)[:elapsed.count])
        return format_rate(int(moved), int(elapsed.total))

    def _build_metadata(self, stream: SourceStream) -> Dict[str, object]:
        """Multipart metadata from the first source response"""
        metadata: Dict[str, object] = {}
        if stream.content_length is not None:
            metadata["content_length"] = stream.content_length
        if stream.content_type:
            metadata["content_type"] = stream.content_type
        return metadata

    def _reconnect(
        self,
        source: ResumableSource,
        session: TransferSession,
        stream: SourceStream,
        state: ProgressState,
        error: Exception,
        failures: int,
    ) -> SourceStream:
        """Replace a broken stream with one resuming at the first unread byte"""
        logger.warning(f"Source read failed at byte {state.bytes_read}: {error}")

        if not source.retry_policy.should_retry(error):
            if isinstance(error, DownloadError):
                raise error
            raise DownloadError(f"Source read failed at byte {state.bytes_read}: {error}") from error

        if failures >= session.max_try_count:
            raise DownloadRetriesExhaustedError(
                f"Source stopped delivering data at byte {state.bytes_read}; "
                f"giving up after {failures} reconnects",
                attempts=failures,
            ) from error

        stream.close()
        if failures > 1:
            # reconnecting right away did not help last time
            source.retrier.wait()
        return source.open(session.source_url, state.bytes_read)

    def _upload_full_chunk(
        self,
        session: TransferSession,
        uploader: PartUploader,
        upload: UploadSession,
        buffer: ChunkBuffer,
        state: ProgressState,
    ) -> None:
        """Upload exactly chunk_size bytes from the front of the buffer"""
        chunk_end = self.clock()
        data = buffer.take_front(session.chunk_size)
        part = uploader.upload_part(
            upload,
            data,
            session.chunk_size,
            upload.next_part_number,
            is_last=False,
        )
        upload.add_part(part)
        buffer.compact()
        state.bytes_uploaded += session.chunk_size

        elapsed_ms = max(0, int((chunk_end - state.last_chunk_at) * 1000))
        state.last_chunk_at = chunk_end

        tags = {"upload_id": upload.upload_id}
        self.telemetry.record_metric("transfer.part_bytes", session.chunk_size, tags)
        self.telemetry.record_metric("transfer.part_elapsed_ms", elapsed_ms, tags)
        self.progress_sink.transfer_rate_update(session.chunk_size, elapsed_ms)
        self.progress_sink.transfer_progress(state.bytes_uploaded, state.content_length)

    def _upload_final_part(
        self,
        uploader: PartUploader,
        upload: UploadSession,
        buffer: ChunkBuffer,
        state: ProgressState,
    ) -> None:
        """Upload the residual bytes as the last part"""
        residual = buffer.filled
        if residual == 0 and upload.parts:
            return

        # an empty source still needs one part to complete the upload
        data = buffer.take_front(residual)
        part = uploader.upload_part(
            upload,
            data,
            residual,
            upload.next_part_number,
            is_last=True,
        )
        upload.add_part(part)
        buffer.clear()
        state.bytes_uploaded += residual

        self.telemetry.record_metric("transfer.part_bytes", residual, {"upload_id": upload.upload_id})
        self.progress_sink.transfer_progress(state.bytes_uploaded, state.content_length)

    def _abort(self, upload: UploadSession) -> None:
        """Abort the multipart upload after a fatal error"""
        try:
            self.store.abort_multipart_upload(upload.upload_id, upload.bucket, upload.key)
            logger.info(f"Aborted multipart upload {upload.upload_id}")
        except ObjectStoreError as e:
            logger.error(f"Failed to abort multipart upload {upload.upload_id}: {e}")

    def _record_failure(
        self,
        session: TransferSession,
        upload: Optional[UploadSession],
        reason: str,
    ) -> None:
        self.telemetry.record_event("transfer.failed", {
            "destination": session.destination,
            "upload_id": upload.upload_id if upload else None,
            "parts": len(upload.parts) if upload else 0,
            "reason": reason,
        })
