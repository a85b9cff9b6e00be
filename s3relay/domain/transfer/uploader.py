"""
Part upload with integrity digest and retry
"""
import threading
import time
from typing import Callable, Optional

from ...core.exceptions import (
    ObjectStoreError,
    UploadError,
    UploadRetriesExhaustedError,
)
from ...core.interfaces import ObjectStore, RetryPolicy
from ...core.logging import get_logger
from .chunk import compute_part_digest
from .models import PartResult, UploadSession
from .retry import AlwaysRetryPolicy, Retrier

logger = get_logger(__name__)


class PartUploader:
    """Uploads one part at a time to an object store"""

    def __init__(
        self,
        store: ObjectStore,
        max_try_count: int = 30,
        retry_interval_ms: int = 10000,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize part uploader.

        Args:
            store: Object store
            max_try_count: Attempts per part
            retry_interval_ms: Pause between attempts
            retry_policy: Decides whether a failed attempt is retried
            sleep: Sleep function, replaceable in tests
            cancel_event: Optional cancellation flag
        """
        self.store = store
        self.retry_policy = retry_policy or AlwaysRetryPolicy()
        self.retrier = Retrier(
            max_try_count=max_try_count,
            retry_interval_ms=retry_interval_ms,
            policy=self.retry_policy,
            retryable=(ObjectStoreError, OSError),
            error_cls=UploadError,
            exhausted_cls=UploadRetriesExhaustedError,
            sleep=sleep,
            cancel_event=cancel_event,
        )

    def upload_part(
        self,
        upload: UploadSession,
        data: bytes,
        length: int,
        part_number: int,
        is_last: bool,
    ) -> PartResult:
        """
        Upload length bytes of data as one part.

        Args:
            upload: Multipart upload the part belongs to
            data: Part bytes (only the first length bytes are sent)
            length: Part size
            part_number: 1-based part number
            is_last: Whether this is the final part

        Returns:
            PartResult with the store-assigned tag

        Raises:
            UploadError: Policy rejected a failure
            UploadRetriesExhaustedError: Every attempt failed
        """
        if length > len(data):
            raise ValueError(f"Part {part_number}: length {length} exceeds data size {len(data)}")

        payload = data if length == len(data) else data[:length]
        digest = compute_part_digest(payload, length)

        def attempt() -> PartResult:
            return self.store.upload_part(
                upload.upload_id,
                upload.bucket,
                upload.key,
                payload,
                length,
                part_number,
                digest,
                is_last,
            )

        result = self.retrier.call(attempt, f"Uploading part {part_number}")
        result.length = length
        result.digest = digest
        result.is_last = is_last
        logger.debug(f"Uploaded part {part_number} ({length} bytes, tag {result.tag})")
        return result

    def complete(self, upload: UploadSession) -> str:
        """
        Complete the multipart upload, retried like a part.

        Returns:
            Object tag
        """
        return self.retrier.call(
            lambda: self.store.complete_multipart_upload(
                upload.upload_id,
                upload.bucket,
                upload.key,
                list(upload.parts),
            ),
            "Completing multipart upload",
        )
