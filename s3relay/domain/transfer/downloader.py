"""
Resumable HTTP source
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests
from urllib3.exceptions import HTTPError as Urllib3Error

from ...core.constants import ERROR_BODY_LIMIT, USER_AGENT
from ...core.exceptions import (
    DownloadError,
    DownloadRetriesExhaustedError,
    RangeNotSupportedError,
    SourceStatusError,
)
from ...core.interfaces import RetryPolicy
from ...core.logging import get_logger
from .retry import AlwaysRetryPolicy, Retrier

logger = get_logger(__name__)

# Errors a live source stream can raise mid-read
SOURCE_READ_ERRORS = (OSError, requests.RequestException, Urllib3Error)


@dataclass
class SourceStream:
    """Open source response"""
    response: Any
    offset: int
    content_length: Optional[int]
    content_type: Optional[str]

    def readinto(self, buffer: memoryview) -> int:
        """Read raw (undecoded) body bytes into buffer"""
        return self.response.raw.readinto(buffer)

    def close(self) -> None:
        try:
            self.response.close()
        except SOURCE_READ_ERRORS as e:
            logger.debug(f"Ignoring error while closing source: {e}")


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    """Content-Length header to int; None when missing, invalid or not positive"""
    if not value:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length > 0 else None


class ResumableSource:
    """HTTP GET source that can restart at a byte offset"""

    def __init__(
        self,
        http: Optional[requests.Session] = None,
        max_try_count: int = 30,
        retry_interval_ms: int = 10000,
        retry_policy: Optional[RetryPolicy] = None,
        connect_timeout: float = 10,
        read_timeout: float = 10,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize resumable source.

        Args:
            http: requests session (created if None)
            max_try_count: Connection attempts per open()
            retry_interval_ms: Pause between attempts
            retry_policy: Decides whether a failed attempt is retried
            connect_timeout: Connect timeout in seconds
            read_timeout: Read timeout in seconds
            sleep: Sleep function, replaceable in tests
            cancel_event: Optional cancellation flag
        """
        self.http = http or requests.Session()
        self.timeout = (connect_timeout, read_timeout)
        self.retry_policy = retry_policy or AlwaysRetryPolicy()
        self.retrier = Retrier(
            max_try_count=max_try_count,
            retry_interval_ms=retry_interval_ms,
            policy=self.retry_policy,
            retryable=(DownloadError,) + SOURCE_READ_ERRORS,
            error_cls=DownloadError,
            exhausted_cls=DownloadRetriesExhaustedError,
            fatal=(RangeNotSupportedError,),
            sleep=sleep,
            cancel_event=cancel_event,
        )

    def open(self, url: str, offset: int = 0) -> SourceStream:
        """
        Open the source, resuming at offset.

        Args:
            url: Source URL
            offset: First byte wanted

        Returns:
            SourceStream positioned at offset

        Raises:
            DownloadError: Policy rejected a failure
            RangeNotSupportedError: Server ignored the Range header
            DownloadRetriesExhaustedError: Every attempt failed
        """
        if offset > 0:
            logger.info(f"Resuming source at byte {offset}")
        return self.retrier.call(
            lambda: self._connect(url, offset),
            f"Connecting to source at byte {offset}",
        )

    def _connect(self, url: str, offset: int) -> SourceStream:
        """Single connection attempt"""
        # identity keeps byte offsets aligned with the stored bytes
        headers = {"User-Agent": USER_AGENT, "Accept-Encoding": "identity"}
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"

        response = self.http.get(
            url,
            headers=headers,
            stream=True,
            timeout=self.timeout,
            allow_redirects=True,
        )

        status = response.status_code
        if not 200 <= status < 300:
            body = self._read_error_body(response)
            response.close()
            raise SourceStatusError(status, body)

        if offset > 0 and status != 206:
            response.close()
            raise RangeNotSupportedError(
                f"Source answered {status} to a range request at byte {offset}; cannot resume"
            )

        return SourceStream(
            response=response,
            offset=offset,
            content_length=_parse_content_length(response.headers.get("Content-Length")),
            content_type=response.headers.get("Content-Type"),
        )

    def _read_error_body(self, response) -> str:
        """Read at most ERROR_BODY_LIMIT bytes of an error body"""
        try:
            raw = response.raw.read(ERROR_BODY_LIMIT)
        except SOURCE_READ_ERRORS as e:
            logger.debug(f"Could not read error body: {e}")
            return ""
        if not raw:
            return ""
        return raw.decode(response.encoding or "utf-8", errors="replace").strip()
