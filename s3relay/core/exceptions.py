"""
Unified exception definitions
"""
from typing import Optional


class RelayError(Exception):
    """Base exception class"""
    pass


class ConfigError(RelayError):
    """Configuration error"""
    pass


class ObjectStoreError(RelayError):
    """Object store call failed"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class TransferError(RelayError):
    """Transfer error"""
    pass


class AlreadyExistsError(TransferError):
    """Destination key is already occupied"""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"An object already exists at s3://{bucket}/{key}")
        self.bucket = bucket
        self.key = key


class TransferInterrupted(TransferError):
    """Transfer was cancelled from outside"""
    pass


class RetriesExhaustedError(TransferError):
    """Every allowed attempt failed"""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class DownloadError(TransferError):
    """Source connection or stream failure"""
    pass


class SourceStatusError(DownloadError):
    """Source answered with a non-success status"""

    def __init__(self, status_code: int, body: str = ""):
        if body:
            message = f"Invalid response code: {status_code} Body: {body}"
        else:
            message = f"Invalid response code without body: {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RangeNotSupportedError(DownloadError):
    """Source ignored the byte-range request"""
    pass


class DownloadRetriesExhaustedError(RetriesExhaustedError, DownloadError):
    """Source retries exhausted"""
    pass


class UploadError(TransferError):
    """Part upload failure"""
    pass


class UploadRetriesExhaustedError(RetriesExhaustedError, UploadError):
    """Upload retries exhausted"""
    pass
