"""
s3relay - stream HTTP(S) resources into S3-compatible object stores

Copies a remote resource into a bucket as a multipart upload without
holding the whole resource in memory:
- Fixed-size parts cut from a bounded buffer
- Byte-range resume when the source connection drops
- Per-part retry with pluggable retry policies
- Progress and transfer-rate reporting
"""

__version__ = "0.1.0"

# Export core components
from .core import (
    ObjectStore,
    RetryPolicy,
    ProgressSink,
    setup_logging,
)
from .core.exceptions import (
    RelayError,
    ConfigError,
    ObjectStoreError,
    TransferError,
    AlreadyExistsError,
    TransferInterrupted,
    RetriesExhaustedError,
    DownloadError,
    UploadError,
)

# Export domain models
from .domain.transfer import (
    TransferOrchestrator,
    TransferConfig,
    StorageClass,
    ConsoleProgressSink,
    SilentProgressSink,
    AlwaysRetryPolicy,
    NeverRetryPolicy,
    LoggingRetryPolicy,
    TransientErrorRetryPolicy,
)

# Export store adapter
from .infrastructure.s3.store import Boto3ObjectStore, StoreConfig, create_s3_client

__all__ = [
    # Version
    "__version__",
    # Interfaces
    "ObjectStore",
    "RetryPolicy",
    "ProgressSink",
    "setup_logging",
    # Errors
    "RelayError",
    "ConfigError",
    "ObjectStoreError",
    "TransferError",
    "AlreadyExistsError",
    "TransferInterrupted",
    "RetriesExhaustedError",
    "DownloadError",
    "UploadError",
    # Transfer
    "TransferOrchestrator",
    "TransferConfig",
    "StorageClass",
    "ConsoleProgressSink",
    "SilentProgressSink",
    "AlwaysRetryPolicy",
    "NeverRetryPolicy",
    "LoggingRetryPolicy",
    "TransientErrorRetryPolicy",
    # Object store
    "Boto3ObjectStore",
    "StoreConfig",
    "create_s3_client",
]
