"""
Transfer domain module
"""
from .models import (
    TransferConfig,
    TransferSession,
    StorageClass,
    PartResult,
    UploadSession,
    ProgressState,
)
from .chunk import ChunkBuffer, compute_part_digest
from .retry import (
    AlwaysRetryPolicy,
    NeverRetryPolicy,
    LoggingRetryPolicy,
    TransientErrorRetryPolicy,
    Retrier,
)
from .progress import ConsoleProgressSink, SilentProgressSink
from .downloader import ResumableSource, SourceStream
from .uploader import PartUploader
from .service import TransferOrchestrator

__all__ = [
    "TransferConfig",
    "TransferSession",
    "StorageClass",
    "PartResult",
    "UploadSession",
    "ProgressState",
    "ChunkBuffer",
    "compute_part_digest",
    "AlwaysRetryPolicy",
    "NeverRetryPolicy",
    "LoggingRetryPolicy",
    "TransientErrorRetryPolicy",
    "Retrier",
    "ConsoleProgressSink",
    "SilentProgressSink",
    "ResumableSource",
    "SourceStream",
    "PartUploader",
    "TransferOrchestrator",
]
