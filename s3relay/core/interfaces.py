"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.transfer.models import PartResult


class ObjectStore(ABC):
    """Object store interface (multipart upload lifecycle)"""

    @abstractmethod
    def exists(self, bucket: str, key: str) -> bool:
        """Check if an object occupies the key"""
        pass

    @abstractmethod
    def initiate_multipart_upload(
        self,
        bucket: str,
        key: str,
        metadata: Dict[str, object],
        storage_class: str,
    ) -> str:
        """Start a multipart upload and return its upload id"""
        pass

    @abstractmethod
    def upload_part(
        self,
        upload_id: str,
        bucket: str,
        key: str,
        data: bytes,
        length: int,
        part_number: int,
        digest: str,
        is_last: bool,
    ) -> "PartResult":
        """Upload one part"""
        pass

    @abstractmethod
    def complete_multipart_upload(
        self,
        upload_id: str,
        bucket: str,
        key: str,
        parts: List["PartResult"],
    ) -> str:
        """Assemble the uploaded parts and return the object tag"""
        pass

    @abstractmethod
    def abort_multipart_upload(self, upload_id: str, bucket: str, key: str) -> None:
        """Discard an unfinished multipart upload"""
        pass


class RetryPolicy(ABC):
    """Decides whether a failed operation is attempted again"""

    @abstractmethod
    def should_retry(self, error: Exception) -> bool:
        pass


class ProgressSink(ABC):
    """
    Receives progress notifications.

    Called synchronously from the transfer loop, so implementations
    must return quickly.
    """

    @abstractmethod
    def transfer_progress(self, total_transferred: int, content_length: Optional[int]) -> None:
        """Cumulative bytes stored so far; content_length is None when unknown"""
        pass

    @abstractmethod
    def transfer_rate_update(self, bytes_transferred: int, elapsed_ms: int) -> None:
        """Bytes moved in the last chunk and the time it took"""
        pass
