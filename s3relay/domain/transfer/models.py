"""
Transfer data models
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum

from ...core.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_READ_SIZE,
    DEFAULT_MAX_TRY_COUNT,
    DEFAULT_RETRY_INTERVAL_MS,
    DEFAULT_STORAGE_CLASS,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
)
from ...core.exceptions import ConfigError


class StorageClass(str, Enum):
    """S3 storage classes"""
    STANDARD = "STANDARD"
    REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"
    STANDARD_IA = "STANDARD_IA"
    ONEZONE_IA = "ONEZONE_IA"
    INTELLIGENT_TIERING = "INTELLIGENT_TIERING"
    GLACIER = "GLACIER"
    GLACIER_IR = "GLACIER_IR"
    DEEP_ARCHIVE = "DEEP_ARCHIVE"

    @classmethod
    def parse(cls, value: str) -> "StorageClass":
        """Accept 'deep-archive', 'DEEP_ARCHIVE', 'DeepArchive'..."""
        normalized = value.strip().upper().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            pass
        squashed = normalized.replace("_", "")
        for member in cls:
            if member.value.replace("_", "") == squashed:
                return member
        raise ConfigError(f"Unknown storage class: {value}")


@dataclass
class TransferConfig:
    """Transfer configuration"""
    # 分块
    chunk_size: int = DEFAULT_CHUNK_SIZE
    read_size: int = DEFAULT_READ_SIZE

    # 重试策略
    max_try_count: int = DEFAULT_MAX_TRY_COUNT
    retry_interval_ms: int = DEFAULT_RETRY_INTERVAL_MS

    # 存储
    storage_class: StorageClass = StorageClass(DEFAULT_STORAGE_CLASS)
    abort_on_failure: bool = False

    # 连接设置
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    def validate(self) -> None:
        """
        Check value types and ranges.

        Raises:
            ConfigError: If a value has the wrong type or is out of range
        """
        for name in ("chunk_size", "read_size", "max_try_count", "retry_interval_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        for name in ("connect_timeout", "read_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number, got {value!r}")
        if not isinstance(self.storage_class, StorageClass):
            raise ConfigError(f"storage_class must be a storage class name, got {self.storage_class!r}")
        if not isinstance(self.abort_on_failure, bool):
            raise ConfigError(f"abort_on_failure must be true or false, got {self.abort_on_failure!r}")

        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.read_size < 1:
            raise ConfigError(f"read_size must be positive, got {self.read_size}")
        if self.max_try_count < 1:
            raise ConfigError(f"max_try_count must be at least 1, got {self.max_try_count}")
        if self.retry_interval_ms < 0:
            raise ConfigError(f"retry_interval_ms must not be negative, got {self.retry_interval_ms}")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ConfigError("timeouts must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "chunk_size": self.chunk_size,
            "read_size": self.read_size,
            "max_try_count": self.max_try_count,
            "retry_interval_ms": self.retry_interval_ms,
            "storage_class": self.storage_class.value,
            "abort_on_failure": self.abort_on_failure,
            "connect_timeout": self.connect_timeout,
            "read_timeout": self.read_timeout,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransferConfig":
        """Create from dictionary"""
        # 只使用存在于类定义中的字段
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        storage_class = valid_fields.get("storage_class")
        if isinstance(storage_class, str) and not isinstance(storage_class, StorageClass):
            valid_fields["storage_class"] = StorageClass.parse(storage_class)
        return cls(**valid_fields)


@dataclass(frozen=True)
class TransferSession:
    """
    Everything one execute() call works with.

    Snapshot of the config taken on entry, so a caller mutating the
    TransferConfig mid-transfer cannot change the chunk boundaries.
    """
    source_url: str
    bucket: str
    key: str
    chunk_size: int
    read_size: int
    max_try_count: int
    retry_interval_ms: int
    storage_class: StorageClass
    abort_on_failure: bool
    connect_timeout: float
    read_timeout: float

    @classmethod
    def from_config(
        cls,
        source_url: str,
        bucket: str,
        key: str,
        config: TransferConfig,
    ) -> "TransferSession":
        """Validate and freeze the config for one transfer"""
        config.validate()
        return cls(
            source_url=source_url,
            bucket=bucket,
            key=key,
            chunk_size=config.chunk_size,
            read_size=config.read_size,
            max_try_count=config.max_try_count,
            retry_interval_ms=config.retry_interval_ms,
            storage_class=config.storage_class,
            abort_on_failure=config.abort_on_failure,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )

    @property
    def destination(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass
class PartResult:
    """Acknowledged part"""
    part_number: int
    tag: str
    length: int = 0
    digest: Optional[str] = None
    is_last: bool = False


@dataclass
class UploadSession:
    """Store-side multipart upload"""
    upload_id: str
    bucket: str
    key: str
    parts: List[PartResult] = field(default_factory=list)

    @property
    def next_part_number(self) -> int:
        return len(self.parts) + 1

    @property
    def bytes_uploaded(self) -> int:
        return sum(p.length for p in self.parts)

    def add_part(self, part: PartResult) -> None:
        """Append a part; numbers must stay gapless"""
        if part.part_number != self.next_part_number:
            raise ValueError(
                f"Part {part.part_number} out of order, expected {self.next_part_number}"
            )
        self.parts.append(part)


@dataclass
class ProgressState:
    """Running counters of one transfer"""
    content_length: Optional[int] = None
    bytes_read: int = 0
    bytes_uploaded: int = 0
    last_chunk_at: float = field(default_factory=time.monotonic)

    def source_exhausted_early(self) -> bool:
        """Stream ended before the declared length was reached"""
        return self.content_length is not None and self.bytes_read < self.content_length
