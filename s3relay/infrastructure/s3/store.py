"""
boto3-backed object store
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ...core.constants import DEFAULT_REGION, MIN_PART_SIZE, NOT_FOUND_CODES
from ...core.exceptions import ConfigError, ObjectStoreError
from ...core.interfaces import ObjectStore
from ...core.logging import get_logger
from ...core.utils import format_size
from ...domain.transfer.models import PartResult

logger = get_logger(__name__)


@dataclass
class StoreConfig:
    """S3 connection settings"""
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {"region": self.region, "endpoint_url": self.endpoint_url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Create from dictionary"""
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)


def create_s3_client(access_key: str, secret_key: str, config: Optional[StoreConfig] = None) -> Any:
    """
    Build an S3 client from static credentials.

    botocore's own retries are disabled; parts are retried by the
    transfer pipeline.
    """
    config = config or StoreConfig()
    session = boto3.session.Session(
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=config.region,
    )
    return session.client(
        "s3",
        endpoint_url=config.endpoint_url,
        config=BotoConfig(retries={"max_attempts": 1, "mode": "standard"}),
    )


def check_part_size(chunk_size: int) -> None:
    """
    Reject part sizes S3 would only refuse after the whole upload.

    Raises:
        ConfigError: If chunk_size is below MIN_PART_SIZE
    """
    if chunk_size < MIN_PART_SIZE:
        raise ConfigError(
            f"chunk_size must be at least {format_size(MIN_PART_SIZE)} for S3, "
            f"got {format_size(chunk_size)}"
        )


def _wrap_error(action: str, error: Exception) -> ObjectStoreError:
    """Translate a botocore error into ObjectStoreError"""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = details.get("Code")
        status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        message = details.get("Message") or str(error)
        return ObjectStoreError(f"{action} failed ({code}): {message}", status_code=status_code, code=code)
    return ObjectStoreError(f"{action} failed: {error}")


class Boto3ObjectStore(ObjectStore):
    """ObjectStore over a boto3 S3 client"""

    def __init__(self, client: Any):
        """
        Initialize store.

        Args:
            client: boto3 S3 client
        """
        self.client = client

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self.client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            error = _wrap_error("HeadObject", e)
            if error.code in NOT_FOUND_CODES or error.status_code == 404:
                return False
            raise error from e
        except BotoCoreError as e:
            raise _wrap_error("HeadObject", e) from e

    def initiate_multipart_upload(
        self,
        bucket: str,
        key: str,
        metadata: Dict[str, object],
        storage_class: str,
    ) -> str:
        params: Dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "StorageClass": storage_class,
        }
        if metadata.get("content_type"):
            params["ContentType"] = metadata["content_type"]
        if metadata.get("content_length"):
            # CreateMultipartUpload has no length field; keep it as user metadata
            params["Metadata"] = {"source-content-length": str(metadata["content_length"])}

        try:
            response = self.client.create_multipart_upload(**params)
        except (ClientError, BotoCoreError) as e:
            raise _wrap_error("CreateMultipartUpload", e) from e
        return response["UploadId"]

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
    ) -> PartResult:
        # S3 needs no last-part marker; every part but the last must be >= 5 MiB
        try:
            response = self.client.upload_part(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=data,
                ContentLength=length,
                ContentMD5=digest,
            )
        except (ClientError, BotoCoreError) as e:
            raise _wrap_error(f"UploadPart {part_number}", e) from e
        return PartResult(part_number=part_number, tag=response["ETag"], length=length, digest=digest, is_last=is_last)

    def complete_multipart_upload(
        self,
        upload_id: str,
        bucket: str,
        key: str,
        parts: List[PartResult],
    ) -> str:
        try:
            response = self.client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [{"ETag": p.tag, "PartNumber": p.part_number} for p in parts],
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise _wrap_error("CompleteMultipartUpload", e) from e
        return response["ETag"]

    def abort_multipart_upload(self, upload_id: str, bucket: str, key: str) -> None:
        try:
            self.client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
        except (ClientError, BotoCoreError) as e:
            raise _wrap_error("AbortMultipartUpload", e) from e
