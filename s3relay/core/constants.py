"""
Project constants definitions
"""

# ============================================================
# Transfer Defaults
# ============================================================

DEFAULT_CHUNK_SIZE = 128 * 1024 * 1024
DEFAULT_READ_SIZE = 1024 * 1024
DEFAULT_MAX_TRY_COUNT = 30
DEFAULT_RETRY_INTERVAL_MS = 10000
DEFAULT_STORAGE_CLASS = "DEEP_ARCHIVE"

# ============================================================
# HTTP Source
# ============================================================

DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 10
ERROR_BODY_LIMIT = 10 * 1024
USER_AGENT = "s3relay/0.1.0"

# ============================================================
# Object Store
# ============================================================

DEFAULT_REGION = "us-east-2"
NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")
# S3 rejects non-final parts below this at CompleteMultipartUpload
MIN_PART_SIZE = 5 * 1024 * 1024

# ============================================================
# Configuration
# ============================================================

ENV_PREFIX = "S3RELAY_"
DEFAULT_CONFIG_PATH = "~/.s3relay/config.toml"
