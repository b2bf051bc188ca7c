"""Project-wide constants (stream sizes, blob cleanup retries)."""

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024  # 64 KiB pieces for blob streaming

BLOB_DELETE_MAX_ATTEMPTS: int = 3

BLOB_DELETE_BASE_DELAY_SECONDS: float = 0.5

BLOB_FILE_SUFFIX: str = ".blob"
