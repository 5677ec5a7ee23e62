"""Project-wide constants shared by the vault server and the client."""

UPLOAD_CHUNK_SIZE_BYTES: int = 5 * 1024 * 1024  # 5 MiB per uploaded chunk
MAX_UPLOAD_CHUNKS: int = 100_000  # upper bound on chunkIndex and totalChunks
DOWNLOAD_CONCURRENCY: int = 4  # parallel range requests per download
STREAM_PIECE_SIZE_BYTES: int = 64 * 1024

TOKEN_EXPIRY_SECONDS: int = 30 * 60
TOKEN_SWEEP_INTERVAL_SECONDS: int = 60
TOKEN_ENTROPY_BYTES: int = 20  # 160 bits

PROGRESS_UPDATE_INTERVAL_SECONDS: float = 0.1

MAX_ARCHIVE_FILES: int = 50
MAX_ITEM_NAME_LENGTH: int = 100

SENSITIVE_EXTENSIONS: tuple[str, ...] = (".key", ".pem", ".pfx", ".p12", ".doc", ".docx", ".pdf")

DEFAULT_SERVER_PORT: int = 8000
