"""
Configuration constants for the export service.
"""

# Retry budget per logical request (total tries = 1 + MAX_RETRIES)
MAX_RETRIES = 3

# Request retry backoff: min(BACKOFF_BASE * 2**attempt, MAX_BACKOFF)
BACKOFF_BASE = 1.0  # seconds
MAX_BACKOFF = 30.0  # seconds

# Status polling
POLL_INITIAL_DELAY = 1.0  # seconds
POLL_MAX_DELAY = 30.0  # seconds
MAX_POLL_ATTEMPTS = 60

# Chunk size for streaming the archive to disk
DEFAULT_CHUNK_SIZE = 32 * 1024  # 32KB

# Operation deadlines
SUBMIT_TIMEOUT = 60.0  # 1 minute
DOWNLOAD_TIMEOUT = 60.0  # 1 minute
WAIT_TIMEOUT = 600.0  # 10 minutes

# API paths
EXPORT_PATH = "/v3/export"
DOWNLOAD_PATH = "/v3/download/{handler}"
