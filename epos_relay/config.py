"""Configuration defaults and global state."""

# Server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

# Printer defaults
DEFAULT_RECEIPT_WIDTH = 576  # 80mm paper at 203dpi

# SSL certificate files
CERT_FILE = "server.crt"
KEY_FILE = "server.key"

# Reconnection settings
RETRY_DELAY = 2  # seconds between operation retries
CONNECT_RETRY_DELAY = 2  # seconds between initial connection attempts

# Attempt budgets per operation
IMAGE_RETRIES = 3
DRAWER_RETRIES = 8
CUT_RETRIES = 8

# Logging
LOG_LEVEL_ENV = "EPOS_RELAY_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"

# Runtime configuration (populated by CLI)
config = {
    "host": DEFAULT_HOST,
    "printer": None,
    "proto": None,
}
