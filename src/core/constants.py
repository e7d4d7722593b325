"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000
ONE_YEAR_SECONDS = 31536000

# Strict-Transport-Security
DEFAULT_HSTS_MAX_AGE = 2592000  # 30 days
HSTS_PRELOAD_MAX_AGE = ONE_YEAR_SECONDS
HSTS_PRELOAD_MIN_MAX_AGE = 10886400  # 18 weeks, required by hstspreload.org

# Security and redaction
REDACTED = "[REDACTED]"
