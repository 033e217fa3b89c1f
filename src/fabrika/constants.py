"""Constants for fabrika."""

# Project data directory (relative to the project path)
FABRIKA_DIR_NAME = ".fabrika"

# Subprocess timeouts (seconds)
PROVIDER_TIMEOUT = 600  # 10 minutes for AI operations
VALIDATE_KEY_TIMEOUT = 10

# Section validation
MIN_CONTENT_LENGTH = 50

# Checkpoint schema version written to every record
CHECKPOINT_SCHEMA_VERSION = 2

# CLI exit codes
EXIT_ERROR = 1
EXIT_PROVIDER_UNAVAILABLE = 2
EXIT_NOT_INITIALIZED = 3
EXIT_LOCKED = 4
EXIT_STEP_FAILED = 20
EXIT_STEP_BLOCKED = 21
EXIT_CHECKPOINT_IO = 22
