"""
Constants and configuration values for crossjdk.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# Remote runtime archive location
DEFAULT_BASE_URL = "https://github.com/dorkbox/JavaBuilder/raw/master/jdkRuntimes"

# Manifest scraping markers
MANIFEST_DIR_MARKER = "jdkRuntimes"
MANIFEST_ARCHIVE_SUFFIX = ".jar.pack.lzma"

# Archive naming
RAW_SUFFIX = ".jar"
COMPRESS_SUFFIX = ".pack.lzma"
RUNTIME_NAME_PREFIX = "openJdk"
RUNTIME_NAME_SEPARATOR = "_"
OUTPUT_DIR_NAME = "jdkRuntimes"

# Checksum algorithm used by the published runtime archives
CHECKSUM_ALGORITHM = "sha1"

# Known runtime archives: version -> (file name, sha1)
SEED_RUNTIMES = {
    6: ("openJdk6_rt.jar.pack.lzma", "313a8b3fe4736520f7a4b6de37f1c80698502ee7"),
    7: ("openJdk7_rt.jar.pack.lzma", "b42aa62d1772d1f2e8f93664c1e8cb866374e511"),
    8: ("openJdk8_rt.jar.pack.lzma", "98616c3fc020750dce84f02bc65e5f66b839b29d"),
}

# Network timeouts and retries (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CONNECT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_CHUNK_SIZE = 8192
HASH_CHUNK_SIZE = 4096
RETRY_STATUS_FORCELIST = (408, 429, 500, 502, 503, 504)

# Two-stage codec
TRANSPOSE_MAGIC = b"XJT1"
TRANSPOSE_STRIDE = 4
TRANSPOSE_BLOCK_SIZE = 1024 * 1024
LZMA_PRESET = 6

# Build integration
CLEAN_TASK_MARKER = "clean"

# Configuration file names
CONFIG_FILE_NAME = "crossjdk.yaml"
APP_NAME = "crossjdk"

# Environment variable names
LOG_LEVEL_ENV_VAR = "CROSSJDK_LOG_LEVEL"
OFFLINE_ENV_VAR = "CROSSJDK_OFFLINE"
BASE_URL_ENV_VAR = "CROSSJDK_BASE_URL"

# Logging configuration
LOGGER_NAME = "crossjdk"
LOG_FILE_NAME = "crossjdk.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
