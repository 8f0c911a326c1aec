import os
import logging
import dotenv

dotenv.load_dotenv()

logger = logging.getLogger(__name__)


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def validate_config():
    """Validate configuration values and log warnings for invalid values."""
    warnings = []

    # Validate port numbers
    if HOST_PORT <= 0 or HOST_PORT > 65535:
        warnings.append(f"Invalid HOST_PORT: {HOST_PORT}. Must be between 1-65535")

    if REDIS_PORT <= 0 or REDIS_PORT > 65535:
        warnings.append(f"Invalid REDIS_PORT: {REDIS_PORT}. Must be between 1-65535")

    # Validate probe fan-out
    if HEALTH_CHECK_CONCURRENCY <= 0:
        warnings.append(f"Invalid HEALTH_CHECK_CONCURRENCY: {HEALTH_CHECK_CONCURRENCY}. Must be positive")
    elif HEALTH_CHECK_CONCURRENCY > 100:
        warnings.append(f"Large HEALTH_CHECK_CONCURRENCY: {HEALTH_CHECK_CONCURRENCY}. Consider if this is appropriate")

    # Validate timeouts and intervals
    if HEALTH_CHECK_TIMEOUT_MS <= 0:
        warnings.append(f"Invalid HEALTH_CHECK_TIMEOUT_MS: {HEALTH_CHECK_TIMEOUT_MS}. Must be positive")

    if POLL_INTERVAL <= 0:
        warnings.append(f"Invalid POLL_INTERVAL: {POLL_INTERVAL}. Must be positive")

    if REGISTRY_REFRESH_INTERVAL <= 0:
        warnings.append(f"Invalid REGISTRY_REFRESH_INTERVAL: {REGISTRY_REFRESH_INTERVAL}. Must be positive")

    if REGISTRY_TIMEOUT <= 0:
        warnings.append(f"Invalid REGISTRY_TIMEOUT: {REGISTRY_TIMEOUT}. Must be positive")

    if METADATA_CACHE_TTL <= 0:
        warnings.append(f"Invalid METADATA_CACHE_TTL: {METADATA_CACHE_TTL}. Must be positive")

    # Log warnings
    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if warnings:
        logger.warning(f"Found {len(warnings)} configuration warnings")

    return warnings

# Flask API Configuration
HOST_ADDRESS = os.getenv('HOST_ADDRESS', '0.0.0.0')
HOST_PORT = int(os.getenv('HOST_PORT', 5000))

# Node Registry Configuration
REGISTRY_BASE_URL = os.getenv('REGISTRY_BASE_URL', 'http://node-registry:8085/api')
REGISTRY_TIMEOUT = int(os.getenv('REGISTRY_TIMEOUT', 10))
REGISTRY_REFRESH_INTERVAL = int(os.getenv('REGISTRY_REFRESH_INTERVAL', 300))
NODE_LIST_FILE = os.getenv('NODE_LIST_FILE')

# Redis Configuration
REDIS_HOST = os.getenv('REDIS_HOST', 'node-status-redis')
REDIS_PORT = int(os.getenv('REDIS_PORT', 6379))
REDIS_DB = int(os.getenv('REDIS_DB', 0))
STORE_FALLBACK_PATH = os.getenv('STORE_FALLBACK_PATH', 'node_store.json')

# Health Check Configuration
HEALTH_CHECK_TIMEOUT_MS = int(os.getenv('HEALTH_CHECK_TIMEOUT_MS', 5000))
HEALTH_CHECK_CONCURRENCY = int(os.getenv('HEALTH_CHECK_CONCURRENCY', 5))
POLL_INTERVAL = int(os.getenv('POLL_INTERVAL', 30))
ENABLE_POLLING = _getenv_bool('ENABLE_POLLING', True)
VERSION_SERVICE_PATH = os.getenv('VERSION_SERVICE_PATH', 'xmtp.xmtpv4.metadata_api.MetadataApi/GetVersion')

# Metadata Configuration
METADATA_CACHE_TTL = int(os.getenv('METADATA_CACHE_TTL', 24 * 60 * 60))
METADATA_FETCH_TIMEOUT = int(os.getenv('METADATA_FETCH_TIMEOUT', 10))
IPFS_GATEWAY = os.getenv('IPFS_GATEWAY', 'https://ipfs.io/ipfs/')

# Validate configuration on import
validate_config()
