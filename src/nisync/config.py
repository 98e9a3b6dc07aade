"""Configuration module for store settings and environment variables.

Settings are read from the environment, after loading a ``.env`` file
from the working directory when one exists.
"""

import os

from dotenv import load_dotenv

from nisync.exceptions import ConfigurationError
from nisync.logging_config import create_logger

load_dotenv()

logger = create_logger(__name__)

# get the local root directory
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

UNIT_MISMATCH_POLICIES = ("error", "warn")
STORE_KINDS = ("local", "s3")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# Record store selection
STORE = os.getenv("NISYNC_STORE", "local").lower()
LOCAL_ROOT = os.getenv("NISYNC_LOCAL_ROOT", os.path.join(ROOT_DIR, "data", "store"))
S3_BUCKET_NAME = os.getenv("NISYNC_S3_BUCKET", "naturindeks")
S3_PREFIX = os.getenv("NISYNC_S3_PREFIX", "indicators").strip("/")
AWS_REGION = os.getenv("AWS_DEFAULT_REGION", "eu-north-1")

# Editing behaviour
UNIT_MISMATCH = os.getenv("NISYNC_UNIT_MISMATCH", "error").lower()
CHECK_REVISION = _env_bool("NISYNC_CHECK_REVISION", "true")


def unit_mismatch_policy() -> str:
    """Return the configured unit mismatch policy, read at call time."""
    policy = os.getenv("NISYNC_UNIT_MISMATCH", UNIT_MISMATCH).lower()
    if policy not in UNIT_MISMATCH_POLICIES:
        raise ConfigurationError(
            f"NISYNC_UNIT_MISMATCH must be one of {UNIT_MISMATCH_POLICIES}, got '{policy}'"
        )
    return policy


def check_revision_enabled() -> bool:
    """Return whether uploads compare the remote revision first."""
    return _env_bool("NISYNC_CHECK_REVISION", "true")


def validate_config():
    """
    Validate critical configuration parameters.

    :raises ConfigurationError: If configuration is invalid
    """
    if STORE not in STORE_KINDS:
        raise ConfigurationError(
            f"NISYNC_STORE must be one of {STORE_KINDS}, got '{STORE}'"
        )

    if STORE == "local" and not LOCAL_ROOT:
        raise ConfigurationError("Local store selected but NISYNC_LOCAL_ROOT is empty")

    if STORE == "s3" and not S3_BUCKET_NAME:
        raise ConfigurationError("S3 store selected but no bucket name is specified")

    unit_mismatch_policy()

    logger.debug("Configuration validation successful")


def get_store():
    """
    Build the record store selected by the configuration.

    :return: A RecordStore instance
    :raises ConfigurationError: If configuration is invalid
    """
    validate_config()

    if STORE == "s3":
        from nisync.store.s3 import S3RecordStore

        return S3RecordStore(bucket=S3_BUCKET_NAME, prefix=S3_PREFIX, region=AWS_REGION)

    from nisync.store.local import LocalRecordStore

    return LocalRecordStore(LOCAL_ROOT)
