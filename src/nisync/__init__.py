"""Preparation and synchronization of Nature Index indicator records.

This package contains modules for locating and editing indicator value
rows, building custom uncertainty distributions, validating and diffing
snapshots, and transferring them to and from a record store.
"""

from nisync.distributions import SUPPORTED_FAMILIES, make_distribution
from nisync.diff import changed_rows, diff_datasets, format_change_report
from nisync.locator import locate_row
from nisync.logging_config import create_logger
from nisync.models import (
    REFERENCE_YEAR,
    CustomDistribution,
    DataType,
    IndicatorDataset,
    IndicatorValueRow,
)
from nisync.schema_validator import Discrepancy, ensure_valid_shape, validate_shape
from nisync.setter import set_value
from nisync.sync import SyncSession

__version__ = "0.1.0"

logger = create_logger(__name__)
logger.debug(f"nisync {__version__} loaded")

__all__ = [
    "REFERENCE_YEAR",
    "SUPPORTED_FAMILIES",
    "CustomDistribution",
    "DataType",
    "Discrepancy",
    "IndicatorDataset",
    "IndicatorValueRow",
    "SyncSession",
    "changed_rows",
    "diff_datasets",
    "ensure_valid_shape",
    "format_change_report",
    "locate_row",
    "make_distribution",
    "set_value",
    "validate_shape",
]
