"""
Custom exceptions for the nisync package.

This module defines a hierarchy of exceptions to provide precise error
handling across dataset editing, validation and record store transfers.
"""

from typing import Any, List


class NISyncBaseError(Exception):
    """
    Base exception for all nisync errors.

    All custom exceptions in the package inherit from this class, so callers
    can block an upload on any of them with a single except clause.
    """

    pass


class ConfigurationError(NISyncBaseError):
    """
    Raised when there are configuration-related issues.

    This exception is used when:
    - Required configuration parameters are missing
    - Configuration values are invalid
    """

    pass


class DatasetError(NISyncBaseError):
    """Raised for errors while locating or editing indicator value rows."""

    pass


class NotFoundError(DatasetError):
    """Raised when no value row matches an (area, year) key."""

    pass


class AmbiguousKeyError(DatasetError):
    """Raised when more than one value row matches an (area, year) key."""

    pass


class InconsistentUnitError(DatasetError):
    """Raised when a unit of measurement differs from the dataset's existing unit."""

    pass


class InvalidDataTypeError(DatasetError):
    """Raised when a data type id is not one of the known categories."""

    pass


class DistributionError(NISyncBaseError):
    """Raised for errors while building custom uncertainty distributions."""

    pass


class UnsupportedDistributionError(DistributionError):
    """Raised for distribution family tags outside the supported set."""

    pass


class InvalidParameterError(DistributionError):
    """
    Raised when parameters are missing, non-numeric or out of range.

    Covers both distribution parameters and the quartile bounds passed
    to the value setter.
    """

    pass


class ShapeMismatchError(NISyncBaseError):
    """
    Raised when a candidate snapshot does not match its reference shape.

    Carries the full list of discrepancies found by the validator so the
    operator can review all of them at once.
    """

    def __init__(self, discrepancies: List[Any], message: str = "Shape mismatch"):
        self.discrepancies = list(discrepancies)
        details = "\n".join(f"  - {d}" for d in self.discrepancies[:20])
        if len(self.discrepancies) > 20:
            details += f"\n  ... and {len(self.discrepancies) - 20} more"
        super().__init__(
            f"{message}: {len(self.discrepancies)} discrepancies\n{details}"
        )


class RecordStoreError(NISyncBaseError):
    """
    Raised for record store operation errors.

    Covers issues such as:
    - Authentication failures
    - Missing indicators
    - Unconfirmed or stale uploads
    """

    pass


class AuthenticationError(RecordStoreError):
    """Raised when the record store rejects the supplied credentials."""

    pass


class NotFoundIndicatorError(RecordStoreError):
    """Raised when a requested indicator does not exist in the record store."""

    pass


class UploadNotConfirmedError(RecordStoreError):
    """Raised when an overwrite is attempted without explicit confirmation."""

    pass


class StaleRevisionError(RecordStoreError):
    """
    Raised when the remote indicator changed after the snapshot was downloaded.

    Uploading would silently overwrite someone else's edits.
    """

    pass


class TransientError(NISyncBaseError):
    """
    Raised for transient errors that may succeed on retry.

    These are temporary errors such as:
    - Network timeouts
    - Throttling errors
    - Temporary service unavailability
    """

    pass
