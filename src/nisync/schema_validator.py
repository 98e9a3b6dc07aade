"""Shape validation of dataset snapshots before upload.

The remote store accepts a snapshot only when it has the same shape as
the one it handed out: same indicators in the same order, same row count
and row order, same columns, and no removed distributions. The validator
accumulates every discrepancy instead of stopping at the first one, so
the operator sees a complete report before the irreversible upload.

Example usage:
    discrepancies = validate_shape(downloaded, edited)
    for discrepancy in discrepancies:
        print(discrepancy)

    # or raise ShapeMismatchError on any discrepancy
    ensure_valid_shape(downloaded, edited)
"""

import numbers
from dataclasses import dataclass
from typing import Any, List, Mapping

from nisync.exceptions import ShapeMismatchError
from nisync.logging_config import create_logger
from nisync.models import COLUMN_KINDS, IndicatorDataset

logger = create_logger(__name__)


@dataclass(frozen=True)
class Discrepancy:
    """A single difference between reference and candidate shape."""

    scope: str
    field: str
    expected: Any
    actual: Any

    def __str__(self) -> str:
        return f"[{self.scope}] {self.field}: expected {self.expected!r}, got {self.actual!r}"


def _kind_of(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, numbers.Integral):
        return "integer"
    if isinstance(value, numbers.Real):
        return "numeric"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _kind_matches(expected: str, value: Any) -> bool:
    actual = _kind_of(value)
    if expected == "numeric":
        return actual in ("integer", "numeric")
    if expected == "integer":
        return actual == "integer" or (
            actual == "numeric" and float(value).is_integer()
        )
    return actual == expected


def _row_key(row) -> tuple:
    return (row.area_id, row.year_name)


def _compare_indicator(
    name: str, reference: IndicatorDataset, candidate: IndicatorDataset
) -> List[Discrepancy]:
    issues = []

    if len(reference.values) != len(candidate.values):
        issues.append(
            Discrepancy(name, "row_count", len(reference.values), len(candidate.values))
        )

    if list(reference.columns) != list(candidate.columns):
        issues.append(
            Discrepancy(name, "columns", list(reference.columns), list(candidate.columns))
        )

    for i, (ref_row, cand_row) in enumerate(zip(reference.values, candidate.values)):
        if _row_key(ref_row) != _row_key(cand_row):
            issues.append(
                Discrepancy(f"{name}.values[{i}]", "key", _row_key(ref_row), _row_key(cand_row))
            )

    # Cell types: a candidate cell may hold the declared kind of its column
    # or any kind the reference already holds in that column.
    for column in candidate.columns:
        expected = COLUMN_KINDS.get(column)
        if expected is None:
            continue
        reference_kinds = {
            _kind_of(row.get(column))
            for row in reference.values
            if row.get(column) is not None
        }
        for i, row in enumerate(candidate.values):
            value = row.get(column)
            if value is None or _kind_of(value) in reference_kinds:
                continue
            if not _kind_matches(expected, value):
                issues.append(
                    Discrepancy(f"{name}.values[{i}]", column, expected, _kind_of(value))
                )

    removed = [d for d in reference.distributions if d not in candidate.distributions]
    for distribution_id in removed:
        issues.append(
            Discrepancy(f"{name}.distributions", "id", distribution_id, None)
        )

    return issues


def validate_shape(
    reference: Mapping[str, IndicatorDataset], candidate: Mapping[str, IndicatorDataset]
) -> List[Discrepancy]:
    """Compare two snapshots for structural parity.

    Args:
        reference: Snapshot as downloaded, indicator name to dataset
        candidate: Snapshot to upload, indicator name to dataset

    Returns:
        List of discrepancies, empty when the shapes match
    """
    issues: List[Discrepancy] = []

    for side, snapshot in (("reference", reference), ("snapshot", candidate)):
        if not isinstance(snapshot, Mapping):
            issues.append(Discrepancy(side, "type", "mapping", type(snapshot).__name__))
    if issues:
        return issues

    if len(reference) != len(candidate):
        issues.append(Discrepancy("snapshot", "dataset_count", len(reference), len(candidate)))

    if list(reference) != list(candidate):
        issues.append(Discrepancy("snapshot", "indicators", list(reference), list(candidate)))

    for name, ref_dataset in reference.items():
        cand_dataset = candidate.get(name)
        if cand_dataset is None:
            continue
        if not isinstance(cand_dataset, IndicatorDataset):
            issues.append(
                Discrepancy(name, "type", "IndicatorDataset", type(cand_dataset).__name__)
            )
            continue
        issues.extend(_compare_indicator(name, ref_dataset, cand_dataset))

    if issues:
        logger.warning(f"Shape validation found {len(issues)} discrepancies")
    else:
        logger.info("Shape validation passed")
    return issues


def validate_rows(name: str, dataset: IndicatorDataset) -> List[Discrepancy]:
    """Check the row invariants of a single dataset.

    - a row with a value has exactly one of quartiles or distribution
      reference, and a data type
    - a row without a value has no uncertainty
    - distribution references resolve in the registry
    - all rows with a value share one unit
    """
    issues = []

    for i, row in enumerate(dataset.values):
        scope = f"{name}.values[{i}]"
        has_quartiles = row.lower_quartile is not None or row.upper_quartile is not None
        has_distribution = row.custom_distribution_id is not None

        if row.value is None:
            if has_quartiles or has_distribution:
                issues.append(Discrepancy(scope, "uncertainty", None, "set without value"))
            continue

        if has_quartiles and has_distribution:
            issues.append(
                Discrepancy(scope, "uncertainty", "quartiles or distribution", "both")
            )
        elif not has_quartiles and not has_distribution:
            issues.append(
                Discrepancy(scope, "uncertainty", "quartiles or distribution", None)
            )
        elif has_quartiles and (row.lower_quartile is None or row.upper_quartile is None):
            issues.append(
                Discrepancy(scope, "uncertainty", "both quartiles", "one quartile")
            )

        if has_distribution and row.custom_distribution_id not in dataset.distributions:
            issues.append(
                Discrepancy(scope, "customDistributionId", "registered id", row.custom_distribution_id)
            )

        if row.data_type_id is None:
            issues.append(Discrepancy(scope, "dataTypeId", "data type", None))

    units = dataset.units()
    if len(units) > 1:
        issues.append(Discrepancy(name, "unitOfMeasurement", "single unit", sorted(units)))

    return issues


def ensure_valid_shape(
    reference: Mapping[str, IndicatorDataset], candidate: Mapping[str, IndicatorDataset]
) -> None:
    """Raise ShapeMismatchError unless the candidate is safe to upload.

    Runs the shape comparison and the row invariant checks on every
    candidate dataset.
    """
    issues = validate_shape(reference, candidate)
    if isinstance(candidate, Mapping):
        for name, dataset in candidate.items():
            if isinstance(dataset, IndicatorDataset):
                issues.extend(validate_rows(name, dataset))

    if issues:
        raise ShapeMismatchError(issues)
