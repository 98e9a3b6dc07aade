"""Change reports between two snapshots of an indicator dataset.

Rows are matched on (areaId, yearName), not on position. Cells are
compared on their normalized text form, so a value set as ``0.2`` and
returned by the store as ``"0.2"`` or ``0.20000000000000001`` counts as
unchanged.
"""

import numbers
from typing import Any, Dict, List

import pandas as pd

from nisync.logging_config import create_logger
from nisync.models import IDENTIFIER_COLUMNS, IndicatorDataset, is_missing

logger = create_logger(__name__)

CHANGED_COLUMN = "changed"


def as_text(value: Any) -> str:
    """Normalized text form used for cell comparison."""
    if is_missing(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Real):
        return format(float(value), ".15g")
    return str(value).strip()


def compared_columns(dataset: IndicatorDataset) -> List[str]:
    return [column for column in dataset.columns if column not in IDENTIFIER_COLUMNS]


def _index_rows(dataset: IndicatorDataset) -> Dict[tuple, Any]:
    return {(row.area_id, row.year_name): row for row in dataset.values}


def diff_datasets(reference: IndicatorDataset, candidate: IndicatorDataset) -> pd.DataFrame:
    """Per-row, per-column change flags between two snapshots.

    Args:
        reference: Snapshot as downloaded
        candidate: Edited snapshot

    Returns:
        DataFrame with one row per reference row: the identifier columns,
        one boolean column per compared column and a ``changed`` column.
        A reference row missing from the candidate is flagged as changed
        in every column.
    """
    columns = compared_columns(reference)
    candidate_rows = _index_rows(candidate)

    records = []
    for ref_row in reference.values:
        cand_row = candidate_rows.get((ref_row.area_id, ref_row.year_name))
        record = {column: ref_row.get(column) for column in IDENTIFIER_COLUMNS}
        for column in columns:
            if cand_row is None:
                record[column] = True
            else:
                record[column] = as_text(ref_row.get(column)) != as_text(cand_row.get(column))
        record[CHANGED_COLUMN] = any(record[column] for column in columns)
        records.append(record)

    report = pd.DataFrame(records, columns=IDENTIFIER_COLUMNS + columns + [CHANGED_COLUMN])
    report[columns + [CHANGED_COLUMN]] = report[columns + [CHANGED_COLUMN]].astype(bool)
    logger.info(
        f"Diff for {reference.indicator_name}: "
        f"{int(report[CHANGED_COLUMN].sum())} of {len(report)} rows changed"
    )
    return report


def changed_rows(report: pd.DataFrame) -> pd.DataFrame:
    """Filter a diff report to the changed rows."""
    return report[report[CHANGED_COLUMN]].reset_index(drop=True)


def change_list(reference: IndicatorDataset, candidate: IndicatorDataset) -> pd.DataFrame:
    """One row per changed cell with its old and new value."""
    columns = compared_columns(reference)
    candidate_rows = _index_rows(candidate)

    records = []
    for ref_row in reference.values:
        cand_row = candidate_rows.get((ref_row.area_id, ref_row.year_name))
        for column in columns:
            old = ref_row.get(column)
            new = None if cand_row is None else cand_row.get(column)
            if cand_row is not None and as_text(old) == as_text(new):
                continue
            records.append(
                {
                    "areaName": ref_row.area_name,
                    "yearName": ref_row.year_name,
                    "column": column,
                    "old": as_text(old),
                    "new": as_text(new) if cand_row is not None else "<missing row>",
                }
            )

    return pd.DataFrame(records, columns=["areaName", "yearName", "column", "old", "new"])


def format_change_report(reference: IndicatorDataset, candidate: IndicatorDataset) -> str:
    """Human readable change list for review before upload."""
    changes = change_list(reference, candidate)
    title = f"Changes to {reference.indicator_name}"
    if changes.empty:
        return f"{title}: none"
    return f"{title} ({len(changes)} cells):\n{changes.to_string(index=False)}"
