"""Unit tests for the diff reporter."""

import pytest

from nisync.diff import (
    CHANGED_COLUMN,
    as_text,
    change_list,
    changed_rows,
    diff_datasets,
    format_change_report,
)
from nisync.distributions import make_distribution
from nisync.models import IDENTIFIER_COLUMNS
from nisync.setter import set_value

UNIT = "individer/km^2"


@pytest.mark.unit
class TestAsText:
    """Test the tolerant cell comparison form."""

    @pytest.mark.parametrize(
        "left,right",
        [
            (0.2, "0.2"),
            (1, 1.0),
            (0.1 + 0.2, 0.3),
            (None, float("nan")),
            (None, ""),
            ("stk", " stk "),
        ],
    )
    def test_equal_forms(self, left, right):
        assert as_text(left) == as_text(right)

    @pytest.mark.parametrize("left,right", [(0.2, 0.21), (None, 0), ("a", "b")])
    def test_different_forms(self, left, right):
        assert as_text(left) != as_text(right)


@pytest.mark.unit
class TestDiffDatasets:
    """Test per-row, per-column change flags."""

    def test_self_diff_has_no_changes(self, dataset):
        report = diff_datasets(dataset, dataset)

        assert len(report) == len(dataset.values)
        assert not report[CHANGED_COLUMN].any()

    def test_layout(self, dataset):
        report = diff_datasets(dataset, dataset)

        assert list(report.columns[: len(IDENTIFIER_COLUMNS)]) == IDENTIFIER_COLUMNS
        assert report.columns[-1] == CHANGED_COLUMN
        assert "value" in report.columns
        assert "indicatorId" in report.columns
        assert report["value"].dtype == bool

    def test_flags_edited_cells(self, dataset):
        candidate = dataset.copy()
        set_value(candidate, 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)

        report = diff_datasets(dataset, candidate)
        changed = changed_rows(report)

        assert len(changed) == 1
        row = changed.iloc[0]
        assert row["areaName"] == "Sør-Norge"
        assert row["yearName"] == "2024"
        assert row["value"] and row["lowerQuartile"] and row["upperQuartile"]
        assert row["dataTypeId"] and row["dataTypeName"] and row["unitOfMeasurement"]
        assert not row["customDistributionId"]

    def test_formatting_noise_is_not_a_change(self, dataset):
        """Test a value returned as text compares equal to the number."""
        candidate = dataset.copy()
        candidate.values[0].value = "0.5"

        assert not diff_datasets(dataset, candidate)[CHANGED_COLUMN].any()

    def test_identifier_columns_are_not_compared(self, dataset):
        candidate = dataset.copy()
        candidate.values[0].indicator_name = "Renamed"

        assert not diff_datasets(dataset, candidate)[CHANGED_COLUMN].any()

    def test_rows_matched_by_key_not_position(self, dataset):
        """Test a reordered candidate is compared row by row on (area, year)."""
        candidate = dataset.copy()
        candidate.values.reverse()

        assert not diff_datasets(dataset, candidate)[CHANGED_COLUMN].any()

    def test_missing_row_is_changed(self, dataset):
        candidate = dataset.copy()
        candidate.values.pop(0)

        report = diff_datasets(dataset, candidate)

        assert report[CHANGED_COLUMN].tolist() == [True] + [False] * (len(dataset.values) - 1)


@pytest.mark.unit
class TestChangeReport:
    """Test the human readable change list."""

    def test_change_list(self, dataset):
        candidate = dataset.copy()
        dist = make_distribution("logNormal", {"mean": -1.7, "sd": 0.09})
        set_value(candidate, 1, 1990, distribution=dist, data_type=3, unit=UNIT)

        changes = change_list(dataset, candidate)

        assert set(changes["column"]) == {
            "value",
            "lowerQuartile",
            "upperQuartile",
            "customDistributionId",
            "dataTypeId",
            "dataTypeName",
        }
        value_change = changes[changes["column"] == "value"].iloc[0]
        assert value_change["old"] == "0.5"
        assert value_change["new"].startswith("0.1826")

    def test_report_without_changes(self, dataset):
        assert format_change_report(dataset, dataset) == "Changes to Fjellrev: none"

    def test_report_lists_cells(self, dataset):
        candidate = dataset.copy()
        set_value(candidate, 2, 2024, 3.0, lower=2.0, upper=4.0, data_type=2, unit=UNIT)

        report = format_change_report(dataset, candidate)

        assert report.startswith("Changes to Fjellrev (6 cells):")
        assert "Nord-Norge" in report
        assert "Overvåkingsdata" in report
