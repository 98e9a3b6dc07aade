"""Resolve (area, year) keys to value rows."""

from typing import Iterable, List, Sequence, Union

from nisync.exceptions import AmbiguousKeyError, NotFoundError
from nisync.models import REFERENCE_YEAR, IndicatorValueRow

Area = Union[int, str]
Year = Union[int, str]


def normalize_year(year: Year) -> str:
    """Return the yearName form of a calendar year or the reference marker."""
    if isinstance(year, bool):
        raise NotFoundError(f"Invalid year: {year!r}")
    if isinstance(year, int):
        return str(year)
    if isinstance(year, float) and year.is_integer():
        return str(int(year))
    text = str(year).strip()
    if text.lower() == REFERENCE_YEAR.lower():
        return REFERENCE_YEAR
    if text.isdigit():
        return str(int(text))
    return text


def _matches_area(row: IndicatorValueRow, area: Area) -> bool:
    if isinstance(area, str):
        return row.area_name == area
    return row.area_id == area


def locate_row(values: Sequence[IndicatorValueRow], area: Area, year: Year) -> int:
    """
    Return the index of the unique row for an area and year.

    :param values: Value rows of one indicator dataset
    :param area: areaId (int) or areaName (str)
    :param year: Calendar year or the reference value marker
    :return: Row index
    :raises NotFoundError: If no row matches
    :raises AmbiguousKeyError: If more than one row matches
    """
    year_name = normalize_year(year)
    matches = [
        i
        for i, row in enumerate(values)
        if _matches_area(row, area)
        and row.year_name is not None
        and normalize_year(row.year_name) == year_name
    ]

    if not matches:
        raise NotFoundError(f"No row for area {area!r} and year {year_name!r}")
    if len(matches) > 1:
        raise AmbiguousKeyError(
            f"{len(matches)} rows for area {area!r} and year {year_name!r}: {matches}"
        )
    return matches[0]


def locate_rows(
    values: Sequence[IndicatorValueRow], area: Area, years: Iterable[Year]
) -> List[int]:
    """Locate one row per year, failing on the first unresolved key."""
    return [locate_row(values, area, year) for year in years]
