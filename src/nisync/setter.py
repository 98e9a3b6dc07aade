"""Apply partial updates to indicator value rows.

Each call edits the rows of one area for one or more years. A row's
uncertainty is either a quartile pair or a reference to a custom
distribution, never both; setting one clears the other. All arguments
are checked and all rows are located before the first row is touched,
so a failing call leaves the dataset unchanged.
"""

import math
import numbers
from dataclasses import replace
from typing import Iterable, List, Optional, Union

from nisync import config
from nisync.distributions import (
    central_value,
    get_family,
    make_distribution,
    validate_parameters,
)
from nisync.exceptions import InconsistentUnitError, InvalidParameterError
from nisync.locator import Area, Year, locate_rows
from nisync.logging_config import create_logger
from nisync.models import (
    CustomDistribution,
    DataType,
    DistributionRef,
    IndicatorDataset,
    Quartiles,
)

logger = create_logger(__name__)


def _as_float(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameterError(f"{name} must be numeric, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidParameterError(f"{name} must be finite, got {value!r}")
    return value


def _year_list(years: Union[Year, Iterable[Year]]) -> List[Year]:
    if isinstance(years, (int, float, str)):
        return [years]
    years = list(years)
    if not years:
        raise InvalidParameterError("At least one year is required")
    return years


def _check_unit(
    dataset: IndicatorDataset, unit: Optional[str], targets: List[int]
) -> None:
    if not unit or not str(unit).strip():
        raise InconsistentUnitError("A unit of measurement is required when setting a value")

    existing = dataset.units(exclude=set(targets))
    if not existing or existing == {unit}:
        return

    message = (
        f"Unit '{unit}' differs from the unit used by "
        f"{dataset.indicator_name}: {', '.join(sorted(existing))}"
    )
    if config.unit_mismatch_policy() == "warn":
        logger.warning(message)
        return
    raise InconsistentUnitError(message)


def _distribution_for_row(
    dataset: IndicatorDataset,
    current_id: Optional[str],
    distribution: CustomDistribution,
) -> str:
    """Return the registry id to reference from a row, registering if needed."""
    current = dataset.distributions.get(current_id) if current_id else None
    if current is not None and current.same_as(distribution):
        return current.id

    if distribution.id not in dataset.distributions:
        return dataset.register_distribution(distribution)

    # Already referenced by another row: each row gets its own record.
    fresh = make_distribution(
        distribution.type, distribution.parameters, existing_ids=dataset.distributions
    )
    return dataset.register_distribution(fresh)


def set_value(
    dataset: IndicatorDataset,
    area: Area,
    years: Union[Year, Iterable[Year]],
    estimate: Optional[float] = None,
    *,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    distribution: Optional[CustomDistribution] = None,
    data_type: Union[int, DataType, None] = None,
    unit: Optional[str] = None,
) -> IndicatorDataset:
    """Set the estimate and uncertainty of one area for one or more years.

    Args:
        dataset: Dataset to edit in place
        area: areaId (int) or areaName (str)
        years: A year, the reference value marker, or an iterable of them
        estimate: Point estimate. Defaults to the distribution's central
            value when a distribution is given. When None and no uncertainty
            is given, the rows are cleared.
        lower: 25th percentile, requires upper
        upper: 75th percentile, requires lower
        distribution: Custom distribution, exclusive with the quartiles
        data_type: Data type category id (1, 2 or 3)
        unit: Unit of measurement, must match the dataset's existing unit

    Returns:
        The edited dataset

    Raises:
        NotFoundError: If an (area, year) key matches no row
        AmbiguousKeyError: If an (area, year) key matches several rows
        InconsistentUnitError: If the unit differs and the policy is "error"
        InvalidDataTypeError: If data_type is not a known category
        InvalidParameterError: If the uncertainty arguments are inconsistent
    """
    year_list = _year_list(years)
    has_quartiles = lower is not None or upper is not None

    if has_quartiles and (lower is None or upper is None):
        raise InvalidParameterError("Both lower and upper quartiles are required")

    if estimate is None and distribution is None:
        if has_quartiles:
            raise InvalidParameterError("Quartiles given without an estimate")
        targets = locate_rows(dataset.values, area, year_list)
        for idx in targets:
            dataset.values[idx].clear()
        logger.info(f"Cleared {area} for years {year_list}")
        return dataset

    if has_quartiles and distribution is not None:
        raise InvalidParameterError(
            "Give either quartiles or a distribution, not both"
        )
    if not has_quartiles and distribution is None:
        raise InvalidParameterError(
            "An estimate requires either quartiles or a distribution"
        )

    category = DataType.parse(data_type)

    if distribution is not None:
        if not isinstance(distribution, CustomDistribution):
            raise InvalidParameterError(
                f"distribution must be a CustomDistribution, got {type(distribution).__name__}"
            )
        if not isinstance(distribution.id, str) or not distribution.id.strip():
            raise InvalidParameterError(
                f"Distribution id must be a non-empty string, got {distribution.id!r}"
            )
        family = get_family(distribution.type)
        distribution = replace(
            distribution, parameters=validate_parameters(family, distribution.parameters)
        )
        if estimate is None:
            estimate = central_value(distribution)

    estimate = _as_float("estimate", estimate)
    if has_quartiles:
        quartiles = Quartiles(_as_float("lower", lower), _as_float("upper", upper))
        if not quartiles.lower <= estimate <= quartiles.upper:
            raise InvalidParameterError(
                f"Quartiles must bracket the estimate: "
                f"{quartiles.lower} <= {estimate} <= {quartiles.upper}"
            )

    targets = locate_rows(dataset.values, area, year_list)
    _check_unit(dataset, unit, targets)

    for idx in targets:
        row = dataset.values[idx]
        row.value = estimate
        if has_quartiles:
            row.uncertainty = quartiles
        else:
            row.uncertainty = DistributionRef(
                _distribution_for_row(dataset, row.custom_distribution_id, distribution)
            )
        row.set_data_type(category)
        row.unit_of_measurement = unit

    logger.info(
        f"Set {dataset.indicator_name} {area} {year_list}: "
        f"value={estimate} ({category.label}, {unit})"
    )
    return dataset
