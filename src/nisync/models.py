"""Record types for indicator datasets.

An indicator dataset is a fixed table of value rows, one per valid
(area, year) combination including the reference value pseudo-year,
plus a registry of custom uncertainty distributions referenced from
the rows. Rows are created by the remote store; this package only
edits them.

The tabular wire shape is kept exactly: ``IndicatorDataset.to_frame``
emits the camelCase column names below, in the order the dataset was
downloaded with.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from nisync.exceptions import InvalidDataTypeError, InvalidParameterError

# yearName marker of the reference value row
REFERENCE_YEAR = "Referanseverdi"


class DataType(IntEnum):
    """How an indicator value was derived."""

    EXPERT_JUDGEMENT = 1
    MONITORING_DATA = 2
    MODEL_ESTIMATE = 3

    @property
    def label(self) -> str:
        return DATA_TYPE_NAMES[self.value]

    @classmethod
    def parse(cls, data_type: Union[int, "DataType"]) -> "DataType":
        """Return the category for an id, raising InvalidDataTypeError otherwise."""
        if isinstance(data_type, bool):
            raise InvalidDataTypeError(f"Invalid data type id: {data_type!r}")
        try:
            return cls(int(data_type))
        except (TypeError, ValueError):
            raise InvalidDataTypeError(
                f"Invalid data type id: {data_type!r}. "
                f"Use one of {sorted(DATA_TYPE_NAMES)}"
            )


DATA_TYPE_NAMES = {
    1: "Ekspertvurdering",
    2: "Overvåkingsdata",
    3: "Beregnet fra modeller",
}

# (attribute, wire column, kind)
_ROW_FIELDS = (
    ("indicator_id", "indicatorId", "integer"),
    ("indicator_name", "indicatorName", "string"),
    ("area_id", "areaId", "integer"),
    ("area_name", "areaName", "string"),
    ("year_id", "yearId", "integer"),
    ("year_name", "yearName", "string"),
    ("value", "value", "numeric"),
    ("lower_quartile", "lowerQuartile", "numeric"),
    ("upper_quartile", "upperQuartile", "numeric"),
    ("data_type_id", "dataTypeId", "integer"),
    ("data_type_name", "dataTypeName", "string"),
    ("unit_of_measurement", "unitOfMeasurement", "string"),
    ("custom_distribution_id", "customDistributionId", "string"),
    ("distribution_name", "distributionName", "string"),
    ("distribution_id", "distributionId", "integer"),
    ("dist_param1", "distParam1", "numeric"),
    ("dist_param2", "distParam2", "numeric"),
)

VALUE_COLUMNS = [column for _, column, _ in _ROW_FIELDS]
COLUMN_KINDS = {column: kind for _, column, kind in _ROW_FIELDS}
IDENTIFIER_COLUMNS = [
    "indicatorId",
    "indicatorName",
    "areaId",
    "areaName",
    "yearId",
    "yearName",
]

_COLUMN_DTYPES = {"integer": "Int64", "numeric": "float64", "string": "object"}


def is_missing(value: Any) -> bool:
    """True for None and pandas/numpy missing markers."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _native(value: Any, kind: Optional[str]) -> Any:
    if is_missing(value):
        return None
    if kind == "integer":
        try:
            return int(value)
        except (TypeError, ValueError):
            return value
    if kind == "numeric" and hasattr(value, "item"):
        return value.item()
    if kind == "string" and not isinstance(value, str):
        # yearName may come back as a number from a loosely typed source
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    return value


@dataclass(frozen=True)
class Quartiles:
    """25th and 75th percentile bounds around an estimate."""

    lower: float
    upper: float


@dataclass(frozen=True)
class DistributionRef:
    """Reference to a registered custom distribution."""

    distribution_id: str


Uncertainty = Union[Quartiles, DistributionRef, None]


@dataclass
class CustomDistribution:
    """A named parametric uncertainty distribution."""

    id: str
    type: str
    parameters: Dict[str, float]

    def same_as(self, other: "CustomDistribution") -> bool:
        """True when both describe the same family and parameters, ignoring ids."""
        return self.type == other.type and dict(self.parameters) == dict(other.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "parameters": dict(self.parameters)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomDistribution":
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            parameters={str(k): float(v) for k, v in dict(data["parameters"]).items()},
        )


@dataclass
class IndicatorValueRow:
    """One row of an indicator's value table."""

    indicator_id: Optional[int]
    indicator_name: Optional[str]
    area_id: Optional[int]
    area_name: Optional[str]
    year_id: Optional[int] = None
    year_name: Optional[str] = None
    value: Optional[float] = None
    lower_quartile: Optional[float] = None
    upper_quartile: Optional[float] = None
    data_type_id: Optional[int] = None
    data_type_name: Optional[str] = None
    unit_of_measurement: Optional[str] = None
    custom_distribution_id: Optional[str] = None
    distribution_name: Optional[str] = None
    distribution_id: Optional[int] = None
    dist_param1: Optional[float] = None
    dist_param2: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_reference(self) -> bool:
        return self.year_name == REFERENCE_YEAR

    @property
    def uncertainty(self) -> Uncertainty:
        """The row's uncertainty as a tagged value.

        A row holding both representations violates the dataset invariant;
        the distribution reference wins so that the invalid state is visible
        to the row validator rather than silently hidden.
        """
        if self.custom_distribution_id is not None:
            return DistributionRef(self.custom_distribution_id)
        if self.lower_quartile is not None or self.upper_quartile is not None:
            return Quartiles(self.lower_quartile, self.upper_quartile)
        return None

    @uncertainty.setter
    def uncertainty(self, uncertainty: Uncertainty) -> None:
        if isinstance(uncertainty, Quartiles):
            self.lower_quartile = float(uncertainty.lower)
            self.upper_quartile = float(uncertainty.upper)
            self.custom_distribution_id = None
        elif isinstance(uncertainty, DistributionRef):
            self.lower_quartile = None
            self.upper_quartile = None
            self.custom_distribution_id = uncertainty.distribution_id
        elif uncertainty is None:
            self.lower_quartile = None
            self.upper_quartile = None
            self.custom_distribution_id = None
        else:
            raise InvalidParameterError(f"Unknown uncertainty: {uncertainty!r}")

    def set_data_type(self, data_type: Union[int, DataType, None]) -> None:
        if data_type is None:
            self.data_type_id = None
            self.data_type_name = None
            return
        category = DataType.parse(data_type)
        self.data_type_id = int(category)
        self.data_type_name = category.label

    def clear(self) -> None:
        """Unset the estimate together with everything that depends on it."""
        self.value = None
        self.uncertainty = None
        self.set_data_type(None)
        self.unit_of_measurement = None

    def get(self, column: str) -> Any:
        """Return a cell by its wire column name."""
        for attr, name, _ in _ROW_FIELDS:
            if name == column:
                return getattr(self, attr)
        return self.extras.get(column)

    def to_record(self) -> Dict[str, Any]:
        record = {column: getattr(self, attr) for attr, column, _ in _ROW_FIELDS}
        record.update(self.extras)
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "IndicatorValueRow":
        kwargs = {
            attr: _native(record.get(column), kind)
            for attr, column, kind in _ROW_FIELDS
        }
        extras = {
            key: _native(value, None)
            for key, value in record.items()
            if key not in COLUMN_KINDS
        }
        return cls(extras=extras, **kwargs)


@dataclass
class IndicatorDataset:
    """The full value table and distribution registry of one indicator."""

    values: List[IndicatorValueRow]
    distributions: Dict[str, CustomDistribution] = field(default_factory=dict)
    columns: List[str] = field(default_factory=lambda: list(VALUE_COLUMNS))
    revision: Optional[str] = None

    @property
    def indicator_name(self) -> Optional[str]:
        return self.values[0].indicator_name if self.values else None

    @property
    def indicator_id(self) -> Optional[int]:
        return self.values[0].indicator_id if self.values else None

    def units(self, exclude: Optional[set] = None) -> set:
        """Units of all rows holding a value, optionally skipping row indices."""
        exclude = exclude or set()
        return {
            row.unit_of_measurement
            for i, row in enumerate(self.values)
            if i not in exclude
            and row.value is not None
            and row.unit_of_measurement is not None
        }

    def register_distribution(self, distribution: CustomDistribution) -> str:
        """Append a distribution to the registry and return its id.

        The registry keeps its own copy, so later changes to the caller's
        object do not reach registered records.
        """
        if distribution.id in self.distributions:
            raise InvalidParameterError(
                f"Distribution id {distribution.id} is already registered"
            )
        self.distributions[distribution.id] = replace(
            distribution, parameters=dict(distribution.parameters)
        )
        return distribution.id

    def copy(self) -> "IndicatorDataset":
        return copy.deepcopy(self)

    def to_frame(self) -> pd.DataFrame:
        """Value table as a DataFrame with the wire column names and order."""
        frame = pd.DataFrame(
            [row.to_record() for row in self.values], columns=self.columns
        )
        dtypes = {
            column: _COLUMN_DTYPES[COLUMN_KINDS[column]]
            for column in self.columns
            if column in COLUMN_KINDS
        }
        return frame.astype(dtypes)

    def distributions_to_list(self) -> List[Dict[str, Any]]:
        return [dist.to_dict() for dist in self.distributions.values()]

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        distributions: Optional[List[Mapping[str, Any]]] = None,
        revision: Optional[str] = None,
    ) -> "IndicatorDataset":
        """Build a dataset from a downloaded value table and distribution list."""
        rows = [
            IndicatorValueRow.from_record(record)
            for record in frame.to_dict(orient="records")
        ]
        registry = {}
        for item in distributions or []:
            dist = CustomDistribution.from_dict(item)
            registry[dist.id] = dist
        return cls(
            values=rows,
            distributions=registry,
            columns=[str(column) for column in frame.columns],
            revision=revision,
        )
