"""Custom uncertainty distributions.

A custom distribution replaces the quartile pair of a value row with a
parametric family and its parameters. The set of families is closed:
each family tag maps to the names of its required parameters, the
parameters that must be strictly positive, and the central value used
as the point estimate when none is given.

Example usage:
    dist = make_distribution("logNormal", {"mean": -1.7, "sd": 0.09})
    central_value(dist)  # exp(-1.7), about 0.1827
"""

import math
import numbers
import uuid
from dataclasses import dataclass
from typing import Callable, Collection, Dict, Mapping, Tuple

from nisync.exceptions import InvalidParameterError, UnsupportedDistributionError
from nisync.logging_config import create_logger
from nisync.models import CustomDistribution

logger = create_logger(__name__)


@dataclass(frozen=True)
class DistributionFamily:
    """A supported distribution family."""

    tag: str
    parameters: Tuple[str, ...]
    positive: Tuple[str, ...]
    central: Callable[[Mapping[str, float]], float]


FAMILIES: Dict[str, DistributionFamily] = {
    family.tag: family
    for family in (
        # mean and sd on the log scale; the central value is the median
        DistributionFamily(
            "logNormal", ("mean", "sd"), ("sd",), lambda p: math.exp(p["mean"])
        ),
        DistributionFamily("normal", ("mean", "sd"), ("sd",), lambda p: p["mean"]),
        DistributionFamily(
            "gamma", ("shape", "rate"), ("shape", "rate"),
            lambda p: p["shape"] / p["rate"],
        ),
        DistributionFamily(
            "beta", ("shape1", "shape2"), ("shape1", "shape2"),
            lambda p: p["shape1"] / (p["shape1"] + p["shape2"]),
        ),
        DistributionFamily("poisson", ("lambda",), ("lambda",), lambda p: p["lambda"]),
    )
}

SUPPORTED_FAMILIES = tuple(FAMILIES)


def get_family(family_type: str) -> DistributionFamily:
    """Look up a family by tag."""
    try:
        return FAMILIES[family_type]
    except (KeyError, TypeError):
        raise UnsupportedDistributionError(
            f"Unsupported distribution family '{family_type}'. "
            f"Use one of: {', '.join(SUPPORTED_FAMILIES)}"
        )


def validate_parameters(
    family: DistributionFamily, parameters: Mapping[str, object]
) -> Dict[str, float]:
    """Check parameters against a family and return them as floats."""
    if not isinstance(parameters, Mapping):
        raise InvalidParameterError(
            f"Parameters for '{family.tag}' must be a mapping, got {type(parameters).__name__}"
        )

    missing = [name for name in family.parameters if name not in parameters]
    if missing:
        raise InvalidParameterError(
            f"Missing parameters for '{family.tag}': {', '.join(missing)}"
        )

    unexpected = [name for name in parameters if name not in family.parameters]
    if unexpected:
        raise InvalidParameterError(
            f"Unexpected parameters for '{family.tag}': {', '.join(map(str, unexpected))}"
        )

    checked = {}
    for name in family.parameters:
        value = parameters[name]
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidParameterError(
                f"Parameter '{name}' of '{family.tag}' must be numeric, got {value!r}"
            )
        value = float(value)
        if not math.isfinite(value):
            raise InvalidParameterError(
                f"Parameter '{name}' of '{family.tag}' must be finite, got {value!r}"
            )
        if name in family.positive and value <= 0:
            raise InvalidParameterError(
                f"Parameter '{name}' of '{family.tag}' must be positive, got {value!r}"
            )
        checked[name] = value

    return checked


def new_distribution_id(existing_ids: Collection[str] = ()) -> str:
    """Generate an id that does not collide with any existing id."""
    while True:
        candidate = str(uuid.uuid4())
        if candidate not in existing_ids:
            return candidate


def make_distribution(
    family_type: str,
    parameters: Mapping[str, object],
    existing_ids: Collection[str] = (),
) -> CustomDistribution:
    """Build a custom distribution with a freshly generated id.

    Registration into a dataset is a separate step done by the value setter.

    Args:
        family_type: Family tag, one of SUPPORTED_FAMILIES
        parameters: Mapping of parameter name to value
        existing_ids: Ids the new id must not collide with

    Returns:
        A new CustomDistribution

    Raises:
        UnsupportedDistributionError: If the family tag is unknown
        InvalidParameterError: If parameters are missing, non-numeric or out of range
    """
    family = get_family(family_type)
    checked = validate_parameters(family, parameters)
    distribution = CustomDistribution(
        id=new_distribution_id(existing_ids), type=family.tag, parameters=checked
    )
    logger.debug(f"Built {family.tag} distribution {distribution.id}: {checked}")
    return distribution


def central_value(distribution: CustomDistribution) -> float:
    """Point estimate implied by a distribution."""
    family = get_family(distribution.type)
    return float(family.central(validate_parameters(family, distribution.parameters)))
