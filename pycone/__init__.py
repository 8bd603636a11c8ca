"""Projections onto cones and their derivatives."""

from .block_diagonal import BlockDiagonal
from .cones import (
    Cone,
    DualExponentialCone,
    EqualTo,
    ExponentialCone,
    GreaterThan,
    LessThan,
    Nonnegatives,
    Nonpositives,
    PositiveSemidefiniteConeTriangle,
    ProductCone,
    Reals,
    SecondOrderCone,
    Zeros,
)
from .distance_metrics import DefaultDistance, Distance, NormedEpigraphDistance
from .exceptions import (
    DimensionMismatchError,
    ExponentialConeProjectionError,
    UnsupportedConeError,
)
from .exp_cone import ExpConeRootResult, exp_cone_root
from .projections import (
    gradient_product,
    project_product,
    projection_gradient_on_set,
    projection_on_set,
)
from .settings import ProjectionSettings
from .symmetric import unvec_symm, vec_symm

__all__ = [
    "projection_on_set",
    "projection_gradient_on_set",
    "project_product",
    "gradient_product",
    "Cone",
    "Zeros",
    "Reals",
    "Nonnegatives",
    "Nonpositives",
    "LessThan",
    "GreaterThan",
    "EqualTo",
    "SecondOrderCone",
    "PositiveSemidefiniteConeTriangle",
    "ExponentialCone",
    "DualExponentialCone",
    "ProductCone",
    "Distance",
    "DefaultDistance",
    "NormedEpigraphDistance",
    "BlockDiagonal",
    "ProjectionSettings",
    "ExpConeRootResult",
    "exp_cone_root",
    "vec_symm",
    "unvec_symm",
    "DimensionMismatchError",
    "ExponentialConeProjectionError",
    "UnsupportedConeError",
]
