r"""Cones.

Introduction
------------
Each cone in the catalog is an immutable value object implementing two operations:
- project(v): the closest point in the cone to v, and
- gradient(v): the transposed Jacobian of the projection at v, with
      gradient(v)[i, j] = d project(v)[j] / d v[i].
Every cone but the PSD cone has a symmetric Jacobian, so the transpose only matters
there.
The projection map is only piecewise smooth. The gradient is the derivative of whichever
piece v falls in; at a kink we return a fixed selection (documented per cone) rather
than averaging across pieces.

Vector cones act on 1D arrays whose length must equal `dimension`. Scalar sets
(LessThan, GreaterThan, EqualTo) act on Python or NumPy scalars and return floats. A
value whose shape does not match the cone raises DimensionMismatchError; we never
truncate or pad.

Only the second-order cone consults the `distance` argument, which picks the norm used
in the epigraph test \| x \| \leq t. Every other cone ignores it.

For formulas, see "Solution refinement at regular points of conic problems" by
Busseti, Moursi and Boyd.

Adding a cone
-------------
Inherit from Cone and implement `dimension`, `project` and `gradient`. Cone is an
abstract base class, so a missing method fails as soon as the new cone is instantiated.

"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, List, Optional, Tuple, Union

import numpy as np
import numpy.typing as npt

from .block_diagonal import BlockDiagonal
from .distance_metrics import DefaultDistance, Distance
from .exceptions import DimensionMismatchError
from .exp_cone import (
    gradient_dual_exp_cone,
    gradient_exp_cone,
    project_dual_exp_cone,
    project_exp_cone,
)
from .psd import gradient_psd, project_psd
from .settings import ProjectionSettings
from .symmetric import symm_dim_to_size

Value = Union[float, npt.NDArray[np.float64]]
Derivative = Union[float, npt.NDArray[np.float64], BlockDiagonal]


def _resolve_distance(distance: Optional[Distance]) -> Distance:
    if distance is None:
        return DefaultDistance()
    if not isinstance(distance, Distance):
        raise TypeError(f"Expected a Distance, got {type(distance).__name__}.")
    return distance


def _check_dimension_parameter(name: str, n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {n!r}.")
    if n < 0:
        raise ValueError(f"{name} must be non-negative, got {n}.")


class Cone(ABC):
    """Abstract base class for cones."""

    is_scalar: ClassVar[bool] = False

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Number of coordinates the cone acts on."""

    @abstractmethod
    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> Value:
        """Project v onto the cone."""

    @abstractmethod
    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> Derivative:
        """Calculate the derivative of the projection at v."""

    def _validate(self, v: Value) -> npt.NDArray[np.float64]:
        arr = np.asarray(v, dtype=np.float64)
        if arr.ndim != 1:
            raise DimensionMismatchError(
                f"{type(self).__name__} expects a 1D array, got shape {arr.shape}"
            )
        if arr.shape[0] != self.dimension:
            raise DimensionMismatchError(
                f"Mismatch between value and {type(self).__name__}",
                expected=self.dimension,
                actual=arr.shape[0],
            )
        return arr


##############################################################################
# Vector cones
##############################################################################
@dataclass(frozen=True)
class _VectorCone(Cone):
    n: int

    def __post_init__(self) -> None:
        """Validate dimension."""
        _check_dimension_parameter("n", self.n)

    @property
    def dimension(self) -> int:
        """Number of coordinates the cone acts on."""
        return int(self.n)


@dataclass(frozen=True)
class Zeros(_VectorCone):
    """The zero cone, K = {0}^n."""

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto {0}."""
        self._validate(v)
        return np.zeros(self.dimension)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto {0}: the zero matrix."""
        self._validate(v)
        return np.zeros((self.dimension, self.dimension))


@dataclass(frozen=True)
class Reals(_VectorCone):
    """The free cone, K = R^n."""

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto R^n: the identity."""
        return self._validate(v).copy()

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto R^n: the identity matrix."""
        self._validate(v)
        return np.eye(self.dimension)


@dataclass(frozen=True)
class Nonnegatives(_VectorCone):
    """The nonnegative orthant, K = R^n_+."""

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto R^n_+."""
        return np.maximum(self._validate(v), 0.0)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto R^n_+.

        Diagonal with 1 where v_i > 0, 0 where v_i < 0, and 0.5 where v_i = 0.

        """
        v = self._validate(v)
        return np.diag((np.sign(v) + 1.0) / 2.0)


@dataclass(frozen=True)
class Nonpositives(_VectorCone):
    """The nonpositive orthant, K = R^n_-."""

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto R^n_-."""
        return np.minimum(self._validate(v), 0.0)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto R^n_-.

        Diagonal with 1 where v_i < 0, 0 where v_i > 0, and 0.5 where v_i = 0.

        """
        v = self._validate(v)
        return np.diag((1.0 - np.sign(v)) / 2.0)


@dataclass(frozen=True)
class SecondOrderCone(_VectorCone):
    r"""The second-order cone, K = { (t, x) : \| x \| \leq t }.

    Parameters
    ----------
     n : int
        Ambient dimension, including the leading scalar t. Must be at least 1.

    """

    def __post_init__(self) -> None:
        """Validate dimension."""
        super().__post_init__()
        if self.n < 1:
            raise ValueError("SecondOrderCone dimension must be at least 1.")

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        r"""Project v = (t, x) onto the second-order cone.

        If \| x \| \leq t, v is already in the cone; if \| x \| \leq -t, v is in the
        polar cone and projects to zero; otherwise the projection is
            ((\| x \| + t) / 2) * (1, x / \| x \|).

        """
        v = self._validate(v)
        t = v[0]
        x = v[1:]
        norm_x = _resolve_distance(distance).epigraph_norm(x)
        if norm_x <= t:
            return v.copy()
        elif norm_x <= -t:
            return np.zeros(self.dimension)

        result = np.empty(self.dimension)
        result[0] = 1.0
        result[1:] = x / norm_x
        return ((norm_x + t) / 2.0) * result

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        r"""Derivative of the projection onto the second-order cone.

        Identity in the interior, zero in the polar cone, and otherwise
                         _                                             _
                  1     |  \| x \|                x^T                   |
            ---------- * |                                               |.
            2 \| x \|   |_    x      (\| x \| + t) I - (t / \| x \|^2) x x^T _|

        """
        v = self._validate(v)
        n = self.dimension
        t = v[0]
        x = v[1:]
        norm_x = _resolve_distance(distance).epigraph_norm(x)
        if norm_x <= t:
            return np.eye(n)
        elif norm_x <= -t:
            return np.zeros((n, n))

        result = np.empty((n, n))
        result[0, 0] = norm_x
        result[0, 1:] = x
        result[1:, 0] = x
        result[1:, 1:] = (norm_x + t) * np.eye(n - 1) - (t / norm_x**2) * np.outer(
            x, x
        )
        return result / (2.0 * norm_x)


@dataclass(frozen=True)
class PositiveSemidefiniteConeTriangle(Cone):
    """The cone of positive semidefinite matrices, triangle-packed.

    Parameters
    ----------
     side : int
        Order of the matrix. Values have length side * (side + 1) / 2; see
        `symmetric.vec_symm` for the ordering.

    """

    side: int

    def __post_init__(self) -> None:
        """Validate dimension."""
        _check_dimension_parameter("side", self.side)

    @property
    def dimension(self) -> int:
        """Length of the vectorized matrix."""
        return symm_dim_to_size(int(self.side))

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto the PSD cone by clamping eigenvalues at zero."""
        return project_psd(self._validate(v))

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto the PSD cone."""
        return gradient_psd(self._validate(v), settings)


@dataclass(frozen=True)
class ExponentialCone(Cone):
    """The (closure of the) exponential cone in R^3."""

    @property
    def dimension(self) -> int:
        """Always 3."""
        return 3

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto the exponential cone."""
        return project_exp_cone(self._validate(v), settings)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto the exponential cone."""
        return gradient_exp_cone(self._validate(v), settings)


@dataclass(frozen=True)
class DualExponentialCone(Cone):
    """The dual of the exponential cone in R^3."""

    @property
    def dimension(self) -> int:
        """Always 3."""
        return 3

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Project v onto the dual exponential cone, v + proj_{K_exp}(-v)."""
        return project_dual_exp_cone(self._validate(v), settings)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Derivative of the projection onto the dual exponential cone."""
        return gradient_dual_exp_cone(self._validate(v), settings)


##############################################################################
# Scalar sets
##############################################################################
class _ScalarSet(Cone):
    is_scalar: ClassVar[bool] = True

    @property
    def dimension(self) -> int:
        """Scalar sets act on one coordinate."""
        return 1

    @property
    @abstractmethod
    def constant(self) -> float:
        """The bound defining the set."""

    def _validate(self, v: Value) -> float:
        if np.ndim(v) != 0:
            raise DimensionMismatchError(
                f"{type(self).__name__} expects a scalar, got shape {np.shape(v)}"
            )
        return float(v)


@dataclass(frozen=True)
class LessThan(_ScalarSet):
    """The set { v : v <= upper }."""

    upper: float

    @property
    def constant(self) -> float:
        """Upper bound."""
        return self.upper

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> float:
        """Project v onto (-inf, upper]."""
        return min(self._validate(v), float(self.upper))

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> float:
        """1 if v <= upper else 0."""
        return 1.0 if self._validate(v) <= self.upper else 0.0


@dataclass(frozen=True)
class GreaterThan(_ScalarSet):
    """The set { v : v >= lower }."""

    lower: float

    @property
    def constant(self) -> float:
        """Lower bound."""
        return self.lower

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> float:
        """Project v onto [lower, inf)."""
        return max(self._validate(v), float(self.lower))

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> float:
        """1 if v >= lower else 0."""
        return 1.0 if self._validate(v) >= self.lower else 0.0


@dataclass(frozen=True)
class EqualTo(_ScalarSet):
    """The set { value }."""

    value: float

    @property
    def constant(self) -> float:
        """The value."""
        return self.value

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> float:
        """Project v onto {value}."""
        self._validate(v)
        return float(self.value)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> float:
        """The projection is constant, so its derivative is zero."""
        self._validate(v)
        return 0.0


##############################################################################
# Products
##############################################################################
@dataclass(frozen=True)
class ProductCone(Cone):
    """Cartesian product of cones acting on consecutive slices of a flat vector.

    Scalar sets consume one coordinate; vector cones consume `dimension` coordinates.

    Parameters
    ----------
     cones : sequence of Cone
        The factors, in order.

    """

    cones: Tuple[Cone, ...]

    def __post_init__(self) -> None:
        """Normalize and validate factors."""
        object.__setattr__(self, "cones", tuple(self.cones))
        for cone in self.cones:
            if not isinstance(cone, Cone):
                raise TypeError(f"Expected a Cone, got {type(cone).__name__}.")

    @property
    def dimension(self) -> int:
        """Total number of coordinates."""
        return sum(cone.dimension for cone in self.cones)

    def split(self, v: Value) -> List[Value]:
        """Split a flat vector into per-cone values."""
        v = self._validate(v)
        values: List[Value] = []
        offset = 0
        for cone in self.cones:
            if cone.is_scalar:
                values.append(float(v[offset]))
            else:
                values.append(v[offset : offset + cone.dimension])
            offset += cone.dimension
        return values

    def project(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> npt.NDArray[np.float64]:
        """Concatenate the projection of each slice onto its cone."""
        pieces = [
            np.atleast_1d(cone.project(vi, distance=distance, settings=settings))
            for cone, vi in zip(self.cones, self.split(v))
        ]
        if not pieces:
            return np.zeros(0)
        return np.concatenate(pieces)

    def gradient(
        self,
        v: Value,
        distance: Optional[Distance] = None,
        settings: Optional[ProjectionSettings] = None,
    ) -> BlockDiagonal:
        """Block diagonal derivative; cross terms between cones are zero."""
        return BlockDiagonal(
            [
                cone.gradient(vi, distance=distance, settings=settings)
                for cone, vi in zip(self.cones, self.split(v))
            ]
        )
