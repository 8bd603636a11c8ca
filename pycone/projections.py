"""Projections onto sets and their derivatives.

`projection_on_set` and `projection_gradient_on_set` are the entry points. Given a
single cone, they delegate to the cone; given a list of cones, they treat it as a
product and apply the cones slice by slice to a matching sequence of values.

"""

from typing import Optional, Sequence, Union

import numpy as np
import numpy.typing as npt

from .block_diagonal import BlockDiagonal
from .cones import Cone, Derivative, Value
from .distance_metrics import Distance
from .exceptions import DimensionMismatchError, UnsupportedConeError
from .settings import ProjectionSettings

SetLike = Union[Cone, Sequence[Cone]]


def _check_cone(cone: object) -> Cone:
    if not isinstance(cone, Cone):
        raise UnsupportedConeError(
            f"Projection onto {type(cone).__name__} is not implemented."
        )
    return cone


def _check_lengths(values: Sequence[Value], cones: Sequence[Cone]) -> None:
    if len(values) != len(cones):
        raise DimensionMismatchError(
            "Mismatch between values and sets",
            expected=len(cones),
            actual=len(values),
        )


def projection_on_set(
    v: Union[Value, Sequence[Value]],
    cone: SetLike,
    distance: Optional[Distance] = None,
    settings: Optional[ProjectionSettings] = None,
) -> Value:
    """Project v onto a set.

    Parameters
    ----------
     v : float, vector, or sequence
        The value to project. When `cone` is a list or tuple of cones, a sequence with
        one value per cone.
     cone : Cone or sequence of Cone
        The set.
     distance : Distance, optional
        Distance variant. Defaults to Euclidean.
     settings : ProjectionSettings, optional
        Numerical settings.

    Returns
    -------
     p : float or vector
        The projection.

    """
    if isinstance(cone, (list, tuple)):
        return project_product(v, cone, distance=distance, settings=settings)
    return _check_cone(cone).project(v, distance=distance, settings=settings)


def projection_gradient_on_set(
    v: Union[Value, Sequence[Value]],
    cone: SetLike,
    distance: Optional[Distance] = None,
    settings: Optional[ProjectionSettings] = None,
) -> Derivative:
    """Calculate the derivative of the projection of v onto a set.

    Parameters
    ----------
     v : float, vector, or sequence
        The point at which to differentiate. When `cone` is a list or tuple of cones, a
        sequence with one value per cone.
     cone : Cone or sequence of Cone
        The set.
     distance : Distance, optional
        Distance variant. Defaults to Euclidean.
     settings : ProjectionSettings, optional
        Numerical settings.

    Returns
    -------
     D : float, matrix, or BlockDiagonal
        Transposed Jacobian: D[i, j] is the derivative of the jth entry of the
        projection with respect to v[i]. Scalar sets return a float; products return a
        BlockDiagonal.

    """
    if isinstance(cone, (list, tuple)):
        return gradient_product(v, cone, distance=distance, settings=settings)
    return _check_cone(cone).gradient(v, distance=distance, settings=settings)


def project_product(
    values: Sequence[Value],
    cones: Sequence[Cone],
    distance: Optional[Distance] = None,
    settings: Optional[ProjectionSettings] = None,
) -> npt.NDArray[np.float64]:
    """Project onto a product of sets.

    Parameters
    ----------
     values : sequence
        One value per set: a scalar for scalar sets, a vector otherwise.
     cones : sequence of Cone
        The sets.
     distance : Distance, optional
        Distance variant. Defaults to Euclidean.
     settings : ProjectionSettings, optional
        Numerical settings.

    Returns
    -------
     p : npt.NDArray[np.float64]
        Concatenation of the projection of each value onto its set, in order.

    """
    _check_lengths(values, cones)
    pieces = [
        np.atleast_1d(
            _check_cone(cone).project(vi, distance=distance, settings=settings)
        )
        for vi, cone in zip(values, cones)
    ]
    if not pieces:
        return np.zeros(0)
    return np.concatenate(pieces)


def gradient_product(
    values: Sequence[Value],
    cones: Sequence[Cone],
    distance: Optional[Distance] = None,
    settings: Optional[ProjectionSettings] = None,
) -> BlockDiagonal:
    """Calculate the derivative of the projection onto a product of sets.

    Parameters
    ----------
     values : sequence
        One value per set: a scalar for scalar sets, a vector otherwise.
     cones : sequence of Cone
        The sets.
     distance : Distance, optional
        Distance variant. Defaults to Euclidean.
     settings : ProjectionSettings, optional
        Numerical settings.

    Returns
    -------
     D : BlockDiagonal
        Block diagonal matrix whose ith block is the derivative of the projection of
        values[i] onto cones[i]. Use `D.toarray()` for a dense matrix.

    """
    _check_lengths(values, cones)
    return BlockDiagonal(
        [
            _check_cone(cone).gradient(vi, distance=distance, settings=settings)
            for vi, cone in zip(values, cones)
        ]
    )
