r"""Vectorization of symmetric matrices.

A symmetric matrix of order d is stored as a vector of length d * (d + 1) / 2 holding
the upper triangle, column by column:
    vec(X) = (X11, X12, X22, X13, X23, X33, ..., Xdd).

Note that off-diagonal entries are not scaled, so this transformation does not preserve
inner products:
    dot(vec_symm(X), vec_symm(Y)) != trace(X^T * Y)
in general. The Frobenius inner product is the sum of products of the diagonal entries
plus twice the sum of products of the upper diagonal entries; see p. 634 of (Boyd and
Vandenberghe, 2004).

"""

import math
from typing import Optional, Tuple

import numpy as np
import numpy.typing as npt

from .exceptions import DimensionMismatchError


def symm_dim_to_size(dim: int) -> int:
    """Length of the vectorization of a symmetric matrix of order `dim`."""
    if dim < 0:
        raise ValueError("Matrix order must be non-negative.")
    return dim * (dim + 1) // 2


def symm_size_to_dim(size: int) -> int:
    """Order of the symmetric matrix whose vectorization has length `size`.

    Raises
    ------
     DimensionMismatchError
        If `size` is not a triangular number.

    """
    dim = math.isqrt(2 * size)
    if symm_dim_to_size(dim) != size:
        raise DimensionMismatchError(
            f"Vector of length {size} is not the vectorization of a symmetric matrix."
        )
    return dim


def _upper_triangle_indices(
    dim: int,
) -> Tuple[npt.NDArray[np.intp], npt.NDArray[np.intp]]:
    # tril_indices enumerates (i, j), j <= i, row by row; reading X[j, i] walks the
    # upper triangle column by column.
    cols, rows = np.tril_indices(dim)
    return rows, cols


def vec_symm(X: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Vectorize a symmetric matrix.

    Only the upper triangle (including the diagonal) is read.

    Parameters
    ----------
     X : npt.NDArray[np.float64]
        Square matrix.

    Returns
    -------
     x : npt.NDArray[np.float64]
        Vector of length d * (d + 1) / 2.

    """
    X = np.asarray(X)
    if X.ndim != 2 or X.shape[0] != X.shape[1]:
        raise DimensionMismatchError(f"Expected a square matrix, got shape {X.shape}.")

    rows, cols = _upper_triangle_indices(X.shape[0])
    return X[rows, cols].astype(np.result_type(X.dtype, np.float64))


def unvec_symm(
    x: npt.NDArray[np.float64], dim: Optional[int] = None
) -> npt.NDArray[np.float64]:
    """Rebuild a symmetric matrix from its vectorization.

    Parameters
    ----------
     x : npt.NDArray[np.float64]
        Vector of length dim * (dim + 1) / 2.
     dim : int, optional
        Order of the matrix. Inferred from the length of `x` if not specified.

    Returns
    -------
     X : npt.NDArray[np.float64]
        Symmetric dim-by-dim matrix.

    """
    x = np.asarray(x)
    if x.ndim != 1:
        raise DimensionMismatchError(f"Expected a vector, got shape {x.shape}.")

    if dim is None:
        dim = symm_size_to_dim(x.shape[0])
    elif symm_dim_to_size(dim) != x.shape[0]:
        raise DimensionMismatchError(
            "Vector length does not match matrix order",
            expected=symm_dim_to_size(dim),
            actual=x.shape[0],
        )

    X = np.zeros((dim, dim), dtype=np.result_type(x.dtype, np.float64))
    rows, cols = _upper_triangle_indices(dim)
    X[rows, cols] = x
    X[cols, rows] = x
    return X
