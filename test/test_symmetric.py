"""Test vectorization of symmetric matrices."""

import numpy as np
import pytest

from pycone.exceptions import DimensionMismatchError
from pycone.symmetric import symm_dim_to_size, symm_size_to_dim, unvec_symm, vec_symm


def test_vec_symm_ordering() -> None:
    """Upper triangle is read column by column."""
    X = np.array(
        [
            [1.0, 2.0, 4.0],
            [2.0, 3.0, 5.0],
            [4.0, 5.0, 6.0],
        ]
    )
    np.testing.assert_array_equal(vec_symm(X), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])


def test_vec_symm_ignores_lower_triangle() -> None:
    """Only the upper triangle is read."""
    X = np.array([[1.0, 2.0], [-100.0, 3.0]])
    np.testing.assert_array_equal(vec_symm(X), [1.0, 2.0, 3.0])


def test_unvec_symm_fills_both_triangles() -> None:
    """Each packed entry lands in X[i, j] and X[j, i]."""
    X = unvec_symm(np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0]))
    expected = np.array(
        [
            [1.0, 2.0, 4.0],
            [2.0, 3.0, 5.0],
            [4.0, 5.0, 6.0],
        ]
    )
    np.testing.assert_array_equal(X, expected)


@pytest.mark.parametrize("dim", list(range(11)))
def test_round_trip(dim: int) -> None:
    """unvec(vec(X)) == X and vec(unvec(x)) == x, exactly."""
    np.random.seed(100 + dim)
    A = np.random.randn(dim, dim)
    X = A + A.T
    x = vec_symm(X)
    assert x.shape == (dim * (dim + 1) // 2,)
    np.testing.assert_array_equal(unvec_symm(x, dim), X)
    np.testing.assert_array_equal(vec_symm(unvec_symm(x)), x)


def test_inner_products_not_preserved() -> None:
    """Off-diagonal entries are not scaled."""
    X = np.array([[1.0, 2.0], [2.0, 1.0]])
    Y = np.array([[0.0, 1.0], [1.0, 0.0]])
    assert np.dot(vec_symm(X), vec_symm(Y)) == 2.0
    assert np.trace(X @ Y) == 4.0


def test_size_and_dim() -> None:
    """Conversions between matrix order and vector length."""
    for dim in range(20):
        assert symm_size_to_dim(symm_dim_to_size(dim)) == dim

    with pytest.raises(DimensionMismatchError):
        symm_size_to_dim(4)

    with pytest.raises(ValueError):
        symm_dim_to_size(-1)


def test_unvec_symm_rejects_bad_lengths() -> None:
    """Lengths that do not match the matrix order are rejected."""
    with pytest.raises(DimensionMismatchError):
        unvec_symm(np.ones(4))

    with pytest.raises(DimensionMismatchError):
        unvec_symm(np.ones(3), 3)

    with pytest.raises(DimensionMismatchError):
        unvec_symm(np.ones((2, 2)))


def test_vec_symm_rejects_non_square() -> None:
    """Non-square matrices are rejected."""
    with pytest.raises(DimensionMismatchError):
        vec_symm(np.ones((2, 3)))
