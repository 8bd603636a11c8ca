"""Test projection onto the exponential cone and its dual."""

from typing import Callable

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402

from pycone import (  # noqa: E402
    DualExponentialCone,
    ExponentialCone,
    ExponentialConeProjectionError,
    ProjectionSettings,
    exp_cone_root,
    projection_gradient_on_set,
    projection_on_set,
)
from pycone.exp_cone import in_dual_exp_cone, in_exp_cone  # noqa: E402

# Points that project onto the smooth part of the boundary. The last two have s <= 0,
# so the upper end of the root-finding bracket starts out unbounded.
BOUNDARY_CASES = [
    np.array([1.0, 1.0, 1.0]),
    np.array([1.0, 2.0, 0.5]),
    np.array([-1.0, 1.0, -1.0]),
    np.array([0.5, 0.5, 0.1]),
    np.array([2.0, -1.0, 1.0]),
    np.array([1.0, -0.5, 3.0]),
]


def finite_difference_jacobian(
    f: Callable[[np.ndarray], np.ndarray], v: np.ndarray, h: float = 1e-5
) -> np.ndarray:
    """Central difference approximation, J[i, j] ~ d f(v)[i] / d v[j]."""
    n = v.shape[0]
    J = np.zeros((n, n))
    for j in range(n):
        e = np.zeros(n)
        e[j] = h
        J[:, j] = (f(v + e) - f(v - e)) / (2 * h)
    return J


def is_boundary_case(v: np.ndarray, tol: float = 1e-8) -> bool:
    """Neither in the cone, nor in the polar cone, nor on a degenerate face."""
    return (
        not in_exp_cone(v, tol)
        and not in_dual_exp_cone(-v, tol)
        and not (v[0] <= 0 and v[1] <= 0)
    )


def test_membership() -> None:
    """Test in_exp_cone and in_dual_exp_cone."""
    assert in_exp_cone(np.array([0.0, 1.0, 2.0]), 1e-8)
    assert in_exp_cone(np.array([-1.0, 0.0, 1.0]), 1e-8)
    assert not in_exp_cone(np.array([1.0, 1.0, 1.0]), 1e-8)
    assert not in_exp_cone(np.array([1.0, -1.0, 10.0]), 1e-8)

    assert in_dual_exp_cone(np.array([-1.0, 1.0, 1.0]), 1e-8)
    assert in_dual_exp_cone(np.array([0.0, 1.0, 1.0]), 1e-8)
    assert not in_dual_exp_cone(np.array([1.0, 1.0, 1.0]), 1e-8)


def test_interior() -> None:
    """Points in the cone are fixed, with identity gradient."""
    v = np.array([0.0, 1.0, 2.0])
    np.testing.assert_array_equal(projection_on_set(v, ExponentialCone()), v)
    np.testing.assert_array_equal(
        projection_gradient_on_set(v, ExponentialCone()), np.eye(3)
    )


def test_polar() -> None:
    """Points in the polar cone project to zero."""
    v = np.array([1.0, -1.0, -1.0])
    np.testing.assert_array_equal(projection_on_set(v, ExponentialCone()), np.zeros(3))
    np.testing.assert_array_equal(
        projection_gradient_on_set(v, ExponentialCone()), np.zeros((3, 3))
    )


def test_degenerate_face() -> None:
    """Points with x <= 0 and y <= 0 map to (x, 0, max(z, 0))."""
    cone = ExponentialCone()
    v = np.array([-1.0, -1.0, 2.0])
    np.testing.assert_array_equal(projection_on_set(v, cone), [-1.0, 0.0, 2.0])
    np.testing.assert_array_equal(
        projection_gradient_on_set(v, cone), np.diag([1.0, 0.0, 1.0])
    )
    np.testing.assert_allclose(
        finite_difference_jacobian(lambda x: projection_on_set(x, cone), v),
        np.diag([1.0, 0.0, 1.0]),
        atol=1e-8,
    )

    v = np.array([-1.0, -1.0, -1.0])
    np.testing.assert_array_equal(projection_on_set(v, cone), [-1.0, 0.0, 0.0])
    np.testing.assert_array_equal(
        projection_gradient_on_set(v, cone), np.diag([1.0, 0.0, 0.0])
    )


@pytest.mark.parametrize("v", BOUNDARY_CASES)
def test_boundary_projection(v: np.ndarray) -> None:
    """The projection lands on the boundary and satisfies the optimality conditions."""
    assert is_boundary_case(v)
    cone = ExponentialCone()
    p = projection_on_set(v, cone)
    x, y, z = p

    assert y > 0
    np.testing.assert_allclose(y * np.exp(x / y), z, rtol=1e-9)

    # The multiplier z - t is nonnegative, and v - p is orthogonal to p
    assert z - v[2] >= -1e-12
    np.testing.assert_allclose(np.dot(v - p, p), 0.0, atol=1e-9)

    # Idempotent
    np.testing.assert_allclose(projection_on_set(p, cone), p, atol=1e-12)


@pytest.mark.parametrize("v", BOUNDARY_CASES)
def test_moreau_decomposition(v: np.ndarray) -> None:
    """v = proj_K(v) - proj_K*(-v)."""
    p = projection_on_set(v, ExponentialCone())
    q = projection_on_set(-v, DualExponentialCone())
    np.testing.assert_allclose(p - q, v, atol=1e-12)
    np.testing.assert_allclose(np.dot(p, q), 0.0, atol=1e-9)


@pytest.mark.parametrize("v", BOUNDARY_CASES)
def test_boundary_gradient(v: np.ndarray) -> None:
    """Gradient of the boundary case agrees with finite differences."""
    cone = ExponentialCone()
    D = projection_gradient_on_set(v, cone)
    J = finite_difference_jacobian(lambda x: projection_on_set(x, cone), v)
    np.testing.assert_allclose(D, D.T, atol=1e-8)
    np.testing.assert_allclose(D, J, atol=1e-5)


def test_random_boundary_gradients() -> None:
    """Gradients at random points agree with finite differences."""
    np.random.seed(0)
    cone = ExponentialCone()
    tested = 0
    while tested < 20:
        v = np.random.randn(3)
        # Keep away from the boundaries between cases
        nearby = [v + 1e-3 * s * e for e in np.eye(3) for s in (-1, 1)]
        if not all(is_boundary_case(w) for w in [v] + nearby):
            continue
        D = projection_gradient_on_set(v, cone)
        J = finite_difference_jacobian(lambda x: projection_on_set(x, cone), v)
        np.testing.assert_allclose(D, J, atol=1e-5)
        tested += 1


@pytest.mark.parametrize("v", BOUNDARY_CASES)
def test_dual_gradient(v: np.ndarray) -> None:
    """Dual cone gradient agrees with finite differences."""
    cone = DualExponentialCone()
    D = projection_gradient_on_set(-v, cone)
    J = finite_difference_jacobian(lambda x: projection_on_set(x, cone), -v)
    np.testing.assert_allclose(D, J, atol=1e-5)
    np.testing.assert_allclose(
        D, np.eye(3) - projection_gradient_on_set(v, ExponentialCone()), atol=1e-12
    )


def test_dual_cone_fixed_points() -> None:
    """Points in the dual cone are fixed."""
    v = np.array([-1.0, 1.0, 1.0])
    np.testing.assert_allclose(projection_on_set(v, DualExponentialCone()), v)
    np.testing.assert_allclose(
        projection_gradient_on_set(v, DualExponentialCone()), np.eye(3)
    )


def test_root_result() -> None:
    """Root-find diagnostics."""
    res = exp_cone_root(np.array([1.0, 1.0, 1.0]))
    assert res.converged
    assert res.lower <= res.root <= res.upper
    assert res.expansions == 0
    assert res.nits > 0
    assert len(res.residuals) > res.nits

    res = exp_cone_root(np.array([2.0, -1.0, 1.0]))
    assert res.converged
    assert res.lower <= res.root <= res.upper


def test_plot_convergence() -> None:
    """Smoke test for the convergence plot."""
    res = exp_cone_root(np.array([1.0, 1.0, 1.0]))
    ax = res.plot_convergence()
    assert ax.get_yscale() == "log"
    plt.close("all")


def test_root_failures() -> None:
    """Failing to bracket or converge raises."""
    with pytest.raises(ExponentialConeProjectionError):
        exp_cone_root(np.array([-1.0, -1.0, 0.0]))

    settings = ProjectionSettings(root_maxiter=1)
    with pytest.raises(ExponentialConeProjectionError) as exc_info:
        projection_on_set(np.ones(3), ExponentialCone(), settings=settings)
    np.testing.assert_array_equal(exc_info.value.point, [1.0, 1.0, 1.0])
    assert exc_info.value.lower <= exc_info.value.upper


def test_verbose(capsys: pytest.CaptureFixture) -> None:
    """Verbose settings print root-finding progress."""
    settings = ProjectionSettings(verbose=True)
    projection_on_set(np.array([1.0, 1.0, 1.0]), ExponentialCone(), settings=settings)
    captured = capsys.readouterr()
    assert "Bisection converged" in captured.out

    projection_on_set(np.array([1.0, 1.0, 1.0]), ExponentialCone())
    captured = capsys.readouterr()
    assert captured.out == ""


def test_invalid_settings() -> None:
    """Settings are validated."""
    with pytest.raises(ValueError):
        ProjectionSettings(exp_cone_tolerance=-1.0)

    with pytest.raises(ValueError):
        ProjectionSettings(bracket_initial_step=0.0)

    with pytest.raises(ValueError):
        ProjectionSettings(root_maxiter=0)


# Points whose root lies hundreds or thousands away from zero, where the point built
# from the root is swamped by rounding or overflows.
FAR_ROOT_CASES = [
    (np.array([9.34e-4, -1.891, 0.454]), np.array([0.0, 0.0, 0.454])),
    (np.array([0.0214, -0.919, 0.193]), np.array([0.0, 0.0, 0.193])),
    (np.array([-50.0, 0.01, -0.5]), np.array([-50.0, 0.01, 0.0])),
]


@pytest.mark.parametrize("v,expected", FAR_ROOT_CASES)
def test_far_root_projection(v: np.ndarray, expected: np.ndarray) -> None:
    """Projection stays accurate when the root is far from zero."""
    cone = ExponentialCone()
    p = projection_on_set(v, cone)
    np.testing.assert_allclose(p, expected, atol=1e-9)
    np.testing.assert_allclose(projection_on_set(p, cone), p, atol=1e-12)

    D = projection_gradient_on_set(v, cone)
    assert np.all(np.isfinite(D))
    J = finite_difference_jacobian(lambda x: projection_on_set(x, cone), v)
    np.testing.assert_allclose(D, J, atol=1e-4)


def test_far_root_bracket_end() -> None:
    """A bracket end where h vanishes exactly is returned as the root."""
    v = np.array([9.34e-4, -1.891, 0.454])
    res = exp_cone_root(v)
    assert res.converged
    assert res.root == res.lower
    assert res.nits == 0


def test_dual_cone_boundary_is_fixed() -> None:
    """Projections onto the dual cone are members of the dual cone."""
    cone = DualExponentialCone()
    q = projection_on_set(np.array([-1.0, -1.0, -1.0]), cone)
    assert q[0] < 0
    assert in_dual_exp_cone(q, 1e-8)
    np.testing.assert_array_equal(projection_on_set(q, cone), q)
    np.testing.assert_array_equal(projection_gradient_on_set(q, cone), np.eye(3))


@pytest.mark.parametrize("scale", [0.1, 1.0, 5.0])
def test_random_projections(scale: float) -> None:
    """Projections of random points are idempotent and beat simple feasible points."""
    np.random.seed(int(100 * scale))
    primal = ExponentialCone()
    dual = DualExponentialCone()
    atol = 1e-6 * max(1.0, scale)
    for _ in range(300):
        v = scale * np.random.randn(3)

        p = projection_on_set(v, primal)
        np.testing.assert_allclose(
            projection_on_set(p, primal), p, rtol=1e-8, atol=atol
        )
        for c in [np.zeros(3), np.array([min(v[0], 0.0), 0.0, max(v[2], 0.0)])]:
            assert np.linalg.norm(v - p) <= np.linalg.norm(v - c) + atol

        q = projection_on_set(v, dual)
        np.testing.assert_allclose(
            projection_on_set(q, dual), q, rtol=1e-8, atol=atol
        )
        for c in [np.zeros(3), np.array([0.0, max(v[1], 0.0), max(v[2], 0.0)])]:
            assert np.linalg.norm(v - q) <= np.linalg.norm(v - c) + atol

        D = projection_gradient_on_set(v, primal)
        assert np.all(np.isfinite(D))
        np.testing.assert_allclose(D, D.T, atol=1e-8)
        np.testing.assert_allclose(
            projection_gradient_on_set(-v, dual), np.eye(3) - D, atol=1e-12
        )
