r"""Exponential cone.

The exponential cone is the closure
    K_exp = { (x, y, z) : y * exp(x / y) <= z, y > 0 } U { (x, y, z) : x <= 0, y = 0, z >= 0 },
and its dual is
    K_exp^* = { (u, v, w) : u < 0, -u * exp(v / u) <= e * w } U { (u, v, w) : u = 0, v >= 0, w >= 0 }.

Projection
----------
Points already in the cone are left unchanged; points in the polar cone -K_exp^* map to
zero; points with x <= 0 and y <= 0 map to (x, 0, max(z, 0)). Everything else projects
onto the smooth part of the boundary, found by solving a univariate equation
    h(rho) = (((rho - 1) * r + s) * exp(rho) - (r - rho * s) * exp(-rho))
             / (rho^2 - rho + 1) - t = 0,
where (r, s, t) is the point being projected. h is smooth, strictly increasing, and
changes sign on its domain, so we bracket the root and bisect. Bisection only needs the
sign of h, so we evaluate h * (rho^2 - rho + 1) * exp(-|rho|) instead, which cannot
overflow.

When r or s is tiny relative to the other, the root sits far out (|rho| in the
hundreds or more), and the point built from it is swamped by rounding or overflows. So,
like SCS, we also compute cheap heuristic projections onto the perspective boundary and
interior, and keep whichever candidate is nearest to the point being projected.

References
----------
- Parikh, N. and Boyd, S. "Proximal Algorithms", section 6.3.4.
- Friberg, H. "Projection onto the exponential cone: a univariate root-finding
  problem", 2021.

Derivative
----------
Off the degenerate faces, the projection p of v solves
    minimize    (1/2) * || p - v ||_2^2
    subject to  g(p) := y * exp(x / y) - z <= 0,
with an active constraint and multiplier mu = z* - t >= 0. Differentiating the KKT
conditions v - p = mu * grad g(p), g(p) = 0 gives the linear system
     _                                _   _      _     _    _
    |  I + mu * hess g(p)   grad g(p)  | |  dp    |   |  dv  |
    |                                  | |        | = |      |,
    |_    grad g(p)^T           0     _| |_ dmu  _|   |_  0 _|
so the Jacobian is the upper-left 3-by-3 block of the inverse of the KKT matrix. The
Hessian of g is rank one, so we eliminate the system in closed form rather than factor
it.

"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
from matplotlib.axes import Axes
from scipy import optimize

from .exceptions import ExponentialConeProjectionError
from .settings import ProjectionSettings


@dataclass
class ExpConeRootResult:
    """Wrapper for the result of the exponential cone root-find.

    Parameters
    ----------
    root : float
        The root of h.
    lower, upper : float
        Final bracket handed to bisection.
    expansions : int
        Number of times an unbounded bracket end was doubled.
    nits : int
        Number of bisection iterations. Zero if a bracket end was an exact root.
    residuals : list of float
        |h| at every evaluation, in order, scaled by (rho^2 - rho + 1) * exp(-|rho|).
    converged : bool
        Whether bisection converged.

    """

    root: float
    lower: float
    upper: float
    expansions: int
    nits: int
    residuals: List[float] = field(default_factory=list)
    converged: bool = True

    def plot_convergence(self, ax: Optional[Axes] = None) -> Axes:
        """Plot |h| at each function evaluation."""
        if ax is None:
            _, ax = plt.subplots()

        ax.plot(
            [ii + 1 for ii in range(len(self.residuals))], self.residuals, marker="o"
        )
        ax.set_yscale("log")
        ax.set_xlabel("Function Evaluations")
        ax.set_ylabel("|h(rho)|")
        return ax


def in_exp_cone(v: npt.NDArray[np.float64], tol: float) -> bool:
    """Check whether v lies in the exponential cone, up to `tol`."""
    x, y, z = float(v[0]), float(v[1]), float(v[2])
    if x <= 0 and y == 0 and z >= 0:
        return True

    if y > 0:
        with np.errstate(over="ignore"):
            return bool(y * np.exp(x / y) - z <= tol)

    return False


def in_dual_exp_cone(v: npt.NDArray[np.float64], tol: float) -> bool:
    """Check whether v lies in the dual exponential cone, up to `tol`."""
    u, v_, w = float(v[0]), float(v[1]), float(v[2])
    if u == 0 and v_ >= 0 and w >= 0:
        return True

    if u < 0:
        with np.errstate(over="ignore"):
            return bool(u * np.exp(v_ / u) + math.e * w >= -tol)

    return False


def _primal_heuristic(
    v: npt.NDArray[np.float64],
) -> Tuple[npt.NDArray[np.float64], float]:
    """Cheap point in the cone (perspective boundary, or v raised), and its distance."""
    r, s, t = float(v[0]), float(v[1]), float(v[2])
    vp = np.array([min(r, 0.0), 0.0, max(t, 0.0)])
    dist = float(np.linalg.norm(v - vp))

    if s > 0:
        with np.errstate(over="ignore"):
            tp = max(t, float(s * np.exp(r / s)))
        if tp - t < dist:
            vp = np.array([r, s, tp])
            dist = tp - t

    return vp, dist


def _polar_heuristic(
    v: npt.NDArray[np.float64],
) -> Tuple[npt.NDArray[np.float64], float]:
    """Cheap point in the polar cone, and its distance."""
    r, s, t = float(v[0]), float(v[1]), float(v[2])
    vd = np.array([0.0, min(s, 0.0), min(t, 0.0)])
    dist = float(np.linalg.norm(v - vd))

    if r > 0:
        with np.errstate(over="ignore"):
            td = min(t, float(-r * np.exp(s / r - 1)))
        if t - td < dist:
            vd = np.array([r, s, td])
            dist = t - td

    return vd, dist


def _linear_terms(r: float, s: float, rho: float) -> Tuple[float, float]:
    """Evaluate (rho - 1) * r + s and r - rho * s.

    Each is written relative to the bracket end where it vanishes, 1 - s / r and r / s
    respectively, so that it is exactly zero there.

    """
    lin = r * (rho - (1 - s / r)) if r > 0 else (rho - 1) * r + s
    rev = s * (r / s - rho) if s > 0 else r - rho * s
    return lin, rev


def _boundary_point(
    v: npt.NDArray[np.float64], rho: float
) -> Optional[npt.NDArray[np.float64]]:
    """Point on the smooth boundary corresponding to rho, or None if it is unusable."""
    lin, _ = _linear_terms(float(v[0]), float(v[1]), rho)
    with np.errstate(over="ignore"):
        exprho = np.exp(rho)
        p = (lin / (rho * rho - rho + 1)) * np.array([rho, 1.0, exprho])

    if lin <= 0 or not np.all(np.isfinite(p)):
        return None
    return p


def exp_cone_root(
    v: npt.NDArray[np.float64], settings: Optional[ProjectionSettings] = None
) -> ExpConeRootResult:
    """Find the root of h for the point v = (r, s, t).

    Parameters
    ----------
     v : npt.NDArray[np.float64]
        Point being projected. Should not be in the cone, in the polar cone, or have
        r <= 0 and s <= 0.
     settings : ProjectionSettings, optional
        Bracketing and bisection settings.

    Returns
    -------
     res : ExpConeRootResult
        The root, with diagnostic information.

    Raises
    ------
     ExponentialConeProjectionError
        If we cannot bracket a sign change, or bisection does not converge.

    """
    if settings is None:
        settings = ProjectionSettings()

    v = np.asarray(v, dtype=np.float64)
    r, s, t = float(v[0]), float(v[1]), float(v[2])
    residuals: List[float] = []

    def h(rho: float) -> float:
        # Scaled by (rho^2 - rho + 1) * exp(-|rho|), so no exponent is positive
        lin, rev = _linear_terms(r, s, rho)
        a = abs(rho)
        val = (
            lin * np.exp(rho - a)
            - rev * np.exp(-rho - a)
            - (rho * rho - rho + 1) * t * np.exp(-a)
        )
        residuals.append(abs(float(val)))
        return float(val)

    lb = 1 - s / r if r > 0 else -np.inf
    ub = r / s if s > 0 else np.inf
    if np.isinf(lb) and np.isinf(ub):
        raise ExponentialConeProjectionError(
            "Exponential cone bracket is unbounded on both ends", v, lb, ub
        )

    step = settings.bracket_initial_step
    expansions = 0
    if np.isinf(lb):
        lb = min(ub - step, -step)
        for _ in range(settings.max_bracket_expansions):
            if h(lb) < 0:
                break
            ub = lb
            lb *= 2
            expansions += 1
    elif np.isinf(ub):
        ub = max(lb + step, step)
        for _ in range(settings.max_bracket_expansions):
            if h(ub) > 0:
                break
            lb = ub
            ub *= 2
            expansions += 1

    if settings.verbose:
        print(f"  Exp cone bracket [{lb}, {ub}] after {expansions} expansion(s)")

    f_lb = h(lb)
    f_ub = h(ub)
    if f_lb == 0:
        return ExpConeRootResult(
            root=lb, lower=lb, upper=ub, expansions=expansions, nits=0,
            residuals=residuals,
        )
    if f_ub == 0:
        return ExpConeRootResult(
            root=ub, lower=lb, upper=ub, expansions=expansions, nits=0,
            residuals=residuals,
        )
    if not (f_lb < 0 < f_ub or f_ub < 0 < f_lb):
        raise ExponentialConeProjectionError(
            "Numerical error in exponential cone projection: no sign change in bracket",
            v,
            lb,
            ub,
        )

    root, info = optimize.bisect(
        h,
        lb,
        ub,
        xtol=settings.root_xtol,
        rtol=settings.root_rtol,
        maxiter=settings.root_maxiter,
        full_output=True,
        disp=False,
    )
    if not info.converged:
        raise ExponentialConeProjectionError(
            f"Exponential cone root-find did not converge in {info.iterations} "
            "iterations",
            v,
            lb,
            ub,
        )

    if settings.verbose:
        print(f"  Bisection converged in {info.iterations} iterations; root = {root}")

    return ExpConeRootResult(
        root=float(root),
        lower=lb,
        upper=ub,
        expansions=expansions,
        nits=info.iterations,
        residuals=residuals,
        converged=True,
    )


def _multiplier(
    v: npt.NDArray[np.float64], p: npt.NDArray[np.float64]
) -> Optional[float]:
    """Least-squares multiplier mu in v - p = mu * grad g(p), if p has y > 0."""
    x, y = p[0], p[1]
    if y <= 0:
        return None
    ea = np.exp(x / y)
    grad_g = np.array([ea, ea * (1.0 - x / y), -1.0])
    return max(float(np.dot(v - p, grad_g) / np.dot(grad_g, grad_g)), 0.0)


def _project_smooth_case(
    v: npt.NDArray[np.float64], settings: ProjectionSettings
) -> Tuple[npt.NDArray[np.float64], Optional[float]]:
    """Project a point that is not in the cone, its polar, or the x, y <= 0 quadrant.

    Returns
    -------
     p : npt.NDArray[np.float64]
        The projection.
     mu : float or None
        Multiplier of the active constraint y * exp(x / y) <= z, or None if p lies on
        the face y = 0.

    """
    tol = settings.exp_cone_tolerance
    vp, pdist = _primal_heuristic(v)
    vd, _ = _polar_heuristic(v)

    # The heuristics already satisfy the optimality conditions
    if np.max(np.abs(vp + vd - v)) <= tol and np.dot(vp, vd) <= tol:
        return vp, _multiplier(v, vp)

    res = exp_cone_root(v, settings)
    p = _boundary_point(v, res.root)
    if p is not None and np.linalg.norm(v - p) <= pdist:
        return p, float(p[2] - v[2])

    if settings.verbose:
        print("  Heuristic projection is closer than the root; using it instead")
    return vp, _multiplier(v, vp)


def project_exp_cone(
    v: npt.NDArray[np.float64], settings: Optional[ProjectionSettings] = None
) -> npt.NDArray[np.float64]:
    """Project v onto the exponential cone.

    Parameters
    ----------
     v : npt.NDArray[np.float64]
        Vector of length 3.
     settings : ProjectionSettings, optional
        Membership tolerance and root-finding settings.

    Returns
    -------
     p : npt.NDArray[np.float64]
        The projection.

    """
    if settings is None:
        settings = ProjectionSettings()

    v = np.asarray(v, dtype=np.float64)
    tol = settings.exp_cone_tolerance
    if in_exp_cone(v, tol):
        return v.copy()
    elif in_dual_exp_cone(-v, tol):
        return np.zeros(3)
    elif v[0] <= 0 and v[1] <= 0:
        return np.array([v[0], 0.0, max(v[2], 0.0)])

    p, _ = _project_smooth_case(v, settings)
    return p


def project_dual_exp_cone(
    v: npt.NDArray[np.float64], settings: Optional[ProjectionSettings] = None
) -> npt.NDArray[np.float64]:
    """Project v onto the dual exponential cone, via v + proj_{K_exp}(-v)."""
    v = np.asarray(v, dtype=np.float64)
    return v + project_exp_cone(-v, settings)


def _kkt_jacobian(
    v: npt.NDArray[np.float64], p: npt.NDArray[np.float64], mu: float
) -> npt.NDArray[np.float64]:
    r"""Upper-left 3-by-3 block of the inverse of the KKT matrix, by block elimination.

    With A = I + mu * hess g(p) and b = grad g(p),
        J = A^{-1} - (A^{-1} b) (A^{-1} b)^T / (b^T A^{-1} b).
    The Hessian is rank one, hess g(p) = (e^a / y) * w w^T with a = x / y and
    w = (1, -a, 0), so
        A^{-1} = I - w w^T / (1 / beta + w^T w),    beta = mu * e^a / y.
    J does not change when b is scaled, so we divide b by e^a when a > 0. Every term
    then stays bounded even when beta is huge, where factoring the KKT matrix directly
    loses all precision.

    """
    x, y, _ = p
    a = x / y
    with np.errstate(over="ignore"):
        beta = mu * np.exp(a) / y

    if a > 0:
        b = np.array([1.0, 1.0 - a, -np.exp(-a)])
    else:
        ea = np.exp(a)
        b = np.array([ea, ea * (1.0 - a), -1.0])

    w = np.array([1.0, -a, 0.0])
    A_inv = np.eye(3)
    if beta > 0:
        A_inv -= np.outer(w, w) / (1.0 / beta + np.dot(w, w))

    A_inv_b = A_inv @ b
    J = A_inv - np.outer(A_inv_b, A_inv_b) / np.dot(b, A_inv_b)
    if not np.all(np.isfinite(J)):
        raise ExponentialConeProjectionError(
            "Exponential cone derivative is not finite", v, a, a
        )
    return J


def gradient_exp_cone(
    v: npt.NDArray[np.float64], settings: Optional[ProjectionSettings] = None
) -> npt.NDArray[np.float64]:
    """Derivative of the projection onto the exponential cone.

    Parameters
    ----------
     v : npt.NDArray[np.float64]
        Vector of length 3.
     settings : ProjectionSettings, optional
        Membership tolerance and root-finding settings.

    Returns
    -------
     D : npt.NDArray[np.float64]
        3-by-3 Jacobian of the projection at v.

    Raises
    ------
     ExponentialConeProjectionError
        If the root-find fails, or the KKT system is singular to working precision.

    """
    if settings is None:
        settings = ProjectionSettings()

    v = np.asarray(v, dtype=np.float64)
    tol = settings.exp_cone_tolerance
    if in_exp_cone(v, tol):
        return np.eye(3)
    elif in_dual_exp_cone(-v, tol):
        return np.zeros((3, 3))
    elif v[0] <= 0 and v[1] <= 0:
        return np.diag([1.0, 0.0, 1.0 if v[2] > 0 else 0.0])

    p, mu = _project_smooth_case(v, settings)
    if mu is None:
        return np.diag([1.0 if v[0] < 0 else 0.0, 0.0, 1.0 if v[2] > 0 else 0.0])
    return _kkt_jacobian(v, p, mu)


def gradient_dual_exp_cone(
    v: npt.NDArray[np.float64], settings: Optional[ProjectionSettings] = None
) -> npt.NDArray[np.float64]:
    """Derivative of the projection onto the dual exponential cone, I - D_exp(-v)."""
    v = np.asarray(v, dtype=np.float64)
    return np.eye(3) - gradient_exp_cone(-v, settings)
