"""Numerical settings."""

from dataclasses import dataclass

import numpy as np

EXP_CONE_THRESH = 1e-8
PSD_EIGENVALUE_THRESH = 1e-4


@dataclass(frozen=True)
class ProjectionSettings:
    """Projection settings.

    Parameters
    ----------
    exp_cone_tolerance : float, default=1e-8
        Absolute tolerance on the defining inequality when testing whether a point lies
        in the exponential cone or its dual. Points within this tolerance of the
        boundary are treated as members and left unchanged by the projection.
    psd_eigenvalue_threshold : float, default=1e-4
        Eigenvalues strictly below this value are counted as "negative" when
        differentiating the projection onto the PSD cone. This is a deliberate
        stability knob: finite-difference checks may disagree with the derivative for
        nearly singular matrices.
    bracket_initial_step : float, default=0.125
        When one end of the exponential cone root-finding bracket is unbounded, it is
        replaced by a point this far from the finite end (or from zero), and then
        doubled until the function changes sign.
    max_bracket_expansions : int, default=10
        Maximum number of times to double an unbounded bracket end.
    root_xtol : float, default=2e-12
        Absolute tolerance for bisection.
    root_rtol : float, default=4 * machine epsilon
        Relative tolerance for bisection.
    root_maxiter : int, default=100
        Maximum number of bisection iterations. Exceeding it is an error.
    verbose : bool, default=False
        If True, print status of the exponential cone root-find.

    """

    exp_cone_tolerance: float = EXP_CONE_THRESH
    psd_eigenvalue_threshold: float = PSD_EIGENVALUE_THRESH
    bracket_initial_step: float = 0.125
    max_bracket_expansions: int = 10
    root_xtol: float = 2e-12
    root_rtol: float = 4 * float(np.finfo(float).eps)
    root_maxiter: int = 100
    verbose: bool = False

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.exp_cone_tolerance < 0:
            raise ValueError("exp_cone_tolerance must be non-negative.")
        if self.bracket_initial_step <= 0:
            raise ValueError("bracket_initial_step must be positive.")
        if self.max_bracket_expansions < 0:
            raise ValueError("max_bracket_expansions must be non-negative.")
        if self.root_maxiter < 1:
            raise ValueError("root_maxiter must be at least 1.")
