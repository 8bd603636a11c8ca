"""Distance variants."""

from abc import ABC, abstractmethod

import numpy as np
import numpy.typing as npt


class Distance(ABC):
    r"""Abstract base class for distance variants.

    A distance variant selects the norm used in epigraph tests such as
    \| x \| \leq t. It is orthogonal to the choice of cone: only the second-order cone
    operators consult it, and every other cone ignores it.

    """

    @abstractmethod
    def epigraph_norm(self, x: npt.NDArray[np.float64]) -> float:
        """Evaluate the norm used in epigraph tests."""


class DefaultDistance(Distance):
    r"""Euclidean distance, \| x \|_2."""

    def epigraph_norm(self, x: npt.NDArray[np.float64]) -> float:
        """Evaluate Euclidean norm."""
        return float(np.linalg.norm(x))

    def __eq__(self, other: object) -> bool:
        """Check equality."""
        return isinstance(other, DefaultDistance)

    def __hash__(self) -> int:
        """Hash."""
        return hash(DefaultDistance)

    def __repr__(self) -> str:
        """Print distance."""
        return "DefaultDistance()"


class NormedEpigraphDistance(Distance):
    r"""Distance with epigraph test \| x \|_p \leq t.

    Parameters
    ----------
     p : float, default=2
        Order of the norm. Must be at least 1; np.inf is allowed.

    """

    def __init__(self, p: float = 2) -> None:
        if not p >= 1:
            raise ValueError("Norm order p must be at least 1.")
        self.p = p

    def epigraph_norm(self, x: npt.NDArray[np.float64]) -> float:
        """Evaluate p-norm."""
        x = np.asarray(x, dtype=np.float64)
        if x.size == 0:
            return 0.0
        return float(np.linalg.norm(x, self.p))

    def __eq__(self, other: object) -> bool:
        """Check equality."""
        return isinstance(other, NormedEpigraphDistance) and other.p == self.p

    def __hash__(self) -> int:
        """Hash."""
        return hash((NormedEpigraphDistance, self.p))

    def __repr__(self) -> str:
        """Print distance."""
        return f"NormedEpigraphDistance(p={self.p})"
