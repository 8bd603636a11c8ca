"""Custom exceptions."""

from typing import Optional

import numpy as np
import numpy.typing as npt


class DimensionMismatchError(ValueError):
    """Raised when a value does not match the dimension of a set."""

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ) -> None:
        self.message = message
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        """Pretty-print error."""
        if self.expected is None or self.actual is None:
            return self.message
        return f"{self.message} (expected {self.expected}, got {self.actual})"


class ExponentialConeProjectionError(ArithmeticError):
    """Raised when the exponential cone root-find fails.

    This is not a recoverable condition: it means the point slipped past the interior,
    polar and degenerate checks that should have caught it.

    """

    def __init__(
        self,
        message: str,
        point: npt.NDArray[np.float64],
        lower: float,
        upper: float,
    ) -> None:
        self.message = message
        self.point = point
        self.lower = lower
        self.upper = upper

    def __str__(self) -> str:
        """Pretty-print error."""
        msg = (
            f"{self.message} (v = {self.point}, bracket = "
            f"[{self.lower:.06g}, {self.upper:.06g}])"
        )
        return msg


class UnsupportedConeError(NotImplementedError):
    """Raised when asked to project onto (or differentiate) an unknown set."""

    def __init__(self, message: str) -> None:
        self.message = message

    def __str__(self) -> str:
        """Pretty-print error."""
        return self.message
