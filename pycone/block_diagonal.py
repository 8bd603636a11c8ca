"""Block diagonal matrices.

The derivative of the projection onto a product of cones is block diagonal: each cone
acts on its own contiguous slice of coordinates, so cross terms between cones are
exactly zero. BlockDiagonal stores just the diagonal blocks, and exploits the structure
when multiplying, rather than materializing the zeros.

"""

from typing import List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
from matplotlib.axes import Axes
from matplotlib.patches import Rectangle

from .exceptions import DimensionMismatchError


class BlockDiagonal:
    """Square block diagonal matrix.

    Parameters
    ----------
     blocks : sequence of square matrices or scalars
        Diagonal blocks, in order. Scalars are treated as 1-by-1 blocks.

    """

    def __init__(
        self, blocks: Sequence[Union[float, npt.NDArray[np.float64]]]
    ) -> None:
        normalized: List[npt.NDArray[np.float64]] = []
        for blk in blocks:
            arr = np.atleast_2d(np.asarray(blk, dtype=np.float64))
            if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
                raise ValueError(f"Blocks must be square, got shape {arr.shape}.")
            arr = arr.copy()
            arr.setflags(write=False)
            normalized.append(arr)

        self._blocks: Tuple[npt.NDArray[np.float64], ...] = tuple(normalized)
        sizes = [blk.shape[0] for blk in self._blocks]
        self._offsets: Tuple[int, ...] = tuple(
            int(o) for o in np.concatenate(([0], np.cumsum(sizes, dtype=int)))
        )

    @property
    def blocks(self) -> Tuple[npt.NDArray[np.float64], ...]:
        """Diagonal blocks (read-only)."""
        return self._blocks

    @property
    def offsets(self) -> Tuple[int, ...]:
        """Start index of each block, followed by the total dimension."""
        return self._offsets

    @property
    def num_blocks(self) -> int:
        """Number of diagonal blocks."""
        return len(self._blocks)

    @property
    def shape(self) -> Tuple[int, int]:
        """Shape of the full matrix."""
        n = self._offsets[-1]
        return (n, n)

    def block(self, i: int) -> npt.NDArray[np.float64]:
        """Return the ith diagonal block."""
        return self._blocks[i]

    def block_slice(self, i: int) -> slice:
        """Coordinates spanned by the ith diagonal block."""
        return slice(self._offsets[i], self._offsets[i + 1])

    def toarray(self) -> npt.NDArray[np.float64]:
        """Materialize as a dense matrix."""
        out = np.zeros(self.shape)
        for i, blk in enumerate(self._blocks):
            sl = self.block_slice(i)
            out[sl, sl] = blk
        return out

    def diagonal(self) -> npt.NDArray[np.float64]:
        """Diagonal of the full matrix."""
        if self.num_blocks == 0:
            return np.zeros(0)
        return np.concatenate([np.diag(blk) for blk in self._blocks])

    @property
    def T(self) -> "BlockDiagonal":
        """Transpose, block by block."""
        return BlockDiagonal([blk.T for blk in self._blocks])

    def __matmul__(self, b: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Multiply by a vector or a matrix.

        Parameters
        ----------
         b : npt.NDArray[np.float64]
            Vector of length n, or matrix with n rows, where n is the dimension of the
            block diagonal matrix.

        Returns
        -------
         y : npt.NDArray[np.float64]
            The product.

        """
        b = np.asarray(b, dtype=np.float64)
        n = self.shape[0]
        if b.ndim not in (1, 2):
            raise ValueError("b must be either a 1D or 2D NumPy array.")
        if b.shape[0] != n:
            raise DimensionMismatchError(
                "Number of rows in b must match dimension of matrix",
                expected=n,
                actual=b.shape[0],
            )

        out = np.empty_like(b)
        for i, blk in enumerate(self._blocks):
            sl = self.block_slice(i)
            out[sl] = blk @ b[sl]
        return out

    def __array__(self, dtype=None, copy=None) -> npt.NDArray[np.float64]:
        """Convert to a dense NumPy array."""
        arr = self.toarray()
        if dtype is not None:
            arr = arr.astype(dtype)
        return arr

    def __repr__(self) -> str:
        """Print summary."""
        sizes = [blk.shape[0] for blk in self._blocks]
        return f"BlockDiagonal(shape={self.shape}, block_sizes={sizes})"

    def plot_structure(self, ax: Optional[Axes] = None) -> Axes:
        """Plot the sparsity pattern, outlining each diagonal block."""
        if ax is None:
            _, ax = plt.subplots()

        ax.spy(self.toarray(), markersize=4)
        for i in range(self.num_blocks):
            lo = self._offsets[i] - 0.5
            size = self._offsets[i + 1] - self._offsets[i]
            ax.add_patch(
                Rectangle(
                    (lo, lo), size, size, fill=False, edgecolor="C1", linewidth=1.0
                )
            )
        ax.set_title("Block structure")
        return ax
