r"""Positive semidefinite cone.

The PSD cone is represented in triangle-packed form (see `symmetric.py`). Both the
projection and its derivative start from the eigendecomposition X = U * diag(lambda)
* U^T computed by `scipy.linalg.eigh`, which returns eigenvalues in ascending order.

For the derivative, see (Boyd and Vandenberghe, 2004) and "Solution refinement at
regular points of conic problems" by Busseti, Moursi and Boyd.

"""

from typing import Optional, Tuple

import numpy as np
import numpy.typing as npt
from scipy import linalg

from .settings import ProjectionSettings
from .symmetric import symm_size_to_dim, unvec_symm, vec_symm


def _eigh(
    x: npt.NDArray[np.float64],
) -> Tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    X = unvec_symm(x, symm_size_to_dim(x.shape[0]))
    lmbda, U = linalg.eigh(X)
    return lmbda, U


def project_psd(x: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Project a triangle-packed symmetric matrix onto the PSD cone.

    Parameters
    ----------
     x : npt.NDArray[np.float64]
        Vectorized symmetric matrix.

    Returns
    -------
     p : npt.NDArray[np.float64]
        Vectorization of U * diag(max(lambda, 0)) * U^T.

    """
    if x.shape[0] == 0:
        return np.zeros(0)

    lmbda, U = _eigh(x)
    return vec_symm((U * np.maximum(lmbda, 0.0)) @ U.T)


def hadamard_scaling(
    lmbda: npt.NDArray[np.float64], threshold: float
) -> npt.NDArray[np.float64]:
    r"""Hadamard scaling matrix for the derivative of the PSD projection.

    Parameters
    ----------
     lmbda : npt.NDArray[np.float64]
        Eigenvalues, in ascending order.
     threshold : float
        Eigenvalues below `threshold` form the "negative bucket".

    Returns
    -------
     S : npt.NDArray[np.float64]
        Symmetric matrix with
            S[i, j] = 0                                 i, j both in the negative bucket
            S[i, j] = \lambda_p^+ / (\lambda_p^+ + \lambda_n^-)   one index in each
            S[i, j] = 1                                 i, j both in the positive bucket
        where p indexes the positive bucket and n the negative bucket.

    """
    d = lmbda.shape[0]
    k = int(np.count_nonzero(lmbda < threshold))
    lmbda_plus = np.maximum(lmbda, 0.0)
    lmbda_minus = -np.minimum(lmbda, 0.0)

    S = np.ones((d, d))
    S[:k, :k] = 0.0
    for i in range(k, d):
        for j in range(k):
            S[i, j] = lmbda_plus[i] / (lmbda_minus[j] + lmbda_plus[i])
            S[j, i] = S[i, j]
    return S


def gradient_psd(
    x: npt.NDArray[np.float64], settings: Optional[ProjectionSettings] = None
) -> npt.NDArray[np.float64]:
    """Derivative of the projection onto the PSD cone.

    Parameters
    ----------
     x : npt.NDArray[np.float64]
        Vectorized symmetric matrix, of length n = d * (d + 1) / 2.
     settings : ProjectionSettings, optional
        Supplies the eigenvalue threshold for the negative bucket.

    Returns
    -------
     D : npt.NDArray[np.float64]
        n-by-n matrix. Row idx is vec(U * (S .* (U^T * E_idx * U)) * U^T), where E_idx
        is the symmetric matrix whose vectorization is the idx-th standard basis vector
        and S is the Hadamard scaling matrix. This is the transpose of the Jacobian
        in packed coordinates.

    Notes
    -----
    Costs one eigendecomposition plus n rotations of d-by-d matrices.

    """
    if settings is None:
        settings = ProjectionSettings()

    n = x.shape[0]
    if n == 0:
        return np.zeros((0, 0))

    lmbda, U = _eigh(x)
    if np.all(lmbda >= 0):
        return np.eye(n)

    S = hadamard_scaling(lmbda, settings.psd_eigenvalue_threshold)
    d = lmbda.shape[0]
    D = np.zeros((n, n))
    for idx in range(n):
        e_idx = np.zeros(n)
        e_idx[idx] = 1.0
        B = U.T @ unvec_symm(e_idx, d) @ U
        D[idx, :] = vec_symm(U @ (S * B) @ U.T)

    return D
