"""Dual simplex basic functions: input checks and SVD projection
"""

# License: MIT

from typing import Tuple
import numpy as np
from scipy.sparse.linalg import svds
import logging

logger = logging.getLogger(__name__)


def _as_vector(v, k, name):
    v = np.asarray(v, dtype=float)
    if (v.ndim == 2) and (v.shape[1] == 1):
        v = v[:, 0]
    if (v.ndim != 1) or (v.shape[0] != k):
        raise ValueError(f"'{name}' must be a vector of length {k}, got an array with shape {v.shape}")
    return v


def _as_matrix(a, name):
    a = np.asarray(a, dtype=float)
    if a.ndim != 2:
        raise ValueError(f"'{name}' must be a 2D matrix, got an array with shape {a.shape}")
    return a


def check_inputs(
    x,
    omega,
    d_w,
    svrt,
    r,
    s,
    n,
    m,
    iterations,
    cell_types=None,
    d_h=None,
    coefficients=None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, int]:
    """Check shapes and signs of the alternating loop inputs before any numeric work

    Parameters
    ----------
    x: Initial proportions factor (k x k)
    omega: Initial basis factor (k x k)
    d_w: Initial scale vector (k)
    svrt: Diagonal matrix of singular values (k x k)
    r: Right projection matrix (k x n_cols)
    s: Left projection matrix (k x n_rows)
    n: Row normalizer (> 0)
    m: Column normalizer (> 0)
    iterations: Number of iterations (>= 1)
    cell_types: Factorization rank, must be k when given
    d_h: Optional initial dual scale vector (k)
    coefficients: dict of named coefficients that must be finite and >= 0

    Returns
    -------
    Tuple of float arrays x, omega, d_w, d_h, svrt, r, s and the rank k

    Raises
    ------
    ValueError on any inconsistency
    """
    x = _as_matrix(x, "x")
    omega = _as_matrix(omega, "omega")
    k = x.shape[0]
    if x.shape != (k, k):
        raise ValueError(f"'x' must be square, got shape {x.shape}")
    if omega.shape != x.shape:
        raise ValueError(f"'omega' must have the shape of 'x' {x.shape}, got {omega.shape}")

    if cell_types is None:
        cell_types = k
    elif cell_types != k:
        raise ValueError(f"'cell_types' ({cell_types}) does not match the dimension of 'x' ({k})")

    if not (np.isfinite(n) and np.isfinite(m) and (n > 0) and (m > 0)):
        raise ValueError(f"Normalizers 'n' and 'm' must be positive, got n={n}, m={m}")
    if int(iterations) < 1:
        raise ValueError(f"'iterations' must be >= 1, got {iterations}")

    d_w = _as_vector(d_w, k, "d_w")
    if np.any(d_w <= 0) or not np.all(np.isfinite(d_w)):
        raise ValueError(f"'d_w' must be strictly positive and finite, got {d_w}")
    if d_h is None:
        d_h = d_w * (n / m)
    else:
        d_h = _as_vector(d_h, k, "d_h")
        if np.any(d_h <= 0) or not np.all(np.isfinite(d_h)):
            raise ValueError(f"'d_h' must be strictly positive and finite, got {d_h}")

    svrt = _as_matrix(svrt, "svrt")
    if svrt.shape != (k, k):
        raise ValueError(f"'svrt' must have shape {(k, k)}, got {svrt.shape}")
    if np.any(np.diag(svrt) <= 0) or not np.all(np.isfinite(np.diag(svrt))):
        raise ValueError(f"Diagonal of 'svrt' must be strictly positive and finite, got {np.diag(svrt)}")

    r = _as_matrix(r, "r")
    if r.shape[0] != k:
        raise ValueError(f"'r' must have {k} rows to be right-multiplied by 'x', got shape {r.shape}")
    s = _as_matrix(s, "s")
    if s.shape[0] != k:
        raise ValueError(f"'s' must have {k} rows so that 's.T' left-multiplies 'omega', got shape {s.shape}")

    if coefficients is not None:
        for name, value in coefficients.items():
            if (not np.isfinite(value)) or (value < 0):
                raise ValueError(f"'{name}' must be finite and >= 0, got {value}")

    if not np.allclose(x @ omega, np.eye(k), atol=1e-6):
        logger.warning("'x' and 'omega' are not mutual inverses, 'omega' will be re-derived from 'x'")

    return x, omega, d_w, d_h, svrt, r, s, k


def svd_init(v, n_components, random_state=None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Project a data matrix on its leading singular vectors

    Parameters
    ----------
    v: Input matrix (n_rows x n_cols)
    n_components: Rank of the projection
    random_state: Seed of the starting vector given to arpack

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, np.ndarray]\n
       * s: Left singular vectors, transposed (n_components x n_rows)\n
       * r: Right singular vectors (n_components x n_cols)\n
       * svrt: Diagonal matrix of singular values, in decreasing order\n
    so that v ~ s.T @ svrt @ r
    """
    v = _as_matrix(v, "v")
    n, p = v.shape
    nc = int(n_components)
    if (nc < 1) or (nc > min(n, p)):
        raise ValueError(f"'n_components' must be between 1 and {min(n, p)}, got {n_components}")

    rng = np.random.RandomState(random_state)
    if nc >= min(n, p):
        # arpack does not accept to factorize at full rank -> need to duplicate in both dimensions to force it work
        t, d, w = svds(
            np.concatenate((np.concatenate((v, v), axis=1), np.concatenate((v, v), axis=1)), axis=0),
            k=nc,
            v0=rng.uniform(size=2 * min(n, p)),
        )
        d /= 2
        t = t[:n, :] * np.sqrt(2)
        w = w[:, :p] * np.sqrt(2)
    else:
        t, d, w = svds(v, k=nc, v0=rng.uniform(size=min(n, p)))

    # svds returns singular vectors in increasing order of singular values
    order = np.argsort(-d)
    s = t[:, order].T
    r = w[order, :]
    svrt = np.diag(d[order])
    return s, r, svrt
