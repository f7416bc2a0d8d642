"""Dual simplex utility functions

"""

# License: MIT

from typing import Optional, Tuple

from tqdm import tqdm
import logging
import numpy as np
from scipy import linalg

logger = logging.getLogger(__name__)


class SingularMatrixError(np.linalg.LinAlgError):
    """Raised when X or Omega can not be inverted during the alternating updates"""


class NonPositiveScaleError(ValueError):
    """Raised when a scale vector (D_w or D_h) has a zero, negative or non finite entry"""


class StatusBoxTqdm:
    """Progress over the alternating iterations.

    verbose = 0: silent, verbose = 1: tqdm progress bar, verbose = 2: status lines sent to the logger
    """

    def __init__(self, verbose=0, total=100):
        self.log_iter = verbose
        if self.log_iter == 1:
            self.pbar = tqdm(total=total)

    def update_bar(self, step=1):
        if self.log_iter == 1:
            self.pbar.update(n=step)

    def init_bar(self):
        if self.log_iter == 1:
            self.pbar.n = 0

    def update_status(self, status=""):
        if self.log_iter == 1:
            self.pbar.set_description(status, refresh=False)
            self.pbar.refresh()

    def close(self):
        if self.log_iter == 1:
            self.pbar.clear()
            self.pbar.close()

    def my_print(self, status=""):
        if self.log_iter == 2:
            logger.info(status)


def no_trace(label, value):
    """Default trace sink, drops everything"""
    return None


class TraceLogger:
    """Trace sink sending intermediate values of the alternating loop to a logger at DEBUG level"""

    def __init__(self, trace_logger: Optional[logging.Logger] = None, precision: int = 6):
        self.logger = trace_logger if trace_logger is not None else logger
        self.precision = precision

    def __call__(self, label, value):
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if isinstance(value, np.ndarray):
            value = np.array2string(value, precision=self.precision)
        self.logger.debug("%s\n%s", label, value)


def hinge(m) -> float:
    """Sum of absolute values of the strictly negative entries of m

    Parameters
    ----------
    m: array-like

    Returns
    -------
    One-sided L1 penalty, >= 0 and = 0 iff no entry of m is negative

    Examples
    --------
    >>> from dualsimplex.dualsimplex_utils import hinge
    >>> hinge(np.array([[1.0, -2.0], [-0.5, 0.0]]))
    2.5
    """
    m = np.asarray(m, dtype=float)
    return float(np.sum(np.abs(m[m < 0])))


def count_negative(m) -> int:
    """Number of strictly negative entries of m"""
    return int(np.count_nonzero(np.asarray(m) < 0))


def correct_by_norm(m, norm_floor=1e-10):
    """Rescale each row of m to unit euclidean norm

    Rows with a norm below norm_floor are returned unscaled, so that null or near null gradient rows do not blow up.

    Parameters
    ----------
    m: Gradient matrix
    norm_floor: Smallest row norm that is divided out

    Returns
    -------
    Matrix with the same shape as m
    """
    m = np.asarray(m, dtype=float)
    if m.ndim != 2:
        raise ValueError(f"Expected a 2D matrix, got an array with shape {m.shape}")
    row_norms = np.linalg.norm(m, axis=1)
    row_norms[row_norms < norm_floor] = 1.0
    return m / row_norms[:, None]


def jump_norm(m, r_const):
    """Multipliers bringing the rows of m (first column excluded) to a minimal radius

    For each row k, the norm of m[k, 1:] is compared to r_const. When it is smaller, columns 1: of the row get the
    multiplier r_const / norm, else 1. The first column is always 1.

    Parameters
    ----------
    m: Matrix of points in projected coordinates, first column being the constant coordinate
    r_const: Minimal radius

    Returns
    -------
    Matrix of multipliers with the same shape as m
    """
    m = np.asarray(m, dtype=float)
    if m.ndim != 2 or m.shape[1] < 2:
        raise ValueError(f"Expected a 2D matrix with at least 2 columns, got an array with shape {m.shape}")
    norm_ = np.ones(m.shape)
    row_norms = np.linalg.norm(m[:, 1:], axis=1)
    for k in range(0, m.shape[0]):
        if (row_norms[k] > 0) & (r_const > row_norms[k]):
            norm_[k, 1:] = r_const / row_norms[k]
    return norm_


def invert(a, max_condition=1e12) -> Tuple[Optional[np.ndarray], str]:
    """Checked matrix inversion

    Parameters
    ----------
    a: Square matrix
    max_condition: Largest accepted 2-norm condition number

    Returns
    -------
    Tuple[Optional[np.ndarray], str]\n
       * a_inv: inverse of a, None if the inversion failed\n
       * err_message: empty string on success, reason of the failure otherwise\n
    """
    a = np.asarray(a, dtype=float)
    if (a.ndim != 2) or (a.shape[0] != a.shape[1]):
        return None, f"Can not invert a matrix of shape {a.shape}"

    if not np.all(np.isfinite(a)):
        return None, "Matrix has non finite entries"

    cond = np.linalg.cond(a)
    if (not np.isfinite(cond)) or (cond > max_condition):
        return None, f"Matrix is singular or ill-conditioned (condition number {cond:.3e} > {max_condition:.1e})"

    try:
        a_inv = linalg.inv(a)
    except linalg.LinAlgError as err:
        return None, f"Inversion failed: {err}"

    if not np.all(np.isfinite(a_inv)):
        return None, "Inverse has non finite entries"

    return a_inv, ""
