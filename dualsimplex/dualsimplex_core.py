"""Dual simplex core functions: hinge derivatives, error accounting and alternating updates

"""

# License: MIT

from typing import Tuple

import numpy as np
import logging

from .dualsimplex_base import check_inputs
from .dualsimplex_utils import (
    NonPositiveScaleError,
    SingularMatrixError,
    StatusBoxTqdm,
    correct_by_norm,
    count_negative,
    hinge,
    invert,
    no_trace,
)

logger = logging.getLogger(__name__)

ERROR_NAMES = ("deconv_error", "lambda_error", "beta_error", "D_h_error", "D_w_error", "total_error")
ERROR_COLUMNS = ERROR_NAMES + ("neg_proportions", "neg_basis", "mean_d_w")


def hinge_der_proportions(h, r, precision=1e-10):
    """Sub-gradient of hinge(left @ r) with respect to left

    Only h = left @ r and r are needed: d hinge / d left = -(h < 0) @ r.T

    Parameters
    ----------
    h: Projected matrix left @ r (k x p)
    r: Right projection matrix (k x p)
    precision: Not used, negativity is tested with a strict < 0

    Returns
    -------
    Sub-gradient (k x k)
    """
    h = np.asarray(h, dtype=float)
    r = np.asarray(r, dtype=float)
    if (h.ndim != 2) or (r.ndim != 2) or (h.shape != r.shape):
        raise ValueError(f"'h' must be the product of a square matrix by 'r' {r.shape}, got shape {h.shape}")
    return -(h < 0).astype(float) @ r.T


def hinge_der_basis(w, s, precision=1e-10):
    """Sub-gradient of hinge(s.T @ omega) with respect to omega

    Column j is minus the sum of the columns of s whose index i satisfies w[i, j] < -precision.

    Parameters
    ----------
    w: Projected matrix s.T @ omega (p x k)
    s: Left projection matrix (k x p)
    precision: Tolerance below zero before an entry of w counts as negative

    Returns
    -------
    Sub-gradient (k x k)
    """
    w = np.asarray(w, dtype=float)
    s = np.asarray(s, dtype=float)
    if (w.ndim != 2) or (s.ndim != 2) or (w.shape != (s.shape[1], s.shape[0])):
        raise ValueError(f"'w' must be the product of 's.T' {s.T.shape} by a square matrix, got shape {w.shape}")
    return -s @ (w < -precision).astype(float)


def calc_errors(
    x,
    omega,
    d_w,
    d_h,
    svrt,
    r,
    s,
    coef_,
    coef_der_x,
    coef_der_omega,
    coef_hinge_h,
    coef_hinge_w,
    coef_pos_d_h,
    coef_pos_d_w,
) -> dict:
    """Break down of the objective

    Parameters
    ----------
    x: Proportions factor (k x k)
    omega: Basis factor (k x k)
    d_w: Scale vector (k), used as diag(d_w)
    d_h: Dual scale vector (k)
    svrt: Diagonal matrix of singular values (k x k)
    r: Right projection matrix (k x p)
    s: Left projection matrix (k x q)
    coef_: Multiplier of both hinge terms
    coef_der_x: Not used
    coef_der_omega: Not used
    coef_hinge_h: Weight of the negative proportions penalty
    coef_hinge_w: Weight of the negative basis penalty
    coef_pos_d_h: Weight of the D_h sum constraint
    coef_pos_d_w: Weight of the D_w sum constraint

    Returns
    -------
    dict with keys deconv_error, lambda_error, beta_error, D_h_error, D_w_error, total_error
    """
    d_w = np.ravel(d_w)
    d_h = np.ravel(d_h)

    deconv_error = np.linalg.norm(svrt - omega @ np.diag(d_w) @ x, "fro") ** 2
    lambda_error = coef_ * coef_hinge_h * hinge(x @ r)
    beta_error = coef_ * coef_hinge_w * hinge(s.T @ omega)
    d_h_error = coef_pos_d_h * np.linalg.norm(x.T @ d_h - np.sum(r, axis=1)) ** 2
    d_w_error = coef_pos_d_w * np.linalg.norm(omega @ d_w - np.sum(s, axis=1)) ** 2
    total_error = deconv_error + lambda_error + beta_error + d_h_error + d_w_error

    return dict(
        zip(
            ERROR_NAMES,
            (
                float(deconv_error),
                float(lambda_error),
                float(beta_error),
                float(d_h_error),
                float(d_w_error),
                float(total_error),
            ),
        )
    )


def _checked_inverse(a, max_condition, i_iter, name):
    a_inv, err_message = invert(a, max_condition=max_condition)
    if a_inv is None:
        raise SingularMatrixError(f"Iteration {i_iter}: can not invert {name} tilde. {err_message}")
    return a_inv


def _check_scale(d, i_iter, name):
    if np.any(d <= 0) or not np.all(np.isfinite(d)):
        raise NonPositiveScaleError(f"Iteration {i_iter}: {name} must be strictly positive and finite, got {d}")


def derivative_stage2(
    x,
    omega,
    d_w,
    svrt,
    r,
    s,
    coef_der_x,
    coef_der_omega,
    coef_hinge_h,
    coef_hinge_w,
    coef_pos_d_h,
    coef_pos_d_w,
    cell_types,
    n,
    m,
    iterations,
    mean_radius_x,
    mean_radius_omega,
    r_const_x,
    r_const_omega,
    thresh,
    d_h=None,
    precision=1e-10,
    norm_floor=1e-10,
    max_condition=1e12,
    my_status_box=None,
    trace=None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Alternating hinge descent on X and Omega, kept mutual inverses

    X and Omega are moved to the conditioned (tilde) space once. Each iteration takes a normalized hinge step on X,
    recovers Omega = inv(X), takes a normalized hinge step on Omega, recovers X = inv(Omega), re-derives the scale
    vectors from the first column of X and records the de-scaled factors and the error break down.

    Parameters
    ----------
    x: Initial proportions factor (k x k)
    omega: Initial basis factor (k x k), re-derived from x at the first iteration
    d_w: Initial scale vector (k), strictly positive
    svrt: Diagonal matrix of singular values (k x k)
    r: Right projection matrix (k x p)
    s: Left projection matrix (k x q)
    coef_der_x: Step multiplier on X
    coef_der_omega: Step multiplier on Omega
    coef_hinge_h: Weight of the negative proportions penalty
    coef_hinge_w: Weight of the negative basis penalty
    coef_pos_d_h: Weight of the D_h sum constraint (errors only)
    coef_pos_d_w: Weight of the D_w sum constraint (errors only)
    cell_types: Factorization rank k
    n: Row normalizer, scales the first column of X
    m: Column normalizer, scales the first row of Omega
    iterations: Number of iterations, always all run
    mean_radius_x: Length of the normalized X step
    mean_radius_omega: Length of the normalized Omega step
    r_const_x: Not used
    r_const_omega: Not used
    thresh: Not used
    d_h: Optional initial dual scale vector, overwritten at the first iteration
    precision: Negativity tolerance of the basis hinge derivative
    norm_floor: Rows of the gradients with a smaller norm are not normalized
    max_condition: Largest condition number accepted when inverting X or Omega
    my_status_box: `dualsimplex.dualsimplex_utils.StatusBoxTqdm`, silent if None
    trace: Callable(label, value) receiving intermediate values, no-op if None

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]\n
       * final_x: De-scaled proportions factor (k x k)\n
       * final_omega: De-scaled basis factor (k x k)\n
       * d_w: Last scale vector (k)\n
       * d_h: Last dual scale vector (k)\n
       * errors_statistics: (iterations x 9), columns `ERROR_COLUMNS`\n
       * points_statistics_x: (iterations x k^2), final_x of each iteration flattened by row\n
       * points_statistics_omega: (iterations x k^2), final_omega of each iteration flattened by row\n

    Raises
    ------
    ValueError: inconsistent inputs
    SingularMatrixError: X or Omega tilde can not be inverted
    NonPositiveScaleError: the re-derived D_w has a null entry
    """
    x, omega, d_w, d_h, svrt, r, s, k = check_inputs(
        x=x,
        omega=omega,
        d_w=d_w,
        svrt=svrt,
        r=r,
        s=s,
        n=n,
        m=m,
        iterations=iterations,
        cell_types=cell_types,
        d_h=d_h,
        coefficients={
            "coef_der_x": coef_der_x,
            "coef_der_omega": coef_der_omega,
            "coef_hinge_h": coef_hinge_h,
            "coef_hinge_w": coef_hinge_w,
            "coef_pos_d_h": coef_pos_d_h,
            "coef_pos_d_w": coef_pos_d_w,
            "mean_radius_x": mean_radius_x,
            "mean_radius_omega": mean_radius_omega,
        },
    )
    if my_status_box is None:
        my_status_box = StatusBoxTqdm(verbose=0)
    if trace is None:
        trace = no_trace

    iterations = int(iterations)
    errors_statistics = np.zeros((iterations, len(ERROR_COLUMNS)))
    points_statistics_x = np.zeros((iterations, k * k))
    points_statistics_omega = np.zeros((iterations, k * k))

    new_d_w = d_w.copy()
    new_d_h = d_h.copy()
    final_x = x.copy()
    final_omega = omega.copy()

    sqrt_n = np.sqrt(n)
    sqrt_m = np.sqrt(m)
    sigma = np.diag(svrt)
    sqrt_sigma = np.sqrt(sigma)
    sqrt_d_w = np.sqrt(d_w)
    trace("sqrt N", sqrt_n)
    trace("sqrt M", sqrt_m)
    trace("sqrt sigma", sqrt_sigma)
    trace("sqrt D_w", sqrt_d_w)
    trace("original x", x)
    trace("original omega", omega)

    new_x = np.diag(sqrt_d_w) @ x @ np.diag(1 / sqrt_sigma)
    new_omega = np.diag(1 / sqrt_sigma) @ omega @ np.diag(sqrt_d_w)
    trace("original x tilde", new_x)
    trace("original omega tilde", new_omega)

    logger.debug(f"Alternating updates: rank {k}, {iterations} iterations")
    my_status_box.init_bar()

    for i_iter in range(0, iterations):
        # Step on X
        der_x = (
            coef_hinge_h
            * hinge_der_proportions(new_x @ np.diag(sqrt_sigma) @ r, r, precision)
            @ np.diag(1 / sqrt_sigma)
        )
        trace("der_x", der_x)
        der_x = correct_by_norm(der_x, norm_floor) * mean_radius_x
        trace("corrected der_x", der_x)

        new_x = new_x - coef_der_x * der_x
        trace("x tilde", new_x)
        new_omega = _checked_inverse(new_x, max_condition, i_iter, "x")
        trace("omega tilde as inverse of x tilde", new_omega)

        d_w_x = (new_x[:, 0] * sqrt_sigma[0] * sqrt_n) ** 2
        trace("D_w from the first column of x tilde", d_w_x)
        d_w_omega = (new_omega[0, :] * sqrt_sigma[0] * sqrt_m) ** 2
        trace("D_w from the first row of omega tilde", d_w_omega)

        # Step on Omega
        der_omega = (
            coef_hinge_w
            * np.diag(1 / sqrt_sigma)
            @ hinge_der_basis(s.T @ np.diag(sqrt_sigma) @ new_omega, s, precision)
        )
        trace("der_omega", der_omega)
        der_omega = correct_by_norm(der_omega, norm_floor) * mean_radius_omega
        trace("corrected der_omega", der_omega)

        new_omega = new_omega - coef_der_omega * der_omega
        trace("omega tilde", new_omega)
        new_x = _checked_inverse(new_omega, max_condition, i_iter, "omega")
        trace("x tilde as inverse of omega tilde", new_x)

        d_w_omega = (new_omega[0, :] * sqrt_sigma[0] * sqrt_m) ** 2
        trace("D_w from the first row of omega tilde", d_w_omega)
        d_w_x = (new_x[:, 0] * sqrt_sigma[0] * sqrt_n) ** 2
        trace("D_w from the first column of x tilde", d_w_x)

        # D_w is taken from x tilde and squared once more
        new_d_w = d_w_x ** 2
        _check_scale(new_d_w, i_iter, "D_w")
        new_d_h = new_d_w * (n / m)
        trace("D_w", new_d_w)

        neg_props = count_negative(new_x @ r)
        neg_basis = count_negative(s.T @ new_omega)
        sum_ = np.sum(new_d_w) / m

        final_x = np.diag(1 / new_d_w) @ new_x @ np.diag(sqrt_sigma)
        trace("final x", final_x)
        final_omega = np.diag(sqrt_sigma) @ new_omega @ np.diag(1 / new_d_w)
        trace("final omega", final_omega)

        current_errors = calc_errors(
            x=final_x,
            omega=final_omega,
            d_w=new_d_w,
            d_h=new_d_h,
            svrt=svrt,
            r=r,
            s=s,
            coef_=1,
            coef_der_x=coef_der_x,
            coef_der_omega=coef_der_omega,
            coef_hinge_h=coef_hinge_h,
            coef_hinge_w=coef_hinge_w,
            coef_pos_d_h=coef_pos_d_h,
            coef_pos_d_w=coef_pos_d_w,
        )

        errors_statistics[i_iter, :] = [current_errors[name] for name in ERROR_NAMES] + [neg_props, neg_basis, sum_]
        points_statistics_x[i_iter, :] = final_x.ravel()
        points_statistics_omega[i_iter, :] = final_omega.ravel()

        status = f"Iteration: {i_iter}"
        my_status_box.update_status(status=status)
        my_status_box.update_bar()
        my_status_box.my_print(
            f"{status} total error: {current_errors['total_error']:.6g}; negative proportions: {neg_props}; "
            f"negative basis: {neg_basis}"
        )

    return final_x, final_omega, new_d_w, new_d_h, errors_statistics, points_statistics_x, points_statistics_omega
