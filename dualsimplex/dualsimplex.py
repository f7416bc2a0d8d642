""" Class accessing the dual simplex alternating updates
"""

# License: MIT
import logging

from .estimator import Estimator
from .dualsimplex_base import svd_init
from .dualsimplex_core import derivative_stage2
from .dualsimplex_utils import StatusBoxTqdm

logger = logging.getLogger(__name__)


class DualSimplex:
    """Alternating hinge descent on a pair of mutually inverse factors X and Omega"""
    def __init__(
        self,
        coef_der_x=0.001,
        coef_der_omega=0.001,
        coef_hinge_h=1.0,
        coef_hinge_w=1.0,
        coef_pos_d_h=0.0,
        coef_pos_d_w=0.0,
        iterations=100,
        mean_radius_x=1.0,
        mean_radius_omega=1.0,
        r_const_x=0.0,
        r_const_omega=0.0,
        thresh=0.8,
        precision=1e-10,
        norm_floor=1e-10,
        max_condition=1e12,
        verbose=0,
    ):
        """Initialize the model

        Parameters
        ----------
        coef_der_x: float, default: 0.001
            Step multiplier on X.
        coef_der_omega: float, default: 0.001
            Step multiplier on Omega.
        coef_hinge_h: float, default: 1
            Weight of the penalty on negative entries of X @ R.
        coef_hinge_w: float, default: 1
            Weight of the penalty on negative entries of S.T @ Omega.
        coef_pos_d_h: float, default: 0
            Weight of the constraint X.T @ D_h = rowsums(R), reported in the errors only.
        coef_pos_d_w: float, default: 0
            Weight of the constraint Omega @ D_w = rowsums(S), reported in the errors only.
        iterations: integer, default: 100
            Number of iterations. There is no stopping condition, all iterations are run.
        mean_radius_x: float, default: 1
            Length of each normalized gradient row on X.
        mean_radius_omega: float, default: 1
            Length of each normalized gradient row on Omega.
        r_const_x: float, default: 0
            Kept for compatibility, not used by the updates.
        r_const_omega: float, default: 0
            Kept for compatibility, not used by the updates.
        thresh: float, default: 0.8
            Kept for compatibility, not used by the updates.
        precision: float, default: 1e-10
            Entries of S.T @ Omega below -precision are penalized.
        norm_floor: float, default: 1e-10
            Gradient rows with a smaller norm are not normalized.
        max_condition: float, default: 1e12
            Largest condition number accepted when inverting X or Omega.
        verbose: integer, default: 0
            0: silent, 1: progress bar, 2: one log line per iteration.

        Example
        -------
        >>> from dualsimplex import DualSimplex
        >>> my_model = DualSimplex(iterations=500, coef_der_x=0.01, coef_der_omega=0.01)
        """
        self.coef_der_x = coef_der_x
        self.coef_der_omega = coef_der_omega
        self.coef_hinge_h = coef_hinge_h
        self.coef_hinge_w = coef_hinge_w
        self.coef_pos_d_h = coef_pos_d_h
        self.coef_pos_d_w = coef_pos_d_w
        self.iterations = iterations
        self.mean_radius_x = mean_radius_x
        self.mean_radius_omega = mean_radius_omega
        self.r_const_x = r_const_x
        self.r_const_omega = r_const_omega
        self.thresh = thresh
        self.precision = precision
        self.norm_floor = norm_floor
        self.max_condition = max_condition
        self.verbose = verbose

    def fit_transform(self, x, omega, d_w, svrt, r, s, n, m, d_h=None, cell_types=None, trace=None) -> Estimator:
        """Run the alternating updates

        Parameters
        ----------
        x: array-like, shape (n_components, n_components)
            Initial proportions factor.
        omega: array-like, shape (n_components, n_components)
            Initial basis factor, inverse of x.
        d_w: vector-like, shape (n_components)
            Initial scale vector, strictly positive.
        svrt: array-like, shape (n_components, n_components)
            Diagonal matrix of singular values.
        r: array-like, shape (n_components, n_samples)
            Right projection matrix.
        s: array-like, shape (n_components, n_features)
            Left projection matrix.
        n: float
            Row normalizer.
        m: float
            Column normalizer.
        d_h: vector-like, shape (n_components), default None
            Initial dual scale vector, replaced at the first iteration.
        cell_types: integer, default None
            Rank, must match the dimension of x when given.
        trace: callable(label, value), default None
            Receives the intermediate matrices, e.g. `dualsimplex.dualsimplex_utils.TraceLogger()`.

        Returns
        -------
        `dualsimplex.estimator.Estimator`

        Example
        -------
        >>> from dualsimplex import DualSimplex
        >>> my_model = DualSimplex(iterations=10)
        >>> s, r, svrt = DualSimplex.svd_init(v, n_components=3)
        >>> est = my_model.fit_transform(x, omega, d_w, svrt, r, s, n=v.shape[0], m=v.shape[1])
        """
        if cell_types is None:
            cell_types = len(x)

        my_status_box = StatusBoxTqdm(verbose=self.verbose, total=self.iterations)
        try:
            (
                final_x,
                final_omega,
                d_w,
                d_h,
                errors_statistics,
                points_statistics_x,
                points_statistics_omega,
            ) = derivative_stage2(
                x=x,
                omega=omega,
                d_w=d_w,
                svrt=svrt,
                r=r,
                s=s,
                coef_der_x=self.coef_der_x,
                coef_der_omega=self.coef_der_omega,
                coef_hinge_h=self.coef_hinge_h,
                coef_hinge_w=self.coef_hinge_w,
                coef_pos_d_h=self.coef_pos_d_h,
                coef_pos_d_w=self.coef_pos_d_w,
                cell_types=cell_types,
                n=n,
                m=m,
                iterations=self.iterations,
                mean_radius_x=self.mean_radius_x,
                mean_radius_omega=self.mean_radius_omega,
                r_const_x=self.r_const_x,
                r_const_omega=self.r_const_omega,
                thresh=self.thresh,
                d_h=d_h,
                precision=self.precision,
                norm_floor=self.norm_floor,
                max_condition=self.max_condition,
                my_status_box=my_status_box,
                trace=trace,
            )
        finally:
            my_status_box.close()

        return Estimator(
            x=final_x,
            omega=final_omega,
            d_w=d_w,
            d_h=d_h,
            errors_statistics=errors_statistics,
            points_statistics_x=points_statistics_x,
            points_statistics_omega=points_statistics_omega,
            verbose=self.verbose,
        )

    @staticmethod
    def svd_init(v, n_components, random_state=None):
        """Projection matrices of a data matrix, see `dualsimplex.dualsimplex_base.svd_init`

        Returns
        -------
        Tuple[np.ndarray, np.ndarray, np.ndarray]: s, r, svrt
        """
        return svd_init(v, n_components, random_state=random_state)
