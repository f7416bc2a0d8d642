import logging

import numpy as np
import pandas as pd

from .dualsimplex_core import ERROR_COLUMNS

logger = logging.getLogger(__name__)


class Estimator:
    """
    Estimator object. Created by `dualsimplex.dualsimplex.DualSimplex.fit_transform`.

    Attributes
    -------
    x: array-like, shape (n_components, n_components)
        De-scaled proportions factor after the last iteration.
    omega: array-like, shape (n_components, n_components)
        De-scaled basis factor after the last iteration.
    d_w: vector-like, shape (n_components)
        Last scale vector.
    d_h: vector-like, shape (n_components)
        Last dual scale vector, d_w * n / m.
    errors_statistics: array-like, shape (iterations, 9)
        One row per iteration: deconv_error, lambda_error, beta_error, D_h_error, D_w_error, total_error, number of
        negative proportions, number of negative basis entries, sum(d_w) / m.
    points_statistics_x: array-like, shape (iterations, n_components ** 2)
        x of each iteration, flattened by row.
    points_statistics_omega: array-like, shape (iterations, n_components ** 2)
        omega of each iteration, flattened by row.
    """
    def __init__(
        self,
        x,
        omega,
        d_w,
        d_h,
        errors_statistics,
        points_statistics_x,
        points_statistics_omega,
        verbose=0,
    ):
        self.x = x
        self.omega = omega
        self.d_w = d_w
        self.d_h = d_h
        self.errors_statistics = errors_statistics
        self.points_statistics_x = points_statistics_x
        self.points_statistics_omega = points_statistics_omega
        self.verbose = verbose

    @property
    def n_iter(self) -> int:
        return self.errors_statistics.shape[0]

    @property
    def errors(self) -> pd.DataFrame:
        """Per iteration diagnostics as a DataFrame with named columns"""
        df = pd.DataFrame(self.errors_statistics, columns=list(ERROR_COLUMNS))
        df.index.name = "iteration"
        return df

    def snapshot(self, i_iter):
        """De-scaled x and omega recorded at iteration i_iter

        Parameters
        ----------
        i_iter: integer, negative values count from the last iteration

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]: x and omega with shape (n_components, n_components)
        """
        k = self.x.shape[0]
        return (
            np.reshape(self.points_statistics_x[i_iter, :], (k, k)),
            np.reshape(self.points_statistics_omega[i_iter, :], (k, k)),
        )

    def update(self, **kwargs):
        """Updates this estimator's attributes according to given keyword arguments. Only attributes already defined
        in the estimator can be updated this way."""
        for item in kwargs:
            if not hasattr(self, item):
                raise ValueError(f"Can not update attribute '{item}'")
            setattr(self, item, kwargs.get(item))
