"""
Dual simplex alternating updates of mutually inverse factors\n
License: MIT
"""

from importlib.metadata import PackageNotFoundError, version

from .dualsimplex import DualSimplex
from .estimator import Estimator
from .dualsimplex_utils import NonPositiveScaleError, SingularMatrixError, TraceLogger

try:
    __version__ = version("dualsimplex")
except PackageNotFoundError:
    __version__ = "0.0.0"
