# tsorder/models/time_series/roots.py
"""
Characteristic roots of fitted ARMA models and common-factor detection.

The AR polynomial is 1 - phi_1 z - ... - phi_p z^p and the MA polynomial is
1 + theta_1 z + ... + theta_q z^q. Coefficients are passed to the solver
constant-first, i.e. ``[1, -phi_1, ..., -phi_p]`` and ``[1, theta_1, ...,
theta_q]``, and solved with ``numpy.polynomial.polynomial.polyroots``.
Trailing zero coefficients (for example a last lag fixed at zero) lower the
degree of the polynomial and therefore the number of roots.

An AR root close to an MA root means the two polynomials share a factor and
a smaller model fits equally well. Whether two roots are "close" depends on
a tolerance that has no canonical value, so it must be chosen by the caller.
The comparison only reports candidate pairs; acting on them is up to the
analyst.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from numpy.polynomial import polynomial as P

from tsorder.core.config import get_config
from tsorder.core.exceptions import raise_dimension_error, raise_parameter_error
from tsorder.core.results import ModelFitResult, NotApplicable
from tsorder.core.types import Vector

logger = logging.getLogger("tsorder.models.time_series.roots")


def _polynomial_roots(coefficients: np.ndarray) -> np.ndarray:
    trimmed = P.polytrim(coefficients, tol=0)
    if len(trimmed) <= 1:
        return np.array([], dtype=np.complex128)
    return np.asarray(P.polyroots(trimmed), dtype=np.complex128)


def _as_params(params: Vector, name: str) -> np.ndarray:
    params = np.asarray(params, dtype=np.float64)
    if params.ndim != 1:
        raise_dimension_error(
            f"{name} must be a 1D array",
            array_name=name,
            expected_shape="(k,)",
            actual_shape=params.shape
        )
    return params


def ar_polynomial(ar_params: Vector) -> np.ndarray:
    """Constant-first coefficients [1, -phi_1, ..., -phi_p]."""
    return np.concatenate(([1.0], -_as_params(ar_params, "ar_params")))


def ma_polynomial(ma_params: Vector) -> np.ndarray:
    """Constant-first coefficients [1, theta_1, ..., theta_q]."""
    return np.concatenate(([1.0], _as_params(ma_params, "ma_params")))


def find_roots(ar_params: Vector, ma_params: Vector) -> Tuple[np.ndarray, np.ndarray]:
    """
    Roots of the AR and MA characteristic polynomials.

    Args:
        ar_params: AR coefficients [phi_1, ..., phi_p]
        ma_params: MA coefficients [theta_1, ..., theta_q]

    Returns:
        (ar_roots, ma_roots) as complex arrays

    Examples:
        >>> import numpy as np
        >>> from tsorder.models.time_series.roots import find_roots
        >>> ar_roots, ma_roots = find_roots([0.5], [])
        >>> ar_roots.real
        array([2.])
    """
    return (_polynomial_roots(ar_polynomial(ar_params)),
            _polynomial_roots(ma_polynomial(ma_params)))


@dataclass(frozen=True)
class CommonRootPair:
    """An AR root and an MA root within the comparison tolerance."""

    ar_root: complex
    ma_root: complex
    distance: float


def common_roots(ar_roots: Vector, ma_roots: Vector, tolerance: float) -> List[CommonRootPair]:
    """
    All (AR root, MA root) pairs whose distance in the complex plane is at
    most ``tolerance``, nearest first.

    Raises:
        ParameterError: If tolerance is not a positive finite number
    """
    if tolerance is None or not np.isfinite(tolerance) or tolerance <= 0:
        raise_parameter_error(
            "Common-root tolerance must be a positive number",
            param_name="tolerance",
            param_value=tolerance,
            constraint="> 0"
        )

    ar_roots = np.asarray(ar_roots, dtype=np.complex128)
    ma_roots = np.asarray(ma_roots, dtype=np.complex128)
    if ar_roots.size == 0 or ma_roots.size == 0:
        return []

    distances = np.abs(ar_roots[:, None] - ma_roots[None, :])
    pairs = [
        CommonRootPair(ar_root=complex(ar_roots[i]), ma_root=complex(ma_roots[j]),
                       distance=float(distances[i, j]))
        for i, j in zip(*np.nonzero(distances <= tolerance))
    ]
    return sorted(pairs, key=lambda pair: pair.distance)


@dataclass(frozen=True, eq=False)
class RootAnalysis:
    """
    Roots of one fitted model.

    Attributes:
        label: Model label
        ar_roots: Roots of the AR polynomial
        ma_roots: Roots of the MA polynomial
        common: Candidate common-root pairs, or NotApplicable without a tolerance
        tolerance: Tolerance used for the comparison
    """

    label: str
    ar_roots: np.ndarray
    ma_roots: np.ndarray
    common: Union[List[CommonRootPair], NotApplicable]
    tolerance: Optional[float] = None

    @property
    def is_stationary(self) -> bool:
        """All AR roots lie outside the unit circle."""
        return bool(np.all(np.abs(self.ar_roots) > 1.0))

    @property
    def is_invertible(self) -> bool:
        """All MA roots lie outside the unit circle."""
        return bool(np.all(np.abs(self.ma_roots) > 1.0))

    @property
    def has_common_roots(self) -> bool:
        return isinstance(self.common, list) and len(self.common) > 0

    def to_frame(self) -> pd.DataFrame:
        rows = [("ar", r) for r in self.ar_roots] + [("ma", r) for r in self.ma_roots]
        return pd.DataFrame({
            "polynomial": [kind for kind, _ in rows],
            "real": [r.real for _, r in rows],
            "imag": [r.imag for _, r in rows],
            "modulus": [abs(r) for _, r in rows],
        })


class CommonRootAnalyzer:
    """
    Root analysis for fitted models.

    Args:
        tolerance: Distance below which an AR and an MA root are reported as a
            common-root candidate; defaults to ``roots.common_root_tolerance``.
            Without a tolerance only the roots are reported.
    """

    def __init__(self, tolerance: Optional[float] = None):
        if tolerance is None:
            tolerance = get_config("roots", "common_root_tolerance")
        if tolerance is not None and (not np.isfinite(tolerance) or tolerance <= 0):
            raise_parameter_error(
                "Common-root tolerance must be a positive number",
                param_name="tolerance",
                param_value=tolerance,
                constraint="> 0"
            )
        self.tolerance = tolerance

    def find_roots(self, ar_params: Vector, ma_params: Vector) -> Tuple[np.ndarray, np.ndarray]:
        return find_roots(ar_params, ma_params)

    def analyze(self, fit: ModelFitResult) -> RootAnalysis:
        """Roots, stationarity, invertibility and common-root candidates of ``fit``."""
        ar_roots, ma_roots = find_roots(fit.ar_params, fit.ma_params)

        if self.tolerance is None:
            common: Union[List[CommonRootPair], NotApplicable] = NotApplicable(
                "no common-root tolerance supplied"
            )
        else:
            common = common_roots(ar_roots, ma_roots, self.tolerance)
            if common:
                logger.info(f"{fit.label}: {len(common)} common-root candidate(s) "
                            f"within {self.tolerance}")

        return RootAnalysis(label=fit.label, ar_roots=ar_roots, ma_roots=ma_roots,
                            common=common, tolerance=self.tolerance)
