"""
Numba-accelerated core functions for time series analysis.

Kernels used by the lag-matrix builder and the residual diagnostics. They
take and return plain float64 arrays; validation and pandas handling live in
the calling modules.
"""

import logging

import numpy as np
from numba import jit

logger = logging.getLogger("tsorder.models.time_series._numba_core")


# ============================================================================
# Lag Structures
# ============================================================================

@jit(nopython=True, cache=True)
def zero_filled_lag_matrix(x: np.ndarray, lags: int) -> np.ndarray:
    """
    Build an (n x lags+1) matrix whose column k is ``x`` shifted right by k.

    The first k entries of column k are zero. No rows are dropped, so every
    column has the length of the input.

    Args:
        x: Input series (1D float64 array)
        lags: Largest shift

    Returns:
        np.ndarray: Lag matrix with columns lag0..lag{lags}
    """
    n = len(x)
    result = np.zeros((n, lags + 1))
    result[:, 0] = x

    for k in range(1, lags + 1):
        for t in range(k, n):
            result[t, k] = x[t - k]

    return result


@jit(nopython=True, cache=True)
def difference(x: np.ndarray, d: int = 1) -> np.ndarray:
    """
    Compute the d-th difference of a series.

    Args:
        x: Input series
        d: Order of differencing

    Returns:
        np.ndarray: Differenced series of length n - d
    """
    result = x.copy()

    for _ in range(d):
        temp = np.zeros(len(result) - 1)
        for i in range(len(temp)):
            temp[i] = result[i + 1] - result[i]
        result = temp

    return result


# ============================================================================
# Correlation Analysis Functions
# ============================================================================

@jit(nopython=True, cache=True)
def acf_numba(x: np.ndarray, nlags: int) -> np.ndarray:
    """
    Sample autocorrelations of a demeaned series for lags 0..nlags.

    A series with zero variance returns all zeros.
    """
    n = len(x)
    acf = np.zeros(nlags + 1)

    x_centered = x - np.mean(x)
    variance = np.sum(x_centered ** 2) / n

    if variance <= 1e-15:
        return acf

    acf[0] = 1.0
    for lag in range(1, nlags + 1):
        cov = 0.0
        for t in range(lag, n):
            cov += x_centered[t] * x_centered[t - lag]
        acf[lag] = (cov / n) / variance

    return acf


@jit(nopython=True, cache=True)
def ljung_box_q(acf: np.ndarray, nobs: int, lags: int) -> float:
    """
    Ljung-Box Q = T(T+2) * sum_{k=1..K} rho_k^2 / (T-k).

    Args:
        acf: Autocorrelations, index 0 holds lag 0 and is ignored
        nobs: Sample size T
        lags: Number of autocorrelations K (requires T > K)
    """
    total = 0.0
    for k in range(1, lags + 1):
        total += acf[k] ** 2 / (nobs - k)
    return nobs * (nobs + 2.0) * total
