# tsorder/models/time_series/utils.py

"""
Time Series Utilities Module

Helpers shared by the unit-root tester, the model search and the
diagnostics: normalising raw inputs into a validated series, building
zero-filled lag matrices, differencing, and constructing the deterministic
trend regressor.

Functions:
    as_time_series: Validate and normalise an input series
    lag_matrix: Build a zero-filled matrix of lagged values
    difference: Compute the d-th difference of a series
    trend_regressor: Numeric period index used as a deterministic trend
"""

import logging
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd

from tsorder.core.exceptions import (
    raise_data_format_error, raise_dimension_error, raise_parameter_error
)
from tsorder.core.types import Matrix, TimeSeriesData, Vector
from tsorder.models.time_series import _numba_core

logger = logging.getLogger("tsorder.models.time_series.utils")


def as_time_series(data: TimeSeriesData, name: str = "series") -> pd.Series:
    """
    Validate ``data`` and return it as a float ``pd.Series``.

    A pandas Series keeps its index as the period labels; the periods must be
    strictly increasing with no duplicates. Arrays and sequences receive the
    periods 1..N.

    Args:
        data: Series, 1D array or sequence of numbers
        name: Name used in error messages

    Returns:
        pd.Series: Float series indexed by period

    Raises:
        DataFormatError: If periods are not strictly increasing or values are
            non-numeric or non-finite
        DimensionError: If the data is not one-dimensional
    """
    if isinstance(data, pd.DataFrame):
        if data.shape[1] != 1:
            raise_dimension_error(
                "Input must be a single column",
                array_name=name,
                expected_shape="(N,)",
                actual_shape=data.shape
            )
        data = data.iloc[:, 0]

    if isinstance(data, pd.Series):
        index = data.index
        if not index.is_unique:
            raise_data_format_error(
                "Series periods contain duplicates",
                data_name=name,
                issue="duplicate periods",
                index=str(index[index.duplicated()][0])
            )
        if not index.is_monotonic_increasing:
            raise_data_format_error(
                "Series periods must be strictly increasing",
                data_name=name,
                issue="non-monotonic periods"
            )
        try:
            values = pd.to_numeric(data, errors="raise").to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise_data_format_error(
                "Series contains non-numeric values",
                data_name=name,
                issue="non-numeric values",
                details=str(e)
            )
    else:
        try:
            values = np.asarray(data, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise_data_format_error(
                "Input contains non-numeric values",
                data_name=name,
                issue="non-numeric values",
                details=str(e)
            )
        if values.ndim != 1:
            raise_dimension_error(
                "Input must be a 1D array or Series",
                array_name=name,
                expected_shape="(N,)",
                actual_shape=values.shape
            )
        index = pd.RangeIndex(1, len(values) + 1)

    bad = ~np.isfinite(values)
    if bad.any():
        raise_data_format_error(
            "Series contains NaN or infinite values",
            data_name=name,
            issue="non-finite values",
            index=int(np.flatnonzero(bad)[0])
        )

    return pd.Series(values, index=index, name=getattr(data, "name", None) or name)


def lag_matrix(y: TimeSeriesData, lags: int,
               extra: Optional[Dict[str, Vector]] = None) -> Union[Matrix, pd.DataFrame]:
    """
    Build a matrix of lagged values with zero-filled leading entries.

    Column ``lag0`` equals the input exactly. Column ``lagk`` is the input
    shifted right by k positions with its first k entries set to zero. The
    leading rows are neither dropped nor marked missing, so the result always
    has one row per input observation. Consumers that fit regressions must
    skip the first k rows themselves.

    Args:
        y: Input series (1D array or Series)
        lags: Largest lag K, 0 <= K <= N
        extra: Optional extra regressors, each of length N, appended after
            the lag columns in insertion order

    Returns:
        N x (K+1+len(extra)) matrix. A pandas Series input yields a DataFrame
        with columns ``lag0..lagK`` plus the extra names; other inputs yield a
        NumPy array.

    Raises:
        ParameterError: If lags is not an integer in [0, N] or an extra
            regressor has the wrong length
        DimensionError: If y is not 1D

    Examples:
        >>> import numpy as np
        >>> from tsorder.models.time_series.utils import lag_matrix
        >>> lag_matrix(np.array([1.0, 2.0, 3.0, 4.0]), lags=2)
        array([[1., 0., 0.],
               [2., 1., 0.],
               [3., 2., 1.],
               [4., 3., 2.]])
    """
    is_pandas = isinstance(y, pd.Series)
    if is_pandas:
        index = y.index
        values = y.to_numpy(dtype=np.float64)
    else:
        values = np.asarray(y, dtype=np.float64)

    if values.ndim != 1:
        raise_dimension_error(
            "Input must be a 1D array or Series",
            array_name="y",
            expected_shape="(N,)",
            actual_shape=values.shape
        )

    n = len(values)
    if isinstance(lags, bool) or not isinstance(lags, (int, np.integer)) or lags < 0 or lags > n:
        raise_parameter_error(
            "lags must be an integer between 0 and the series length",
            param_name="lags",
            param_value=lags,
            constraint=f"0 <= lags <= {n}"
        )

    result = _numba_core.zero_filled_lag_matrix(np.ascontiguousarray(values), int(lags))
    names = [f"lag{k}" for k in range(lags + 1)]

    if extra:
        columns = [result]
        for name, regressor in extra.items():
            regressor = np.asarray(regressor, dtype=np.float64)
            if regressor.shape != (n,):
                raise_parameter_error(
                    f"Extra regressor '{name}' must have one value per observation",
                    param_name=name,
                    param_value=regressor.shape,
                    constraint=f"shape == ({n},)"
                )
            columns.append(regressor[:, None])
            names.append(name)
        result = np.hstack(columns)

    if is_pandas:
        return pd.DataFrame(result, index=index, columns=names)
    return result


def difference(y: TimeSeriesData, d: int = 1) -> Union[Vector, pd.Series]:
    """
    Compute the d-th difference of a series.

    A pandas input keeps the periods of the observations that remain, so the
    first difference is labelled with periods 2..N.

    Raises:
        ParameterError: If d is negative or not smaller than the series length
    """
    is_pandas = isinstance(y, pd.Series)
    values = y.to_numpy(dtype=np.float64) if is_pandas else np.asarray(y, dtype=np.float64)

    if isinstance(d, bool) or not isinstance(d, (int, np.integer)) or d < 0 or d >= len(values):
        raise_parameter_error(
            "Differencing order must be a non-negative integer smaller than the series length",
            param_name="d",
            param_value=d,
            constraint=f"0 <= d < {len(values)}"
        )

    result = _numba_core.difference(np.ascontiguousarray(values), int(d))
    if is_pandas:
        return pd.Series(result, index=y.index[d:], name=y.name)
    return result


def trend_regressor(series: pd.Series) -> Vector:
    """
    Numeric period index of ``series`` for use as a deterministic trend.

    A numeric index is used as is; any other index (dates, periods, labels)
    is replaced by the positions 1..N. The trend coefficient's t-ratio and
    the remaining coefficients are invariant to this affine relabelling.
    """
    index = series.index
    if pd.api.types.is_numeric_dtype(index.dtype) and not pd.api.types.is_bool_dtype(index.dtype):
        return np.asarray(index, dtype=np.float64)
    return np.arange(1, len(series) + 1, dtype=np.float64)
