# tsorder/utils/data_io.py
"""
Series ingestion from tabular files.

``load_series`` reads a CSV file with pandas and returns a validated float
series indexed by period. Malformed input (missing columns, non-numeric
values, duplicate or decreasing periods, non-positive values before a log
transform) raises ``DataFormatError``.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from tsorder.core.exceptions import raise_data_format_error
from tsorder.models.time_series.utils import as_time_series

logger = logging.getLogger("tsorder.utils.data_io")


def load_series(path: Union[str, Path],
                value_column: Union[str, int],
                period_column: Optional[Union[str, int]] = None,
                log: bool = False,
                **read_csv_kwargs: Any) -> pd.Series:
    """
    Load one column of a CSV file as a time series.

    Args:
        path: CSV file
        value_column: Column holding the observations (name or position)
        period_column: Column holding the period labels; without it the
            periods are 1..N in file order
        log: Return the natural logarithm of the values
        **read_csv_kwargs: Passed to ``pandas.read_csv``

    Returns:
        pd.Series: Float series indexed by period

    Raises:
        DataFormatError: If the file cannot be parsed or the series is malformed

    Examples:
        >>> from tsorder.utils.data_io import load_series
        >>> series = load_series("income.csv", "income", period_column="quarter", log=True)  # doctest: +SKIP
    """
    path = Path(path)
    try:
        frame = pd.read_csv(path, **read_csv_kwargs)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise_data_format_error(
            f"Could not read {path}",
            data_name=str(path),
            issue="unreadable file",
            details=str(e)
        )

    def _column(key: Union[str, int]) -> pd.Series:
        if isinstance(key, int) and key not in frame.columns:
            if not 0 <= key < frame.shape[1]:
                raise_data_format_error(
                    f"Column position {key} is out of range",
                    data_name=str(path),
                    issue="missing column"
                )
            return frame.iloc[:, key]
        if key not in frame.columns:
            raise_data_format_error(
                f"Column '{key}' not found",
                data_name=str(path),
                issue="missing column",
                details=f"Available columns: {', '.join(map(str, frame.columns))}"
            )
        return frame[key]

    values = _column(value_column)
    name = str(values.name)
    if period_column is not None:
        values = pd.Series(values.to_numpy(), index=pd.Index(_column(period_column)), name=name)
    else:
        values = pd.Series(values.to_numpy(), index=pd.RangeIndex(1, len(values) + 1), name=name)

    series = as_time_series(values, name=name)

    if log:
        if (series <= 0).any():
            raise_data_format_error(
                "Log transform requires strictly positive values",
                data_name=name,
                issue="non-positive values",
                index=str(series.index[np.flatnonzero(series.to_numpy() <= 0)[0]])
            )
        series = np.log(series)

    logger.debug(f"Loaded {len(series)} observations of '{name}' from {path}")
    return series
