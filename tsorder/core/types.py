# tsorder/core/types.py

"""
Core type annotations for tsorder.

Type aliases shared across the package so that signatures document the
shape and role of the arrays they accept.
"""

from typing import Dict, Literal, Sequence, Tuple, Union

import numpy as np
import pandas as pd

# NumPy array type aliases
Vector = np.ndarray  # 1D array
Matrix = np.ndarray  # 2D array

# Time series inputs. Everything is normalised to a float pd.Series whose
# index holds the period labels.
TimeSeriesData = Union[np.ndarray, pd.Series, Sequence[float]]

# Model specification types
ARIMAOrder = Tuple[int, int, int]  # (p, d, q)

# One flag per coefficient; True marks a coefficient constrained to zero
FixedMask = Tuple[bool, ...]
MaskLike = Union[Sequence[bool], np.ndarray]

Criterion = Literal["aic", "bic"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

ConfigDict = Dict[str, Dict[str, object]]

__all__ = [
    'Vector', 'Matrix', 'TimeSeriesData', 'ARIMAOrder', 'FixedMask',
    'MaskLike', 'Criterion', 'LogLevel', 'ConfigDict',
]
