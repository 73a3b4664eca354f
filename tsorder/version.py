# tsorder/version.py
"""
Version information for tsorder.

tsorder follows semantic versioning (MAJOR.MINOR.PATCH):
- MAJOR: Incompatible API changes
- MINOR: Backwards-compatible functionality additions
- PATCH: Backwards-compatible bug fixes
"""

from typing import Dict, List, Tuple

# Version components
VERSION_MAJOR = 1
VERSION_MINOR = 0
VERSION_PATCH = 0

# Full version string
__version__ = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

# Package metadata
__title__ = "tsorder"
__description__ = "ARIMA order selection: unit-root statistics, grid search and residual diagnostics"
__author__ = "tsorder developers"
__license__ = "MIT"
__copyright__ = "Copyright 2026 tsorder developers"

# Python version requirements
__python_requires__ = ">=3.10"

# Package dependencies
__dependencies__: Dict[str, str] = {
    "numpy": ">=1.26.0",
    "scipy": ">=1.11.3",
    "pandas": ">=2.1.1",
    "numba": ">=0.58.0",
    "statsmodels": ">=0.14.0",
}

VERSION_HISTORY: List[Dict[str, object]] = [
    {
        "version": "1.0.0",
        "release_date": "2026-10-19",
        "changes": [
            "Augmented Dickey-Fuller statistics across lag orders",
            "ARIMA grid search with isolated per-candidate failures",
            "AIC and BIC rankings, Ljung-Box and coefficient tests",
            "Characteristic roots and common-root candidates",
            "Evaluation of zero-restricted models",
        ],
    },
]


def get_version_info() -> Tuple[int, int, int]:
    """Return the version as a (major, minor, patch) tuple."""
    return (VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH)


def get_version_history() -> List[Dict[str, object]]:
    return VERSION_HISTORY
