# tsorder/__init__.py
"""
tsorder - ARIMA order selection for Python

Tools for choosing the order of an ARIMA model for a single series:
- Augmented Dickey-Fuller statistics across lag orders
- Exhaustive ARIMA(p, d, q) grid search ranked by AIC and BIC
- Ljung-Box and coefficient diagnostics
- Characteristic roots and common-root candidates
- Evaluation of zero-restricted variants of a model
"""

import importlib
import logging
from typing import Union
import warnings

# Set up package-wide logger
logger = logging.getLogger("tsorder")
logger.setLevel(logging.INFO)
_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logger.addHandler(_handler)

from .version import __version__, __author__, __license__, __title__, __description__


def _check_dependencies() -> None:
    """
    Check for required dependencies and their versions.

    Warns if a dependency is older than the tested minimum.
    """
    required_packages = {
        "numpy": "1.26.0",
        "scipy": "1.11.3",
        "pandas": "2.1.1",
        "numba": "0.58.0",
        "statsmodels": "0.14.0",
    }

    missing_required = []
    outdated_packages = []

    for package, min_version in required_packages.items():
        try:
            imported = importlib.import_module(package)
        except ImportError:
            missing_required.append(package)
            continue
        if not hasattr(imported, "__version__"):
            logger.warning(f"Cannot determine version for {package}")
            continue
        current = tuple(int(p) for p in imported.__version__.split(".")[:2] if p.isdigit())
        minimum = tuple(int(p) for p in min_version.split(".")[:2])
        if current < minimum:
            outdated_packages.append((package, imported.__version__, min_version))

    if missing_required:
        logger.error(f"Required packages missing: {', '.join(missing_required)}")
        raise ImportError(
            f"tsorder requires the following packages: "
            f"{', '.join(missing_required)}. Please install them with pip."
        )

    for package, current, required in outdated_packages:
        warnings.warn(
            f"{package} version {current} is older than the recommended "
            f"version {required}. This may cause compatibility issues.",
            UserWarning
        )


_check_dependencies()

from . import core
from . import models
from . import utils
from .core.config import get_config, reset_config, save_config, set_config
from .core.exceptions import (
    DataFormatError, EstimationError, EstimationNonConvergence, ParameterError, TSOrderError
)
from .core.results import ModelSpec, NotApplicable
from .models.time_series import (
    augmented_dickey_fuller, evaluate_restrictions, find_roots, forecast, lag_matrix,
    ljung_box, run_grid
)
from .pipeline import AnalysisReport, analyze_series
from .utils.data_io import load_series


def get_version() -> str:
    """Return the version of tsorder."""
    return __version__


def set_log_level(level: Union[str, int]) -> None:
    """
    Set the logging level for tsorder.

    Args:
        level: Logging level, either as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
              or as an integer constant from the logging module
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    logger.info(f"Log level set to {logging.getLevelName(level)}")


__all__ = [
    "__version__",
    "get_version",
    "set_log_level",
    "get_config",
    "set_config",
    "reset_config",
    "save_config",
    "TSOrderError",
    "ParameterError",
    "DataFormatError",
    "EstimationError",
    "EstimationNonConvergence",
    "ModelSpec",
    "NotApplicable",
    "lag_matrix",
    "augmented_dickey_fuller",
    "run_grid",
    "ljung_box",
    "find_roots",
    "evaluate_restrictions",
    "forecast",
    "analyze_series",
    "AnalysisReport",
    "load_series",
]
