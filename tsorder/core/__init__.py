"""
tsorder core module: exceptions, configuration, type aliases and the
result containers shared by every component.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("tsorder.core")

from .exceptions import (
    TSOrderError,
    ParameterError,
    DimensionError,
    DataFormatError,
    EstimationError,
    EstimationNonConvergence,
    ConfigurationError,
    ForecastError,
    TSOrderWarning,
    NumericWarning,
    ConvergenceWarning,
)

from .results import (
    NotApplicable,
    is_applicable,
    RegressionResult,
    ModelSpec,
    ModelFitResult,
    FitSuccess,
    FitFailure,
    CoefficientTest,
    LjungBoxResult,
)

from .config import (
    get_config,
    set_config,
    reset_config,
    save_config,
    get_config_manager,
)

__all__ = [
    'TSOrderError', 'ParameterError', 'DimensionError', 'DataFormatError',
    'EstimationError', 'EstimationNonConvergence', 'ConfigurationError',
    'ForecastError', 'TSOrderWarning', 'NumericWarning', 'ConvergenceWarning',
    'NotApplicable', 'is_applicable', 'RegressionResult', 'ModelSpec',
    'ModelFitResult', 'FitSuccess', 'FitFailure', 'CoefficientTest',
    'LjungBoxResult', 'get_config', 'set_config', 'reset_config',
    'save_config', 'get_config_manager',
]
