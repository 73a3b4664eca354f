'''
Custom exception classes for tsorder.

This module defines the exception hierarchy used throughout the package.
Errors fall into two groups. Configuration-time and ingestion-time errors
(bad lag orders, mismatched restriction masks, malformed series) are fatal
and propagate to the caller. Estimation errors raised by the ARMA estimator
are local to a single candidate model; the grid search and nested model
selection catch them and record a failure instead of aborting.

Degenerate diagnostics (too few degrees of freedom, zero free parameters,
zero variance entries) are not exceptions at all. They are represented by
the ``NotApplicable`` sentinel in ``tsorder.core.results``.
'''

import inspect
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union


class TSOrderError(Exception):
    """Base exception class for all tsorder errors.

    Attributes:
        message: The error message
        details: Additional details about the error
        context: Dictionary containing contextual information about the error
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"

        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            full_message += f"\n\nContext:\n{context_str}"

        # Add caller information for better debugging
        frame = inspect.currentframe()
        if frame:
            try:
                frame = frame.f_back
                if frame:
                    caller_info = inspect.getframeinfo(frame)
                    full_message += f"\n\nLocation: {Path(caller_info.filename).name}:{caller_info.lineno}"
            finally:
                del frame  # Avoid reference cycles

        super().__init__(full_message)


class ParameterError(TSOrderError):
    """Exception raised for invalid arguments such as lag orders or masks.

    Attributes:
        param_name: The name of the parameter that caused the error
        param_value: The invalid parameter value
        constraint: Description of the constraint that was violated
    """

    def __init__(self,
                 message: str,
                 param_name: Optional[str] = None,
                 param_value: Optional[Any] = None,
                 constraint: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.param_name = param_name
        self.param_value = param_value
        self.constraint = constraint

        context_dict = context or {}
        if param_name:
            context_dict["Parameter"] = param_name
        if param_value is not None:
            context_dict["Value"] = param_value
        if constraint:
            context_dict["Constraint"] = constraint

        super().__init__(message, details, context_dict)


class DimensionError(TSOrderError):
    """Exception raised when an array does not have the expected shape.

    Attributes:
        array_name: The name of the array that caused the error
        expected_shape: The expected shape of the array
        actual_shape: The actual shape of the array
    """

    def __init__(self,
                 message: str,
                 array_name: Optional[str] = None,
                 expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 actual_shape: Optional[Tuple[int, ...]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.array_name = array_name
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape

        context_dict = context or {}
        if array_name:
            context_dict["Array"] = array_name
        if expected_shape is not None:
            context_dict["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context_dict["Actual Shape"] = actual_shape

        super().__init__(message, details, context_dict)


class DataFormatError(TSOrderError):
    """Exception raised for a malformed input series.

    Raised at ingestion time when periods are not strictly increasing, are
    duplicated, or when values are non-numeric or non-finite.

    Attributes:
        data_name: The name of the data that caused the error
        issue: Description of the issue with the data
        index: The index or location where the issue was detected
    """

    def __init__(self,
                 message: str,
                 data_name: Optional[str] = None,
                 issue: Optional[str] = None,
                 index: Optional[Union[int, Tuple[int, ...], str]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.data_name = data_name
        self.issue = issue
        self.index = index

        context_dict = context or {}
        if data_name:
            context_dict["Data"] = data_name
        if issue:
            context_dict["Issue"] = issue
        if index is not None:
            context_dict["Index"] = index

        super().__init__(message, details, context_dict)


class EstimationError(TSOrderError):
    """Exception raised by an ARMA estimator when a fit fails.

    Inside a grid search this is a per-candidate, non-fatal event.

    Attributes:
        model_type: Label of the model being estimated
        estimation_method: The estimation method being used
        issue: Description of the issue that occurred during estimation
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 estimation_method: Optional[str] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.estimation_method = estimation_method
        self.issue = issue

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if estimation_method:
            context_dict["Estimation Method"] = estimation_method
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class EstimationNonConvergence(EstimationError):
    """Exception raised when the likelihood optimizer fails to converge.

    Attributes:
        iterations: The number of iterations performed before failure
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 estimation_method: Optional[str] = None,
                 iterations: Optional[int] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.iterations = iterations

        context_dict = context or {}
        if iterations is not None:
            context_dict["Iterations"] = iterations

        super().__init__(message, model_type, estimation_method,
                         "non-convergence", details, context_dict)


class ConfigurationError(TSOrderError):
    """Exception raised for unknown or invalid configuration settings.

    Attributes:
        setting: The configuration setting that caused the error
        value: The invalid value
        issue: Description of the issue
    """

    def __init__(self,
                 message: str,
                 setting: Optional[str] = None,
                 value: Optional[Any] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.setting = setting
        self.value = value
        self.issue = issue

        context_dict = context or {}
        if setting:
            context_dict["Setting"] = setting
        if value is not None:
            context_dict["Value"] = value
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class ForecastError(TSOrderError):
    """Exception raised when a forecast cannot be produced.

    Attributes:
        horizon: The requested forecast horizon
        issue: Description of the issue
    """

    def __init__(self,
                 message: str,
                 horizon: Optional[int] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.horizon = horizon
        self.issue = issue

        context_dict = context or {}
        if horizon is not None:
            context_dict["Horizon"] = horizon
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class TSOrderWarning(Warning):
    """Base warning class for tsorder."""

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"
        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            full_message += f"\n\nContext:\n{context_str}"

        super().__init__(full_message)


class NumericWarning(TSOrderWarning):
    """Warning issued when a statistic is degenerate and reported as not applicable."""

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.issue = issue
        self.value = value

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if issue:
            context_dict["Issue"] = issue
        if value is not None:
            context_dict["Value"] = value

        super().__init__(message, details, context_dict)


class ConvergenceWarning(TSOrderWarning):
    """Warning issued when an estimator converged with caveats."""

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type

        super().__init__(message, details, context_dict)


# Helper functions for raising exceptions with consistent formatting

def raise_parameter_error(message: str,
                          param_name: Optional[str] = None,
                          param_value: Optional[Any] = None,
                          constraint: Optional[str] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a ParameterError with consistent formatting.

    Raises:
        ParameterError: The formatted parameter error
    """
    raise ParameterError(message, param_name, param_value, constraint, details, context)


def raise_dimension_error(message: str,
                          array_name: Optional[str] = None,
                          expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                          actual_shape: Optional[Tuple[int, ...]] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DimensionError with consistent formatting.

    Raises:
        DimensionError: The formatted dimension error
    """
    raise DimensionError(message, array_name, expected_shape, actual_shape, details, context)


def raise_data_format_error(message: str,
                            data_name: Optional[str] = None,
                            issue: Optional[str] = None,
                            index: Optional[Union[int, Tuple[int, ...], str]] = None,
                            details: Optional[str] = None,
                            context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DataFormatError with consistent formatting.

    Raises:
        DataFormatError: The formatted data format error
    """
    raise DataFormatError(message, data_name, issue, index, details, context)


# Helper functions for issuing warnings with consistent formatting

def warn_numeric(message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a NumericWarning with consistent formatting."""
    warnings.warn(
        NumericWarning(message, operation, issue, value, details, context)
    )


def warn_convergence(message: str,
                     model_type: Optional[str] = None,
                     details: Optional[str] = None,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a ConvergenceWarning with consistent formatting."""
    warnings.warn(
        ConvergenceWarning(message, model_type, details, context)
    )
