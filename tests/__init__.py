"""
tsorder Test Suite

Tests for series handling, unit-root statistics, ARIMA order selection,
residual diagnostics and the end-to-end analysis driver.
"""

# Import commonly used test utilities
from tests.conftest import (
    REFERENCE_SERIES,
    ScriptedEstimator,
    make_fit_result,
)
