# tsorder/models/__init__.py
"""
tsorder models: univariate time series order selection.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("tsorder.models")

from . import time_series

__all__ = ['time_series']
