"""
tsorder utilities: reading series from tabular files.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("tsorder.utils")

from .data_io import load_series

__all__ = ['load_series']
