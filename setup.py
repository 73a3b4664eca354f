#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Minimal setup.py that defers to pyproject.toml, kept for tools that still
invoke setup.py directly.
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup()
