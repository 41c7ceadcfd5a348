# src/ndvilab/__init__.py
#
# Copyright (c) The ndvilab project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
ndvilab loads Landsat rasters, aggregates and masks their bands, and derives
NDVI-based forest maps.
"""

__version__ = "0.1.0"

from . import exceptions, raster, vector
from .pipeline import PipelineConfig, PipelineResult, run_pipeline

__all__ = [
    "exceptions",
    "raster",
    "vector",
    "PipelineConfig",
    "PipelineResult",
    "run_pipeline"
]
