# src/ndvilab/raster/stats.py
"""
Summary statistics over the valid cells of a raster band.
"""

import logging
from typing import Any, Dict

import numpy as np

from .layer import Raster

log = logging.getLogger(__name__)

__all__ = [
    "band_stats",
    "cover_area"
]

def _valid_values(raster: Raster, band: int) -> np.ndarray:
    if not (1 <= band <= raster.count):
        raise IndexError(f"Band index {band} out of range (1-{raster.count})")
    return raster.data[band - 1][raster.valid_mask()[band - 1]].astype(np.float64)

def band_stats(raster: Raster, band: int = 1) -> Dict[str, float]:
    """
    Mean, median, standard deviation, min, max and count of the valid cells.

    Returns an empty dict when the band has no valid cell.
    """
    values = _valid_values(raster, band)
    if values.size == 0:
        return {}

    return {
        "mean": float(np.mean(values)),
        "median": float(np.median(values)),
        "sd": float(np.std(values)),
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "count": int(values.size)
    }

def cover_area(raster: Raster, band: int = 1) -> Dict[str, Any]:
    """
    Area covered by the valid cells of a band.

    Returns:
        dict: 'cells' (valid cell count), 'area' (in squared CRS units) and
        'fraction' (share of the grid covered).
    """
    cells = int(_valid_values(raster, band).size)
    xres, yres = raster.resolution
    return {
        "cells": cells,
        "area": cells * xres * yres,
        "fraction": cells / float(raster.width * raster.height)
    }
