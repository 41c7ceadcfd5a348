# src/ndvilab/raster/ndvi.py
"""
This module derives the Normalized Difference Vegetation Index from red and
near-infrared bands, and classifies it against a threshold.
"""

import logging
from typing import Optional

import numpy as np

from ndvilab.exceptions import RasterValidationError
from . import algebra
from .grid import ensure_same_grid
from .layer import Raster, NODATA_VAL

log = logging.getLogger(__name__)

__all__ = [
    "compute_ndvi",
    "classify",
    "DEFAULT_THRESHOLD"
]

DEFAULT_THRESHOLD = 0.3

def _require_single_band(raster: Raster, role: str):
    if raster.count != 1:
        raise RasterValidationError(f"{role} raster must have a single band, got {raster.count}")

def compute_ndvi(nir: Raster, red: Raster) -> Raster:
    """
    NDVI = (nir - red) / (nir + red), cell by cell.

    A cell is nodata when either band is nodata there or when nir + red is
    zero. Valid inputs give values in [-1, 1]; the result is not clamped, and
    values outside that range are reported as a warning because they point
    to a defect in the input bands.

    Args:
        nir: Single-band near-infrared raster.
        red: Single-band red raster on the same grid.

    Returns:
        Raster: Single band named 'ndvi'.

    Raises:
        GeometryMismatchError: If the bands do not share a grid.
        RasterValidationError: If either input has more than one band.
    """
    _require_single_band(nir, "NIR")
    _require_single_band(red, "Red")
    ensure_same_grid(nir, red)

    ndvi = algebra.divide(algebra.subtract(nir, red), algebra.add(nir, red))

    values = ndvi.data[ndvi.valid_mask()]
    if values.size == 0:
        log.warning("NDVI has no valid cell.")
    else:
        out_of_range = int(np.count_nonzero((values < -1.0) | (values > 1.0)))
        if out_of_range:
            log.warning(
                f"{out_of_range} NDVI cells fall outside [-1, 1] "
                f"(min {values.min():.3f}, max {values.max():.3f}); check the input bands."
            )
        log.info(f"NDVI computed on {values.size} cells (mean {values.mean():.3f})")

    return ndvi.derive(data=ndvi.data, band_names={"ndvi": 1}, valid=ndvi.valid_mask())

def classify(
    ndvi: Raster,
    threshold: float = DEFAULT_THRESHOLD,
    marker: float = 1,
    name: Optional[str] = None
) -> Raster:
    """
    Mark cells whose value is at least the threshold.

    Args:
        ndvi: Index raster.
        threshold: Cells >= threshold are marked.
        marker: Value written into marked cells.
        name: Optional band name of the output.

    Returns:
        Raster: marker where the cell holds data and reaches the threshold,
        nodata everywhere else.
    """
    if marker == NODATA_VAL:
        raise RasterValidationError(f"Marker cannot equal the nodata value {NODATA_VAL}")

    present = ndvi.valid_mask() & (ndvi.data >= threshold)
    data = np.where(present, float(marker), NODATA_VAL)

    log.info(f"Classified {int(present.sum())}/{present.size} cells at threshold {threshold}")

    return ndvi.derive(
        data=data,
        nodata=NODATA_VAL,
        band_names={name: 1} if name and ndvi.count == 1 else {},
        valid=present
    )
