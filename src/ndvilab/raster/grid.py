# src/ndvilab/raster/grid.py

"""
This module describes raster grids independently of their pixel data.

A grid is the combination of CRS, affine transform and dimensions. Two rasters
can only be combined cell by cell when their grids match exactly.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine

from ndvilab.exceptions import GeometryMismatchError

log = logging.getLogger(__name__)

__all__ = [
    "GridSpec",
    "ensure_same_grid"
]

# Transform coefficients closer than this are considered identical
TRANSFORM_TOLERANCE = 1e-9

@dataclass(frozen=True)
class GridSpec:
    """
    Geometry of a raster grid.

    Args:
        transform: Affine transform mapping (col, row) to CRS coordinates.
        width: Number of columns.
        height: Number of rows.
        crs: Coordinate Reference System, or None for an unreferenced grid.
    """
    transform: Affine
    width: int
    height: int
    crs: Optional[CRS] = None

    @property
    def resolution(self) -> Tuple[float, float]:
        """Returns (xres, yres) as positive cell sizes in CRS units."""
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (left, bottom, right, top) in CRS units."""
        return rasterio.transform.array_bounds(self.height, self.width, self.transform)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    def mismatch(self, other: "GridSpec") -> Optional[str]:
        """
        Describe the first attribute that differs from another grid.

        Returns:
            A human readable description, or None when the grids match.
        """
        if self.crs != other.crs:
            return f"CRS differs: {self.crs} != {other.crs}"
        if (self.width, self.height) != (other.width, other.height):
            return (
                f"Dimensions differ: {self.width}x{self.height} != "
                f"{other.width}x{other.height}"
            )
        if not np.allclose(
            np.array(self.transform),
            np.array(other.transform),
            rtol=0.0,
            atol=TRANSFORM_TOLERANCE
        ):
            if not np.allclose(self.resolution, other.resolution, rtol=0.0, atol=TRANSFORM_TOLERANCE):
                return f"Resolution differs: {self.resolution} != {other.resolution}"
            return f"Extent differs: {self.bounds} != {other.bounds}"
        return None

    def matches(self, other: "GridSpec") -> bool:
        return self.mismatch(other) is None

def ensure_same_grid(*rasters) -> GridSpec:
    """
    Verify that every raster shares the grid of the first one.

    Args:
        *rasters: Raster objects (anything exposing a ``grid`` property).

    Returns:
        GridSpec: The common grid.

    Raises:
        GeometryMismatchError: If any raster's grid differs from the first.
    """
    if not rasters:
        raise ValueError("At least one raster is required.")

    reference = rasters[0].grid
    for position, raster in enumerate(rasters[1:], start=2):
        reason = reference.mismatch(raster.grid)
        if reason is not None:
            log.debug(f"Grid check failed on operand {position}: {reason}")
            raise GeometryMismatchError(
                f"Raster {position} does not share the grid of raster 1. {reason}"
            )
    return reference
