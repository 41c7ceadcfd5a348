# src/ndvilab/raster/mask.py

"""
This module burns vector regions onto raster grids and uses the resulting
presence rasters to null out cells of other rasters.
"""

import logging
from pathlib import Path
from typing import Iterable, Union

import geopandas as gpd
import numpy as np
from rasterio.features import rasterize as rio_rasterize
from shapely.geometry.base import BaseGeometry

from ndvilab.exceptions import RasterValidationError
from ndvilab.vector import Vector, resolve_vector, to_crs, validate
from .grid import GridSpec, ensure_same_grid
from .layer import Raster, NODATA_VAL

log = logging.getLogger(__name__)

__all__ = [
    "rasterize",
    "mask"
]

RegionLike = Union[Vector, gpd.GeoDataFrame, str, Path, Iterable[BaseGeometry]]

@resolve_vector
def _prepare_region(region: Vector, crs) -> Vector:
    if not region.is_polygonal:
        log.warning("Region holds non-polygon geometries; lines and points only mark the cells they touch.")
    region = validate(region, fix_invalid=True, drop_invalid=True)
    if region.crs is not None and crs is not None and region.crs != crs:
        region = to_crs(region, crs)
    return region

def _region_geometries(region: RegionLike, grid: GridSpec) -> list:
    """Return the region's geometries expressed in the grid's CRS."""
    if isinstance(region, (Vector, gpd.GeoDataFrame, str, Path)):
        return _prepare_region(region, grid.crs).geometries

    # Bare geometries carry no CRS and are taken to be in the grid's CRS
    return [geom for geom in region if geom is not None and not geom.is_empty]

def rasterize(
    region: RegionLike,
    grid: Union[GridSpec, Raster],
    marker: float = 1,
    all_touched: bool = False
) -> Raster:
    """
    Burn a polygon region onto a grid.

    Args:
        region: Vector, GeoDataFrame, path to a vector file, or shapely
                geometries in the grid's CRS. Vectors in another CRS are reprojected first.
        grid: GridSpec or Raster defining the output grid.
        marker: Value written into cells inside the region.
        all_touched: If True, every cell touched by the region is marked,
                     not only cells whose centre is inside.

    Returns:
        Raster: Single band; marker inside the region, nodata outside.
    """
    if isinstance(grid, Raster):
        grid = grid.grid
    if marker == NODATA_VAL:
        raise RasterValidationError(f"Marker cannot equal the nodata value {NODATA_VAL}")

    geometries = _region_geometries(region, grid)

    if geometries:
        burned = rio_rasterize(
            ((geom, marker) for geom in geometries),
            out_shape=(grid.height, grid.width),
            transform=grid.transform,
            fill=NODATA_VAL,
            all_touched=all_touched,
            dtype='float64'
        )
    else:
        log.warning("Region has no geometries; the mask covers no cell.")
        burned = np.full((grid.height, grid.width), NODATA_VAL, dtype=np.float64)

    inside = int(np.count_nonzero(burned != NODATA_VAL))
    log.info(f"Rasterized {len(geometries)} geometries: {inside}/{burned.size} cells inside")

    return Raster(
        data=burned,
        transform=grid.transform,
        crs=grid.crs,
        nodata=NODATA_VAL,
        valid=burned != NODATA_VAL
    )

def mask(target: Raster, mask_raster: Raster) -> Raster:
    """
    Keep target cells where the mask holds data; make every other cell nodata.

    Only the presence of data in the mask matters, not its value. A
    single-band mask gates every band of the target; a multi-band mask gates
    the target band by band.

    Raises:
        GeometryMismatchError: If the rasters do not share a grid.
        RasterValidationError: If a multi-band mask has a different band count.
    """
    ensure_same_grid(target, mask_raster)

    if mask_raster.count not in (1, target.count):
        raise RasterValidationError(
            f"Mask has {mask_raster.count} bands; expected 1 or {target.count}"
        )

    present = mask_raster.valid_mask()
    keep = present & target.valid_mask()

    nodata = target.nodata if target.nodata is not None else NODATA_VAL
    dtype = target.dtype
    if not np.can_cast(np.min_scalar_type(nodata), dtype):
        dtype = np.dtype(np.float64)
    result = np.where(keep, target.data, nodata).astype(dtype)

    log.info(f"Masked {target.shape}: {int(keep.sum())} cells kept")

    return target.derive(data=result, nodata=nodata, valid=keep)
