# src/ndvilab/vector/geom.py

"""
This module provides the geometric clean-up and CRS handling applied to
regions before they are burned onto a raster grid.
"""

import logging

from ndvilab.vector.layer import Vector
from ndvilab.vector.io import resolve_vector

log = logging.getLogger(__name__)

__all__ = [
    "to_crs",
    "validate"
]

@resolve_vector
def to_crs(vector: Vector, target_crs) -> Vector:
    """
    Express a region in another CRS.

    Returns the input unchanged when it is already in target_crs.

    Raises:
        ValueError: If the region has no CRS to reproject from.
    """
    if vector.crs is None:
        raise ValueError("Region has no CRS; cannot reproject it.")

    if vector.crs == target_crs:
        return vector

    log.info(f"Reprojecting {len(vector)} features from {vector.crs} to {target_crs}")
    return Vector(vector.data.to_crs(target_crs))

@resolve_vector
def validate(vector: Vector, fix_invalid: bool = True, drop_invalid: bool = True) -> Vector:
    """
    Repair or drop invalid geometries (self-intersections and the like).

    Invalid geometries are first repaired with a zero-width buffer when
    fix_invalid is set; whatever is still invalid is dropped when
    drop_invalid is set.
    """
    gdf = vector.data
    invalid = ~gdf.is_valid

    if not invalid.any():
        return vector

    log.warning(f"{int(invalid.sum())} of {len(gdf)} region geometries are invalid")
    gdf = gdf.copy()

    if fix_invalid:
        gdf.loc[invalid, 'geometry'] = gdf.loc[invalid, 'geometry'].buffer(0)

    if drop_invalid:
        still_invalid = ~gdf.is_valid
        if still_invalid.any():
            log.warning(f"Dropping {int(still_invalid.sum())} geometries that could not be repaired")
        gdf = gdf[~still_invalid]

    return Vector(gdf)
