# src/ndvilab/vector/layer.py

"""
This module defines the container for polygon regions used to mask rasters.
"""

import logging

import geopandas as gpd

log = logging.getLogger(__name__)

__all__ = [
    "Vector"
]

POLYGON_TYPES = ("Polygon", "MultiPolygon")

class Vector:
    """
    A region: a GeoDataFrame of (multi)polygons plus its CRS.

    Only the geometry column matters to the raster operations; the other
    columns are carried along untouched.
    """

    def __init__(self, data: gpd.GeoDataFrame):
        if not isinstance(data, gpd.GeoDataFrame):
            raise TypeError(f"Expected GeoDataFrame, got {type(data)}")
        self._data = data

    @property
    def data(self) -> gpd.GeoDataFrame:
        return self._data

    @property
    def crs(self):
        return self._data.crs

    @property
    def bounds(self):
        """(minx, miny, maxx, maxy) of all features."""
        return self._data.total_bounds

    @property
    def geometries(self) -> list:
        """Non-empty geometries, in row order."""
        return [geom for geom in self._data.geometry if geom is not None and not geom.is_empty]

    @property
    def is_polygonal(self) -> bool:
        """True when every non-empty geometry is a Polygon or MultiPolygon."""
        return all(geom.geom_type in POLYGON_TYPES for geom in self.geometries)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"<Vector regions={len(self._data)} crs={self.crs}>"
