# src/ndvilab/vector/io.py

"""
This module reads and writes region files (GeoPackage, GeoJSON, Shapefile...)
through GeoPandas and pyogrio.
"""

from pathlib import Path
from typing import Union, Callable, Optional
from functools import wraps
import logging

import geopandas as gpd
from pyogrio.errors import DataSourceError

from ndvilab.exceptions import DecodeError
from ndvilab.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "load_vector",
    "save_vector",
    "resolve_vector"
]

DRIVERS = {
    ".gpkg": "GPKG",
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".shp": "ESRI Shapefile"
}

def load_vector(
    path: Union[str, Path],
    layer: Optional[str] = None,
    engine: str = "pyogrio",
    **kwargs
) -> Vector:
    """
    Read a region file.

    Raises:
        FileNotFoundError: If the file does not exist.
        DecodeError: If the file cannot be read as vector data.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")

    try:
        gdf = gpd.read_file(path, layer=layer, engine=engine, **kwargs)
    except DataSourceError as e:
        raise DecodeError(f"Failed to read vector file {path}: {e}") from e

    if gdf.crs is None:
        log.warning(f"{path.name} has no CRS; its coordinates are taken as-is.")
    log.debug(f"Loaded {len(gdf)} features from {path.name} (crs={gdf.crs})")
    return Vector(gdf)

def save_vector(
    vector: Vector,
    path: Union[str, Path],
    driver: Optional[str] = None,
    engine: str = "pyogrio",
    **kwargs
) -> Path:
    """Write a region to disk; the driver follows the file suffix unless given."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    driver = driver or DRIVERS.get(path.suffix.lower())
    vector.data.to_file(path, driver=driver, engine=engine, **kwargs)
    log.info(f"Saved {len(vector)} features to {path}")
    return path

def resolve_vector(func: Callable):
    """
    Decorator: the first argument may be a path, a GeoDataFrame or a Vector.
    None is passed through untouched.
    """
    @wraps(func)
    def wrapper(region, *args, **kwargs):
        if region is None or isinstance(region, Vector):
            return func(region, *args, **kwargs)

        if isinstance(region, (str, Path)):
            region = load_vector(region)
        elif isinstance(region, gpd.GeoDataFrame):
            region = Vector(region)
        else:
            raise TypeError(f"Expected file path, GeoDataFrame or Vector, got {type(region)}")

        return func(region, *args, **kwargs)
    return wrapper
