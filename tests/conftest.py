# tests/conftest.py

import pytest
import numpy as np
import geopandas as gpd
from shapely.geometry import box
import rasterio
from rasterio.transform import Affine
from rasterio.crs import CRS

from ndvilab.raster import Raster, NODATA_VAL

TEST_CRS = "EPSG:32619"

@pytest.fixture
def make_raster():
    """
    Fixture: factory building in-memory rasters on a north-up grid with
    1-unit cells whose top-left corner sits at (0, height).
    """
    def _make(data, nodata=NODATA_VAL, res=1.0, origin=None, crs=TEST_CRS, band_names=None):
        data = np.asarray(data, dtype=np.float64)
        height = data.shape[-2]
        x0, y0 = origin if origin is not None else (0.0, height * res)
        transform = Affine.translation(x0, y0) * Affine.scale(res, -res)
        return Raster(data=data, transform=transform, crs=crs, nodata=nodata, band_names=band_names)
    return _make

@pytest.fixture
def mock_raster_factory(tmp_path):
    """
    Fixture: writes small GeoTIFFs to a temp dir and returns their paths.
    Band i (1-based) holds the constant value i * 10 unless data is given.
    """
    def _factory(name, count=1, width=10, height=10, crs=TEST_CRS, descriptions=None,
                 data=None, nodata=None, dtype='float32'):
        path = tmp_path / name

        if data is None:
            data = np.stack([np.full((height, width), (i + 1) * 10, dtype=dtype) for i in range(count)])
        data = np.asarray(data, dtype=dtype)
        count, height, width = data.shape
        transform = Affine.translation(0, height) * Affine.scale(1.0, -1.0)

        profile = {
            'driver': 'GTiff',
            'height': data.shape[1],
            'width': data.shape[2],
            'count': count,
            'dtype': dtype,
            'crs': CRS.from_user_input(crs),
            'transform': transform,
            'nodata': nodata
        }
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(data)
            for i, desc in enumerate(descriptions or [], start=1):
                if desc:
                    dst.set_band_description(i, desc)
        return path
    return _factory

@pytest.fixture
def landsat_scene(mock_raster_factory):
    """
    A 5-band 4x4 'Landsat 8' scene written to disk.

    The left half (columns 0-1) is vegetated (NIR 0.5, Red 0.1) and the right
    half bare (NIR 0.2, Red 0.2). Cell (0, 0) is missing in the red band.
    """
    data = np.zeros((5, 4, 4), dtype='float32')
    data[0:3] = 0.05
    data[3, :, :2], data[3, :, 2:] = 0.1, 0.2
    data[4, :, :2], data[4, :, 2:] = 0.5, 0.2
    data[3, 0, 0] = -9999.0
    return mock_raster_factory(
        "scene.tif",
        data=data,
        nodata=-9999.0,
        descriptions=["coastal", "blue", "green", "red", "nir"]
    )

@pytest.fixture
def land_region():
    """Polygon covering the top two rows of a 4x4 unit grid."""
    return gpd.GeoDataFrame({'name': ['land']}, geometry=[box(0, 2, 4, 4)], crs=TEST_CRS)

@pytest.fixture
def land_region_path(tmp_path, land_region):
    path = tmp_path / "land.gpkg"
    land_region.to_file(path, driver="GPKG")
    return path
