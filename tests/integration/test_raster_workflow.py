# tests/integration/test_raster_workflow.py

import numpy as np
import geopandas as gpd
from shapely.geometry import box

from ndvilab.raster import io, geom, aggregate, rasterize, mask, combine
from ndvilab.vector import Vector
from helpers import assert_raster_integrity, assert_grid_match

def test_raster_workflow(tmp_path, mock_raster_factory):
    """
    Integration test chaining I/O, band handling, warping and the
    aggregation/masking operations on a file written to disk.
    """
    ramp = np.linspace(0.1, 0.3, 64).reshape(8, 8)
    data = np.stack([ramp, ramp + 0.1, ramp + 0.2]).astype('float32')
    path = mock_raster_factory("scene.tif", data=data, nodata=-9999.0, descriptions=["green", "red", "nir"])

    original = io.load(path)
    assert original.count == 3
    assert original.crs.to_epsg() == 32619

    # Save & reload
    copy_path = io.save(original, tmp_path / "copy.tif")
    reloaded = io.load(copy_path)
    assert_grid_match(original, reloaded)
    assert_raster_integrity(reloaded, original, tolerance=1e-6)

    # Split & stack
    bands = geom.split_bands(reloaded)
    stacked = geom.stack_bands(bands)
    assert np.array_equal(stacked.data, reloaded.data)

    # Points round trip through a table
    df = geom.to_dataframe(stacked, band=3)
    nir = geom.from_dataframe(df, crs=stacked.crs, value="nir")
    assert_grid_match(nir, stacked)

    # Warp away and back onto the original grid
    warped = geom.warp(nir, "EPSG:3857")
    assert warped.crs.to_string() == "EPSG:3857"
    back = geom.reproject(warped, nir.grid, resampling="bilinear")
    assert_grid_match(back, nir)
    assert_raster_integrity(back, nir, tolerance=0.05)

    # Aggregate, then mask to a strip covering the top row of blocks
    coarse = aggregate(stacked, 2, "mean")
    assert coarse.shape == (3, 4, 4)
    strip = Vector(gpd.GeoDataFrame({'name': ['land']}, geometry=[box(0, 6, 8, 8)], crs=stacked.crs))
    land = rasterize(strip, coarse)
    masked = mask(coarse, land)
    assert masked.valid_mask()[:, :1].all()
    assert not masked.valid_mask()[:, 1:].any()

    # Band mean without skipping keeps the land footprint
    mean = combine(geom.split_bands(masked))
    assert np.array_equal(mean.valid_mask()[0], masked.valid_mask()[0])
