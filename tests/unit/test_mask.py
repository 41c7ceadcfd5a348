# tests/unit/test_mask.py

import pytest
import numpy as np
import geopandas as gpd
from shapely.geometry import box

from ndvilab.exceptions import GeometryMismatchError, RasterValidationError
from ndvilab.raster import mask, rasterize, NODATA_VAL
from ndvilab.vector import Vector
from helpers import cells

N = NODATA_VAL

@pytest.fixture
def target(make_raster):
    return make_raster([[1.0, 2.0], [3.0, N]])

@pytest.fixture
def region_mask(make_raster):
    # Values are arbitrary; only presence matters
    return make_raster([[42.0, N], [-7.0, 0.0]])

# --- mask ---

def test_mask_keeps_cells_where_mask_has_data(target, region_mask):
    out = mask(target, region_mask)
    assert cells(out) == [[1.0, None], [3.0, None]]

def test_mask_is_idempotent(target, region_mask):
    once = mask(target, region_mask)
    assert mask(once, region_mask) == once

def test_mask_is_idempotent_with_nan_nodata(make_raster):
    a = make_raster([[1.0, np.nan], [3.0, 4.0]], nodata=np.nan)
    b = make_raster([[1.0, 1.0], [np.nan, 1.0]], nodata=np.nan)

    once = mask(a, b)
    assert once == once
    assert mask(once, b) == once
    assert cells(once) == [[1.0, None], [None, 4.0]]

def test_mask_property_over_random_rasters(make_raster):
    rng = np.random.default_rng(7)
    a = rng.random((6, 6))
    b = np.where(rng.random((6, 6)) > 0.5, rng.random((6, 6)), N)
    A, B = make_raster(a), make_raster(b)

    out = mask(A, B)
    present = B.valid_mask()
    assert not out.valid_mask()[~present].any()
    assert np.array_equal(out.data[present], A.data[present])

def test_single_band_mask_gates_every_band(make_raster, region_mask):
    stack = make_raster(np.stack([np.ones((2, 2)), np.full((2, 2), 2.0)]))
    out = mask(stack, region_mask)
    assert cells(out, 1) == [[1.0, None], [1.0, 1.0]]
    assert cells(out, 2) == [[2.0, None], [2.0, 2.0]]

def test_mask_band_count_mismatch(make_raster):
    stack = make_raster(np.ones((3, 2, 2)))
    two = make_raster(np.ones((2, 2, 2)))
    with pytest.raises(RasterValidationError):
        mask(stack, two)

def test_mask_rejects_other_grid(target, make_raster):
    elsewhere = make_raster([[1.0, 1.0], [1.0, 1.0]], origin=(100.0, 2.0))
    with pytest.raises(GeometryMismatchError):
        mask(target, elsewhere)

def test_mask_rejects_other_crs(target, make_raster):
    other = make_raster([[1.0, 1.0], [1.0, 1.0]], crs="EPSG:4326")
    with pytest.raises(GeometryMismatchError):
        mask(target, other)

# --- rasterize ---

def test_rasterize_geometries(make_raster):
    grid = make_raster(np.zeros((4, 4))).grid
    burned = rasterize([box(0, 2, 4, 4)], grid, marker=1)

    assert burned.count == 1
    assert cells(burned)[:2] == [[1.0] * 4] * 2
    assert cells(burned)[2:] == [[None] * 4] * 2

def test_rasterize_vector_from_other_crs(make_raster):
    grid = make_raster(np.zeros((4, 4)), res=30.0, origin=(500000.0, 5000120.0)).grid
    utm = Vector(gpd.GeoDataFrame(geometry=[box(500000, 5000060, 500120, 5000120)], crs="EPSG:32619"))
    lonlat = Vector(utm.data.to_crs("EPSG:4326"))

    burned = rasterize(lonlat, grid)
    assert burned.valid_mask()[0, :2].all()
    assert not burned.valid_mask()[0, 2:].any()

def test_rasterize_from_file(make_raster, land_region_path):
    grid = make_raster(np.zeros((4, 4))).grid
    burned = rasterize(land_region_path, grid)
    assert int(burned.valid_mask().sum()) == 8

def test_rasterize_geodataframe(make_raster, land_region):
    grid = make_raster(np.zeros((4, 4))).grid
    burned = rasterize(land_region, grid, marker=7)
    assert cells(burned)[0] == [7.0] * 4
    assert cells(burned)[2] == [None] * 4

def test_rasterize_empty_region(make_raster):
    grid = make_raster(np.zeros((2, 2))).grid
    burned = rasterize([], grid)
    assert not burned.valid_mask().any()

def test_rasterize_all_touched(make_raster):
    grid = make_raster(np.zeros((4, 4))).grid
    sliver = [box(0.9, 3.9, 1.1, 4.0)]
    assert not rasterize(sliver, grid).valid_mask().any()
    assert int(rasterize(sliver, grid, all_touched=True).valid_mask().sum()) == 2

def test_rasterize_then_mask(make_raster, land_region):
    data = make_raster(np.arange(16, dtype=float).reshape(4, 4))
    land = rasterize(Vector(land_region), data)
    out = mask(data, land)
    assert cells(out)[1] == [4.0, 5.0, 6.0, 7.0]
    assert cells(out)[3] == [None] * 4
