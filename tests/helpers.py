# tests/helpers.py

import numpy as np
from ndvilab.raster import Raster

def assert_raster_integrity(current: Raster, reference: Raster, tolerance: float = 0.01):
    """Check that the mean of valid cells hasn't drifted significantly."""
    curr_mean = current.data[current.valid_mask()].mean()
    ref_mean = reference.data[reference.valid_mask()].mean()
    diff = abs(curr_mean - ref_mean)
    assert diff < tolerance, f"Mean drift too high: {diff:.6f} (Tol: {tolerance})"

def assert_grid_match(r1: Raster, r2: Raster):
    """Strictly verify two rasters share the exact same grid."""
    assert r1.crs == r2.crs, \
        f"CRS mismatch: {r1.crs} != {r2.crs}"

    assert (r1.height, r1.width) == (r2.height, r2.width), \
        f"Shape mismatch: {r1.shape} != {r2.shape}"

    assert np.allclose(np.array(r1.transform), np.array(r2.transform), atol=1e-9), \
        "Transform mismatch (Pixel alignment error)"

def cells(raster: Raster, band: int = 1):
    """Band values as nested lists with missing cells as None."""
    values = raster.data[band - 1]
    valid = raster.valid_mask()[band - 1]
    return [
        [float(v) if ok else None for v, ok in zip(row, row_ok)]
        for row, row_ok in zip(values, valid)
    ]
