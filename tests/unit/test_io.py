# tests/unit/test_io.py

import logging

import pytest
import numpy as np

from ndvilab.exceptions import DecodeError, BandNotFoundError
from ndvilab.raster import io, ByName, ByIndex
from helpers import assert_grid_match

def test_load_all_bands(mock_raster_factory):
    path = mock_raster_factory("multi.tif", count=3, descriptions=["red", "green", "nir"])
    r = io.load(path)

    assert r.count == 3
    assert r.crs.to_epsg() == 32619
    assert r.band_names == {"red": 1, "green": 2, "nir": 3}
    assert r.get_band(ByName("nir")).max() == 30

def test_load_band_subset(mock_raster_factory):
    path = mock_raster_factory("multi.tif", count=3, descriptions=["red", "green", "nir"])
    r = io.load(path, bands=[3])

    assert r.count == 1
    assert r.band_names == {"nir": 1}

def test_load_bands_by_name_keeps_order(mock_raster_factory):
    path = mock_raster_factory("multi.tif", count=3, descriptions=["red", "green", "nir"])
    r = io.load(path, bands=["nir", ByName("red")])

    assert r.count == 2
    assert r.band_names == {"nir": 1, "red": 2}
    assert r.get_band(ByIndex(1)).max() == 30

    single = io.load(path, bands="green")
    assert single.band_names == {"green": 1}

def test_load_missing_band(mock_raster_factory):
    path = mock_raster_factory("single.tif", count=1)
    with pytest.raises(BandNotFoundError):
        io.load(path, bands=[4])

def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        io.load(tmp_path / "ghost.tif")

def test_load_corrupt_file(tmp_path):
    bogus = tmp_path / "bogus.tif"
    bogus.write_text("this is not a raster")
    with pytest.raises(DecodeError):
        io.load(bogus)

def test_save_roundtrip_keeps_metadata(tmp_path, make_raster):
    data = np.stack([np.full((3, 3), 0.5), np.full((3, 3), 0.25)])
    data[0, 1, 1] = -9999.0
    original = make_raster(data, band_names={"nir": 1, "red": 2})

    path = io.save(original, tmp_path / "out" / "saved.tif")
    reloaded = io.load(path)

    assert_grid_match(original, reloaded)
    assert reloaded.nodata == -9999.0
    assert reloaded.band_names == {"nir": 1, "red": 2}
    assert not reloaded.valid_mask()[0, 1, 1]

def test_save_warns_when_value_equals_sentinel(tmp_path, make_raster, caplog):
    base = make_raster([[1.0, 2.0]])
    derived = base.derive(data=np.array([[[-9999.0, 2.0]]]), valid=[[True, True]])

    with caplog.at_level(logging.WARNING):
        path = io.save(derived, tmp_path / "clash.tif")

    assert "read back as missing" in caplog.text
    assert not io.load(path).valid_mask()[0, 0, 0]

def test_read_info(mock_raster_factory):
    path = mock_raster_factory("info.tif", count=2, width=6, height=4, descriptions=["red", None])
    info = io.read_info(path)

    assert (info['width'], info['height'], info['count']) == (6, 4, 2)
    assert info['band_names'] == {"red": 1, "Band_2": 2}
    assert info['resolution'] == (1.0, 1.0)
