# tests/integration/test_pipeline.py

import json

import pytest
import numpy as np

from ndvilab import PipelineConfig, run_pipeline
from ndvilab.cli import main
from ndvilab.exceptions import BandNotFoundError, RasterValidationError
from ndvilab.raster import io, ByName, ByIndex, Reducer
from helpers import assert_grid_match, cells

def test_full_forest_pipeline(landsat_scene):
    """
    Landsat 8 scene, no aggregation, no region:
    the left half is forest except the cell missing from the red band.
    """
    result = run_pipeline(landsat_scene, PipelineConfig.for_sensor("landsat8"))

    # Coverage alignment drops the cell from NIR as well
    assert not result.coverage.valid_mask()[0, 0, 0]
    assert not result.nir.valid_mask()[0, 0, 0]
    assert result.nir.valid_mask().sum() == 15

    ndvi = cells(result.ndvi)
    assert ndvi[0][0] is None
    assert ndvi[1][0] == pytest.approx(0.4 / 0.6, rel=1e-5)
    assert ndvi[1][3] == pytest.approx(0.0, abs=1e-6)

    assert cells(result.forest) == [
        [None, 1.0, None, None],
        [1.0, 1.0, None, None],
        [1.0, 1.0, None, None],
        [1.0, 1.0, None, None],
    ]
    assert result.summary['forest']['cells'] == 7
    assert result.summary['threshold'] == 0.3

def test_pipeline_with_aggregation_and_region(landsat_scene, land_region_path):
    config = PipelineConfig(
        nir=ByName("nir"),
        red=ByName("red"),
        factor=2,
        reducer=Reducer.MEAN,
        region_path=land_region_path
    )
    result = run_pipeline(landsat_scene, config)

    assert result.ndvi.shape == (1, 2, 2)
    assert result.ndvi.resolution == (2.0, 2.0)
    # Only the top row of blocks is land; the left block is vegetated
    assert cells(result.forest) == [[1.0, None], [None, None]]
    assert result.summary['forest']['area'] == 4.0

def test_pipeline_without_alignment(landsat_scene):
    config = PipelineConfig.for_sensor("landsat8", align_coverage=False)
    result = run_pipeline(landsat_scene, config)

    assert result.coverage is None
    assert result.nir.valid_mask()[0, 0, 0]
    # NDVI still poisons the missing red cell
    assert not result.ndvi.valid_mask()[0, 0, 0]

def test_pipeline_from_memory_saves_outputs(tmp_path, landsat_scene):
    scene = io.load(landsat_scene)
    config = PipelineConfig.for_sensor(
        "landsat8",
        output_path=tmp_path / "forest.tif",
        ndvi_output_path=tmp_path / "ndvi.tif"
    )
    result = run_pipeline(scene, config)

    saved = io.load(tmp_path / "forest.tif")
    assert_grid_match(saved, result.forest)
    assert saved.band_names == {"forest": 1}
    assert np.array_equal(saved.valid_mask(), result.forest.valid_mask())
    assert (tmp_path / "ndvi.tif").exists()

def test_pipeline_on_in_memory_bands(make_raster):
    """
    Two-band scene (nir, red): a vegetated cell, a bare cell and a 0/0 cell.
    """
    scene = make_raster(
        [[[0.5, 0.1, 0.0]], [[0.1, 0.5, 0.0]]],
        band_names={"nir": 1, "red": 2}
    )
    config = PipelineConfig(nir="nir", red="red")
    result = run_pipeline(scene, config)

    assert cells(result.ndvi)[0][:2] == pytest.approx([0.667, -0.667], abs=1e-3)
    assert cells(result.ndvi)[0][2] is None
    assert cells(result.forest) == [[1.0, None, None]]
    assert result.summary["ndvi"]["count"] == 2
    assert result.summary["forest"]["cells"] == 1

def test_pipeline_with_digital_numbers(make_raster):
    scene = make_raster([[[7001, 8000]], [[17000, 9000]]], nodata=0)
    result = run_pipeline(scene, PipelineConfig(nir=1, red=2, threshold=-0.5))

    assert cells(result.ndvi)[0] == pytest.approx([-9999 / 24001, -1000 / 17000])
    assert cells(result.forest) == [[1.0, 1.0]]

def test_pipeline_bad_band(landsat_scene):
    with pytest.raises(BandNotFoundError):
        run_pipeline(landsat_scene, PipelineConfig(nir=ByIndex(9)))

def test_config_validation():
    with pytest.raises(RasterValidationError):
        PipelineConfig(factor=0)
    with pytest.raises(ValueError):
        PipelineConfig.for_sensor("sentinel2")

    config = PipelineConfig(nir="nir", red="3", reducer="max")
    assert config.nir == ByName("nir")
    assert config.red == ByIndex(3)
    assert config.reducer == Reducer.MAX

# --- CLI ---

def test_cli_writes_forest_raster(tmp_path, landsat_scene, capsys):
    out = tmp_path / "forest.tif"
    code = main([str(landsat_scene), "--nir", "nir", "--red", "red", "-o", str(out)])

    assert code == 0
    assert out.exists()
    summary = json.loads(capsys.readouterr().out)
    assert summary['forest']['cells'] == 7

def test_cli_reports_failure(tmp_path):
    assert main([str(tmp_path / "missing.tif")]) == 1
