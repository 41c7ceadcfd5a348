# src/ndvilab/pipeline.py

"""
This module chains the raster operations into the forest mapping workflow.

    multi-band scene -> nir / red bands -> aggregate -> mask to region
    -> align band coverage -> NDVI -> threshold -> forest raster
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from ndvilab.raster import (
    Raster,
    ByIndex,
    BandSelector,
    Reducer,
    SENSOR_BANDS,
    DEFAULT_THRESHOLD,
    as_selector,
    load,
    save,
    select_band,
    aggregate,
    rasterize,
    mask,
    combine,
    compute_ndvi,
    classify,
    band_stats,
    cover_area
)
from ndvilab.exceptions import RasterValidationError
from ndvilab.vector import Vector

log = logging.getLogger(__name__)

__all__ = [
    "PipelineConfig",
    "PipelineResult",
    "run_pipeline"
]

class PipelineConfig:
    """Configuration object for the forest mapping workflow.

    Args:
        nir: Near-infrared band (ByIndex, ByName, int or name). Default: Landsat 8 band 5.
        red: Red band. Default: Landsat 8 band 4.
        factor: Aggregation block size in cells. Default=1 (no aggregation).
        reducer: Aggregation reducer ('mean', 'min', 'max', 'sum'). Default='mean'.
        threshold: NDVI value from which a cell counts as forest. Default=0.3.
        region_path: Optional polygon file; cells outside it are dropped.
        all_touched: Rasterize the region onto every cell it touches.
        align_coverage: Drop cells where either band is missing from both bands.
        marker: Value of forest cells in the output. Default=1.
        output_path: Optional path to save the forest raster.
        ndvi_output_path: Optional path to save the NDVI raster.
    """
    def __init__(
        self,
        nir: Union[BandSelector, int, str] = ByIndex(5),
        red: Union[BandSelector, int, str] = ByIndex(4),
        factor: int = 1,
        reducer: Union[Reducer, str] = Reducer.MEAN,
        threshold: float = DEFAULT_THRESHOLD,
        region_path: Optional[Union[str, Path]] = None,
        all_touched: bool = False,
        align_coverage: bool = True,
        marker: float = 1,
        output_path: Optional[Union[str, Path]] = None,
        ndvi_output_path: Optional[Union[str, Path]] = None
    ):
        if isinstance(factor, bool) or not isinstance(factor, int) or factor < 1:
            raise RasterValidationError(f"factor must be a positive integer, got {factor!r}")

        self.nir = as_selector(nir)
        self.red = as_selector(red)
        self.factor = factor
        self.reducer = Reducer.parse(reducer)
        self.threshold = float(threshold)
        self.region_path = Path(region_path) if region_path else None
        self.all_touched = all_touched
        self.align_coverage = align_coverage
        self.marker = marker
        self.output_path = Path(output_path) if output_path else None
        self.ndvi_output_path = Path(ndvi_output_path) if ndvi_output_path else None

    @classmethod
    def for_sensor(cls, sensor: str, **kwargs) -> "PipelineConfig":
        """Build a configuration using the red/NIR band numbers of a Landsat sensor."""
        key = sensor.lower().replace("-", "").replace("_", "")
        if key not in SENSOR_BANDS:
            raise ValueError(f"Unknown sensor '{sensor}'. Must be one of: {sorted(SENSOR_BANDS)}")
        bands = SENSOR_BANDS[key]
        kwargs.setdefault("nir", bands["nir"])
        kwargs.setdefault("red", bands["red"])
        return cls(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<PipelineConfig nir={self.nir} red={self.red} factor={self.factor} "
            f"reducer={self.reducer.value} threshold={self.threshold} region={self.region_path}>"
        )

@dataclass
class PipelineResult:
    """Every intermediate raster of a run, plus a summary of the outputs."""
    nir: Raster
    red: Raster
    coverage: Optional[Raster]
    ndvi: Raster
    forest: Raster
    summary: Dict[str, Any] = field(default_factory=dict)

def _step(step: str, func: Callable, /, *args, **kwargs):
    """Run one workflow step, logging which step failed before re-raising."""
    try:
        return func(*args, **kwargs)
    except Exception as e:
        log.error(f"Pipeline error in step '{step}': {e}")
        raise

def run_pipeline(
    source: Union[str, Path, Raster],
    config: Optional[PipelineConfig] = None,
    region: Optional[Union[str, Path, Vector]] = None
) -> PipelineResult:
    """
    Derive NDVI and a forest/non-forest raster from a multi-band scene.

    Args:
        source: Path to a multi-band raster or an in-memory Raster.
        config: Workflow settings; defaults to PipelineConfig().
        region: Polygon region overriding config.region_path.

    Returns:
        PipelineResult: Aggregated and masked bands, coverage, NDVI and forest rasters.
    """
    config = config or PipelineConfig()
    log.info(f"Running forest pipeline with {config}")

    scene = source if isinstance(source, Raster) else _step("load", load, source)

    nir = _step("select nir", select_band, scene, config.nir)
    red = _step("select red", select_band, scene, config.red)

    nir = _step("aggregate nir", aggregate, nir, config.factor, config.reducer)
    red = _step("aggregate red", aggregate, red, config.factor, config.reducer)

    region = region if region is not None else config.region_path
    if region is not None:
        land = _step("rasterize region", rasterize, region, nir.grid, all_touched=config.all_touched)
        nir = _step("mask nir", mask, nir, land)
        red = _step("mask red", mask, red, land)

    coverage = None
    if config.align_coverage:
        # Missing cells must poison the mean so both bands end up with the same footprint
        coverage = _step("combine coverage", combine, [nir, red], Reducer.MEAN, skip_nodata=False)
        nir = _step("mask nir", mask, nir, coverage)
        red = _step("mask red", mask, red, coverage)

    ndvi = _step("ndvi", compute_ndvi, nir, red)
    forest = _step("classify", classify, ndvi, config.threshold, config.marker, name="forest")

    summary = {
        "ndvi": band_stats(ndvi),
        "forest": cover_area(forest),
        "threshold": config.threshold
    }
    log.info(
        f"Forest covers {summary['forest']['cells']} cells "
        f"({summary['forest']['fraction']:.1%} of the grid)"
    )

    if config.ndvi_output_path:
        _step("save ndvi", save, ndvi, config.ndvi_output_path)
    if config.output_path:
        _step("save forest", save, forest, config.output_path)

    return PipelineResult(
        nir=nir,
        red=red,
        coverage=coverage,
        ndvi=ndvi,
        forest=forest,
        summary=summary
    )
