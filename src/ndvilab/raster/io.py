# src/ndvilab/raster/io.py

"""
This module handles all disk-based operations for raster data.
"""

import logging
from pathlib import Path
from typing import Union, Optional, Dict, Any

import numpy as np
import rasterio
from rasterio.errors import RasterioError

from ndvilab.exceptions import DecodeError, RasterIOError
from .layer import Raster
from .resources import estimate_memory
from .utils import BandsArg, resolve_envi_path, select_band_indices, subset_band_names, dataset_band_names

log = logging.getLogger(__name__)

__all__ = [
    "load",
    "save",
    "read_info"
]

def load(
    path: Union[str, Path],
    bands: BandsArg = None,
    driver: Optional[str] = None,
    check_memory: bool = True
) -> Raster:
    """
    Load a raster from disk into memory.

    Args:
        path: Path to raster file. All formats readable by GDAL are accepted.
        bands: Band(s) to load: None for all, or one or a list of
               ByIndex / ByName selectors, 1-based numbers or band names.
        driver: Optional GDAL driver name.
        check_memory: If True, refuse to load when the bands would not fit in RAM.

    Returns:
        Raster: In-memory Raster object

    Raises:
        FileNotFoundError: If the file does not exist.
        DecodeError: If the file is not a readable raster.
        BandNotFoundError: If a requested band does not exist.
        MemoryError: If check_memory is True and the raster is too large.
    """
    path = resolve_envi_path(Path(path))

    if not path.exists():
        raise FileNotFoundError(f"Raster file not found: {path}")

    log.debug(f"Loading raster: {path.name}")

    try:
        with rasterio.open(path, driver=driver) as src:
            indices = select_band_indices(src, bands)

            if check_memory:
                estimate = estimate_memory(src, indices)
                if not estimate.is_safe:
                    log.error(f"Refusing to load {path.name}: {estimate.reason}")
                    raise MemoryError(f"Raster {path.name} does not fit in memory. {estimate.reason}")
                log.debug(f"Memory check passed for {path.name}: {estimate.reason}")

            data = src.read(indices)

            return Raster(
                data=data,
                transform=src.transform,
                crs=src.crs,
                nodata=src.nodata,
                band_names=subset_band_names(src, indices)
            )

    except RasterioError as e:
        raise DecodeError(f"Failed to decode raster {path}: {e}") from e

def save(
    raster: Raster,
    path: Union[str, Path],
    **profile_kwargs
) -> Path:
    """
    Write a Raster object to disk.

    Args:
        raster: Raster object to save
        path: Output file path.
        **profile_kwargs: Override default rasterio profile settings (e.g. driver='ENVI').

    Missing cells are written as the nodata value, since files only mark
    missing cells through it. A valid cell that equals that value cannot be
    told apart once on disk; this is logged as a warning.

    Returns:
        Path: The written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    profile = raster.profile.copy()
    profile.update(profile_kwargs)

    data = raster.data
    nodata = profile.get('nodata')
    if nodata is not None:
        valid = raster.valid_mask()
        clashes = int(np.count_nonzero(valid & (data == nodata)))
        if clashes:
            log.warning(
                f"{clashes} valid cells equal the nodata value {nodata} and will read back as missing"
            )
        data = np.where(valid, data, nodata).astype(data.dtype)

    log.info(f"Saving raster {raster.shape} → {path}")

    try:
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(data)

            for name, idx in raster.band_names.items():
                if 1 <= idx <= raster.count:
                    dst.set_band_description(idx, name)

    except RasterioError as e:
        raise RasterIOError(f"Failed to save raster to {path}: {e}") from e

    return path

def read_info(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Inspect a raster file's grid and band metadata without reading pixels.
    """
    path = resolve_envi_path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    try:
        with rasterio.open(path) as src:
            band_names = dataset_band_names(src)
            for i in src.indexes:
                if i not in band_names.values():
                    band_names[f"Band_{i}"] = i

            return {
                'crs': src.crs,
                'transform': src.transform,
                'bounds': src.bounds,
                'resolution': src.res,
                'width': src.width,
                'height': src.height,
                'count': src.count,
                'dtypes': list(src.dtypes),
                'driver': src.driver,
                'nodata': src.nodata,
                'band_names': band_names
            }
    except RasterioError as e:
        raise DecodeError(f"Failed to read metadata from {path}: {e}") from e
