# src/ndvilab/raster/aggregate.py

"""
This module reduces raster resolution by combining blocks of cells.
"""

import logging
import math
from enum import Enum
from typing import Union

import numpy as np
from rasterio.transform import Affine

from ndvilab.exceptions import RasterValidationError
from .layer import Raster, resolve_raster, NODATA_VAL

log = logging.getLogger(__name__)

__all__ = [
    "Reducer",
    "aggregate"
]

class Reducer(Enum):
    """Functions that collapse a block of cells into one value.

    Options:
        MEAN: Average of the valid cells.
        MIN: Smallest valid cell.
        MAX: Largest valid cell.
        SUM: Sum of the valid cells.
    """
    MEAN = "mean"
    MIN = "min"
    MAX = "max"
    SUM = "sum"

    @classmethod
    def parse(cls, value: Union["Reducer", str]) -> "Reducer":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = [r.value for r in cls]
            raise RasterValidationError(f"Invalid reducer '{value}'. Must be one of: {valid}") from None

def _blocks(array: np.ndarray, factor: int, fill) -> np.ndarray:
    """
    Pad (Bands, H, W) to multiples of factor and view it as
    (Bands, H', W', factor * factor) blocks.
    """
    bands, height, width = array.shape
    out_h = math.ceil(height / factor)
    out_w = math.ceil(width / factor)

    padded = np.full((bands, out_h * factor, out_w * factor), fill, dtype=array.dtype)
    padded[:, :height, :width] = array

    blocks = padded.reshape(bands, out_h, factor, out_w, factor).transpose(0, 1, 3, 2, 4)
    return blocks.reshape(bands, out_h, out_w, factor * factor)

@resolve_raster
def aggregate(
    raster: Raster,
    factor: int,
    reducer: Union[Reducer, str] = Reducer.MEAN
) -> Raster:
    """
    Coarsen a raster by reducing non-overlapping factor x factor blocks.

    Blocks at the right and bottom edges may be partial; they are reduced
    over the cells that exist. Missing cells are ignored, and a block with no
    valid cell becomes nodata.

    Args:
        raster: Input raster (auto-resolved from path or object).
        factor: Block size in cells. 1 returns an equal copy that carries a
                nodata sentinel even when the input had none.
        reducer: Reducer or its name ('mean', 'min', 'max', 'sum').

    Returns:
        Raster: ceil(height / factor) x ceil(width / factor) cells, with the
        cell size multiplied by factor and the same origin.

    Raises:
        RasterValidationError: If factor is not a positive integer or the reducer is unknown.
    """
    if isinstance(factor, bool) or not isinstance(factor, (int, np.integer)) or factor < 1:
        raise RasterValidationError(f"Aggregation factor must be a positive integer, got {factor!r}")
    reducer = Reducer.parse(reducer)

    if factor == 1:
        return raster.derive(data=raster.data.copy(), valid=raster.valid_mask())

    nodata = raster.nodata if raster.nodata is not None else NODATA_VAL
    values = _blocks(raster.data.astype(np.float64), factor, 0.0)
    valid = _blocks(raster.valid_mask(), factor, False)

    count = valid.sum(axis=-1)
    if reducer == Reducer.MIN:
        result = np.where(valid, values, np.inf).min(axis=-1)
    elif reducer == Reducer.MAX:
        result = np.where(valid, values, -np.inf).max(axis=-1)
    else:
        result = np.where(valid, values, 0.0).sum(axis=-1)
        if reducer == Reducer.MEAN:
            result = result / np.maximum(count, 1)

    present = count > 0
    result = np.where(present, result, nodata)

    log.info(
        f"Aggregated {raster.shape} -> {result.shape} "
        f"(factor {factor}, {reducer.value})"
    )

    return raster.derive(
        data=result,
        nodata=nodata,
        transform=raster.transform * Affine.scale(factor, factor),
        valid=present
    )
