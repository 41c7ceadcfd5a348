# src/ndvilab/raster/algebra.py

"""
This module implements cell-by-cell arithmetic over co-registered rasters.

Missing cells poison every result they take part in: if any operand cell is
nodata, the output cell is nodata. Results that are not finite (division by
zero, log of zero or of a negative number) are nodata as well, so no
operation ever raises because of a cell value.
"""

import logging
import operator
from typing import Callable, Dict, Optional, Sequence, Union

import numexpr as ne
import numpy as np

from ndvilab.exceptions import RasterValidationError
from .aggregate import Reducer
from .grid import ensure_same_grid
from .layer import Raster, NODATA_VAL

log = logging.getLogger(__name__)

__all__ = [
    "scale",
    "power",
    "log_transform",
    "add",
    "subtract",
    "multiply",
    "divide",
    "combine",
    "evaluate"
]

def _values(raster: Raster) -> np.ndarray:
    return raster.data.astype(np.float64)

def _finish(
    template: Raster,
    result: np.ndarray,
    valid: np.ndarray,
    band_names: Optional[Dict[str, int]] = None
) -> Raster:
    """
    Wrap a float result as a Raster on the template's grid.

    Cells where an input was missing, or where the result is not finite,
    are missing. Validity travels as an explicit mask, so a result equal to
    NODATA_VAL (e.g. 7001 - 17000) stays a valid cell; missing cells are
    filled with NODATA_VAL only for storage.
    """
    valid = valid & np.isfinite(result)
    return template.derive(
        data=np.where(valid, result, NODATA_VAL),
        nodata=NODATA_VAL,
        band_names=band_names,
        valid=valid
    )

def _band_count(*rasters: Raster) -> int:
    """Band count of the result; single-band operands broadcast to the others."""
    counts = {r.count for r in rasters}
    counts.discard(1)
    if len(counts) > 1:
        raise RasterValidationError(
            f"Band counts {[r.count for r in rasters]} cannot be combined; "
            "operands must have the same count or a single band."
        )
    return counts.pop() if counts else 1

def _unary(raster: Raster, func: Callable[[np.ndarray], np.ndarray], name: str) -> Raster:
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        result = func(_values(raster))
    log.debug(f"{name} on {raster.shape}")
    return _finish(raster, result, raster.valid_mask())

def scale(raster: Raster, factor: float) -> Raster:
    """Multiply every cell by a scalar."""
    return _unary(raster, lambda values: values * factor, f"scale x{factor}")

def power(raster: Raster, exponent: float) -> Raster:
    """Raise every cell to a scalar power."""
    return _unary(raster, lambda values: np.power(values, exponent), f"power {exponent}")

def log_transform(raster: Raster, base: float = None) -> Raster:
    """
    Logarithm of every cell, natural by default.

    Cells <= 0 have no logarithm and become nodata.
    """
    if base is None:
        return _unary(raster, np.log, "log")
    return _unary(raster, lambda values: np.log(values) / np.log(base), f"log base {base}")

def _binary(
    left: Raster,
    right: Raster,
    op: Callable[[np.ndarray, np.ndarray], np.ndarray],
    name: str
) -> Raster:
    ensure_same_grid(left, right)
    _band_count(left, right)

    a, b = _values(left), _values(right)
    valid = left.valid_mask() & right.valid_mask()

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        result = op(a, b)

    if op is operator.truediv:
        valid &= (b != 0)

    log.debug(f"{name}: {left.shape} with {right.shape}")

    template = left if left.count >= right.count else right
    return _finish(template, result, valid, band_names={})

def add(left: Raster, right: Raster) -> Raster:
    return _binary(left, right, operator.add, "add")

def subtract(left: Raster, right: Raster) -> Raster:
    return _binary(left, right, operator.sub, "subtract")

def multiply(left: Raster, right: Raster) -> Raster:
    return _binary(left, right, operator.mul, "multiply")

def divide(left: Raster, right: Raster) -> Raster:
    """
    Divide cell by cell.

    A zero denominator cell yields nodata, including the 0/0 case.
    """
    return _binary(left, right, operator.truediv, "divide")

def combine(
    rasters: Sequence[Raster],
    reducer: Union[Reducer, str] = Reducer.MEAN,
    skip_nodata: bool = False
) -> Raster:
    """
    Reduce a stack of co-registered rasters to one, cell by cell.

    With skip_nodata=False a single missing cell at a position makes the
    combined cell nodata, whatever the other rasters hold there. This is what
    aligns the coverage of several masked bands. With skip_nodata=True the
    reducer runs over the values present, and a position with none is nodata.

    Args:
        rasters: Co-registered rasters.
        reducer: 'mean', 'sum', 'min' or 'max'.
        skip_nodata: Ignore missing cells instead of propagating them.

    Returns:
        Raster: Band count of the richest input.

    Raises:
        ValueError: If no raster is given.
        GeometryMismatchError: If the rasters do not share a grid.
    """
    if not rasters:
        raise ValueError("Cannot combine an empty sequence of rasters.")

    ensure_same_grid(*rasters)
    bands = _band_count(*rasters)
    reducer = Reducer.parse(reducer)

    target_shape = (bands, rasters[0].height, rasters[0].width)
    values = np.stack([np.broadcast_to(_values(r), target_shape) for r in rasters])
    valid = np.stack([np.broadcast_to(r.valid_mask(), target_shape) for r in rasters])

    if skip_nodata:
        present = valid.sum(axis=0)
        cell_ok = present > 0
    else:
        present = np.full(target_shape, len(rasters))
        cell_ok = valid.all(axis=0)

    if reducer == Reducer.MIN:
        result = np.where(valid, values, np.inf).min(axis=0)
    elif reducer == Reducer.MAX:
        result = np.where(valid, values, -np.inf).max(axis=0)
    else:
        result = np.where(valid, values, 0.0).sum(axis=0)
        if reducer == Reducer.MEAN:
            result = result / np.maximum(present, 1)

    log.info(
        f"Combined {len(rasters)} rasters ({reducer.value}, skip_nodata={skip_nodata}): "
        f"{int(cell_ok.sum())}/{cell_ok.size} cells valid"
    )

    template = max(rasters, key=lambda r: r.count)
    return _finish(template, result, cell_ok)

def evaluate(expression: str, **rasters: Raster) -> Raster:
    """
    Evaluate a numexpr formula over named single-band rasters.

    Args:
        expression: Formula using the keyword names, e.g. "(nir - red) / (nir + red)".
        **rasters: Single-band rasters sharing one grid.

    Returns:
        Raster: Single-band result. Cells where any input is missing, or where
        the formula is not finite, are nodata.
    """
    if not rasters:
        raise ValueError("evaluate() needs at least one named raster.")

    ensure_same_grid(*rasters.values())
    for name, raster in rasters.items():
        if raster.count != 1:
            raise RasterValidationError(f"Raster '{name}' has {raster.count} bands; expected 1")

    valid = np.ones((1, *next(iter(rasters.values())).data.shape[1:]), dtype=bool)
    for raster in rasters.values():
        valid &= raster.valid_mask()

    # Missing cells are replaced so they cannot raise inside numexpr; they are masked afterwards
    local_dict: Dict[str, np.ndarray] = {
        name: np.where(valid, _values(raster), 1.0) for name, raster in rasters.items()
    }

    result = ne.evaluate(expression, local_dict=local_dict)
    result = np.broadcast_to(np.asarray(result, dtype=np.float64), valid.shape)

    log.debug(f"Evaluated '{expression}' on {valid.shape}")

    template = next(iter(rasters.values()))
    return _finish(template, result, valid, band_names={})
