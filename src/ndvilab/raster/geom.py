# src/ndvilab/raster/geom.py

"""
This module changes the shape or the grid of rasters: band selection,
splitting and stacking, conversion to and from point tables, and resampling
onto another grid.
"""

import logging
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.transform import Affine, xy
from rasterio.warp import calculate_default_transform, reproject as rio_reproject

from ndvilab.exceptions import IrregularGridError
from .bands import BandSelector
from .grid import GridSpec, ensure_same_grid
from .layer import Raster, resolve_raster, NODATA_VAL

log = logging.getLogger(__name__)

__all__ = [
    "select_band",
    "split_bands",
    "stack_bands",
    "from_points",
    "from_dataframe",
    "to_points",
    "to_dataframe",
    "reproject",
    "warp"
]

# Relative tolerance used when checking that coordinates sit on a lattice
LATTICE_TOLERANCE = 1e-6

def _as_float(raster: Raster) -> Tuple[np.ndarray, float]:
    """Return a float copy of the data with missing cells set to NaN, and the output nodata."""
    nodata = raster.nodata if raster.nodata is not None else NODATA_VAL
    data = np.where(raster.valid_mask(), raster.data, np.nan).astype(np.float64)
    return data, nodata

@resolve_raster
def select_band(raster: Raster, selector: BandSelector) -> Raster:
    """
    Extract one band as a new single-band Raster.

    Args:
        raster: Input raster (auto-resolved from path or object).
        selector: ByIndex(n) or ByName(name).

    Returns:
        Raster: Single-band copy, keeping the band name if it had one.

    Raises:
        BandNotFoundError: If the selector matches no band.
    """
    idx = raster.band_index(selector)
    name = raster.band_name(idx)

    log.debug(f"Selecting {selector} (index {idx}) from {raster.shape}")

    return Raster(
        data=raster.data[idx - 1 : idx].copy(),
        transform=raster.transform,
        crs=raster.crs,
        nodata=raster.nodata,
        band_names={name: 1} if name else {},
        valid=raster.valid_mask()[idx - 1 : idx]
    )

@resolve_raster
def split_bands(raster: Raster) -> List[Raster]:
    """
    Splits a multi-band Raster into a list of single-band Rasters.
    """
    outputs = []
    valid = raster.valid_mask()
    for i in range(raster.count):
        name = raster.band_name(i + 1)
        outputs.append(Raster(
            data=raster.data[i : i + 1].copy(),
            transform=raster.transform,
            crs=raster.crs,
            nodata=raster.nodata,
            band_names={name: 1} if name else {},
            valid=valid[i : i + 1]
        ))

    log.info(f"Split raster into {len(outputs)} single-band objects.")
    return outputs

def stack_bands(rasters: List[Raster]) -> Raster:
    """
    Combine co-registered Rasters into a single multi-band Raster.

    Missing cells of each input are rewritten with the nodata value of the
    first raster so the stack carries a single sentinel.

    Raises:
        ValueError: If the list is empty.
        GeometryMismatchError: If the inputs do not share one grid.
    """
    if not rasters:
        raise ValueError("Cannot stack empty list of rasters.")

    ensure_same_grid(*rasters)
    ref = rasters[0]
    nodata = ref.nodata if ref.nodata is not None else NODATA_VAL
    dtype = np.result_type(*[r.dtype for r in rasters])
    if ref.nodata is None and not np.issubdtype(dtype, np.floating):
        dtype = np.dtype(np.float64)

    layers = []
    masks = []
    band_names = {}
    offset = 0
    for r in rasters:
        valid = r.valid_mask()
        layers.append(np.where(valid, r.data, nodata).astype(dtype))
        masks.append(valid)
        for name, idx in r.band_names.items():
            band_names[name] = offset + idx
        offset += r.count

    stacked = np.concatenate(layers, axis=0)
    log.info(f"Stacked {len(rasters)} rasters into new shape {stacked.shape}")

    return Raster(
        data=stacked,
        transform=ref.transform,
        crs=ref.crs,
        nodata=nodata,
        band_names=band_names,
        valid=np.concatenate(masks, axis=0)
    )

def _lattice_axis(values: np.ndarray, fallback: Optional[float], axis: str) -> Tuple[np.ndarray, float]:
    """
    Find the spacing of one axis of a lattice.

    Args:
        values: Coordinates of every point along the axis.
        fallback: Spacing to use when the axis holds a single coordinate.
        axis: 'x' or 'y', for error messages.

    Returns:
        (sorted unique coordinates, spacing)
    """
    unique = np.unique(values)
    if unique.size < 2:
        if fallback is None:
            raise IrregularGridError(
                f"Cannot infer a cell size: only one distinct {axis} coordinate."
            )
        return unique, fallback

    gaps = np.diff(unique)
    step = gaps.min()
    multiples = gaps / step
    if not np.allclose(multiples, np.round(multiples), rtol=0.0, atol=LATTICE_TOLERANCE * multiples.max()):
        raise IrregularGridError(
            f"{axis} coordinates are not evenly spaced (smallest gap {step}, "
            f"largest gap {gaps.max()})."
        )
    return unique, float(step)

def from_points(
    points: Iterable[Tuple[float, float, float]],
    crs: Optional[Union[str, CRS]] = None,
    nodata: float = NODATA_VAL,
    name: Optional[str] = None
) -> Raster:
    """
    Build a single-band Raster from (x, y, value) cell centres.

    The grid is inferred from the spacing of the coordinates, so its extent
    hugs the points and may differ slightly from a raster that originally
    covered the same region. Lattice positions without a point are nodata.

    Args:
        points: Sequence of (x, y, value) triples.
        crs: CRS of the coordinates.
        nodata: Sentinel for lattice positions with no point.
        name: Optional band name.

    Returns:
        Raster: Single-band raster, north-up.

    Raises:
        IrregularGridError: If the points do not form a regular lattice.
    """
    table = np.asarray(list(points), dtype=np.float64)
    if table.ndim != 2 or table.shape[0] == 0 or table.shape[1] != 3:
        raise IrregularGridError("Expected a non-empty sequence of (x, y, value) triples.")

    x, y, values = table[:, 0], table[:, 1], table[:, 2]

    # A single row or column borrows its cell size from the other axis
    if np.unique(x).size >= 2:
        xs, xres = _lattice_axis(x, None, 'x')
        ys, yres = _lattice_axis(y, xres, 'y')
    else:
        ys, yres = _lattice_axis(y, None, 'y')
        xs, xres = _lattice_axis(x, yres, 'x')

    min_x, max_y = xs[0], ys[-1]
    width = int(round((xs[-1] - min_x) / xres)) + 1
    height = int(round((max_y - ys[0]) / yres)) + 1

    cols = np.round((x - min_x) / xres).astype(np.int64)
    rows = np.round((max_y - y) / yres).astype(np.int64)

    flat = rows * width + cols
    if np.unique(flat).size != flat.size:
        raise IrregularGridError("Several points fall on the same lattice position.")

    grid = np.full((height, width), nodata, dtype=np.float64)
    grid[rows, cols] = values
    filled = np.zeros((height, width), dtype=bool)
    filled[rows, cols] = ~np.isnan(values)

    transform = Affine.translation(min_x - xres / 2.0, max_y + yres / 2.0) * Affine.scale(xres, -yres)

    log.info(f"Built {width}x{height} raster from {len(values)} points (res {xres}, {yres})")

    return Raster(
        data=grid,
        transform=transform,
        crs=crs,
        nodata=nodata,
        band_names={name: 1} if name else {},
        valid=filled
    )

def from_dataframe(
    df: pd.DataFrame,
    crs: Optional[Union[str, CRS]] = None,
    x: str = 'x',
    y: str = 'y',
    value: str = 'value',
    nodata: float = NODATA_VAL
) -> Raster:
    """
    Build a single-band Raster from a table of cell centres.

    Rows with a missing value are treated as absent cells.
    """
    missing = [col for col in (x, y, value) if col not in df.columns]
    if missing:
        raise KeyError(f"Columns {missing} not found. Available columns: {df.columns.tolist()}")

    subset = df[[x, y, value]].dropna()
    return from_points(subset.itertuples(index=False, name=None), crs=crs, nodata=nodata, name=value)

@resolve_raster
def to_dataframe(raster: Raster, band: int = 1, dropna: bool = True) -> pd.DataFrame:
    """
    Flatten one band into a table of cell centres.

    Args:
        raster: Input raster.
        band: 1-based band index.
        dropna: If True, missing cells are left out; otherwise they appear as NaN.

    Returns:
        pd.DataFrame: Columns 'x', 'y' and the band name (or 'value').
    """
    if not (1 <= band <= raster.count):
        raise IndexError(f"Band index {band} out of range (1-{raster.count})")

    rows, cols = np.indices((raster.height, raster.width))
    xs, ys = xy(raster.transform, rows.ravel(), cols.ravel(), offset='center')

    values = raster.data[band - 1].astype(np.float64).ravel()
    valid = raster.valid_mask()[band - 1].ravel()

    column = raster.band_name(band) or 'value'
    df = pd.DataFrame({
        'x': np.asarray(xs, dtype=np.float64),
        'y': np.asarray(ys, dtype=np.float64),
        column: np.where(valid, values, np.nan)
    })

    if dropna:
        df = df[valid].reset_index(drop=True)
    return df

def to_points(raster: Raster, band: int = 1) -> List[Tuple[float, float, float]]:
    """Return the valid cells of one band as (x, y, value) triples."""
    df = to_dataframe(raster, band=band, dropna=True)
    return list(df.itertuples(index=False, name=None))

def _resampling_method(resampling: Union[str, Resampling]) -> Resampling:
    if isinstance(resampling, Resampling):
        return resampling
    try:
        return Resampling[resampling]
    except KeyError:
        raise ValueError(f"Unknown resampling method '{resampling}'") from None

@resolve_raster
def reproject(
    raster: Raster,
    target: Union[GridSpec, Raster],
    resampling: Union[str, Resampling] = Resampling.nearest
) -> Raster:
    """
    Resample a raster onto the grid of a reference.

    Cells near the edges can differ slightly from values computed directly on
    the reference grid; that is inherent to resampling.

    Args:
        raster: The input raster (auto-resolved from path or object).
        target: GridSpec or Raster whose grid the output adopts.
        resampling: 'nearest' (categorical data) or 'bilinear'.

    Returns:
        Raster: A new Raster on the target grid. Cells with no source data are nodata.
    """
    grid = target.grid if isinstance(target, Raster) else target
    method = _resampling_method(resampling)
    source, nodata = _as_float(raster)

    log.info(f"Reprojecting {raster.shape} onto {grid.width}x{grid.height} grid ({method.name})")

    destination = np.full((raster.count, grid.height, grid.width), np.nan, dtype=np.float64)

    rio_reproject(
        source=source,
        destination=destination,
        src_transform=raster.transform,
        src_crs=raster.crs,
        src_nodata=np.nan,
        dst_transform=grid.transform,
        dst_crs=grid.crs if grid.crs is not None else raster.crs,
        dst_nodata=np.nan,
        resampling=method
    )

    return Raster(
        data=np.where(np.isnan(destination), nodata, destination),
        transform=grid.transform,
        crs=grid.crs if grid.crs is not None else raster.crs,
        nodata=nodata,
        band_names=raster.band_names.copy(),
        valid=~np.isnan(destination)
    )

@resolve_raster
def warp(
    raster: Raster,
    crs: Union[str, CRS],
    resolution: Optional[float] = None,
    resampling: Union[str, Resampling] = Resampling.nearest
) -> Raster:
    """
    Reproject a raster to a new CRS, letting rasterio choose the output grid.

    Args:
        raster: The input raster.
        crs: Destination CRS (EPSG code or proj string).
        resolution: Force a cell size in destination units. If None, keeps
                    the original pixel density.
        resampling: Interpolation method.

    Returns:
        Raster: A new Raster in the target CRS.
    """
    if raster.crs is None:
        raise ValueError("Raster has no CRS. Cannot warp.")

    dst_crs = crs if isinstance(crs, CRS) else CRS.from_user_input(crs)
    dst_transform, dst_width, dst_height = calculate_default_transform(
        raster.crs,
        dst_crs,
        raster.width,
        raster.height,
        *raster.bounds,
        resolution=resolution
    )
    grid = GridSpec(transform=dst_transform, width=dst_width, height=dst_height, crs=dst_crs)
    return reproject(raster, grid, resampling=resampling)
