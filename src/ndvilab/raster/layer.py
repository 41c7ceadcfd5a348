# src/ndvilab/raster/layer.py

"""
This module defines the Raster, the in-memory unit every ndvilab operation
consumes and produces.
"""

import copy
import logging
from functools import wraps
from pathlib import Path
from typing import Union, Optional, Dict, Any, Tuple, Callable

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine

from ndvilab.exceptions import RasterValidationError
from .bands import BandSelector, resolve_band
from .grid import GridSpec

log = logging.getLogger(__name__)

__all__ = [
    "Raster",
    "resolve_raster",
    "NODATA_VAL"
]

# Sentinel written into derived rasters whose inputs declared no nodata value
NODATA_VAL = -9999.0

class Raster:
    """
    A rectangular grid of cells over a geographic extent.

    A Raster keeps together:
    1. The pixel data: a dense NumPy array in (Bands, Height, Width) order.
    2. The grid context: CRS and affine transform.
    3. Which cells are missing: either inferred from the nodata sentinel
       (rasters read from disk) or carried as an explicit validity mask
       (rasters derived in memory), so a computed value that happens to
       equal the sentinel is still a valid cell.

    All bands share one grid by construction. Operations never modify a
    Raster in place; they return new ones built with derive().

    Attributes:
        data (np.ndarray): The pixel array in (Bands, Height, Width) format.
        transform (Affine): The affine transform matrix.
        crs (CRS): The Coordinate Reference System.
        nodata (float | int | None): The value representing missing data.
        band_names (Dict[str, int]): Mapping of semantic names to 1-based band indices.
        valid (np.ndarray | None): Explicit validity mask, same shape as data.
    """

    def __init__(
        self,
        data: np.ndarray,
        transform: Affine,
        crs: Optional[Union[str, CRS]] = None,
        nodata: Optional[Union[float, int]] = None,
        band_names: Optional[Dict[str, int]] = None,
        valid: Optional[np.ndarray] = None
    ):
        """
        Initialize a Raster object.

        Args:
            data: Input array. Must be 2D (Height, Width) or 3D (Bands, Height, Width).
                  2D arrays are promoted to 3D (1, Height, Width).
            transform: Geospatial transform (maps pixels to coordinates).
            crs: Coordinate Reference System (CRS object, EPSG string or None).
            nodata: Value indicating no data.
            band_names: Optional mapping of names to band indices ('red': 1).
            valid: Optional boolean mask, True where a cell holds data. When
                   given it takes precedence over the nodata sentinel.

        Raises:
            RasterValidationError: If dimensions mismatch or types are incorrect.
        """
        self.validate_inputs(data, transform)

        if data.ndim == 2:
            data = data[np.newaxis, :, :]

        if valid is not None:
            valid = np.asarray(valid, dtype=bool)
            if valid.ndim == 2:
                valid = valid[np.newaxis, :, :]
            if valid.shape != data.shape:
                raise RasterValidationError(
                    f"Validity mask shape {valid.shape} does not match data shape {data.shape}"
                )
            valid = valid.copy()
            valid.flags.writeable = False

        if crs is not None and not isinstance(crs, CRS):
            crs = CRS.from_user_input(crs)

        self._data = data
        self.transform = transform
        self.crs = crs
        self.nodata = nodata
        self.band_names = dict(band_names or {})
        self._valid = valid

    @staticmethod
    def validate_inputs(data: np.ndarray, transform: Affine):
        """Internal validation logic."""
        if not isinstance(data, np.ndarray):
            raise TypeError(f"Data must be numpy.ndarray, got {type(data)}")

        if data.ndim not in (2, 3):
            raise RasterValidationError(f"Data must be 2D or 3D, got shape {data.shape}")

        if 0 in data.shape:
            raise RasterValidationError(f"Data must not be empty, got shape {data.shape}")

        if not isinstance(transform, Affine):
            raise TypeError(f"Transform must be rasterio.Affine, got {type(transform)}")

    # Grid properties

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the pixel data."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    @property
    def width(self) -> int:
        return self._data.shape[2]

    @property
    def height(self) -> int:
        return self._data.shape[1]

    @property
    def count(self) -> int:
        return self._data.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Returns (Bands, Height, Width)."""
        return self._data.shape

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def resolution(self) -> Tuple[float, float]:
        """Returns (xres, yres) in CRS units."""
        return self.grid.resolution

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (left, bottom, right, top) in CRS units."""
        return rasterio.transform.array_bounds(self.height, self.width, self.transform)

    extent = bounds

    @property
    def grid(self) -> GridSpec:
        return GridSpec(
            transform=self.transform,
            width=self.width,
            height=self.height,
            crs=self.crs
        )

    @property
    def profile(self) -> Dict[str, Any]:
        """
        Generates a Rasterio-compliant profile based on current state.
        """
        return {
            'driver': 'GTiff',
            'dtype': self._data.dtype,
            'nodata': self.nodata,
            'width': self.width,
            'height': self.height,
            'count': self.count,
            'crs': self.crs,
            'transform': self.transform,
            'compress': 'lzw'
        }

    # Cell access

    def valid_mask(self, band: Optional[int] = None) -> np.ndarray:
        """
        Boolean array (Bands, Height, Width), True where a cell holds data.

        A cell is missing when the explicit validity mask says so or, without
        one, when it equals the nodata sentinel or is NaN (float data).
        With a 1-based band, only that band (2D).
        """
        if band is not None:
            return self.valid_mask()[self._check_band(band) - 1]
        if self._valid is not None:
            return self._valid.copy()
        if self.nodata is None:
            valid = np.ones(self._data.shape, dtype=bool)
        else:
            valid = self._data != self.nodata
        if np.issubdtype(self._data.dtype, np.floating):
            valid &= ~np.isnan(self._data)
        return valid

    def masked(self, band: Optional[int] = None) -> np.ma.MaskedArray:
        """Pixel data as a masked array, with missing cells masked. Intended for rendering."""
        if band is not None:
            idx = self._check_band(band) - 1
            return np.ma.masked_array(self._data[idx].copy(), mask=~self.valid_mask(band))
        return np.ma.masked_array(self._data.copy(), mask=~self.valid_mask())

    def _check_band(self, band: int) -> int:
        if not (1 <= band <= self.count):
            raise IndexError(f"Band index {band} out of range (1-{self.count})")
        return band

    def band_index(self, selector: BandSelector) -> int:
        """Resolve a band selector to a 1-based index."""
        return resolve_band(self.count, self.band_names, selector)

    def get_band(self, selector: BandSelector) -> np.ndarray:
        """
        Retrieve a band as a read-only 2D array.

        Raises:
            BandNotFoundError: If the selector matches no band.
        """
        return self.data[self.band_index(selector) - 1]

    def band_name(self, index: int) -> Optional[str]:
        """Return the name of a 1-based band index, if it has one."""
        for name, idx in self.band_names.items():
            if idx == index:
                return name
        return None

    # Derivation

    def derive(
        self,
        data: np.ndarray,
        nodata: Optional[Union[float, int]] = None,
        band_names: Optional[Dict[str, int]] = None,
        transform: Optional[Affine] = None,
        valid: Optional[np.ndarray] = None
    ) -> 'Raster':
        """
        Build a new Raster on this raster's grid (or a given transform).

        The new Raster always carries a nodata sentinel: the given one, this
        raster's own, or NODATA_VAL. Without a validity mask, missing cells
        are inferred from that sentinel.
        """
        if nodata is None:
            nodata = self.nodata if self.nodata is not None else NODATA_VAL
        return Raster(
            data=data,
            transform=transform if transform is not None else self.transform,
            crs=self.crs,
            nodata=nodata,
            band_names=band_names if band_names is not None else self.band_names,
            valid=valid
        )

    def copy(self) -> 'Raster':
        """Returns a deep copy of the Raster."""
        return Raster(
            data=self._data.copy(),
            transform=copy.deepcopy(self.transform),
            crs=copy.deepcopy(self.crs),
            nodata=self.nodata,
            band_names=self.band_names.copy(),
            valid=self._valid
        )

    def __repr__(self) -> str:
        return (f"<Raster shape={self.shape} dtype={self._data.dtype} "
                f"crs={self.crs} nodata={self.nodata} bounds={self.bounds}>")

    def __eq__(self, other: object) -> bool:
        """Checks equality based on metadata and pixel data."""
        if not isinstance(other, Raster):
            return NotImplemented

        if not self.grid.matches(other.grid) or self.count != other.count:
            return False

        if not _same_nodata(self.nodata, other.nodata):
            return False

        valid = self.valid_mask()
        if not np.array_equal(valid, other.valid_mask()):
            return False

        # Values under missing cells are irrelevant
        return np.array_equal(self._data[valid], other._data[valid])

    __hash__ = None

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        """Allows np.array(raster_obj) to work directly."""
        data = self._data.copy()
        return data if dtype is None else data.astype(dtype)

def _same_nodata(a, b) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if np.isnan(a) and np.isnan(b):
        return True
    return a == b

# Resolve decorator to handle polymorphic inputs

def resolve_raster(func: Callable):
    """
    Decorator: Resolves polymorphic inputs for pipeline functions.

    Ensures that the first argument of the decorated function is always a
    Raster object, regardless of whether the user passed a file path or
    an existing Raster object.

    Behavior:
    1. Input is path (str/Path) -> loaded with ndvilab.raster.io.load().
    2. Input is Raster object -> passed through.
    """
    @wraps(func)
    def wrapper(input_obj: Union[str, Path, Raster], *args, **kwargs):
        if isinstance(input_obj, (str, Path)):
            from .io import load
            try:
                raster = load(input_obj)
            except Exception:
                log.error(f"Auto-loading failed for {input_obj}")
                raise
        elif isinstance(input_obj, Raster):
            raster = input_obj
        else:
            raise TypeError(
                f"Function {func.__name__} expects a file path or Raster object, "
                f"got {type(input_obj).__name__}"
            )

        return func(raster, *args, **kwargs)

    return wrapper
