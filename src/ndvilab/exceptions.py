# src/ndvilab/exceptions.py

"""
Exception hierarchy shared by the raster and vector subpackages.

Every error raised by ndvilab derives from RasterError, and most also derive
from the matching builtin so callers can catch either.
"""

__all__ = [
    "RasterError",
    "RasterValidationError",
    "RasterIOError",
    "DecodeError",
    "BandNotFoundError",
    "IrregularGridError",
    "GeometryMismatchError"
]

class RasterError(Exception):
    """Base class for all ndvilab errors."""

class RasterValidationError(RasterError, ValueError):
    """Raised when a raster or an operation argument is malformed."""

class RasterIOError(RasterError, IOError):
    """Raised when a raster cannot be written to disk."""

class DecodeError(RasterError, IOError):
    """Raised when a source file is not a recognized or intact raster."""

class BandNotFoundError(RasterError, LookupError):
    """Raised when a band selector matches no band of a raster."""

class IrregularGridError(RasterError, ValueError):
    """Raised when point coordinates do not form a regular lattice."""

class GeometryMismatchError(RasterValidationError):
    """
    Raised when two rasters that must share a grid do not.

    The grid is the CRS, the affine transform (resolution and extent) and the
    dimensions. Cells are never silently realigned.
    """
