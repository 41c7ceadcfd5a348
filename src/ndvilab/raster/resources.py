# src/ndvilab/raster/resources.py

"""
This module checks whether a raster fits in memory before it is read.

ndvilab processes whole rasters in RAM, so loading a scene larger than the
available memory is refused up front instead of failing half way.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import psutil
import rasterio

log = logging.getLogger(__name__)

__all__ = [
    "MemoryEstimate",
    "estimate_memory"
]

DEFAULT_SAFETY_FACTOR = 3.0
MIN_FREE_GB = 0.5

@dataclass(frozen=True)
class MemoryEstimate:
    """
    Estimation of memory requirements and safety for loading a raster.

    Args:
        total_required_bytes: Total bytes required to load the raster (with overhead)
        available_system_bytes: Currently available system memory in bytes
        is_safe: True if loading is considered safe
        reason: Explanation of the assessment (e.g. "Req: 1.20GB, Avail: 8.00GB")
    """
    total_required_bytes: int
    available_system_bytes: int
    is_safe: bool
    reason: str

def estimate_memory(
    src: rasterio.DatasetReader,
    indices: List[int],
    safety_factor: float = DEFAULT_SAFETY_FACTOR,
    min_free_gb: float = MIN_FREE_GB
) -> MemoryEstimate:
    """
    Checks if the requested bands of an open raster fit in RAM.

    Derived rasters are computed in float64, so the overhead multiplier is
    applied on top of the on-disk dtype size.

    Args:
        src: Opened rasterio DatasetReader object.
        indices: 1-based band indices that will be read.
        safety_factor: Multiplier accounting for intermediate arrays.
        min_free_gb: Memory that must remain free after loading.

    Returns:
        MemoryEstimate: Required bytes, available bytes, safety flag and reason.
    """
    bytes_per_pixel = sum(np.dtype(src.dtypes[i - 1]).itemsize for i in indices)

    raw_bytes = src.width * src.height * bytes_per_pixel
    total_required = int(raw_bytes * safety_factor)

    mem = psutil.virtual_memory()
    min_free_bytes = int(min_free_gb * (1024**3))
    is_safe = (total_required + min_free_bytes) <= mem.available

    reason = f"Req: {total_required/1e9:.2f}GB, Avail: {mem.available/1e9:.2f}GB"

    return MemoryEstimate(total_required, mem.available, is_safe, reason)
