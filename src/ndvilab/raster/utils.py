# src/ndvilab/raster/utils.py

"""
Helpers that translate band selections into positions of an open dataset.
"""

import logging
from pathlib import Path
from typing import Union, List, Optional, Dict, Sequence

import rasterio

from .bands import BandSelector, as_selector, resolve_band

log = logging.getLogger(__name__)

__all__ = [
    "resolve_envi_path",
    "dataset_band_names",
    "select_band_indices",
    "subset_band_names"
]

BandsArg = Optional[Union[BandSelector, int, str, Sequence[Union[BandSelector, int, str]]]]

def resolve_envi_path(path: Union[str, Path]) -> Path:
    """
    Point ENVI '.hdr' paths at their binary companion when it exists.
    """
    path = Path(path)
    if path.suffix.lower() != '.hdr':
        return path
    binary = path.with_suffix('')
    if binary.exists():
        log.debug(f"Using binary {binary.name} for header {path.name}")
        return binary
    return path

def dataset_band_names(src: rasterio.DatasetReader) -> Dict[str, int]:
    """Band descriptions of an open dataset, mapped to their 1-based index."""
    return {desc: i for i, desc in enumerate(src.descriptions, start=1) if desc}

def select_band_indices(src: rasterio.DatasetReader, bands: BandsArg) -> List[int]:
    """
    Resolve a band selection against an open dataset.

    None selects every band. A single selector, number or name selects one
    band; a sequence selects several, in the given order.

    Raises:
        BandNotFoundError: If any selection matches no band of the dataset.
    """
    if bands is None:
        return list(src.indexes)
    if isinstance(bands, (int, str)) or not isinstance(bands, Sequence):
        bands = [bands]

    names = dataset_band_names(src)
    return [resolve_band(src.count, names, as_selector(b)) for b in bands]

def subset_band_names(src: rasterio.DatasetReader, indices: List[int]) -> Dict[str, int]:
    """
    Band names renumbered to their position in a loaded subset.
    """
    positions = {idx: pos for pos, idx in enumerate(indices, start=1)}
    return {
        name: positions[idx]
        for name, idx in dataset_band_names(src).items()
        if idx in positions
    }
