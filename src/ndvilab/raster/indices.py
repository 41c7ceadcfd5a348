# src/ndvilab/raster/indices.py
"""
This module defines the SpectralIndex data structure, a registry of indices,
and the band layout of the Landsat sensors.
"""

from dataclasses import dataclass
import logging
from typing import Dict, Tuple

from .bands import ByIndex

log = logging.getLogger(__name__)

__all__ = [
    "SpectralIndex",
    "IndexCatalog",
    "SENSOR_BANDS"
]

# Red and near-infrared band numbers in the standard Landsat band order
SENSOR_BANDS: Dict[str, Dict[str, ByIndex]] = {
    "landsat5": {"red": ByIndex(3), "nir": ByIndex(4)},
    "landsat7": {"red": ByIndex(3), "nir": ByIndex(4)},
    "landsat8": {"red": ByIndex(4), "nir": ByIndex(5)},
    "landsat9": {"red": ByIndex(4), "nir": ByIndex(5)},
}

@dataclass(frozen=True)
class SpectralIndex:
    name: str
    formula: str
    bands: Tuple[str, ...]

class IndexCatalog:
    def __init__(self):
        self._indices = {
            "NDVI": SpectralIndex("NDVI", "(nir - red) / (nir + red)", ("nir", "red")),
            "SR": SpectralIndex("SR", "nir / red", ("nir", "red"))
        }

    def get(self, name: str) -> SpectralIndex:
        key = name.upper()
        if key not in self._indices:
            raise KeyError(f"Unknown index '{name}'. Available: {sorted(self._indices)}")
        return self._indices[key]

    def register(self, index: SpectralIndex):
        log.debug(f"Registering spectral index {index.name}: {index.formula}")
        self._indices[index.name.upper()] = index

    def __contains__(self, name: str) -> bool:
        return name.upper() in self._indices
