# src/ndvilab/raster/bands.py

"""
Band selectors.

A band is addressed either by its 1-based position or by its name. Raw user
values are turned into a selector once, at the boundary, with as_selector().
"""

import logging
from dataclasses import dataclass
from typing import Dict, Union

from ndvilab.exceptions import BandNotFoundError

log = logging.getLogger(__name__)

__all__ = [
    "ByIndex",
    "ByName",
    "BandSelector",
    "as_selector",
    "resolve_band"
]

@dataclass(frozen=True)
class ByIndex:
    """Selects a band by its 1-based position."""
    index: int

    def __str__(self) -> str:
        return f"band {self.index}"

@dataclass(frozen=True)
class ByName:
    """Selects a band by its description."""
    name: str

    def __str__(self) -> str:
        return f"band '{self.name}'"

BandSelector = Union[ByIndex, ByName]

def as_selector(value: Union[int, str, ByIndex, ByName]) -> BandSelector:
    """
    Convert a raw config or command-line value into a band selector.

    Integers and digit-only strings become ByIndex, other strings ByName.
    """
    if isinstance(value, (ByIndex, ByName)):
        return value
    if isinstance(value, bool):
        raise TypeError("Band selector cannot be a boolean.")
    if isinstance(value, int):
        return ByIndex(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return ByIndex(int(stripped))
        return ByName(stripped)
    raise TypeError(f"Cannot build a band selector from {type(value).__name__}")

def resolve_band(count: int, band_names: Dict[str, int], selector: BandSelector) -> int:
    """
    Resolve a selector to a 1-based band index.

    Args:
        count: Number of bands available.
        band_names: Mapping of band names to 1-based indices.
        selector: ByIndex or ByName.

    Returns:
        int: The 1-based band index.

    Raises:
        BandNotFoundError: If the selector matches no band.
    """
    if isinstance(selector, ByName):
        if selector.name not in band_names:
            raise BandNotFoundError(
                f"Band name '{selector.name}' not found in {list(band_names.keys())}"
            )
        idx = band_names[selector.name]
    elif isinstance(selector, ByIndex):
        idx = selector.index
    else:
        raise TypeError(f"Expected ByIndex or ByName, got {type(selector).__name__}")

    if not (1 <= idx <= count):
        raise BandNotFoundError(f"Band index {idx} out of range (1-{count})")
    return idx
