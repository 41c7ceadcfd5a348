# src/ndvilab/raster/compute_index.py
"""
This module evaluates catalog spectral indices on multi-band rasters.
"""

import logging
from typing import Dict, Optional

from .algebra import evaluate
from .bands import BandSelector
from .geom import select_band
from .indices import IndexCatalog
from .layer import Raster, resolve_raster

log = logging.getLogger(__name__)

__all__ = [
    "generate_index"
]

@resolve_raster
def generate_index(
    raster: Raster,
    index_name: str,
    band_mapping: Dict[str, BandSelector],
    catalog: Optional[IndexCatalog] = None
) -> Raster:
    """
    Compute a registered spectral index from the bands of one raster.

    Args:
        raster: Multi-band raster (auto-resolved from path or object).
        index_name: Catalog name, e.g. 'NDVI'.
        band_mapping: Formula variable -> band selector, e.g.
                      {'nir': ByIndex(5), 'red': ByIndex(4)}.
        catalog: Index registry; the default catalog when None.

    Returns:
        Raster: Single band named after the index.
    """
    catalog = catalog or IndexCatalog()
    target_index = catalog.get(index_name)

    missing = [role for role in target_index.bands if role not in band_mapping]
    if missing:
        raise KeyError(f"No band mapped for {missing} required by {target_index.name}")

    inputs = {role: select_band(raster, band_mapping[role]) for role in target_index.bands}

    log.info(f"Computing {target_index.name} = {target_index.formula}")
    result = evaluate(target_index.formula, **inputs)

    return result.derive(
        data=result.data,
        band_names={target_index.name.lower(): 1},
        valid=result.valid_mask()
    )
