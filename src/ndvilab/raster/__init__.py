# src/ndvilab/raster/__init__.py
#
# Copyright (c) The ndvilab project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The raster subpackage provides the in-memory Raster model and every
operation of the NDVI workflow: I/O, band selection, aggregation, masking,
cell-wise algebra, index computation and classification.
"""
# Core data structures
from .layer import (
    Raster,
    resolve_raster,
    NODATA_VAL
)
from .grid import (
    GridSpec,
    ensure_same_grid
)
from .bands import (
    ByIndex,
    ByName,
    BandSelector,
    as_selector
)

# I/O operations
from .io import (
    load,
    save,
    read_info
)

# Grid operations
from .geom import (
    select_band,
    split_bands,
    stack_bands,
    from_points,
    from_dataframe,
    to_points,
    to_dataframe,
    reproject,
    warp
)

# Aggregation
from .aggregate import (
    Reducer,
    aggregate
)

# Masking
from .mask import (
    rasterize,
    mask
)

# Cell-wise algebra
from .algebra import (
    scale,
    power,
    log_transform,
    add,
    subtract,
    multiply,
    divide,
    combine,
    evaluate
)

# Spectral indices
from .indices import (
    SpectralIndex,
    IndexCatalog,
    SENSOR_BANDS
)
from .compute_index import (
    generate_index
)
from .ndvi import (
    compute_ndvi,
    classify,
    DEFAULT_THRESHOLD
)

# Statistics
from .stats import (
    band_stats,
    cover_area
)

__all__ = [
    # Layer
    "Raster",
    "resolve_raster",
    "NODATA_VAL",
    "GridSpec",
    "ensure_same_grid",
    "ByIndex",
    "ByName",
    "BandSelector",
    "as_selector",

    # I/O
    "load",
    "save",
    "read_info",

    # Geom
    "select_band",
    "split_bands",
    "stack_bands",
    "from_points",
    "from_dataframe",
    "to_points",
    "to_dataframe",
    "reproject",
    "warp",

    # Aggregation
    "Reducer",
    "aggregate",

    # Masking
    "rasterize",
    "mask",

    # Algebra
    "scale",
    "power",
    "log_transform",
    "add",
    "subtract",
    "multiply",
    "divide",
    "combine",
    "evaluate",

    # Indices
    "SpectralIndex",
    "IndexCatalog",
    "SENSOR_BANDS",
    "generate_index",
    "compute_ndvi",
    "classify",
    "DEFAULT_THRESHOLD",

    # Statistics
    "band_stats",
    "cover_area"
]
