# src/ndvilab/vector/__init__.py
#
# Copyright (c) The ndvilab project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The vector subpackage handles the polygon regions (land areas, study areas)
that are rasterized into masks.
"""

# I/O and data structure
from .layer import (
    Vector
)

from .io import (
    load_vector,
    save_vector,
    resolve_vector
)

# Geometric operations
from .geom import (
    to_crs,
    validate
)

__all__ = [
    # I/O and data structure
    "Vector",
    "load_vector",
    "save_vector",
    "resolve_vector",

    # Geometric operations
    "to_crs",
    "validate"
]
