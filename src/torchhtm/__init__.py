"""
torchhtm: Hierarchical Triangular Mesh indexing for PyTorch

Maps points and regions on the celestial sphere to HTM trixel identifiers
and compact identifier ranges suitable for database range scans.
"""

from .config import PixelizationConfig
from .logging import set_log_level
from .sphere import (
    ConvexPolygon,
    HtmPixelization,
    MAX_LEVEL,
    RangeSet,
    Region,
    RegionRelationError,
    Relation,
    SphericalCap,
    UnitVector3d,
    lonlat_to_unit_xyz,
    orientation,
    unit_xyz_to_lonlat,
)

__version__ = "0.1.0"
__all__ = [
    # Pixelization
    "HtmPixelization", "MAX_LEVEL", "RangeSet",
    # Regions
    "Region", "Relation", "SphericalCap", "ConvexPolygon", "RegionRelationError",
    # Primitives
    "UnitVector3d", "orientation", "lonlat_to_unit_xyz", "unit_xyz_to_lonlat",
    # Configuration
    "PixelizationConfig", "set_log_level",
]
