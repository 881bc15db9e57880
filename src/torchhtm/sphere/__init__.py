"""Spherical geometry and HTM pixelization."""

from .core import (
    UnitVector3d,
    lonlat_to_unit_xyz,
    normalize_tensor,
    orientation,
    orientation_tensor,
    unit_xyz_to_lonlat,
)
from .finder import HtmPixelFinder, PixelFinder, RegionRelationError, find_pixels
from .geom import ConvexPolygon, Region, Relation, SphericalCap
from .htm import HtmPixelization
from .ranges import RANGE_END, RangeSet
from .trixel import INVALID_LEVEL, MAX_LEVEL

__all__ = [
    "ConvexPolygon",
    "HtmPixelFinder",
    "HtmPixelization",
    "INVALID_LEVEL",
    "MAX_LEVEL",
    "PixelFinder",
    "RANGE_END",
    "RangeSet",
    "Region",
    "RegionRelationError",
    "Relation",
    "SphericalCap",
    "UnitVector3d",
    "find_pixels",
    "lonlat_to_unit_xyz",
    "normalize_tensor",
    "orientation",
    "orientation_tensor",
    "unit_xyz_to_lonlat",
]
