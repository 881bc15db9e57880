"""Recursive search of the HTM subdivision tree against a region."""

from __future__ import annotations

import operator
from typing import Type

from ..logging import log_search_stats
from . import trixel as _trixel
from .geom import Region, Relation
from .ranges import RangeSet
from .trixel import Trixel


class RegionRelationError(RuntimeError):
    """A region reported something other than a `Relation` for a trixel."""


class PixelFinder:
    """
    Walk a pixelization's subdivision tree and collect leaf ranges.

    Subclasses supply the tree: `__call__` visits the root cells and
    `subdivide` visits the children of a cell. `visit` classifies a cell
    against the region and either prunes it, emits the whole subtree as one
    range, recurses, or (at the target level) emits or drops the cell
    depending on whether an envelope or interior is being computed.
    """

    def __init__(self, ranges: RangeSet, region: Region, level: int, *, interior: bool = False):
        self.ranges = ranges
        self.region = region
        self.level = level
        self.interior = interior
        self.visited = 0

    def __call__(self) -> None:
        raise NotImplementedError

    def subdivide(self, trixel: Trixel, index: int, level: int) -> None:
        raise NotImplementedError

    def visit(self, trixel: Trixel, index: int, level: int) -> None:
        self.visited += 1
        relation = self.region.relate(trixel)
        if relation is Relation.DISJOINT:
            return
        if relation is Relation.CONTAINS:
            shift = 2 * (self.level - level)
            self.ranges.insert(index << shift, (index + 1) << shift)
            return
        if relation is not Relation.INTERSECTS:
            raise RegionRelationError(
                f"{type(self.region).__name__}.relate returned {relation!r}, expected a Relation"
            )
        if level < self.level:
            self.subdivide(trixel, index, level)
        elif not self.interior:
            self.ranges.insert(index, index + 1)


class HtmPixelFinder(PixelFinder):
    """Pixel finder over the 8 HTM root triangles."""

    def __call__(self) -> None:
        for r in range(8, 16):
            self.visit(_trixel.root_trixel(r), r, 0)

    def subdivide(self, trixel: Trixel, index: int, level: int) -> None:
        index *= 4
        level += 1
        for k, child in enumerate(_trixel.subdivide(trixel)):
            self.visit(child, index + k, level)


def find_pixels(
    finder_cls: Type[PixelFinder],
    region: Region,
    level: int,
    max_ranges: int = 0,
    *,
    interior: bool = False,
) -> RangeSet:
    """Run one search and bound the result to `max_ranges` ranges (0 = unbounded)."""
    max_ranges = operator.index(max_ranges)
    if max_ranges < 0:
        raise ValueError("max_ranges must be non-negative (0 means unbounded)")
    ranges = RangeSet()
    finder = finder_cls(ranges, region, level, interior=interior)
    finder()
    mode = "interior" if interior else "envelope"
    log_search_stats(mode, level, finder.visited, len(ranges))
    ranges.compact(max_ranges, interior=interior)
    return ranges


__all__ = ["HtmPixelFinder", "PixelFinder", "RegionRelationError", "find_pixels"]
