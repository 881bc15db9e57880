"""The HTM pixelization: identifiers, point lookup and region pixelization."""

from __future__ import annotations

import operator
from typing import TYPE_CHECKING, Optional

import torch
from torch import Tensor

from ..logging import log_errors, log_performance
from . import trixel as _trixel
from .core import UnitVector3d, lonlat_to_unit_xyz, normalize_tensor, orientation_tensor
from .finder import HtmPixelFinder, find_pixels
from .geom import ConvexPolygon, Region
from .ranges import RangeSet

if TYPE_CHECKING:
    from ..config import PixelizationConfig


def _root_numbers(x: Tensor, y: Tensor, z: Tensor) -> Tensor:
    """Vectorized root selection with the same sign and tie rules as the scalar path."""
    def pick(cond: Tensor, a, b) -> Tensor:
        return torch.where(cond, a, b)

    def const(v: int) -> Tensor:
        return torch.full_like(x, v, dtype=torch.int64)

    south = pick(
        y > 0.0,
        pick(x > 0.0, const(0), const(1)),
        pick(y == 0.0, pick(x >= 0.0, const(0), const(2)), pick(x < 0.0, const(2), const(3))),
    )
    north = pick(
        y > 0.0,
        pick(x > 0.0, const(7), const(6)),
        pick(y == 0.0, pick(x >= 0.0, const(7), const(5)), pick(x < 0.0, const(5), const(4))),
    )
    return pick(z < 0.0, south, north)


class HtmPixelization:
    """
    Hierarchical Triangular Mesh pixelization at a fixed subdivision level.

    Instances are immutable and hold no per-query state, so one instance can
    serve concurrent queries. Identifier helpers (`level`, `triangle`,
    `as_string`, `from_string`) are static because they do not depend on the
    configured level.

    `default_max_ranges` bounds `envelope` and `interior` results when the
    caller passes no `max_ranges` (0 = unbounded).
    """

    MAX_LEVEL = _trixel.MAX_LEVEL

    __slots__ = ("_level", "_max_ranges")

    def __init__(self, level: int, default_max_ranges: int = 0):
        if isinstance(level, bool):
            raise ValueError("Invalid HTM subdivision level")
        try:
            level = operator.index(level)
        except TypeError:
            raise ValueError("Invalid HTM subdivision level") from None
        if level < 0 or level > _trixel.MAX_LEVEL:
            raise ValueError("Invalid HTM subdivision level")
        default_max_ranges = operator.index(default_max_ranges)
        if default_max_ranges < 0:
            raise ValueError("default_max_ranges must be non-negative (0 means unbounded)")
        object.__setattr__(self, "_level", level)
        object.__setattr__(self, "_max_ranges", default_max_ranges)

    def __setattr__(self, name, value):
        raise AttributeError("HtmPixelization is immutable")

    @classmethod
    def from_config(cls, config: "PixelizationConfig") -> "HtmPixelization":
        return cls(config.level, config.max_ranges)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HtmPixelization):
            return NotImplemented
        return self._level == other._level and self._max_ranges == other._max_ranges

    def __hash__(self) -> int:
        return hash(("HtmPixelization", self._level, self._max_ranges))

    def __repr__(self) -> str:
        if self._max_ranges:
            return f"HtmPixelization({self._level}, default_max_ranges={self._max_ranges})"
        return f"HtmPixelization({self._level})"

    def __reduce__(self):
        return (HtmPixelization, (self._level, self._max_ranges))

    # -- identifiers -----------------------------------------------------

    @staticmethod
    def level(i: int) -> int:
        """Subdivision level of `i`, or -1 if `i` is not a valid HTM index."""
        return _trixel.level(i)

    @staticmethod
    def triangle(i: int) -> ConvexPolygon:
        """The trixel with identifier `i` as a polygon."""
        return ConvexPolygon(_trixel.trixel_for_identifier(i))

    @staticmethod
    def as_string(i: int) -> str:
        return _trixel.identifier_to_string(i)

    @staticmethod
    def from_string(s: str) -> int:
        return _trixel.identifier_from_string(s)

    def get_level(self) -> int:
        return self._level

    def get_default_max_ranges(self) -> int:
        """Range budget applied when a search is given no `max_ranges`."""
        return self._max_ranges

    def to_string(self, i: int) -> str:
        return _trixel.identifier_to_string(i)

    def pixel(self, i: int) -> ConvexPolygon:
        return HtmPixelization.triangle(i)

    def universe(self) -> RangeSet:
        """Every identifier at this level."""
        shift = 2 * self._level
        return RangeSet([(8 << shift, 16 << shift)])

    # -- point lookup ----------------------------------------------------

    def index(self, v: UnitVector3d) -> int:
        """Identifier of the trixel at this level containing `v`."""
        return _trixel.identifier_for_vector(v, self._level)

    def index_lonlat(self, lon_deg: Tensor | float, lat_deg: Tensor | float) -> Tensor:
        return self.index_tensor(lonlat_to_unit_xyz(lon_deg, lat_deg))

    def index_tensor(self, vectors: Tensor) -> Tensor:
        """
        Vectorized `index` for unit vectors of shape [..., 3].

        Returns an int64 tensor of shape [...]. Ties on trixel edges resolve
        exactly as in `index`.
        """
        v = torch.as_tensor(vectors, dtype=torch.float64)
        if v.ndim == 0 or v.shape[-1] != 3:
            raise ValueError("vectors must have last dimension size 3")
        out_shape = v.shape[:-1]
        p = v.reshape(-1, 3)
        if p.shape[0] == 0:
            return torch.empty(out_shape, dtype=torch.int64, device=p.device)

        r = _root_numbers(p[:, 0], p[:, 1], p[:, 2])
        roots = _trixel.root_vertex_tensor(p.device)[r]
        v0 = roots[:, 0]
        v1 = roots[:, 1]
        v2 = roots[:, 2]
        idx = r + 8
        for _ in range(self._level):
            m01 = normalize_tensor(v0 + v1)
            m20 = normalize_tensor(v2 + v0)
            m12 = normalize_tensor(v1 + v2)
            c0 = orientation_tensor(p, m01, m20) >= 0
            c1 = ~c0 & (orientation_tensor(p, m12, m01) >= 0)
            c2 = ~(c0 | c1) & (orientation_tensor(p, m20, m12) >= 0)
            c3 = ~(c0 | c1 | c2)

            k0 = c0.unsqueeze(-1)
            k1 = c1.unsqueeze(-1)
            k2 = c2.unsqueeze(-1)
            n0 = torch.where(k0, v0, torch.where(k1, v1, torch.where(k2, v2, m12)))
            n1 = torch.where(k0, m01, torch.where(k1, m12, m20))
            n2 = torch.where(k0, m20, torch.where(k1, m01, torch.where(k2, m12, m01)))
            v0, v1, v2 = n0, n1, n2

            child = c1.to(torch.int64) + 2 * c2.to(torch.int64) + 3 * c3.to(torch.int64)
            idx = idx * 4 + child
        return idx.reshape(out_shape)

    def triangles(self, ids: Tensor) -> Tensor:
        """Trixel corners for identifiers `ids`, as float64 [N, 3, 3]."""
        flat = torch.as_tensor(ids, dtype=torch.int64).reshape(-1).tolist()
        if not flat:
            return torch.empty((0, 3, 3), dtype=torch.float64)
        return torch.tensor(
            [[tuple(v) for v in _trixel.trixel_for_identifier(i)] for i in flat],
            dtype=torch.float64,
        )

    # -- region pixelization ---------------------------------------------

    @log_errors
    @log_performance
    def envelope(self, region: Region, max_ranges: Optional[int] = None) -> RangeSet:
        """Identifiers of trixels that may intersect `region`."""
        if max_ranges is None:
            max_ranges = self._max_ranges
        return find_pixels(HtmPixelFinder, region, self._level, max_ranges, interior=False)

    @log_errors
    @log_performance
    def interior(self, region: Region, max_ranges: Optional[int] = None) -> RangeSet:
        """Identifiers of trixels that lie entirely inside `region`."""
        if max_ranges is None:
            max_ranges = self._max_ranges
        return find_pixels(HtmPixelFinder, region, self._level, max_ranges, interior=True)


__all__ = ["HtmPixelization"]
