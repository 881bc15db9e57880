"""Regions that can be pixelized: the relation contract plus caps and convex polygons."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

import numpy as np
import torch
from torch import Tensor

from .core import UnitVector3d, orientation
from .trixel import Trixel

# Angular slack (radians) before a cap relation is considered proven.
_CAP_EPS = 1e-12


class Relation(enum.Enum):
    """How a region relates to a trixel."""

    DISJOINT = "disjoint"
    CONTAINS = "contains"
    INTERSECTS = "intersects"


@runtime_checkable
class Region(Protocol):
    """
    Anything the pixel finder can search against.

    `relate` must be conservative: report CONTAINS or DISJOINT only when that
    is certain, INTERSECTS otherwise.
    """

    def relate(self, trixel: Trixel) -> Relation: ...

    def contains(self, v: UnitVector3d) -> bool: ...


def _inside_triangle(p: UnitVector3d, trixel: Trixel) -> bool:
    v0, v1, v2 = trixel
    return orientation(v0, v1, p) >= 0 and orientation(v1, v2, p) >= 0 and orientation(v2, v0, p) >= 0


def _distance_to_arc(p: UnitVector3d, a: UnitVector3d, b: UnitVector3d) -> float:
    """Angular distance from `p` to the minor arc a -> b."""
    nx, ny, nz = a.cross(b)
    nn = math.sqrt(nx * nx + ny * ny + nz * nz)
    if nn == 0.0:
        return p.angle_to(a)
    s = (p.x * nx + p.y * ny + p.z * nz) / nn
    qx = p.x - s * nx / nn
    qy = p.y - s * ny / nn
    qz = p.z - s * nz / nn
    qn = math.sqrt(qx * qx + qy * qy + qz * qz)
    if qn > 0.0:
        q = UnitVector3d(qx / qn, qy / qn, qz / qn)
        ax, ay, az = a.cross(q)
        bx, by, bz = q.cross(b)
        if ax * nx + ay * ny + az * nz >= 0.0 and bx * nx + by * ny + bz * nz >= 0.0:
            return math.atan2(abs(s), qn)
    return min(p.angle_to(a), p.angle_to(b))


def _distance_to_triangle(p: UnitVector3d, trixel: Trixel) -> float:
    if _inside_triangle(p, trixel):
        return 0.0
    v0, v1, v2 = trixel
    return min(_distance_to_arc(p, v0, v1), _distance_to_arc(p, v1, v2), _distance_to_arc(p, v2, v0))


@dataclass(frozen=True)
class SphericalCap:
    """Spherical cap around `center` with angular radius in degrees.

    A radius of 180 or more is the whole sphere, a negative radius is empty,
    and a zero radius is the single point `center`. A point cap off every
    trixel edge has a single-trixel envelope; one on an edge or mesh vertex
    touches, and so envelopes, every trixel sharing that edge or vertex.
    """

    center: UnitVector3d
    radius_deg: float

    def __post_init__(self) -> None:
        if not math.isfinite(float(self.radius_deg)):
            raise ValueError("radius_deg must be finite")
        object.__setattr__(self, "radius_deg", float(self.radius_deg))

    @classmethod
    def from_lonlat(cls, lon_deg: float, lat_deg: float, radius_deg: float) -> "SphericalCap":
        return cls(UnitVector3d.from_lonlat(lon_deg, lat_deg), radius_deg)

    @classmethod
    def full(cls) -> "SphericalCap":
        return cls(UnitVector3d(0.0, 0.0, 1.0), 180.0)

    @classmethod
    def empty(cls) -> "SphericalCap":
        return cls(UnitVector3d(0.0, 0.0, 1.0), -1.0)

    def is_full(self) -> bool:
        return self.radius_deg >= 180.0

    def is_empty(self) -> bool:
        return self.radius_deg < 0.0

    def area(self, *, degrees: bool = False) -> float:
        if self.is_empty():
            return 0.0
        r = math.radians(min(self.radius_deg, 180.0))
        area_sr = 2.0 * math.pi * (1.0 - math.cos(r))
        if degrees:
            return area_sr * (180.0 / math.pi) ** 2
        return area_sr

    def contains(self, v: UnitVector3d) -> bool:
        if self.is_empty():
            return False
        if self.is_full():
            return True
        return math.degrees(self.center.angle_to(v)) <= self.radius_deg

    def relate(self, trixel: Trixel) -> Relation:
        if self.is_empty():
            return Relation.DISJOINT
        if self.is_full():
            return Relation.CONTAINS
        r = math.radians(self.radius_deg)
        if _distance_to_triangle(self.center, trixel) > r + _CAP_EPS:
            return Relation.DISJOINT
        # Farthest point of the trixel from the center is the point nearest the antipode.
        d_max = math.pi - _distance_to_triangle(-self.center, trixel)
        if d_max < r - _CAP_EPS:
            return Relation.CONTAINS
        return Relation.INTERSECTS


@dataclass(frozen=True)
class ConvexPolygon:
    """Convex spherical polygon with counter-clockwise vertices (seen from outside)."""

    vertices: tuple[UnitVector3d, ...]

    def __post_init__(self) -> None:
        verts = tuple(self.vertices)
        if len(verts) < 3:
            raise ValueError("polygon must contain at least three vertices")
        n = len(verts)
        for k in range(n):
            a = verts[k]
            b = verts[(k + 1) % n]
            signs = [orientation(a, b, verts[m]) for m in range(n) if m != k and m != (k + 1) % n]
            if any(s < 0 for s in signs) or not any(s > 0 for s in signs):
                raise ValueError("polygon vertices must be convex and counter-clockwise")
        object.__setattr__(self, "vertices", verts)

    @classmethod
    def from_lonlat(
        cls,
        lon_deg: Tensor | Sequence[float],
        lat_deg: Tensor | Sequence[float],
    ) -> "ConvexPolygon":
        lon = np.asarray(torch.as_tensor(lon_deg, dtype=torch.float64), dtype=np.float64).reshape(-1)
        lat = np.asarray(torch.as_tensor(lat_deg, dtype=torch.float64), dtype=np.float64).reshape(-1)
        if lon.shape != lat.shape:
            raise ValueError("lon_deg and lat_deg must have the same number of vertices")
        if lon.size >= 4 and np.isclose(lon[0], lon[-1], atol=1e-12, rtol=0.0) and np.isclose(
            lat[0], lat[-1], atol=1e-12, rtol=0.0
        ):
            # Accept closed rings and normalize to open form.
            lon = lon[:-1]
            lat = lat[:-1]
        return cls(tuple(UnitVector3d.from_lonlat(lo, la) for lo, la in zip(lon.tolist(), lat.tolist())))

    def edges(self):
        n = len(self.vertices)
        for k in range(n):
            yield self.vertices[k], self.vertices[(k + 1) % n]

    def centroid(self) -> UnitVector3d:
        return UnitVector3d.normalize(
            sum(v.x for v in self.vertices),
            sum(v.y for v in self.vertices),
            sum(v.z for v in self.vertices),
        )

    def to_tensor(self) -> Tensor:
        """Vertices as a float64 tensor of shape [N, 3]."""
        return torch.tensor([tuple(v) for v in self.vertices], dtype=torch.float64)

    def contains(self, v: UnitVector3d) -> bool:
        return all(orientation(a, b, v) >= 0 for a, b in self.edges())

    def relate(self, trixel: Trixel) -> Relation:
        if all(self.contains(t) for t in trixel):
            return Relation.CONTAINS
        # Separating great circle along one of the polygon's edges ...
        for a, b in self.edges():
            if all(orientation(a, b, t) < 0 for t in trixel):
                return Relation.DISJOINT
        # ... or along one of the trixel's edges.
        t0, t1, t2 = trixel
        for a, b in ((t0, t1), (t1, t2), (t2, t0)):
            if all(orientation(a, b, v) < 0 for v in self.vertices):
                return Relation.DISJOINT
        return Relation.INTERSECTS


__all__ = ["ConvexPolygon", "Region", "Relation", "SphericalCap"]
