"""Unit vectors, the orientation predicate and lon/lat conversions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction

import torch
from torch import Tensor

# Forward error bound of the float64 triple product, relative to its permanent.
_ORIENTATION_REL_ERROR = 8.0 * 2.0**-53


@dataclass(frozen=True)
class UnitVector3d:
    """A point on the unit sphere as a Cartesian triple."""

    x: float
    y: float
    z: float

    @classmethod
    def normalize(cls, x: float, y: float, z: float) -> "UnitVector3d":
        n = math.sqrt(x * x + y * y + z * z)
        if n == 0.0 or not math.isfinite(n):
            raise ValueError("cannot normalize a zero or non-finite vector")
        return cls(x / n, y / n, z / n)

    @classmethod
    def from_lonlat(cls, lon_deg: float, lat_deg: float) -> "UnitVector3d":
        lon = math.radians(float(lon_deg))
        lat = math.radians(float(lat_deg))
        c = math.cos(lat)
        return cls(c * math.cos(lon), c * math.sin(lon), math.sin(lat))

    @classmethod
    def from_tensor(cls, t: Tensor) -> "UnitVector3d":
        t = torch.as_tensor(t, dtype=torch.float64).reshape(-1)
        if t.numel() != 3:
            raise ValueError("vector tensor must have exactly 3 elements")
        return cls.normalize(*(float(c) for c in t.tolist()))

    @property
    def lon_deg(self) -> float:
        if self.x == 0.0 and self.y == 0.0:
            return 0.0
        return math.degrees(math.atan2(self.y, self.x)) % 360.0

    @property
    def lat_deg(self) -> float:
        return math.degrees(math.asin(max(-1.0, min(1.0, self.z))))

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def __neg__(self) -> "UnitVector3d":
        return UnitVector3d(-self.x, -self.y, -self.z)

    def dot(self, other: "UnitVector3d") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "UnitVector3d") -> tuple[float, float, float]:
        """Unnormalized cross product."""
        return (
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def midpoint(self, other: "UnitVector3d") -> "UnitVector3d":
        """Normalized sum, i.e. the midpoint of the minor arc to `other`."""
        return UnitVector3d.normalize(self.x + other.x, self.y + other.y, self.z + other.z)

    def angle_to(self, other: "UnitVector3d") -> float:
        """Angular separation in radians."""
        cx, cy, cz = self.cross(other)
        return math.atan2(math.sqrt(cx * cx + cy * cy + cz * cz), self.dot(other))

    def almost_equal(self, other: "UnitVector3d", atol: float = 1e-12) -> bool:
        return (
            abs(self.x - other.x) <= atol
            and abs(self.y - other.y) <= atol
            and abs(self.z - other.z) <= atol
        )

    def to_tensor(self) -> Tensor:
        return torch.tensor((self.x, self.y, self.z), dtype=torch.float64)


def _orientation_exact(a, b, c) -> int:
    ax, ay, az = (Fraction(v) for v in a)
    bx, by, bz = (Fraction(v) for v in b)
    cx, cy, cz = (Fraction(v) for v in c)
    det = ax * (by * cz - bz * cy) + ay * (bz * cx - bx * cz) + az * (bx * cy - by * cx)
    return (det > 0) - (det < 0)


def orientation(a: UnitVector3d, b: UnitVector3d, c: UnitVector3d) -> int:
    """
    Sign of the triple product a . (b x c).

    Positive when a, b, c wind counter-clockwise seen from outside the sphere,
    equivalently when `a` lies to the left of the great-circle arc b -> c.
    Zero is exact: ambiguous float results are re-evaluated in rational
    arithmetic.
    """
    ax, ay, az = a.x, a.y, a.z
    bx, by, bz = b.x, b.y, b.z
    cx, cy, cz = c.x, c.y, c.z
    p0 = by * cz
    p1 = bz * cy
    p2 = bz * cx
    p3 = bx * cz
    p4 = bx * cy
    p5 = by * cx
    det = ax * (p0 - p1) + ay * (p2 - p3) + az * (p4 - p5)
    permanent = (
        abs(ax) * (abs(p0) + abs(p1))
        + abs(ay) * (abs(p2) + abs(p3))
        + abs(az) * (abs(p4) + abs(p5))
    )
    if det > _ORIENTATION_REL_ERROR * permanent:
        return 1
    if det < -_ORIENTATION_REL_ERROR * permanent:
        return -1
    return _orientation_exact((ax, ay, az), (bx, by, bz), (cx, cy, cz))


def orientation_tensor(a: Tensor, b: Tensor, c: Tensor) -> Tensor:
    """
    Batched `orientation` over broadcastable `[..., 3]` float64 tensors.

    Returns an int64 tensor of signs in {-1, 0, 1}. Entries whose float
    result is within the error bound fall back to the exact scalar path, so
    ties resolve identically to `orientation`.
    """
    a_t = torch.as_tensor(a, dtype=torch.float64)
    b_t = torch.as_tensor(b, dtype=torch.float64)
    c_t = torch.as_tensor(c, dtype=torch.float64)
    if a_t.shape[-1] != 3 or b_t.shape[-1] != 3 or c_t.shape[-1] != 3:
        raise ValueError("vectors must have last dimension size 3")
    a_t, b_t, c_t = torch.broadcast_tensors(a_t, b_t, c_t)

    ax, ay, az = a_t.unbind(-1)
    bx, by, bz = b_t.unbind(-1)
    cx, cy, cz = c_t.unbind(-1)
    p0 = by * cz
    p1 = bz * cy
    p2 = bz * cx
    p3 = bx * cz
    p4 = bx * cy
    p5 = by * cx
    det = ax * (p0 - p1) + ay * (p2 - p3) + az * (p4 - p5)
    permanent = (
        ax.abs() * (p0.abs() + p1.abs())
        + ay.abs() * (p2.abs() + p3.abs())
        + az.abs() * (p4.abs() + p5.abs())
    )
    bound = _ORIENTATION_REL_ERROR * permanent
    sign = (det > bound).to(torch.int64) - (det < -bound).to(torch.int64)

    ambiguous = (det <= bound) & (det >= -bound)
    if bool(ambiguous.any()):
        flat_sign = sign.reshape(-1)
        flat_a = a_t.reshape(-1, 3)
        flat_b = b_t.reshape(-1, 3)
        flat_c = c_t.reshape(-1, 3)
        for k in torch.nonzero(ambiguous.reshape(-1), as_tuple=False).flatten().tolist():
            flat_sign[k] = _orientation_exact(
                flat_a[k].tolist(), flat_b[k].tolist(), flat_c[k].tolist()
            )
        sign = flat_sign.reshape(det.shape)
    return sign


def normalize_tensor(vectors: Tensor) -> Tensor:
    """Normalize `[..., 3]` vectors, summing squares in x, y, z order."""
    sq = vectors[..., 0] * vectors[..., 0] + vectors[..., 1] * vectors[..., 1] + vectors[..., 2] * vectors[..., 2]
    return vectors / torch.sqrt(sq).unsqueeze(-1)


def _as_float_tensor(x: Tensor | float) -> Tensor:
    return torch.as_tensor(x).to(dtype=torch.float64)


def lonlat_to_unit_xyz(lon_deg: Tensor | float, lat_deg: Tensor | float) -> Tensor:
    """Convert longitude/latitude in degrees to unit Cartesian vectors [..., 3]."""
    lon_t = _as_float_tensor(lon_deg)
    lat_t = _as_float_tensor(lat_deg)
    lon_t, lat_t = torch.broadcast_tensors(lon_t, lat_t)
    lon = torch.deg2rad(lon_t)
    lat = torch.deg2rad(lat_t)
    c = torch.cos(lat)
    return torch.stack((c * torch.cos(lon), c * torch.sin(lon), torch.sin(lat)), dim=-1)


def unit_xyz_to_lonlat(vectors: Tensor) -> tuple[Tensor, Tensor]:
    """Convert Cartesian vectors [..., 3] to longitude in [0, 360) and latitude, in degrees."""
    v = torch.as_tensor(vectors, dtype=torch.float64)
    if v.shape[-1] != 3:
        raise ValueError("vectors must have last dimension size 3")
    n = torch.linalg.norm(v, dim=-1).clamp_min(1e-15)
    x = v[..., 0] / n
    y = v[..., 1] / n
    z = v[..., 2] / n
    lon = torch.remainder(torch.rad2deg(torch.atan2(y, x)), 360.0)
    lat = torch.rad2deg(torch.asin(torch.clamp(z, -1.0, 1.0)))
    return lon, lat


__all__ = [
    "UnitVector3d",
    "lonlat_to_unit_xyz",
    "normalize_tensor",
    "orientation",
    "orientation_tensor",
    "unit_xyz_to_lonlat",
]
