"""
HTM trixel geometry and identifier arithmetic.

An HTM identifier holds 4 bits of root triangle number (8-15) followed by
2*level bits, one pair per subdivision step naming the child (0-3) taken at
that depth. The position `j` of the most significant set bit is therefore
odd and at least 3, and `level = (j - 3) / 2`.
"""

from __future__ import annotations

import operator
from typing import Tuple

import torch
from torch import Tensor

from .core import UnitVector3d, orientation

# Level-24 identifiers stay below 2**53, so they (and the exclusive end of
# the full-sphere range) fit int64 tensors and are exact as float64.
MAX_LEVEL = 24
INVALID_LEVEL = -1

Trixel = Tuple[UnitVector3d, UnitVector3d, UnitVector3d]

# Raw root vertex coordinates; vectors are built on use.
_HTM_ROOT_VERTEX = (
    ((1.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 1.0, 0.0)),
    ((0.0, 1.0, 0.0), (0.0, 0.0, -1.0), (-1.0, 0.0, 0.0)),
    ((-1.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, -1.0, 0.0)),
    ((0.0, -1.0, 0.0), (0.0, 0.0, -1.0), (1.0, 0.0, 0.0)),
    ((1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, -1.0, 0.0)),
    ((0.0, -1.0, 0.0), (0.0, 0.0, 1.0), (-1.0, 0.0, 0.0)),
    ((-1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 1.0, 0.0)),
    ((0.0, 1.0, 0.0), (0.0, 0.0, 1.0), (1.0, 0.0, 0.0)),
)
_ROOT_CACHE: dict[tuple[str, int], Tensor] = {}


def root_vertex_tensor(device: torch.device | None = None) -> Tensor:
    """Root vertices as a float64 tensor of shape [8, 3, 3], cached per device."""
    dev = torch.device("cpu") if device is None else torch.device(device)
    key = (dev.type, -1 if dev.index is None else int(dev.index))
    cached = _ROOT_CACHE.get(key)
    if cached is not None:
        return cached
    t = torch.tensor(_HTM_ROOT_VERTEX, dtype=torch.float64, device=dev)
    _ROOT_CACHE[key] = t
    return t


def _root(r: int) -> Trixel:
    v0, v1, v2 = _HTM_ROOT_VERTEX[r]
    return UnitVector3d(*v0), UnitVector3d(*v1), UnitVector3d(*v2)


def root_trixel(r: int) -> Trixel:
    """Corners of root triangle `r` (identifier 8-15)."""
    r = operator.index(r)
    if r < 8 or r > 15:
        raise ValueError(f"root triangle identifier must be in [8, 15], got {r}")
    return _root(r - 8)


def subdivide(trixel: Trixel) -> Tuple[Trixel, Trixel, Trixel, Trixel]:
    """Split a trixel into its four children, in child-number order."""
    v0, v1, v2 = trixel
    m12 = v1.midpoint(v2)
    m20 = v2.midpoint(v0)
    m01 = v0.midpoint(v1)
    return (
        (v0, m01, m20),
        (v1, m12, m01),
        (v2, m20, m12),
        (m12, m20, m01),
    )


def level(i: int) -> int:
    """Subdivision level of identifier `i`, or -1 if `i` is not an HTM index."""
    i = operator.index(i)
    if i <= 0:
        return INVALID_LEVEL
    j = i.bit_length() - 1
    if (j & 1) == 0 or j == 1:
        return INVALID_LEVEL
    return (j - 3) >> 1


def _checked_level(i: int) -> int:
    lvl = level(i)
    if lvl < 0 or lvl > MAX_LEVEL:
        raise ValueError("Invalid HTM index")
    return lvl


def trixel_for_identifier(i: int) -> Trixel:
    """Replay the subdivision path of `i` from its root triangle."""
    i = operator.index(i)
    shift = 2 * _checked_level(i)
    v0, v1, v2 = _root((i >> shift) & 7)
    for shift in range(shift - 2, -1, -2):
        child = (i >> shift) & 3
        m12 = v1.midpoint(v2)
        m20 = v2.midpoint(v0)
        m01 = v0.midpoint(v1)
        if child == 0:
            v1, v2 = m01, m20
        elif child == 1:
            v0, v1, v2 = v1, m12, m01
        elif child == 2:
            v0, v1, v2 = v2, m20, m12
        else:
            v0, v1, v2 = m12, m20, m01
    return v0, v1, v2


def identifier_to_string(i: int) -> str:
    """Hemisphere letter followed by one base-4 digit per level, root first."""
    i = operator.index(i)
    lvl = _checked_level(i)
    digits = []
    for _ in range(lvl + 1):
        digits.append("0123"[i & 3])
        i >>= 2
    hemisphere = "N" if (i & 1) else "S"
    return hemisphere + "".join(reversed(digits))


def identifier_from_string(s: str) -> int:
    """Parse the output of `identifier_to_string`."""
    if not isinstance(s, str) or len(s) < 2 or len(s) > MAX_LEVEL + 2:
        raise ValueError(f"Invalid HTM index string: {s!r}")
    if s[0] not in ("N", "S"):
        raise ValueError(f"Invalid HTM index string: {s!r}")
    i = 3 if s[0] == "N" else 2
    for ch in s[1:]:
        if ch not in "0123":
            raise ValueError(f"Invalid HTM index string: {s!r}")
        i = (i << 2) | (ord(ch) - ord("0"))
    return i


def _root_number(v: UnitVector3d) -> int:
    x, y, z = v.x, v.y, v.z
    if z < 0.0:
        # Southern hemisphere, roots S0-S3.
        if y > 0.0:
            return 0 if x > 0.0 else 1
        if y == 0.0:
            return 0 if x >= 0.0 else 2
        return 2 if x < 0.0 else 3
    # Northern hemisphere, roots N0-N3.
    if y > 0.0:
        return 7 if x > 0.0 else 6
    if y == 0.0:
        return 7 if x >= 0.0 else 5
    return 5 if x < 0.0 else 4


def identifier_for_vector(v: UnitVector3d, lvl: int) -> int:
    """
    Identifier of the level-`lvl` trixel containing `v`.

    Points on a shared edge go to the lowest-numbered child whose half-plane
    test is non-negative.
    """
    r = _root_number(v)
    v0, v1, v2 = _root(r)
    i = r + 8
    for _ in range(lvl):
        m01 = v0.midpoint(v1)
        m20 = v2.midpoint(v0)
        i <<= 2
        if orientation(v, m01, m20) >= 0:
            v1, v2 = m01, m20
            continue
        m12 = v1.midpoint(v2)
        if orientation(v, m12, m01) >= 0:
            v0, v1, v2 = v1, m12, m01
            i += 1
        elif orientation(v, m20, m12) >= 0:
            v0, v1, v2 = v2, m20, m12
            i += 2
        else:
            v0, v1, v2 = m12, m20, m01
            i += 3
    return i


def parent(i: int) -> int:
    i = operator.index(i)
    if _checked_level(i) == 0:
        raise ValueError("root triangles have no parent")
    return i >> 2


def children(i: int) -> range:
    i = operator.index(i)
    if _checked_level(i) == MAX_LEVEL:
        raise ValueError(f"trixels at level {MAX_LEVEL} cannot be subdivided")
    return range(4 * i, 4 * i + 4)


__all__ = [
    "INVALID_LEVEL",
    "MAX_LEVEL",
    "Trixel",
    "children",
    "identifier_for_vector",
    "identifier_from_string",
    "identifier_to_string",
    "level",
    "parent",
    "root_trixel",
    "root_vertex_tensor",
    "subdivide",
    "trixel_for_identifier",
]
