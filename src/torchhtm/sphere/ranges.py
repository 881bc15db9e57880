"""Sorted sets of disjoint half-open integer ranges."""

from __future__ import annotations

import operator
from bisect import bisect_left, bisect_right
from typing import Iterable, Iterator, Sequence

import torch
from torch import Tensor

from ..logging import log_range_compaction

# Identifiers are unsigned 64-bit values; the universe is [0, 2**64).
RANGE_END = 1 << 64
_INT64_MAX = (1 << 63) - 1


class RangeSet:
    """
    A set of integers stored as sorted, disjoint, non-adjacent ranges [lo, hi).

    Internally a flat list of boundaries `[lo0, hi0, lo1, hi1, ...]`, strictly
    increasing. An even position is a range start, an odd position a range end,
    which lets insertion and removal be written as a single slice replacement
    around two binary searches.
    """

    __slots__ = ("_bounds",)

    def __init__(self, ranges: Iterable[Sequence[int] | int] = ()):
        self._bounds: list[int] = []
        for r in ranges:
            if isinstance(r, (tuple, list)):
                lo, hi = r
                self.insert(lo, hi)
            else:
                self.insert(r)

    @classmethod
    def full(cls) -> "RangeSet":
        s = cls()
        s._bounds = [0, RANGE_END]
        return s

    @classmethod
    def from_pixels(cls, pixels: Tensor | Sequence[int]) -> "RangeSet":
        """Compress explicit identifiers into ranges."""
        pix = torch.as_tensor(pixels, dtype=torch.int64).reshape(-1)
        s = cls()
        if pix.numel() == 0:
            return s
        pix = torch.unique(pix, sorted=True)
        gap = torch.nonzero(pix[1:] != (pix[:-1] + 1), as_tuple=False).flatten() + 1
        starts = torch.cat([torch.zeros((1,), dtype=torch.int64), gap])
        ends = torch.cat([gap, torch.tensor([pix.numel()], dtype=torch.int64)])
        bounds: list[int] = []
        for lo, hi in zip(pix.index_select(0, starts).tolist(), (pix.index_select(0, ends - 1) + 1).tolist()):
            bounds.extend((lo, hi))
        if bounds[0] < 0:
            raise ValueError("identifiers must be non-negative")
        s._bounds = bounds
        return s

    @classmethod
    def from_tensor(cls, pixel_ranges: Tensor | Sequence[Sequence[int]]) -> "RangeSet":
        """Build a set from an `(N, 2)` array of half-open ranges."""
        ranges = torch.as_tensor(pixel_ranges, dtype=torch.int64)
        if ranges.numel() == 0:
            return cls()
        if ranges.ndim != 2 or ranges.shape[1] != 2:
            raise ValueError("pixel_ranges must have shape (N, 2)")
        return cls(tuple(r) for r in ranges.tolist())

    # -- mutation --------------------------------------------------------

    def insert(self, lo: int, hi: int | None = None) -> None:
        """Add [lo, hi), or the single integer `lo` when `hi` is omitted."""
        lo, hi = _check_range(lo, hi)
        if lo >= hi:
            return
        b = self._bounds
        i = bisect_left(b, lo)
        j = bisect_right(b, hi)
        new = []
        if i % 2 == 0:
            new.append(lo)
        if j % 2 == 0:
            new.append(hi)
        b[i:j] = new

    def erase(self, lo: int, hi: int | None = None) -> None:
        """Remove [lo, hi), or the single integer `lo` when `hi` is omitted."""
        lo, hi = _check_range(lo, hi)
        if lo >= hi:
            return
        b = self._bounds
        i = bisect_left(b, lo)
        j = bisect_right(b, hi)
        new = []
        if i % 2 == 1:
            new.append(lo)
        if j % 2 == 1:
            new.append(hi)
        b[i:j] = new

    def clear(self) -> None:
        self._bounds = []

    def compact(self, max_ranges: int, *, interior: bool = False) -> None:
        """
        Reduce the number of ranges to at most `max_ranges` (0 = unbounded).

        Envelope mode (default) fills the smallest gaps between neighbouring
        ranges, so the set only grows. Interior mode drops the ranges with the
        fewest members, so the set only shrinks. Ties go to the lowest
        position. Filling a gap never changes the size of another gap and
        dropping a range never changes the size of another range, so picking
        the cheapest candidates in one sorted pass is the same as merging one
        pair at a time.
        """
        max_ranges = operator.index(max_ranges)
        if max_ranges < 0:
            raise ValueError("max_ranges must be non-negative (0 means unbounded)")
        n = len(self)
        if max_ranges == 0 or n <= max_ranges:
            return
        excess = n - max_ranges
        b = self._bounds
        if interior:
            by_size = sorted(range(n), key=lambda k: (b[2 * k + 1] - b[2 * k], k))
            drop = set(by_size[:excess])
            self._bounds = [v for k in range(n) if k not in drop for v in (b[2 * k], b[2 * k + 1])]
        else:
            by_gap = sorted(range(n - 1), key=lambda k: (b[2 * k + 2] - b[2 * k + 1], k))
            fill = set(by_gap[:excess])
            bounds = [b[0]]
            for k in range(n - 1):
                if k not in fill:
                    bounds.extend((b[2 * k + 1], b[2 * k + 2]))
            bounds.append(b[-1])
            self._bounds = bounds
        log_range_compaction("interior" if interior else "envelope", n, len(self), max_ranges)

    def simplify(self, n: int) -> None:
        """Round every range outward to multiples of 4**n (n HTM levels coarser)."""
        n = operator.index(n)
        if n <= 0 or not self._bounds:
            return
        if 2 * n >= 64:
            self._bounds = [0, RANGE_END]
            return
        mask = (1 << (2 * n)) - 1
        ranges = list(self)
        self._bounds = []
        for lo, hi in ranges:
            self.insert(lo & ~mask, min((hi + mask) & ~mask, RANGE_END))

    def scale(self, factor: int) -> None:
        """Multiply every bound by `factor`, e.g. 4**k to move k levels finer."""
        factor = operator.index(factor)
        if factor < 1:
            raise ValueError("scale factor must be a positive integer")
        if self._bounds and self._bounds[-1] * factor > RANGE_END:
            raise ValueError("scaled ranges exceed the 64-bit identifier space")
        if factor > 1:
            self._bounds = [v * factor for v in self._bounds]

    # -- queries ---------------------------------------------------------

    def __len__(self) -> int:
        return len(self._bounds) // 2

    def __iter__(self) -> Iterator[tuple[int, int]]:
        b = self._bounds
        for k in range(0, len(b), 2):
            yield b[k], b[k + 1]

    def __contains__(self, i: int) -> bool:
        return self.contains(i)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RangeSet):
            return NotImplemented
        return self._bounds == other._bounds

    __hash__ = None

    def __repr__(self) -> str:
        return f"RangeSet({list(self)!r})"

    def size(self) -> int:
        """Number of ranges."""
        return len(self)

    def empty(self) -> bool:
        return not self._bounds

    def is_full(self) -> bool:
        return self._bounds == [0, RANGE_END]

    def cardinality(self) -> int:
        """Number of integers in the set."""
        b = self._bounds
        return sum(b[k + 1] - b[k] for k in range(0, len(b), 2))

    def contains(self, i: int) -> bool:
        i = operator.index(i)
        return bisect_right(self._bounds, i) % 2 == 1

    def contains_range(self, lo: int, hi: int) -> bool:
        lo, hi = _check_range(lo, hi)
        if lo >= hi:
            return True
        k = bisect_right(self._bounds, lo)
        return k % 2 == 1 and hi <= self._bounds[k]

    def intersects(self, lo: int, hi: int) -> bool:
        lo, hi = _check_range(lo, hi)
        if lo >= hi:
            return False
        b = self._bounds
        k = bisect_right(b, lo)
        if k % 2 == 1:
            return True
        return k < len(b) and b[k] < hi

    def ranges(self) -> list[tuple[int, int]]:
        return list(self)

    # -- set algebra -----------------------------------------------------

    def copy(self) -> "RangeSet":
        s = RangeSet()
        s._bounds = list(self._bounds)
        return s

    def complement(self) -> "RangeSet":
        b = list(self._bounds)
        if b and b[0] == 0:
            b.pop(0)
        else:
            b.insert(0, 0)
        if b and b[-1] == RANGE_END:
            b.pop()
        else:
            b.append(RANGE_END)
        s = RangeSet()
        s._bounds = b
        return s

    def union(self, other: "RangeSet") -> "RangeSet":
        s = self.copy()
        for lo, hi in other:
            s.insert(lo, hi)
        return s

    def difference(self, other: "RangeSet") -> "RangeSet":
        s = self.copy()
        for lo, hi in other:
            s.erase(lo, hi)
        return s

    def intersection(self, other: "RangeSet") -> "RangeSet":
        return self.difference(other.complement())

    def symmetric_difference(self, other: "RangeSet") -> "RangeSet":
        return self.union(other).difference(self.intersection(other))

    __or__ = union
    __and__ = intersection
    __sub__ = difference
    __xor__ = symmetric_difference

    def is_within(self, other: "RangeSet") -> bool:
        return all(other.contains_range(lo, hi) for lo, hi in self)

    def is_disjoint_from(self, other: "RangeSet") -> bool:
        return all(not other.intersects(lo, hi) for lo, hi in self)

    # -- tensor interop --------------------------------------------------

    def to_tensor(self) -> Tensor:
        """Return the ranges as an int64 tensor of shape (N, 2)."""
        if not self._bounds:
            return torch.empty((0, 2), dtype=torch.int64)
        if self._bounds[-1] > _INT64_MAX:
            raise ValueError("range bounds exceed the int64 tensor range")
        return torch.tensor(self._bounds, dtype=torch.int64).reshape(-1, 2)

    def pixels(self) -> Tensor:
        """Expand the ranges into explicit int64 identifiers."""
        ranges = self.to_tensor()
        if ranges.numel() == 0:
            return torch.empty((0,), dtype=torch.int64)
        parts = [torch.arange(lo, hi, dtype=torch.int64) for lo, hi in ranges.tolist()]
        return torch.cat(parts, dim=0)


def _check_range(lo: int, hi: int | None) -> tuple[int, int]:
    lo = operator.index(lo)
    hi = lo + 1 if hi is None else operator.index(hi)
    if lo < 0 or hi > RANGE_END:
        raise ValueError(f"range [{lo}, {hi}) lies outside [0, 2**64)")
    return lo, hi


__all__ = ["RANGE_END", "RangeSet"]
