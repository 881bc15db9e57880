import math

import pytest
import torch

from torchhtm.sphere.core import UnitVector3d
from torchhtm.sphere.geom import ConvexPolygon, Region, Relation, SphericalCap
from torchhtm.sphere.trixel import identifier_for_vector, root_trixel, trixel_for_identifier


def _trixel_at(lon: float, lat: float, lvl: int):
    return trixel_for_identifier(identifier_for_vector(UnitVector3d.from_lonlat(lon, lat), lvl))


def _root8_centroid() -> UnitVector3d:
    return UnitVector3d.normalize(1.0, 1.0, -1.0)


def test_regions_satisfy_protocol() -> None:
    assert isinstance(SphericalCap.full(), Region)
    assert isinstance(ConvexPolygon.from_lonlat([0, 10, 10], [0, 0, 10]), Region)


def test_cap_contains() -> None:
    cap = SphericalCap.from_lonlat(120.0, 30.0, 1.0)
    assert cap.contains(UnitVector3d.from_lonlat(120.0, 30.0))
    assert cap.contains(UnitVector3d.from_lonlat(120.0, 30.5))
    assert not cap.contains(UnitVector3d.from_lonlat(120.0, 31.5))
    assert SphericalCap.full().contains(UnitVector3d(0.0, 0.0, -1.0))
    assert not SphericalCap.empty().contains(UnitVector3d(0.0, 0.0, 1.0))


def test_cap_area() -> None:
    assert SphericalCap.full().area() == pytest.approx(4.0 * math.pi)
    assert SphericalCap.from_lonlat(0.0, 90.0, 90.0).area() == pytest.approx(2.0 * math.pi)
    assert SphericalCap.empty().area() == 0.0
    assert SphericalCap.full().area(degrees=True) == pytest.approx(41252.96, rel=1e-6)


def test_cap_rejects_non_finite_radius() -> None:
    with pytest.raises(ValueError):
        SphericalCap(UnitVector3d(0.0, 0.0, 1.0), float("nan"))


def test_cap_relate_root_triangles() -> None:
    small = SphericalCap(_root8_centroid(), 1.0)
    assert small.relate(root_trixel(8)) is Relation.INTERSECTS
    assert small.relate(root_trixel(15)) is Relation.DISJOINT

    # Farthest corner of root 8 from its centroid is ~54.7 degrees away.
    large = SphericalCap(_root8_centroid(), 100.0)
    assert large.relate(root_trixel(8)) is Relation.CONTAINS
    assert SphericalCap(_root8_centroid(), 50.0).relate(root_trixel(8)) is Relation.INTERSECTS

    for r in range(8, 16):
        assert SphericalCap.full().relate(root_trixel(r)) is Relation.CONTAINS
        assert SphericalCap.empty().relate(root_trixel(r)) is Relation.DISJOINT


def test_cap_relate_near_edge() -> None:
    # Center just outside root 8 across its equatorial edge (lat = 0).
    cap = SphericalCap.from_lonlat(45.0, 0.5, 1.0)
    assert cap.relate(root_trixel(8)) is Relation.INTERSECTS
    assert cap.relate(root_trixel(15)) is Relation.INTERSECTS
    assert SphericalCap.from_lonlat(45.0, 0.5, 0.25).relate(root_trixel(8)) is Relation.DISJOINT


def test_point_cap_relation() -> None:
    p = UnitVector3d.from_lonlat(37.1, -12.3)
    cap = SphericalCap(p, 0.0)
    assert cap.contains(p)
    inside = _trixel_at(37.1, -12.3, 6)
    assert cap.relate(inside) is Relation.INTERSECTS
    assert cap.relate(_trixel_at(100.0, 40.0, 6)) is Relation.DISJOINT


def _square() -> ConvexPolygon:
    return ConvexPolygon.from_lonlat([0.0, 10.0, 10.0, 0.0], [0.0, 0.0, 10.0, 10.0])


def test_polygon_contains() -> None:
    poly = _square()
    assert len(poly.vertices) == 4
    assert poly.contains(UnitVector3d.from_lonlat(5.0, 5.0))
    assert not poly.contains(UnitVector3d.from_lonlat(20.0, 5.0))
    assert not poly.contains(UnitVector3d.from_lonlat(5.0, -1.0))
    assert poly.contains(UnitVector3d.from_lonlat(0.0, 0.0))
    assert poly.centroid().almost_equal(UnitVector3d.from_lonlat(5.0, 5.0), atol=1e-2)


def test_polygon_relate() -> None:
    poly = _square()
    assert poly.relate(_trixel_at(5.0, 5.0, 5)) is Relation.CONTAINS
    assert poly.relate(_trixel_at(40.0, 40.0, 5)) is Relation.DISJOINT
    assert poly.relate(_trixel_at(10.0, 5.3, 5)) is Relation.INTERSECTS
    # A trixel that swallows the whole polygon.
    assert poly.relate(root_trixel(15)) is Relation.INTERSECTS
    assert poly.relate(root_trixel(10)) is Relation.DISJOINT


def test_polygon_accepts_closed_ring_and_tensors() -> None:
    closed = ConvexPolygon.from_lonlat([0.0, 10.0, 10.0, 0.0, 0.0], [0.0, 0.0, 10.0, 10.0, 0.0])
    assert closed == _square()
    from_tensors = ConvexPolygon.from_lonlat(
        torch.tensor([0.0, 10.0, 10.0, 0.0]), torch.tensor([0.0, 0.0, 10.0, 10.0])
    )
    assert from_tensors == _square()
    t = _square().to_tensor()
    assert t.shape == (4, 3)
    assert t.dtype == torch.float64


@pytest.mark.parametrize(
    "lon, lat",
    [
        ([0.0, 0.0, 10.0, 10.0], [0.0, 10.0, 10.0, 0.0]),  # clockwise
        ([0.0, 10.0], [0.0, 0.0]),
        ([0.0, 10.0, 5.0, 10.0, 0.0], [0.0, 0.0, 5.0, 10.0, 10.0]),  # reflex vertex
        ([0.0, 5.0, 10.0], [0.0, 0.0, 0.0]),  # collinear
    ],
)
def test_polygon_rejects_bad_vertices(lon, lat) -> None:
    with pytest.raises(ValueError):
        ConvexPolygon.from_lonlat(lon, lat)


def test_polygon_rejects_mismatched_coordinates() -> None:
    with pytest.raises(ValueError):
        ConvexPolygon.from_lonlat([0.0, 10.0, 10.0], [0.0, 0.0])
