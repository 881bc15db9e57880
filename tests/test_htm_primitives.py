import math

import numpy as np
import pytest
import torch

from torchhtm.sphere.core import (
    UnitVector3d,
    lonlat_to_unit_xyz,
    orientation,
    orientation_tensor,
    unit_xyz_to_lonlat,
)


def _random_unit_vectors(n: int, seed: int) -> list[UnitVector3d]:
    rng = np.random.default_rng(seed)
    xyz = rng.normal(size=(n, 3))
    return [UnitVector3d.normalize(*row) for row in xyz.tolist()]


def test_orientation_of_axes() -> None:
    x = UnitVector3d(1.0, 0.0, 0.0)
    y = UnitVector3d(0.0, 1.0, 0.0)
    z = UnitVector3d(0.0, 0.0, 1.0)
    assert orientation(x, y, z) == 1
    assert orientation(y, z, x) == 1
    assert orientation(x, z, y) == -1
    assert orientation(x, x, y) == 0
    assert orientation(x, y, -x) == 0


def test_orientation_repeated_vector_is_exactly_zero() -> None:
    vecs = _random_unit_vectors(200, seed=3)
    for a, b in zip(vecs[::2], vecs[1::2]):
        assert orientation(a, a, b) == 0
        assert orientation(a, b, a) == 0
        assert orientation(b, a, a) == 0
        assert orientation(a, b, -a) == 0


def test_orientation_is_antisymmetric() -> None:
    vecs = _random_unit_vectors(300, seed=11)
    for a, b, c in zip(vecs[::3], vecs[1::3], vecs[2::3]):
        s = orientation(a, b, c)
        assert s in (-1, 1)
        assert orientation(b, c, a) == s
        assert orientation(b, a, c) == -s


def test_orientation_tensor_matches_scalar() -> None:
    vecs = _random_unit_vectors(300, seed=5)
    a = vecs[0::3]
    b = vecs[1::3]
    c = vecs[2::3]
    # Mix in degenerate triples so the exact fallback is exercised.
    a = a + a[:10]
    b = b + a[:10]
    c = c + c[:10]
    at = torch.stack([v.to_tensor() for v in a])
    bt = torch.stack([v.to_tensor() for v in b])
    ct = torch.stack([v.to_tensor() for v in c])
    got = orientation_tensor(at, bt, ct)
    exp = torch.tensor([orientation(p, q, r) for p, q, r in zip(a, b, c)], dtype=torch.int64)
    assert got.dtype == torch.int64
    assert torch.equal(got, exp)
    assert torch.all(got[-10:] == 0)


def test_orientation_tensor_rejects_bad_shape() -> None:
    with pytest.raises(ValueError):
        orientation_tensor(torch.zeros(4, 2), torch.zeros(4, 2), torch.zeros(4, 2))


def test_unit_vector_normalize_and_midpoint() -> None:
    v = UnitVector3d.normalize(3.0, 0.0, 4.0)
    assert v.almost_equal(UnitVector3d(0.6, 0.0, 0.8), atol=1e-15)
    m = UnitVector3d(1.0, 0.0, 0.0).midpoint(UnitVector3d(0.0, 1.0, 0.0))
    assert m.almost_equal(UnitVector3d(math.sqrt(0.5), math.sqrt(0.5), 0.0), atol=1e-15)
    with pytest.raises(ValueError):
        UnitVector3d.normalize(0.0, 0.0, 0.0)
    with pytest.raises(ValueError):
        UnitVector3d(1.0, 0.0, 0.0).midpoint(UnitVector3d(-1.0, 0.0, 0.0))


def test_unit_vector_lonlat_accessors() -> None:
    v = UnitVector3d.from_lonlat(250.0, -33.0)
    assert v.lon_deg == pytest.approx(250.0, abs=1e-12)
    assert v.lat_deg == pytest.approx(-33.0, abs=1e-12)
    pole = UnitVector3d(0.0, 0.0, 1.0)
    assert pole.lon_deg == 0.0
    assert pole.lat_deg == pytest.approx(90.0)
    assert UnitVector3d(1.0, 0.0, 0.0).angle_to(UnitVector3d(0.0, 0.0, -1.0)) == pytest.approx(math.pi / 2)


def test_lonlat_xyz_roundtrip() -> None:
    rng = np.random.default_rng(123)
    lon = torch.from_numpy(rng.uniform(0.0, 360.0, size=1000)).to(torch.float64)
    lat = torch.from_numpy(np.degrees(np.arcsin(rng.uniform(-1.0, 1.0, size=1000)))).to(torch.float64)
    xyz = lonlat_to_unit_xyz(lon, lat)
    assert xyz.shape == (1000, 3)
    torch.testing.assert_close(torch.linalg.norm(xyz, dim=-1), torch.ones(1000, dtype=torch.float64))
    lon2, lat2 = unit_xyz_to_lonlat(xyz)
    dlon = torch.remainder(lon2 - lon + 180.0, 360.0) - 180.0
    torch.testing.assert_close(dlon, torch.zeros_like(dlon), atol=1e-9, rtol=0.0)
    torch.testing.assert_close(lat2, lat, atol=1e-9, rtol=0.0)


def test_lonlat_xyz_matches_astropy() -> None:
    coordinates = pytest.importorskip("astropy.coordinates")
    units = pytest.importorskip("astropy.units")
    rng = np.random.default_rng(7)
    lon = rng.uniform(0.0, 360.0, size=64)
    lat = np.degrees(np.arcsin(rng.uniform(-1.0, 1.0, size=64)))
    sc = coordinates.SkyCoord(ra=lon * units.deg, dec=lat * units.deg, frame="icrs")
    exp = np.stack(
        [sc.cartesian.x.value, sc.cartesian.y.value, sc.cartesian.z.value], axis=-1
    )
    got = lonlat_to_unit_xyz(torch.from_numpy(lon), torch.from_numpy(lat))
    torch.testing.assert_close(got, torch.from_numpy(exp), atol=1e-12, rtol=0.0)
