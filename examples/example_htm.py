#!/usr/bin/env python3
"""Example of HTM indexing and range queries using torchhtm."""

import torch
import torchhtm
from torchhtm import ConvexPolygon, HtmPixelization, SphericalCap, UnitVector3d


def main():
    # 1. Setup level
    pix = HtmPixelization(10)
    print(f"HTM level={pix.get_level()}, universe={pix.universe()}")

    # 2. Index individual points
    v = UnitVector3d.from_lonlat(37.1, -12.3)
    i = pix.index(v)
    print(f"\nPoint (37.1, -12.3) -> id={i} ({pix.to_string(i)})")
    corners = pix.triangle(i).vertices
    for c in corners:
        print(f"  corner lon={c.lon_deg:.4f}, lat={c.lat_deg:.4f}")

    # 3. Index a batch of points
    lon = torch.tensor([0.5, 90.5, 180.5, 270.5], dtype=torch.float64)
    lat = torch.tensor([45.0, -45.0, 10.0, -80.0], dtype=torch.float64)
    ids = pix.index_lonlat(lon, lat)
    print("\nBatch lookup:")
    for lo, la, j in zip(lon, lat, ids):
        print(f"  lon={lo:.1f}, lat={la:.1f} -> {HtmPixelization.as_string(j.item())}")

    # 4. Cap query, exact and bounded to a few ranges
    cap = SphericalCap.from_lonlat(150.0, 2.2, 0.5)
    env = pix.envelope(cap)
    inner = pix.interior(cap)
    bounded = pix.envelope(cap, max_ranges=4)
    print(f"\nCap query (r=0.5 deg): {len(env)} envelope ranges, {len(inner)} interior ranges")
    print(f"  envelope covers {env.cardinality()} trixels, bounded to {bounded.cardinality()}")
    for lo, hi in bounded:
        print(f"  SELECT ... WHERE htm_id >= {lo} AND htm_id < {hi}")

    # 5. Polygon query, as a pixel tensor
    poly = ConvexPolygon.from_lonlat([10.0, 10.5, 10.5, 10.0], [0.0, 0.0, 0.5, 0.5])
    pixels = pix.envelope(poly).pixels()
    print(f"\nPolygon envelope: {pixels.numel()} trixels, first {pixels[:4].tolist()}")

    # 6. Settings from the environment (TORCHHTM_LEVEL, TORCHHTM_MAX_RANGES, ...)
    cfg = torchhtm.PixelizationConfig.from_env()
    cfg.apply()
    print(f"\n{cfg} -> {HtmPixelization.from_config(cfg)}")


if __name__ == "__main__":
    main()
