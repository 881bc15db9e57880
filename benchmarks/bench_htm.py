#!/usr/bin/env python3
"""Benchmark torchhtm point indexing and region pixelization."""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path
from typing import Any, Callable

import numpy as np
import torch

from torchhtm import ConvexPolygon, HtmPixelization, SphericalCap, UnitVector3d


def _resolve_device(choice: str) -> torch.device:
    if choice == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")
    if choice == "cuda" and not torch.cuda.is_available():
        raise RuntimeError("CUDA requested but unavailable")
    return torch.device(choice)


def _sync(device: torch.device) -> None:
    if device.type == "cuda":
        torch.cuda.synchronize(device=device)


def _bench(fn: Callable[[], Any], runs: int, device: torch.device | None = None) -> float:
    fn()
    if device is not None:
        _sync(device)
    samples: list[float] = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn()
        if device is not None:
            _sync(device)
        samples.append(time.perf_counter() - t0)
    return float(np.median(samples))


def _sample_lonlat(n: int, seed: int) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    lon = rng.uniform(0.0, 360.0, size=n)
    lat = np.degrees(np.arcsin(rng.uniform(-1.0, 1.0, size=n)))
    return lon, lat


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--level", type=int, default=20)
    parser.add_argument("--region-level", type=int, default=10)
    parser.add_argument("--n-points", type=int, default=100_000)
    parser.add_argument("--n-scalar", type=int, default=2_000)
    parser.add_argument("--max-ranges", type=int, default=64)
    parser.add_argument("--runs", type=int, default=5)
    parser.add_argument("--seed", type=int, default=123)
    parser.add_argument("--device", choices=["auto", "cpu", "cuda"], default="cpu")
    parser.add_argument("--json-out", type=Path, default=Path("bench_results/htm.json"))
    args = parser.parse_args()

    device = _resolve_device(args.device)
    pix = HtmPixelization(args.level)

    lon_np, lat_np = _sample_lonlat(args.n_points, args.seed)
    lon_t = torch.from_numpy(lon_np).to(device=device)
    lat_t = torch.from_numpy(lat_np).to(device=device)

    results: list[dict[str, Any]] = []

    t_tensor = _bench(lambda: pix.index_lonlat(lon_t, lat_t), runs=args.runs, device=device)
    results.append(
        {
            "operation": "index_lonlat",
            "device": device.type,
            "level": args.level,
            "n_points": args.n_points,
            "m_points_s": args.n_points / t_tensor / 1e6,
        }
    )

    scalar_vecs = [
        UnitVector3d.from_lonlat(lo, la)
        for lo, la in zip(lon_np[: args.n_scalar].tolist(), lat_np[: args.n_scalar].tolist())
    ]

    def _scalar_loop() -> None:
        for v in scalar_vecs:
            pix.index(v)

    t_scalar = _bench(_scalar_loop, runs=max(2, args.runs // 2))
    results.append(
        {
            "operation": "index_scalar_loop",
            "device": "cpu",
            "level": args.level,
            "n_points": len(scalar_vecs),
            "k_points_s": len(scalar_vecs) / t_scalar / 1e3,
        }
    )

    region_pix = HtmPixelization(args.region_level)
    regions = {
        "cap_1deg": SphericalCap.from_lonlat(125.0, -30.0, 1.0),
        "polygon_2deg": ConvexPolygon.from_lonlat([10.0, 12.0, 12.0, 10.0], [-1.0, -1.0, 1.0, 1.0]),
    }
    for name, region in regions.items():
        for mode in ("envelope", "interior"):
            search = getattr(region_pix, mode)
            t_full = _bench(lambda: search(region), runs=args.runs)
            t_compact = _bench(lambda: search(region, args.max_ranges), runs=args.runs)
            ranges = search(region)
            results.append(
                {
                    "operation": f"{mode}_{name}",
                    "device": "cpu",
                    "level": args.region_level,
                    "n_ranges": len(ranges),
                    "n_pixels": ranges.cardinality(),
                    "queries_s": 1.0 / t_full,
                    "queries_s_compacted": 1.0 / t_compact,
                }
            )

    for row in results:
        line = ", ".join(f"{k}={v}" for k, v in row.items())
        print(line)

    args.json_out.parent.mkdir(parents=True, exist_ok=True)
    args.json_out.write_text(json.dumps(results, indent=2), encoding="utf-8")
    print(f"\nJSON: {args.json_out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
