#!/usr/bin/env python
"""Write sum / sum-of-squares PFM pairs for two synthetic estimators."""
from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np

from bias_detection.imaging.pfm import write_pfm
from bias_detection.synthetic import accumulate_moments, reference_image


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create synthetic moment images.")
    parser.add_argument("--output-dir", type=Path, default=Path("data/synthetic_moments"))
    parser.add_argument("--width", type=int, default=64)
    parser.add_argument("--height", type=int, default=64)
    parser.add_argument("--spp-1", type=int, default=64)
    parser.add_argument("--spp-2", type=int, default=64)
    parser.add_argument("--bias", type=float, default=1.0, help="Multiplier on estimator 2")
    parser.add_argument("--seed", type=int, default=42)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    rng = np.random.default_rng(args.seed)
    image = reference_image(args.width, args.height)

    outputs = {
        "1": accumulate_moments(image, args.spp_1, rng),
        "2": accumulate_moments(image, args.spp_2, rng, bias=args.bias),
    }
    for tag, (total, total_sq) in outputs.items():
        sum_path = args.output_dir / f"estimator_{tag}_sum.pfm"
        sumsq_path = args.output_dir / f"estimator_{tag}_sumsq.pfm"
        write_pfm(sum_path, total)
        write_pfm(sumsq_path, total_sq)
        print("Wrote", sum_path)
        print("Wrote", sumsq_path)

    print(
        "Run: python -m bias_detection.detect "
        f"{args.output_dir}/estimator_1_sum.pfm {args.output_dir}/estimator_1_sumsq.pfm {args.spp_1} "
        f"{args.output_dir}/estimator_2_sum.pfm {args.output_dir}/estimator_2_sumsq.pfm {args.spp_2}"
    )


if __name__ == "__main__":
    main()
