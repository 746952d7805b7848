#!/usr/bin/env python
"""Detect bias between two Monte Carlo estimates with Welch's t-test."""
from __future__ import annotations

import argparse
import sys
import time
from dataclasses import asdict
from pathlib import Path

from bias_detection.errors import BiasDetectionError
from bias_detection.imaging.visualization import (
    save_p_value_histogram,
    save_p_value_image,
    scale_image,
)
from bias_detection.pipeline import BiasDetectionConfig, MomentImages, detect_bias
from bias_detection.report import write_summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Detecting bias with Welch's t-test.")
    parser.add_argument("img_1_sum", type=Path, help="First image containing sum")
    parser.add_argument(
        "img_1_sumsq", type=Path, help="First image containing sum of squared elements"
    )
    parser.add_argument("img_1_spp", type=int, help="Image 1 number of samples")
    parser.add_argument("img_2_sum", type=Path, help="Second image containing sum")
    parser.add_argument(
        "img_2_sumsq", type=Path, help="Second image containing sum of squared elements"
    )
    parser.add_argument("img_2_spp", type=int, help="Image 2 number of samples")
    parser.add_argument("-s", "--scale", type=float, default=1.0, help="Scale output image")
    parser.add_argument("-o", "--output", type=Path, default=Path("image.png"), help="Output image")
    parser.add_argument("--histogram", type=Path, default=None, help="Optional p-value histogram")
    parser.add_argument("--histogram-bins", type=int, default=32)
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON summary")
    parser.add_argument("--alpha", type=float, default=0.05)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.scale <= 0:
        parser.error(f"--scale must be positive, got {args.scale}")
    if args.workers < 1:
        parser.error(f"--workers must be at least 1, got {args.workers}")
    if not 0.0 < args.alpha < 1.0:
        parser.error(f"--alpha must be in (0, 1), got {args.alpha}")
    if args.histogram_bins < 1:
        parser.error(f"--histogram-bins must be at least 1, got {args.histogram_bins}")
    return args


def run(args: argparse.Namespace) -> None:
    config = BiasDetectionConfig(
        scale=args.scale,
        alpha=args.alpha,
        histogram_bins=args.histogram_bins,
        workers=args.workers,
    )
    start = time.perf_counter()
    first = MomentImages.load(args.img_1_sum, args.img_1_sumsq, args.img_1_spp)
    second = MomentImages.load(args.img_2_sum, args.img_2_sumsq, args.img_2_spp)
    if args.verbose:
        print(
            f"Loaded images | {first.sum_image.width}x{first.sum_image.height} "
            f"| spp {first.spp} vs {second.spp}"
        )

    result = detect_bias(first, second, config)
    if args.verbose:
        print(f"Welch's t-test done in {time.perf_counter() - start:.2f}s")
    print(result.summary.format_line())

    save_p_value_image(scale_image(result.rgb, config.scale), args.output)
    if args.verbose:
        print(f"Saved p-value image to {args.output}")
    if args.histogram is not None:
        save_p_value_histogram(result.p_values, args.histogram, bins=config.histogram_bins)
        if args.verbose:
            print(f"Saved p-value histogram to {args.histogram}")
    if args.summary is not None:
        write_summary(result.summary, args.summary, extra={"config": asdict(config)})
        if args.verbose:
            print(f"Saved summary to {args.summary}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        run(args)
    except (BiasDetectionError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
