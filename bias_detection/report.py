"""Aggregate statistics over per-element p-values."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

import numpy as np


@dataclass
class BiasSummary:
    num_valid: int
    num_total: int
    valid_fraction: float
    median_p_value: float | None
    mean_p_value: float | None
    min_p_value: float | None
    num_significant: int
    alpha: float

    def format_line(self) -> str:
        return f"{self.num_valid}/{self.num_total} Welch samples valid"

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def summarize_p_values(p_values: np.ndarray, alpha: float = 0.05) -> BiasSummary:
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must be in (0, 1), got {alpha!r}")
    values = np.asarray(p_values, dtype=np.float64).ravel()
    valid = values[~np.isnan(values)]
    total = int(values.size)
    if valid.size == 0:
        return BiasSummary(
            num_valid=0,
            num_total=total,
            valid_fraction=0.0,
            median_p_value=None,
            mean_p_value=None,
            min_p_value=None,
            num_significant=0,
            alpha=alpha,
        )
    return BiasSummary(
        num_valid=int(valid.size),
        num_total=total,
        valid_fraction=float(valid.size / total),
        median_p_value=float(np.median(valid)),
        mean_p_value=float(valid.mean()),
        min_p_value=float(valid.min()),
        num_significant=int((valid < alpha).sum()),
        alpha=alpha,
    )


def write_summary(summary: BiasSummary, path: Path, extra: dict[str, object] | None = None) -> None:
    payload = summary.to_dict()
    if extra:
        payload.update(extra)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
