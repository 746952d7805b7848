"""Portable float map (PFM) reading and writing."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from bias_detection.errors import PfmFormatError

_HEADERS = {b"PF": 3, b"Pf": 1}


@dataclass(frozen=True)
class PfmImage:
    width: int
    height: int
    channels: int
    data: np.ndarray

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


def _parse_dimensions(line: bytes, path: Path) -> tuple[int, int]:
    parts = line.split()
    if len(parts) != 2:
        raise PfmFormatError(f"{path}: expected 'width height', got {line!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise PfmFormatError(f"{path}: invalid dimensions {line!r}") from exc
    if width <= 0 or height <= 0:
        raise PfmFormatError(f"{path}: invalid dimensions {width}x{height}")
    return width, height


def load_pfm(path: Path) -> PfmImage:
    """Load a PFM file into a float32 ``(height, width, channels)`` array, top row first."""
    path = Path(path)
    with path.open("rb") as handle:
        header = handle.readline().strip()
        if header not in _HEADERS:
            raise PfmFormatError(f"{path}: wrong PFM flag {header!r}")
        channels = _HEADERS[header]
        width, height = _parse_dimensions(handle.readline(), path)
        scale_line = handle.readline().strip()
        try:
            scale = float(scale_line)
        except ValueError as exc:
            raise PfmFormatError(f"{path}: invalid scale {scale_line!r}") from exc
        if scale == 0.0:
            raise PfmFormatError(f"{path}: scale must be non-zero")
        count = width * height * channels
        payload = handle.read(count * 4)

    if len(payload) < count * 4:
        raise PfmFormatError(
            f"{path}: truncated payload ({len(payload)} of {count * 4} bytes)"
        )
    dtype = "<f4" if scale < 0 else ">f4"
    data = np.frombuffer(payload, dtype=dtype).astype(np.float32)
    # PFM stores rows bottom to top.
    data = np.flipud(data.reshape(height, width, channels)).copy()
    return PfmImage(width=width, height=height, channels=channels, data=data)


def write_pfm(path: Path, data: np.ndarray) -> None:
    data = np.asarray(data, dtype=np.float32)
    if data.ndim == 2:
        data = data[:, :, None]
    if data.ndim != 3 or data.shape[2] not in (1, 3):
        raise ValueError(f"PFM data must have shape (H, W), (H, W, 1) or (H, W, 3), got {data.shape}")
    height, width, channels = data.shape
    header = b"PF" if channels == 3 else b"Pf"
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        handle.write(header + b"\n")
        handle.write(f"{width} {height}\n".encode("ascii"))
        handle.write(b"-1.0\n")
        handle.write(np.flipud(data).astype("<f4").tobytes())
