"""Exceptions raised by the bias detector."""
from __future__ import annotations


class BiasDetectionError(ValueError):
    """Raised when a batch cannot be evaluated at all."""


class InvalidSampleSizeError(BiasDetectionError):
    pass


class InputShapeMismatchError(BiasDetectionError):
    pass


class ImageSizeMismatchError(BiasDetectionError):
    pass


class PfmFormatError(BiasDetectionError):
    pass


class NegativeVarianceError(AssertionError):
    """A sample variance came out negative; the moment accumulators are inconsistent."""
