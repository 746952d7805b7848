"""Detect bias between two Monte Carlo estimates with Welch's t-test."""

__version__ = "0.2.0"
