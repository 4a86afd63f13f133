"""Numpy layers with finite-difference gradient checks, plus small example drivers."""

__version__ = "0.1.0"
