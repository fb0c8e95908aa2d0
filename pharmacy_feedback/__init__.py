"""Pharmacy customer feedback service."""

__version__ = "1.0.0"
