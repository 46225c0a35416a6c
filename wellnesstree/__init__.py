"""Wellness Tree commerce core: pricing, shipments and AI credits."""

__version__ = "0.1.0"
