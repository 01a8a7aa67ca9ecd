"""Geomarketing location analysis: where to open a bike shop in Germany."""

__version__ = "0.1.0"
