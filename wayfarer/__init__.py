"""Wayfarer: travel planning backend with package scoring and price-drop alerts."""

__version__ = "0.1.0"
