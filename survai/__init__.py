"""Survai survey platform: offer click tracking and conversion attribution."""

__version__ = "0.1.0"
