"""Utility modules for the Instagram integration."""

from .headers import HeaderGenerator

__all__ = ["HeaderGenerator"]
