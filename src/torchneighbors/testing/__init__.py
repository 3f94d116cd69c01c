"""Testing utilities for torchneighbors."""

from . import strategies

__all__ = ["strategies"]
