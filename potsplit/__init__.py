"""Pot-based expense sharing: split allocation and settlement."""

__version__ = "0.1.0"
