"""Flux Grid: a block placement puzzle engine with chain reactions."""

__version__ = "0.1.0"
