"""Watermark-bracketed split snapshot reader for CDC pipelines."""

__version__ = "0.1.0"
