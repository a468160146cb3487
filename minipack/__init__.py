"""minipack: bundle a JavaScript entry module and its imports into one file."""

from __future__ import annotations

from .bundler import BundleOutcome, Bundler
from .errors import BundleError, CycleSuspected, ParseError, ReadError, TransformError
from .models import Asset, Graph

__all__ = [
    "Asset",
    "BundleError",
    "BundleOutcome",
    "Bundler",
    "CycleSuspected",
    "Graph",
    "ParseError",
    "ReadError",
    "TransformError",
]
