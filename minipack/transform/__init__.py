"""Parser/transform collaborators turning module source into bundle-ready code."""

from __future__ import annotations

from .base import TransformOptions, Transformer
from .tree_sitter import TREE_SITTER_AVAILABLE, TreeSitterTransformer

__all__ = [
    "TREE_SITTER_AVAILABLE",
    "TransformOptions",
    "Transformer",
    "TreeSitterTransformer",
]
