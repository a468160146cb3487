"""Base classes for parser/transform collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class TransformOptions:
    """Target settings for the common-module rewrite."""

    strict: bool = True


class Transformer(ABC):
    """Contract for collaborators that parse and rewrite module source."""

    @abstractmethod
    def extract_dependencies(self, source: str, path: str) -> List[str]:
        """Return import strings in source order, unresolved and not deduplicated."""

    @abstractmethod
    def transform(self, source: str, options: TransformOptions, path: str) -> str:
        """Return code using the ``require, module, exports`` calling convention."""
