"""Error taxonomy for bundling runs.

Every error here is fatal: nothing is retried and no partial bundle is
written. The CLI and the dev service translate them into a single diagnostic.
"""

from __future__ import annotations

from typing import Optional


class BundleError(RuntimeError):
    """Base class for failures that abort a bundling run."""


class ReadError(BundleError):
    """Raised when a module file is missing, unreadable or not valid UTF-8."""

    def __init__(self, path: str, reason: str, *, importer: Optional[str] = None) -> None:
        self.path = path
        self.reason = reason
        self.importer = importer
        message = f"Cannot read module {path}: {reason}"
        if importer:
            message += f" (imported from {importer})"
        super().__init__(message)


class _SourceError(BundleError):
    def __init__(self, path: str, line: int, column: int, message: str) -> None:
        self.path = path
        self.line = line
        self.column = column
        self.message = message
        super().__init__(f"{path}:{line}:{column}: {message}")


class ParseError(_SourceError):
    """Raised when module source cannot be parsed into a syntax tree."""


class TransformError(_SourceError):
    """Raised when module syntax cannot be rewritten to the common-module idiom."""


class CycleSuspected(BundleError):
    """Raised when graph discovery exceeds the configured asset ceiling."""

    def __init__(self, limit: int, path: str, *, dedupe: bool = False) -> None:
        self.limit = limit
        self.path = path
        self.dedupe = dedupe
        if dedupe:
            hint = (
                "every module is already built once, so the graph is simply larger than "
                "the ceiling. Raise `max_assets` to bundle it."
            )
        else:
            hint = (
                "a circular or runaway import chain was detected. "
                "Enable deduplication to bundle cyclic imports."
            )
        super().__init__(f"Module graph exceeded {limit} assets while expanding {path}; {hint}")


__all__ = [
    "BundleError",
    "CycleSuspected",
    "ParseError",
    "ReadError",
    "TransformError",
]
