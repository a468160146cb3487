"""Transformer doubles that keep graph tests independent of tree-sitter."""

from __future__ import annotations

import re
from typing import List

from minipack.errors import ParseError
from minipack.transform import TransformOptions, Transformer

_REQUIRE = re.compile(r"""require\(\s*["']([^"']+)["']\s*\)""")


class RequireScanTransformer(Transformer):
    """Treats sources as common-module code and finds `require("...")` calls."""

    def __init__(self) -> None:
        self.transformed: List[str] = []

    def extract_dependencies(self, source: str, path: str) -> List[str]:
        for number, line in enumerate(source.splitlines(), start=1):
            column = line.find("@@syntax-error")
            if column != -1:
                raise ParseError(path, number, column + 1, "unexpected syntax")
        return _REQUIRE.findall(source)

    def transform(self, source: str, options: TransformOptions, path: str) -> str:
        self.transformed.append(path)
        return source


__all__ = ["RequireScanTransformer"]
