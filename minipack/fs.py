"""Filesystem access and import path resolution."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Sequence

from .errors import ReadError


class FileSystem:
    """Reads module sources, writes bundles and resolves relative imports."""

    def __init__(self, extensions: Sequence[str] | None = None) -> None:
        self.extensions: List[str] = [_normalise_extension(ext) for ext in extensions or ()]

    def read(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except FileNotFoundError as exc:
            raise ReadError(path, "file not found") from exc
        except IsADirectoryError as exc:
            raise ReadError(path, "is a directory") from exc
        except OSError as exc:
            raise ReadError(path, exc.strerror or str(exc)) from exc

    def read_text(self, path: str) -> str:
        data = self.read(path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ReadError(path, f"not valid UTF-8 ({exc.reason})") from exc

    def write(self, path: str, data: bytes) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def absolute(self, path: str) -> str:
        return os.path.normpath(os.path.abspath(os.path.expanduser(path)))

    def resolve_relative(self, base_dir: str, relative: str) -> str:
        """Join ``relative`` onto ``base_dir`` and probe configured extensions.

        Resolution is lexical. When extensions are configured and the joined
        path is not a file, ``path + ext`` and then ``path/index + ext`` are
        tried in order. If nothing matches the lexical path is returned and the
        subsequent read reports the failure.
        """
        joined = os.path.normpath(os.path.join(base_dir, relative))
        if not self.extensions or os.path.isfile(joined):
            return joined
        for candidate in self._candidates(joined):
            if os.path.isfile(candidate):
                return candidate
        return joined

    def _candidates(self, joined: str) -> Iterable[str]:
        for ext in self.extensions:
            yield joined + ext
        for ext in self.extensions:
            yield os.path.join(joined, "index" + ext)


def _normalise_extension(ext: str) -> str:
    ext = ext.strip()
    if ext and not ext.startswith("."):
        return "." + ext
    return ext


__all__ = ["FileSystem"]
