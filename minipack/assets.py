"""Asset construction for individual module files."""

from __future__ import annotations

from typing import Optional

from .errors import ReadError
from .fs import FileSystem
from .ids import IdentityAllocator
from .logging import get_logger
from .models import Asset
from .transform import TransformOptions, Transformer


class AssetBuilder:
    """Reads, parses and transforms one module into an :class:`Asset`.

    The builder never recurses into dependencies; discovery belongs to the
    graph builder. The returned asset carries an empty mapping.
    """

    def __init__(
        self,
        fs: FileSystem,
        transformer: Transformer,
        allocator: IdentityAllocator,
        options: TransformOptions | None = None,
    ) -> None:
        self.fs = fs
        self.transformer = transformer
        self.allocator = allocator
        self.options = options or TransformOptions()
        self.logger = get_logger("assets")

    def build(self, path: str, *, importer: Optional[str] = None) -> Asset:
        try:
            source = self.fs.read_text(path)
        except ReadError as exc:
            if importer is None:
                raise
            raise ReadError(exc.path, exc.reason, importer=importer) from exc

        dependencies = self.transformer.extract_dependencies(source, path)
        code = self.transformer.transform(source, self.options, path)
        # Identities are only spent on modules that parsed cleanly.
        identity = self.allocator.next()
        self.logger.debug(
            "Built asset %d for %s (%d dependencies)", identity, path, len(dependencies)
        )
        return Asset(
            identity=identity,
            path=path,
            raw_dependencies=list(dependencies),
            code=code,
        )


__all__ = ["AssetBuilder"]
