"""Pipeline wiring for a single bundling run."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .assets import AssetBuilder
from .config import BundleConfig
from .emitter import BundleEmitter
from .fs import FileSystem
from .graph import GraphBuilder
from .ids import IdentityAllocator
from .logging import get_logger
from .models import Graph
from .transform import TransformOptions, Transformer, TreeSitterTransformer


@dataclass
class BundleOutcome:
    """Result of a bundling run."""

    graph: Graph
    code: str
    output: Optional[Path] = None


class Bundler:
    """Coordinates graph discovery, emission and persistence for one entry file."""

    def __init__(
        self,
        config: BundleConfig | None = None,
        fs: FileSystem | None = None,
        transformer: Transformer | None = None,
    ) -> None:
        self.config = config or BundleConfig(root=Path.cwd())
        self.fs = fs or FileSystem(self.config.extensions)
        self.transformer = transformer or TreeSitterTransformer()
        self.logger = get_logger("bundler")

    def build_graph(self, entry: str | Path | None = None) -> Graph:
        """Discover the module graph using a fresh identity allocator."""
        entry_path = self._resolve_entry(entry)
        asset_builder = AssetBuilder(
            self.fs,
            self.transformer,
            IdentityAllocator(),
            TransformOptions(strict=self.config.strict),
        )
        graph_builder = GraphBuilder(
            asset_builder,
            dedupe=self.config.dedupe,
            max_assets=self.config.max_assets,
        )
        return graph_builder.build(str(entry_path))

    def bundle(self, entry: str | Path | None = None) -> BundleOutcome:
        graph = self.build_graph(entry)
        code = BundleEmitter(cache_exports=self.config.cache_exports).emit(graph)
        return BundleOutcome(graph=graph, code=code)

    def run(
        self, entry: str | Path | None = None, output: str | Path | None = None
    ) -> BundleOutcome:
        """Bundle ``entry`` and write the result when an output path is known."""
        entry_path = self._resolve_entry(entry)
        self.logger.info("Bundling %s", entry_path)
        outcome = self.bundle(entry_path)

        target = Path(output) if output is not None else self.config.output
        if target is not None:
            target = Path(self.fs.absolute(str(target)))
            self.fs.write(str(target), outcome.code.encode("utf-8"))
            outcome.output = target
            self.logger.info(
                "Wrote %d modules to %s (%d bytes)",
                len(outcome.graph),
                target,
                len(outcome.code.encode("utf-8")),
            )
        return outcome

    def _resolve_entry(self, entry: str | Path | None) -> Path:
        if entry is not None:
            return Path(entry)
        if self.config.entry is not None:
            return self.config.entry
        raise ValueError("No entry module given and no `entry` configured")


__all__ = ["BundleOutcome", "Bundler"]
