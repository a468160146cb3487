"""Breadth-first dependency graph construction."""

from __future__ import annotations

import os
from collections import deque
from typing import Deque, Dict, List

from .assets import AssetBuilder
from .errors import CycleSuspected
from .logging import get_logger
from .models import Asset, Graph

DEFAULT_MAX_ASSETS = 10_000


class GraphBuilder:
    """Discovers the transitive module set reachable from an entry file.

    With ``dedupe`` enabled every resolved path is built once and later
    imports of it reuse the existing identity, which also lets cyclic imports
    terminate. With ``dedupe`` disabled every import edge builds a fresh asset;
    an import cycle then grows the worklist until ``max_assets`` is exceeded
    and :class:`CycleSuspected` is raised.
    """

    def __init__(
        self,
        asset_builder: AssetBuilder,
        *,
        dedupe: bool = True,
        max_assets: int = DEFAULT_MAX_ASSETS,
    ) -> None:
        if max_assets < 1:
            raise ValueError("max_assets must be at least 1")
        self.asset_builder = asset_builder
        self.dedupe = dedupe
        self.max_assets = max_assets
        self.logger = get_logger("graph")

    def build(self, entry_path: str) -> Graph:
        fs = self.asset_builder.fs
        entry = self.asset_builder.build(fs.absolute(entry_path))

        assets: List[Asset] = [entry]
        known: Dict[str, int] = {entry.path: entry.identity}
        worklist: Deque[Asset] = deque([entry])

        while worklist:
            asset = worklist.popleft()
            base_dir = os.path.dirname(asset.path)
            mapping: Dict[str, int] = {}
            for relative in asset.raw_dependencies:
                resolved = fs.resolve_relative(base_dir, relative)
                if self.dedupe and resolved in known:
                    mapping[relative] = known[resolved]
                    self.logger.debug(
                        "Reused asset %d for %r in %s", known[resolved], relative, asset.path
                    )
                    continue
                if len(assets) >= self.max_assets:
                    raise CycleSuspected(self.max_assets, asset.path, dedupe=self.dedupe)

                child = self.asset_builder.build(resolved, importer=asset.path)
                mapping[relative] = child.identity
                known.setdefault(resolved, child.identity)
                assets.append(child)
                worklist.append(child)
            asset.mapping = mapping

        self.logger.info("Discovered %d modules from %s", len(assets), entry.path)
        return Graph(assets=tuple(assets))


__all__ = ["DEFAULT_MAX_ASSETS", "GraphBuilder"]
