"""Core data models shared across minipack components."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass
class Asset:
    """Build record for a single discovered module."""

    identity: int
    path: str
    raw_dependencies: List[str]
    code: str
    mapping: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Graph:
    """Ordered, closed collection of assets reachable from the entry module."""

    assets: Tuple[Asset, ...]

    def __iter__(self) -> Iterator[Asset]:
        return iter(self.assets)

    def __len__(self) -> int:
        return len(self.assets)

    @property
    def entry(self) -> Asset:
        return self.assets[0]

    def get(self, identity: int) -> Optional[Asset]:
        # Identities are dense and assigned in discovery order.
        if 0 <= identity < len(self.assets):
            return self.assets[identity]
        return None


def asset_to_dict(asset: Asset, *, include_code: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "identity": asset.identity,
        "path": asset.path,
        "dependencies": list(asset.raw_dependencies),
        "mapping": dict(asset.mapping),
    }
    if include_code:
        data["code"] = asset.code
    return data


def graph_to_dict(graph: Graph, *, include_code: bool = False) -> Dict[str, Any]:
    """Return a JSON-ready view of the graph."""
    return {
        "entry": graph.entry.path,
        "assets": [asset_to_dict(asset, include_code=include_code) for asset in graph],
    }
