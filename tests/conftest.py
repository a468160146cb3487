from __future__ import annotations

from pathlib import Path

import pytest

from minipack.assets import AssetBuilder
from minipack.fs import FileSystem
from minipack.ids import IdentityAllocator
from tests._fixtures.project_builder import ProjectBuilder
from tests._fixtures.transformers import RequireScanTransformer


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def scan_transformer() -> RequireScanTransformer:
    return RequireScanTransformer()


@pytest.fixture
def asset_builder(scan_transformer: RequireScanTransformer) -> AssetBuilder:
    """Asset builder over the real filesystem with a fresh allocator."""
    return AssetBuilder(FileSystem(), scan_transformer, IdentityAllocator())
