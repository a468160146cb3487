"""Tests for breadth-first graph construction."""

from __future__ import annotations

import os

import pytest

from minipack.assets import AssetBuilder
from minipack.errors import CycleSuspected, ParseError, ReadError
from minipack.fs import FileSystem
from minipack.graph import GraphBuilder
from minipack.ids import IdentityAllocator
from tests._fixtures.project_builder import ProjectBuilder
from tests._fixtures.transformers import RequireScanTransformer


def _paths_by_identity(graph) -> dict[int, str]:  # type: ignore[no-untyped-def]
    return {asset.identity: os.path.basename(asset.path) for asset in graph}


def test_entry_without_imports_yields_single_asset(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write({"entry.js": 'console.log("alone");\n'})
    graph = GraphBuilder(asset_builder).build(str(project.path("entry.js")))

    assert len(graph) == 1
    assert graph.entry.identity == 0
    assert graph.entry.mapping == {}


def test_breadth_first_identity_order(project: ProjectBuilder, asset_builder: AssetBuilder) -> None:
    project.write(
        {
            "entry.js": 'require("./a.js");\nrequire("./b.js");\n',
            "a.js": 'require("./c.js");\n',
            "b.js": "",
            "c.js": "",
        }
    )
    graph = GraphBuilder(asset_builder).build(str(project.path("entry.js")))

    assert _paths_by_identity(graph) == {0: "entry.js", 1: "a.js", 2: "b.js", 3: "c.js"}
    assert [asset.identity for asset in graph] == [0, 1, 2, 3]
    assert graph.entry.mapping == {"./a.js": 1, "./b.js": 2}
    assert graph.get(1).mapping == {"./c.js": 3}
    assert graph.get(2).mapping == {}
    assert graph.get(4) is None


def test_every_raw_dependency_has_a_mapping_entry(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write(
        {
            "entry.js": 'require("./lib/x.js");\nrequire("./lib/y.js");\n',
            "lib/x.js": 'require("./y.js");\nrequire("../util.js");\n',
            "lib/y.js": 'require("../util.js");\n',
            "util.js": "",
        }
    )
    graph = GraphBuilder(asset_builder).build(str(project.path("entry.js")))
    for asset in graph:
        assert set(asset.raw_dependencies) == set(asset.mapping)


def test_diamond_import_builds_duplicates_without_dedupe(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write(
        {
            "entry.js": 'require("./a.js");\nrequire("./b.js");\n',
            "a.js": 'require("./shared.js");\n',
            "b.js": 'require("./shared.js");\n',
            "shared.js": "",
        }
    )
    graph = GraphBuilder(asset_builder, dedupe=False).build(str(project.path("entry.js")))

    shared = [asset for asset in graph if asset.path.endswith("shared.js")]
    assert len(graph) == 5
    assert len(shared) == 2
    assert graph.get(1).mapping["./shared.js"] != graph.get(2).mapping["./shared.js"]


def test_diamond_import_shares_identity_with_dedupe(
    project: ProjectBuilder, asset_builder: AssetBuilder, scan_transformer: RequireScanTransformer
) -> None:
    project.write(
        {
            "entry.js": 'require("./a.js");\nrequire("./b.js");\n',
            "a.js": 'require("./shared.js");\n',
            "b.js": 'require("./shared.js");\n',
            "shared.js": "",
        }
    )
    graph = GraphBuilder(asset_builder, dedupe=True).build(str(project.path("entry.js")))

    assert len(graph) == 4
    assert graph.get(1).mapping == {"./shared.js": 3}
    assert graph.get(2).mapping == {"./shared.js": 3}
    assert scan_transformer.transformed.count(str(project.path("shared.js"))) == 1


def test_two_spellings_from_one_importer_stay_separate_without_dedupe(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write(
        {
            "entry.js": 'require("./a.js");\nrequire("./lib/../a.js");\n',
            "a.js": "",
        }
    )
    graph = GraphBuilder(asset_builder, dedupe=False).build(str(project.path("entry.js")))
    assert graph.entry.mapping == {"./a.js": 1, "./lib/../a.js": 2}

    deduped = GraphBuilder(
        AssetBuilder(FileSystem(), RequireScanTransformer(), IdentityAllocator())
    ).build(str(project.path("entry.js")))
    assert deduped.entry.mapping == {"./a.js": 1, "./lib/../a.js": 1}


def test_cycle_without_dedupe_raises_cycle_suspected(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write({"a.js": 'require("./b.js");\n', "b.js": 'require("./a.js");\n'})
    builder = GraphBuilder(asset_builder, dedupe=False, max_assets=25)

    with pytest.raises(CycleSuspected) as excinfo:
        builder.build(str(project.path("a.js")))
    assert excinfo.value.limit == 25
    assert "circular" in str(excinfo.value)
    assert excinfo.value.dedupe is False


def test_large_graph_with_dedupe_reports_ceiling(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write(
        {
            "entry.js": 'require("./a.js");\n',
            "a.js": 'require("./b.js");\n',
            "b.js": 'require("./c.js");\n',
            "c.js": "",
        }
    )
    builder = GraphBuilder(asset_builder, max_assets=3)

    with pytest.raises(CycleSuspected) as excinfo:
        builder.build(str(project.path("entry.js")))
    message = str(excinfo.value)
    assert excinfo.value.dedupe is True
    assert "max_assets" in message
    assert "deduplication" not in message


def test_cycle_with_dedupe_terminates(project: ProjectBuilder, asset_builder: AssetBuilder) -> None:
    project.write({"a.js": 'require("./b.js");\n', "b.js": 'require("./a.js");\n'})
    graph = GraphBuilder(asset_builder).build(str(project.path("a.js")))

    assert len(graph) == 2
    assert graph.entry.mapping == {"./b.js": 1}
    assert graph.get(1).mapping == {"./a.js": 0}


def test_self_import_with_dedupe_maps_to_itself(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write({"entry.js": 'require("./entry.js");\n'})
    graph = GraphBuilder(asset_builder).build(str(project.path("entry.js")))
    assert graph.entry.mapping == {"./entry.js": 0}


def test_missing_entry_raises_read_error(project: ProjectBuilder, asset_builder: AssetBuilder) -> None:
    with pytest.raises(ReadError) as excinfo:
        GraphBuilder(asset_builder).build(str(project.path("missing.js")))
    assert excinfo.value.importer is None


def test_missing_dependency_names_importer(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write({"entry.js": 'require("./nowhere.js");\n'})
    with pytest.raises(ReadError) as excinfo:
        GraphBuilder(asset_builder).build(str(project.path("entry.js")))
    assert excinfo.value.importer == str(project.path("entry.js"))


def test_parse_error_in_dependency_aborts_build(
    project: ProjectBuilder, asset_builder: AssetBuilder
) -> None:
    project.write({"entry.js": 'require("./bad.js");\n', "bad.js": "@@syntax-error\n"})
    with pytest.raises(ParseError) as excinfo:
        GraphBuilder(asset_builder).build(str(project.path("entry.js")))
    assert excinfo.value.path == str(project.path("bad.js"))


def test_extension_probing_collapses_spellings(project: ProjectBuilder) -> None:
    project.write({"entry.js": 'require("./a");\nrequire("./a.js");\n', "a.js": ""})
    builder = AssetBuilder(
        FileSystem(extensions=[".js"]), RequireScanTransformer(), IdentityAllocator()
    )
    graph = GraphBuilder(builder).build(str(project.path("entry.js")))
    assert len(graph) == 2
    assert graph.entry.mapping == {"./a": 1, "./a.js": 1}


def test_max_assets_must_be_positive(asset_builder: AssetBuilder) -> None:
    with pytest.raises(ValueError):
        GraphBuilder(asset_builder, max_assets=0)
