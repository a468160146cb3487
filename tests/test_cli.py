"""CLI behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from minipack import cli
from minipack.cli import _build_parser
from tests._fixtures.project_builder import ProjectBuilder
from tests._fixtures.transformers import RequireScanTransformer


@pytest.fixture(autouse=True)
def _scan_transformer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI pipelines with the require-scanning transformer."""
    original = cli.Bundler

    def _factory(config):  # type: ignore[no-untyped-def]
        return original(config, transformer=RequireScanTransformer())

    monkeypatch.setattr(cli, "Bundler", _factory)


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "build", "entry.js"])
    assert args.verbose is True
    assert args.command == "build"
    assert args.entry == "entry.js"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["graph", "entry.js", "--verbose"])
    assert args.verbose is True
    assert args.command == "graph"


def test_cli_pipeline_flags_default_to_config() -> None:
    args = _build_parser().parse_args(["build"])
    assert args.entry is None
    assert args.dedupe is None
    assert args.cache_exports is None
    assert args.max_assets is None


def test_cli_pipeline_flags_override() -> None:
    args = _build_parser().parse_args(
        ["build", "a.js", "--no-dedupe", "--no-export-cache", "--max-assets", "50", "-o", "out.js"]
    )
    assert args.dedupe is False
    assert args.cache_exports is False
    assert args.max_assets == 50
    assert args.output == "out.js"


def test_build_prints_bundle_to_stdout(
    project: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project.write({"entry.js": 'console.log("from cli");\n'})
    cli.main(["build", str(project.path("entry.js")), "--config", str(project.path())])
    out = capsys.readouterr().out
    assert 'console.log("from cli");' in out
    assert out.rstrip().endswith("});")


def test_build_writes_output_file(project: ProjectBuilder) -> None:
    project.write({"entry.js": ""})
    target = project.path("dist/out.js")
    cli.main(
        ["build", str(project.path("entry.js")), "-o", str(target), "--config", str(project.path())]
    )
    assert target.exists()


def test_build_uses_entry_from_config(
    project: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project.write({"src/app.js": 'console.log("configured");\n', ".minipack.yml": "entry: src/app.js\n"})
    cli.main(["build", "--config", str(project.path())])
    assert 'console.log("configured");' in capsys.readouterr().out


def test_build_missing_entry_exits_non_zero(
    project: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["build", str(project.path("missing.js")), "--config", str(project.path())])
    assert excinfo.value.code == 1
    assert "Cannot read module" in capsys.readouterr().err


def test_build_cycle_exits_non_zero(
    project: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project.write({"a.js": 'require("./b.js");\n', "b.js": 'require("./a.js");\n'})
    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "build",
                str(project.path("a.js")),
                "--no-dedupe",
                "--max-assets",
                "20",
                "--config",
                str(project.path()),
            ]
        )
    assert excinfo.value.code == 1
    assert "circular" in capsys.readouterr().err


def test_invalid_config_exits_non_zero(project: ProjectBuilder) -> None:
    project.write({".minipack.yml": "- nope\n"})
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["build", "--config", str(project.path())])
    assert excinfo.value.code == 1


def test_graph_prints_json(project: ProjectBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    project.write({"entry.js": 'require("./a.js");\n', "a.js": ""})
    cli.main(["graph", str(project.path("entry.js")), "--config", str(project.path())])
    payload = json.loads(capsys.readouterr().out)

    assert payload["entry"] == str(Path(project.path("entry.js")))
    assert [asset["identity"] for asset in payload["assets"]] == [0, 1]
    assert payload["assets"][0]["mapping"] == {"./a.js": 1}
    assert "code" not in payload["assets"][0]


def test_cli_accepts_quiet_after_command() -> None:
    args = _build_parser().parse_args(["build", "entry.js", "-q"])
    assert args.quiet is True
    assert args.verbose is False
