"""CLI entrypoints for minipack commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .bundler import Bundler
from .config import BundleConfig, ConfigError, load_config
from .errors import BundleError
from .logging import configure_logging
from .models import graph_to_dict


def _add_verbosity_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    # Subcommands repeat the flags; SUPPRESS keeps a value given before the
    # subcommand from being reset by the subparser default.
    default: object = argparse.SUPPRESS if suppress_default else False
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Log every module as it is discovered.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Only log warnings and errors.",
    )


def _add_pipeline_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "entry",
        nargs="?",
        default=None,
        help="Entry module (defaults to `entry` in .minipack.yml).",
    )
    parser.add_argument(
        "--config",
        default=".",
        help="Path to .minipack.yml or the directory holding it (defaults to current directory).",
    )
    parser.add_argument(
        "--no-dedupe",
        dest="dedupe",
        action="store_false",
        default=None,
        help="Build a separate module for every import edge (legacy behaviour).",
    )
    parser.add_argument(
        "--no-export-cache",
        dest="cache_exports",
        action="store_false",
        default=None,
        help="Re-run module bodies on every require instead of caching exports.",
    )
    parser.add_argument(
        "--max-assets",
        type=int,
        default=None,
        help="Abort with a cycle diagnostic once this many modules were discovered.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minipack",
        description="Bundle a JavaScript entry module and its imports into one file.",
    )
    _add_verbosity_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Bundle the entry module and write or print the result.",
    )
    _add_verbosity_options(build_parser, suppress_default=True)
    _add_pipeline_options(build_parser)
    build_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the bundle to this path instead of stdout.",
    )

    graph_parser = subparsers.add_parser(
        "graph",
        help="Print the discovered module graph as JSON.",
    )
    _add_verbosity_options(graph_parser, suppress_default=True)
    _add_pipeline_options(graph_parser)
    graph_parser.add_argument(
        "--include-code",
        action="store_true",
        help="Include transformed module code in the output.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve a freshly built bundle over HTTP for development.",
    )
    _add_verbosity_options(serve_parser, suppress_default=True)
    _add_pipeline_options(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _load_effective_config(args: argparse.Namespace) -> BundleConfig:
    config = load_config(Path(args.config))
    return config.with_overrides(
        dedupe=args.dedupe,
        cache_exports=args.cache_exports,
        max_assets=args.max_assets,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for minipack commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet))

    try:
        config = _load_effective_config(args)
    except ConfigError as exc:
        parser.exit(1, f"minipack: {exc}\n")

    if args.max_assets is not None and args.max_assets < 1:
        parser.exit(1, "minipack: --max-assets must be at least 1\n")

    bundler = Bundler(config)

    if args.command == "build":
        try:
            outcome = bundler.run(args.entry, args.output)
        except (BundleError, ValueError) as exc:
            parser.exit(1, f"minipack build failed: {exc}\n")
        if outcome.output is None:
            sys.stdout.write(outcome.code)
        else:
            print(f"Bundle written to {_relativize(outcome.output)}", file=sys.stderr)
    elif args.command == "graph":
        try:
            graph = bundler.build_graph(args.entry)
        except (BundleError, ValueError) as exc:
            parser.exit(1, f"minipack graph failed: {exc}\n")
        payload = graph_to_dict(graph, include_code=bool(args.include_code))
        print(json.dumps(payload, indent=2))
    elif args.command == "serve":
        from .service import run_service

        entry = args.entry if args.entry is not None else config.entry
        if entry is None:
            parser.exit(1, "minipack serve failed: No entry module given and no `entry` configured\n")
        run_service(entry=str(entry), config=config, host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
