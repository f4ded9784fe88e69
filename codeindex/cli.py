"""CLI entrypoints for codeindex commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .logging import FailureTally, configure_logging, get_logger
from .pipeline import ExtractionPipeline
from .registry import RegistryError, StaticComponentRegistry
from .stores import UnitStore


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeindex",
        description="Build a structural index of a Rails application's components.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract channels, scheduled jobs, services and view components.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    extract_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the application root (defaults to current directory).",
    )
    extract_parser.add_argument(
        "--output",
        help="Directory for the JSON output (defaults to tmp/codeindex under the root).",
    )
    extract_parser.add_argument(
        "--extractor",
        action="append",
        dest="extractors",
        metavar="NAME",
        help="Run only the named extractor; repeat to select several.",
    )
    extract_parser.add_argument(
        "--registry",
        help="Component registry manifest (YAML or JSON) to use instead of a source pre-scan.",
    )
    extract_parser.add_argument(
        "--concurrent",
        action="store_true",
        default=None,
        help="Run extractors in worker threads.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP extraction service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codeindex commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "extract":
        _run_extract(parser, args)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_extract(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    root = Path(args.path).expanduser().resolve()
    if not root.is_dir():
        parser.exit(1, f"Application root not found: {root}\n")

    try:
        config = load_config(root)
        configure_logging(
            verbose=bool(args.verbose), log_file=config.logging.file, levels=config.logging.levels
        )
        registry = None
        if args.registry:
            registry = StaticComponentRegistry.from_manifest(Path(args.registry), root=root)
        pipeline = ExtractionPipeline(registry=registry, concurrent=args.concurrent)
        tally = FailureTally()
        logger = get_logger()
        logger.addHandler(tally)
        try:
            run = pipeline.run(root, enabled=args.extractors, config=config)
        finally:
            logger.removeHandler(tally)
    except (ConfigError, RegistryError, ValueError) as exc:
        parser.exit(1, f"codeindex extract failed: {exc}\n")

    output_dir = Path(args.output).expanduser() if args.output else config.output_directory
    UnitStore(output_dir).write(run)

    for kind, count in sorted(run.counts.items()):
        print(f"{kind}: {count}")
    if run.failures:
        print(f"{len(run.failures)} failure(s); run with --verbose for details.")
        for line in tally.summary():
            print(f"  {line}")
    print(f"Index written to {_relativize(output_dir)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
