from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .build import build_all
from .config import BuildConfig, debug_enabled
from .console import render_error
from .logging_utils import configure_logging, log_exception
from .patterns import GeneratorSpec

_LOGGER = logging.getLogger("synthforge.cli")
_CONSOLE = Console()


def _config_from_args(args: argparse.Namespace) -> BuildConfig:
    overrides: dict[str, object] = {"generators": tuple(args.names)}
    if args.spec is not None:
        overrides["spec_file"] = args.spec
    if getattr(args, "out_dir", None) is not None:
        overrides["out_dir"] = args.out_dir
    if getattr(args, "bundle", None) is not None:
        overrides["bundle_name"] = args.bundle
    return BuildConfig.model_validate(overrides)


def _catalog_table(specs: list[GeneratorSpec]) -> Table:
    table = Table(title="Generators")
    table.add_column("name", style="bold")
    table.add_column("ugen")
    table.add_column("parameters (absolute index)")
    for spec in specs:
        order = ", ".join(f"{i}:{name}" for i, name in enumerate(spec.parameter_names))
        table.add_row(spec.name, spec.ugen, order)
    return table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="synthforge",
        description="Generate SuperCollider .scsyndef files without sclang.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Build and write synthdef files.")
    generate.add_argument("names", nargs="*", help="Generators to build (default: all).")
    generate.add_argument("--out-dir", type=Path, default=None)
    generate.add_argument("--spec", type=Path, default=None, help="JSON list of generator specs.")
    generate.add_argument("--bundle", type=str, default=None, help="Write one multi-def file.")

    listing = sub.add_parser("list", help="Show generators and their parameter order.")
    listing.add_argument("names", nargs="*")
    listing.add_argument("--spec", type=Path, default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        config = _config_from_args(args)

        if args.command == "generate":
            paths = build_all(
                config.resolve_specs(),
                config.out_dir,
                bundle_name=config.bundle_name,
            )
            for path in paths:
                _CONSOLE.print(f"  {path.name} ... ok ({path.stat().st_size} bytes)")
            _CONSOLE.print(f"Wrote {len(paths)} file(s) to {config.out_dir}")
            return 0

        if args.command == "list":
            _CONSOLE.print(_catalog_table(config.resolve_specs()))
            return 0

        parser.print_help()
        return 1
    except Exception as exc:
        _LOGGER.warning("synthforge CLI failed: %s", exc, exc_info=debug_enabled())
        log_exception("synthforge CLI", exc)
        render_error("synthforge CLI", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
