"""Command-line entry point.

Three subcommands:

* ``serve``    -- run the HTTP service under uvicorn
* ``generate`` -- generate a project zip straight to disk
* ``manifest`` -- list the frameworks and libraries in the manifest
"""

from __future__ import annotations

import argparse
import asyncio
import time
from pathlib import Path

from rich.table import Table

from goforge.config import Settings
from goforge.errors import AppError
from goforge.utils import (
    console,
    format_duration,
    format_size,
    print_error,
    print_success,
    print_summary_table,
    setup_logging,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goforge",
        description="goforge -- Go project scaffolding service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  goforge serve --port 8080\n"
            "  goforge generate --project-name demo-api --module-name github.com/acme/demo-api \\\n"
            "      --framework gin --lib postgres --lib redis --include-example\n"
            "  goforge manifest\n"
        ),
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="JSON settings file, used instead of the GOFORGE_* environment variables",
    )
    parser.add_argument(
        "--manifest",
        default=None,
        help="Path to manifest.json (default: the bundled manifest)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: INFO, or GOFORGE_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit structured JSON logs",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: 8080)")

    generate = sub.add_parser("generate", help="Generate a project archive")
    generate.add_argument("--project-name", required=True, help="Project name, e.g. demo-api")
    generate.add_argument(
        "--module-name", required=True, help="Go module path, e.g. github.com/acme/demo-api"
    )
    generate.add_argument("--framework", required=True, help="Framework id, e.g. gin")
    generate.add_argument(
        "--lib",
        dest="libs",
        action="append",
        default=[],
        help="Library id to include (repeatable)",
    )
    generate.add_argument(
        "--include-example",
        action="store_true",
        help="Add the example domain, repository, usecase and handler layers",
    )
    generate.add_argument("--architecture", default="clean", help="Architecture label")
    generate.add_argument(
        "--output", "-o",
        default=None,
        help="Destination zip (default: ./<project-name>.zip)",
    )

    sub.add_parser("manifest", help="List available frameworks and libraries")
    return parser


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.load(args.settings) if args.settings else Settings.from_env()
    updates: dict[str, object] = {}
    if args.manifest:
        updates["manifest_path"] = Path(args.manifest)
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.log_json:
        updates["log_json"] = True
    if getattr(args, "host", None):
        updates["host"] = args.host
    if getattr(args, "port", None):
        updates["port"] = args.port
    if updates:
        settings = Settings.model_validate({**settings.model_dump(), **updates})
    return settings


def _serve(settings: Settings) -> int:
    import uvicorn

    from goforge.api import create_app

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


def _generate(settings: Settings, args: argparse.Namespace) -> int:
    from goforge.scaffolder import GenerateRequest, ManifestStore, ProjectGenerator

    request = GenerateRequest(
        project_name=args.project_name,
        module_name=args.module_name,
        framework=args.framework,
        libs=args.libs,
        include_example=args.include_example,
        architecture=args.architecture,
    )
    destination = Path(args.output or f"{request.project_name}.zip")

    store = ManifestStore.load(settings.manifest_path)
    generator = ProjectGenerator(store, staging_prefix=settings.staging_prefix)

    start = time.monotonic()
    path = asyncio.run(generator.generate_to_file(request, destination))
    elapsed = time.monotonic() - start

    print_summary_table(
        {
            "Project": request.project_name,
            "Module": request.module_name,
            "Framework": request.framework,
            "Libraries": ", ".join(request.libs) or "-",
            "Example layers": "yes" if request.include_example else "no",
            "Archive": str(path),
            "Size": format_size(path.stat().st_size),
            "Duration": format_duration(elapsed),
        },
        title="Generated project",
    )
    print_success(f"Wrote {path}")
    return 0


def _manifest(settings: Settings) -> int:
    from goforge.scaffolder import ManifestStore

    manifest = ManifestStore.load(settings.manifest_path).manifest

    frameworks = Table(title=f"Frameworks (manifest {manifest.version})", header_style="bold cyan")
    frameworks.add_column("Id", no_wrap=True)
    frameworks.add_column("Name")
    frameworks.add_column("Imports", style="dim")
    for name in sorted(manifest.frameworks):
        fw = manifest.frameworks[name]
        frameworks.add_row(name, fw.display_name or name, "\n".join(fw.imports))

    libs = Table(title="Libraries", header_style="bold cyan")
    libs.add_column("Id", no_wrap=True)
    libs.add_column("Name")
    libs.add_column("Category")
    libs.add_column("Exclusive")
    for name in sorted(manifest.libs):
        lib = manifest.libs[name]
        libs.add_row(
            name, lib.display_name or name, lib.category.value, "yes" if lib.is_radio else ""
        )

    console.print(frameworks)
    console.print(libs)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings(args)
    except (OSError, ValueError) as exc:
        print_error(f"Error: {exc}")
        return 1
    setup_logging(settings.log_level, json_logs=settings.log_json)

    try:
        if args.command == "serve":
            return _serve(settings)
        if args.command == "generate":
            return _generate(settings, args)
        return _manifest(settings)
    except AppError as exc:
        print_error(f"Error: {exc.public_message}")
        return 1
    except ValueError as exc:
        # Request validation (pydantic) errors
        print_error(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
