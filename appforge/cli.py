"""Command-line entry point for appforge.

Examples::

    appforge create my_app --org com.acme --modules auth,api
    appforge create --config appforge.yaml --output ./my_app --overwrite never
    appforge add push --project-dir ./my_app
    appforge list
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.table import Table

from appforge import __version__
from appforge.config import DEFAULT_CONFIG_FILENAME, ForgeConfig, find_project_root
from appforge.context import create_project_context
from appforge.errors import AppForgeError, ConfigError
from appforge.modules.registry import ModuleRegistry
from appforge.scaffolder.engine import ScaffoldEngine, ScaffoldResult
from appforge.utils import console, print_error, print_success, print_summary_table, print_warning

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appforge",
        description="appforge -- compose a Flutter app from reusable modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  appforge create my_app --org com.acme --modules auth,api\n"
            "  appforge create --config appforge.yaml --dry-run\n"
            "  appforge add push --project-dir ./my_app\n"
            "  appforge list\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", parents=[common], help="Scaffold a new project")
    create.add_argument(
        "name",
        nargs="?",
        default=None,
        help="Project (Dart package) name; overrides the name in --config",
    )
    create.add_argument("--org", default=None, help="Organisation id (default: com.example)")
    create.add_argument(
        "--modules",
        default="",
        help="Comma-separated module ids to enable, e.g. auth,api,database",
    )
    create.add_argument(
        "--platforms",
        default="",
        help="Comma-separated target platforms (default: android,ios)",
    )
    create.add_argument("--auth-provider", default=None, help="Provider for the auth module")
    create.add_argument("--config", "-c", default=None, help="Path to an appforge.yaml file")
    create.add_argument(
        "--output", "-o",
        default=None,
        help="Output directory (default: ./<project name>)",
    )
    create.add_argument(
        "--overwrite",
        choices=["ask", "always", "never"],
        default=None,
        help="What to do with files that already exist",
    )
    create.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be written without touching the disk",
    )
    create.add_argument(
        "--no-post-process",
        action="store_true",
        help="Skip dart format, flutter pub get and build_runner",
    )

    add = subparsers.add_parser(
        "add", parents=[common], help="Add a module to an existing project"
    )
    add.add_argument("module", help="Id of the module to add, e.g. push")
    add.add_argument(
        "--project-dir",
        default=None,
        help="Project directory, or a directory below it (default: current directory)",
    )
    add.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without touching the disk",
    )

    subparsers.add_parser("list", parents=[common], help="List the available modules")
    return parser


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


def load_create_config(args: argparse.Namespace) -> ForgeConfig:
    """Build the effective configuration for ``appforge create``.

    Precedence, lowest first: config file (or flags), environment, flags.
    """
    if args.config:
        config = ForgeConfig.load(args.config)
        if args.name:
            config = config.model_copy(
                update={"project": config.project.model_copy(update={"name": args.name})}
            )
    else:
        if not args.name:
            raise ConfigError("A project name is required when --config is not given")
        config = ForgeConfig.from_cli(
            args.name,
            org_id=args.org or "com.example",
            modules=_split_csv(args.modules),
            platforms=_split_csv(args.platforms) or None,
            auth_provider=args.auth_provider,
        )

    config = config.with_env_overrides()

    updates: dict[str, object] = {}
    if args.overwrite:
        updates["overwrite_existing"] = args.overwrite
    if args.dry_run:
        updates["dry_run"] = True
    if args.no_post_process:
        updates.update(run_dart_format=False, run_pub_get=False, run_build_runner=False)
    if updates:
        config = config.model_copy(update={"scaffold": config.scaffold.model_copy(update=updates)})
    return config


def confirm_overwrite(path: Path) -> bool:
    return Confirm.ask(f"[yellow]{path}[/yellow] already exists. Overwrite?", default=False,
                       console=console)


async def run_create(args: argparse.Namespace) -> int:
    config = load_create_config(args)
    output_dir = Path(args.output) if args.output else Path.cwd() / config.project.name
    context = create_project_context(config, output_dir)

    resolver = None
    if context.scaffold.overwrite == "ask" and sys.stdin.isatty():
        resolver = confirm_overwrite

    engine = ScaffoldEngine(conflict_resolver=resolver)
    result = await engine.run(context)
    _report(result, output_dir, dry_run=context.scaffold.dry_run)
    if not context.scaffold.dry_run:
        _save_project_config(config, output_dir, overwrite=context.scaffold.overwrite)
    return 1 if result.conflicts else 0


def _save_project_config(config: ForgeConfig, output_dir: Path, *, overwrite: str) -> None:
    """Keep the configuration beside the project so ``appforge add`` can find it."""
    target = output_dir / DEFAULT_CONFIG_FILENAME
    if target.exists() and overwrite != "always":
        logger.debug("Keeping existing %s", target)
        return
    config.save(target)


def _report(result: ScaffoldResult, output_dir: Path, *, dry_run: bool) -> None:
    print_summary_table(
        {
            "Output": str(output_dir),
            "Written" if not dry_run else "Would write": str(len(result.files_written)),
            "Skipped": str(len(result.files_skipped)),
            "Conflicts": str(len(result.conflicts)),
            "Post-processors": ", ".join(result.post_processors_run) or "-",
        },
        title="Scaffold summary" + (" (dry run)" if dry_run else ""),
    )
    if dry_run:
        for path in result.files_written:
            console.print(f"  [dim]{path}[/dim]")
    for path in result.conflicts:
        print_warning(f"Conflict: {path} exists (use --overwrite always|never)")
    for message in result.post_processor_errors:
        print_warning(message)
    if not result.conflicts:
        print_success("Project scaffolded successfully!")


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


async def run_add(args: argparse.Namespace) -> int:
    search_dir = Path(args.project_dir) if args.project_dir else Path.cwd()
    project_root = find_project_root(search_dir)
    if project_root is None:
        raise ConfigError(
            f"No {DEFAULT_CONFIG_FILENAME} found in {search_dir} or its parent directories; "
            "run from inside an appforge project or pass --project-dir"
        )
    logger.debug("Found project at %s", project_root)

    config = ForgeConfig.load(project_root / DEFAULT_CONFIG_FILENAME)
    result = await ScaffoldEngine().add(
        config, args.module.strip(), project_root, dry_run=args.dry_run
    )

    print_summary_table(
        {
            "Project": str(project_root),
            "Modules added": ", ".join(result.added),
            "Written" if not args.dry_run else "Would write": str(len(result.files_written)),
            "Skipped (existing)": str(len(result.files_skipped)),
            "pubspec.yaml": "updated" if result.pubspec_updated else "unchanged",
        },
        title="Add summary" + (" (dry run)" if args.dry_run else ""),
    )
    if args.dry_run:
        for path in result.files_written:
            console.print(f"  [dim]+ {path}[/dim]")
        return 0
    print_success(f"Module '{args.module.strip()}' added. Run `flutter pub get` to fetch packages.")
    return 0


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


def run_list() -> int:
    registry = ModuleRegistry.with_builtins()
    table = Table(title="Available modules", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold", no_wrap=True)
    table.add_column("Name")
    table.add_column("Requires", style="dim")
    table.add_column("Packages", style="green")
    table.add_column("Description")
    for manifest in registry.optional():
        table.add_row(
            manifest.id,
            manifest.name,
            ", ".join(manifest.requires) or "-",
            ", ".join(manifest.contributions.dependencies) or "-",
            manifest.description,
        )
    console.print(table)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the ``appforge`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "list":
            return run_list()
        if args.command == "add":
            return asyncio.run(run_add(args))
        return asyncio.run(run_create(args))
    except AppForgeError as exc:
        print_error(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
