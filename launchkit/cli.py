"""Command-line entry point for ``create-launchkit-app``.

Usage::

    create-launchkit-app my-app
    create-launchkit-app my-app --full --db supabase
    create-launchkit-app --connect --database neon --path ./my-app
    create-launchkit-app --status
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from launchkit.config import Config, CreateOptions, DatabaseProvider
from launchkit.connect import connect_capability, show_status
from launchkit.errors import LaunchkitError
from launchkit.orchestrator import Orchestrator
from launchkit.providers import SetupCapability
from launchkit.runner import CommandError
from launchkit.utils import (
    console,
    print_error,
    print_remediation,
    set_verbose,
    validate_project_name,
)

DB_CHOICES = [provider.value for provider in DatabaseProvider]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-launchkit-app",
        description="Create a full-stack app with auth, database and deployment wired up",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-launchkit-app my-app                      # local mode, no accounts needed\n"
            "  create-launchkit-app my-app --full               # production services\n"
            "  create-launchkit-app my-app --database --db neon # production database only\n"
            "  create-launchkit-app . --fast                    # scaffold into this directory\n"
            "  create-launchkit-app --connect --auth            # upgrade an existing project\n"
            "  create-launchkit-app --status --path ./my-app\n"
        ),
    )

    parser.add_argument(
        "project_name",
        nargs="?",
        default=None,
        help="Project directory name, or '.' for the current directory",
    )
    parser.add_argument(
        "--template", "-t",
        default=None,
        help="Template git repository URL",
    )
    parser.add_argument(
        "--branch", "-b",
        default=None,
        help="Template branch or tag",
    )
    parser.add_argument(
        "--db",
        choices=DB_CHOICES,
        default=None,
        help="Database provider for production mode",
    )
    parser.add_argument("--fast", action="store_true", help="Minimal prompts, smart defaults")
    parser.add_argument(
        "--skip-prereqs", action="store_true", help="Skip the prerequisite checks"
    )
    parser.add_argument(
        "--install-deps", action="store_true", help="Install missing CLIs without asking"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    services = parser.add_argument_group("services")
    services.add_argument(
        "--full", action="store_true", help="Use production services for everything"
    )
    services.add_argument("--auth", action="store_true", help="Use production Firebase Auth")
    services.add_argument(
        "--database",
        nargs="?",
        const=True,
        default=False,
        metavar="PROVIDER",
        help=(
            "Use a production database (optionally: neon, supabase, other); "
            "a value that is not a provider is taken as the project name"
        ),
    )
    services.add_argument(
        "--deploy", action="store_true", help="Use a production Cloudflare Worker"
    )

    existing = parser.add_argument_group("existing projects")
    existing.add_argument(
        "--connect",
        action="store_true",
        help="Connect one service of an existing project to production",
    )
    existing.add_argument(
        "--status", action="store_true", help="Show the configuration of an existing project"
    )
    existing.add_argument(
        "--path",
        default=".",
        help="Project directory for --connect and --status (default: .)",
    )
    return parser


def database_provider(args: argparse.Namespace) -> DatabaseProvider | None:
    """``--database neon`` and ``--db neon`` both select a provider."""
    if isinstance(args.database, str):
        return DatabaseProvider(args.database)
    if args.db:
        return DatabaseProvider(args.db)
    return None


def options_from_args(args: argparse.Namespace) -> CreateOptions:
    return CreateOptions(
        project_name=args.project_name,
        template_url=args.template,
        branch=args.branch,
        db=database_provider(args),
        fast=args.fast,
        skip_prereqs=args.skip_prereqs,
        install_deps=args.install_deps,
        verbose=args.verbose,
        full=args.full,
        auth=args.auth,
        database=bool(args.database),
        deploy=args.deploy,
    )


def connect_target(args: argparse.Namespace) -> SetupCapability:
    selected = [
        capability
        for capability, enabled in (
            (SetupCapability.AUTH, args.auth),
            (SetupCapability.DATABASE, bool(args.database)),
            (SetupCapability.DEPLOY, args.deploy),
        )
        if enabled
    ]
    if len(selected) != 1:
        raise LaunchkitError(
            "--connect needs exactly one of --auth, --database or --deploy",
            ["Example: create-launchkit-app --connect --database neon"],
        )
    return selected[0]


def _raise_interrupt(signum: int, frame: object) -> None:
    raise KeyboardInterrupt


def reclaim_project_name(args: argparse.Namespace) -> str | None:
    """Undo ``--database`` swallowing the project name.

    ``create-launchkit-app --database my-app`` parses ``my-app`` as the
    provider.  When no project name was given and the value is a valid one,
    it becomes the project name and ``--database`` a bare flag.

    Returns:
        An error message when the value is neither a provider nor a name.
    """
    value = args.database
    if not isinstance(value, str) or value in DB_CHOICES:
        return None
    creating = not (args.connect or args.status)
    if creating and args.project_name is None and (
        value == "." or validate_project_name(value) is None
    ):
        args.project_name = value
        args.database = True
        return None
    return f"--database: invalid provider '{value}' (choose from {', '.join(DB_CHOICES)})"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``create-launchkit-app``."""
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    problem = reclaim_project_name(args)
    if problem:
        parser.error(problem)

    set_verbose(args.verbose)
    signal.signal(signal.SIGTERM, _raise_interrupt)

    orchestrator: Orchestrator | None = None
    try:
        config = Config.from_env()
        if args.status:
            show_status(Path(args.path), config)
        elif args.connect:
            asyncio.run(
                connect_capability(
                    Path(args.path),
                    connect_target(args),
                    db_provider=database_provider(args),
                    config=config,
                    fast=args.fast,
                    skip_prereqs=args.skip_prereqs,
                )
            )
        else:
            orchestrator = Orchestrator(options_from_args(args), config)
            asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        console.print()
        print_error("Setup interrupted.")
        if orchestrator is not None:
            orchestrator.cleanup()
        sys.exit(1)
    except LaunchkitError as exc:
        print_remediation(exc.message, exc.remediation)
        if orchestrator is not None:
            orchestrator.cleanup()
        sys.exit(1)
    except CommandError as exc:
        print_remediation(str(exc), ["Re-run with --verbose to see every command and its output"])
        if orchestrator is not None:
            orchestrator.cleanup()
        sys.exit(1)


if __name__ == "__main__":
    main()
