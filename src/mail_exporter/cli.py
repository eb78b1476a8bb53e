"""Command-line entry point for Mail Exporter."""

from __future__ import annotations

import argparse
import asyncio
import getpass
from pathlib import Path

import uvicorn

from mail_exporter.controller import ExportController, describe_error, describe_report
from mail_exporter.core import AppSettings, configure_logging, load_app_settings
from mail_exporter.core.interfaces import MailExporterError
from mail_exporter.core.models import ExportProgress
from mail_exporter.search import list_predicates
from mail_exporter.web import create_app


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Search an IMAP mailbox and export matching messages"
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="predicates",
        choices=["predicates", "download", "serve"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--predicate",
        default="all",
        help="Name of the search predicate (see the predicates command).",
    )
    parser.add_argument(
        "--value",
        dest="values",
        action="append",
        default=[],
        help="Argument for the predicate; repeat once per parameter.",
    )
    parser.add_argument("--host", default=None, help="IMAP hostname override.")
    parser.add_argument("--port", type=int, default=None, help="IMAP port override.")
    parser.add_argument("--username", default=None, help="IMAP username override.")
    parser.add_argument(
        "--no-tls",
        dest="use_tls",
        action="store_false",
        default=None,
        help="Connect without TLS.",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return an exit status."""
    command = args.command
    if command == "predicates":
        _print_predicates()
        return 0
    if command == "serve":
        _serve(settings)
        return 0
    try:
        controller = ExportController(settings)
        return asyncio.run(_run_download(controller, args, settings))
    except MailExporterError as exc:
        title, message = describe_error(exc)
        print(f"{title}: {message}")
        return 1


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _print_predicates() -> None:
    for descriptor in list_predicates():
        params = ", ".join(
            f"{spec.name}:{spec.kind.value}" for spec in descriptor.parameters
        )
        print(f"{descriptor.name:<18} ({params:<26}) {descriptor.description}")


async def _run_download(
    controller: ExportController, args: argparse.Namespace, settings: AppSettings
) -> int:
    """Connect, search, download and always disconnect."""
    password = settings.imap.password or getpass.getpass("IMAP password: ")
    await controller.connect(
        password,
        host=args.host,
        port=args.port,
        username=args.username,
        use_tls=args.use_tls,
    )
    try:
        result = await controller.search(args.predicate, args.values)
        print(f"Found {len(result)} message(s) matching '{args.predicate}'.")
        if not result:
            return 0

        def show(progress: ExportProgress) -> None:
            print(f"Please wait...({progress.done}/{progress.total})")

        report = await controller.download(show)
        title, message = describe_report(report, len(result))
        print(title)
        print(message)
        return 0 if report.failed == 0 else 2
    finally:
        await controller.disconnect()


def _serve(settings: AppSettings) -> None:
    uvicorn.run(
        create_app(settings),
        host=settings.web.host,
        port=settings.web.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
