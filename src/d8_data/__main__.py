"""Entry point for the d8-data CLI."""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from typing import Any

import yaml

from d8_data import __version__
from d8_data.clients.base import K8sClient
from d8_data.config import (
    DEFAULT_NAMESPACE,
    DEFAULT_TTL,
    AuthMode,
    DataConfig,
    LogLevel,
)
from d8_data.domains.export.models import DirListing
from d8_data.domains.export.service import DataExportService
from d8_data.utils.errors import D8DataError

EXIT_INTERRUPTED = 130

_TRUE_VALUES = {"true", "t", "yes", "y", "1"}
_FALSE_VALUES = {"false", "f", "no", "n", "0"}


def setup_logging(level: LogLevel) -> None:
    """Configure logging for the CLI."""
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def parse_bool(value: str) -> bool:
    """Parse a boolean flag value such as ``true`` or ``false``."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: '{value}'")


def _add_namespace(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-n",
        "--namespace",
        default=None,
        help=f"Namespace of the DataExport (default: {DEFAULT_NAMESPACE})",
    )


def _add_session_options(parser: argparse.ArgumentParser) -> None:
    _add_namespace(parser)
    parser.add_argument(
        "--ttl",
        default=None,
        help=f"Time to live of an auto-created DataExport (default: {DEFAULT_TTL})",
    )
    parser.add_argument(
        "--publish",
        nargs="?",
        const=True,
        default=None,
        type=parse_bool,
        metavar="BOOL",
        help="Use the public URL; --publish=false forces the in-cluster URL "
        "(default: detect automatically)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="d8-data",
        description="Export data from cluster volumes through DataExport sessions",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Auth options
    parser.add_argument(
        "--auth-mode",
        choices=["auto", "kubeconfig", "token"],
        default=None,
        help="Authentication mode (default: auto)",
    )
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="Path to kubeconfig file",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubeconfig context to use",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    create = subparsers.add_parser("create", help="Create a DataExport for a volume")
    create.add_argument("name", help="DataExport name")
    create.add_argument(
        "volume",
        help="Volume to export as <kind>/<name>, kind is pvc, vs, vd or vds",
    )
    _add_namespace(create)
    create.add_argument(
        "--ttl",
        default=None,
        help=f"Time to live (default: {DEFAULT_TTL})",
    )
    create.add_argument(
        "--publish",
        action="store_true",
        help="Expose the DataExport through a public URL",
    )

    delete = subparsers.add_parser("delete", help="Delete a DataExport")
    delete.add_argument("name", help="DataExport name")
    _add_namespace(delete)

    get = subparsers.add_parser("get", help="Show a DataExport")
    get.add_argument("name", help="DataExport name")
    _add_namespace(get)

    download = subparsers.add_parser("download", help="Download files or a block device")
    download.add_argument("target", help="DataExport name or <kind>/<volume>")
    download.add_argument("path", nargs="?", default=None, help="Path to download")
    download.add_argument(
        "-o",
        "--output",
        default=None,
        help="Local destination, '-' for standard output",
    )
    _add_session_options(download)

    list_parser = subparsers.add_parser(
        "list", aliases=["ls"], help="List a directory or show the block device size"
    )
    list_parser.add_argument("target", help="DataExport name or <kind>/<volume>")
    list_parser.add_argument("path", nargs="?", default=None, help="Directory to list")
    _add_session_options(list_parser)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    args = build_parser().parse_args(argv)
    if args.command == "ls":
        args.command = "list"
    return args


def build_config(args: argparse.Namespace) -> DataConfig:
    """Build config from args, falling back to environment/defaults."""
    config_kwargs: dict[str, Any] = {}

    if args.auth_mode:
        auth_map = {
            "auto": AuthMode.AUTO,
            "kubeconfig": AuthMode.KUBECONFIG,
            "token": AuthMode.TOKEN,
        }
        config_kwargs["auth_mode"] = auth_map[args.auth_mode]

    if args.kubeconfig:
        config_kwargs["kubeconfig_path"] = args.kubeconfig

    if args.context:
        config_kwargs["kubeconfig_context"] = args.context

    if args.insecure:
        config_kwargs["insecure_skip_tls_verify"] = True

    if args.log_level:
        config_kwargs["log_level"] = LogLevel(args.log_level)

    return DataConfig(**config_kwargs)


def format_listing(listing: DirListing | str) -> str:
    """Render a directory listing, one entry per line, directories with a slash."""
    if isinstance(listing, str):
        return listing
    return "\n".join(f"{item.name}/" if item.is_dir else item.name for item in listing.items)


async def run_command(args: argparse.Namespace, service: DataExportService) -> int:
    """Run the selected command."""
    if args.command == "create":
        await service.create(
            args.name, args.volume, namespace=args.namespace, ttl=args.ttl, publish=args.publish
        )
        print(f"DataExport {args.name} created")
    elif args.command == "delete":
        await service.delete(args.name, namespace=args.namespace)
        print(f"DataExport {args.name} deleted")
    elif args.command == "get":
        export = await service.get(args.name, namespace=args.namespace)
        print(yaml.safe_dump(export.to_dict(), sort_keys=False), end="")
    elif args.command == "download":
        result = await service.download(
            args.target,
            src_path=args.path,
            dst_path=args.output,
            namespace=args.namespace,
            ttl=args.ttl,
            publish=args.publish,
        )
        if result.local_path is not None:
            print(
                f"Downloaded {result.files_downloaded} file(s) to {result.local_path}",
                file=sys.stderr,
            )
    elif args.command == "list":
        listing = await service.list(
            args.target,
            path=args.path,
            namespace=args.namespace,
            ttl=args.ttl,
            publish=args.publish,
        )
        output = format_listing(listing)
        if output:
            print(output)
    return 0


async def _run(args: argparse.Namespace, config: DataConfig) -> int:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()

    def on_interrupt() -> None:
        # First interrupt stops new requests, the second one aborts.
        if cancel.is_set() and task is not None:
            task.cancel()
        cancel.set()

    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    try:
        service = DataExportService(K8sClient(config), config, cancel=cancel)
        return await run_command(args, service)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    # Setup logging
    setup_logging(config.log_level)

    logger = logging.getLogger(__name__)
    logger.debug(f"d8-data v{__version__}")

    # Validate auth config
    try:
        warnings = config.validate_auth_config()
        for warning in warnings:
            logger.warning(warning)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        return asyncio.run(_run(args, config))
    except D8DataError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
