#!/usr/bin/env python
"""Main entry point for the foucault command."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from foucault import __version__
from foucault.client import RemoteNotebook
from foucault.config import config
from foucault.exceptions import FoucaultError
from foucault.models.schema import Permissions
from foucault.notebook import Notebook
from foucault.observability import configure_logging, metrics
from foucault.services import NotebookApi, NotebookService
from foucault.session.console import Console

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="foucault", description="Foucault notebooks")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--notebooks-dir",
        help="Directory holding the notebook files",
        type=str,
        default=os.environ.get("FOUCAULT_NOTEBOOKS_DIR"),
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=config.log_level.upper(),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a notebook and open it")
    create.add_argument("name")

    open_ = subparsers.add_parser("open", help="Open a notebook")
    open_.add_argument("name")

    delete = subparsers.add_parser("delete", help="Delete a notebook")
    delete.add_argument("name")

    subparsers.add_parser("list", help="List notebooks")

    serve = subparsers.add_parser("serve", help="Serve a notebook over HTTP")
    serve.add_argument("name")
    serve.add_argument("--host", default=None, help=f"Bind address (default {config.server_host})")
    serve.add_argument("--port", type=int, default=None, help=f"Port (default {config.server_port})")
    serve.add_argument("--read-only", action="store_true", help="Reject every modification")

    connect = subparsers.add_parser("connect", help="Open a notebook served elsewhere")
    connect.add_argument("address", help="host:port or URL of a foucault server")

    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.notebooks_dir:
        config.notebooks_dir = Path(args.notebooks_dir)


def _save_metrics_on_exit():
    """Save metrics to disk on shutdown."""
    try:
        if metrics.save_metrics():
            logger.info("Metrics saved to disk on shutdown")
    except Exception as e:
        logger.warning(f"Failed to save metrics on shutdown: {e}")


def run_session(engine: NotebookApi) -> None:
    """Drive an interactive console session, closing the engine afterwards."""
    try:
        Console(engine).run()
    finally:
        engine.close()


def run_command(args) -> int:
    if args.command == "list":
        for name in Notebook.list_notebooks():
            print(name)
        return 0

    if args.command == "delete":
        Notebook.delete(args.name)
        print(f"Deleted notebook '{args.name}'")
        return 0

    if args.command == "create":
        run_session(NotebookService(Notebook.create(args.name)))
        return 0

    if args.command == "open":
        run_session(NotebookService(Notebook.open(args.name)))
        return 0

    if args.command == "serve":
        from foucault.server import serve

        permissions = Permissions.READ_ONLY if args.read_only else Permissions.READ_WRITE
        service = NotebookService(Notebook.open(args.name), permissions=permissions)
        try:
            serve(service, host=args.host, port=args.port, log_level=args.log_level)
        finally:
            service.close()
        return 0

    if args.command == "connect":
        remote = RemoteNotebook(args.address)
        info = remote.info()
        logger.info(f"Connected to notebook '{info.name}' at {remote.base_url}")
        run_session(remote)
        return 0

    raise ValueError(f"Unknown command {args.command}")


def main(argv=None):
    """Run the foucault command line."""
    args = parse_args(argv)
    update_config(args)

    # Interactive sessions own the terminal; only the server logs to the console
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_file = configure_logging(
            config.get_absolute_path(config.log_dir),
            level=log_level,
            console=args.command == "serve",
        )
    except OSError as e:
        logging.basicConfig(level=log_level)
        logger.warning(f"Failed to configure file logging: {e}")
        log_file = None

    if log_file and args.command == "serve":
        metrics.set_metrics_file(log_file.parent / "metrics.json")
        atexit.register(_save_metrics_on_exit)

    try:
        return run_command(args)
    except FoucaultError as e:
        logger.error(str(e))
        print(f"foucault: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
