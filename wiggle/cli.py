"""Wiggle command line entry point.

Usage:
    wiggle                     # Interactive console with a background worker
    wiggle --test              # Same, but the worker runs a single cycle
    wiggle worker              # Headless worker only
    wiggle worker --latest-id 1200 --once
    wiggle stop                # Ask a running worker to stop

The interactive command starts the worker in a separate process and talks
to it only through the catalog store. On exit it sets the Stop Signal and
waits for the worker to finish its cycle.
"""

import argparse
import multiprocessing
import sys
import time

from loguru import logger
from rich.console import Console

from wiggle import __version__, ui
from wiggle.config import settings
from wiggle.core.errors import (
    ConfigurationError,
    DatabaseError,
    LayoutError,
    SessionError,
    SiteError,
    StoreContentionError,
)
from wiggle.core.logging import setup_logging
from wiggle.database import init_db
from wiggle.services import classification, config_service, ingestion
from wiggle.services.ingestion import IngestionLoop
from wiggle.services.site_client import SiteClient

EXIT_OK = 0
EXIT_FAILURE = 1

STOP_RETRY_DELAY = 1.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wiggle",
        description="Catalog a torrent listing site and queue downloads.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--test",
        action="store_true",
        help="Run a single background cycle, then let the worker stop",
    )

    subparsers = parser.add_subparsers(dest="command")

    worker = subparsers.add_parser("worker", help="Run the background worker without the console UI")
    worker.add_argument(
        "--latest-id",
        type=int,
        default=None,
        help="Newest item id on the site (looked up when omitted)",
    )
    worker.add_argument("--once", action="store_true", help="Run a single cycle")

    subparsers.add_parser("stop", help="Ask a running worker to stop")
    return parser


def open_site(console: Console | None = None) -> SiteClient:
    """Build a site client, asking for the URL and a login when needed.

    Without a console (headless worker) missing configuration is an error.

    Raises:
        ConfigurationError: If no site URL is configured.
        SessionError: If no session could be established.
        StoreContentionError: If the stored site URL can't be read.
    """
    url = config_service.get_site_url()
    if not url:
        if console is None:
            raise ConfigurationError("Site URL is not configured; run wiggle interactively first")
        console.print("[yellow]Site URL is not set.")
        url = config_service.set_site_url(ui.ask_site_url(console))

    client = SiteClient(url)
    if not client.has_session:
        if console is None:
            raise SessionError(f"No session cookies in {settings.cookie_file}; log in interactively first")
        username, password = ui.ask_credentials(console)
        console.print("Attempting to login. Please wait.")
        client.login(username, password)
    return client


def start_worker(latest_id: int) -> multiprocessing.Process:
    """Start the background worker in its own process.

    The spawn context gives the worker a fresh interpreter, with its own
    engine and connections to the store.
    """
    context = multiprocessing.get_context("spawn")
    process = context.Process(
        target=_worker_main,
        args=(latest_id,),
        name="wiggle-worker",
    )
    process.start()
    logger.info(f"Starting background tasks (pid {process.pid})")
    return process


def worker_entry(latest_id: int) -> int:
    """Body of the worker process started by the console."""
    setup_logging(console=False, process_name="worker")
    try:
        client = open_site()
    except (ConfigurationError, SessionError, DatabaseError) as e:
        logger.error(f"Worker cannot start: {e}")
        return EXIT_FAILURE

    IngestionLoop(client, latest_id).run()
    return EXIT_OK


def _worker_main(latest_id: int) -> None:
    sys.exit(worker_entry(latest_id))


def stop_worker(process: multiprocessing.Process) -> int | None:
    """Set the Stop Signal and block until the worker has exited."""
    while True:
        try:
            config_service.request_stop()
            break
        except StoreContentionError:
            time.sleep(STOP_RETRY_DELAY)

    process.join()
    logger.info(f"Background worker exited with code {process.exitcode}")
    return process.exitcode


def run_interactive(test_mode: bool = False) -> int:
    console = Console()
    setup_logging(console=False, process_name="main")

    console.print(f"Checking for database: {settings.database_url}")
    try:
        init_db()
    except DatabaseError as e:
        console.print(f"[red]An unexpected error occurred while creating the database: {e}")
        return EXIT_FAILURE

    try:
        client = open_site(console)
    except (ConfigurationError, SessionError) as e:
        console.print(f"[red]Something failed when logging in: {e}")
        return EXIT_FAILURE
    except DatabaseError as e:
        console.print(f"[red]Could not read the settings: {e}")
        return EXIT_FAILURE

    try:
        if not config_service.get_setting(config_service.DOWNLOAD_DIR):
            config_service.set_setting(config_service.DOWNLOAD_DIR, ui.ask_download_dir(console))
    except DatabaseError as e:
        console.print(f"[red]Could not save the download directory: {e}")
        return EXIT_FAILURE

    console.print("Getting the latest ID from the site")
    try:
        latest_id = client.fetch_latest_id()
    except (SiteError, LayoutError) as e:
        console.print(f"[red]Something is wrong. Latest ID didn't return expected results: {e}")
        return EXIT_FAILURE

    # The worker stops after one cycle in test mode
    try:
        config_service.clear_stop(test_mode=test_mode)
    except DatabaseError as e:
        console.print(f"[red]Could not reset the stop signal: {e}")
        return EXIT_FAILURE

    logger.info("-" * 47)
    logger.info(f"Latest ID (Database): {ingestion.get_cursor()}")
    logger.info(f"Latest ID (Site): {latest_id}")
    logger.info(f"Items left to process: {classification.count_undecided_items()}")

    process = start_worker(latest_id)
    try:
        ui.main_menu(console)
    except KeyboardInterrupt:
        console.print()
    finally:
        console.print("Waiting for background tasks to complete")
        exitcode = stop_worker(process)

    logger.info("Main process stopped")
    return EXIT_OK if exitcode == 0 else EXIT_FAILURE


def run_worker(latest_id: int | None, once: bool = False) -> int:
    setup_logging(console=True, process_name="worker")
    try:
        init_db()
        client = open_site()
        if latest_id is None:
            latest_id = client.fetch_latest_id()
        config_service.clear_stop(test_mode=once)
    except (DatabaseError, ConfigurationError, SessionError, SiteError, LayoutError) as e:
        logger.error(f"Worker cannot start: {e}")
        return EXIT_FAILURE

    loop = IngestionLoop(client, latest_id)
    try:
        loop.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return EXIT_OK


def run_stop() -> int:
    setup_logging(console=True, process_name="main")
    try:
        config_service.request_stop()
    except StoreContentionError as e:
        logger.error(str(e))
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "worker":
        return run_worker(args.latest_id, once=args.once)
    if args.command == "stop":
        return run_stop()
    return run_interactive(test_mode=args.test)


if __name__ == "__main__":
    sys.exit(main())
