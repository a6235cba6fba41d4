"""Command-line interface for the datamine exporter."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx

from .config import DatamineError, load_settings
from .export import export_images, export_sheets, export_unique_entry_ids, save_raw
from .sheets import SheetsClient, Spreadsheet, parse_response

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datamine-export",
        description="Export the datamine spreadsheet to one JSON file per sheet",
    )
    parser.add_argument(
        "--dl-images", action="store_true", help="Also download images referenced in cells"
    )
    parser.add_argument(
        "--env-file", type=Path, default=Path(".env"), help="File defining API_KEY (default: .env)"
    )
    parser.add_argument(
        "--out", "-o", type=Path, default=None, help="Output directory (default: EXPORT_DIR or ./export)"
    )
    parser.add_argument(
        "--format",
        choices=["grid", "rows"],
        default="grid",
        help="grid: sheet grid data as returned by the API; rows: header-keyed records",
    )
    parser.add_argument(
        "--export-ids", action="store_true", help="Also write unique_entry_ids.txt"
    )
    parser.add_argument("--id-prefix", help="Prefix for each exported entry id")
    parser.add_argument("--id-suffix", help="Suffix for each exported entry id")
    parser.add_argument(
        "--save-raw", type=Path, metavar="PATH", help="Also save the raw API response to PATH"
    )
    parser.add_argument(
        "--list-sheets", action="store_true", help="Print sheet titles and columns, write nothing"
    )
    parser.add_argument("--sheet-id", help="Spreadsheet ID (default: the datamine sheet)")
    parser.add_argument(
        "--jobs", "-j", type=int, default=None, help="Concurrent image downloads (default: IMAGE_CONCURRENCY or 8)"
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Only log warnings and errors, no progress bars"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False):
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # httpx logs every request URL at INFO, and ours carries the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


def print_sheets(spreadsheet: Spreadsheet):
    """Print each sheet title with its normalized column titles."""
    for sheet in spreadsheet.sheets:
        print(sheet.title)
        for column in sheet.column_titles():
            print(f"   {column}")


def run(
    args: argparse.Namespace,
    transport: Optional[httpx.BaseTransport] = None,
    image_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Run one export. Returns the process exit code."""
    settings = load_settings(args.env_file)
    if args.sheet_id:
        settings = settings.model_copy(update={"spreadsheet_id": args.sheet_id})

    out_dir = args.out or settings.export_dir
    show_progress = not args.quiet

    logger.info("This can take a while")
    client = SheetsClient(
        settings.api_key,
        timeout=settings.request_timeout,
        transport=transport,
        show_progress=show_progress,
    )
    data = client.get_raw(settings.spreadsheet_id)

    raw, spreadsheet = parse_response(data)
    logger.info(f"Spreadsheet has {len(spreadsheet.sheets)} sheets")

    if args.list_sheets:
        print_sheets(spreadsheet)
        return 0

    if args.save_raw:
        save_raw(data, args.save_raw)

    export_sheets(raw, spreadsheet, out_dir, fmt=args.format)

    if args.export_ids:
        export_unique_entry_ids(spreadsheet, out_dir, args.id_prefix, args.id_suffix)

    if args.dl_images:
        results = export_images(
            spreadsheet,
            out_dir,
            concurrency=args.jobs or settings.image_concurrency,
            timeout=settings.request_timeout,
            transport=image_transport,
            show_progress=show_progress,
        )
        failed = [r for r in results if not r.ok]
        if failed:
            logger.warning(f"{len(failed)} images failed to download:")
            for result in failed:
                logger.warning(f"  [{result.sheet_title}] {result.url}: {result.error}")

    return 0


def main(
    argv: Optional[list[str]] = None,
    transport: Optional[httpx.BaseTransport] = None,
    image_transport: Optional[httpx.AsyncBaseTransport] = None,
):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")

    configure_logging(args.verbose, args.quiet)

    try:
        code = run(args, transport=transport, image_transport=image_transport)
    except DatamineError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
