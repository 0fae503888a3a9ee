"""
run_batch.py - Main Application Entry Point
============================================
Runs the loan batch once.

What it does:
-------------
1. Loads configuration from environment variables (.env file)
2. Opens the input file (CSV or Parquet)
3. Processes the records in chunks: client -> simulation -> loan
4. Writes the report after the last chunk

Usage:
------
    python -m loanbatch.run_batch clients.csv
    python -m loanbatch.run_batch clients.csv --report out/report.txt
    python -m loanbatch.run_batch clients.parquet --workers 5
    python -m loanbatch.run_batch clients.csv --dry-run

Command Line Options:
---------------------
    input_file      : Path to input CSV or Parquet file (default: LOANBATCH_INPUT_FILE)
    --report        : Report path (default: LOANBATCH_REPORT_PATH)
    --chunk-size    : Records per chunk (default: LOANBATCH_CHUNK_SIZE)
    --workers       : Items processed in parallel inside a chunk (default: LOANBATCH_MAX_WORKERS)
    --dry-run       : Read and validate the input without calling any service
    --debug         : Enable debug logging

Exit Status:
------------
    0 : the report was written
    1 : configuration, input or report error, or interrupted; no report produced
"""

import sys
import logging
import time
import argparse
from dataclasses import replace
from typing import List, Optional

from .chunk import ChunkController, RunContext
from .config import Settings, load_settings
from .endpoints import Endpoints
from .errors import LoanBatchError
from .http_client import HttpClient
from .loader import RecordSource
from .processor import LoanProcessor
from .report import ReportAggregator


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_LEVEL = logging.INFO

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False):
    """Configure console logging; --debug switches the root logger to DEBUG."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


# =============================================================================
# BATCH RUN
# =============================================================================

def run_batch(settings: Settings, client: Optional[HttpClient] = None) -> RunContext:
    """
    Run the whole pipeline once and write the report.

    Args:
        settings: Configuration for this run
        client: Optional pre-built HTTP client (closed by the caller)

    Returns:
        The RunContext with the final counters

    Raises:
        RecordReadError: Malformed input row; no report is written
        ReportWriteError: The report could not be written
    """
    own_client = client is None
    if own_client:
        client = HttpClient(settings)

    try:
        controller = ChunkController(
            source=RecordSource(settings.input_file),
            processor=LoanProcessor(client, Endpoints(settings)),
            report=ReportAggregator(),
            chunk_size=settings.chunk_size,
            max_workers=settings.max_workers,
        )
        ctx = controller.run()
        controller.report.save(settings.report_path, ctx.total_read)
        return ctx
    finally:
        if own_client:
            client.close()


def dry_run(settings: Settings) -> int:
    """Read every record without calling any service; returns the row count."""
    count = 0
    with RecordSource(settings.input_file) as source:
        for record in source:
            if count == 0:
                logger.info(f"Sample record: {record}")
            count += 1
    return count


# =============================================================================
# COMMAND LINE ARGUMENT PARSING
# =============================================================================

def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command-line arguments.

    Returns:
        Namespace with input_file, report, chunk_size, workers, dry_run, debug
    """
    parser = argparse.ArgumentParser(
        description='Register clients, simulate and generate loans from a batch file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m loanbatch.run_batch clients.csv
  python -m loanbatch.run_batch clients.csv --report out/report.txt
  python -m loanbatch.run_batch clients.parquet --workers 5
        """
    )

    parser.add_argument(
        'input_file',
        nargs='?',
        help='Path to input CSV or Parquet file (default: LOANBATCH_INPUT_FILE)'
    )
    parser.add_argument(
        '--report',
        help='Report path (default: LOANBATCH_REPORT_PATH)'
    )
    parser.add_argument(
        '--chunk-size',
        type=int,
        help='Records per chunk (default: LOANBATCH_CHUNK_SIZE)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Items processed in parallel inside a chunk (default: LOANBATCH_MAX_WORKERS)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Read and validate input without calling any service'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args) -> Settings:
    """Return a copy of settings with any command-line values applied."""
    overrides = {}
    if args.input_file:
        overrides['input_file'] = args.input_file
    if args.report:
        overrides['report_path'] = args.report
    if args.chunk_size is not None:
        overrides['chunk_size'] = args.chunk_size
    if args.workers is not None:
        overrides['max_workers'] = args.workers
    return replace(settings, **overrides)


# =============================================================================
# MAIN EXECUTION FUNCTION
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point.

    Returns:
        Process exit status (0 on success, 1 on any run-level failure)
    """
    args = parse_arguments(argv)
    setup_logging(args.debug)

    try:
        settings = apply_overrides(load_settings(), args)
        logger.info(f"Simulation service: {settings.simulation_base_url}")
        logger.info(f"Loan service: {settings.loan_base_url}")
        logger.info(f"Input: {settings.input_file} | chunk size: {settings.chunk_size} "
                    f"| workers: {settings.max_workers}")

        if args.dry_run:
            logger.info("DRY RUN MODE - No service calls will be made")
            count = dry_run(settings)
            logger.info(f"Dry run complete: {count} valid records")
            return 0

        start_time = time.time()
        ctx = run_batch(settings)
        logger.info("-" * 50)
        logger.info(f"Processing complete in {time.time() - start_time:.1f} seconds")
        logger.info(f"Records read: {ctx.total_read}")
        logger.info(f"Records written: {ctx.total_written}")
        logger.info(f"Records dropped: {ctx.total_dropped}")
        logger.info("-" * 50)
        return 0

    except KeyboardInterrupt:
        # The report is only written after the last chunk, so nothing partial exists
        logger.warning("Interrupted by user. No report was written.")
        return 1

    except (LoanBatchError, FileNotFoundError, ValueError) as e:
        logger.error(f"Fatal error: {e}")
        return 1


# =============================================================================
# SCRIPT ENTRY POINT
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
