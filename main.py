# Main script to orchestrate the snapshot mirroring process
import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, NamedTuple, Tuple

import requests

import constants
from api_clients.cdx_client import list_captures
from api_clients.errors import DeployError, IndexQueryError
from config_loader import build_options
from deploy_vercel import deploy_with_vercel
from logger_setup import setup_logging
from models import Capture
from snapshot_downloader import download_snapshot


class RunSummary(NamedTuple):
    total: int
    succeeded: int
    failures: List[Tuple[Capture, Exception]]

    @property
    def failed(self):
        return len(self.failures)


# --- Capture Selection ---
def unique_timestamps(captures):
    """Sorted, de-duplicated capture timestamps."""
    return sorted({capture.timestamp for capture in captures})


def filter_captures_by_timestamp(captures, timestamp):
    return [capture for capture in captures if capture.timestamp == timestamp]


def format_timestamp(timestamp):
    """'20200101123456' -> '2020-01-01 12:34:56 UTC'."""
    return (f"{timestamp[0:4]}-{timestamp[4:6]}-{timestamp[6:8]} "
            f"{timestamp[8:10]}:{timestamp[10:12]}:{timestamp[12:14]} UTC")


def prompt_for_choice(message, choices, labels=None, input_func=input):
    """Numbered prompt on stdin. Returns the chosen item, or None for no/invalid answer."""
    labels = labels or choices
    print(message)
    for index, label in enumerate(labels, 1):
        print(f"  {index}) {label}")
    try:
        answer = input_func(f"Enter a number [1-{len(choices)}]: ").strip()
    except EOFError:
        return None
    if not answer.isdigit():
        return None
    index = int(answer)
    if 1 <= index <= len(choices):
        return choices[index - 1]
    return None


def choose_timestamp(captures, input_func=input):
    timestamps = unique_timestamps(captures)
    labels = [f"{ts}  ({format_timestamp(ts)})" for ts in timestamps]
    return prompt_for_choice("Select a snapshot timestamp", timestamps, labels, input_func=input_func)


# --- Download Orchestration ---
def run_download(root_url, captures, options, on_progress=None, raise_on_failure=True):
    """
    Downloads every capture through a pool of `options.concurrency` workers.

    Captures are submitted in order, so they start in FIFO order as slots
    free up. `on_progress(done, total, capture)` is called once per finished
    capture, successful or not. Failed captures are logged and collected;
    once the pool has drained, the first failure is re-raised unless
    `raise_on_failure` is False. Returns a RunSummary.
    """
    if captures is None:
        captures = list_captures(root_url, options)

    total = len(captures)
    logging.info(f"Downloading {total} captures of {root_url} into {options.output_dir} (concurrency {options.concurrency})")

    succeeded = 0
    failures = []
    with ThreadPoolExecutor(max_workers=options.concurrency) as page_pool:
        future_map = {
            page_pool.submit(download_snapshot, options.output_dir, capture, options): capture
            for capture in captures
        }
        for done, future in enumerate(as_completed(future_map), 1):
            capture = future_map[future]
            try:
                future.result()
            except Exception as e:
                logging.error(f"Failed to download {capture.original} @ {capture.timestamp}: {e}")
                failures.append((capture, e))
            else:
                succeeded += 1
            if on_progress:
                on_progress(done, total, capture)

    summary = RunSummary(total, succeeded, failures)
    logging.info("--- Download Summary ---")
    logging.info(f"Captures: {summary.total}, succeeded: {summary.succeeded}, failed: {summary.failed}")

    if failures and raise_on_failure:
        raise failures[0][1]
    return summary


def log_progress(done, total, capture):
    progress_percent = (done / total) * 100 if total else 100.0
    logging.info(f"[{done}/{total}] ({progress_percent:.1f}%) {capture.original} @ {capture.timestamp}")


# --- Command Line ---
def build_arg_parser():
    parser = argparse.ArgumentParser(
        prog='wayback-mirror',
        description="Mirror Wayback Machine snapshots of a URL, optionally deploying one to Vercel.",
    )
    parser.add_argument('url', nargs='?', help="Root URL to mirror, e.g. https://example.com")
    parser.add_argument('-o', '--out', dest='output_dir', help=f"Output directory (default: {constants.DEFAULT_OUTPUT_DIR})")
    parser.add_argument('-c', '--concurrency', type=int, help=f"Max concurrent downloads (default: {constants.DEFAULT_CONCURRENCY})")
    parser.add_argument('--from', dest='from_date', metavar='YYYYMMDD', help="Earliest timestamp (inclusive)")
    parser.add_argument('--to', dest='to_date', metavar='YYYYMMDD', help="Latest timestamp (inclusive)")
    # Flags default to None so they only override the config file when given
    parser.add_argument('--rewrite', action='store_true', default=None, help="Rewrite HTML to strip web.archive.org prefixes")
    parser.add_argument('--debug', action='store_true', default=None, help="Write capture metadata to debug.json under each timestamp folder")
    parser.add_argument('--include-external', action='store_true', default=None, help="Also download third-party assets referenced by the page")
    parser.add_argument('--no-dedup', action='store_true', default=None, help="Disable digest deduplication in the CDX query")
    parser.add_argument('--no-interactive', dest='interactive', action='store_false', help="Do not prompt; download all matched captures directly")
    parser.add_argument('--timestamp', help="Download only the captures with this exact timestamp")
    parser.add_argument('--config', help="JSON config file with default option values")
    parser.add_argument('--log-file', help="Also write logs to this file")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    # Deployment
    parser.add_argument('--deploy', action='store_true', help="Deploy a previously downloaded snapshot using Vercel")
    parser.add_argument('--select', metavar='TIMESTAMP', help="Timestamp folder to deploy; prompted for when omitted")
    parser.add_argument('--prod', action='store_true', help="Deploy to production (vercel --prod)")
    parser.add_argument('--name', help="Project name to use on Vercel (vercel --name)")
    return parser


def options_overrides(args):
    return {
        'output_dir': args.output_dir,
        'concurrency': args.concurrency,
        'from_date': args.from_date,
        'to_date': args.to_date,
        'rewrite': args.rewrite,
        'debug': args.debug,
        'include_external': args.include_external,
        'no_dedup': args.no_dedup,
    }


def _deploy(args, options):
    chooser = None
    if args.interactive:
        chooser = lambda folders: prompt_for_choice("Select a snapshot to deploy", folders)
    try:
        deploy_with_vercel(options.output_dir, select=args.select, name=args.name, prod=args.prod, chooser=chooser)
    except DeployError as e:
        logging.error(str(e))
        return 1
    return 0


def _download(args, options):
    try:
        captures = list_captures(args.url, options)
    except (IndexQueryError, requests.exceptions.RequestException, ValueError) as e:
        logging.error(f"Failed to list captures for {args.url}: {e}")
        return 1
    if not captures:
        logging.info("No captures found. Nothing to download.")
        return 0

    if args.timestamp:
        selected_ts = args.timestamp
    elif args.interactive:
        selected_ts = choose_timestamp(captures)
        if not selected_ts:
            logging.error("No selection made. Exiting.")
            return 1
    else:
        selected_ts = None

    if selected_ts:
        captures = filter_captures_by_timestamp(captures, selected_ts)
        if not captures:
            logging.error(f"No captures with timestamp {selected_ts}.")
            return 1
        logging.info(f"Selected {selected_ts} - {len(captures)} files will be downloaded.")

    summary = run_download(args.url, captures, options, on_progress=log_progress, raise_on_failure=False)
    return 1 if summary.failed else 0


def main(argv=None):
    """Entry point. Returns the process exit code."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_file, level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        options = build_options(options_overrides(args), config_path=args.config)
    except (ValueError, FileNotFoundError) as e:
        logging.error(f"Invalid configuration: {e}")
        return 2

    if args.deploy:
        return _deploy(args, options)
    if not args.url:
        parser.print_help()
        return 1
    return _download(args, options)


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
