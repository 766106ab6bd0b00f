# Module for mirroring a single capture: page, debug metadata, then assets

import functools
import logging
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

from api_clients.wayback_client import download_url_to_path, fetch_replay_to_file, wayback_url_for
from file_handler import append_debug_record, ensure_directory, target_path
from html_processor import AssetScan, partition_by_host, scan_page_assets
from models import Capture

logger = logging.getLogger(__name__)

ASSET_FETCHED = 'fetched'
ASSET_SKIPPED = 'skipped'
ASSET_FAILED = 'failed'


class SnapshotResult(NamedTuple):
    capture: Capture
    page_path: str
    page_fetched: bool # False when the page already existed on disk
    asset_scan: AssetScan
    assets_fetched: int = 0
    assets_skipped: int = 0
    assets_failed: int = 0


def download_page(output_dir, capture, options):
    """
    Fetches the capture's own page unless it is already on disk.

    Returns (page_path, fetched). FetchError and I/O errors propagate: a page
    that cannot be fetched fails the whole capture.
    """
    page_path = target_path(output_dir, capture)
    if os.path.exists(page_path):
        logger.debug(f"Page already present, skipping fetch: {page_path}")
        return page_path, False

    ensure_directory(os.path.dirname(page_path))
    replay_url = wayback_url_for(capture.original, capture.timestamp, options.wayback_base_url)
    # Debug runs keep the page exactly as served
    fetch_replay_to_file(replay_url, page_path, options, rewrite_html=options.rewrite and not options.debug)
    return page_path, True


def _download_asset(output_dir, timestamp, options, asset_url):
    try:
        saved_path = download_url_to_path(output_dir, timestamp, asset_url, options)
    except Exception as e:
        logger.warning(f"Failed to fetch asset {asset_url}: {e}")
        return ASSET_FAILED
    return ASSET_FETCHED if saved_path else ASSET_SKIPPED


def download_assets(output_dir, timestamp, asset_urls, options):
    """
    Downloads assets through a pool of `options.inner_concurrency` workers.

    Every asset failure is logged and counted, never raised. Returns a Counter
    keyed by ASSET_FETCHED / ASSET_SKIPPED / ASSET_FAILED.
    """
    outcomes = Counter()
    if not asset_urls:
        return outcomes

    worker = functools.partial(_download_asset, output_dir, timestamp, options)
    with ThreadPoolExecutor(max_workers=options.inner_concurrency) as asset_pool:
        outcomes.update(asset_pool.map(worker, asset_urls))
    return outcomes


def download_snapshot(output_dir, capture, options):
    """
    Mirrors one capture into `output_dir/<timestamp>/`.

    1. Fetch the page (skipped if present), optionally stripping archive
       prefixes from its links.
    2. With `options.debug`, append the capture to `debug.json`.
    3. Read the page back and collect asset URLs on the same host (all hosts
       with `options.include_external`).
    4. Download those assets with bounded concurrency, swallowing failures.

    If the page cannot be read back, asset discovery is skipped and the
    capture still counts as done.
    """
    page_path, page_fetched = download_page(output_dir, capture, options)

    if options.debug:
        append_debug_record(output_dir, capture)

    asset_scan = scan_page_assets(page_path, capture.original)
    if not asset_scan.ok:
        logger.debug(f"Skipping asset discovery for {capture.original}: {asset_scan.error}")
        return SnapshotResult(capture, page_path, page_fetched, asset_scan)

    same_host, other = partition_by_host(asset_scan.urls, capture.original)
    assets_to_fetch = same_host + other if options.include_external else same_host
    logger.debug(f"{len(same_host)} same-host and {len(other)} external assets found for {capture.original}; fetching {len(assets_to_fetch)}")

    outcomes = download_assets(output_dir, capture.timestamp, assets_to_fetch, options)
    if outcomes[ASSET_FAILED]:
        logger.warning(f"{outcomes[ASSET_FAILED]} of {len(assets_to_fetch)} assets failed for {capture.original} @ {capture.timestamp}")

    return SnapshotResult(
        capture, page_path, page_fetched, asset_scan,
        assets_fetched=outcomes[ASSET_FETCHED],
        assets_skipped=outcomes[ASSET_SKIPPED],
        assets_failed=outcomes[ASSET_FAILED],
    )
