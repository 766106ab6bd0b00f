# Module for interacting with the CDX API

import logging
from urllib.parse import urlencode

import requests

import constants # Import constants
from models import Capture
from .decorators import is_success
from .errors import IndexQueryError


# --- Query Building ---
def build_index_query(root_url, options):
    """
    Builds the CDX query URL listing captures of exactly `root_url`.

    Digest collapsing is on unless `options.no_dedup` is set, so consecutive
    byte-identical captures come back as a single row. `from`/`to` bounds are
    passed through verbatim and are inclusive on the server side.
    """
    params = [
        ('url', root_url), # exact URL only
        ('output', 'json'),
        ('filter', constants.CDX_FILTER_STATUS),
        ('fl', constants.CDX_FIELDS),
        ('matchType', constants.CDX_MATCH_TYPE),
    ]
    if not options.no_dedup:
        params.append(('collapse', constants.CDX_COLLAPSE))
    if options.from_date:
        params.append(('from', options.from_date))
    if options.to_date:
        params.append(('to', options.to_date))
    return f"{options.cdx_api_url}?{urlencode(params)}"


# --- CDX Row Parsing ---
def parse_cdx_rows(rows):
    """
    Maps CDX JSON rows to Capture records.

    The first row is always the header and is discarded. Remaining rows map
    positionally to timestamp, original and (optional) mimetype. Index order is
    kept and duplicate rows are passed through untouched.
    """
    if not isinstance(rows, list):
        raise ValueError(f"CDX response is not a JSON array (type: {type(rows).__name__}).")

    captures = []
    skipped_count = 0
    for row in rows[1:]:
        if not isinstance(row, list) or len(row) < 2:
            logging.warning(f"Skipping invalid CDX record: {row}")
            skipped_count += 1
            continue
        mimetype = row[2] if len(row) > 2 else None
        captures.append(Capture(row[0], row[1], mimetype))

    if skipped_count > 0:
        logging.warning(f"Skipped {skipped_count} invalid CDX records.")
    return captures


# --- CDX API Fetching ---
def list_captures(root_url, options):
    """
    Queries the CDX API for captures of `root_url`.

    Raises IndexQueryError on a non-2xx answer. The query is not retried.
    """
    query_url = build_index_query(root_url, options)
    headers = {'User-Agent': options.user_agent}

    logging.info(f"Querying CDX API ({options.cdx_api_url}) for {root_url}...")
    response = requests.get(query_url, headers=headers, timeout=options.request_timeout)
    try:
        if not is_success(response.status_code):
            logging.error(f"CDX API request failed with status {response.status_code} {response.reason}. URL: {query_url}")
            raise IndexQueryError(response.status_code, response.reason)
        captures = parse_cdx_rows(response.json())
    finally:
        response.close()

    logging.info(f"Found {len(captures)} captures for {root_url}")
    return captures
