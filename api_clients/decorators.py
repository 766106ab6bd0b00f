# Decorators for API client functions
import functools
import logging
import time

import constants
from .errors import FetchError


def is_success(status_code):
    """True for 2xx. requests' Response.ok also accepts 3xx, which is not wanted here."""
    return 200 <= status_code < 300


def _find_url(args, kwargs):
    """Returns the URL the wrapped call is about, for logging and errors."""
    url = kwargs.get('url') # Prioritize 'url' kwarg
    if not url:
        for arg in args:
            if isinstance(arg, str) and arg.startswith('http'):
                url = arg
                break
    return url


def retry_request(max_attempts=constants.DEFAULT_MAX_ATTEMPTS, backoff_seconds=constants.DEFAULT_BACKOFF_SECONDS):
    """
    Decorator adding linear-backoff retries on non-2xx responses.

    The wrapped function must issue exactly one HTTP request and return the
    `requests.Response`. A 2xx response is returned to the caller as-is (still
    open, so it can be streamed). Any other status closes the response and,
    unless `max_attempts` is reached, waits `attempt * backoff_seconds` before
    calling again; the last failure raises FetchError.

    Transport errors (requests.exceptions.RequestException) are not retried;
    they propagate from the first attempt that raises them.

    Args:
        max_attempts (int): Total number of calls, including the first one.
        backoff_seconds (float): Base delay; attempt N waits N times this.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            url = _find_url(args, kwargs)
            log_url_snippet = f"for {url[:80]}..." if url else f"in {func.__name__}"

            for attempt in range(1, max_attempts + 1):
                response = func(*args, **kwargs)
                if is_success(response.status_code):
                    if attempt > 1:
                        logging.debug(f"Request succeeded {log_url_snippet} on attempt {attempt}/{max_attempts}")
                    return response

                status_code = response.status_code
                response.close()
                if attempt == max_attempts:
                    logging.error(f"Request failed {log_url_snippet} with HTTP {status_code} after {max_attempts} attempts.")
                    raise FetchError(status_code, url)

                wait_time = attempt * backoff_seconds
                logging.warning(f"HTTP {status_code} {log_url_snippet} Retrying ({attempt}/{max_attempts}) after delay of {wait_time:.2f} seconds...")
                time.sleep(wait_time)

        return wrapper
    return decorator
