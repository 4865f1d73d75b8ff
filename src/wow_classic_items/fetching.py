import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait

import requests
import zstandard as zstd
from tqdm import tqdm

from . import config
from .cache_sqlite import SQLitePageCache
from .utils import chunked

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class PageFetcher:
    """requests wrapper with transport retries, stats, and an optional SQLite page cache."""

    def __init__(
        self,
        session=None,
        enable_cache=config.ENABLE_PAGE_CACHE,
        cache_db=config.PAGE_CACHE_DB,
        timeout=config.API_TIMEOUT,
        max_retries=config.MAX_TRANSPORT_RETRIES,
    ):
        self.session = session or requests.Session()
        self.session.headers.update(config.HEADERS)
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._cache = SQLitePageCache(cache_db) if enable_cache else None
        self._lock = threading.Lock()
        self.stats = {
            "cache_hits": 0,
            "network_calls": 0,
            "network_errors": 0,
            "http_status_counts": {200: 0, 404: 0, 429: 0, "other": 0},
        }

    def _bump(self, key):
        with self._lock:
            self.stats[key] += 1

    def _record_status(self, status_code):
        with self._lock:
            counts = self.stats["http_status_counts"]
            if status_code in counts:
                counts[status_code] += 1
            else:
                counts["other"] += 1

    def _request(self, url, params=None, headers=None):
        """Return the final response, or None when the transport gave up."""
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
            except requests.RequestException as exc:
                self._bump("network_errors")
                logger.debug("[!] Request to %s failed: %s", url, exc)
                time.sleep(0.5 * (2**attempt))
                continue
            self._bump("network_calls")
            self._record_status(response.status_code)
            if response.status_code in RETRYABLE_STATUS and attempt < self.max_retries - 1:
                sleep_for = 0.5 * (2**attempt)
                logger.debug("[!] HTTP %s for %s. Sleeping %ss...", response.status_code, url, sleep_for)
                time.sleep(sleep_for)
                continue
            return response
        return None

    def get_text(self, url):
        """Fetch an HTML page. Returns None for anything but HTTP 200."""
        if self._cache is not None:
            row = self._cache.get(url)
            if row and row[0] == 200 and row[1]:
                self._bump("cache_hits")
                return zstd.ZstdDecompressor().decompress(row[1]).decode("utf-8")
        response = self._request(url)
        if response is None:
            return None
        if response.status_code != 200:
            logger.debug("[!] HTTP %s for %s", response.status_code, url)
            return None
        text = response.text
        if self._cache is not None:
            self._cache.put(url, 200, zstd.ZstdCompressor().compress(text.encode("utf-8")))
        return text

    def get_json(self, url, params=None, headers=None):
        """Fetch a JSON document. Returns (status, payload); error bodies are returned too."""
        response = self._request(url, params=params, headers=headers)
        if response is None:
            return None, None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        return response.status_code, payload

    def close(self):
        self.session.close()
        if self._cache is not None:
            self._cache.close()


def run_batched(items, fn, batch_size, desc=None, unit="item"):
    """
    Apply fn to every item with at most batch_size calls in flight.
    Each batch fully resolves before the next one starts. Results keep input order.
    Exceptions raised by fn are not swallowed here.
    """
    items = list(items)
    results = []
    if not items:
        return results
    batch_size = max(1, int(batch_size))
    progress = tqdm(total=len(items), desc=desc, unit=unit, disable=desc is None)
    try:
        with ThreadPoolExecutor(max_workers=batch_size) as executor:
            for batch in chunked(items, batch_size):
                futures = [executor.submit(fn, item) for item in batch]
                wait(futures)
                for future in futures:
                    results.append(future.result())
                progress.update(len(batch))
    finally:
        progress.close()
    return results
