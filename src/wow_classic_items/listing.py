import logging

from tqdm import tqdm

from . import config
from .wowhead import extract_gatherer_data

logger = logging.getLogger(__name__)


def listing_windows(total=config.ID_SPACE, window=config.LISTING_WINDOW):
    """Yield [start, end) id windows covering [0, total)."""
    if window <= 0:
        raise ValueError("Listing window must be positive.")
    for start in range(0, total, window):
        yield start, start + window


def parse_listing_page(page):
    """Return item stubs from one listing page, ascending by id. Empty on malformed pages."""
    data = extract_gatherer_data(page, config.GATHERER_TYPE_ITEM)
    if not data:
        return []
    stubs = []
    for key, payload in data.items():
        if not isinstance(payload, dict):
            continue
        try:
            item_id = int(key)
        except (TypeError, ValueError):
            continue
        stubs.append(
            {
                "itemId": item_id,
                "name": payload.get("name_enus") or payload.get("name") or "",
                "icon": payload.get("icon") or "",
            }
        )
    stubs.sort(key=lambda stub: stub["itemId"])
    return stubs


def fetch_listing(fetcher, total=config.ID_SPACE, window=config.LISTING_WINDOW):
    """Walk the item id space one window (one request) at a time."""
    windows = list(listing_windows(total, window))
    stubs = []
    seen = set()
    empty_windows = 0
    for start, end in tqdm(windows, desc="Listing", unit="page"):
        page = fetcher.get_text(config.LISTING_URL.format(start=start, end=end))
        found = parse_listing_page(page) if page else []
        if not found:
            empty_windows += 1
            logger.debug("[-] No listing data for window [%s, %s).", start, end)
            continue
        for stub in found:
            if stub["itemId"] in seen:
                continue
            seen.add(stub["itemId"])
            stubs.append(stub)
    logger.info("[+] Listing produced %s stubs (%s empty windows).", len(stubs), empty_windows)
    return stubs
