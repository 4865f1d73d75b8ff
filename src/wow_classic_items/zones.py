import logging

from . import config
from .utils import to_int
from .wowhead import extract_listview

logger = logging.getLogger(__name__)


def parse_zone_row(row):
    """Map a Wowhead zone listview row to a Zone record."""
    instance = to_int(row.get("instance"))
    category = config.ZONE_INSTANCE_TYPES.get(instance, "undefined") if instance is not None else "undefined"
    return {
        "id": to_int(row.get("id")),
        "name": row.get("name") or "",
        "category": category,
        "level": [to_int(row.get("minlevel"), default=0), to_int(row.get("maxlevel"), default=0)],
        "territory": config.ZONE_TERRITORIES.get(to_int(row.get("territory")), "Contested"),
    }


def parse_zones_page(page):
    rows = extract_listview(page, "zones") or []
    zones = {}
    for row in rows:
        zone = parse_zone_row(row)
        if zone["id"] is None or zone["id"] in zones:
            continue
        zones[zone["id"]] = zone
    return [zones[zone_id] for zone_id in sorted(zones)]


def fetch_zones(fetcher):
    """Single-page scrape of every zone."""
    page = fetcher.get_text(config.ZONES_URL)
    if not page:
        logger.warning("[!] Zone listing could not be fetched.")
        return []
    zones = parse_zones_page(page)
    logger.info("[+] Parsed %s zones.", len(zones))
    return zones
