import logging

from tqdm import tqdm

from . import config
from .fetching import run_batched
from .tooltip import parse_tooltip
from .utils import to_int
from .wowhead import extract_gatherer_data, extract_listview, extract_tooltip_markup

logger = logging.getLogger(__name__)


def parse_talent_page(page, class_name):
    """Talent stubs for one class page."""
    rows = extract_listview(page, "talents") or extract_listview(page, "spells") or []
    spell_data = extract_gatherer_data(page, config.GATHERER_TYPE_SPELL) or {}
    talents = []
    for row in rows:
        talent_id = to_int(row.get("id"))
        if talent_id is None:
            continue
        extra = spell_data.get(str(talent_id)) or {}
        name = row.get("name") or extra.get("name_enus") or ""
        talents.append(
            {
                "id": talent_id,
                "name": name.lstrip("@"),
                "icon": row.get("icon") or extra.get("icon") or "",
                "class": class_name,
            }
        )
    return talents


def fetch_talent_listing(fetcher, classes=None):
    classes = classes or config.TALENT_CLASSES
    talents = []
    seen = set()
    for class_slug, class_name in tqdm(classes.items(), desc="Talent pages", unit="class"):
        page = fetcher.get_text(config.TALENTS_URL.format(class_slug=class_slug))
        if not page:
            logger.warning("[!] Talent page for %s could not be fetched.", class_name)
            continue
        for talent in parse_talent_page(page, class_name):
            if talent["id"] in seen:
                continue
            seen.add(talent["id"])
            talents.append(talent)
    logger.info("[+] Found %s talents.", len(talents))
    return talents


def attach_talent_tooltips(talents, fetcher, batch_size=config.DETAIL_BATCH_SIZE):
    def scrape_one(talent):
        page = fetcher.get_text(config.SPELL_URL.format(spell_id=talent["id"]))
        if not page:
            return talent
        try:
            tooltip = parse_tooltip(extract_tooltip_markup(page, talent["id"], config.GATHERER_TYPE_SPELL))
        except (TypeError, ValueError, KeyError, AttributeError) as exc:
            logger.warning("[!] Malformed tooltip for talent %s: %s: %s", talent["id"], type(exc).__name__, exc)
            return talent
        if tooltip:
            talent["tooltip"] = tooltip
        return talent

    return run_batched(talents, scrape_one, batch_size, desc="Talent tooltips", unit="spell")
