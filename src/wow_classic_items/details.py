"""
Per-item Wowhead detail extraction.

Every sub-extractor reads the same item page and returns only the fields it
owns. `merge_fields` refuses to let two extractors write the same key.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .fetching import run_batched
from .tooltip import parse_tooltip
from .utils import to_int
from .wowhead import extract_content_phase, extract_link_data, extract_listview, extract_tooltip_markup

logger = logging.getLogger(__name__)

QUEST_SIDES = {1: "Alliance", 2: "Horde", 3: "Both"}
QUEST_LISTVIEWS = ("reward-from-q", "objective-of-q", "provided-for-q")
UNLIMITED_STOCK = -1
EXTRACTOR_ERRORS = (TypeError, ValueError, KeyError, AttributeError, IndexError)


def merge_fields(target: Dict[str, Any], parts: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge extractor outputs into target; overlapping keys are a bug."""
    written = set()
    for part in parts:
        overlap = written & set(part)
        if overlap:
            raise ValueError(f"Detail extractors wrote overlapping fields: {sorted(overlap)}")
        written.update(part)
        target.update(part)
    return target


def _quantity(value):
    number = to_int(value, default=1)
    return number if number > 0 else 1


def teaching_item_ids(fetcher, spell_id) -> List[int]:
    """Ids of the items that teach a recipe spell."""
    page = fetcher.get_text(config.SPELL_URL.format(spell_id=spell_id))
    rows = extract_listview(page, "taught-by-item") if page else None
    ids = []
    for row in rows or []:
        item_id = to_int(row.get("id"))
        if item_id is not None and item_id not in ids:
            ids.append(item_id)
    return ids


def extract_crafting(page, fetcher) -> Dict[str, Any]:
    rows = extract_listview(page, "created-by-spell")
    if not rows:
        return {}
    created_by = []
    for row in rows:
        skill = row.get("skill")
        if not skill:
            continue
        category = config.SKILL_LINES.get(to_int(skill[0]))
        if not category:
            continue
        creates = row.get("creates") or []
        amount_min = _quantity(creates[1] if len(creates) > 1 else 1)
        amount_max = _quantity(creates[2] if len(creates) > 2 else amount_min)
        reagents = []
        for reagent in row.get("reagents") or []:
            if isinstance(reagent, list) and reagent:
                reagents.append({"itemId": to_int(reagent[0]), "amount": _quantity(reagent[1] if len(reagent) > 1 else 1)})
        recipe = {
            "amount": [amount_min, amount_max],
            "requiredSkill": to_int(row.get("learnedat"), default=0),
            "category": category,
            "reagents": reagents,
            "recipes": [],
        }
        spell_id = to_int(row.get("id"))
        if spell_id is not None:
            recipe["recipes"] = teaching_item_ids(fetcher, spell_id)
        created_by.append(recipe)
    return {"createdBy": created_by} if created_by else {}


def extract_tooltip(page, item_id) -> Dict[str, Any]:
    tooltip = parse_tooltip(extract_tooltip_markup(page, item_id))
    return {"tooltip": tooltip} if tooltip else {}


def format_item_link(link_data) -> Optional[str]:
    """Chat link string: |c<color>|H<link id>|h[<name>]|h|r"""
    if not link_data:
        return None
    color = link_data.get("linkColor")
    link_id = link_data.get("linkId")
    name = link_data.get("linkName")
    if not (color and link_id and name):
        return None
    return f"|c{color}|H{link_id}|h[{name}]|h|r"


def extract_item_link(page) -> Dict[str, Any]:
    link = format_item_link(extract_link_data(page))
    return {"itemLink": link} if link else {}


def unit_cost(entry) -> Optional[float]:
    """Sum of numeric cost components divided by stack size."""
    cost = entry.get("cost")
    if isinstance(cost, (int, float)):
        cost = [cost]
    if not isinstance(cost, list):
        return None
    total = sum(part for part in cost if isinstance(part, (int, float)) and not isinstance(part, bool))
    stack = to_int(entry.get("stack"), default=1) or 1
    return total / stack


def compute_vendor_price(sold_by) -> Optional[int]:
    """Popularity-weighted mean unit cost over unlimited-stock vendors."""
    weighted = []
    for entry in sold_by or []:
        if to_int(entry.get("stock")) != UNLIMITED_STOCK:
            continue
        cost = unit_cost(entry)
        if cost is None:
            continue
        weighted.append((cost, max(0, to_int(entry.get("popularity"), default=0))))
    if not weighted:
        return None
    total_popularity = sum(weight for _, weight in weighted)
    if total_popularity <= 0:
        return round(sum(cost for cost, _ in weighted) / len(weighted))
    return round(sum(cost * weight / total_popularity for cost, weight in weighted))


def extract_vendor_price(page) -> Dict[str, Any]:
    price = compute_vendor_price(extract_listview(page, "sold-by"))
    return {"vendorPrice": price} if price is not None else {}


def npc_faction(react) -> str:
    """Faction an NPC serves, from Wowhead's [alliance, horde] reaction pair."""
    if not isinstance(react, list) or len(react) < 2:
        return "Both"
    alliance_friendly = to_int(react[0]) == 1
    horde_friendly = to_int(react[1]) == 1
    if alliance_friendly and not horde_friendly:
        return "Alliance"
    if horde_friendly and not alliance_friendly:
        return "Horde"
    return "Both"


def drop_chance(droppers) -> Optional[float]:
    """Location-count weighted mean of per-NPC drop chances."""
    numerator = 0.0
    denominator = 0
    for npc in droppers:
        override = npc.get("percentOverride")
        if isinstance(override, (int, float)):
            chance = override / 100
        else:
            outof = to_int(npc.get("outof"), default=0)
            if outof <= 0:
                continue
            chance = to_int(npc.get("count"), default=0) / outof
        weight = max(1, len(npc.get("location") or []))
        numerator += chance * weight
        denominator += weight
    if not denominator:
        return None
    return round(numerator / denominator, 4)


def classify_drop(droppers) -> Dict[str, Any]:
    zones = []
    for npc in droppers:
        for zone_id in npc.get("location") or []:
            zone_id = to_int(zone_id)
            if zone_id is not None and zone_id not in zones:
                zones.append(zone_id)
    chance = drop_chance(droppers)
    if len(zones) == 1 and len(droppers) == 1:
        source = {"category": "Boss Drop", "name": droppers[0].get("name"), "zone": zones[0]}
    elif len(zones) == 1:
        source = {"category": "Zone Drop", "zone": zones[0]}
    else:
        source = {"category": "Rare Drop"}
    if chance is not None:
        source["dropChance"] = chance
    return source


def classify_source(page) -> Optional[Dict[str, Any]]:
    """Pick exactly one acquisition source; quests beat drops beat a single vendor."""
    quests = []
    for listview_id in QUEST_LISTVIEWS:
        for row in extract_listview(page, listview_id) or []:
            quest_id = to_int(row.get("id"))
            if quest_id is None or any(q["questId"] == quest_id for q in quests):
                continue
            quests.append(
                {
                    "questId": quest_id,
                    "name": row.get("name"),
                    "faction": QUEST_SIDES.get(to_int(row.get("side")), "Both"),
                }
            )
    if quests:
        return {"category": "Quest", "quests": quests}

    droppers = extract_listview(page, "dropped-by")
    if droppers:
        return classify_drop(droppers)

    vendors = extract_listview(page, "sold-by") or []
    if len(vendors) == 1:
        vendor = vendors[0]
        source = {"category": "Vendor", "name": vendor.get("name"), "faction": npc_faction(vendor.get("react"))}
        cost = unit_cost(vendor)
        if cost is not None:
            source["cost"] = round(cost)
        return source
    return None


def extract_source(page) -> Dict[str, Any]:
    source = classify_source(page)
    return {"source": source} if source else {}


def extract_phase(page) -> Dict[str, Any]:
    phase = extract_content_phase(page)
    return {"contentPhase": phase} if phase is not None else {}


def _run_extractor(item_id, extractor, *args):
    """A malformed table only leaves this extractor's fields unset."""
    try:
        return extractor(*args)
    except EXTRACTOR_ERRORS as exc:
        logger.warning("[!] %s failed for item %s: %s: %s", extractor.__name__, item_id, type(exc).__name__, exc)
        return {}


def extract_item_details(item, page, fetcher):
    """Run every sub-extractor against one item page and merge the results into item."""
    item_id = item["itemId"]
    parts = [
        _run_extractor(item_id, extract_crafting, page, fetcher),
        _run_extractor(item_id, extract_tooltip, page, item_id),
        _run_extractor(item_id, extract_item_link, page),
        _run_extractor(item_id, extract_vendor_price, page),
        _run_extractor(item_id, extract_source, page),
        _run_extractor(item_id, extract_phase, page),
    ]
    return merge_fields(item, parts)


def scrape_item_details(items, fetcher, batch_size=config.DETAIL_BATCH_SIZE):
    """Fetch each item page in bounded batches and attach detail fields."""

    def scrape_one(item):
        page = fetcher.get_text(config.ITEM_URL.format(item_id=item["itemId"]))
        if not page:
            logger.debug("[-] No detail page for item %s.", item["itemId"])
            return item
        return extract_item_details(item, page, fetcher)

    results = run_batched(items, scrape_one, batch_size, desc="Wowhead details", unit="item")
    with_tooltip = sum(1 for item in results if item.get("tooltip"))
    logger.info("[+] Detail extraction done: %s items, %s with tooltips.", len(results), with_tooltip)
    return results
