import logging
from pathlib import Path

from . import config
from .fetching import run_batched
from .utils import safe_get

logger = logging.getLogger(__name__)

UNKNOWN_ENTITY_CODE = 404
PAYLOAD_ERRORS = (TypeError, ValueError, KeyError, AttributeError)


def load_api_token(path=config.API_TOKEN_FILE):
    """Return the Blizzard API bearer token, or None when the token file is absent."""
    try:
        token = Path(path).read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.info("[*] No API token at %s. Blizzard enrichment will pass items through.", path)
        return None
    return token or None


def derive_slot(payload):
    """Equip slot label from the inventory type, with known API quirks overridden."""
    inventory_type = payload.get("inventory_type") or {}
    override = config.SLOT_OVERRIDES.get(inventory_type.get("type"))
    if override:
        return override
    return inventory_type.get("name")


def apply_item_payload(stub, payload):
    """Copy the authoritative fields onto a stub (in place) and return it."""
    stub["class"] = safe_get(payload, "item_class", "name")
    stub["subclass"] = safe_get(payload, "item_subclass", "name")
    stub["sellPrice"] = payload.get("sell_price", 0)
    stub["quality"] = safe_get(payload, "quality", "name")
    stub["itemLevel"] = payload.get("level")
    stub["requiredLevel"] = payload.get("required_level")
    stub["slot"] = derive_slot(payload)
    return stub


def fetch_item_payload(fetcher, item_id, token):
    """Return the API payload for an item, or None if the item must be dropped."""
    status, payload = fetcher.get_json(
        config.BLIZZARD_ITEM_URL.format(item_id=item_id),
        params=config.BLIZZARD_PARAMS,
        headers={"Authorization": f"Bearer {token}"},
    )
    if status is None:
        logger.warning("[!] Blizzard API unreachable for item %s.", item_id)
        return None
    code = payload.get("code") if isinstance(payload, dict) else None
    if code == UNKNOWN_ENTITY_CODE or (code is None and status == UNKNOWN_ENTITY_CODE):
        return None
    if code is not None or status != 200 or not isinstance(payload, dict):
        detail = payload.get("detail") if isinstance(payload, dict) else None
        logger.warning("[!] Blizzard API error for item %s: HTTP %s code=%s %s", item_id, status, code, detail or "")
        return None
    return payload


def enrich_items(stubs, token, fetcher, batch_size=config.API_BATCH_SIZE):
    """Merge Blizzard API data into item stubs; unknown or failed items are dropped."""
    if token is None:
        logger.info("[*] Skipping Blizzard enrichment (no token). %s items passed through.", len(stubs))
        return list(stubs)

    def enrich_one(stub):
        payload = fetch_item_payload(fetcher, stub["itemId"], token)
        if payload is None:
            return None
        try:
            return apply_item_payload(dict(stub), payload)
        except PAYLOAD_ERRORS as exc:
            logger.warning("[!] Malformed Blizzard payload for item %s: %s: %s", stub["itemId"], type(exc).__name__, exc)
            return None

    results = run_batched(stubs, enrich_one, batch_size, desc="Blizzard API", unit="item")
    enriched = [item for item in results if item is not None]
    logger.info("[+] Blizzard enrichment kept %s of %s items.", len(enriched), len(stubs))
    return enriched
