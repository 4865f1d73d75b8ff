import logging
from collections import defaultdict

from .utils import slugify

logger = logging.getLogger(__name__)


def assign_recipe_phases(items):
    """
    Set createdBy[i].contentPhase to the earliest phase among the items teaching
    that recipe. Left unset unless every teaching item has a known phase.
    Must run after detail extraction has finished for the whole dataset.
    """
    phase_by_id = {item["itemId"]: item.get("contentPhase") for item in items if "itemId" in item}
    assigned = 0
    cleared = 0
    for item in items:
        for recipe in item.get("createdBy") or []:
            teaching_ids = recipe.get("recipes") or []
            phases = [phase_by_id.get(teaching_id) for teaching_id in teaching_ids]
            if phases and all(isinstance(phase, int) for phase in phases):
                recipe["contentPhase"] = min(phases)
                assigned += 1
            elif "contentPhase" in recipe:
                del recipe["contentPhase"]
                cleared += 1
    logger.info("[+] Recipe phases assigned: %s (cleared %s stale).", assigned, cleared)
    return items


def assign_unique_names(records, id_field="itemId"):
    """Give every record a uniqueName slug; shared names get the record id appended."""
    by_name = defaultdict(list)
    for record in records:
        by_name[record.get("name")].append(record)
    for name, group in by_name.items():
        slug = slugify(name)
        for record in group:
            record["uniqueName"] = f"{slug}-{record[id_field]}" if len(group) > 1 else slug
    return records
