from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional

import jsonschema
from jsonschema.exceptions import best_match

FACTIONS = ["Alliance", "Horde", "Both"]
TOOLTIP_FORMATS = ["Poor", "Common", "Uncommon", "Rare", "Epic", "Legendary", "Artifact", "Misc", "alignRight", "indent"]

TOOLTIP_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["label"],
        "properties": {
            "label": {"type": "string", "minLength": 1},
            "format": {"enum": TOOLTIP_FORMATS},
        },
        "additionalProperties": False,
    },
}

SOURCE_SCHEMA = {
    "type": "object",
    "required": ["category"],
    "properties": {
        "category": {"enum": ["Vendor", "Quest", "Boss Drop", "Zone Drop", "Rare Drop"]},
        "name": {"type": ["string", "null"]},
        "faction": {"enum": FACTIONS},
        "cost": {"type": "integer"},
        "zone": {"type": "integer"},
        "dropChance": {"type": "number", "minimum": 0},
        "quests": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["questId", "faction"],
                "properties": {
                    "questId": {"type": "integer"},
                    "name": {"type": ["string", "null"]},
                    "faction": {"enum": FACTIONS},
                },
            },
        },
    },
    "allOf": [
        {"if": {"properties": {"category": {"const": "Quest"}}}, "then": {"required": ["quests"]}},
        {"if": {"properties": {"category": {"const": "Vendor"}}}, "then": {"required": ["name", "faction"]}},
        {"if": {"properties": {"category": {"const": "Boss Drop"}}}, "then": {"required": ["name", "zone"]}},
        {"if": {"properties": {"category": {"const": "Zone Drop"}}}, "then": {"required": ["zone"]}},
    ],
}

RECIPE_SCHEMA = {
    "type": "object",
    "required": ["amount", "requiredSkill", "category", "reagents", "recipes"],
    "properties": {
        "amount": {"type": "array", "items": {"type": "integer", "minimum": 1}, "minItems": 2, "maxItems": 2},
        "requiredSkill": {"type": "integer"},
        "category": {"type": "string"},
        "reagents": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["itemId", "amount"],
                "properties": {"itemId": {"type": ["integer", "null"]}, "amount": {"type": "integer", "minimum": 1}},
            },
        },
        "recipes": {"type": "array", "items": {"type": "integer"}},
        "contentPhase": {"type": "integer"},
    },
}

ITEM_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["itemId", "name", "icon"],
    "properties": {
        "itemId": {"type": "integer"},
        "name": {"type": "string"},
        "icon": {"type": "string"},
        "class": {"type": ["string", "null"]},
        "subclass": {"type": ["string", "null"]},
        "sellPrice": {"type": ["integer", "null"]},
        "quality": {"type": ["string", "null"]},
        "itemLevel": {"type": ["integer", "null"]},
        "requiredLevel": {"type": ["integer", "null"]},
        "slot": {"type": ["string", "null"]},
        "tooltip": TOOLTIP_SCHEMA,
        "itemLink": {"type": "string", "pattern": r"^\|c.+\|H.+\|h\[.*\]\|h\|r$"},
        "vendorPrice": {"type": "integer"},
        "source": SOURCE_SCHEMA,
        "contentPhase": {"type": "integer"},
        "createdBy": {"type": "array", "items": RECIPE_SCHEMA},
        "uniqueName": {"type": "string"},
    },
}

ZONE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "name", "category", "level", "territory"],
    "properties": {
        "id": {"type": "integer"},
        "name": {"type": "string"},
        "category": {"enum": ["Open World", "Dungeon", "Raid", "Battleground", "Arena", "undefined"]},
        "level": {"type": "array", "items": {"type": "integer"}, "minItems": 2, "maxItems": 2},
        "territory": {"enum": ["Alliance", "Horde", "Contested", "Sanctuary", "PvP"]},
    },
}

TALENT_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "integer"},
        "name": {"type": "string"},
        "icon": {"type": "string"},
        "class": {"type": "string"},
        "tooltip": TOOLTIP_SCHEMA,
    },
}

PROFESSION_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["name", "icon"],
    "properties": {"name": {"type": "string"}, "icon": {"type": "string"}},
}

CLASS_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["name", "color", "icon", "specs"],
    "properties": {
        "name": {"type": "string"},
        "color": {"type": "string", "pattern": "^#[0-9A-Fa-f]{6}$"},
        "icon": {"type": "string"},
        "specs": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "icon"],
                "properties": {"name": {"type": "string"}, "icon": {"type": "string"}},
            },
        },
    },
}

DATASET_SCHEMAS = {
    "items": ITEM_SCHEMA,
    "zones": ZONE_SCHEMA,
    "talents": TALENT_SCHEMA,
    "professions": PROFESSION_SCHEMA,
    "classes": CLASS_SCHEMA,
}


class DatasetValidationError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def schema_for(dataset: str) -> dict[str, Any]:
    try:
        return DATASET_SCHEMAS[dataset]
    except KeyError:
        raise KeyError(f"No schema for dataset {dataset!r}. Known: {', '.join(DATASET_SCHEMAS)}") from None


def validate_record(record: dict[str, Any], dataset: str) -> None:
    """Raise DatasetValidationError with the shallowest schema error, if any."""
    validator = jsonschema.Draft202012Validator(schema_for(dataset))
    errors = sorted(validator.iter_errors(record), key=lambda e: len(list(e.absolute_path)))
    if errors:
        error = errors[0]
        details = {
            "path": list(error.absolute_path),
            "schema_path": list(error.absolute_schema_path),
            "message": error.message,
        }
        raise DatasetValidationError("SCHEMA_VIOLATION", "Schema validation failed.", details)


def iter_schema_errors(records: Iterable[dict[str, Any]], dataset: str) -> Iterator[tuple[int, str]]:
    """Yield (index, message) for every record that breaks the dataset schema."""
    validator = jsonschema.Draft202012Validator(schema_for(dataset))
    for index, record in enumerate(records):
        error = best_match(validator.iter_errors(record))
        if error is not None:
            yield index, error.message
