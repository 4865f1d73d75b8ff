import json
import os
import re
from datetime import datetime, timezone
from pathlib import Path

import ijson


def utc_now_iso():
    """Return a UTC timestamp string in ISO 8601 format (second precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def read_json(path):
    """Read JSON from disk and return the decoded payload."""
    with open(Path(path), "r", encoding="utf-8") as fh:
        return json.load(fh)


def write_json(path, payload, indent=2):
    """Write JSON via a temp file and atomic rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(path.suffix + ".tmp")
    with open(temp_path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=indent)
        fh.write("\n")
    os.replace(temp_path, path)


def iter_records(path):
    """Yield dict records from an on-disk JSON array without loading it whole."""
    with open(Path(path), "rb") as fh:
        for obj in ijson.items(fh, "item", use_float=True):
            if isinstance(obj, dict):
                yield obj


def safe_get(payload, *keys, default=None):
    """Traverse nested dicts safely and return default on missing keys."""
    cur = payload
    for key in keys:
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def chunked(iterable, size):
    """Yield list slices of fixed size; the last one may be shorter."""
    batch = []
    for item in iterable:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def slugify(name):
    """Lowercase, ascii-ish slug used for uniqueName."""
    if not isinstance(name, str):
        return ""
    out = name.strip().lower()
    out = out.replace("'", "")
    out = re.sub(r"[^a-z0-9]+", "-", out)
    return out.strip("-")


def normalize_stage_name(name):
    """Compare stage names ignoring case and separators."""
    return re.sub(r"[\s_\-.]+", "", (name or "").lower())


def to_int(value, default=None):
    """Coerce numeric-looking values to int."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return default
