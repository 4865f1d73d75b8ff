"""
Text extraction for Wowhead pages.

Wowhead renders its tables client side, so the data we need lives in inline
scripts: `WH.Gatherer.addData(type, locale, {...})` blobs on listing pages and
`new Listview({... id: '<name>', data: [...]})` calls on detail pages. Everything
that depends on that serialization format is kept in this module.
"""

import html as html_lib
import json
import logging
import re
from typing import Any, Dict, List, Optional

from . import config

logger = logging.getLogger(__name__)

ADD_DATA_RE = re.compile(r"WH\.Gatherer\.addData\(\s*(\d+)\s*,\s*(\d+)\s*,\s*")
LISTVIEW_RE = re.compile(r"new\s+Listview\(\s*")
LISTVIEW_DATA_RE = re.compile(r"(?:^|[{,\s])[\"']?data[\"']?\s*:\s*(?=\[)")
LINKS_SHOW_RE = re.compile(r"WH\.Links\.show\(\s*this\s*,\s*")
BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)\s*:")
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
UNDEFINED_RE = re.compile(r"\bundefined\b")
G_TOOLTIP_RE_TEMPLATE = r"g_{kind}\[{entity_id}\]\.tooltip_enus\s*=\s*(\"(?:\\.|[^\"\\])*\")"

_CLOSERS = {"{": "}", "[": "]", "(": ")"}


def find_matching_bracket(text, start):
    """Return the index of the bracket closing text[start], honouring JS string literals."""
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    quote = None
    idx = start
    length = len(text)
    while idx < length:
        char = text[idx]
        if quote:
            if char == "\\":
                idx += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return idx
        idx += 1
    return -1


def _normalize_code(code):
    """JSON-ify the parts of a JS literal that sit outside string literals."""
    code = BARE_KEY_RE.sub(r'\1"\2":', code)
    code = TRAILING_COMMA_RE.sub(r"\1", code)
    return UNDEFINED_RE.sub("null", code)


def js_literal_to_json(text):
    """
    Rewrite a JS object/array literal as JSON. Single-quoted strings become
    JSON strings; bare keys, trailing commas and `undefined` are only touched
    outside string literals.
    """
    out = []
    code = []
    idx = 0
    length = len(text)
    while idx < length:
        char = text[idx]
        if char not in ("'", '"'):
            code.append(char)
            idx += 1
            continue
        out.append(_normalize_code("".join(code)))
        code = []
        end = idx + 1
        if char == '"':
            while end < length and text[end] != '"':
                end += 2 if text[end] == "\\" else 1
            out.append(text[idx : end + 1])
        else:
            chunk = []
            while end < length and text[end] != "'":
                if text[end] == "\\" and end + 1 < length:
                    chunk.append(text[end + 1] if text[end + 1] == "'" else text[end : end + 2])
                    end += 2
                    continue
                chunk.append('\\"' if text[end] == '"' else text[end])
                end += 1
            out.append('"' + "".join(chunk) + '"')
        idx = end + 1
    out.append(_normalize_code("".join(code)))
    return "".join(out)


def parse_js_literal(text):
    """Parse a JSON-ish JS object/array literal (bare keys and single quotes tolerated)."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    return json.loads(js_literal_to_json(text))


def _literal_at(text, start):
    """Return the bracketed literal starting at text[start], or None."""
    if start >= len(text) or text[start] not in _CLOSERS:
        return None
    end = find_matching_bracket(text, start)
    if end < 0:
        return None
    return text[start : end + 1]


def iter_gatherer_payloads(page):
    """Yield (data_type, payload) for each parseable WH.Gatherer.addData call."""
    for match in ADD_DATA_RE.finditer(page or ""):
        literal = _literal_at(page, match.end())
        if literal is None:
            continue
        try:
            payload = parse_js_literal(literal)
        except json.JSONDecodeError as exc:
            logger.debug("[!] Skipping malformed addData payload: %s", exc)
            continue
        if isinstance(payload, dict):
            yield int(match.group(1)), payload


def extract_gatherer_data(page, data_type) -> Optional[Dict[str, Any]]:
    """Merge every addData payload of the given type; None when the page has none."""
    merged = None
    for payload_type, payload in iter_gatherer_payloads(page):
        if payload_type != data_type:
            continue
        if merged is None:
            merged = {}
        merged.update(payload)
    return merged


def extract_listview(page, listview_id) -> Optional[List[Dict[str, Any]]]:
    """Return the data array of the Listview whose id matches listview_id."""
    discriminator = re.compile(r"\bid\s*:\s*['\"]" + re.escape(listview_id) + r"['\"]")
    for match in LISTVIEW_RE.finditer(page or ""):
        literal = _literal_at(page, match.end())
        if literal is None or not discriminator.search(literal):
            continue
        data_match = LISTVIEW_DATA_RE.search(literal)
        if not data_match:
            return None
        data_literal = _literal_at(literal, data_match.end())
        if data_literal is None:
            return None
        try:
            rows = parse_js_literal(data_literal)
        except json.JSONDecodeError as exc:
            logger.debug("[!] Listview %s has malformed data: %s", listview_id, exc)
            return None
        return [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else None
    return None


def extract_link_data(page) -> Optional[Dict[str, Any]]:
    """Return the object passed to WH.Links.show(this, {...}) in the links button handler."""
    text = html_lib.unescape(page or "")
    match = LINKS_SHOW_RE.search(text)
    if not match:
        return None
    literal = _literal_at(text, match.end())
    if literal is None:
        return None
    try:
        payload = parse_js_literal(literal)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def extract_tooltip_markup(page, entity_id, data_type=config.GATHERER_TYPE_ITEM) -> Optional[str]:
    """Return the raw tooltip HTML for an entity from addData or a g_items/g_spells assignment."""
    data = extract_gatherer_data(page, data_type) or {}
    entry = data.get(str(entity_id))
    if isinstance(entry, dict) and isinstance(entry.get("tooltip_enus"), str):
        return entry["tooltip_enus"]
    kind = "items" if data_type == config.GATHERER_TYPE_ITEM else "spells"
    pattern = re.compile(G_TOOLTIP_RE_TEMPLATE.format(kind=kind, entity_id=int(entity_id)))
    match = pattern.search(page or "")
    if not match:
        return None
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError:
        return None


def extract_content_phase(page) -> Optional[int]:
    """Return the digit following the content phase marker."""
    match = config.CONTENT_PHASE_PATTERN.search(page or "")
    if not match:
        return None
    return int(match.group(1))
