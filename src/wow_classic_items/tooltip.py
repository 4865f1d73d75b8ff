import html as html_lib
import re
from collections import defaultdict
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Comment

from . import config

COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
ANCHOR_RE = re.compile(r"</?a\b[^>]*>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
NUMERIC_RE = re.compile(r"^\d+$")


def clean_markup(markup):
    """Drop comments, links and leftover JS escapes from raw tooltip HTML."""
    out = markup or ""
    out = COMMENT_RE.sub("", out)
    out = ANCHOR_RE.sub("", out)
    out = out.replace("\\'", "'").replace('\\"', '"').replace("\\/", "/")
    out = out.replace("\\n", " ").replace("\\r", " ").replace("\\t", " ")
    return out


def tokenize(markup):
    """Split cleaned markup into visible text labels in source order."""
    labels = []
    for chunk in TAG_RE.split(markup):
        text = re.sub(r"\s+", " ", html_lib.unescape(chunk)).strip()
        if text:
            labels.append(text)
    return labels


def _node_format(node):
    """Format of the nearest ancestor that carries one."""
    for parent in node.parents:
        if parent.name in (None, "[document]"):
            break
        if parent.name == "th":
            return "alignRight"
        for css_class in parent.get("class") or []:
            if css_class in config.QUALITY_FORMATS:
                return config.QUALITY_FORMATS[css_class]
            if css_class in config.INDENT_CLASSES:
                return "indent"
    return None


def _formats_by_label(markup):
    """Map label text to the formats of its occurrences, in document order."""
    soup = BeautifulSoup(markup, "html.parser")
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    soup.smooth()
    formats = defaultdict(list)
    for node in soup.find_all(string=True):
        text = re.sub(r"\s+", " ", str(node)).strip()
        if text:
            formats[text].append(_node_format(node))
    return formats


def parse_tooltip(raw_markup) -> Optional[List[Dict[str, str]]]:
    """
    Convert raw tooltip HTML into an ordered list of {label, format?}.

    Labels come from splitting the markup on tags. Formats come from the parsed
    tree: the Nth time a label text appears in the token stream it takes the
    format of the Nth text node with that same text.
    """
    if not raw_markup:
        return None
    markup = clean_markup(raw_markup)
    labels = tokenize(markup)
    if not labels:
        return None
    formats = _formats_by_label(markup)
    seen = defaultdict(int)
    tooltip = []
    skip_numeric = False
    for label in labels:
        occurrence = seen[label]
        seen[label] += 1
        if skip_numeric and NUMERIC_RE.match(label):
            continue
        skip_numeric = label == config.SELL_PRICE_LABEL
        entry = {"label": label}
        candidates = formats.get(label) or []
        fmt = candidates[occurrence] if occurrence < len(candidates) else None
        if fmt:
            entry["format"] = fmt
        tooltip.append(entry)
    return tooltip
