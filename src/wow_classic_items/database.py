"""
Read-only query surface over the built datasets.

Each class is a list of records loaded from its JSON file. Icon names are
expanded to full URLs once, at load time, using the requested icon source.
`filter` keeps the concrete class and its options so chained queries keep
returning the same kind of collection.

Items, zones and talents are build outputs and load from `config.BUILD_DIR`
(where builder.py writes them) unless `data_dir` is given. Professions and
classes ship with the package and load from `config.DATA_DIR`.
"""

import logging
from pathlib import Path

from . import config
from .utils import read_json

logger = logging.getLogger(__name__)


def icon_url(icon, icon_src=config.DEFAULT_ICON_SRC):
    if not icon or "://" in icon:
        return icon
    return config.ICON_TEMPLATES[icon_src].format(icon=icon.lower())


class Database(list):
    filename = None
    default_dir = "BUILD_DIR"

    def __init__(self, icon_src=config.DEFAULT_ICON_SRC, data_dir=None, records=None):
        if icon_src not in config.ICON_TEMPLATES:
            raise ValueError(f"Unknown icon source {icon_src!r}. Use one of: {', '.join(config.ICON_TEMPLATES)}")
        self.icon_src = icon_src
        self.data_dir = Path(data_dir or getattr(config, self.default_dir))
        if records is None:
            records = [self._with_icons(record) for record in self._load()]
        super().__init__(records)

    def _load(self):
        path = self.data_dir / self.filename
        payload = read_json(path)
        if not isinstance(payload, list):
            raise ValueError(f"Expected a JSON array in {path}")
        logger.debug("[*] Loaded %s records from %s.", len(payload), path)
        return payload

    def _with_icons(self, record):
        if "icon" in record:
            record["icon"] = icon_url(record["icon"], self.icon_src)
        return record

    def filter(self, fn):
        """Records matching fn, as the same collection type with the same options."""
        return type(self)(icon_src=self.icon_src, data_dir=self.data_dir, records=[r for r in self if fn(r)])

    def find(self, fn):
        """First record matching fn, or None."""
        return next((record for record in self if fn(record)), None)


class Items(Database):
    filename = config.ITEMS_FILE

    def get_item_link(self, item_id):
        item = self.find(lambda record: record.get("itemId") == item_id)
        return item.get("itemLink") if item else None


class Zones(Database):
    filename = config.ZONES_FILE


class Talents(Database):
    filename = config.TALENTS_FILE


class _NamedDatabase(Database):
    def get(self, name):
        wanted = (name or "").lower()
        return self.find(lambda record: (record.get("name") or "").lower() == wanted)


class Professions(_NamedDatabase):
    filename = config.PROFESSIONS_FILE
    default_dir = "DATA_DIR"


class Classes(_NamedDatabase):
    filename = config.CLASSES_FILE
    default_dir = "DATA_DIR"

    def _with_icons(self, record):
        record = super()._with_icons(record)
        for spec in record.get("specs") or []:
            spec["icon"] = icon_url(spec.get("icon"), self.icon_src)
        return record
