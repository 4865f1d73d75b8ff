import logging
from collections import OrderedDict
from pathlib import Path

from .utils import read_json, write_json

logger = logging.getLogger(__name__)


class RecordStore:
    """Ordered in-memory collection of records keyed by a numeric id field."""

    def __init__(self, records=None, id_field="id"):
        self.id_field = id_field
        self._records = OrderedDict()
        for record in records or []:
            self.append(record)

    def _key(self, record):
        record_id = record.get(self.id_field)
        if not isinstance(record_id, int) or isinstance(record_id, bool):
            raise ValueError(f"Record is missing integer {self.id_field!r}: {record!r}")
        return record_id

    def append(self, record):
        """Add a record; an id that is already present is rejected."""
        record_id = self._key(record)
        if record_id in self._records:
            raise ValueError(f"Duplicate {self.id_field} {record_id}")
        self._records[record_id] = record

    def get(self, record_id, default=None):
        return self._records.get(record_id, default)

    def remove(self, record_id):
        self._records.pop(record_id, None)

    def __contains__(self, record_id):
        return record_id in self._records

    def __iter__(self):
        return iter(self._records.values())

    def __len__(self):
        return len(self._records)

    def to_list(self):
        return list(self._records.values())

    def save(self, path):
        """Persist the whole collection as one JSON array."""
        write_json(path, self.to_list())
        logger.info("[+] Saved %s records to %s.", len(self._records), path)

    @classmethod
    def load(cls, path, id_field="id"):
        """Load a JSON array written by save()."""
        payload = read_json(Path(path))
        if not isinstance(payload, list):
            raise ValueError(f"Expected a JSON array in {path}, got {type(payload).__name__}")
        return cls(payload, id_field=id_field)
