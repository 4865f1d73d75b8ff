import argparse
import logging
import sys
from pathlib import Path

from wow_classic_items import config
from wow_classic_items.schemas import iter_schema_errors
from wow_classic_items.utils import iter_records

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DATASET_FILES = {
    "items": (config.ITEMS_FILE, "itemId"),
    "zones": (config.ZONES_FILE, "id"),
    "talents": (config.TALENTS_FILE, "id"),
}
MAX_REPORTED_SCHEMA_ERRORS = 20


def compare_datasets(old_path, new_path, id_field):
    """Count records missing from, added to, and changed in the new build."""
    new_by_id = {record.get(id_field): record for record in iter_records(new_path)}
    missing = 0
    changed = 0
    old_count = 0
    for old in iter_records(old_path):
        old_count += 1
        new = new_by_id.get(old.get(id_field))
        if new is None:
            missing += 1
        elif new != old:
            changed += 1
    return {
        "missing": missing,
        "added": len(new_by_id) - (old_count - missing),
        "changed": changed,
    }


def report_comparison(dataset, counts):
    for key in ("missing", "added", "changed"):
        label = "Change" if counts[key] > 0 else "Validated"
        logger.info("%10s: %s %s %s.", label, counts[key], dataset, key)
    if any(counts.values()):
        logger.warning("[!] Changes detected in %s. Either the build broke or it improved; review before publishing.", dataset)
    else:
        logger.info("[+] %s build successfully validated.", dataset)


def check_schema(dataset, path):
    """Log schema violations; return how many records failed."""
    failures = 0
    for index, message in iter_schema_errors(iter_records(path), dataset):
        failures += 1
        if failures <= MAX_REPORTED_SCHEMA_ERRORS:
            logger.warning("[!] %s[%s]: %s", dataset, index, message)
    if failures > MAX_REPORTED_SCHEMA_ERRORS:
        logger.warning("[!] ... %s more schema errors in %s.", failures - MAX_REPORTED_SCHEMA_ERRORS, dataset)
    return failures


def validate(datasets, old_dir, new_dir):
    """Return the number of schema failures across the new builds."""
    failures = 0
    for dataset in datasets:
        filename, id_field = DATASET_FILES[dataset]
        new_path = Path(new_dir) / filename
        old_path = Path(old_dir) / filename
        if not new_path.exists():
            logger.warning("[!] No new build for %s at %s.", dataset, new_path)
            continue
        failures += check_schema(dataset, new_path)
        if old_path.exists():
            report_comparison(dataset, compare_datasets(old_path, new_path, id_field))
        else:
            logger.info("[*] No published %s dataset at %s to compare against.", dataset, old_path)
    return failures


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Compare a fresh build against the published datasets.")
    parser.add_argument("--dataset", choices=sorted(DATASET_FILES), action="append", default=None)
    parser.add_argument("--old-dir", type=str, default=str(config.DATA_DIR), help="Published dataset directory.")
    parser.add_argument("--new-dir", type=str, default=str(config.BUILD_DIR), help="Fresh build directory.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    failures = validate(args.dataset or list(DATASET_FILES), args.old_dir, args.new_dir)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
