"""
Utility functions for the AR engagement toolkit.
Atomic file writes and small directory helpers.

Usage:
    from scripts.lib.utils import atomic_write_json, atomic_write_csv
"""
import csv
import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

logger = logging.getLogger(__name__)


def _replace_from_temp(temp_path: Path, file_path: Path, write) -> bool:
    try:
        ensure_directory(file_path.parent)
        with open(temp_path, "w", encoding="utf-8", newline="") as f:
            write(f)
        os.replace(temp_path, file_path)
        return True
    except Exception as e:
        logger.error("Failed to write %s: %s", file_path, e)
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
        return False


def atomic_write_json(data: Dict, file_path: str | Path, indent: int = 2) -> bool:
    """
    Write JSON data to file atomically using temp file + rename.
    Prevents a half-written report if the process dies mid-write.

    Args:
        data: Dictionary to serialize as JSON.
        file_path: Target file path.
        indent: JSON indentation level.

    Returns:
        True if successful, False otherwise.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    ok = _replace_from_temp(
        temp_path, file_path,
        lambda f: json.dump(data, f, ensure_ascii=False, indent=indent, default=str),
    )
    if ok:
        logger.debug("Atomically wrote JSON to %s", file_path)
    return ok


def atomic_write_csv(
    rows: Iterable[Dict],
    file_path: str | Path,
    fieldnames: Sequence[str],
) -> bool:
    """
    Write rows as CSV atomically. An empty row set still writes the header.

    Args:
        rows: Dicts keyed by fieldnames.
        file_path: Target file path.
        fieldnames: Column order.

    Returns:
        True if successful, False otherwise.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")
    rows = list(rows)

    def _write(f):
        writer = csv.DictWriter(f, fieldnames=list(fieldnames), extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)

    ok = _replace_from_temp(temp_path, file_path, _write)
    if ok:
        logger.debug("Atomically wrote %d CSV rows to %s", len(rows), file_path)
    return ok


def ensure_directory(path: str | Path) -> Path:
    """Ensure directory exists, create if needed."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def find_latest_file(directory: str | Path, pattern: str) -> Path | None:
    """Return the lexically newest file matching *pattern*, or None.

    Exports are date-stamped (``ar_logs_YYYY-MM-DD.json``) so lexical order
    is chronological.
    """
    matches: List[Path] = sorted(Path(directory).glob(pattern))
    return matches[-1] if matches else None
