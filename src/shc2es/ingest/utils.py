"""Pure helpers for the ingestion pipeline: line parsing and index naming."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("shc2es.ingest.utils")

_FILENAME_DATE = re.compile(r"events-(\d{4}-\d{2}-\d{2})\.ndjson$")


def parse_line(line: str) -> Optional[dict[str, Any]]:
    """Parse one NDJSON line into a record.

    Returns None for blank lines, invalid JSON and non-object values.
    Some log writers emit ``{,"key":...}``; the stray comma is dropped.
    """
    if not line or not line.strip():
        return None
    text = line.strip()
    if text.startswith("{,"):
        text = "{" + text[2:]
    # JSONDecodeError is a ValueError, as is an integer past the digit limit
    try:
        record = json.loads(text)
    except ValueError as e:
        logger.error(
            "Failed to parse NDJSON line: %s", e,
            extra={"line_preview": text[:100]},
        )
        return None
    if not isinstance(record, dict):
        logger.error(
            "NDJSON line is not an object: %s", type(record).__name__,
            extra={"line_preview": text[:100]},
        )
        return None
    return record


def extract_date_from_filename(path: str | Path) -> str:
    """``events-2025-12-10.ndjson`` -> ``2025-12-10``; today (UTC) otherwise."""
    match = _FILENAME_DATE.search(Path(path).name)
    if match:
        return match.group(1)
    return datetime.now(timezone.utc).date().isoformat()


def index_name(prefix: str, date: str) -> str:
    """Daily index name, e.g. ``smart-home-events-2025-12-10``."""
    return f"{prefix}-{date}"
