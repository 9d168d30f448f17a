"""
Outlet catalog loader (raw flat file → Outlet objects).

File format:
    codename,name,type,pic
    tg1,TG1,tg,https://example.org/tg1.png

Format notes:
    - First line is the header; every other line is one outlet
    - Comma-delimited with NO quoting or escaping: a comma inside a value
      splits it, so such rows end up with the wrong field count
    - Fields are whitespace-trimmed
    - Rows whose field count differs from the header count are DROPPED.
      This is lossy by contract. Each drop is logged at DEBUG and the total
      at WARNING, and parse_catalog_string can report them to the caller.
    - Required columns: codename, name, type. Optional: pic (empty = none)
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional

from mbi.model import Outlet

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["codename", "name", "type"]


class CatalogLoadError(Exception):
    """Raised when the outlet catalog cannot be read or yields no outlets."""
    pass


@dataclass
class CatalogParseResult:
    """Parsed outlets plus the 1-based line numbers of dropped rows."""
    outlets: List[Outlet] = field(default_factory=list)
    dropped_lines: List[int] = field(default_factory=list)


def _split_line(line: str) -> List[str]:
    return [value.strip() for value in line.split(",")]


def parse_catalog(content: str, mainstream: AbstractSet[str] = frozenset()) -> CatalogParseResult:
    """
    Parse catalog content, keeping track of dropped rows.

    Args:
        content: Catalog text
        mainstream: Codenames to flag as is_mainstream

    Raises:
        CatalogLoadError: If the header is missing or lacks required columns
    """
    lines = content.strip().splitlines()
    if not lines or not lines[0].strip():
        raise CatalogLoadError("Catalog is empty")

    headers = _split_line(lines[0])
    missing = [col for col in REQUIRED_COLUMNS if col not in headers]
    if missing:
        raise CatalogLoadError(f"Missing required columns: {missing}")

    result = CatalogParseResult()
    seen = set()
    for line_num, line in enumerate(lines[1:], start=2):
        values = _split_line(line)
        if len(values) != len(headers):
            logger.debug("Dropping catalog line %d: %d fields, expected %d", line_num, len(values), len(headers))
            result.dropped_lines.append(line_num)
            continue

        row = dict(zip(headers, values))
        codename = row["codename"]
        if codename in seen:
            raise CatalogLoadError(f"Duplicate codename '{codename}' on line {line_num}")
        seen.add(codename)

        result.outlets.append(Outlet(
            codename=codename,
            name=row["name"],
            type=row["type"],
            pic=row.get("pic") or None,
            is_mainstream=codename in mainstream,
        ))

    if result.dropped_lines:
        logger.warning("Dropped %d malformed catalog row(s)", len(result.dropped_lines))
    return result


def parse_catalog_string(content: str, mainstream: AbstractSet[str] = frozenset()) -> List[Outlet]:
    """
    Parse catalog content into outlets.

    Raises:
        CatalogLoadError: If parsing fails or no outlet survives
    """
    outlets = parse_catalog(content, mainstream).outlets
    if not outlets:
        raise CatalogLoadError("No outlets found in catalog")
    logger.info("Loaded %d outlets", len(outlets))
    return outlets


def load_catalog(filepath: str, mainstream: AbstractSet[str] = frozenset()) -> List[Outlet]:
    """
    Read and parse the catalog file.

    Any transport failure (missing file, unreadable, bad encoding) is
    reported as CatalogLoadError.
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogLoadError(f"Failed to read catalog {filepath}: {e}")
    return parse_catalog_string(content, mainstream)


def outlets_by_type(outlets: List[Outlet], outlet_type: str) -> List[Outlet]:
    return [outlet for outlet in outlets if outlet.type == outlet_type]


def find_outlet(outlets: List[Outlet], codename: str) -> Optional[Outlet]:
    for outlet in outlets:
        if outlet.codename == codename:
            return outlet
    return None


__all__ = [
    "CatalogLoadError",
    "CatalogParseResult",
    "parse_catalog",
    "parse_catalog_string",
    "load_catalog",
    "outlets_by_type",
    "find_outlet",
]
