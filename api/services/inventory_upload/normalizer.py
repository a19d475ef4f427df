"""
Row Normalizer
Maps aliased input fields onto the canonical row and flags incomplete rows
"""

import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from utils.constants import FIELD_ALIASES, REASON_MISSING_FIELDS, REQUIRED_FIELDS
from utils.schema.inventory_upload_schema import NormalizedRow, SkippedRow

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_DATE_PREFIX = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:$|[T\s])")
_LEADING_INT = re.compile(r"^[+-]?\d+")


def remap_aliases(raw: Any) -> Dict[str, Any]:
    """Pick the first non-null alias for every canonical field."""
    if not isinstance(raw, Mapping):
        raw = {}
    remapped = {}
    for field_name, aliases in FIELD_ALIASES.items():
        value = None
        for alias in aliases:
            if raw.get(alias) is not None:
                value = raw[alias]
                break
        remapped[field_name] = value
    return remapped


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _format_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_date(value: Any, date_order: str = "MDY") -> str:
    """
    Normalize a date to YYYY-MM-DD.

    NN/NN/YYYY is read as month/day/year for "MDY" and day/month/year for
    "DMY". ISO-like strings keep their calendar date. Anything else is
    returned trimmed so the store can reject it.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = clean_text(value)
    if not text:
        return ""

    match = _SLASH_DATE.match(text)
    if match:
        first, second, year = (int(part) for part in match.groups())
        month, day = (first, second) if date_order == "MDY" else (second, first)
        return _format_date(year, month, day) or text

    match = _ISO_DATE_PREFIX.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _format_date(year, month, day) or text

    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        return text


def normalize_int(value: Any) -> Optional[int]:
    """Leading-integer coercion; empty or non-numeric values become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None

    text = str(value).strip()
    if not text:
        return None
    match = _LEADING_INT.match(text)
    return int(match.group(0)) if match else None


def normalize_rows(
    raw_rows: List[Any],
    date_order: str = "MDY"
) -> Tuple[List[NormalizedRow], List[SkippedRow]]:
    """
    Normalize raw rows and split off the ones missing required fields.

    Returns:
        (rows ready for resolution, rows skipped with a reason)
    """
    rows: List[NormalizedRow] = []
    skipped: List[SkippedRow] = []

    for index, raw in enumerate(raw_rows):
        remapped = remap_aliases(raw)
        values = {
            'sku_code': clean_text(remapped['sku_code']),
            'brand_name': clean_text(remapped['brand_name']),
            'batch_no': clean_text(remapped['batch_no']),
            'barcode': clean_text(remapped['barcode']),
            'date_in': normalize_date(remapped['date_in'], date_order),
            'warranty_months': normalize_int(remapped['warranty_months']),
            'source_index': index,
        }

        if not all(values[name] for name in REQUIRED_FIELDS):
            skipped.append(SkippedRow(**values, reason=REASON_MISSING_FIELDS))
            continue

        rows.append(NormalizedRow(**values))

    return rows, skipped
