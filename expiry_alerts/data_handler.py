import logging
from datetime import date
from typing import Optional

import pandas as pd
from pydantic import ValidationError

from .schemas import InventoryItem, StudyContact

logger = logging.getLogger(__name__)

INVENTORY_COLUMNS = list(InventoryItem.model_fields.keys())
CONTACT_COLUMNS = list(StudyContact.model_fields.keys())


def snapshot_to_frame(snapshot: dict, columns: list[str]) -> pd.DataFrame:
    """
    Turns a keyed database snapshot into a DataFrame, one row per record.
    Row order follows the snapshot's key order. Non-object entries are dropped.
    """
    records = {key: value for key, value in (snapshot or {}).items() if isinstance(value, dict)}
    skipped = len(snapshot or {}) - len(records)
    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} snapshot entries that are not records.")

    df = pd.DataFrame.from_dict(records, orient="index", dtype=object).reindex(columns=columns)
    # NaN -> None so that pydantic sees missing values, not floats.
    return df.astype(object).where(df.notna(), None)


def parse_expiry(value) -> Optional[date]:
    """
    Reads one stored expiry value as a calendar date.
    Accepts ISO dates and timestamps as well as forms like "01/31/2024" or "Jan 31, 2024".
    A timestamp with an offset keeps its own local date. Returns None when unreadable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    # Parsed one value at a time: a column-wide format would reject every entry that differs from the first.
    parsed = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def normalize_expiry(df: pd.DataFrame) -> pd.DataFrame:
    """
    Parses the expiry column into calendar dates.
    Values that cannot be parsed become None and the kit is treated as having no expiry.
    """
    raw = df["expiry"].map(lambda v: v.strip() or None if isinstance(v, str) else v)
    parsed = [parse_expiry(v) for v in raw]
    invalid = raw.notna() & pd.Series([p is None for p in parsed], index=df.index, dtype=bool)
    if invalid.any():
        logger.warning(
            f"⚠️ {int(invalid.sum())} kit(s) have an unreadable expiry and will not be evaluated: "
            f"{list(df.index[invalid])}"
        )
    df = df.copy()
    df["expiry"] = parsed
    return df


def load_inventory(snapshot: dict) -> list[InventoryItem]:
    """Validates the inventory snapshot into InventoryItem records, skipping malformed ones."""
    df = normalize_expiry(snapshot_to_frame(snapshot, INVENTORY_COLUMNS))
    return _validate_rows(df, InventoryItem, "inventory")


def load_contacts(snapshot: dict) -> list[StudyContact]:
    """Validates the contacts snapshot. Contacts without a name or email are skipped."""
    df = snapshot_to_frame(snapshot, CONTACT_COLUMNS)
    return _validate_rows(df, StudyContact, "contact")


def _validate_rows(df: pd.DataFrame, model, label: str) -> list:
    validated = []
    for key, row in zip(df.index, df.to_dict("records")):
        try:
            validated.append(model(**row))
        except ValidationError as e:
            logger.warning(f"⚠️ Skipping {label} record '{key}': {e.error_count()} validation error(s).")
            logger.debug(e)
    return validated
