from __future__ import annotations

import csv
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .models import EXTRA_FIELDS, ContactRecord
from .normalization import (
    NormalizationSettings,
    decode_field,
    normalize_phone,
    read_contact_frame,
    safe_get,
    warn_missing,
)

logger = logging.getLogger(__name__)

CORE_COLUMNS = ("Name", "FullName", "Tel", "Tel2", "Tel3")


def _extra_column(key: str) -> str:
    if key == "EMAIL":
        return "Email"
    return key.replace("-", "_")


EXTRA_COLUMNS: "OrderedDict[str, str]" = OrderedDict(
    (key, _extra_column(key)) for key in EXTRA_FIELDS
)
CSV_COLUMNS: List[str] = list(CORE_COLUMNS) + list(EXTRA_COLUMNS.values())

_CORE_SYNONYMS: Mapping[str, Sequence[str]] = {
    "name": ("Name", "name", "N"),
    "full_name": ("FullName", "Full Name", "full_name", "FN", "Display Name"),
    "tel": ("Tel", "TEL", "Phone", "phone", "Tel1"),
    "tel2": ("Tel2", "TEL2", "Phone 2", "phone2"),
    "tel3": ("Tel3", "TEL3", "Phone 3", "phone3"),
}


def _resolve_column(candidates: Sequence[str], columns: Iterable[str]) -> Optional[str]:
    lookup = {str(column).strip().lower(): column for column in columns}
    for candidate in candidates:
        match = lookup.get(candidate.lower())
        if match is not None:
            return match
    return None


def _row_is_empty(row: pd.Series) -> bool:
    return all(not safe_get(row, column) for column in row.index)


def dataframe_to_records(
    df: pd.DataFrame, settings: Optional[NormalizationSettings] = None
) -> List[ContactRecord]:
    core = {field: _resolve_column(names, df.columns) for field, names in _CORE_SYNONYMS.items()}
    extras = {
        key: _resolve_column((column, key), df.columns) for key, column in EXTRA_COLUMNS.items()
    }

    records: List[ContactRecord] = []
    for _, row in df.iterrows():
        if _row_is_empty(row):
            continue

        def field_value(column: Optional[str]) -> str:
            return decode_field(safe_get(row, column)) if column else ""

        record = ContactRecord(
            name=field_value(core["name"]),
            full_name=field_value(core["full_name"]),
            tel=normalize_phone(field_value(core["tel"]), settings),
            tel2=normalize_phone(field_value(core["tel2"]), settings),
            tel3=normalize_phone(field_value(core["tel3"]), settings),
        )
        for key, column in extras.items():
            value = field_value(column)
            if value:
                record.extra[key] = value
        record.apply_name_defaults()
        records.append(record)
    return records


def load_csv(
    path: Optional[str], settings: Optional[NormalizationSettings] = None
) -> List[ContactRecord]:
    if not path:
        return []
    if warn_missing(path, "CSV"):
        return []
    sep = "\t" if Path(path).suffix.lower() == ".tsv" else ","
    try:
        df = read_contact_frame(path, sep=sep)
    except pd.errors.EmptyDataError:
        logger.warning("CSV file is empty: %s", path)
        return []
    records = dataframe_to_records(df, settings)
    logger.info("Loaded %d CSV records from %s", len(records), path)
    return records


def records_to_dataframe(records: Iterable[ContactRecord]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for record in records:
        row: Dict[str, Any] = {
            "Name": record.name,
            "FullName": record.full_name,
            "Tel": record.tel,
            "Tel2": record.tel2,
            "Tel3": record.tel3,
        }
        for key, column in EXTRA_COLUMNS.items():
            row[column] = record.extra.get(key, "")
        rows.append(row)
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def save_csv(records: Iterable[ContactRecord], path: str) -> int:
    df = records_to_dataframe(records)
    df.to_csv(path, index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    return len(df)
