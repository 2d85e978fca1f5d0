from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Tuple

from .models import ContactRecord, is_extra_field
from .normalization import (
    QUOTED_PRINTABLE_MARKER,
    NormalizationSettings,
    charset_from_params,
    decode_quoted_printable,
    escape_vcard_newlines,
    escape_vcard_text,
    normalize_phone,
    unescape_vcard_value,
    warn_missing,
)

logger = logging.getLogger(__name__)

VCARD_VERSION = "3.0"
PHONE_TYPES = ("CELL", "HOME", "WORK")
SLOT_PARAM = "X-SLOT"
# Structured values keep their ";" and "," separators.
STRUCTURED_FIELDS = frozenset({"ADR", "ORG", "CATEGORIES", "GEO", "GENDER", "CLIENTPIDMAP"})
COMPONENT_SPLIT = re.compile(r"(?<!\\);")


def _is_quoted_printable(line: str) -> bool:
    head = line.split(":", 1)[0].upper()
    return QUOTED_PRINTABLE_MARKER in head or ";QUOTED-PRINTABLE" in head


def _logical_lines(content: str) -> List[str]:
    lines: List[str] = []
    for raw_line in content.splitlines():
        if lines and raw_line[:1] in (" ", "\t"):
            lines[-1] += raw_line[1:]
            continue
        if lines and _is_quoted_printable(lines[-1]) and lines[-1].endswith("="):
            lines[-1] = lines[-1][:-1] + raw_line.strip()
            continue
        lines.append(raw_line.rstrip("\r"))
    return lines


def _split_property(line: str) -> Tuple[str, str, str]:
    head, _, value = line.partition(":")
    prop, _, params = head.partition(";")
    prop = prop.strip()
    if "." in prop:
        prop = prop.rsplit(".", 1)[1]
    return prop.upper(), params, value


def _decode_value(params: str, value: str) -> str:
    upper_params = params.upper()
    if "QUOTED-PRINTABLE" in upper_params:
        return decode_quoted_printable(value, charset_from_params(params))
    return value


def _slot_from_params(params: str) -> Optional[int]:
    for param in params.split(";"):
        key, _, val = param.partition("=")
        if key.strip().upper() == SLOT_PARAM and val.strip() in ("1", "2", "3"):
            return int(val.strip())
    return None


def _name_from_components(value: str) -> str:
    components = [unescape_vcard_value(part).strip() for part in COMPONENT_SPLIT.split(value)]
    components += [""] * (5 - len(components))
    family, given, middle, prefix, suffix = components[:5]
    return " ".join(filter(None, [prefix, given, middle, family, suffix])).strip()


def parse_vcards(
    content: str, settings: Optional[NormalizationSettings] = None
) -> List[ContactRecord]:
    records: List[ContactRecord] = []
    current: Optional[ContactRecord] = None
    for line in _logical_lines(content):
        if not line.strip():
            continue
        prop, params, raw_value = _split_property(line)
        if prop == "BEGIN" and raw_value.strip().upper() == "VCARD":
            if current is not None:
                logger.warning("Unterminated vCard dropped: %s", current.full_name or current.name)
            current = ContactRecord()
            continue
        if current is None:
            continue
        if prop == "END" and raw_value.strip().upper() == "VCARD":
            current.apply_name_defaults()
            records.append(current)
            current = None
            continue

        value = _decode_value(params, raw_value)
        if prop == "N":
            current.name = _name_from_components(value)
        elif prop == "FN":
            current.full_name = unescape_vcard_value(value).strip()
        elif prop == "TEL":
            phone = normalize_phone(unescape_vcard_value(value), settings)
            slot = _slot_from_params(params)
            if phone and slot and current.set_phone_slot(slot, phone):
                continue
            if phone and not current.assign_phone(phone):
                logger.info("Only three phone numbers kept, ignored %s", phone)
        elif is_extra_field(prop) and prop not in current.extra:
            text = unescape_vcard_value(value).strip()
            if text:
                current.extra[prop] = text

    if current is not None:
        logger.warning("Unterminated vCard dropped: %s", current.full_name or current.name)
    return records


def load_vcards(
    path: Optional[str], settings: Optional[NormalizationSettings] = None
) -> List[ContactRecord]:
    if not path:
        return []
    if warn_missing(path, "vCard"):
        return []
    with open(path, "r", encoding="utf-8", errors="ignore") as handle:
        content = handle.read()
    records = parse_vcards(content, settings)
    logger.info("Loaded %d vCard records from %s", len(records), path)
    return records


def render_vcards(records: Iterable[ContactRecord]) -> List[str]:
    lines: List[str] = []
    for record in records:
        lines.append("BEGIN:VCARD")
        lines.append(f"VERSION:{VCARD_VERSION}")
        if record.name.strip():
            lines.append("N:;" + escape_vcard_text(record.name.strip()))
        if record.full_name.strip():
            lines.append("FN:" + escape_vcard_text(record.full_name.strip()))
        gap = False
        for slot, (phone_type, phone) in enumerate(zip(PHONE_TYPES, record.phone_slots), start=1):
            if not (phone and phone.strip()):
                gap = True
                continue
            slot_param = f";{SLOT_PARAM}={slot}" if gap else ""
            lines.append(f"TEL;TYPE={phone_type}{slot_param}:{phone.strip()}")
        for key, value in record.ordered_extra().items():
            if key == "VERSION":
                continue
            escape = escape_vcard_newlines if key in STRUCTURED_FIELDS else escape_vcard_text
            lines.append(f"{key}:{escape(value)}")
        lines.append("END:VCARD")
    return lines


def save_vcards(records: Iterable[ContactRecord], path: str) -> int:
    lines = render_vcards(records)
    with open(path, "w", encoding="utf-8", newline="\n") as handle:
        handle.write("\n".join(lines))
        if lines:
            handle.write("\n")
    return sum(1 for line in lines if line == "BEGIN:VCARD")
