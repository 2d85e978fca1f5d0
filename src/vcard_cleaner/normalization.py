from __future__ import annotations

import logging
import os
import quopri
import re
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

PHONE_RUN_PATTERN = re.compile(r"\+?\d+")
VCARD_ESCAPE_PATTERN = re.compile(r"\\([\\;,nN])")
QUOTED_PRINTABLE_MARKER = "ENCODING=QUOTED-PRINTABLE"

DEFAULT_COUNTRY_CODE = "+972"
DEFAULT_ACCESS_PREFIX = "013"
DEFAULT_LEGACY_ACCESS_PREFIX = "012"
DEFAULT_MOBILE_PREFIX = "05"
LOCAL_NUMBER_LENGTH = 10
TRUNK_NUMBER_LENGTH = 11


@dataclass
class NormalizationSettings:
    country_code: str = DEFAULT_COUNTRY_CODE
    access_prefix: str = DEFAULT_ACCESS_PREFIX
    legacy_access_prefix: str = DEFAULT_LEGACY_ACCESS_PREFIX
    mobile_prefix: str = DEFAULT_MOBILE_PREFIX

    @classmethod
    def from_args(
        cls,
        country_code: Optional[str] = None,
        access_prefix: Optional[str] = None,
        legacy_access_prefix: Optional[str] = None,
        mobile_prefix: Optional[str] = None,
    ) -> "NormalizationSettings":
        return cls(
            country_code=country_code or DEFAULT_COUNTRY_CODE,
            access_prefix=access_prefix or DEFAULT_ACCESS_PREFIX,
            legacy_access_prefix=legacy_access_prefix or DEFAULT_LEGACY_ACCESS_PREFIX,
            mobile_prefix=mobile_prefix or DEFAULT_MOBILE_PREFIX,
        )


DEFAULT_SETTINGS = NormalizationSettings()


def normalize_phone(raw: Optional[str], settings: Optional[NormalizationSettings] = None) -> str:
    """
    Reduce a raw phone value to its canonical local form.

    Each rewrite sees the value produced by the previous one, so a number can
    be touched by several rules (``+972012...`` -> ``0012...`` -> ``01312...``).
    Values that cannot be brought to a leading ``0`` are logged and returned
    unchanged.
    """
    settings = settings or DEFAULT_SETTINGS
    if not raw or not raw.strip():
        return ""

    match = PHONE_RUN_PATTERN.search(raw)
    value = match.group(0) if match else ""
    if not value:
        logger.warning("Invalid phone number: %r", raw)
        return ""

    access = settings.access_prefix
    if value.startswith(settings.country_code):
        value = "0" + value[len(settings.country_code) :]
    if value.startswith("+"):
        value = access + value[1:]
    if value.startswith(settings.legacy_access_prefix):
        value = access + value[len(settings.legacy_access_prefix) :]
    if value.startswith("00"):
        value = access + value[2:]
    if value.startswith("1") and len(value) == TRUNK_NUMBER_LENGTH:
        value = access + value
    if not value.startswith("0"):
        if len(value) == LOCAL_NUMBER_LENGTH:
            value = access + "1" + value
        else:
            logger.warning("Invalid phone number: %s", value)
    return value


def is_mobile(phone: Optional[str], mobile_prefix: str = DEFAULT_MOBILE_PREFIX) -> bool:
    return bool(phone) and phone.startswith(mobile_prefix)  # type: ignore[union-attr]


def decode_quoted_printable(value: str, charset: Optional[str] = None) -> str:
    if not value:
        return ""
    raw = quopri.decodestring(value.encode("utf-8"))
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        logger.debug("Unknown charset %s, decoding as utf-8", charset)
        return raw.decode("utf-8", errors="replace")


def charset_from_params(params: str) -> Optional[str]:
    for param in params.split(";"):
        key, _, val = param.partition("=")
        if key.strip().upper() == "CHARSET" and val.strip():
            return val.strip()
    return None


def decode_field(value: Optional[str]) -> str:
    """Decode a tabular cell that still carries a raw ``...ENCODING=QUOTED-PRINTABLE:...`` line."""
    text = (value or "").strip()
    if QUOTED_PRINTABLE_MARKER not in text.upper():
        return text
    params, sep, payload = text.partition(":")
    if not sep:
        return text
    return decode_quoted_printable(payload, charset_from_params(params)).strip()


def unescape_vcard_value(value: str) -> str:
    if not value:
        return ""
    return VCARD_ESCAPE_PATTERN.sub(
        lambda match: "\n" if match.group(1) in "nN" else match.group(1), value
    )


def escape_vcard_text(value: str) -> str:
    return (
        (value or "")
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def escape_vcard_newlines(value: str) -> str:
    return (value or "").replace("\r\n", "\\n").replace("\n", "\\n")


def read_contact_frame(path: Optional[str], sep: str = ",") -> pd.DataFrame:
    """Read a delimited contact file with every cell as a string and blanks kept as ``""``."""
    if not path:
        return pd.DataFrame()
    return pd.read_csv(path, dtype=str, keep_default_na=False, sep=sep)


def _coerce_to_string(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value or "").strip()


def safe_get(row: "pd.Series", key: str) -> str:
    return _coerce_to_string(row.get(key, ""))


def warn_missing(path: Optional[str], label: str) -> bool:
    if not path or not os.path.exists(path):
        logger.warning("%s path missing: %s", label, path)
        return True
    return False
