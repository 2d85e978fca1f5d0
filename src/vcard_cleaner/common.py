from __future__ import annotations

from typing import Any

from .config_loader import CleanerConfig, load_cleaner_config
from .merge import MergeEngine, dedupe_records, find_duplicate_phones, merge_records
from .models import EXTRA_FIELDS, ContactRecord
from .normalization import (
    NormalizationSettings,
    decode_field,
    decode_quoted_printable,
    is_mobile,
    normalize_phone,
    read_contact_frame,
    safe_get,
    warn_missing,
)

__all__ = [
    "CleanerConfig",
    "ContactRecord",
    "EXTRA_FIELDS",
    "MergeEngine",
    "NormalizationSettings",
    "build_normalization_settings",
    "decode_field",
    "decode_quoted_printable",
    "dedupe_records",
    "find_duplicate_phones",
    "is_mobile",
    "load_cleaner_config",
    "load_config",
    "merge_records",
    "normalize_phone",
    "read_contact_frame",
    "safe_get",
    "warn_missing",
]


def load_config(args: Any) -> CleanerConfig:
    return load_cleaner_config(args)


def build_normalization_settings(config: CleanerConfig) -> NormalizationSettings:
    return NormalizationSettings.from_args(
        config.normalization.country_code,
        config.normalization.access_prefix,
        config.normalization.legacy_access_prefix,
        config.normalization.mobile_prefix,
    )
