from __future__ import annotations

import argparse
import csv
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd
import yaml  # type: ignore[import-untyped]

from .common import (
    ContactRecord,
    MergeEngine,
    build_normalization_settings,
    dedupe_records,
    find_duplicate_phones,
    load_config,
)
from .config_loader import SUPPORTED_FORMATS, CleanerConfig
from .csv_io import load_csv, save_csv
from .logging_utils import configure_logging
from .vcard_io import load_vcards, save_vcards

logger = logging.getLogger(__name__)

VCARD_SUFFIXES = {".vcf", ".vcard"}
CLEANED_SUFFIX = "___CLEANED"
DUPLICATES_SUFFIX = "___DUPLICATES"


class NothingToProcessError(ValueError):
    """Raised when the input yields no contact records."""


def _is_vcard_path(path: str) -> bool:
    return Path(path).suffix.lower() in VCARD_SUFFIXES


def _load_sources(config: CleanerConfig) -> List[ContactRecord]:
    path = config.input_path
    settings = build_normalization_settings(config)
    if path and _is_vcard_path(path):
        return load_vcards(path, settings)
    return load_csv(path, settings)


def _load_required(config: CleanerConfig) -> List[ContactRecord]:
    records = _load_sources(config)
    if not records:
        raise NothingToProcessError(f"List is empty: {config.input_path}")
    return records


def build(
    args: argparse.Namespace, config: Optional[CleanerConfig] = None
) -> Tuple[List[ContactRecord], pd.DataFrame]:
    """Load, merge and dedupe; returns the final records and the duplicate phone table."""
    config = config or load_config(args)
    records = _load_required(config)

    merged = MergeEngine(mobile_prefix=config.normalization.mobile_prefix).merge(records)
    duplicates = find_duplicate_phones(merged)
    for phone, count in duplicates:
        logger.warning("Duplicate phone number: %s - found %d times.", phone, count)

    distinct = dedupe_records(merged)
    logger.info(
        "Loaded %d records, merged into %d, %d after removing duplicates",
        len(records),
        len(merged),
        len(distinct),
    )
    duplicates_df = pd.DataFrame(duplicates, columns=["phone", "count"])
    return distinct, duplicates_df


def convert(args: argparse.Namespace, config: Optional[CleanerConfig] = None) -> List[ContactRecord]:
    config = config or load_config(args)
    return _load_required(config)


def unique_output_path(
    directory: Path, stem: str, extension: str, now: Optional[datetime] = None
) -> Path:
    candidate = directory / f"{stem}.{extension}"
    if not candidate.exists():
        return candidate
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    candidate = directory / f"{stem}_{stamp}.{extension}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{stamp}_{counter}.{extension}"
        counter += 1
    return candidate


def _save(records: Sequence[ContactRecord], path: Path, fmt: str) -> None:
    if fmt == "csv":
        count = save_csv(records, str(path))
    else:
        count = save_vcards(records, str(path))
    logger.info("Saved %d records to %s", count, path)


def write_outputs(
    records: Sequence[ContactRecord], duplicates_df: pd.DataFrame, config: CleanerConfig
) -> List[Path]:
    out_dir = config.output_dir()
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = Path(config.input_path or "contacts").stem
    written: List[Path] = []
    for fmt in config.outputs.formats:
        path = out_dir / f"{stem}{CLEANED_SUFFIX}.{fmt}"
        _save(records, path, fmt)
        written.append(path)
    if config.outputs.duplicates_report and not duplicates_df.empty:
        report_path = out_dir / f"{stem}{DUPLICATES_SUFFIX}.csv"
        duplicates_df.to_csv(
            str(report_path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL
        )
        logger.info("Saved: %s", report_path)
        written.append(report_path)
    return written


def write_conversion(records: Sequence[ContactRecord], config: CleanerConfig) -> Path:
    fmt = config.convert_to or "vcf"
    out_dir = config.output_dir()
    out_dir.mkdir(parents=True, exist_ok=True)
    path = unique_output_path(out_dir, Path(config.input_path or "contacts").stem, fmt)
    _save(records, path, fmt)
    return path


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Merge same-name contacts, normalize phone numbers and drop duplicates."
    )
    parser.add_argument("input", type=str, help="Path to a .vcf or .csv contact file.")
    parser.add_argument("--csv", action="store_true", help="Only convert the input to CSV.")
    parser.add_argument("--vcf", action="store_true", help="Only convert the input to vCard.")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--formats", nargs="+", choices=SUPPORTED_FORMATS, default=None)
    parser.add_argument(
        "--duplicates-report",
        dest="duplicates_report",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write the duplicate phone numbers table (default: on).",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args(argv)

    configure_logging(None, level_override=args.log_level)
    if not args.input or not os.path.isfile(args.input):
        logger.error("Invalid path: %s", args.input)
        return 1

    try:
        config = load_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Could not load config %s: %s", args.config, exc)
        return 1
    configure_logging(config, level_override=args.log_level)

    try:
        if config.convert_to:
            records = convert(args, config=config)
            write_conversion(records, config)
            return 0
        distinct, duplicates_df = build(args, config=config)
    except NothingToProcessError as exc:
        logger.error("%s", exc)
        return 1

    write_outputs(distinct, duplicates_df, config)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
