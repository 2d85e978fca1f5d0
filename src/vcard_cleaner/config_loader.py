from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml  # type: ignore[import-untyped]

SUPPORTED_FORMATS = ("vcf", "csv")


@dataclass
class OutputsConfig:
    dir: Optional[Path] = None
    formats: List[str] = field(default_factory=lambda: list(SUPPORTED_FORMATS))
    duplicates_report: bool = True


@dataclass
class NormalizationConfig:
    country_code: str = "+972"
    access_prefix: str = "013"
    legacy_access_prefix: str = "012"
    mobile_prefix: str = "05"


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class CleanerConfig:
    input_path: Optional[str]
    outputs: OutputsConfig
    normalization: NormalizationConfig
    logging: LoggingConfig
    convert_to: Optional[str] = None

    def output_dir(self) -> Path:
        if self.outputs.dir is not None:
            return self.outputs.dir
        if self.input_path:
            return Path(self.input_path).resolve().parent
        return Path.cwd()


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _resolve_formats(raw: Optional[List[str]]) -> List[str]:
    if not raw:
        return list(SUPPORTED_FORMATS)
    formats: List[str] = []
    for value in raw:
        fmt = str(value).strip().lower().lstrip(".")
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported output format: {value!r}")
        if fmt not in formats:
            formats.append(fmt)
    return formats


def _resolve_convert_to(args: argparse.Namespace) -> Optional[str]:
    # --csv wins when both flags are given
    if getattr(args, "csv", False):
        return "csv"
    if getattr(args, "vcf", False):
        return "vcf"
    return None


def load_cleaner_config(args: argparse.Namespace) -> CleanerConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    outputs_cfg = config_data.get("outputs", {}) or {}
    normalization_cfg = config_data.get("normalization", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    out_dir = getattr(args, "out_dir", None) or outputs_cfg.get("dir")
    report_flag = getattr(args, "duplicates_report", None)
    outputs = OutputsConfig(
        dir=Path(out_dir) if out_dir else None,
        formats=_resolve_formats(getattr(args, "formats", None) or outputs_cfg.get("formats")),
        duplicates_report=(
            bool(outputs_cfg.get("duplicates_report", True))
            if report_flag is None
            else bool(report_flag)
        ),
    )

    normalization = NormalizationConfig(
        country_code=str(normalization_cfg.get("country_code", "+972")),
        access_prefix=str(normalization_cfg.get("access_prefix", "013")),
        legacy_access_prefix=str(normalization_cfg.get("legacy_access_prefix", "012")),
        mobile_prefix=str(normalization_cfg.get("mobile_prefix", "05")),
    )

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()

    return CleanerConfig(
        input_path=getattr(args, "input", None),
        outputs=outputs,
        normalization=normalization,
        logging=LoggingConfig(level=effective_level),
        convert_to=_resolve_convert_to(args),
    )
