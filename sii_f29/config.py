"""Configuration management for sii-f29.

This module centralizes file-system paths, environment variables, and split
configuration loaders used by the F29 extraction pipeline.

Split configuration files
-------------------------
* ``config.json``: shared project config (decoders, output file patterns, batch rules)
* ``extraction.json``: F29 code table, scanner windows, and confidence increments
* ``validation.json``: coherence policy (ranges, thresholds, penalties)
* ``known_documents.json``: fingerprint cache of values seen in validated forms

Environment variables
---------------------
``DATA_DIR`` and ``LOGS_DIR`` override default directories, and
``F29_KNOWN_DOCUMENTS`` points the fingerprint cache at another JSON file.
Directories are created eagerly on import so downstream callers can rely on
their existence.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = Path(os.getenv("DATA_DIR", PROJECT_ROOT / "data"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", PROJECT_ROOT / "logs"))
KNOWN_DOCUMENTS_PATH = Path(os.getenv("F29_KNOWN_DOCUMENTS", CONFIG_DIR / "known_documents.json"))

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

MONTH_NAMES = {
    1: "Enero",
    2: "Febrero",
    3: "Marzo",
    4: "Abril",
    5: "Mayo",
    6: "Junio",
    7: "Julio",
    8: "Agosto",
    9: "Septiembre",
    10: "Octubre",
    11: "Noviembre",
    12: "Diciembre",
}


def _load_json_config(path: Path, label: str) -> dict[str, Any]:
    """Read a JSON config file, raising a descriptive error when it is absent."""
    if not path.exists():
        msg = f"{label} not found: {path}"
        raise FileNotFoundError(msg)

    with Path(path).open(encoding="utf-8") as f:
        return json.load(f)  # type: ignore[no-any-return]


def get_config() -> dict[str, Any]:
    """Load the primary project configuration.

    Returns
    -------
    dict[str, Any]
        Parsed contents of ``config/config.json`` including decoder settings
        and output file patterns.

    Raises
    ------
    FileNotFoundError
        If ``config/config.json`` is missing.
    json.JSONDecodeError
        If the file exists but is not valid JSON.
    """
    return _load_json_config(CONFIG_DIR / "config.json", "Configuration file")


def get_period_paths() -> dict[str, Path]:
    """Return output locations for processed and raw F29 files.

    Returns
    -------
    dict[str, Path]
        Mapping with keys ``raw`` (uploaded forms) and ``processed`` (JSON results).
    """
    return {
        "raw": DATA_DIR / "raw" / "f29",
        "processed": DATA_DIR / "processed",
    }


def setup_logging(name: str = "sii_f29") -> logging.Logger:
    """Configure a console+file logger if not already present.

    Parameters
    ----------
    name : str, optional
        Logger namespace; reused to avoid duplicate handlers.

    Returns
    -------
    logging.Logger
        Logger with INFO-level console handler and DEBUG-level dated file
        handler under ``LOGS_DIR``.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

        # File handler
        log_filename = f"{datetime.now(UTC).strftime('%Y-%m-%d')}_run.log"
        file_handler = logging.FileHandler(LOGS_DIR / log_filename)
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger


# =============================================================================
# Split Configuration Loaders
# =============================================================================


def get_extraction_specs() -> dict[str, Any]:
    """Load F29 extraction specifications from ``extraction.json``.

    Returns
    -------
    dict[str, Any]
        Code table, regex/proximity window sizes, confidence increments, and
        identity-field settings.

    Raises
    ------
    FileNotFoundError
        If the specs file is missing.
    json.JSONDecodeError
        If the specs file cannot be parsed.
    """
    return _load_json_config(CONFIG_DIR / "extraction.json", "Extraction specs")


def get_validation_policy_config() -> dict[str, Any]:
    """Load the coherence policy from ``validation.json``.

    Returns
    -------
    dict[str, Any]
        Presence rules, absolute/typical ranges, coherence thresholds, and
        confidence penalties.

    Raises
    ------
    FileNotFoundError
        If the policy file is missing.
    """
    return _load_json_config(CONFIG_DIR / "validation.json", "Validation policy")


def get_known_documents(path: Path | None = None) -> dict[str, Any]:
    """Load the fingerprint cache of previously validated F29 values.

    Parameters
    ----------
    path : Path | None, optional
        Alternative cache file; defaults to ``KNOWN_DOCUMENTS_PATH``.

    Returns
    -------
    dict[str, Any]
        Mapping with a ``fingerprints`` list of ``{"field", "value", "source"}``
        entries.
    """
    return _load_json_config(path or KNOWN_DOCUMENTS_PATH, "Known documents cache")


def get_decoder_encodings() -> list[str]:
    """Return the text encodings every uploaded file is decoded with."""
    config = get_config()
    decoding = config.get("decoding", {})
    return cast(
        "list[str]",
        decoding.get("encodings", ["utf-8", "latin-1", "windows-1252", "iso-8859-1"]),
    )


def get_visual_encoding() -> str:
    """Return the single encoding used by the line-adjacency scanner."""
    config = get_config()
    return cast("str", config.get("decoding", {}).get("visual_encoding", "latin-1"))


def get_confidence_increments() -> dict[str, int]:
    """Return the confidence added per extraction signal kind.

    Returns
    -------
    dict[str, int]
        Signal name (``regex``, ``proximity``, ``visual``, ``fingerprint``,
        ``rut``, ``periodo``, ``folio``, ``razon_social``) to increment.
    """
    specs = get_extraction_specs()
    return cast("dict[str, int]", specs.get("confidence_increments", {}))


# =============================================================================
# Period Formatting Functions
# =============================================================================


def parse_periodo(periodo: str) -> tuple[int, int]:
    """Split a ``YYYYMM`` tax period into year and month.

    Parameters
    ----------
    periodo : str
        Six-digit period as printed on the form (e.g., ``"202505"``).

    Returns
    -------
    tuple[int, int]
        Year and month number.

    Raises
    ------
    ValueError
        If the string is not a six-digit period with a month in 1-12.
    """
    match = re.fullmatch(r"(\d{4})(\d{2})", periodo or "")
    if not match or not 1 <= int(match.group(2)) <= 12:
        msg = f"Unrecognized F29 period: {periodo!r}"
        raise ValueError(msg)
    return int(match.group(1)), int(match.group(2))


def format_periodo_display(periodo: str) -> str:
    """Render ``"202505"`` as ``"Mayo 2025"``; unknown periods are returned unchanged."""
    try:
        year, month = parse_periodo(periodo)
    except ValueError:
        return periodo
    return f"{MONTH_NAMES[month]} {year}"


def get_file_pattern(file_type: str) -> str:
    """Return the configured filename pattern for an output type.

    Parameters
    ----------
    file_type : str
        Key under ``file_patterns`` in ``config.json`` (e.g., ``f29_result``).

    Returns
    -------
    str
        Pattern containing ``{periodo}`` and ``{rut}`` placeholders.
    """
    config = get_config()
    patterns = config.get("file_patterns", {})
    file_config = patterns.get(file_type, {})
    return cast("str", file_config.get("pattern", f"{file_type}_{{periodo}}_{{rut}}.json"))


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries, allowing overrides in ``overlay``.

    Parameters
    ----------
    base : dict[str, Any]
        Original mapping.
    overlay : dict[str, Any]
        Values that override or extend ``base``.

    Returns
    -------
    dict[str, Any]
        New merged mapping.
    """
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result
