"""Known-document fingerprint cache (byte-sequence matching).

Amounts taken from previously validated F29 forms are searched as exact ASCII
digit sequences in the raw upload. A match is unambiguous, so it scores the
highest confidence increment, but recall on unseen documents is near zero:
this is a tie-breaker for known documents whose text layer defeats the
scanners, not primary coverage.

A needle only matches as a whole digit run, and learned values shorter than
``fingerprints.min_digits`` are refused, so round amounts never shadow the
scanners.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from sii_f29.config import KNOWN_DOCUMENTS_PATH, get_extraction_specs, get_known_documents
from sii_f29.extractor.types import CODE_FIELDS, ExtractionAccumulator

if TYPE_CHECKING:
    from sii_f29.extractor.types import ExtractionResult

logger = logging.getLogger(__name__)

__all__ = ["Fingerprint", "FingerprintCache", "parse_f29_with_fingerprints"]


@dataclass(frozen=True)
class Fingerprint:
    """Exact amount for one F29 field seen in a validated document."""

    field: str
    value: int
    source: str = "learned"

    @property
    def needle(self) -> bytes:
        """ASCII digits of the value, as they appear in an uncompressed stream."""
        return str(self.value).encode("ascii")

    def occurs_in(self, data: bytes) -> bool:
        """Return ``True`` when the digits appear in ``data`` as a whole digit run."""
        return re.search(rb"(?<!\d)" + self.needle + rb"(?!\d)", data) is not None


class FingerprintCache:
    """In-memory table of fingerprints, optionally backed by a JSON file."""

    def __init__(
        self,
        fingerprints: list[Fingerprint] | None = None,
        path: Path | None = None,
        min_digits: int | None = None,
    ) -> None:
        self.fingerprints: list[Fingerprint] = list(fingerprints or [])
        self.path = path
        if min_digits is None:
            min_digits = get_extraction_specs()["fingerprints"]["min_digits"]
        self.min_digits = min_digits

    @classmethod
    def load(cls, path: Path | None = None) -> FingerprintCache:
        """Read fingerprints from ``known_documents.json`` (or ``path``).

        Raises
        ------
        FileNotFoundError
            If the cache file does not exist.
        """
        path = path or KNOWN_DOCUMENTS_PATH
        entries = get_known_documents(path).get("fingerprints", [])
        fingerprints = [
            Fingerprint(field=e["field"], value=int(e["value"]), source=e.get("source", "learned"))
            for e in entries
            if e.get("field") in CODE_FIELDS and int(e.get("value", 0)) > 0
        ]
        logger.debug("Loaded %s fingerprints from %s", len(fingerprints), path)
        return cls(fingerprints, path)

    def __len__(self) -> int:
        return len(self.fingerprints)

    def __contains__(self, item: object) -> bool:
        return item in self.fingerprints

    def remember(self, result: ExtractionResult, source: str = "learned") -> int:
        """Learn the code amounts of a validated result.

        Parameters
        ----------
        result
            Extraction result; only learned from when ``result.is_valid``.
            Amounts with fewer than ``min_digits`` digits are skipped.
        source
            Provenance tag stored with each new fingerprint.

        Returns
        -------
        int
            Count of fingerprints added.
        """
        if not result.is_valid:
            logger.warning("⚠ Not learning fingerprints from an invalid result")
            return 0

        added = 0
        for field_name in CODE_FIELDS:
            value = result.get_value(field_name)
            if not value:
                continue
            if len(str(int(value))) < self.min_digits:
                logger.debug("Skipping %s=%s: fewer than %s digits", field_name, value, self.min_digits)
                continue
            fingerprint = Fingerprint(field=field_name, value=int(value), source=source)
            if any(f.field == field_name and f.value == fingerprint.value for f in self.fingerprints):
                continue
            self.fingerprints.append(fingerprint)
            added += 1

        logger.info("Learned %s new fingerprints", added)
        return added

    def save(self, path: Path | None = None) -> Path:
        """Persist the cache as JSON and return the written path.

        Raises
        ------
        ValueError
            If neither ``path`` nor a load path is known.
        """
        target = path or self.path
        if target is None:
            msg = "FingerprintCache.save() needs a path"
            raise ValueError(msg)

        target.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "description": "Exact values from validated F29 forms; matched as ASCII digit sequences in raw uploads.",
            "fingerprints": [
                {"field": f.field, "value": f.value, "source": f.source} for f in self.fingerprints
            ],
        }
        with Path(target).open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        logger.info("Saved %s fingerprints to %s", len(self.fingerprints), target)
        return target

    def match(self, data: bytes) -> list[Fingerprint]:
        """Return the fingerprints whose digit run occurs in ``data``."""
        return [f for f in self.fingerprints if f.occurs_in(data)]


def parse_f29_with_fingerprints(
    data: bytes,
    cache: FingerprintCache | None = None,
    log: logging.Logger | None = None,
) -> ExtractionAccumulator:
    """Search the raw bytes for every known amount.

    Parameters
    ----------
    data : bytes
        Raw upload.
    cache : FingerprintCache | None, optional
        Fingerprints to try; the configured cache is loaded when omitted.
    log : logging.Logger | None, optional
        Injected logger.

    Returns
    -------
    ExtractionAccumulator
        ``brute-force`` partial result; the first matching value per field wins.
    """
    log = log or logger
    cache = cache if cache is not None else FingerprintCache.load()
    log.info("Fingerprint scan: %s known values", len(cache))

    acc = ExtractionAccumulator("brute-force")
    for fingerprint in cache.match(data):
        value = fingerprint.value
        if acc.record(fingerprint.field, value, f"{fingerprint.field}: {value} (bytes)", "fingerprint"):
            log.info("✓ %s: %s found as byte sequence", fingerprint.field, f"{value:,}")
    return acc
