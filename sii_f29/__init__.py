"""sii-f29: best-effort extraction and validation of Chilean SII Form 29.

The package reads uploaded F29 monthly VAT declarations, recovers the five
key form codes plus identity fields, derives payable totals, and scores the
result with a configurable coherence policy.

Architecture
------------
* ``extractor``: independent strategies (multi-encoding regex/proximity scan,
  line-adjacency scan, known-document fingerprints, pdfplumber text layer)
  merged by confidence, then derived and validated.
* ``extractor.validation``: presence, range, 19% VAT coherence, identity and
  derived-total rules that lower a 0-100 confidence score.
* ``utils``: Chilean number parsing and formatting helpers.

Configuration
-------------
Rules live in ``config/*.json``. Paths default to ``data/`` and ``logs/`` but
respect ``DATA_DIR`` and ``LOGS_DIR``; ``F29_KNOWN_DOCUMENTS`` points the
fingerprint cache at another file.

Examples
--------
Parse one form and save the JSON result:

    >>> python -m sii_f29.main_f29 formulario_29.pdf

Parse several forms without saving:

    >>> python -m sii_f29.main_f29 mayo.pdf junio.pdf --no-save
"""

from sii_f29.config import format_periodo_display

__version__ = "0.1.0"
__all__ = ["__version__", "format_periodo_display"]

# Public helper for introspection tools.
def get_version() -> str:
    """Return the current package version string.

    Returns
    -------
    str
        Semantic version identifier (e.g., ``"0.1.0"``).
    """
    return __version__


__all__.append("get_version")
