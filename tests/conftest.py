"""Pytest configuration for sii_f29 tests.

This module provides:
- Byte fixtures shaped like F29 uploads whose text layer leaked into the stream
- A compressed PDF carrying the same form in its text layer
- An empty fingerprint cache so strategy tests never depend on seed values
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from dotenv import load_dotenv
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from sii_f29.extractor.fingerprint import FingerprintCache

# Load environment variables from project .env so DATA_DIR overrides apply in tests
PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")

SCENARIO_TEXT = """FORMULARIO 29 DECLARACION MENSUAL
RUT: 77.754.241-9
PERIODO: 202505
FOLIO: 1234567890123
RAZON SOCIAL: COMERCIAL EJEMPLO SPA
538 DEBITOS 3.410.651
511 CREDITO 4.188.643
062 PPM 359.016
077 REMANENTE 777.992
563 BASE IMPONIBLE 17.950.795
"""

# Only codes 538 and 563: parses, but crédito fiscal is missing.
PARTIAL_TEXT = "538 3.410.651\n563 17.950.795\n"


@pytest.fixture
def scenario_bytes() -> bytes:
    """Complete F29 upload encoded as Latin-1."""
    return SCENARIO_TEXT.encode("latin-1")


@pytest.fixture
def partial_bytes() -> bytes:
    """Upload missing the critical crédito fiscal code."""
    return PARTIAL_TEXT.encode("latin-1")


@pytest.fixture
def scenario_pdf() -> bytes:
    """Complete F29 drawn into a PDF whose content stream is compressed."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter, pageCompression=1)
    y = 750
    for line in SCENARIO_TEXT.splitlines():
        pdf.drawString(72, y, line)
        y -= 18
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


@pytest.fixture
def empty_cache() -> FingerprintCache:
    """Fingerprint cache with no known documents."""
    return FingerprintCache()
