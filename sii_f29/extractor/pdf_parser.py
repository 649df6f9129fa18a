"""PDF text-layer strategy using pdfplumber.

When an upload is a well-formed PDF, pdfplumber's page text is far cleaner
than the raw byte stream, so it is run through the same regex and
line-adjacency scanners. Files that pdfplumber cannot open contribute nothing.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pdfplumber

from sii_f29.config import setup_logging
from sii_f29.extractor.binary_text import parse_f29_from_decoded_text
from sii_f29.extractor.types import ExtractionAccumulator
from sii_f29.extractor.visual import parse_f29_from_lines

logger = setup_logging(__name__)

__all__ = ["extract_text_from_pdf", "is_pdf", "parse_f29_from_pdf_text"]

PDF_MAGIC = b"%PDF"


def is_pdf(data: bytes) -> bool:
    """Return ``True`` when the header carries the PDF magic number."""
    return data[:1024].lstrip().startswith(PDF_MAGIC)


def extract_text_from_pdf(
    source: Path | bytes,
    pages: list[int] | None = None,
) -> dict[int, str]:
    """Extract text content from PDF pages.

    Parameters
    ----------
    source : Path | bytes
        PDF file path or in-memory contents.
    pages : list[int] | None, optional
        One-indexed pages to extract; ``None`` processes all pages.

    Returns
    -------
    dict[int, str]
        Mapping of one-indexed page numbers to extracted text.

    Raises
    ------
    FileNotFoundError
        If ``source`` is a path that does not exist.
    """
    if isinstance(source, Path):
        if not source.exists():
            msg = f"PDF file not found: {source}"
            raise FileNotFoundError(msg)
        handle: Path | io.BytesIO = source
    else:
        handle = io.BytesIO(source)

    result: dict[int, str] = {}

    with pdfplumber.open(handle) as pdf:
        total_pages = len(pdf.pages)
        logger.debug("PDF has %s pages", total_pages)

        page_indices = (
            range(total_pages) if pages is None else [p - 1 for p in pages if 0 < p <= total_pages]
        )

        for idx in page_indices:
            text = pdf.pages[idx].extract_text() or ""
            result[idx + 1] = text  # 1-indexed page numbers
            logger.debug("Page %s: %s characters", idx + 1, len(text))

    logger.info("Extracted text from %s pages", len(result))
    return result


def parse_f29_from_pdf_text(data: bytes, log: logging.Logger | None = None) -> ExtractionAccumulator:
    """Scan the pdfplumber text layer of ``data`` for F29 codes.

    Parameters
    ----------
    data : bytes
        Raw upload.
    log : logging.Logger | None, optional
        Injected logger.

    Returns
    -------
    ExtractionAccumulator
        ``pdf-text`` partial result; empty when ``data`` is not a PDF or has
        no text layer.
    """
    log = log or logger
    acc = ExtractionAccumulator("pdf-text")

    if not is_pdf(data):
        log.debug("Upload has no PDF header; skipping text layer")
        return acc

    text = "\n".join(extract_text_from_pdf(data).values())
    if not text.strip():
        log.info("⚠ PDF has no text layer")
        return acc

    acc.absorb(parse_f29_from_decoded_text(text, "pdf-text", log), label="text-layer")
    acc.absorb(parse_f29_from_lines(text.splitlines(), method="pdf-text", log=log), label="text-layer-visual")
    return acc
