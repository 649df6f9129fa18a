"""Byte-to-text decoding of raw F29 uploads under several encodings.

Broken PDF streams decode differently per codec, and a numeric token may only
survive intact under one of them, so no encoding is preferred: every variant
is handed to the scanners independently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sii_f29.config import get_decoder_encodings

logger = logging.getLogger(__name__)

__all__ = ["DecodedText", "decode_bytes", "decode_variants"]


@dataclass(frozen=True)
class DecodedText:
    """One decoding of the uploaded bytes."""

    encoding: str
    text: str


def decode_bytes(data: bytes, encoding: str) -> str:
    """Decode ``data`` replacing undecodable bytes, so decoding is total."""
    return data.decode(encoding, errors="replace")


def decode_variants(data: bytes, encodings: list[str] | None = None) -> list[DecodedText]:
    """Decode the raw upload once per configured encoding.

    Parameters
    ----------
    data : bytes
        Raw file contents.
    encodings : list[str] | None, optional
        Codec names to use; defaults to ``config.json`` ``decoding.encodings``.
        Aliases (``latin-1`` / ``iso-8859-1``) are kept as separate variants.

    Returns
    -------
    list[DecodedText]
        One entry per encoding, in configured order.
    """
    variants = []
    for encoding in encodings or get_decoder_encodings():
        text = decode_bytes(data, encoding)
        logger.debug("Decoded %s bytes as %s (%s chars)", len(data), encoding, len(text))
        variants.append(DecodedText(encoding=encoding, text=text))
    return variants
