"""Tests for the individual F29 extraction strategies.

Tests cover:
1. Multi-encoding decoding of raw uploads
2. Regex and proximity code scanning
3. Line-adjacency (visual) scanning
4. Known-document fingerprint cache
5. Identity-field scanning
6. pdfplumber text-layer strategy on raw and compressed PDFs
"""

from __future__ import annotations

from pathlib import Path

import pytest

from sii_f29.extractor.binary_text import (
    find_code_by_proximity,
    find_code_by_regex,
    parse_f29_from_binary,
)
from sii_f29.extractor.decoding import decode_variants
from sii_f29.extractor.extraction_pipeline import parse_f29
from sii_f29.extractor.fingerprint import Fingerprint, FingerprintCache, parse_f29_with_fingerprints
from sii_f29.extractor.identity import (
    find_folio,
    find_periodo,
    find_razon_social,
    find_rut,
    parse_identity_from_text,
)
from sii_f29.extractor.pdf_parser import extract_text_from_pdf, is_pdf, parse_f29_from_pdf_text
from sii_f29.extractor.types import ExtractionAccumulator, ExtractionResult
from sii_f29.extractor.visual import parse_f29_from_lines, parse_f29_with_visual_patterns

# =============================================================================
# Decoding
# =============================================================================


class TestDecoding:
    """Tests for decode_variants."""

    def test_one_variant_per_encoding(self) -> None:
        """Every configured encoding yields its own variant."""
        variants = decode_variants(b"538 3.410.651")
        assert [v.encoding for v in variants] == ["utf-8", "latin-1", "windows-1252", "iso-8859-1"]

    def test_decoding_never_fails(self) -> None:
        """Invalid byte sequences are replaced, not raised."""
        utf8, latin1 = decode_variants(b"caf\xe9", ["utf-8", "latin-1"])
        assert utf8.text == "caf\ufffd"
        assert latin1.text == "café"


# =============================================================================
# Regex / Proximity
# =============================================================================


class TestCodeScanner:
    """Tests for regex and proximity code lookup."""

    def test_regex_after_label(self) -> None:
        """Value following the code within the label gap is captured."""
        assert find_code_by_regex("Código 538: $ 3.410.651", "538") == 3410651

    def test_regex_missing_code(self) -> None:
        """No occurrence of the code yields None."""
        assert find_code_by_regex("nothing here", "538") is None

    def test_regex_zero_stops_at_line_break(self) -> None:
        """A zero amount is not joined to the code on the next line."""
        text = "538 0\n511 4.188.643"
        assert find_code_by_regex(text, "538") is None
        assert find_code_by_regex(text, "511") == 4188643

    def test_regex_gap_exceeded_falls_to_proximity(self) -> None:
        """Beyond the label gap only the proximity window finds the value."""
        text = "538" + "-" * 60 + "3.410.651"
        assert find_code_by_regex(text, "538") is None
        assert find_code_by_proximity(text, "538") == 3410651

    def test_proximity_prefers_significant_value(self) -> None:
        """Tokens above 100 win over smaller earlier tokens."""
        assert find_code_by_proximity("538 -- 7 -- 4.500", "538") == 4500

    def test_proximity_falls_back_to_first_token(self) -> None:
        """With only small tokens the first one is returned."""
        assert find_code_by_proximity("538 -- 7", "538") == 7

    def test_proximity_ignores_code_itself(self) -> None:
        """The code digits are not read as the value."""
        assert find_code_by_proximity("código 538", "538") is None

    def test_binary_strategy_scans_all_codes(self, scenario_bytes: bytes) -> None:
        """Every code and identity field is recovered from the raw bytes."""
        result = parse_f29_from_binary(scenario_bytes).to_result()

        assert result.method == "binary-pdf"
        assert result.debito_fiscal == 3410651
        assert result.credito_fiscal == 4188643
        assert result.ppm == 359016
        assert result.remanente == 777992
        assert result.ventas_netas == 17950795
        assert result.rut == "777542419"
        assert result.periodo == "202505"
        assert result.confidence == 100
        assert any(entry.startswith("[utf-8] ") for entry in result.detected_values)


# =============================================================================
# Visual
# =============================================================================


class TestVisualScanner:
    """Tests for the line-adjacency scanner."""

    def test_value_on_next_line(self) -> None:
        """The line after the code is scanned as well."""
        acc = parse_f29_from_lines(["Código 538 DÉBITOS", "3.410.651"])
        assert acc.values == {"debito_fiscal": 3410651}
        assert acc.confidence == 25
        assert acc.detected_values == ["código538: 3410651 (visual)"]

    def test_out_of_range_rejected(self) -> None:
        """Numbers outside the code's magnitude range are ignored."""
        acc = parse_f29_from_lines(["538 999"])
        assert acc.values == {}
        assert acc.confidence == 0

    def test_visual_strategy(self, scenario_bytes: bytes) -> None:
        """Seven-digit amounts are found next to their codes."""
        result = parse_f29_with_visual_patterns(scenario_bytes).to_result()
        assert result.method == "visual-patterns"
        assert result.debito_fiscal == 3410651
        assert result.credito_fiscal == 4188643
        assert result.ventas_netas == 17950795


# =============================================================================
# Fingerprints
# =============================================================================


class TestFingerprintCache:
    """Tests for FingerprintCache and the byte-sequence strategy."""

    def test_match_scores_fingerprint_increment(self) -> None:
        """An exact digit sequence in the bytes is recorded with +30."""
        cache = FingerprintCache([Fingerprint("debito_fiscal", 3410651)])
        acc = parse_f29_with_fingerprints(b"\x00stream 3410651 endstream", cache)
        assert acc.values == {"debito_fiscal": 3410651}
        assert acc.confidence == 30

    def test_no_match(self, empty_cache: FingerprintCache) -> None:
        """An empty cache contributes nothing."""
        acc = parse_f29_with_fingerprints(b"3410651", empty_cache)
        assert acc.confidence == 0

    def test_seed_cache_loads(self) -> None:
        """The configured cache carries the seed document."""
        cache = FingerprintCache.load()
        assert len(cache) >= 5
        assert Fingerprint("ventas_netas", 17950795, "seed") in cache

    def test_remember_only_valid(self, empty_cache: FingerprintCache) -> None:
        """Invalid results are never learned from."""
        result = ExtractionResult(debito_fiscal=3410651, is_valid=False)
        assert empty_cache.remember(result) == 0
        assert len(empty_cache) == 0

    def test_remember_deduplicates(self, empty_cache: FingerprintCache) -> None:
        """A value already known is not added twice."""
        result = ExtractionResult(debito_fiscal=3410651, ventas_netas=17950795, is_valid=True)
        assert empty_cache.remember(result) == 2
        assert empty_cache.remember(result) == 0

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Saved fingerprints load back unchanged."""
        target = tmp_path / "known.json"
        cache = FingerprintCache([Fingerprint("ppm", 359016, "test")])
        cache.save(target)

        loaded = FingerprintCache.load(target)
        assert loaded.fingerprints == cache.fingerprints
        assert loaded.path == target

    def test_save_needs_path(self, empty_cache: FingerprintCache) -> None:
        """Saving an unbound cache without a path raises."""
        with pytest.raises(ValueError):
            empty_cache.save()

    def test_match_needs_digit_boundaries(self) -> None:
        """A known amount inside a longer digit run is not a match."""
        cache = FingerprintCache([Fingerprint("ppm", 359016)])
        assert cache.match(b"folio 13590160") == []
        assert cache.match(b"ppm 359016\n") == [Fingerprint("ppm", 359016)]

    def test_remember_skips_short_values(self, empty_cache: FingerprintCache) -> None:
        """Amounts shorter than the configured digit floor are not learned."""
        result = ExtractionResult(debito_fiscal=3410651, ppm=1000, remanente=2000, is_valid=True)

        assert empty_cache.min_digits == 6
        assert empty_cache.remember(result) == 1
        assert empty_cache.fingerprints == [Fingerprint("debito_fiscal", 3410651)]

    def test_learned_values_never_shadow_scanner(self, empty_cache: FingerprintCache) -> None:
        """Round amounts seen once do not replace a value read next to its code."""
        empty_cache.remember(ExtractionResult(debito_fiscal=3410651, ppm=1000, remanente=2000, is_valid=True))
        result = parse_f29(b"062 PPM 12.000\nref 1000 2000\n", fingerprints=empty_cache)

        assert result.ppm == 12000
        assert result.remanente is None


# =============================================================================
# Identity
# =============================================================================


class TestIdentityScanner:
    """Tests for RUT, period, folio and company name scanning."""

    def test_rut_with_separators(self) -> None:
        """Separators are stripped and the verifier upper-cased."""
        assert find_rut("RUT: 77.754.241-9") == "777542419"
        assert find_rut("rut 12.345.678-k") == "12345678K"

    def test_rut_absent(self) -> None:
        """Text without a RUT shape yields None."""
        assert find_rut("sin rut") is None

    def test_periodo_and_folio(self) -> None:
        """Period and folio are taken from the first matching token."""
        assert find_periodo("Periodo 202505") == "202505"
        assert find_folio("Folio 1234567890") == "1234567890"
        assert find_folio("Folio 123") is None

    def test_razon_social_label(self) -> None:
        """A RAZÓN SOCIAL label is preferred."""
        assert find_razon_social("RAZÓN SOCIAL: Comercial Ejemplo SpA\n") == "COMERCIAL EJEMPLO SPA"

    def test_razon_social_suffix(self) -> None:
        """Without a label, an upper-case phrase ending in a company suffix is used."""
        assert find_razon_social("Contribuyente INVERSIONES SUR LTDA rut") == "INVERSIONES SUR LTDA"

    def test_basic_info_strategy(self) -> None:
        """Identity scanning alone runs as the basic-info strategy."""
        acc = parse_identity_from_text("RUT 77.754.241-9 periodo 202505")
        assert acc.method == "basic-info"
        assert acc.values == {"rut": "777542419", "periodo": "202505"}
        assert acc.confidence == 20


# =============================================================================
# PDF text layer
# =============================================================================


class TestPdfTextLayer:
    """Tests for the pdfplumber text-layer strategy."""

    def test_pdf_magic(self) -> None:
        """Only uploads starting with %PDF are treated as PDFs."""
        assert is_pdf(b"%PDF-1.4\n")
        assert not is_pdf(b"538 3.410.651")

    def test_non_pdf_contributes_nothing(self) -> None:
        """Raw text uploads skip the text-layer strategy."""
        acc = parse_f29_from_pdf_text(b"538 3.410.651")
        assert isinstance(acc, ExtractionAccumulator)
        assert acc.confidence == 0

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Paths that do not exist raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            extract_text_from_pdf(tmp_path / "missing.pdf")

    def test_compressed_pdf_text_layer(self, scenario_pdf: bytes) -> None:
        """pdfplumber recovers page text from a compressed content stream."""
        pages = extract_text_from_pdf(scenario_pdf)

        assert list(pages) == [1]
        assert "3.410.651" in pages[1]
        assert "17.950.795" in pages[1]

    def test_pdf_text_strategy_reads_codes(self, scenario_pdf: bytes) -> None:
        """The text layer yields every code the raw bytes hide."""
        amounts = {
            "debito_fiscal": 3410651,
            "credito_fiscal": 4188643,
            "ppm": 359016,
            "remanente": 777992,
            "ventas_netas": 17950795,
        }
        result = parse_f29_from_pdf_text(scenario_pdf).to_result()
        binary = parse_f29_from_binary(scenario_pdf).to_result()

        assert result.method == "pdf-text"
        assert {name: result.get_value(name) for name in amounts} == amounts
        assert all(binary.get_value(name) != value for name, value in amounts.items())
