"""Tests for derived F29 totals."""

from __future__ import annotations

from sii_f29.extractor.derived import apply_derived_fields, compute_compras_netas, compute_derived_fields
from sii_f29.extractor.types import ExtractionResult


class TestComputeDerivedFields:
    """Tests for compute_derived_fields."""

    def test_credit_in_favour(self) -> None:
        """Crédito above débito gives a negative IVA a pagar."""
        derived = compute_derived_fields(3_410_651, 4_188_643, ppm=359_016, remanente=777_992)
        assert derived.iva_pagar == -777_992
        assert derived.compras_netas == 22_045_489
        assert derived.total_a_pagar == 359_016

    def test_missing_credito(self) -> None:
        """Without crédito nothing can be derived."""
        derived = compute_derived_fields(3_410_651, None)
        assert derived.compras_netas is None
        assert derived.iva_pagar is None
        assert derived.total_a_pagar is None

    def test_missing_debito_keeps_compras(self) -> None:
        """Compras netas only needs crédito."""
        derived = compute_derived_fields(None, 1_000_000)
        assert derived.compras_netas == 5_263_158
        assert derived.iva_pagar is None

    def test_missing_ppm_counts_as_zero(self) -> None:
        """Absent PPM and remanente add nothing to the total."""
        derived = compute_derived_fields(2_000_000, 500_000, remanente=100_000)
        assert derived.total_a_pagar == 1_600_000

    def test_non_positive_basis(self) -> None:
        """Zero or negative crédito gives no compras netas."""
        assert compute_compras_netas(0) is None
        assert compute_compras_netas(-5) is None


class TestApplyDerivedFields:
    """Tests for apply_derived_fields."""

    def test_writes_in_place(self) -> None:
        """Derived totals are written onto the result."""
        result = ExtractionResult(debito_fiscal=3_410_651, credito_fiscal=4_188_643, ppm=359_016)
        returned = apply_derived_fields(result)

        assert returned is result
        assert result.iva_pagar == -777_992
        assert result.total_a_pagar == -418_976

    def test_recompute_overwrites_stale_values(self) -> None:
        """Stale derived values are replaced, including by None."""
        result = ExtractionResult(debito_fiscal=1_000, compras_netas=42, iva_pagar=7)
        apply_derived_fields(result)
        assert result.compras_netas is None
        assert result.iva_pagar is None
