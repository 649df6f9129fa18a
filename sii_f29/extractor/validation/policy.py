"""Coherence policy loaded from ``config/validation.json``.

The typical-PyME ranges and the 19% coherence tolerances are empirical, so
they live in config rather than in the rule code and can be overridden per
call.

The derived check recomputes ``compras_netas`` from crédito fiscal (511) by
default, the same basis as ``compute_derived_fields``. Older F29 validators
recomputed it from débito (538) instead; that basis is still available with
``{"derived_check": {"basis_field": "debito_fiscal"}}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sii_f29.config import deep_merge, get_validation_policy_config

__all__ = ["CodeRange", "RequiredCode", "ValidationPolicy"]


@dataclass(frozen=True)
class RequiredCode:
    """Presence rule for one F29 code."""

    field: str
    name: str
    code: str
    critical: bool


@dataclass(frozen=True)
class CodeRange:
    """Absolute and typical PyME bounds for one F29 code (inclusive)."""

    field: str
    name: str
    min: int
    max: int
    typical_min: int
    typical_max: int


@dataclass
class ValidationPolicy:
    """All thresholds and penalties used by the coherence validator."""

    vat_rate: float
    required_codes: list[RequiredCode]
    ranges: list[CodeRange]
    coherence_error_pct: float
    coherence_warning_pct: float
    negative_iva_threshold: int
    rut_min_length: int
    periodo_pattern: str
    derived_basis_field: str
    derived_tolerance: int
    penalties: dict[str, int]
    high_confidence: int
    medium_confidence: int
    minor_error_count: int
    notes: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_config(cls, overrides: dict[str, Any] | None = None) -> ValidationPolicy:
        """Build the policy from ``validation.json`` with optional overrides.

        Parameters
        ----------
        overrides
            Partial mapping deep-merged over the file contents (e.g.,
            ``{"coherence": {"error_above_pct": 40}}``).

        Returns
        -------
        ValidationPolicy
            Parsed policy.
        """
        raw = get_validation_policy_config()
        if overrides:
            raw = deep_merge(raw, overrides)

        coherence = raw.get("coherence", {})
        identity = raw.get("identity", {})
        derived = raw.get("derived_check", {})
        summary = raw.get("summary", {})

        return cls(
            vat_rate=raw.get("vat_rate", 0.19),
            required_codes=[RequiredCode(**entry) for entry in raw.get("required_codes", [])],
            ranges=[CodeRange(**entry) for entry in raw.get("ranges", [])],
            coherence_error_pct=coherence.get("error_above_pct", 50),
            coherence_warning_pct=coherence.get("warning_above_pct", 20),
            negative_iva_threshold=raw.get("negative_iva_threshold", -10_000_000),
            rut_min_length=identity.get("rut_min_length", 8),
            periodo_pattern=identity.get("periodo_pattern", r"^20\d{4}$"),
            derived_basis_field=derived.get("basis_field", "credito_fiscal"),
            derived_tolerance=derived.get("tolerance", 1000),
            penalties=raw.get("penalties", {}),
            high_confidence=summary.get("high_confidence", 90),
            medium_confidence=summary.get("medium_confidence", 70),
            minor_error_count=summary.get("minor_error_count", 2),
            notes=raw.get("coherence_notes", {}),
        )

    def penalty(self, rule: str) -> int:
        return self.penalties.get(rule, 0)
