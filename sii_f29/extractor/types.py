"""F29 extraction dataclasses and type definitions.

This module contains pure data structures with no strategy logic, ensuring
they can be imported by every scanner, the validator, and the orchestrator
without circular dependencies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from sii_f29.config import get_confidence_increments, get_extraction_specs

if TYPE_CHECKING:
    from sii_f29.extractor.validation.types import ValidationResult

__all__ = [
    "CODE_FIELDS",
    "DERIVED_FIELDS",
    "IDENTITY_FIELDS",
    "MAX_CONFIDENCE",
    "ExtractionAccumulator",
    "ExtractionResult",
    "F29Code",
    "F29ExtractionError",
    "get_f29_codes",
]

CODE_FIELDS = ("debito_fiscal", "credito_fiscal", "ppm", "remanente", "ventas_netas")
IDENTITY_FIELDS = ("rut", "periodo", "folio", "razon_social")
DERIVED_FIELDS = ("compras_netas", "iva_pagar", "total_a_pagar")
MAX_CONFIDENCE = 100


class F29ExtractionError(RuntimeError):
    """Raised when no extraction strategy recovers any signal from a file."""


@dataclass(frozen=True)
class F29Code:
    """One numbered line of the F29 form and how to recognize it.

    Attributes
    ----------
        field: Result attribute that stores the amount (e.g., "debito_fiscal")
        code: Form code as printed, zero-padded (e.g., "062")
        description: Human label used in provenance notes
        keyword: Upper-case label searched by the line-adjacency scanner
        visual_range: Exclusive (low, high) bounds accepted by that scanner
    """

    field: str
    code: str
    description: str
    keyword: str
    visual_range: tuple[int, int]


def get_f29_codes() -> list[F29Code]:
    """Load the F29 code table from ``extraction.json`` in scan order."""
    specs = get_extraction_specs()
    return [
        F29Code(
            field=entry["field"],
            code=entry["code"],
            description=entry["description"],
            keyword=entry["keyword"],
            visual_range=(entry["visual_range"][0], entry["visual_range"][1]),
        )
        for entry in specs.get("codes", [])
    ]


@dataclass
class ExtractionResult:
    """Structured F29 result handed back to callers.

    Code amounts and identity fields are ``None`` until some strategy finds
    them; derived totals are ``None`` until their inputs exist.
    """

    # Codes 538, 511, 062, 077, 563
    debito_fiscal: int | None = None
    credito_fiscal: int | None = None
    ppm: int | None = None
    remanente: int | None = None
    ventas_netas: int | None = None

    rut: str | None = None
    periodo: str | None = None
    folio: str | None = None
    razon_social: str | None = None

    compras_netas: int | None = None
    iva_pagar: int | None = None
    total_a_pagar: int | None = None

    method: str = "super-parser"
    confidence: int = 0
    detected_values: list[str] = field(default_factory=list)
    is_valid: bool = False
    validation: ValidationResult | None = None

    def get_value(self, field_name: str) -> Any:
        """Get a field value by name."""
        return getattr(self, field_name, None)

    def has_value(self, field_name: str) -> bool:
        """Report whether a field holds a non-empty value (0 counts as empty)."""
        return bool(self.get_value(field_name))

    def extracted_fields(self) -> dict[str, Any]:
        """Return the non-empty code and identity fields."""
        return {
            name: self.get_value(name)
            for name in (*CODE_FIELDS, *IDENTITY_FIELDS)
            if self.has_value(name)
        }

    def to_dict(self, include_validation: bool = True) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data.pop("validation")
        if include_validation and self.validation is not None:
            data["validation"] = self.validation.to_dict()
        return data


class ExtractionAccumulator:
    """Builder that records one strategy's findings.

    Each accepted value sets its field, appends a provenance note, and adds
    the configured increment for the signal kind. Within a strategy the first
    value recorded for a field wins.
    """

    def __init__(self, method: str, increments: dict[str, int] | None = None) -> None:
        self.method = method
        self.increments = increments if increments is not None else get_confidence_increments()
        self.values: dict[str, Any] = {}
        self.detected_values: list[str] = []
        self.confidence = 0

    def has(self, field_name: str) -> bool:
        return bool(self.values.get(field_name))

    def record(self, field_name: str, value: Any, note: str, signal: str) -> bool:
        """Accept ``value`` for ``field_name`` unless the field is already set.

        Parameters
        ----------
        field_name
            Result attribute to fill.
        value
            Extracted amount or identity string; empty values are ignored.
        note
            Provenance string appended to ``detected_values``.
        signal
            Increment key from ``confidence_increments``.

        Returns
        -------
        bool
            ``True`` when the value was stored.
        """
        if not value or self.has(field_name):
            return False
        self.values[field_name] = value
        self.detected_values.append(note)
        self.confidence += self.increments.get(signal, 0)
        return True

    def note(self, message: str) -> None:
        """Append a provenance line without touching fields or confidence."""
        self.detected_values.append(message)

    def absorb(self, other: ExtractionAccumulator, label: str | None = None) -> None:
        """Fold another accumulator in: missing fields only, notes always, max confidence."""
        for field_name, value in other.values.items():
            if not self.has(field_name):
                self.values[field_name] = value
        prefix = f"[{label}] " if label else ""
        self.detected_values.extend(f"{prefix}{entry}" for entry in other.detected_values)
        self.confidence = max(self.confidence, other.confidence)

    def to_result(self) -> ExtractionResult:
        """Freeze the accumulated findings into an ``ExtractionResult``."""
        return ExtractionResult(
            **self.values,
            method=self.method,
            confidence=max(0, min(MAX_CONFIDENCE, self.confidence)),
            detected_values=list(self.detected_values),
        )
