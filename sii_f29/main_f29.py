#!/usr/bin/env python3
"""F29 orchestrator - parse uploaded forms, validate, and save.

This module orchestrates the complete F29 workflow for one or more files:
1. Load the known-document fingerprint cache
2. Run every extraction strategy and merge the results
3. Compute derived totals and run coherence validation
4. Save extracted data to JSON
5. Print formatted report

Usage (from project root):
    cd /path/to/sii-f29
    python -m sii_f29.main_f29 data/raw/f29/formulario_202505.pdf
    python -m sii_f29.main_f29 mayo.pdf junio.pdf --no-save --quiet
    python -m sii_f29.main_f29 mayo.pdf --output-dir /tmp/f29

    # Learning and strict modes:
    python -m sii_f29.main_f29 mayo.pdf --remember
    python -m sii_f29.main_f29 mayo.pdf --fail-on-invalid

CLI Flags:
    files               One or more F29 PDF files
    --no-save           Don't save JSON output
    --quiet             Suppress report output
    --output-dir        Directory for JSON output (default: data/processed)
    --remember          Add values of valid results to the fingerprint cache
    --fail-on-invalid   Exit with error code if any parsed file is invalid
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path when running directly
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from sii_f29.config import KNOWN_DOCUMENTS_PATH, format_periodo_display, setup_logging  # noqa: E402
from sii_f29.extractor import (  # noqa: E402
    ExtractionResult,
    F29ExtractionError,
    FingerprintCache,
    parse_f29_file,
    print_extraction_report,
    save_extraction_result,
)

logger = setup_logging(__name__)


# =============================================================================
# Fingerprint Cache
# =============================================================================


def load_fingerprint_cache() -> FingerprintCache:
    """Load the known-document cache, falling back to an empty one.

    Returns
    -------
    FingerprintCache
        Cache bound to ``KNOWN_DOCUMENTS_PATH`` so it can be saved back.
    """
    try:
        return FingerprintCache.load()
    except FileNotFoundError as err:
        logger.warning("⚠ %s; fingerprint strategy starts empty", err)
        return FingerprintCache(path=KNOWN_DOCUMENTS_PATH)


# =============================================================================
# Main Processing
# =============================================================================


def process_f29(
    path: Path,
    cache: FingerprintCache,
    save: bool = True,
    verbose: bool = True,
    output_dir: Path | None = None,
    remember: bool = False,
) -> ExtractionResult | None:
    """Run the end-to-end workflow for one uploaded form.

    Parameters
    ----------
    path : Path
        F29 file to parse.
    cache : FingerprintCache
        Known-document cache handed to the fingerprint strategy.
    save : bool, optional
        Persist the result to JSON when ``True``.
    verbose : bool, optional
        Print a human-readable report when ``True``.
    output_dir : Path | None, optional
        JSON output directory; defaults to ``DATA_DIR/processed``.
    remember : bool, optional
        Learn fingerprints from the result when it validates.

    Returns
    -------
    ExtractionResult | None
        Parsed result, or ``None`` when the file is missing or yields no signal.
    """
    logger.info("Processing F29 file %s", path)

    # Step 1: Extract, derive and validate
    try:
        result = parse_f29_file(path, fingerprints=cache)
    except (FileNotFoundError, F29ExtractionError) as err:
        logger.error("✗ %s", err)
        return None

    if result.periodo:
        logger.info("Period: %s", format_periodo_display(result.periodo))

    # Step 2: Learn fingerprints (opt-in)
    if remember and cache.remember(result, source=path.name):
        cache.save()

    # Step 3: Save to JSON
    if save:
        output_path = save_extraction_result(result, output_dir)
        logger.info("Saved to: %s", output_path)

    # Step 4: Print report
    if verbose:
        print_extraction_report(result)

    return result


# =============================================================================
# CLI
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Parse CLI flags and process the requested files.

    Returns
    -------
    int
        ``0`` when at least one file parsed (and, with ``--fail-on-invalid``,
        every parsed file is valid); ``1`` otherwise.
    """
    parser = argparse.ArgumentParser(
        description="Process F29: extract, validate, and save form data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sii_f29.main_f29 formulario.pdf                  # Single file
  python -m sii_f29.main_f29 mayo.pdf junio.pdf              # Multiple files
  python -m sii_f29.main_f29 mayo.pdf --no-save --quiet
  python -m sii_f29.main_f29 mayo.pdf --remember             # Learn fingerprints
  python -m sii_f29.main_f29 mayo.pdf --fail-on-invalid      # Strict mode for CI
        """,
    )
    parser.add_argument("files", type=Path, nargs="+", help="F29 PDF file(s) to process")
    parser.add_argument("--no-save", action="store_true", help="Don't save to JSON")
    parser.add_argument("--quiet", action="store_true", help="Don't print report")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for JSON output")
    parser.add_argument(
        "--remember",
        action="store_true",
        help="Add values from valid results to the known-document cache",
    )
    parser.add_argument(
        "--fail-on-invalid",
        action="store_true",
        help="Exit with error if any parsed file fails validation (for CI)",
    )

    args = parser.parse_args(argv)
    cache = load_fingerprint_cache()

    # Process each file
    results: list[ExtractionResult] = []
    for path in args.files:
        result = process_f29(
            path,
            cache,
            save=not args.no_save,
            verbose=not args.quiet,
            output_dir=args.output_dir,
            remember=args.remember,
        )
        if result is not None:
            results.append(result)

    if not results:
        return 1

    if args.fail_on_invalid and not all(r.is_valid for r in results):
        logger.error("Invalid F29 result and --fail-on-invalid is set")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
