"""Tests for the main_f29 command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sii_f29 import main_f29
from sii_f29.extractor.fingerprint import FingerprintCache


@pytest.fixture
def cache(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FingerprintCache:
    """Empty cache bound to a temporary file, used instead of the config cache."""
    cache = FingerprintCache(path=tmp_path / "known.json")
    monkeypatch.setattr(main_f29, "load_fingerprint_cache", lambda: cache)
    return cache


class TestMain:
    """Tests for main()."""

    def test_parses_and_saves(self, tmp_path: Path, scenario_bytes: bytes, cache: FingerprintCache) -> None:
        """A valid file exits 0 and writes its JSON result."""
        upload = tmp_path / "mayo.pdf"
        upload.write_bytes(scenario_bytes)
        out = tmp_path / "out"

        assert main_f29.main([str(upload), "--output-dir", str(out), "--quiet"]) == 0
        assert (out / "f29_202505_777542419.json").exists()

    def test_missing_file(self, tmp_path: Path, cache: FingerprintCache) -> None:
        """No parsed file means exit code 1."""
        assert main_f29.main([str(tmp_path / "missing.pdf"), "--no-save", "--quiet"]) == 1

    def test_fail_on_invalid(self, tmp_path: Path, partial_bytes: bytes, cache: FingerprintCache) -> None:
        """Invalid results only fail the run with --fail-on-invalid."""
        upload = tmp_path / "parcial.pdf"
        upload.write_bytes(partial_bytes)

        assert main_f29.main([str(upload), "--no-save", "--quiet"]) == 0
        assert main_f29.main([str(upload), "--no-save", "--quiet", "--fail-on-invalid"]) == 1

    def test_remember_learns_fingerprints(
        self,
        tmp_path: Path,
        scenario_bytes: bytes,
        cache: FingerprintCache,
    ) -> None:
        """--remember persists the codes of a valid result."""
        upload = tmp_path / "mayo.pdf"
        upload.write_bytes(scenario_bytes)

        assert main_f29.main([str(upload), "--no-save", "--quiet", "--remember"]) == 0

        saved = json.loads((tmp_path / "known.json").read_text(encoding="utf-8"))
        assert len(saved["fingerprints"]) == 5
        assert {f["source"] for f in saved["fingerprints"]} == {"mayo.pdf"}
