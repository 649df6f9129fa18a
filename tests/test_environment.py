"""Environment validation tests for sii-f29."""

import sys


def test_python_version() -> None:
    """Verify Python version is 3.11 or higher."""
    assert sys.version_info >= (3, 11), f"Python 3.11+ required, got {sys.version}"


def test_core_imports() -> None:
    """Verify core packages can be imported."""
    import dotenv  # noqa: F401
    import pdfplumber  # noqa: F401


def test_project_structure() -> None:
    """Verify project module structure."""
    from sii_f29 import __version__, get_version
    from sii_f29.config import PROJECT_ROOT

    assert __version__ == "0.1.0"
    assert get_version() == __version__
    assert PROJECT_ROOT.exists()


def test_public_api() -> None:
    """Verify the extractor exposes its entry points."""
    from sii_f29.extractor import parse_f29, parse_f29_batch, validate_f29_data

    assert callable(parse_f29)
    assert callable(parse_f29_batch)
    assert callable(validate_f29_data)


def test_data_directories_exist() -> None:
    """Verify data directories exist."""
    from sii_f29.config import DATA_DIR, LOGS_DIR

    assert DATA_DIR.exists()
    assert LOGS_DIR.exists()
